"""Unit tests for GitHubGraphQLClient with a mocked HTTP transport"""
import json
import pytest
import httpx
from datetime import datetime
from src.adapter.services.github_graphql_client import GitHubGraphQLClient, parse_timestamp
from src.app.services.rate_limit import classify_failure
from src.app.services.remote_api_client import RemoteApiError, RepoRef
from src.domain.enums import FailureKind, ItemKind, ItemState

REPO = RepoRef(repo_id=1, owner="octo", name="widgets")


def node(number, updated_at, state="OPEN", comments=0, **extra):
    data = {
        "databaseId": 5000000000 + number,
        "number": number,
        "title": f"Item {number}",
        "body": "body",
        "state": state,
        "createdAt": "2024-01-01T00:00:00Z",
        "updatedAt": updated_at,
        "closedAt": None,
        "author": {"login": "octocat"},
        "labels": {"nodes": [{"name": "bug"}]},
        "assignees": {"nodes": []},
        "comments": {"totalCount": comments},
    }
    data.update(extra)
    return data


def connection(nodes, end_cursor=None):
    return {"pageInfo": {"hasNextPage": end_cursor is not None, "endCursor": end_cursor}, "nodes": nodes}


class Recorder:
    """Serves queued responses and keeps the decoded request bodies"""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(json.loads(request.content))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def build_client(recorder, page_size=2):
    http = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    return GitHubGraphQLClient(token="t0ken", api_url="https://api.test/graphql", page_size=page_size, client=http)


def test_parse_timestamp_returns_naive_utc():
    assert parse_timestamp("2024-01-15T10:00:00Z") == datetime(2024, 1, 15, 10, 0, 0)
    assert parse_timestamp("2024-01-15T12:00:00+02:00") == datetime(2024, 1, 15, 10, 0, 0)
    assert parse_timestamp(None) is None


class TestFetchPage:
    @pytest.mark.asyncio
    async def test_full_issue_page(self):
        recorder = Recorder(
            httpx.Response(200, json={"data": {"repository": {"issues": connection(
                [node(1, "2024-01-02T00:00:00Z", comments=3), node(2, "2024-01-03T00:00:00Z", state="CLOSED")],
                end_cursor="Y3Vyc29y",
            )}}})
        )
        client = build_client(recorder)

        page = await client.fetch_page(REPO, ItemKind.issue)

        assert page.next_cursor == "Y3Vyc29y"
        assert [item.number for item in page.items] == [1, 2]
        first = page.items[0]
        assert first.external_id == 5000000001
        assert first.comments_count == 3
        assert first.labels == ["bug"]
        assert first.author_login == "octocat"
        assert first.updated_at == datetime(2024, 1, 2)
        assert page.items[1].state == ItemState.closed

        variables = recorder.requests[0]["variables"]
        assert variables["states"] == ["OPEN"]
        assert variables["since"] is None
        assert variables["first"] == 2
        assert variables["owner"] == "octo"

    @pytest.mark.asyncio
    async def test_incremental_issue_page_includes_closed_and_since(self):
        recorder = Recorder(httpx.Response(200, json={"data": {"repository": {"issues": connection([])}}}))
        client = build_client(recorder)

        page = await client.fetch_page(
            REPO, ItemKind.issue, cursor="abc", since=datetime(2024, 1, 10, 8, 59), include_closed=True
        )

        assert page.items == []
        assert page.next_cursor is None
        variables = recorder.requests[0]["variables"]
        assert variables["states"] == ["OPEN", "CLOSED"]
        assert variables["since"] == "2024-01-10T08:59:00Z"
        assert variables["after"] == "abc"

    @pytest.mark.asyncio
    async def test_incremental_pull_requests_stop_at_older_items(self):
        recorder = Recorder(
            httpx.Response(200, json={"data": {"repository": {"pullRequests": connection(
                [
                    node(9, "2024-01-10T12:00:00Z", state="MERGED", mergedAt="2024-01-10T12:00:00Z"),
                    node(8, "2024-01-01T00:00:00Z"),
                ],
                end_cursor="more",
            )}}})
        )
        client = build_client(recorder)

        page = await client.fetch_page(
            REPO, ItemKind.pull_request, since=datetime(2024, 1, 10), include_closed=True
        )

        assert [item.number for item in page.items] == [9]
        assert page.items[0].state == ItemState.merged
        assert page.items[0].merged_at == datetime(2024, 1, 10, 12)
        assert page.next_cursor is None
        variables = recorder.requests[0]["variables"]
        assert variables["direction"] == "DESC"
        assert variables["states"] == ["OPEN", "CLOSED", "MERGED"]

    @pytest.mark.asyncio
    async def test_full_pull_request_pass_pages_oldest_first(self):
        recorder = Recorder(
            httpx.Response(200, json={"data": {"repository": {"pullRequests": connection(
                [node(3, "2024-01-01T00:00:00Z")], end_cursor="next"
            )}}})
        )
        client = build_client(recorder)

        page = await client.fetch_page(REPO, ItemKind.pull_request)

        assert page.next_cursor == "next"
        assert recorder.requests[0]["variables"]["direction"] == "ASC"


class TestErrors:
    @pytest.mark.asyncio
    async def test_null_data_is_a_null_response(self):
        client = build_client(Recorder(httpx.Response(200, json={"data": None})))

        with pytest.raises(RemoteApiError) as exc_info:
            await client.fetch_page(REPO, ItemKind.issue)

        assert exc_info.value.null_response is True
        assert classify_failure(exc_info.value) == FailureKind.null_response

    @pytest.mark.asyncio
    async def test_graphql_rate_limited_error(self):
        client = build_client(Recorder(httpx.Response(200, json={
            "data": None,
            "errors": [{"type": "RATE_LIMITED", "message": "API rate limit exceeded for user"}],
        })))

        with pytest.raises(RemoteApiError) as exc_info:
            await client.fetch_page(REPO, ItemKind.issue)

        assert exc_info.value.errors[0]["type"] == "RATE_LIMITED"
        assert classify_failure(exc_info.value) == FailureKind.quota

    @pytest.mark.asyncio
    async def test_secondary_limit_403(self):
        client = build_client(Recorder(httpx.Response(403, json={
            "message": "You have exceeded a secondary rate limit."
        })))

        with pytest.raises(RemoteApiError) as exc_info:
            await client.fetch_page(REPO, ItemKind.issue)

        assert exc_info.value.status_code == 403
        assert classify_failure(exc_info.value) == FailureKind.abuse

    @pytest.mark.asyncio
    async def test_bad_gateway(self):
        client = build_client(Recorder(httpx.Response(502, text="Bad Gateway")))

        with pytest.raises(RemoteApiError) as exc_info:
            await client.fetch_page(REPO, ItemKind.issue)

        assert exc_info.value.message == "Bad Gateway"
        assert classify_failure(exc_info.value) == FailureKind.server_error

    @pytest.mark.asyncio
    async def test_connection_failure_is_a_transport_error(self):
        client = build_client(Recorder(httpx.ConnectError("connection reset")))

        with pytest.raises(RemoteApiError) as exc_info:
            await client.fetch_page(REPO, ItemKind.issue)

        assert exc_info.value.transport_error is True
        assert classify_failure(exc_info.value) == FailureKind.server_error

    @pytest.mark.asyncio
    async def test_unknown_repository_is_not_retryable(self):
        client = build_client(Recorder(httpx.Response(200, json={
            "data": {"repository": None},
            "errors": [{"type": "NOT_FOUND", "message": "Could not resolve to a Repository"}],
        })))

        with pytest.raises(RemoteApiError) as exc_info:
            await client.fetch_page(REPO, ItemKind.issue)

        assert classify_failure(exc_info.value) is None


class TestComments:
    @pytest.mark.asyncio
    async def test_comments_are_paged(self):
        def comment(i):
            return {"databaseId": i, "body": f"c{i}", "createdAt": "2024-01-01T00:00:00Z", "author": None}

        recorder = Recorder(
            httpx.Response(200, json={"data": {"repository": {"item": {"comments": connection(
                [comment(1), comment(2)], end_cursor="c2"
            )}}}}),
            httpx.Response(200, json={"data": {"repository": {"item": {"comments": connection([comment(3)])}}}}),
        )
        client = build_client(recorder)

        comments = await client.fetch_subresource(REPO, ItemKind.pull_request, 7)

        assert [c.external_id for c in comments] == [1, 2, 3]
        assert comments[0].author_login is None
        assert recorder.requests[1]["variables"]["after"] == "c2"
        assert "pullRequest(number: $number)" in recorder.requests[0]["query"]

    @pytest.mark.asyncio
    async def test_comments_of_missing_item(self):
        client = build_client(Recorder(httpx.Response(200, json={"data": {"repository": {"item": None}}})))

        with pytest.raises(RemoteApiError) as exc_info:
            await client.fetch_subresource(REPO, ItemKind.issue, 404)

        assert exc_info.value.status_code == 404


class TestFetchItem:
    @pytest.mark.asyncio
    async def test_fetch_item(self):
        recorder = Recorder(httpx.Response(200, json={"data": {"repository": {"item": node(42, "2024-01-10T09:00:00Z")}}}))
        client = build_client(recorder)

        item = await client.fetch_item(REPO, ItemKind.issue, 42)

        assert item.number == 42
        assert recorder.requests[0]["variables"]["number"] == 42
        assert "Bearer t0ken" == client.headers["Authorization"]

    @pytest.mark.asyncio
    async def test_fetch_missing_item(self):
        client = build_client(Recorder(httpx.Response(200, json={"data": {"repository": {"item": None}}})))

        with pytest.raises(RemoteApiError) as exc_info:
            await client.fetch_item(REPO, ItemKind.issue, 99)

        assert exc_info.value.status_code == 404
