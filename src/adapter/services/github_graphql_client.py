"""GitHub GraphQL Client

Concrete IRemoteApiClient over the GitHub GraphQL API using httpx.

Failures are surfaced as RemoteApiError carrying the raw signals (status code,
GraphQL errors, empty payload, transport failure); deciding whether to retry
is left to the rate-aware caller.
"""
import logging
import httpx
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from src.app.services.remote_api_client import (
    IRemoteApiClient,
    RemoteApiError,
    RemoteComment,
    RemoteItem,
    RemotePage,
    RepoRef,
)
from src.domain.enums import ItemKind, ItemState

logger = logging.getLogger(__name__)

MAX_COMMENTS_PER_ITEM = 100

ITEM_FIELDS = """
    databaseId
    number
    title
    body
    state
    createdAt
    updatedAt
    closedAt
    author { login }
    labels(first: 20) { nodes { name } }
    assignees(first: 10) { nodes { login } }
    comments { totalCount }
"""

ISSUES_QUERY = """
query($owner: String!, $repo: String!, $first: Int!, $after: String, $states: [IssueState!], $since: DateTime) {
  repository(owner: $owner, name: $repo) {
    issues(first: $first, after: $after, states: $states,
           orderBy: {field: UPDATED_AT, direction: ASC}, filterBy: {since: $since}) {
      pageInfo { hasNextPage endCursor }
      nodes { %s }
    }
  }
}
""" % ITEM_FIELDS

PULL_REQUESTS_QUERY = """
query($owner: String!, $repo: String!, $first: Int!, $after: String, $states: [PullRequestState!],
      $direction: OrderDirection!) {
  repository(owner: $owner, name: $repo) {
    pullRequests(first: $first, after: $after, states: $states,
                 orderBy: {field: UPDATED_AT, direction: $direction}) {
      pageInfo { hasNextPage endCursor }
      nodes { %s mergedAt }
    }
  }
}
""" % ITEM_FIELDS

ISSUE_QUERY = """
query($owner: String!, $repo: String!, $number: Int!) {
  repository(owner: $owner, name: $repo) {
    item: issue(number: $number) { %s }
  }
}
""" % ITEM_FIELDS

PULL_REQUEST_QUERY = """
query($owner: String!, $repo: String!, $number: Int!) {
  repository(owner: $owner, name: $repo) {
    item: pullRequest(number: $number) { %s mergedAt }
  }
}
""" % ITEM_FIELDS

COMMENTS_QUERY = """
query($owner: String!, $repo: String!, $number: Int!, $first: Int!, $after: String) {
  repository(owner: $owner, name: $repo) {
    item: %s(number: $number) {
      comments(first: $first, after: $after) {
        pageInfo { hasNextPage endCursor }
        nodes { databaseId body createdAt author { login } }
      }
    }
  }
}
"""


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a GitHub ISO-8601 timestamp into naive UTC"""
    if not value:
        return None
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def format_timestamp(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_item(node: Dict[str, Any]) -> RemoteItem:
    author = node.get("author") or {}
    return RemoteItem(
        external_id=node["databaseId"],
        number=node["number"],
        title=node.get("title") or "",
        body=node.get("body"),
        state=ItemState(node.get("state", "OPEN").lower()),
        created_at=parse_timestamp(node.get("createdAt")),
        updated_at=parse_timestamp(node.get("updatedAt")),
        closed_at=parse_timestamp(node.get("closedAt")),
        merged_at=parse_timestamp(node.get("mergedAt")),
        author_login=author.get("login"),
        labels=[label["name"] for label in (node.get("labels") or {}).get("nodes", [])],
        assignees=[user["login"] for user in (node.get("assignees") or {}).get("nodes", [])],
        comments_count=(node.get("comments") or {}).get("totalCount", 0),
    )


class GitHubGraphQLClient(IRemoteApiClient):
    """
    httpx implementation of IRemoteApiClient.

    Issues are filtered server-side with filterBy.since. The pull request
    connection has no such filter, so incremental PR pages are requested
    newest-first, filtered by updatedAt, and paging stops at the first page
    that reaches items older than since.
    """

    def __init__(
        self,
        token: str,
        api_url: str = "https://api.github.com/graphql",
        page_size: int = 100,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_url = api_url
        self.page_size = page_size
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self.headers = {"Accept": "application/json"}
        if token:
            self.headers["Authorization"] = f"Bearer {token}"

    async def aclose(self) -> None:
        await self.client.aclose()

    async def _execute(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self.client.post(
                self.api_url,
                json={"query": query, "variables": variables},
                headers=self.headers,
            )
        except httpx.TransportError as e:
            raise RemoteApiError(f"Transport error: {e}", transport_error=True) from e

        if response.status_code >= 400:
            raise RemoteApiError(self._error_message(response), status_code=response.status_code)

        try:
            payload = response.json()
        except ValueError as e:
            raise RemoteApiError("Malformed JSON response", status_code=response.status_code) from e

        errors = (payload or {}).get("errors") or []
        if errors:
            raise RemoteApiError(
                errors[0].get("message", "GraphQL error"),
                status_code=response.status_code,
                errors=errors,
            )

        data = (payload or {}).get("data")
        if not data or data.get("repository") is None:
            # Soft throttling shows up as a 200 with nothing in it
            raise RemoteApiError(
                "Empty response from remote API",
                status_code=response.status_code,
                null_response=True,
            )
        return data

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict) and body.get("message"):
            return body["message"]
        return f"HTTP {response.status_code}"

    async def fetch_page(
        self,
        repo: RepoRef,
        kind: ItemKind,
        cursor: Optional[str] = None,
        since: Optional[datetime] = None,
        include_closed: bool = False,
    ) -> RemotePage:
        if kind == ItemKind.issue:
            return await self._fetch_issue_page(repo, cursor, since, include_closed)
        return await self._fetch_pull_request_page(repo, cursor, since, include_closed)

    async def _fetch_issue_page(
        self, repo: RepoRef, cursor: Optional[str], since: Optional[datetime], include_closed: bool
    ) -> RemotePage:
        variables = {
            "owner": repo.owner,
            "repo": repo.name,
            "first": self.page_size,
            "after": cursor,
            "states": ["OPEN", "CLOSED"] if include_closed else ["OPEN"],
            "since": format_timestamp(since) if since else None,
        }
        data = await self._execute(ISSUES_QUERY, variables)
        connection = data["repository"]["issues"]
        return self._to_page(connection)

    async def _fetch_pull_request_page(
        self, repo: RepoRef, cursor: Optional[str], since: Optional[datetime], include_closed: bool
    ) -> RemotePage:
        variables = {
            "owner": repo.owner,
            "repo": repo.name,
            "first": self.page_size,
            "after": cursor,
            "states": ["OPEN", "CLOSED", "MERGED"] if include_closed else ["OPEN"],
            "direction": "DESC" if since else "ASC",
        }
        data = await self._execute(PULL_REQUESTS_QUERY, variables)
        connection = data["repository"]["pullRequests"]
        page = self._to_page(connection)

        if since is None:
            return page

        fresh = [item for item in page.items if item.updated_at is None or item.updated_at >= since]
        if len(fresh) < len(page.items):
            logger.info(
                f"[GitHub] {repo.full_name} reached pull requests older than {since.isoformat()}, "
                f"stopping pagination"
            )
            return RemotePage(items=fresh, next_cursor=None)
        return RemotePage(items=fresh, next_cursor=page.next_cursor)

    @staticmethod
    def _to_page(connection: Dict[str, Any]) -> RemotePage:
        page_info = connection.get("pageInfo") or {}
        items = [parse_item(node) for node in connection.get("nodes") or [] if node]
        next_cursor = page_info.get("endCursor") if page_info.get("hasNextPage") else None
        return RemotePage(items=items, next_cursor=next_cursor)

    async def fetch_subresource(self, repo: RepoRef, kind: ItemKind, number: int) -> List[RemoteComment]:
        field = "issue" if kind == ItemKind.issue else "pullRequest"
        query = COMMENTS_QUERY % field

        comments: List[RemoteComment] = []
        after = None
        while len(comments) < MAX_COMMENTS_PER_ITEM:
            data = await self._execute(
                query,
                {"owner": repo.owner, "repo": repo.name, "number": number, "first": 100, "after": after},
            )
            item = data["repository"].get("item")
            if item is None:
                raise RemoteApiError(f"{kind.value} #{number} not found in {repo.full_name}", status_code=404)

            connection = item["comments"]
            for node in connection.get("nodes") or []:
                if not node:
                    continue
                author = node.get("author") or {}
                comments.append(
                    RemoteComment(
                        external_id=node["databaseId"],
                        author_login=author.get("login"),
                        body=node.get("body"),
                        created_at=parse_timestamp(node.get("createdAt")),
                    )
                )

            page_info = connection.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            after = page_info.get("endCursor")

        return comments[:MAX_COMMENTS_PER_ITEM]

    async def fetch_item(self, repo: RepoRef, kind: ItemKind, number: int) -> RemoteItem:
        query = ISSUE_QUERY if kind == ItemKind.issue else PULL_REQUEST_QUERY
        data = await self._execute(query, {"owner": repo.owner, "repo": repo.name, "number": number})
        node = data["repository"].get("item")
        if node is None:
            raise RemoteApiError(f"{kind.value} #{number} not found in {repo.full_name}", status_code=404)
        return parse_item(node)
