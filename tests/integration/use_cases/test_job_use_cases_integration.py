"""Job use cases against SQLite through the real unit of work"""
import pytest
from datetime import datetime
from unittest.mock import patch
from src.adapter.repositories.repo_sync_state_repository import SqlAlchemyRepoSyncStateRepository
from src.adapter.repositories.sync_job_repository import SqlAlchemySyncJobRepository
from src.app.use_cases.jobs import (
    EnqueueJobCommand,
    EnqueueJobUseCase,
    GetQueueDepthUseCase,
    GetRepoSyncStatusUseCase,
    QueueRepoSyncUseCase,
)
from src.domain.enums import ItemKind, JobStatus
from src.domain.repo_sync_state import RepoSyncState
from src.domain.sync_job import SyncJob

WATERMARK = datetime(2024, 3, 1, 12, 0, 0)


async def add_rows(session_factory, *rows):
    async with session_factory() as session:
        for row in rows:
            session.add(row)
        await session.commit()


async def enqueue(uow_factory, job_type, repo_id):
    async with uow_factory() as uow:
        return await EnqueueJobUseCase(uow).execute(EnqueueJobCommand(type=job_type, repo_id=repo_id))


class TestGetRepoSyncStatus:
    @pytest.mark.asyncio
    async def test_status_with_jobs_and_watermarks(self, uow_factory, session_factory, tracked_repo):
        running = SyncJob.new("issue-fetch", tracked_repo.id)
        running.start_processing()
        finished = SyncJob.new("pr-fetch", tracked_repo.id)
        finished.fail("Remote API error: boom")
        await add_rows(
            session_factory,
            running,
            finished,
            RepoSyncState(repo_id=tracked_repo.id, item_kind=ItemKind.issue, last_synced_at=WATERMARK),
        )

        async with uow_factory() as uow:
            result = await GetRepoSyncStatusUseCase(uow).execute(tracked_repo.id)

        assert result.is_ok()
        status = result.value
        assert status.full_name == "octo/widgets"
        assert status.sync_status == tracked_repo.sync_status.value
        assert status.current_job.id == running.id
        assert status.current_job.status == "processing"
        assert status.last_job.id == finished.id
        assert status.last_job.last_error == "Remote API error: boom"
        assert [(w.item_kind, w.last_synced_at) for w in status.watermarks] == [("issue", WATERMARK)]

    @pytest.mark.asyncio
    async def test_status_for_repository_never_synced(self, uow_factory, tracked_repo):
        async with uow_factory() as uow:
            result = await GetRepoSyncStatusUseCase(uow).execute(tracked_repo.id)

        assert result.is_ok()
        assert result.value.current_job is None
        assert result.value.last_job is None
        assert result.value.watermarks == []


class TestGetQueueDepth:
    @pytest.mark.asyncio
    async def test_counts_each_status(self, uow_factory, session_factory, tracked_repo, other_repo):
        running = SyncJob.new("issue-fetch", tracked_repo.id)
        running.start_processing()
        await add_rows(session_factory, running, SyncJob.new("issue-fetch", other_repo.id))

        async with uow_factory() as uow:
            result = await GetQueueDepthUseCase(uow, max_concurrent=3).execute()

        depth = result.value
        assert (depth.pending_count, depth.processing_count, depth.completed_count, depth.failed_count) == (1, 1, 0, 0)
        assert depth.max_concurrent == 3


class TestEnqueueJob:
    @pytest.mark.asyncio
    async def test_new_then_duplicate(self, uow_factory, tracked_repo):
        first = await enqueue(uow_factory, "issue-fetch", tracked_repo.id)
        second = await enqueue(uow_factory, "issue-fetch", tracked_repo.id)

        assert first.value.created is True
        assert second.value.created is False
        assert second.value.job_id == first.value.job_id
        assert second.value.status == "pending"

    @pytest.mark.asyncio
    async def test_losing_the_insert_race_returns_the_winner(self, uow_factory, session_factory, tracked_repo):
        winner = SyncJob.new("issue-fetch", tracked_repo.id)
        await add_rows(session_factory, winner)

        original = SqlAlchemySyncJobRepository.get_active_by_key
        lookups = []

        async def first_lookup_misses(self, job_key):
            # The competing insert lands between the lookup and our flush
            lookups.append(job_key)
            if len(lookups) == 1:
                return None
            return await original(self, job_key)

        with patch.object(SqlAlchemySyncJobRepository, "get_active_by_key", first_lookup_misses):
            result = await enqueue(uow_factory, "issue-fetch", tracked_repo.id)

        assert result.is_ok()
        assert result.value.created is False
        assert result.value.job_id == winner.id
        assert len(lookups) == 2

        async with session_factory() as session:
            counts = await SqlAlchemySyncJobRepository(session).count_by_status()
        assert counts[JobStatus.pending] == 1


class TestQueueRepoSync:
    @pytest.mark.asyncio
    async def test_full_resync_flags_both_kinds_and_queues_both_jobs(self, uow_factory, session_factory, tracked_repo):
        await add_rows(
            session_factory,
            RepoSyncState(repo_id=tracked_repo.id, item_kind=ItemKind.issue, last_synced_at=WATERMARK),
        )

        async with uow_factory() as uow:
            result = await QueueRepoSyncUseCase(uow).execute(tracked_repo.id, user_id="user-1", full_resync=True)

        assert result.is_ok()
        assert [job.created for job in result.value] == [True, True]
        async with session_factory() as session:
            states = await SqlAlchemyRepoSyncStateRepository(session).list_for_repo(tracked_repo.id)
        assert {state.item_kind for state in states} == {ItemKind.issue, ItemKind.pull_request}
        assert all(state.needs_full_resync for state in states)

    @pytest.mark.asyncio
    async def test_unknown_repository(self, uow_factory):
        async with uow_factory() as uow:
            result = await QueueRepoSyncUseCase(uow).execute(999, full_resync=True)

        assert result.error.code == "REPOSITORY_NOT_FOUND"
