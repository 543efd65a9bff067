"""Sync Items Use Case

Resumable pass over one repository's issues or pull requests.

Initializing -> Paging <-> PerItemEnrichment -> Committing, or Aborted.

Every page is upserted and committed before its items are enriched, and the
watermark is written only after the last page, so a crash or an aborted pass
simply reruns from the previous watermark. Replaying already-stored pages is
harmless because upserts are keyed by external ID.
"""
import logging
from datetime import datetime, timedelta
from functools import partial
from typing import Callable, List, Optional, Set
from libs.result import Error, Result, Return
from src.app.services.rate_limit import CallError, RateAwareCaller
from src.app.services.remote_api_client import IRemoteApiClient, RepoRef
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.sync.dtos import SyncPassReport
from src.domain.enums import ItemKind
from src.domain.sync_job import SyncJob
from src.domain.synced_item import SyncedItem

logger = logging.getLogger(__name__)


class SyncItemsUseCase:
    """
    Use case: Sync one kind of item for a tracked repository

    1. Resolve the watermark (full pass or since = watermark - skew buffer)
    2. Page through the remote API, committing each page
    3. Fetch comments for new, updated or never-enriched items, including
       ones an earlier pass failed to enrich
    4. Advance the watermark to the pass start time
    """

    def __init__(
        self,
        uow: UnitOfWork,
        remote_client: IRemoteApiClient,
        caller: RateAwareCaller,
        skew_buffer: timedelta = timedelta(seconds=60),
        follow_on_job_type: Optional[str] = None,
        now: Callable[[], datetime] = datetime.utcnow,
    ):
        self.uow = uow
        self.remote_client = remote_client
        self.caller = caller
        self.skew_buffer = skew_buffer
        self.follow_on_job_type = follow_on_job_type
        self._now = now

    async def execute(self, repo_id: int, kind: ItemKind, user_id: Optional[str] = None) -> Result[SyncPassReport]:
        """
        Run one sync pass

        Args:
            repo_id: Tracked repository ID
            kind: Issues or pull requests
            user_id: Owner of the job, forwarded to the follow-on job

        Returns:
            Result[SyncPassReport]: Report on success, SYNC_ABORTED when the
            remote kept throttling, REMOTE_FETCH_FAILED when a page could not
            be fetched for any other reason
        """
        # Initializing
        pass_started_at = self._now()

        async with self.uow:
            repository = await self.uow.repositories.get_by_id(repo_id)
            if not repository:
                return Return.err(Error(code="REPOSITORY_NOT_FOUND", message=f"Repository {repo_id} not found"))

            state = await self.uow.sync_states.get_or_create(repo_id, kind)
            await self.uow.commit()

        repo = RepoRef(repo_id=repository.id, owner=repository.owner, name=repository.name)
        full_sync = state.is_full_pass()
        since = state.since(self.skew_buffer)
        report = SyncPassReport(repo_id=repo_id, kind=kind, full_sync=full_sync, since=since)

        if full_sync:
            logger.info(f"[SyncItems] {repo.full_name} starting full {kind.value} sync")
        else:
            logger.info(f"[SyncItems] {repo.full_name} starting incremental {kind.value} sync since {since.isoformat()}")

        # Paging
        attempted = set()
        cursor = None
        while True:
            result = await self.caller.call(
                partial(
                    self.remote_client.fetch_page,
                    repo,
                    kind,
                    cursor=cursor,
                    since=since,
                    include_closed=not full_sync,
                ),
                context=f"{repo.full_name} {kind.value} page {report.pages + 1}",
            )
            if result.is_err():
                return self._abort(repo, report, result.error, "REMOTE_FETCH_FAILED")

            page = result.value
            report.pages += 1
            report.fetched += len(page.items)
            needs_enrichment = await self._store_page(repo_id, kind, page.items, report)

            logger.info(
                f"[SyncItems] {repo.full_name} page {report.pages}: {len(page.items)} {kind.value}s stored, "
                f"{len(needs_enrichment)} need comments"
            )

            # PerItemEnrichment
            aborted = await self._enrich(repo, kind, needs_enrichment, report, attempted)
            if aborted:
                return aborted

            if page.next_cursor is None:
                break
            cursor = page.next_cursor

        # Items left unenriched by earlier passes that this pass's pages did not cover
        async with self.uow:
            leftovers = [
                item for item in await self.uow.items.list_unenriched(repo_id, kind) if item.id not in attempted
            ]
            await self.uow.commit()
        if leftovers:
            logger.info(f"[SyncItems] {repo.full_name} retrying comments for {len(leftovers)} earlier {kind.value}s")
            aborted = await self._enrich(repo, kind, leftovers, report, attempted)
            if aborted:
                return aborted

        # Committing
        async with self.uow:
            state = await self.uow.sync_states.get_or_create(repo_id, kind)
            state.commit_watermark(pass_started_at)
            await self.uow.sync_states.update(state)
            await self.uow.commit()
        report.watermark = pass_started_at

        logger.info(f"[SyncItems] {repo.full_name} {kind.value} sync complete: {report.summary()}")

        if kind == ItemKind.issue and self.follow_on_job_type:
            await self._enqueue_follow_on(repo_id, user_id)

        return Return.ok(report)

    async def _store_page(self, repo_id: int, kind: ItemKind, remote_items, report: SyncPassReport) -> List[SyncedItem]:
        """Upsert one page in a single transaction; returns the items still lacking comments"""
        needs_enrichment = []
        async with self.uow:
            for remote in remote_items:
                existing = await self.uow.items.get_by_external_id(remote.external_id)
                if existing is None:
                    report.new += 1
                elif existing.is_stale_against(remote.updated_at):
                    report.updated += 1

                item = await self.uow.items.upsert(repo_id, kind, remote)
                if item.needs_enrichment():
                    needs_enrichment.append(item)
            await self.uow.commit()
        return needs_enrichment

    async def _enrich(
        self, repo: RepoRef, kind: ItemKind, items: List[SyncedItem], report: SyncPassReport, attempted: Set[str]
    ) -> Optional[Result]:
        """Fetch and store comments; returns an Err only when the pass must abort"""
        for item in items:
            attempted.add(item.id)
            if item.comments_count == 0:
                await self._store_comments(item, [])
                report.enriched += 1
                continue

            result = await self.caller.call(
                partial(self.remote_client.fetch_subresource, repo, kind, item.number),
                context=f"{repo.full_name} #{item.number} comments",
            )
            if result.is_err():
                if result.error.retryable:
                    return self._abort(repo, report, result.error, "SYNC_ABORTED")
                # Flag stays unset so the next pass picks the item up again
                report.enrichment_failures += 1
                logger.warning(
                    f"[SyncItems] {repo.full_name} #{item.number} comment fetch failed, "
                    f"continuing: {result.error.message}"
                )
                continue

            await self._store_comments(item, result.value)
            report.enriched += 1
        return None

    async def _store_comments(self, item: SyncedItem, comments) -> None:
        async with self.uow:
            await self.uow.items.replace_comments(item.id, comments)
            await self.uow.items.mark_sub_resource_fetched(item.id)
            await self.uow.commit()

    def _abort(self, repo: RepoRef, report: SyncPassReport, error: CallError, fatal_code: str) -> Result:
        code = "SYNC_ABORTED" if error.retryable else fatal_code
        logger.error(
            f"[SyncItems] {repo.full_name} {report.kind.value} sync aborted after {report.pages} pages, "
            f"watermark unchanged: {error.message}"
        )
        return Return.err(Error(code=code, message=error.message, reason=error.code))

    async def _enqueue_follow_on(self, repo_id: int, user_id: Optional[str]) -> None:
        try:
            async with self.uow:
                job, created = await self.uow.sync_jobs.enqueue(
                    SyncJob.new(self.follow_on_job_type, repo_id, user_id=user_id)
                )
                await self.uow.commit()
            if created:
                logger.info(f"[SyncItems] Queued {self.follow_on_job_type} job {job.id} for repository {repo_id}")
        except Exception as e:
            logger.warning(f"[SyncItems] Could not queue {self.follow_on_job_type} job for repository {repo_id}: {e}")
