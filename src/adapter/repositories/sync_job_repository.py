"""SQLAlchemy Sync Job Repository

Job store backing the job runner. Claims are a guarded UPDATE so a row only
moves pending -> processing once, even with several runner tasks polling.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple
from sqlalchemy import delete, func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.sync_job_repository import ISyncJobRepository
from src.domain.sync_job import SyncJob
from src.domain.enums import ACTIVE_JOB_STATUSES, TERMINAL_JOB_STATUSES, JobStatus

logger = logging.getLogger(__name__)

ORPHANED_JOB_MESSAGE = "Interrupted by process restart"


class SqlAlchemySyncJobRepository(ISyncJobRepository):
    """SQLAlchemy implementation of SyncJob repository"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def enqueue(self, job: SyncJob) -> Tuple[SyncJob, bool]:
        existing = await self.get_active_by_key(job.job_key)
        if existing:
            return existing, False

        self.session.add(job)
        try:
            await self.session.flush()
        except IntegrityError:
            # Lost the race against a concurrent submission of the same key
            await self.session.rollback()
            existing = await self.get_active_by_key(job.job_key)
            if existing is None:
                raise
            logger.info(f"[JobStore] Duplicate enqueue for key {job.job_key[:12]} resolved to job {existing.id}")
            return existing, False

        await self.session.refresh(job)
        return job, True

    async def get_by_id(self, job_id: str) -> Optional[SyncJob]:
        stmt = select(SyncJob).where(SyncJob.id == job_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_active_by_key(self, job_key: str) -> Optional[SyncJob]:
        stmt = select(SyncJob).where(
            SyncJob.job_key == job_key,
            SyncJob.status.in_(ACTIVE_JOB_STATUSES),
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def claim_next(self, excluded_repo_ids: Set[int]) -> Optional[SyncJob]:
        stmt = select(SyncJob).where(SyncJob.status == JobStatus.pending)
        if excluded_repo_ids:
            stmt = stmt.where(SyncJob.repo_id.not_in(list(excluded_repo_ids)))
        stmt = (
            stmt.order_by(SyncJob.priority.desc(), SyncJob.created_at.asc())
            .limit(1)
            .with_for_update(skip_locked=True)
        )
        result = await self.session.execute(stmt)
        candidate = result.scalar_one_or_none()
        if candidate is None:
            return None

        claim = (
            update(SyncJob)
            .where(SyncJob.id == candidate.id, SyncJob.status == JobStatus.pending)
            .values(status=JobStatus.processing, started_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        claimed = await self.session.execute(claim)
        if claimed.rowcount != 1:
            return None

        await self.session.refresh(candidate)
        return candidate

    async def mark_completed(self, job_id: str) -> None:
        job = await self.get_by_id(job_id)
        if job is None:
            logger.warning(f"[JobStore] Cannot complete unknown job {job_id}")
            return
        job.complete()
        self.session.add(job)
        await self.session.flush()

    async def mark_failed(self, job_id: str, error_message: str) -> None:
        job = await self.get_by_id(job_id)
        if job is None:
            logger.warning(f"[JobStore] Cannot fail unknown job {job_id}")
            return
        job.fail(error_message)
        self.session.add(job)
        await self.session.flush()

    async def reap_orphans(self) -> List[SyncJob]:
        stmt = select(SyncJob).where(SyncJob.status == JobStatus.processing)
        result = await self.session.execute(stmt)
        orphans = list(result.scalars().all())
        for job in orphans:
            job.fail(ORPHANED_JOB_MESSAGE)
            self.session.add(job)
        await self.session.flush()
        return orphans

    async def purge_expired(self, older_than: datetime) -> int:
        stmt = (
            delete(SyncJob)
            .where(
                SyncJob.status.in_(TERMINAL_JOB_STATUSES),
                SyncJob.completed_at < older_than,
            )
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def get_processing_repo_ids(self) -> Set[int]:
        stmt = select(SyncJob.repo_id).where(SyncJob.status == JobStatus.processing).distinct()
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def get_active_for_repo(self, repo_id: int) -> Optional[SyncJob]:
        stmt = select(SyncJob).where(SyncJob.repo_id == repo_id, SyncJob.status == JobStatus.processing)
        result = await self.session.execute(stmt)
        job = result.scalars().first()
        if job:
            return job

        stmt = (
            select(SyncJob)
            .where(SyncJob.repo_id == repo_id, SyncJob.status == JobStatus.pending)
            .order_by(SyncJob.priority.desc(), SyncJob.created_at.asc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_latest_for_repo(self, repo_id: int) -> Optional[SyncJob]:
        stmt = (
            select(SyncJob)
            .where(SyncJob.repo_id == repo_id, SyncJob.status.in_(TERMINAL_JOB_STATUSES))
            .order_by(SyncJob.completed_at.desc())
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def count_by_status(self) -> Dict[JobStatus, int]:
        stmt = select(SyncJob.status, func.count(SyncJob.id)).group_by(SyncJob.status)
        result = await self.session.execute(stmt)
        counts = {status: 0 for status in JobStatus}
        for status, count in result.all():
            counts[JobStatus(status)] = count
        return counts
