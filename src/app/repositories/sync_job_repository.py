"""Sync Job Repository Interface

Durable job store used by the job runner and the enqueue / status use cases.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, List, Optional, Set, Tuple
from src.domain.sync_job import SyncJob
from src.domain.enums import JobStatus


class ISyncJobRepository(ABC):
    """Interface for SyncJob repository"""

    @abstractmethod
    async def enqueue(self, job: SyncJob) -> Tuple[SyncJob, bool]:
        """
        Insert a pending job unless an identical one is already active.

        Args:
            job: Pending SyncJob with its job_key set

        Returns:
            Tuple[SyncJob, bool]: The stored job and whether it was newly created.
            A duplicate submission returns the existing pending/processing job.
        """
        pass

    @abstractmethod
    async def get_by_id(self, job_id: str) -> Optional[SyncJob]:
        """Get a job by ID"""
        pass

    @abstractmethod
    async def get_active_by_key(self, job_key: str) -> Optional[SyncJob]:
        """Get the pending/processing job for an idempotency key"""
        pass

    @abstractmethod
    async def claim_next(self, excluded_repo_ids: Set[int]) -> Optional[SyncJob]:
        """
        Atomically claim the next runnable job.

        Selects the pending job with the highest priority (earliest created_at
        on ties) whose repo_id is not excluded and flips it to processing with
        started_at = now.

        Args:
            excluded_repo_ids: Repositories that already have a job in flight

        Returns:
            Optional[SyncJob]: The claimed job, None when nothing is runnable
        """
        pass

    @abstractmethod
    async def mark_completed(self, job_id: str) -> None:
        """Terminal transition to completed"""
        pass

    @abstractmethod
    async def mark_failed(self, job_id: str, error_message: str) -> None:
        """Terminal transition to failed; the job is not requeued"""
        pass

    @abstractmethod
    async def reap_orphans(self) -> List[SyncJob]:
        """
        Fail every job still marked processing.

        Only valid at startup, before this process claims anything: those rows
        belong to a dead prior process.

        Returns:
            List[SyncJob]: The reaped jobs
        """
        pass

    @abstractmethod
    async def purge_expired(self, older_than: datetime) -> int:
        """Delete completed/failed jobs finished before the cutoff; returns the count"""
        pass

    @abstractmethod
    async def get_processing_repo_ids(self) -> Set[int]:
        """Repository IDs with a job currently processing"""
        pass

    @abstractmethod
    async def get_active_for_repo(self, repo_id: int) -> Optional[SyncJob]:
        """The processing job for a repository, else its next pending job"""
        pass

    @abstractmethod
    async def get_latest_for_repo(self, repo_id: int) -> Optional[SyncJob]:
        """Most recently finished (completed or failed) job for a repository"""
        pass

    @abstractmethod
    async def count_by_status(self) -> Dict[JobStatus, int]:
        """Number of jobs per status"""
        pass
