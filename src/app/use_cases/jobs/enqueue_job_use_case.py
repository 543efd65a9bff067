"""Enqueue Job Use Case

Queues a job for a tracked repository. Submitting the same (type, repo, args)
while an earlier copy is still pending or processing returns that copy.
"""
import logging
from typing import Iterable, Optional
from libs.result import Error, Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.jobs.dtos import EnqueueJobCommand, EnqueueJobResponse
from src.domain.enums import DEFAULT_JOB_PRIORITY, REFRESH_JOB_PRIORITY, JobType
from src.domain.sync_job import SyncJob

logger = logging.getLogger(__name__)

REFRESH_JOB_TYPES = (JobType.SINGLE_ISSUE_REFRESH.value, JobType.SINGLE_PR_REFRESH.value)


class EnqueueJobUseCase:
    def __init__(self, uow: UnitOfWork, job_types: Optional[Iterable[str]] = None):
        self.uow = uow
        self.job_types = set(job_types) if job_types is not None else {t.value for t in JobType}

    async def execute(self, command: EnqueueJobCommand) -> Result[EnqueueJobResponse]:
        """
        Queue a job

        Returns:
            Result[EnqueueJobResponse]: The queued (or already active) job;
            INVALID_JOB_TYPE or REPOSITORY_NOT_FOUND on bad input
        """
        if command.type not in self.job_types:
            return Return.err(
                Error(code="INVALID_JOB_TYPE", message=f"Unknown job type: {command.type}")
            )

        priority = command.priority
        if priority is None:
            priority = REFRESH_JOB_PRIORITY if command.type in REFRESH_JOB_TYPES else DEFAULT_JOB_PRIORITY

        async with self.uow:
            repository = await self.uow.repositories.get_by_id(command.repo_id)
            if not repository:
                return Return.err(
                    Error(code="REPOSITORY_NOT_FOUND", message=f"Repository {command.repo_id} not found")
                )
            full_name = repository.full_name

            job = SyncJob.new(
                command.type,
                command.repo_id,
                user_id=command.user_id,
                args=command.args,
                priority=priority,
            )
            job, created = await self.uow.sync_jobs.enqueue(job)
            await self.uow.commit()

        if created:
            logger.info(f"[EnqueueJob] Queued {job.type} job {job.id} for {full_name} (priority {job.priority})")
        else:
            logger.info(f"[EnqueueJob] {job.type} job {job.id} already {job.status.value} for {full_name}")

        return Return.ok(EnqueueJobResponse(job_id=job.id, status=job.status.value, created=created))
