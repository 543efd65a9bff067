"""Queue Repo Sync Use Case

Queues the issue and pull request syncs of one repository, optionally
discarding its watermarks first so the next passes are full syncs.
"""
import logging
from typing import List, Optional
from libs.result import Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.jobs.dtos import EnqueueJobCommand, EnqueueJobResponse
from src.app.use_cases.jobs.enqueue_job_use_case import EnqueueJobUseCase
from src.domain.enums import JobType

logger = logging.getLogger(__name__)

SYNC_JOB_TYPES = (JobType.ISSUE_FETCH.value, JobType.PR_FETCH.value)


class QueueRepoSyncUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(
        self, repo_id: int, user_id: Optional[str] = None, full_resync: bool = False
    ) -> Result[List[EnqueueJobResponse]]:
        if full_resync:
            async with self.uow:
                repository = await self.uow.repositories.get_by_id(repo_id)
                if repository:
                    await self.uow.sync_states.request_full_resync(repo_id)
                    await self.uow.commit()
                    logger.info(f"[QueueRepoSync] Full resync requested for {repository.full_name}")

        enqueue = EnqueueJobUseCase(self.uow)
        queued = []
        for job_type in SYNC_JOB_TYPES:
            result = await enqueue.execute(EnqueueJobCommand(type=job_type, repo_id=repo_id, user_id=user_id))
            if result.is_err():
                return result
            queued.append(result.value)

        return Return.ok(queued)
