"""Get Queue Depth Use Case"""
from libs.result import Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.jobs.dtos import QueueDepthDTO
from src.domain.enums import JobStatus


class GetQueueDepthUseCase:
    def __init__(self, uow: UnitOfWork, max_concurrent: int):
        self.uow = uow
        self.max_concurrent = max_concurrent

    async def execute(self) -> Result[QueueDepthDTO]:
        async with self.uow:
            counts = await self.uow.sync_jobs.count_by_status()

        return Return.ok(
            QueueDepthDTO(
                pending_count=counts.get(JobStatus.pending, 0),
                processing_count=counts.get(JobStatus.processing, 0),
                completed_count=counts.get(JobStatus.completed, 0),
                failed_count=counts.get(JobStatus.failed, 0),
                max_concurrent=self.max_concurrent,
            )
        )
