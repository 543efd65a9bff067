"""Get Repo Sync Status Use Case"""
from typing import Optional
from libs.result import Error, Result, Return
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.jobs.dtos import RepoSyncStatusDTO, SyncJobDTO, WatermarkDTO
from src.domain.sync_job import SyncJob


def to_job_dto(job: Optional[SyncJob]) -> Optional[SyncJobDTO]:
    if job is None:
        return None
    return SyncJobDTO(
        id=job.id,
        type=job.type,
        status=job.status.value,
        priority=job.priority,
        args=job.args or {},
        last_error=job.last_error,
        created_at=job.created_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
    )


class GetRepoSyncStatusUseCase:
    def __init__(self, uow: UnitOfWork):
        self.uow = uow

    async def execute(self, repo_id: int) -> Result[RepoSyncStatusDTO]:
        async with self.uow:
            repository = await self.uow.repositories.get_by_id(repo_id)
            if not repository:
                return Return.err(Error(code="REPOSITORY_NOT_FOUND", message=f"Repository {repo_id} not found"))

            current_job = await self.uow.sync_jobs.get_active_for_repo(repo_id)
            last_job = await self.uow.sync_jobs.get_latest_for_repo(repo_id)
            states = await self.uow.sync_states.list_for_repo(repo_id)

            # Map before leaving the block; the rollback on exit expires loaded rows
            status = RepoSyncStatusDTO(
                repo_id=repository.id,
                full_name=repository.full_name,
                sync_status=repository.sync_status.value,
                current_job=to_job_dto(current_job),
                last_job=to_job_dto(last_job),
                watermarks=[
                    WatermarkDTO(
                        item_kind=state.item_kind.value,
                        last_synced_at=state.last_synced_at,
                        needs_full_resync=state.needs_full_resync,
                    )
                    for state in states
                ],
            )

        return Return.ok(status)
