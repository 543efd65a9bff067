"""Sync API Routes

Endpoints that queue repository syncs and single-item refreshes. The work
itself is done by the job runner process.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, status
from src.api.error import ClientError
from src.api.schemas.sync_request import QueueSyncRequest, RefreshItemRequest
from src.app.services.unit_of_work import UnitOfWork
from src.depends import get_unit_of_work
from src.app.use_cases.jobs import (
    EnqueueJobCommand,
    EnqueueJobResponse,
    EnqueueJobUseCase,
    GetRepoSyncStatusUseCase,
    QueueRepoSyncUseCase,
    RepoSyncStatusDTO,
)
from src.domain.enums import JobType

router = APIRouter()


def raise_for_error(error):
    if error.code == "REPOSITORY_NOT_FOUND":
        raise ClientError(error, status_code=status.HTTP_404_NOT_FOUND)
    raise ClientError(error, status_code=status.HTTP_400_BAD_REQUEST)


@router.post(
    "/repos/{repo_id}/sync",
    response_model=List[EnqueueJobResponse],
    status_code=status.HTTP_202_ACCEPTED,
)
async def queue_repo_sync(
    repo_id: int,
    request: Optional[QueueSyncRequest] = None,
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Queue issue and pull request syncs for a repository

    Returns the queued jobs; jobs already pending or processing are returned
    as they are with created=false.
    """
    request = request or QueueSyncRequest()
    use_case = QueueRepoSyncUseCase(uow)
    result = await use_case.execute(repo_id, user_id=request.user_id, full_resync=request.full_resync)

    if result.is_err():
        raise_for_error(result.error)

    return result.value


async def _queue_refresh(job_type: str, repo_id: int, number: int, request: Optional[RefreshItemRequest], uow):
    request = request or RefreshItemRequest()
    use_case = EnqueueJobUseCase(uow)
    result = await use_case.execute(
        EnqueueJobCommand(type=job_type, repo_id=repo_id, user_id=request.user_id, args={"number": number})
    )

    if result.is_err():
        raise_for_error(result.error)

    return result.value


@router.post(
    "/repos/{repo_id}/issues/{number}/refresh",
    response_model=EnqueueJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def refresh_issue(
    repo_id: int,
    number: int,
    request: Optional[RefreshItemRequest] = None,
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    return await _queue_refresh(JobType.SINGLE_ISSUE_REFRESH.value, repo_id, number, request, uow)


@router.post(
    "/repos/{repo_id}/pulls/{number}/refresh",
    response_model=EnqueueJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def refresh_pull_request(
    repo_id: int,
    number: int,
    request: Optional[RefreshItemRequest] = None,
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    return await _queue_refresh(JobType.SINGLE_PR_REFRESH.value, repo_id, number, request, uow)


@router.get(
    "/repos/{repo_id}/sync-status",
    response_model=RepoSyncStatusDTO,
    status_code=status.HTTP_200_OK,
)
async def get_repo_sync_status(
    repo_id: int,
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """Current and last job of a repository plus its per-kind watermarks"""
    use_case = GetRepoSyncStatusUseCase(uow)
    result = await use_case.execute(repo_id)

    if result.is_err():
        raise_for_error(result.error)

    return result.value
