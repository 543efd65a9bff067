"""Job API Routes"""
from typing import Set
from fastapi import APIRouter, Depends, status
from src.api.error import ClientError
from src.app.services.unit_of_work import UnitOfWork
from src.depends import get_job_types, get_unit_of_work
from src.app.use_cases.jobs import (
    EnqueueJobCommand,
    EnqueueJobResponse,
    EnqueueJobUseCase,
    GetQueueDepthUseCase,
    QueueDepthDTO,
)
from config import ApplicationConfig

router = APIRouter()


@router.post("/jobs", response_model=EnqueueJobResponse, status_code=status.HTTP_202_ACCEPTED)
async def enqueue_job(
    command: EnqueueJobCommand,
    job_types: Set[str] = Depends(get_job_types),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Queue a job of any known type

    Duplicate submissions of an active job return that job with created=false.
    """
    use_case = EnqueueJobUseCase(uow, job_types=job_types)
    result = await use_case.execute(command)

    if result.is_err():
        if result.error.code == "REPOSITORY_NOT_FOUND":
            raise ClientError(result.error, status_code=status.HTTP_404_NOT_FOUND)
        raise ClientError(result.error, status_code=status.HTTP_400_BAD_REQUEST)

    return result.value


@router.get("/jobs/queue-depth", response_model=QueueDepthDTO, status_code=status.HTTP_200_OK)
async def get_queue_depth(uow: UnitOfWork = Depends(get_unit_of_work)):
    use_case = GetQueueDepthUseCase(uow, max_concurrent=ApplicationConfig.MAX_CONCURRENT_JOBS)
    result = await use_case.execute()

    if result.is_err():
        raise ClientError(result.error, status_code=status.HTTP_400_BAD_REQUEST)

    return result.value
