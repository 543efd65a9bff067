"""Job Use Cases"""
from .dtos import (
    EnqueueJobCommand,
    EnqueueJobResponse,
    SyncJobDTO,
    WatermarkDTO,
    RepoSyncStatusDTO,
    QueueDepthDTO,
)
from .enqueue_job_use_case import EnqueueJobUseCase
from .get_repo_sync_status_use_case import GetRepoSyncStatusUseCase
from .get_queue_depth_use_case import GetQueueDepthUseCase
from .queue_repo_sync_use_case import QueueRepoSyncUseCase

__all__ = [
    # DTOs
    "EnqueueJobCommand",
    "EnqueueJobResponse",
    "SyncJobDTO",
    "WatermarkDTO",
    "RepoSyncStatusDTO",
    "QueueDepthDTO",
    # Use Cases
    "EnqueueJobUseCase",
    "GetRepoSyncStatusUseCase",
    "GetQueueDepthUseCase",
    "QueueRepoSyncUseCase",
]
