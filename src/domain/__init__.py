from src.domain.base import BaseModel, generate_uuid
from src.domain.enums import (
    JobStatus,
    JobType,
    ItemKind,
    ItemState,
    RepoSyncStatus,
    FailureKind,
    ACTIVE_JOB_STATUSES,
    TERMINAL_JOB_STATUSES,
    DEFAULT_JOB_PRIORITY,
    REFRESH_JOB_PRIORITY,
)
from src.domain.tracked_repository import TrackedRepository
from src.domain.sync_job import SyncJob, build_job_key
from src.domain.repo_sync_state import RepoSyncState
from src.domain.synced_item import SyncedItem, ItemComment

__all__ = [
    # Base
    "BaseModel",
    "generate_uuid",
    # Enums
    "JobStatus",
    "JobType",
    "ItemKind",
    "ItemState",
    "RepoSyncStatus",
    "FailureKind",
    "ACTIVE_JOB_STATUSES",
    "TERMINAL_JOB_STATUSES",
    "DEFAULT_JOB_PRIORITY",
    "REFRESH_JOB_PRIORITY",
    # Entities
    "TrackedRepository",
    "SyncJob",
    "build_job_key",
    "RepoSyncState",
    "SyncedItem",
    "ItemComment",
]
