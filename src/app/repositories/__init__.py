from src.app.repositories.sync_job_repository import ISyncJobRepository
from src.app.repositories.tracked_repository_repository import ITrackedRepositoryRepository
from src.app.repositories.repo_sync_state_repository import IRepoSyncStateRepository
from src.app.repositories.synced_item_repository import ISyncedItemRepository

__all__ = [
    "ISyncJobRepository",
    "ITrackedRepositoryRepository",
    "IRepoSyncStateRepository",
    "ISyncedItemRepository",
]
