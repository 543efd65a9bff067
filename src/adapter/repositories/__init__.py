from src.adapter.repositories.sync_job_repository import SqlAlchemySyncJobRepository
from src.adapter.repositories.tracked_repository_repository import SqlAlchemyTrackedRepositoryRepository
from src.adapter.repositories.repo_sync_state_repository import SqlAlchemyRepoSyncStateRepository
from src.adapter.repositories.synced_item_repository import SqlAlchemySyncedItemRepository

__all__ = [
    "SqlAlchemySyncJobRepository",
    "SqlAlchemyTrackedRepositoryRepository",
    "SqlAlchemyRepoSyncStateRepository",
    "SqlAlchemySyncedItemRepository",
]
