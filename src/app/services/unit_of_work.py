from abc import ABC, abstractmethod
from src.app.repositories.sync_job_repository import ISyncJobRepository
from src.app.repositories.tracked_repository_repository import ITrackedRepositoryRepository
from src.app.repositories.repo_sync_state_repository import IRepoSyncStateRepository
from src.app.repositories.synced_item_repository import ISyncedItemRepository


class UnitOfWork(ABC):
    """
    Transaction boundary shared by the repositories of one session.

    Leaving the context without commit() rolls back whatever was flushed.
    """
    sync_jobs: ISyncJobRepository
    repositories: ITrackedRepositoryRepository
    sync_states: IRepoSyncStateRepository
    items: ISyncedItemRepository

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.rollback()

    @abstractmethod
    async def commit(self):
        pass

    @abstractmethod
    async def rollback(self):
        pass
