"""Tracked Repository Repository Interface"""
from abc import ABC, abstractmethod
from typing import Optional
from src.domain.tracked_repository import TrackedRepository
from src.domain.enums import RepoSyncStatus


class ITrackedRepositoryRepository(ABC):
    """Interface for TrackedRepository repository"""

    @abstractmethod
    async def create(self, repository: TrackedRepository) -> TrackedRepository:
        pass

    @abstractmethod
    async def get_by_id(self, repo_id: int) -> Optional[TrackedRepository]:
        pass

    @abstractmethod
    async def get_by_owner_and_name(self, owner: str, name: str) -> Optional[TrackedRepository]:
        pass

    @abstractmethod
    async def set_sync_status(self, repo_id: int, status: RepoSyncStatus) -> None:
        """Update the informational sync status; unknown IDs are ignored"""
        pass
