"""Repo Sync State Repository Interface

Watermark storage for the resumable sync handler.
"""
from abc import ABC, abstractmethod
from typing import List, Optional
from src.domain.repo_sync_state import RepoSyncState
from src.domain.enums import ItemKind


class IRepoSyncStateRepository(ABC):
    """Interface for RepoSyncState repository"""

    @abstractmethod
    async def get(self, repo_id: int, kind: ItemKind) -> Optional[RepoSyncState]:
        """Get the watermark row for a repository and item kind"""
        pass

    @abstractmethod
    async def get_or_create(self, repo_id: int, kind: ItemKind) -> RepoSyncState:
        """Get the watermark row, creating an empty one (full pass pending) if missing"""
        pass

    @abstractmethod
    async def list_for_repo(self, repo_id: int) -> List[RepoSyncState]:
        pass

    @abstractmethod
    async def update(self, state: RepoSyncState) -> RepoSyncState:
        pass

    @abstractmethod
    async def request_full_resync(self, repo_id: int) -> None:
        """Set needs_full_resync on every kind of the repository"""
        pass
