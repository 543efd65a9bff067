"""Synced Item Repository Interface

Idempotent storage of remote items and their comment threads.
"""
from abc import ABC, abstractmethod
from typing import List, Optional
from src.app.services.remote_api_client import RemoteComment, RemoteItem
from src.domain.synced_item import ItemComment, SyncedItem
from src.domain.enums import ItemKind


class ISyncedItemRepository(ABC):
    """Interface for SyncedItem repository"""

    @abstractmethod
    async def get_by_external_id(self, external_id: int) -> Optional[SyncedItem]:
        pass

    @abstractmethod
    async def get_by_number(self, repo_id: int, kind: ItemKind, number: int) -> Optional[SyncedItem]:
        pass

    @abstractmethod
    async def upsert(self, repo_id: int, kind: ItemKind, remote: RemoteItem) -> SyncedItem:
        """
        Insert or update an item keyed by its external ID.

        Safe to repeat with identical input. When the remote copy is newer than
        the stored one, sub_resource_fetched is cleared so the item's comments
        are fetched again.

        Returns:
            SyncedItem: The stored row
        """
        pass

    @abstractmethod
    async def replace_comments(self, item_id: str, comments: List[RemoteComment]) -> int:
        """Replace the item's whole comment set; returns the number stored"""
        pass

    @abstractmethod
    async def mark_sub_resource_fetched(self, item_id: str) -> None:
        pass

    @abstractmethod
    async def list_for_repo(self, repo_id: int, kind: Optional[ItemKind] = None) -> List[SyncedItem]:
        pass

    @abstractmethod
    async def list_unenriched(self, repo_id: int, kind: ItemKind) -> List[SyncedItem]:
        """Items whose comments have not been stored yet"""
        pass

    @abstractmethod
    async def list_comments(self, item_id: str) -> List[ItemComment]:
        pass
