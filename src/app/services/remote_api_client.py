"""Remote API Client Interface

Abstract interface for the remote tracking API. The sync engine only needs to
fetch a page of items given a cursor and an optional since-watermark, and to
fetch the comments of one item; query construction lives in the adapter.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional
from src.domain.enums import ItemKind, ItemState


class RemoteApiError(Exception):
    """
    Raised by remote API adapters for any failed call.

    Carries the raw signals needed to classify the failure: HTTP status code,
    message text, GraphQL error entries, an empty success-shaped payload
    (null_response) or a transport-level failure (timeout, connection reset).
    """
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        null_response: bool = False,
        transport_error: bool = False,
    ):
        self.message = message
        self.status_code = status_code
        self.errors = errors or []
        self.null_response = null_response
        self.transport_error = transport_error
        super().__init__(message)


@dataclass(frozen=True)
class RepoRef:
    """Identifies the remote repository behind a tracked repository row"""
    repo_id: int
    owner: str
    name: str

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


@dataclass
class RemoteComment:
    external_id: int
    author_login: Optional[str]
    body: Optional[str]
    created_at: Optional[datetime]


@dataclass
class RemoteItem:
    """Issue or pull request as reported by the remote API"""
    external_id: int
    number: int
    title: str
    state: ItemState
    updated_at: Optional[datetime]
    body: Optional[str] = None
    created_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    merged_at: Optional[datetime] = None
    author_login: Optional[str] = None
    labels: List[str] = field(default_factory=list)
    assignees: List[str] = field(default_factory=list)
    comments_count: int = 0


@dataclass
class RemotePage:
    items: List[RemoteItem]
    next_cursor: Optional[str] = None


class IRemoteApiClient(ABC):
    """Interface for the remote tracking API"""

    @abstractmethod
    async def fetch_page(
        self,
        repo: RepoRef,
        kind: ItemKind,
        cursor: Optional[str] = None,
        since: Optional[datetime] = None,
        include_closed: bool = False,
    ) -> RemotePage:
        """
        Fetch one page of items.

        Args:
            repo: Remote repository
            kind: Issues or pull requests
            cursor: Opaque position token from the previous page, None for the first
            since: Only items updated at or after this instant, None for all
            include_closed: Also return closed (and merged) items

        Returns:
            RemotePage with items and the next cursor (None on the last page)

        Raises:
            RemoteApiError: On any failed call
        """
        pass

    @abstractmethod
    async def fetch_subresource(
        self, repo: RepoRef, kind: ItemKind, number: int
    ) -> List[RemoteComment]:
        """
        Fetch the comment thread of one item.

        Raises:
            RemoteApiError: On any failed call
        """
        pass

    @abstractmethod
    async def fetch_item(self, repo: RepoRef, kind: ItemKind, number: int) -> RemoteItem:
        """
        Fetch a single item by number.

        Raises:
            RemoteApiError: On any failed call, including an unknown number
        """
        pass
