"""SyncedItem and ItemComment Entities

Local mirror of remote issues / pull requests and their comment threads.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy import BigInteger, UniqueConstraint
from sqlalchemy import JSON as SQLJSON
from sqlmodel import Column, Field
from src.domain.base import BaseModel, generate_uuid
from src.domain.enums import ItemKind, ItemState


class SyncedItem(BaseModel, table=True):
    """
    SyncedItem Entity

    Upserted by external_id. sub_resource_fetched is set only once the item's
    comments were fetched and stored, independently of the parent upsert.
    """
    __tablename__ = "synced_items"

    id: str = Field(default_factory=generate_uuid, primary_key=True)
    external_id: int = Field(sa_column=Column(BigInteger, nullable=False, unique=True, index=True))

    repo_id: int = Field(foreign_key="tracked_repositories.id", index=True, nullable=False)
    kind: ItemKind = Field(nullable=False, index=True)
    number: int = Field(nullable=False)

    title: str = Field(default="", nullable=False)
    body: Optional[str] = Field(default=None)
    state: ItemState = Field(default=ItemState.open, nullable=False, index=True)
    labels: List[str] = Field(default_factory=list, sa_column=Column(SQLJSON))
    assignees: List[str] = Field(default_factory=list, sa_column=Column(SQLJSON))
    author_login: Optional[str] = Field(default=None)
    comments_count: int = Field(default=0, nullable=False)

    # Remote timestamps
    remote_created_at: Optional[datetime] = Field(default=None)
    remote_updated_at: Optional[datetime] = Field(default=None)
    closed_at: Optional[datetime] = Field(default=None)
    merged_at: Optional[datetime] = Field(default=None)

    sub_resource_fetched: bool = Field(default=False, nullable=False)
    synced_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)

    def is_stale_against(self, remote_updated_at: Optional[datetime]) -> bool:
        """True when the remote copy was updated after the stored one"""
        if remote_updated_at is None:
            return False
        if self.remote_updated_at is None:
            return True
        return remote_updated_at > self.remote_updated_at

    def needs_enrichment(self) -> bool:
        return not self.sub_resource_fetched


class ItemComment(BaseModel, table=True):
    __tablename__ = "item_comments"
    __table_args__ = (UniqueConstraint("item_id", "external_id", name="uq_item_comments_item_external"),)

    id: str = Field(default_factory=generate_uuid, primary_key=True)
    item_id: str = Field(foreign_key="synced_items.id", index=True, nullable=False)
    external_id: int = Field(sa_column=Column(BigInteger, nullable=False))

    author_login: Optional[str] = Field(default=None)
    body: Optional[str] = Field(default=None)
    remote_created_at: Optional[datetime] = Field(default=None)
