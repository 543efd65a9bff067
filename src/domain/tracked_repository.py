"""TrackedRepository Entity

A remote repository whose issues and pull requests are mirrored locally.
"""
from datetime import datetime
from typing import Optional
from sqlalchemy import UniqueConstraint
from sqlmodel import Field
from src.domain.base import BaseModel
from src.domain.enums import RepoSyncStatus


class TrackedRepository(BaseModel, table=True):
    __tablename__ = "tracked_repositories"
    __table_args__ = (UniqueConstraint("owner", "name", name="uq_tracked_repositories_owner_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    owner: str = Field(nullable=False)
    name: str = Field(nullable=False)

    sync_status: RepoSyncStatus = Field(default=RepoSyncStatus.idle, nullable=False)

    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    def set_sync_status(self, status: RepoSyncStatus) -> None:
        self.sync_status = status
        self.updated_at = datetime.utcnow()
