"""RepoSyncState Entity

Per-repository, per-kind watermark for incremental syncs. Written only after a
fully successful pass.
"""
from datetime import datetime, timedelta
from typing import Optional
from sqlmodel import Field
from src.domain.base import BaseModel
from src.domain.enums import ItemKind


class RepoSyncState(BaseModel, table=True):
    """
    RepoSyncState Entity

    last_synced_at holds the wall-clock start of the last successful pass, so
    the next pass's since-filter leaves no gap behind a long-running pass.
    """
    __tablename__ = "repo_sync_states"

    repo_id: int = Field(foreign_key="tracked_repositories.id", primary_key=True)
    item_kind: ItemKind = Field(primary_key=True)

    last_synced_at: Optional[datetime] = Field(default=None)
    # Forces the next pass to ignore the watermark and fetch the full current set
    needs_full_resync: bool = Field(default=False, nullable=False)

    updated_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)

    def is_full_pass(self) -> bool:
        return self.needs_full_resync or self.last_synced_at is None

    def since(self, skew_buffer: timedelta) -> Optional[datetime]:
        """Lower bound for the next incremental fetch, None for a full pass"""
        if self.is_full_pass():
            return None
        return self.last_synced_at - skew_buffer

    def commit_watermark(self, pass_started_at: datetime) -> None:
        self.last_synced_at = pass_started_at
        self.needs_full_resync = False
        self.updated_at = datetime.utcnow()
