"""Sync DTOs

Job argument models (validated by the job runner before dispatch) and the
reports returned by the sync use cases.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field
from src.domain.enums import ItemKind


class SyncJobArgs(BaseModel):
    """Arguments of issue-fetch / pr-fetch jobs (none beyond the job's repo)"""
    pass


class RefreshItemArgs(BaseModel):
    """Arguments of single-issue-refresh / single-pr-refresh jobs"""
    number: int = Field(..., gt=0, strict=True)


@dataclass
class SyncPassReport:
    """Outcome of one resumable sync pass"""
    repo_id: int
    kind: ItemKind
    full_sync: bool
    since: Optional[datetime] = None
    pages: int = 0
    fetched: int = 0
    new: int = 0
    updated: int = 0
    enriched: int = 0
    enrichment_failures: int = 0
    watermark: Optional[datetime] = None

    def summary(self) -> str:
        return (
            f"{self.pages} pages, {self.fetched} items ({self.new} new, {self.updated} updated), "
            f"{self.enriched} enriched, {self.enrichment_failures} enrichment failures"
        )


@dataclass
class RefreshItemReport:
    repo_id: int
    kind: ItemKind
    number: int
    item_id: str
    comments: int = 0
