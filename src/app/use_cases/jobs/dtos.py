"""Job DTOs"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class EnqueueJobCommand(BaseModel):
    """Request DTO for queueing a job"""
    type: str
    repo_id: int
    user_id: Optional[str] = None
    args: Dict[str, Any] = Field(default_factory=dict)
    priority: Optional[int] = None


class EnqueueJobResponse(BaseModel):
    job_id: str
    status: str
    created: bool


class SyncJobDTO(BaseModel):
    """Job as shown to API clients; last_error is a single line, never a traceback"""
    id: str
    type: str
    status: str
    priority: int
    args: Dict[str, Any] = Field(default_factory=dict)
    last_error: Optional[str] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class WatermarkDTO(BaseModel):
    item_kind: str
    last_synced_at: Optional[datetime] = None
    needs_full_resync: bool = False


class RepoSyncStatusDTO(BaseModel):
    repo_id: int
    full_name: str
    sync_status: str
    current_job: Optional[SyncJobDTO] = None
    last_job: Optional[SyncJobDTO] = None
    watermarks: List[WatermarkDTO] = Field(default_factory=list)


class QueueDepthDTO(BaseModel):
    pending_count: int
    processing_count: int
    completed_count: int
    failed_count: int
    max_concurrent: int
