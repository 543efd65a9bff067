"""Request schemas for Sync API"""
from typing import Optional
from pydantic import BaseModel, Field


class QueueSyncRequest(BaseModel):
    """Request body for queueing a repository sync"""
    user_id: Optional[str] = Field(None, description="User the jobs are queued for")
    full_resync: bool = Field(False, description="Ignore stored watermarks and fetch everything again")


class RefreshItemRequest(BaseModel):
    """Request body for refreshing a single issue or pull request"""
    user_id: Optional[str] = Field(None, description="User the job is queued for")
