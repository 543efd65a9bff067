"""SyncJob Entity

Durable work item processed by the job runner. One row per queued fetch or
refresh; the partial unique index keeps at most one active row per job key.
"""
import hashlib
import json
from datetime import datetime
from typing import Any, Dict, Optional
from sqlalchemy import Index, text
from sqlalchemy import JSON as SQLJSON
from sqlmodel import Column, Field
from src.domain.base import BaseModel, generate_uuid
from src.domain.enums import JobStatus, DEFAULT_JOB_PRIORITY

ACTIVE_STATUS_CLAUSE = "status IN ('pending', 'processing')"


def build_job_key(job_type: str, repo_id: int, args: Optional[Dict[str, Any]] = None) -> str:
    """Idempotency key for (type, repo, args); args are compared canonically."""
    canonical_args = json.dumps(args or {}, sort_keys=True, separators=(",", ":"))
    raw = f"{job_type}:{repo_id}:{canonical_args}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class SyncJob(BaseModel, table=True):
    """
    SyncJob Entity

    pending -> processing -> completed | failed. Only the job runner moves a
    job forward; failed jobs are never requeued automatically.
    """
    __tablename__ = "sync_jobs"
    __table_args__ = (
        Index(
            "uq_sync_jobs_active_job_key",
            "job_key",
            unique=True,
            postgresql_where=text(ACTIVE_STATUS_CLAUSE),
            sqlite_where=text(ACTIVE_STATUS_CLAUSE),
        ),
        Index("ix_sync_jobs_claim_order", "status", "priority", "created_at"),
    )

    id: str = Field(default_factory=generate_uuid, primary_key=True)
    job_key: str = Field(nullable=False, index=True)

    # What to run and against which repository
    type: str = Field(nullable=False, index=True)
    repo_id: int = Field(foreign_key="tracked_repositories.id", index=True, nullable=False)
    user_id: Optional[str] = Field(default=None, index=True)
    args: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(SQLJSON))

    status: JobStatus = Field(default=JobStatus.pending, nullable=False, index=True)
    priority: int = Field(default=DEFAULT_JOB_PRIORITY, nullable=False)

    last_error: Optional[str] = Field(default=None)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow, nullable=False)
    started_at: Optional[datetime] = Field(default=None)
    completed_at: Optional[datetime] = Field(default=None)

    @classmethod
    def new(
        cls,
        job_type: str,
        repo_id: int,
        user_id: Optional[str] = None,
        args: Optional[Dict[str, Any]] = None,
        priority: int = DEFAULT_JOB_PRIORITY,
    ) -> "SyncJob":
        """Build a pending job with its idempotency key filled in"""
        args = dict(args or {})
        return cls(
            job_key=build_job_key(job_type, repo_id, args),
            type=job_type,
            repo_id=repo_id,
            user_id=user_id,
            args=args,
            priority=priority,
        )

    # Business logic methods

    def start_processing(self) -> None:
        self.status = JobStatus.processing
        self.started_at = datetime.utcnow()

    def complete(self) -> None:
        self.status = JobStatus.completed
        self.completed_at = datetime.utcnow()
        self.last_error = None

    def fail(self, error_message: str) -> None:
        self.status = JobStatus.failed
        self.last_error = error_message
        self.completed_at = datetime.utcnow()

    def is_active(self) -> bool:
        return self.status in (JobStatus.pending, JobStatus.processing)
