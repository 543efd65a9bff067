from enum import Enum


class JobStatus(str, Enum):
    """Lifecycle of a queued sync job"""
    pending = "pending"
    processing = "processing"
    completed = "completed"
    failed = "failed"


ACTIVE_JOB_STATUSES = (JobStatus.pending, JobStatus.processing)
TERMINAL_JOB_STATUSES = (JobStatus.completed, JobStatus.failed)


class JobType(str, Enum):
    """Job types handled by the built-in sync handlers"""
    ISSUE_FETCH = "issue-fetch"
    PR_FETCH = "pr-fetch"
    SINGLE_ISSUE_REFRESH = "single-issue-refresh"
    SINGLE_PR_REFRESH = "single-pr-refresh"


class ItemKind(str, Enum):
    """Kind of remote record mirrored locally"""
    issue = "issue"
    pull_request = "pull_request"


class ItemState(str, Enum):
    open = "open"
    closed = "closed"
    merged = "merged"


class RepoSyncStatus(str, Enum):
    """Coarse status shown next to a tracked repository"""
    idle = "idle"
    in_progress = "in_progress"
    completed = "completed"
    failed = "failed"


class FailureKind(str, Enum):
    """Classification of a failed remote call"""
    quota = "quota"
    abuse = "abuse"
    server_error = "server_error"
    null_response = "null_response"


# Default priorities: single-item refreshes jump ahead of bulk fetches
DEFAULT_JOB_PRIORITY = 50
REFRESH_JOB_PRIORITY = 100
