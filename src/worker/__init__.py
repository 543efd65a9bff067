"""Worker module - Background job processing for the sync service.

Contains background workers for:
- JobRunner: Claims queued sync jobs and runs them, one per repository
"""
from .job_runner import JobRunner, run_job_runner

__all__ = ["JobRunner", "run_job_runner"]
