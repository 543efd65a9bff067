"""Job Runner

Background worker that claims sync jobs from the durable job store and runs
them as asyncio tasks, at most one per repository and at most
max_concurrent at a time.
"""
import asyncio
import logging
from datetime import datetime, timedelta
from typing import AsyncContextManager, Callable, Dict, List, Optional
from sqlmodel.ext.asyncio.session import AsyncSession
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from config import ApplicationConfig
from src.adapter.services.github_graphql_client import GitHubGraphQLClient
from src.adapter.services.unit_of_work import unit_of_work_scope
from src.app.services.job_handlers import (
    JobHandler,
    JobValidationError,
    UnknownJobTypeError,
    build_default_handlers,
)
from src.app.services.rate_limit import RateAwareCaller, RateLimitPolicy, RateLimitState
from src.app.services.unit_of_work import UnitOfWork
from src.domain.enums import JobStatus, RepoSyncStatus
from src.domain.sync_job import SyncJob

logger = logging.getLogger(__name__)

MAX_ERROR_LENGTH = 500


def one_line(message: str) -> str:
    """Collapse an error message to a single bounded line for last_error"""
    lines = [line.strip() for line in str(message).splitlines() if line.strip()]
    line = lines[0] if lines else "Unknown error"
    return line[:MAX_ERROR_LENGTH]


class JobRunner:
    """
    Polls the job store and dispatches claimed jobs.

    Same-repository exclusion comes from the claim: a repository with a job in
    the local lock map or a processing row in the store is never claimed for.
    Handlers run in their own tasks with their own sessions; whatever they
    raise is recorded on the job and never reaches the polling loop.
    """

    def __init__(
        self,
        uow_factory: Callable[[], AsyncContextManager[UnitOfWork]],
        rate_limit_state: RateLimitState,
        handlers: Optional[Dict[str, JobHandler]] = None,
        poll_interval: float = 1.0,
        max_concurrent: int = 5,
        retention_days: int = 7,
        sleep=asyncio.sleep,
    ):
        """
        Initialize JobRunner.

        Args:
            uow_factory: Returns a context manager yielding a fresh UnitOfWork
            rate_limit_state: Shared throttling state consulted before each claim
            handlers: Handlers keyed by job type
            poll_interval: Seconds to wait when nothing was claimed (default: 1.0)
            max_concurrent: Maximum jobs in flight (default: 5)
            retention_days: Age after which finished jobs are purged (default: 7)
        """
        self.uow_factory = uow_factory
        self.rate_limit_state = rate_limit_state
        self.handlers: Dict[str, JobHandler] = dict(handlers or {})
        self.poll_interval = poll_interval
        self.max_concurrent = max_concurrent
        self.retention_days = retention_days
        self._sleep = sleep
        # repo_id -> job_id of the job this process is running for it
        self.locks: Dict[int, str] = {}
        self.tasks: Dict[str, asyncio.Task] = {}
        self.running = False

    def register(self, job_type: str, handler: JobHandler) -> None:
        self.handlers[job_type] = handler

    @property
    def in_flight(self) -> int:
        return len(self.tasks)

    async def recover(self) -> List[SyncJob]:
        """
        Startup recovery: fail jobs orphaned by a previous process and purge
        old finished jobs. Must run before the first claim.
        """
        cutoff = datetime.utcnow() - timedelta(days=self.retention_days)
        async with self.uow_factory() as uow:
            async with uow:
                orphans = await uow.sync_jobs.reap_orphans()
                for repo_id in {job.repo_id for job in orphans}:
                    await uow.repositories.set_sync_status(repo_id, RepoSyncStatus.failed)
                purged = await uow.sync_jobs.purge_expired(cutoff)
                counts = await uow.sync_jobs.count_by_status()
                await uow.commit()

        if orphans:
            logger.warning(f"[JobRunner] Marked {len(orphans)} interrupted jobs as failed")
        if purged:
            logger.info(f"[JobRunner] Purged {purged} jobs older than {self.retention_days} days")
        logger.info(f"[JobRunner] {counts.get(JobStatus.pending, 0)} pending jobs in queue")
        return orphans

    async def start(self):
        """
        Start the job runner.

        Recovers, then keeps claiming until stop() is called; in-flight jobs
        are drained before returning.
        """
        self.running = True
        await self.recover()
        logger.info(f"[JobRunner] Started (max {self.max_concurrent} concurrent jobs)")

        while self.running:
            try:
                dispatched = await self.tick()
            except Exception as e:
                logger.error(f"[JobRunner] Error claiming jobs: {e}")
                dispatched = False

            if not dispatched:
                await self._sleep(self.poll_interval)

        await self.drain()
        logger.info("[JobRunner] Stopped")

    async def stop(self):
        """Stop claiming new jobs; running jobs are left to finish."""
        self.running = False

    async def drain(self) -> None:
        """Wait for every in-flight job to finish"""
        if self.tasks:
            logger.info(f"[JobRunner] Waiting for {len(self.tasks)} in-flight jobs")
            await asyncio.gather(*list(self.tasks.values()), return_exceptions=True)

    async def tick(self) -> bool:
        """
        One scheduling step.

        Returns:
            bool: True when a job was claimed and dispatched
        """
        remaining = self.rate_limit_state.cooldown_remaining()
        if remaining > 0:
            logger.warning(f"[JobRunner] Rate limit cooldown active, not starting jobs for {remaining:.1f}s")
            await self._sleep(remaining)
            return False

        if self.in_flight >= self.max_concurrent:
            return False

        async with self.uow_factory() as uow:
            async with uow:
                excluded = set(self.locks) | await uow.sync_jobs.get_processing_repo_ids()
                job = await uow.sync_jobs.claim_next(excluded)
                if job is None:
                    return False
                await uow.repositories.set_sync_status(job.repo_id, RepoSyncStatus.in_progress)
                await uow.commit()

        self._dispatch(job)
        return True

    def _dispatch(self, job: SyncJob) -> None:
        logger.info(f"[JobRunner] Starting {job.type} job {job.id} for repository {job.repo_id}")
        self.locks[job.repo_id] = job.id
        task = asyncio.create_task(self._run_job(job))
        self.tasks[job.id] = task
        task.add_done_callback(lambda _: self.tasks.pop(job.id, None))

    async def _run_job(self, job: SyncJob) -> None:
        """Run one claimed job to a terminal state; never raises"""
        error_message = None
        try:
            handler = self.handlers.get(job.type)
            if handler is None:
                raise UnknownJobTypeError(f"No handler registered for job type '{job.type}'")

            args = handler.validate_args(job.args)
            async with self.uow_factory() as uow:
                result = await handler.handle(job, args, uow)

            if result.is_err():
                error_message = f"{result.error.code}: {result.error.message}"
        except (UnknownJobTypeError, JobValidationError) as e:
            error_message = str(e)
        except Exception as e:
            error_message = f"{type(e).__name__}: {e}"

        try:
            await self._finish(job, error_message)
        except Exception as e:
            logger.error(f"[JobRunner] Could not record outcome of job {job.id}: {e}")
        finally:
            self.locks.pop(job.repo_id, None)

    async def _finish(self, job: SyncJob, error_message: Optional[str]) -> None:
        async with self.uow_factory() as uow:
            async with uow:
                if error_message is None:
                    await uow.sync_jobs.mark_completed(job.id)
                    await uow.repositories.set_sync_status(job.repo_id, RepoSyncStatus.completed)
                else:
                    await uow.sync_jobs.mark_failed(job.id, one_line(error_message))
                    await uow.repositories.set_sync_status(job.repo_id, RepoSyncStatus.failed)
                await uow.commit()

        if error_message is None:
            logger.info(f"[JobRunner] Job {job.id} ({job.type}) completed")
        else:
            logger.error(f"[JobRunner] Job {job.id} ({job.type}) failed: {one_line(error_message)}")


async def run_job_runner(database_url: str, config=ApplicationConfig):
    """
    Main entry point for running the job runner.

    Args:
        database_url: Database connection URL
        config: Settings source (default: ApplicationConfig)
    """
    engine = create_async_engine(database_url, echo=False)
    AsyncSessionLocal = sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
    )

    policy = RateLimitPolicy.from_config(config)
    rate_limit_state = RateLimitState(policy)
    caller = RateAwareCaller(rate_limit_state, policy)
    remote_client = GitHubGraphQLClient(
        token=config.GITHUB_TOKEN,
        api_url=config.GITHUB_API_URL,
        page_size=config.PAGE_SIZE,
    )

    runner = JobRunner(
        uow_factory=lambda: unit_of_work_scope(AsyncSessionLocal),
        rate_limit_state=rate_limit_state,
        handlers=build_default_handlers(
            remote_client,
            caller,
            skew_buffer=timedelta(seconds=config.CLOCK_SKEW_BUFFER_SECONDS),
            follow_on_job_type=config.FOLLOW_ON_JOB_TYPE,
        ),
        poll_interval=config.RUNNER_POLL_INTERVAL,
        max_concurrent=config.MAX_CONCURRENT_JOBS,
        retention_days=config.JOB_RETENTION_DAYS,
    )

    try:
        await runner.start()
    except (KeyboardInterrupt, asyncio.CancelledError):
        logger.info("[JobRunner] Received shutdown signal")
        await runner.stop()
        await runner.drain()
    finally:
        await remote_client.aclose()
        await engine.dispose()


if __name__ == "__main__":
    """
    Entry point for running the job runner as a standalone process.

    Usage:
        python -m src.worker.job_runner

    Or with a custom database:
        DB_URI="postgresql+asyncpg://..." python -m src.worker.job_runner
    """
    import os

    logging.basicConfig(
        level=ApplicationConfig.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    database_url = os.environ.get("DB_URI", ApplicationConfig.DB_URI)
    logger.info(f"Starting JobRunner with DB: {database_url[:50]}...")

    asyncio.run(run_job_runner(database_url))
