from contextlib import asynccontextmanager
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.services.unit_of_work import UnitOfWork
from src.adapter.repositories.sync_job_repository import SqlAlchemySyncJobRepository
from src.adapter.repositories.tracked_repository_repository import SqlAlchemyTrackedRepositoryRepository
from src.adapter.repositories.repo_sync_state_repository import SqlAlchemyRepoSyncStateRepository
from src.adapter.repositories.synced_item_repository import SqlAlchemySyncedItemRepository


class SqlAlchemyUnitOfWork(UnitOfWork):
    """SQLAlchemy implementation of UnitOfWork pattern"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def __aenter__(self):
        # Initialize all repositories with the session
        self.sync_jobs = SqlAlchemySyncJobRepository(self.session)
        self.repositories = SqlAlchemyTrackedRepositoryRepository(self.session)
        self.sync_states = SqlAlchemyRepoSyncStateRepository(self.session)
        self.items = SqlAlchemySyncedItemRepository(self.session)
        return self

    async def __aexit__(self, *args):
        await self.rollback()

    async def commit(self):
        await self.session.commit()

    async def rollback(self):
        await self.session.rollback()


@asynccontextmanager
async def unit_of_work_scope(session_factory):
    """One session per scope, closed on exit; sessions are never shared between tasks"""
    async with session_factory() as session:
        yield SqlAlchemyUnitOfWork(session)
