"""SQLAlchemy Tracked Repository Repository"""
from typing import Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.tracked_repository_repository import ITrackedRepositoryRepository
from src.domain.tracked_repository import TrackedRepository
from src.domain.enums import RepoSyncStatus


class SqlAlchemyTrackedRepositoryRepository(ITrackedRepositoryRepository):
    """SQLAlchemy implementation of TrackedRepository repository"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, repository: TrackedRepository) -> TrackedRepository:
        self.session.add(repository)
        await self.session.flush()
        await self.session.refresh(repository)
        return repository

    async def get_by_id(self, repo_id: int) -> Optional[TrackedRepository]:
        stmt = select(TrackedRepository).where(TrackedRepository.id == repo_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_owner_and_name(self, owner: str, name: str) -> Optional[TrackedRepository]:
        stmt = select(TrackedRepository).where(
            TrackedRepository.owner == owner,
            TrackedRepository.name == name,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def set_sync_status(self, repo_id: int, status: RepoSyncStatus) -> None:
        repository = await self.get_by_id(repo_id)
        if repository is None:
            return
        repository.set_sync_status(status)
        self.session.add(repository)
        await self.session.flush()
