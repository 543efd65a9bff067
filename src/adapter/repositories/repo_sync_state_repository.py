"""SQLAlchemy Repo Sync State Repository"""
from datetime import datetime
from typing import List, Optional
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.repo_sync_state_repository import IRepoSyncStateRepository
from src.domain.repo_sync_state import RepoSyncState
from src.domain.enums import ItemKind


class SqlAlchemyRepoSyncStateRepository(IRepoSyncStateRepository):
    """SQLAlchemy implementation of RepoSyncState repository"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, repo_id: int, kind: ItemKind) -> Optional[RepoSyncState]:
        stmt = select(RepoSyncState).where(
            RepoSyncState.repo_id == repo_id,
            RepoSyncState.item_kind == kind,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_or_create(self, repo_id: int, kind: ItemKind) -> RepoSyncState:
        state = await self.get(repo_id, kind)
        if state:
            return state
        state = RepoSyncState(repo_id=repo_id, item_kind=kind)
        self.session.add(state)
        await self.session.flush()
        await self.session.refresh(state)
        return state

    async def list_for_repo(self, repo_id: int) -> List[RepoSyncState]:
        stmt = select(RepoSyncState).where(RepoSyncState.repo_id == repo_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update(self, state: RepoSyncState) -> RepoSyncState:
        self.session.add(state)
        await self.session.flush()
        await self.session.refresh(state)
        return state

    async def request_full_resync(self, repo_id: int) -> None:
        for kind in ItemKind:
            state = await self.get_or_create(repo_id, kind)
            state.needs_full_resync = True
            state.updated_at = datetime.utcnow()
            self.session.add(state)
        await self.session.flush()
