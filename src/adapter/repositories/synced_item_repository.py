"""SQLAlchemy Synced Item Repository

Upserts are keyed by the remote external ID; replaying a page that was
already stored leaves the table unchanged.
"""
from datetime import datetime
from typing import List, Optional
from sqlalchemy import delete
from sqlmodel import select
from sqlmodel.ext.asyncio.session import AsyncSession
from src.app.repositories.synced_item_repository import ISyncedItemRepository
from src.app.services.remote_api_client import RemoteComment, RemoteItem
from src.domain.synced_item import ItemComment, SyncedItem
from src.domain.enums import ItemKind


class SqlAlchemySyncedItemRepository(ISyncedItemRepository):
    """SQLAlchemy implementation of SyncedItem repository"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_external_id(self, external_id: int) -> Optional[SyncedItem]:
        stmt = select(SyncedItem).where(SyncedItem.external_id == external_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_number(self, repo_id: int, kind: ItemKind, number: int) -> Optional[SyncedItem]:
        stmt = select(SyncedItem).where(
            SyncedItem.repo_id == repo_id,
            SyncedItem.kind == kind,
            SyncedItem.number == number,
        )
        result = await self.session.execute(stmt)
        return result.scalars().first()

    async def upsert(self, repo_id: int, kind: ItemKind, remote: RemoteItem) -> SyncedItem:
        item = await self.get_by_external_id(remote.external_id)
        if item is None:
            item = SyncedItem(external_id=remote.external_id, repo_id=repo_id, kind=kind, number=remote.number)
        elif item.is_stale_against(remote.updated_at):
            # Comments may have changed along with the item
            item.sub_resource_fetched = False

        item.number = remote.number
        item.title = remote.title
        item.body = remote.body
        item.state = remote.state
        item.labels = list(remote.labels)
        item.assignees = list(remote.assignees)
        item.author_login = remote.author_login
        item.comments_count = remote.comments_count
        item.remote_created_at = remote.created_at
        item.remote_updated_at = remote.updated_at
        item.closed_at = remote.closed_at
        item.merged_at = remote.merged_at
        item.synced_at = datetime.utcnow()

        self.session.add(item)
        await self.session.flush()
        await self.session.refresh(item)
        return item

    async def replace_comments(self, item_id: str, comments: List[RemoteComment]) -> int:
        await self.session.execute(
            delete(ItemComment)
            .where(ItemComment.item_id == item_id)
            .execution_options(synchronize_session=False)
        )

        seen = set()
        for comment in comments:
            if comment.external_id in seen:
                continue
            seen.add(comment.external_id)
            self.session.add(
                ItemComment(
                    item_id=item_id,
                    external_id=comment.external_id,
                    author_login=comment.author_login,
                    body=comment.body,
                    remote_created_at=comment.created_at,
                )
            )
        await self.session.flush()
        return len(seen)

    async def mark_sub_resource_fetched(self, item_id: str) -> None:
        stmt = select(SyncedItem).where(SyncedItem.id == item_id)
        result = await self.session.execute(stmt)
        item = result.scalar_one_or_none()
        if item is None:
            return
        item.sub_resource_fetched = True
        self.session.add(item)
        await self.session.flush()

    async def list_for_repo(self, repo_id: int, kind: Optional[ItemKind] = None) -> List[SyncedItem]:
        stmt = select(SyncedItem).where(SyncedItem.repo_id == repo_id)
        if kind is not None:
            stmt = stmt.where(SyncedItem.kind == kind)
        stmt = stmt.order_by(SyncedItem.number.asc())
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_unenriched(self, repo_id: int, kind: ItemKind) -> List[SyncedItem]:
        stmt = (
            select(SyncedItem)
            .where(
                SyncedItem.repo_id == repo_id,
                SyncedItem.kind == kind,
                SyncedItem.sub_resource_fetched == False,  # noqa: E712
            )
            .order_by(SyncedItem.number.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_comments(self, item_id: str) -> List[ItemComment]:
        stmt = (
            select(ItemComment)
            .where(ItemComment.item_id == item_id)
            .order_by(ItemComment.remote_created_at.asc())
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
