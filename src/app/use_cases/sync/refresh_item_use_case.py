"""Refresh Item Use Case

Re-fetch a single issue or pull request and its comments. The repository's
watermark is left alone.
"""
import logging
from functools import partial
from libs.result import Error, Result, Return
from src.app.services.rate_limit import RateAwareCaller
from src.app.services.remote_api_client import IRemoteApiClient, RepoRef
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.sync.dtos import RefreshItemReport
from src.domain.enums import ItemKind

logger = logging.getLogger(__name__)


class RefreshItemUseCase:
    def __init__(self, uow: UnitOfWork, remote_client: IRemoteApiClient, caller: RateAwareCaller):
        self.uow = uow
        self.remote_client = remote_client
        self.caller = caller

    async def execute(self, repo_id: int, kind: ItemKind, number: int) -> Result[RefreshItemReport]:
        async with self.uow:
            repository = await self.uow.repositories.get_by_id(repo_id)
            if not repository:
                return Return.err(Error(code="REPOSITORY_NOT_FOUND", message=f"Repository {repo_id} not found"))
            repo = RepoRef(repo_id=repository.id, owner=repository.owner, name=repository.name)

        context = f"{repo.full_name} #{number}"

        result = await self.caller.call(partial(self.remote_client.fetch_item, repo, kind, number), context=context)
        if result.is_err():
            return self._failed(context, result.error)

        async with self.uow:
            item = await self.uow.items.upsert(repo_id, kind, result.value)
            await self.uow.commit()

        comments = []
        if item.comments_count > 0:
            result = await self.caller.call(
                partial(self.remote_client.fetch_subresource, repo, kind, number),
                context=f"{context} comments",
            )
            if result.is_err():
                return self._failed(context, result.error)
            comments = result.value

        async with self.uow:
            stored = await self.uow.items.replace_comments(item.id, comments)
            await self.uow.items.mark_sub_resource_fetched(item.id)
            await self.uow.commit()

        logger.info(f"[RefreshItem] {context} refreshed with {stored} comments")
        return Return.ok(
            RefreshItemReport(repo_id=repo_id, kind=kind, number=number, item_id=item.id, comments=stored)
        )

    @staticmethod
    def _failed(context: str, error) -> Result:
        logger.error(f"[RefreshItem] {context} refresh failed: {error.message}")
        return Return.err(Error(code="ITEM_REFRESH_FAILED", message=error.message, reason=error.code))
