"""Job Handlers

Adapters between a claimed SyncJob and the use case that does the work. Each
handler declares a pydantic model for its args; the runner validates them
before calling handle().
"""
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional, Type
from pydantic import BaseModel, ValidationError
from libs.result import Result
from src.app.services.rate_limit import RateAwareCaller
from src.app.services.remote_api_client import IRemoteApiClient
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.sync import RefreshItemArgs, RefreshItemUseCase, SyncItemsUseCase, SyncJobArgs
from src.domain.enums import ItemKind, JobType
from src.domain.sync_job import SyncJob


class JobValidationError(Exception):
    """Job args do not match the handler's schema; the job fails without retry"""
    pass


class UnknownJobTypeError(Exception):
    """No handler is registered for the job's type"""
    pass


class JobHandler(ABC):
    args_model: Type[BaseModel] = SyncJobArgs

    def validate_args(self, args: Optional[Dict[str, Any]]) -> BaseModel:
        try:
            return self.args_model.model_validate(args or {})
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'args'}: {err['msg']}" for err in e.errors()
            )
            raise JobValidationError(f"Invalid job args: {problems}") from e

    @abstractmethod
    async def handle(self, job: SyncJob, args: BaseModel, uow: UnitOfWork) -> Result:
        """Run the job; Ok completes it, Err fails it"""
        pass


class SyncItemsJobHandler(JobHandler):
    """issue-fetch / pr-fetch"""
    args_model = SyncJobArgs

    def __init__(
        self,
        kind: ItemKind,
        remote_client: IRemoteApiClient,
        caller: RateAwareCaller,
        skew_buffer: timedelta = timedelta(seconds=60),
        follow_on_job_type: Optional[str] = None,
        now: Callable[[], datetime] = datetime.utcnow,
    ):
        self.kind = kind
        self.remote_client = remote_client
        self.caller = caller
        self.skew_buffer = skew_buffer
        self.follow_on_job_type = follow_on_job_type
        self.now = now

    async def handle(self, job: SyncJob, args: BaseModel, uow: UnitOfWork) -> Result:
        use_case = SyncItemsUseCase(
            uow,
            self.remote_client,
            self.caller,
            skew_buffer=self.skew_buffer,
            follow_on_job_type=self.follow_on_job_type,
            now=self.now,
        )
        return await use_case.execute(job.repo_id, self.kind, user_id=job.user_id)


class RefreshItemJobHandler(JobHandler):
    """single-issue-refresh / single-pr-refresh"""
    args_model = RefreshItemArgs

    def __init__(self, kind: ItemKind, remote_client: IRemoteApiClient, caller: RateAwareCaller):
        self.kind = kind
        self.remote_client = remote_client
        self.caller = caller

    async def handle(self, job: SyncJob, args: RefreshItemArgs, uow: UnitOfWork) -> Result:
        use_case = RefreshItemUseCase(uow, self.remote_client, self.caller)
        return await use_case.execute(job.repo_id, self.kind, args.number)


def build_default_handlers(
    remote_client: IRemoteApiClient,
    caller: RateAwareCaller,
    skew_buffer: timedelta = timedelta(seconds=60),
    follow_on_job_type: Optional[str] = None,
) -> Dict[str, JobHandler]:
    """Handlers for the built-in job types, keyed by job type"""
    return {
        JobType.ISSUE_FETCH.value: SyncItemsJobHandler(
            ItemKind.issue, remote_client, caller, skew_buffer, follow_on_job_type
        ),
        JobType.PR_FETCH.value: SyncItemsJobHandler(ItemKind.pull_request, remote_client, caller, skew_buffer),
        JobType.SINGLE_ISSUE_REFRESH.value: RefreshItemJobHandler(ItemKind.issue, remote_client, caller),
        JobType.SINGLE_PR_REFRESH.value: RefreshItemJobHandler(ItemKind.pull_request, remote_client, caller),
    }
