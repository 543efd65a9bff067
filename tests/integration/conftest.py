import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession
import src.domain  # noqa: F401  registers every table on SQLModel.metadata
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork, unit_of_work_scope
from src.domain.tracked_repository import TrackedRepository


@pytest_asyncio.fixture
async def engine(tmp_path):
    # File-backed SQLite so separate sessions really use separate connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'repo_sync_test.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def uow_factory(session_factory):
    return lambda: unit_of_work_scope(session_factory)


async def create_tracked_repository(session_factory, owner: str, name: str) -> TrackedRepository:
    async with session_factory() as session:
        uow = SqlAlchemyUnitOfWork(session)
        async with uow:
            repository = await uow.repositories.create(TrackedRepository(owner=owner, name=name))
            await uow.commit()
    return repository


@pytest_asyncio.fixture
async def tracked_repo(session_factory):
    return await create_tracked_repository(session_factory, "octo", "widgets")


@pytest_asyncio.fixture
async def other_repo(session_factory):
    return await create_tracked_repository(session_factory, "octo", "gadgets")
