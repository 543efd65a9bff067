from typing import Set
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.domain.enums import JobType

# PostgreSQL engine
engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_job_types() -> Set[str]:
    """Job types the API accepts: the built-in ones plus the configured follow-on type"""
    job_types = {job_type.value for job_type in JobType}
    if ApplicationConfig.FOLLOW_ON_JOB_TYPE:
        job_types.add(ApplicationConfig.FOLLOW_ON_JOB_TYPE)
    return job_types
