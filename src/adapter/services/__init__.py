from src.adapter.services.github_graphql_client import GitHubGraphQLClient
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork, unit_of_work_scope

__all__ = ["GitHubGraphQLClient", "SqlAlchemyUnitOfWork", "unit_of_work_scope"]
