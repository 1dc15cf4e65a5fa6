"""Shared plumbing for the domain clients.

Every domain client holds a ``RequestExecutor`` rather than inheriting any
transport behaviour; swapping the direct executor for the retrying one (or a
test double) changes nothing here.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any, TypeVar

from deepsource_mcp.client.pagination import PaginationParams, normalize_pagination
from deepsource_mcp.client.queries import VIEWER_PROJECTS_QUERY
from deepsource_mcp.core.errors import ClassifiedError, ErrorCategory
from deepsource_mcp.core.logging import DeepSourceLogger, get_logger
from deepsource_mcp.execution import RequestExecutor
from deepsource_mcp.models import PageInfo, PaginatedResponse, Project, RepositoryInfo

T = TypeVar("T")

PROJECTS_ENDPOINT = "projects"


def is_none_type_error(error: ClassifiedError) -> bool:
    """DeepSource answers "NoneType" when a repository has no data yet."""
    return error.category is ErrorCategory.NOT_FOUND and "nonetype" in error.message.lower()


def iter_edge_nodes(connection: Mapping[str, Any] | None) -> Iterator[dict[str, Any]]:
    """Yield the ``node`` of every edge of a Relay connection, skipping nulls."""
    if not connection:
        return
    for edge in connection.get("edges") or []:
        node = (edge or {}).get("node")
        if node:
            yield node


def parse_page_info(connection: Mapping[str, Any] | None) -> PageInfo:
    raw = (connection or {}).get("pageInfo") or {}
    return PageInfo.model_validate(raw)


class BaseDeepSourceClient:
    """Parent of every domain client.

    Args:
        executor: Executes GraphQL documents (direct or retrying).
        logger: Component logger; defaults to ``get_logger("client")``.
    """

    component = "client"

    def __init__(
        self,
        executor: RequestExecutor,
        logger: DeepSourceLogger | None = None,
    ) -> None:
        self._executor = executor
        self._logger = logger or get_logger(self.component)

    @property
    def executor(self) -> RequestExecutor:
        return self._executor

    async def _execute(
        self,
        query: str,
        variables: Mapping[str, Any] | None = None,
        *,
        endpoint: str,
    ) -> dict[str, Any]:
        """Run ``query`` through the executor under the logical ``endpoint`` name."""
        return await self._executor.execute(query, variables, endpoint=endpoint)

    # -------------------------------------------------------------------------
    # Projects
    # -------------------------------------------------------------------------

    async def _fetch_projects(self) -> list[Project]:
        """All projects visible to the API key, across every account."""
        try:
            data = await self._execute(VIEWER_PROJECTS_QUERY, endpoint=PROJECTS_ENDPOINT)
        except ClassifiedError as error:
            if is_none_type_error(error):
                self._logger.info("projects_empty", reason=error.message)
                return []
            raise

        projects: list[Project] = []
        accounts = ((data.get("viewer") or {}).get("accounts")) or {}
        for account in iter_edge_nodes(accounts):
            login = account.get("login") or ""
            for repo in iter_edge_nodes(account.get("repositories")):
                dsn = repo.get("dsn")
                if not dsn:
                    continue
                name = repo.get("name") or "Unnamed Repository"
                projects.append(
                    Project(
                        key=dsn,
                        name=name,
                        repository=RepositoryInfo(
                            url=dsn,
                            provider=repo.get("vcsProvider") or "N/A",
                            login=login,
                            name=name,
                            is_private=bool(repo.get("isPrivate")),
                            is_activated=bool(repo.get("isActivated")),
                        ),
                    )
                )

        self._logger.debug("projects_listed", count=len(projects))
        return projects

    async def find_project_by_key(self, project_key: str) -> Project | None:
        """Resolve a project key to its repository coordinates.

        The key is matched against each project's DSN first, then against
        ``login/name``. Returns None when nothing matches.
        """
        projects = await self._fetch_projects()
        for project in projects:
            if project.key == project_key:
                return project
        for project in projects:
            if f"{project.repository.login}/{project.repository.name}" == project_key:
                return project

        self._logger.info("project_not_found", project_key=project_key)
        return None

    @staticmethod
    def repository_variables(project: Project) -> dict[str, Any]:
        """``login``/``name``/``provider`` variables shared by repository queries."""
        return {
            "login": project.repository.login,
            "name": project.repository.name,
            "provider": project.repository.provider,
        }

    # -------------------------------------------------------------------------
    # Pagination
    # -------------------------------------------------------------------------

    def normalize_pagination(self, params: PaginationParams | None) -> PaginationParams:
        return normalize_pagination(params, logger=self._logger)

    @staticmethod
    def empty_page() -> PaginatedResponse[Any]:
        return PaginatedResponse.empty()


__all__ = [
    "BaseDeepSourceClient",
    "PROJECTS_ENDPOINT",
    "is_none_type_error",
    "iter_edge_nodes",
    "parse_page_info",
]
