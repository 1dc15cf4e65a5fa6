"""Projects client."""

from __future__ import annotations

from deepsource_mcp.client.base import BaseDeepSourceClient
from deepsource_mcp.models import Project


class ProjectsClient(BaseDeepSourceClient):
    component = "client.projects"

    async def list_projects(self) -> list[Project]:
        """Every project (repository with a DSN) visible to the API key."""
        projects = await self._fetch_projects()
        self._logger.info("projects_fetched", count=len(projects))
        return projects

    async def project_exists(self, project_key: str) -> bool:
        projects = await self._fetch_projects()
        return any(project.key == project_key for project in projects)


__all__ = ["ProjectsClient"]
