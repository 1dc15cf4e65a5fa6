"""Issues client."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from deepsource_mcp.client.base import (
    BaseDeepSourceClient,
    is_none_type_error,
    iter_edge_nodes,
    parse_page_info,
)
from deepsource_mcp.client.pagination import PaginationParams, fetch_with_pagination
from deepsource_mcp.client.queries import REPOSITORY_ISSUES_QUERY
from deepsource_mcp.core.errors import ClassifiedError
from deepsource_mcp.models import Issue, PaginatedResponse, Project

ISSUES_ENDPOINT = "project_issues"


def flatten_issues(connection: dict[str, Any] | None) -> list[Issue]:
    """One ``Issue`` per occurrence, carrying its parent issue's metadata."""
    issues: list[Issue] = []
    for node in iter_edge_nodes(connection):
        for occurrence in iter_edge_nodes(node.get("occurrences")):
            issues.append(
                Issue(
                    id=occurrence.get("id") or "unknown",
                    title=node.get("title") or "Unknown Issue",
                    shortcode=node.get("shortcode") or "UNKNOWN",
                    category=node.get("category") or "UNKNOWN",
                    severity=node.get("severity") or "UNKNOWN",
                    status=occurrence.get("status") or "UNKNOWN",
                    issue_text=occurrence.get("issueText") or "",
                    file_path=occurrence.get("filePath") or "N/A",
                    line_number=occurrence.get("beginLine") or 0,
                    tags=occurrence.get("tags") or [],
                )
            )
    return issues


class IssuesClient(BaseDeepSourceClient):
    component = "client.issues"

    async def get_issues(
        self,
        project_key: str,
        *,
        path: str | None = None,
        analyzer_in: Sequence[str] | None = None,
        tags: Sequence[str] | None = None,
        pagination: PaginationParams | None = None,
    ) -> tuple[PaginatedResponse[Issue], int]:
        """Fetch issues of a project, optionally filtered.

        Returns:
            The page of issues and the number of upstream pages fetched
            (more than one only when ``max_pages`` is set). An unknown
            project yields an empty page.
        """
        project = await self.find_project_by_key(project_key)
        if project is None:
            return self.empty_page(), 0

        filters = {
            "path": path,
            "analyzerIn": list(analyzer_in) if analyzer_in else None,
            "tags": list(tags) if tags else None,
        }

        async def fetch(params: PaginationParams) -> PaginatedResponse[Issue]:
            return await self._fetch_page(project, filters, params)

        page, pages_fetched = await fetch_with_pagination(fetch, pagination, logger=self._logger)
        self._logger.info(
            "issues_fetched",
            project_key=project_key,
            count=len(page.items),
            total_count=page.total_count,
            pages_fetched=pages_fetched,
        )
        return page, pages_fetched

    async def _fetch_page(
        self,
        project: Project,
        filters: dict[str, Any],
        params: PaginationParams,
    ) -> PaginatedResponse[Issue]:
        variables = {
            **self.repository_variables(project),
            **{key: value for key, value in filters.items() if value is not None},
            **params.to_variables(),
        }
        try:
            data = await self._execute(REPOSITORY_ISSUES_QUERY, variables, endpoint=ISSUES_ENDPOINT)
        except ClassifiedError as error:
            if is_none_type_error(error):
                self._logger.info("issues_empty", project_key=project.key, reason=error.message)
                return self.empty_page()
            raise

        connection = (data.get("repository") or {}).get("issues") or {}
        items = flatten_issues(connection)
        return PaginatedResponse[Issue](
            items=items,
            page_info=parse_page_info(connection),
            total_count=connection.get("totalCount") or len(items),
        )


__all__ = ["ISSUES_ENDPOINT", "IssuesClient", "flatten_issues"]
