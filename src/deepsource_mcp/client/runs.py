"""Analysis runs client."""

from __future__ import annotations

import re
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from deepsource_mcp.client.base import (
    BaseDeepSourceClient,
    is_none_type_error,
    iter_edge_nodes,
    parse_page_info,
)
from deepsource_mcp.client.pagination import PaginationParams, fetch_with_pagination
from deepsource_mcp.client.queries import (
    REPOSITORY_RUNS_QUERY,
    RUN_BY_COMMIT_QUERY,
    RUN_BY_UID_QUERY,
    RUN_OCCURRENCES_QUERY,
)
from deepsource_mcp.core.constants import RUN_OCCURRENCES_PAGE_SIZE, RUN_SCAN_PAGE_SIZE
from deepsource_mcp.core.errors import ClassifiedError, ErrorCategory
from deepsource_mcp.models import Issue, PageInfo, PaginatedResponse, Project, RecentRunIssues, Run

RUNS_ENDPOINT = "runs"
RUN_ENDPOINT = "run"
RECENT_RUN_ISSUES_ENDPOINT = "recent_run_issues"

_RUN_UID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)

_EPOCH = datetime.min.replace(tzinfo=UTC)


def is_run_uid(identifier: str) -> bool:
    return bool(_RUN_UID_RE.match(identifier))


def _created_at(run: Run) -> datetime:
    try:
        parsed = datetime.fromisoformat(run.created_at)
    except ValueError:
        return _EPOCH
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _uses_analyzer(run: Run, analyzers: set[str]) -> bool:
    distribution = run.summary.occurrence_distribution_by_analyzer or []
    return any(entry.analyzer_shortcode in analyzers for entry in distribution)


class RunsClient(BaseDeepSourceClient):
    component = "client.runs"

    async def list_runs(
        self,
        project_key: str,
        *,
        analyzer_in: Sequence[str] | None = None,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[Run]:
        """List analysis runs of a project.

        With ``analyzer_in``, only runs that reported occurrences for one of
        those analyzers are kept; page info and total count still describe the
        unfiltered upstream page.
        """
        project = await self.find_project_by_key(project_key)
        if project is None:
            return self.empty_page()

        async def fetch(params: PaginationParams) -> PaginatedResponse[Run]:
            return await self._fetch_runs_page(project, params)

        page, pages_fetched = await fetch_with_pagination(fetch, pagination, logger=self._logger)

        if analyzer_in:
            wanted = set(analyzer_in)
            page = page.model_copy(
                update={"items": [run for run in page.items if _uses_analyzer(run, wanted)]}
            )

        self._logger.info(
            "runs_fetched",
            project_key=project_key,
            count=len(page.items),
            pages_fetched=pages_fetched,
        )
        return page

    async def _fetch_runs_page(
        self,
        project: Project,
        params: PaginationParams,
    ) -> PaginatedResponse[Run]:
        variables = {**self.repository_variables(project), **params.to_variables()}
        try:
            data = await self._execute(REPOSITORY_RUNS_QUERY, variables, endpoint=RUNS_ENDPOINT)
        except ClassifiedError as error:
            if is_none_type_error(error):
                self._logger.info("runs_empty", project_key=project.key, reason=error.message)
                return self.empty_page()
            raise

        connection = (data.get("repository") or {}).get("runs") or {}
        runs = [Run.model_validate(node) for node in iter_edge_nodes(connection)]
        return PaginatedResponse[Run](
            items=runs,
            page_info=parse_page_info(connection),
            total_count=connection.get("totalCount") or len(runs),
        )

    async def get_run(
        self,
        identifier: str,
        *,
        is_commit_oid: bool | None = None,
    ) -> Run | None:
        """Fetch one run by run UID or commit SHA.

        Without ``is_commit_oid`` the identifier's shape decides: a UUID is a
        run UID, anything else a commit SHA. Returns None when the run does
        not exist.
        """
        by_commit = not is_run_uid(identifier) if is_commit_oid is None else is_commit_oid
        if by_commit:
            query, variables, field = RUN_BY_COMMIT_QUERY, {"commitOid": identifier}, "runByCommit"
        else:
            query, variables, field = RUN_BY_UID_QUERY, {"runUid": identifier}, "run"

        try:
            data = await self._execute(query, variables, endpoint=RUN_ENDPOINT)
        except ClassifiedError as error:
            if error.category is ErrorCategory.NOT_FOUND:
                self._logger.info("run_not_found", identifier=identifier, reason=error.message)
                return None
            raise

        node = data.get(field)
        if not node:
            return None
        return Run.model_validate(node)

    async def find_most_recent_run_for_branch(self, project_key: str, branch_name: str) -> Run:
        """Scan every run of the project and return the newest on ``branch_name``.

        The project is resolved once; every page is then fetched directly.

        Raises:
            ClassifiedError: NOT_FOUND when the branch has no runs.
        """
        latest: Run | None = None
        after: str | None = None
        project = await self.find_project_by_key(project_key)

        while project is not None:
            page = await self._fetch_runs_page(
                project,
                self.normalize_pagination(PaginationParams(first=RUN_SCAN_PAGE_SIZE, after=after)),
            )
            for run in page.items:
                if run.branch_name != branch_name:
                    continue
                if latest is None or _created_at(run) > _created_at(latest):
                    latest = run

            after = page.page_info.end_cursor
            if not page.page_info.has_next_page or not after:
                break

        if latest is None:
            message = f"No runs found for branch '{branch_name}' in project '{project_key}'"
            self._logger.warning("branch_run_not_found", project_key=project_key, branch=branch_name)
            raise ClassifiedError(
                ErrorCategory.NOT_FOUND,
                message,
                metadata={"project_key": project_key, "branch_name": branch_name},
                code="RUN_NOT_FOUND",
            )

        self._logger.info(
            "branch_run_found",
            run_uid=latest.run_uid,
            branch=branch_name,
            created_at=latest.created_at,
        )
        return latest

    async def get_recent_run_issues(
        self,
        project_key: str,
        branch_name: str,
        pagination: PaginationParams | None = None,
    ) -> RecentRunIssues:
        """Issues reported by the most recent run on ``branch_name``."""
        run = await self.find_most_recent_run_for_branch(project_key, branch_name)
        first = (pagination.first if pagination else None) or RUN_OCCURRENCES_PAGE_SIZE

        data = await self._execute(
            RUN_OCCURRENCES_QUERY,
            {"runUid": run.run_uid, "first": first},
            endpoint=RECENT_RUN_ISSUES_ENDPOINT,
        )
        issues = self._issues_from_checks(data.get("run") or {})

        self._logger.info("run_issues_fetched", run_uid=run.run_uid, count=len(issues))
        return RecentRunIssues(
            run=run,
            items=issues,
            page_info=PageInfo(),
            total_count=len(issues),
        )

    @staticmethod
    def _issues_from_checks(run_data: dict[str, Any]) -> list[Issue]:
        issues: list[Issue] = []
        for check in iter_edge_nodes(run_data.get("checks")):
            for occurrence in iter_edge_nodes(check.get("occurrences")):
                issue = occurrence.get("issue") or {}
                issues.append(
                    Issue(
                        id=occurrence.get("id") or "unknown",
                        title=issue.get("title") or "Unknown Issue",
                        shortcode=issue.get("shortcode") or "UNKNOWN",
                        category=issue.get("category") or "UNKNOWN",
                        severity=issue.get("severity") or "UNKNOWN",
                        status="OPEN",
                        issue_text=occurrence.get("issueText") or "",
                        file_path=occurrence.get("path") or "N/A",
                        line_number=occurrence.get("beginLine") or 0,
                        tags=[],
                    )
                )
        return issues


__all__ = [
    "RECENT_RUN_ISSUES_ENDPOINT",
    "RUNS_ENDPOINT",
    "RUN_ENDPOINT",
    "RunsClient",
    "is_run_uid",
]
