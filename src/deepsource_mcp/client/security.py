"""Security client: compliance reports and dependency vulnerabilities."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from deepsource_mcp.client.base import (
    BaseDeepSourceClient,
    is_none_type_error,
    iter_edge_nodes,
    parse_page_info,
)
from deepsource_mcp.client.pagination import PaginationParams, fetch_with_pagination
from deepsource_mcp.client.queries import (
    COMPLIANCE_REPORT_QUERY_TEMPLATE,
    DEPENDENCY_VULNERABILITIES_QUERY,
)
from deepsource_mcp.core.errors import ClassifiedError, ErrorCategory
from deepsource_mcp.models import (
    ComplianceReport,
    PaginatedResponse,
    Project,
    ReportType,
    SecurityIssueStat,
    SeverityDistribution,
    VulnerabilityOccurrence,
)
from deepsource_mcp.models.security import COMPLIANCE_REPORT_FIELDS, COMPLIANCE_REPORT_TITLES

COMPLIANCE_REPORT_ENDPOINT = "compliance_report"
VULNERABILITIES_ENDPOINT = "dependency_vulnerabilities"


def compliance_score(distribution: SeverityDistribution) -> int:
    """100 with no issues, else 100 minus weighted severities, floored at 0."""
    if distribution.total == 0:
        return 100
    penalty = distribution.critical * 10 + distribution.major * 5 + distribution.minor
    return round(max(0, 100 - penalty))


class SecurityClient(BaseDeepSourceClient):
    component = "client.security"

    async def get_compliance_report(
        self,
        project_key: str,
        report_type: ReportType | str,
    ) -> ComplianceReport | None:
        """Fetch one compliance report and score it.

        Returns None when the project or the report does not exist.

        Raises:
            ClassifiedError: CLIENT for report types that are not compliance
                reports (OWASP Top 10, SANS Top 25, MISRA C).
        """
        try:
            kind = ReportType(report_type)
        except ValueError:
            kind = None
        if kind not in COMPLIANCE_REPORT_FIELDS:
            raise ClassifiedError(
                ErrorCategory.CLIENT,
                f"Unsupported report type: {report_type}",
                metadata={"report_type": str(report_type)},
                code="UNSUPPORTED_REPORT_TYPE",
            )

        project = await self.find_project_by_key(project_key)
        if project is None:
            return None

        field = COMPLIANCE_REPORT_FIELDS[kind]
        query = COMPLIANCE_REPORT_QUERY_TEMPLATE.format(report_field=field)
        try:
            data = await self._execute(
                query,
                self.repository_variables(project),
                endpoint=COMPLIANCE_REPORT_ENDPOINT,
            )
        except ClassifiedError as error:
            if error.category is ErrorCategory.NOT_FOUND:
                self._logger.info(
                    "compliance_report_not_found",
                    project_key=project_key,
                    report_type=kind.value,
                    reason=error.message,
                )
                return None
            raise

        report = ((data.get("repository") or {}).get("reports") or {}).get(field)
        if not report:
            return None

        result = self._build_report(kind, report)
        self._logger.info(
            "compliance_report_fetched",
            report_type=kind.value,
            status=result.status,
            score=result.current_value,
        )
        return result

    @staticmethod
    def _build_report(kind: ReportType, report: dict[str, Any]) -> ComplianceReport:
        totals = SeverityDistribution()
        stats: list[SecurityIssueStat] = []

        for category in report.get("categories") or []:
            occurrence = SeverityDistribution(
                critical=int(category.get("criticalCount") or 0),
                major=int(category.get("majorCount") or 0),
                minor=int(category.get("minorCount") or 0),
                total=int(category.get("total") or 0),
            )
            totals.critical += occurrence.critical
            totals.major += occurrence.major
            totals.minor += occurrence.minor
            totals.total += occurrence.total

            name = str(category.get("name") or "")
            stats.append(
                SecurityIssueStat(
                    key=name,
                    title=name,
                    status=category.get("status") or "NOOP",
                    description=(
                        f"{occurrence.critical} critical, {occurrence.major} major, "
                        f"{occurrence.minor} minor issues"
                    ),
                    occurrence=occurrence,
                )
            )

        return ComplianceReport(
            key=kind,
            title=COMPLIANCE_REPORT_TITLES[kind],
            status=report.get("status") or "NOOP",
            current_value=compliance_score(totals),
            severity_distribution=totals,
            security_issue_stats=stats,
        )

    async def get_dependency_vulnerabilities(
        self,
        project_key: str,
        pagination: PaginationParams | None = None,
    ) -> PaginatedResponse[VulnerabilityOccurrence]:
        project = await self.find_project_by_key(project_key)
        if project is None:
            return self.empty_page()

        async def fetch(params: PaginationParams) -> PaginatedResponse[VulnerabilityOccurrence]:
            return await self._fetch_vulnerabilities_page(project, params)

        page, pages_fetched = await fetch_with_pagination(fetch, pagination, logger=self._logger)
        self._logger.info(
            "vulnerabilities_fetched",
            project_key=project_key,
            count=len(page.items),
            pages_fetched=pages_fetched,
        )
        return page

    async def _fetch_vulnerabilities_page(
        self,
        project: Project,
        params: PaginationParams,
    ) -> PaginatedResponse[VulnerabilityOccurrence]:
        variables = {**self.repository_variables(project), **params.to_variables()}
        try:
            data = await self._execute(
                DEPENDENCY_VULNERABILITIES_QUERY,
                variables,
                endpoint=VULNERABILITIES_ENDPOINT,
            )
        except ClassifiedError as error:
            if is_none_type_error(error):
                self._logger.info(
                    "vulnerabilities_empty", project_key=project.key, reason=error.message
                )
                return self.empty_page()
            raise

        connection = (data.get("repository") or {}).get("dependencyVulnerabilities") or {}
        items: list[VulnerabilityOccurrence] = []
        for node in iter_edge_nodes(connection):
            if not all(node.get(key) for key in ("id", "package", "packageVersion", "vulnerability")):
                self._logger.debug("vulnerability_node_skipped", node_id=node.get("id"))
                continue
            try:
                items.append(VulnerabilityOccurrence.model_validate(_drop_nulls(node)))
            except ValidationError as exc:
                self._logger.warning(
                    "vulnerability_node_invalid",
                    node_id=node.get("id"),
                    error=str(exc),
                )

        return PaginatedResponse[VulnerabilityOccurrence](
            items=items,
            page_info=parse_page_info(connection),
            total_count=connection.get("totalCount") or len(items),
        )


def _drop_nulls(value: Any) -> Any:
    """Remove null fields so model defaults apply."""
    if isinstance(value, dict):
        return {key: _drop_nulls(item) for key, item in value.items() if item is not None}
    return value


__all__ = [
    "COMPLIANCE_REPORT_ENDPOINT",
    "SecurityClient",
    "VULNERABILITIES_ENDPOINT",
    "compliance_score",
]
