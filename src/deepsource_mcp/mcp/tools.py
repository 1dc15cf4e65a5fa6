"""DeepSource MCP tools - handlers for the ten exposed operations.

Tools are organized by category:

- ProjectTools: project listing
- MetricTools: quality metrics, thresholds and metric settings
- SecurityTools: compliance reports and dependency vulnerabilities
- IssueTools: project issues
- RunTools: analysis runs and the issues of the latest run on a branch

Each group receives the shared ``DeepSourceClient`` and a logger, and
exposes its tools as ``ToolDefinition`` objects. Handlers take the validated
input model and return plain dicts; the registry handles validation of the
result and error wrapping.
"""

from __future__ import annotations

from typing import Any

from deepsource_mcp.client import DeepSourceClient, pagination_metadata
from deepsource_mcp.client.runs import is_run_uid
from deepsource_mcp.core.errors import ClassifiedError, ErrorCategory
from deepsource_mcp.core.logging import DeepSourceLogger, get_logger
from deepsource_mcp.mcp.registry import ToolDefinition, ToolRegistry
from deepsource_mcp.mcp.schemas import (
    ComplianceReportInput,
    ComplianceReportOutput,
    DependencyVulnerabilitiesInput,
    DependencyVulnerabilitiesOutput,
    ProjectIssuesInput,
    ProjectIssuesOutput,
    ProjectsInput,
    ProjectsOutput,
    QualityMetricsInput,
    QualityMetricsOutput,
    RecentRunIssuesInput,
    RecentRunIssuesOutput,
    RunDetailOutput,
    RunInput,
    RunsInput,
    RunsOutput,
    UpdateMetricSettingInput,
    UpdateMetricSettingOutput,
    UpdateMetricThresholdInput,
    UpdateMetricThresholdOutput,
)
from deepsource_mcp.models import (
    Issue,
    PageInfo,
    ReportStatus,
    ReportType,
    RepositoryMetricItem,
    Run,
    UpdateMetricSettingParams,
    UpdateMetricThresholdParams,
    VulnerabilityOccurrence,
    describe_run_status,
)
from deepsource_mcp.models.security import COMPLIANCE_REPORT_RESOURCES

PAGINATION_HINTS = {
    "next_page": "For forward pagination, use first and after parameters",
    "previous_page": "For backward pagination, use last and before parameters",
}


def _page_info(page_info: PageInfo) -> dict[str, Any]:
    return {
        "hasNextPage": page_info.has_next_page,
        "hasPreviousPage": page_info.has_previous_page,
        "startCursor": page_info.start_cursor or None,
        "endCursor": page_info.end_cursor or None,
    }


def _issues(items: list[Issue]) -> list[dict[str, Any]]:
    return [issue.to_wire() for issue in items]


def _run(run: Run) -> dict[str, Any]:
    return run.to_wire()


# =============================================================================
# Projects
# =============================================================================


class ProjectTools:
    """Project discovery."""

    def __init__(self, client: DeepSourceClient, logger: DeepSourceLogger | None = None):
        self.client = client
        self._logger = logger or get_logger("tools.projects")

    def definitions(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name="projects",
                description="List all available DeepSource projects",
                input_model=ProjectsInput,
                output_model=ProjectsOutput,
                handler=self.projects,
            ),
        ]

    async def projects(self, params: ProjectsInput) -> dict[str, Any]:
        projects = await self.client.projects.list_projects()
        self._logger.info("projects_listed", count=len(projects))
        return {"projects": [{"key": p.key, "name": p.name} for p in projects]}


# =============================================================================
# Metrics
# =============================================================================


def threshold_info(item: RepositoryMetricItem) -> dict[str, Any] | None:
    """How far the latest value is from the threshold, or None without both."""
    if item.threshold is None or item.latest_value is None:
        return None
    difference = item.latest_value - item.threshold
    percent = "N/A" if item.threshold == 0 else f"{difference / item.threshold * 100:.2f}%"
    return {
        "difference": difference,
        "percentDifference": percent,
        "isPassing": item.threshold_status == "PASSING",
    }


class MetricTools:
    """Quality metrics and their thresholds/settings."""

    def __init__(self, client: DeepSourceClient, logger: DeepSourceLogger | None = None):
        self.client = client
        self._logger = logger or get_logger("tools.metrics")

    def definitions(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name="quality_metrics",
                description=(
                    "Get quality metrics (coverage, duplication, documentation) of a "
                    "project, with thresholds and whether they pass"
                ),
                input_model=QualityMetricsInput,
                output_model=QualityMetricsOutput,
                handler=self.quality_metrics,
            ),
            ToolDefinition(
                name="update_metric_threshold",
                description="Set or remove the threshold of a quality metric",
                input_model=UpdateMetricThresholdInput,
                output_model=UpdateMetricThresholdOutput,
                handler=self.update_metric_threshold,
            ),
            ToolDefinition(
                name="update_metric_setting",
                description="Change whether a quality metric is reported and its threshold enforced",
                input_model=UpdateMetricSettingInput,
                output_model=UpdateMetricSettingOutput,
                handler=self.update_metric_setting,
            ),
        ]

    async def quality_metrics(self, params: QualityMetricsInput) -> dict[str, Any]:
        result = await self.client.metrics.get_quality_metrics(
            params.project_key,
            params.shortcode_in,
        )

        metrics = []
        for metric in result.metrics:
            data = metric.to_wire()
            data["items"] = [
                {**item.to_wire(), "thresholdInfo": threshold_info(item)} for item in metric.items
            ]
            metrics.append(data)

        return {
            "repositoryId": result.repository_id,
            "metrics": metrics,
            "usage_examples": {
                "filtering": (
                    "To filter metrics by type, use the shortcodeIn parameter with specific "
                    'metric codes (e.g., ["LCV", "BCV"])'
                ),
                "updating_threshold": "To update a threshold, use the update_metric_threshold tool",
                "updating_settings": (
                    "To update metric settings (e.g., enable reporting or threshold "
                    "enforcement), use the update_metric_setting tool"
                ),
            },
        }

    async def update_metric_threshold(self, params: UpdateMetricThresholdInput) -> dict[str, Any]:
        result = await self.client.metrics.set_metric_threshold(
            UpdateMetricThresholdParams(
                repository_id=params.repository_id,
                metric_shortcode=params.metric_shortcode,
                metric_key=params.metric_key,
                threshold_value=params.threshold_value,
            )
        )

        action = "updated" if params.threshold_value is not None else "removed"
        target = f"{params.metric_shortcode} ({params.metric_key})"
        return {
            "ok": result.ok,
            "projectKey": params.project_key,
            "metricShortcode": params.metric_shortcode,
            "metricKey": params.metric_key,
            "thresholdValue": params.threshold_value,
            "message": (
                f"Successfully {action} threshold for {target}"
                if result.ok
                else f"Failed to update threshold for {target}"
            ),
            "next_steps": (
                ["Use quality_metrics to view the updated metrics"]
                if result.ok
                else [
                    "Check if you have sufficient permissions",
                    "Verify the repository ID is correct",
                ]
            ),
        }

    async def update_metric_setting(self, params: UpdateMetricSettingInput) -> dict[str, Any]:
        result = await self.client.metrics.update_metric_setting(
            UpdateMetricSettingParams(
                repository_id=params.repository_id,
                metric_shortcode=params.metric_shortcode,
                is_reported=params.is_reported,
                is_threshold_enforced=params.is_threshold_enforced,
            )
        )

        return {
            "ok": result.ok,
            "projectKey": params.project_key,
            "metricShortcode": params.metric_shortcode,
            "settings": {
                "isReported": params.is_reported,
                "isThresholdEnforced": params.is_threshold_enforced,
            },
            "message": (
                f"Successfully updated settings for {params.metric_shortcode}"
                if result.ok
                else f"Failed to update settings for {params.metric_shortcode}"
            ),
            "next_steps": (
                ["Use quality_metrics to view the updated metric settings"]
                if result.ok
                else [
                    "Check if you have sufficient permissions",
                    "Verify the repository ID is correct",
                ]
            ),
        }


# =============================================================================
# Security
# =============================================================================

_STATUS_EXPLANATIONS = {
    ReportStatus.PASSING.value: "Your project is currently meeting all required security standards.",
    ReportStatus.FAILING.value: (
        "Your project has security issues that need to be addressed to meet compliance standards."
    ),
}

_SEVERITY_LEVELS = {
    "CRITICAL": (
        "Critical - Requires immediate attention. Represents a serious vulnerability "
        "that could be exploited with significant impact."
    ),
    "HIGH": (
        "High - Should be addressed promptly. Represents a vulnerability with "
        "substantial impact if exploited."
    ),
    "MEDIUM": (
        "Medium - Should be planned for remediation. Represents a vulnerability that "
        "could have moderate impact if exploited."
    ),
    "LOW": (
        "Low - Fix when possible. Represents a vulnerability with limited impact "
        "even if exploited."
    ),
}


def describe_cvss_score(score: float | None) -> str:
    if score is None:
        return "No CVSS score available"
    if score >= 9.0:
        return (
            f"Critical ({score}/10) - Extremely severe vulnerability with highly likely "
            "exploitation and severe impact"
        )
    if score >= 7.0:
        return f"High ({score}/10) - Severe vulnerability with likely exploitation and significant impact"
    if score >= 4.0:
        return f"Medium ({score}/10) - Moderate vulnerability with possible exploitation and moderate impact"
    return f"Low ({score}/10) - Minor vulnerability with limited exploitation potential and impact"


def remediation_advice(occurrence: VulnerabilityOccurrence) -> str:
    fixed = occurrence.vulnerability.fixed_versions
    package = occurrence.package.name
    if fixed:
        return f"Update {package} to version {fixed[0]} or later to resolve this vulnerability."
    if package:
        return (
            f"Consider replacing {package} with a secure alternative, as no fixed "
            "version is currently available."
        )
    return (
        "Review the vulnerability details and take appropriate mitigation measures "
        "based on your application context."
    )


def _vulnerability(occurrence: VulnerabilityOccurrence) -> dict[str, Any]:
    vuln = occurrence.vulnerability
    cvss = vuln.cvss_v3_base_score or vuln.cvss_v2_base_score
    severity = vuln.severity
    return {
        "id": occurrence.id,
        "title": vuln.summary or vuln.identifier,
        "severity": severity,
        "cvssScore": cvss,
        "packageName": occurrence.package.name,
        "packageVersion": occurrence.package_version.version,
        "fixedIn": vuln.fixed_versions[0] if vuln.fixed_versions else None,
        "description": vuln.details or vuln.summary,
        "identifiers": [vuln.identifier, *vuln.aliases],
        "references": vuln.reference_urls,
        "risk_assessment": {
            "severity_level": _SEVERITY_LEVELS.get(
                severity.upper(), f"Unknown severity level: {severity}"
            ),
            "cvss_description": describe_cvss_score(cvss),
            "fixed_version_available": bool(vuln.fixed_versions),
            "remediation_advice": remediation_advice(occurrence),
        },
    }


class SecurityTools:
    """Compliance reports and dependency vulnerabilities."""

    def __init__(self, client: DeepSourceClient, logger: DeepSourceLogger | None = None):
        self.client = client
        self._logger = logger or get_logger("tools.security")

    def definitions(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name="compliance_report",
                description="Get a security compliance report (OWASP Top 10, SANS Top 25, MISRA C)",
                input_model=ComplianceReportInput,
                output_model=ComplianceReportOutput,
                handler=self.compliance_report,
            ),
            ToolDefinition(
                name="dependency_vulnerabilities",
                description="List known vulnerabilities in a project's dependencies",
                input_model=DependencyVulnerabilitiesInput,
                output_model=DependencyVulnerabilitiesOutput,
                handler=self.dependency_vulnerabilities,
            ),
        ]

    async def compliance_report(self, params: ComplianceReportInput) -> dict[str, Any]:
        report = await self.client.security.get_compliance_report(
            params.project_key,
            params.report_type,
        )
        if report is None:
            raise ClassifiedError(
                ErrorCategory.NOT_FOUND,
                f"Report of type '{params.report_type}' not found for project '{params.project_key}'",
                metadata={"project_key": params.project_key, "report_type": params.report_type},
                code="REPORT_NOT_FOUND",
            )

        stats = report.security_issue_stats
        failing = report.status == ReportStatus.FAILING.value
        return {
            "key": report.key,
            "title": report.title,
            "currentValue": report.current_value,
            "status": report.status,
            "securityIssueStats": [
                {
                    "key": stat.key,
                    "title": stat.title,
                    "occurrence": stat.occurrence.to_wire(),
                }
                for stat in stats
            ],
            "trends": [trend.to_wire() for trend in report.trends],
            "analysis": {
                "summary": f"This report shows compliance with {report.title} security standards.",
                "status_explanation": _STATUS_EXPLANATIONS.get(
                    report.status, "This report is not applicable to your project."
                ),
                "critical_issues": sum(s.occurrence.critical for s in stats),
                "major_issues": sum(s.occurrence.major for s in stats),
                "minor_issues": sum(s.occurrence.minor for s in stats),
                "total_issues": sum(s.occurrence.total for s in stats),
            },
            "recommendations": {
                "actions": (
                    [
                        "Fix critical security issues first",
                        "Use project_issues to view specific issues",
                        "Implement security best practices for your codebase",
                    ]
                    if failing
                    else ["Continue monitoring security compliance", "Run regular security scans"]
                ),
                "resources": [
                    COMPLIANCE_REPORT_RESOURCES.get(
                        ReportType(report.key), "Security best practices for your project"
                    )
                ],
            },
        }

    async def dependency_vulnerabilities(
        self, params: DependencyVulnerabilitiesInput
    ) -> dict[str, Any]:
        page = await self.client.security.get_dependency_vulnerabilities(
            params.project_key,
            params.to_pagination(),
        )
        return {
            "vulnerabilities": [_vulnerability(v) for v in page.items],
            "pageInfo": _page_info(page.page_info),
            "totalCount": page.total_count,
            "usage_examples": {
                "pagination": PAGINATION_HINTS,
                "related_tools": {
                    "issues": "Use the project_issues tool to get code issues in the project",
                    "compliance": "Use the compliance_report tool to get security compliance reports",
                },
            },
        }


# =============================================================================
# Issues
# =============================================================================


class IssueTools:
    def __init__(self, client: DeepSourceClient, logger: DeepSourceLogger | None = None):
        self.client = client
        self._logger = logger or get_logger("tools.issues")

    def definitions(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name="project_issues",
                description=(
                    "Get issues of a DeepSource project, filtered by path, analyzer or tags, "
                    "with cursor pagination"
                ),
                input_model=ProjectIssuesInput,
                output_model=ProjectIssuesOutput,
                handler=self.project_issues,
            ),
        ]

    async def project_issues(self, params: ProjectIssuesInput) -> dict[str, Any]:
        page, pages_fetched = await self.client.issues.get_issues(
            params.project_key,
            path=params.path,
            analyzer_in=params.analyzer_in,
            tags=params.tags,
            pagination=params.to_pagination(),
        )
        return {
            "issues": _issues(page.items),
            "pageInfo": _page_info(page.page_info),
            "totalCount": page.total_count,
            "pagination": pagination_metadata(page, pages_fetched, params.max_pages),
            "usage_examples": {
                "filtering": {
                    "by_path": "Use the path parameter to filter issues by file path",
                    "by_analyzer": "Use the analyzerIn parameter to filter by specific analyzers",
                    "by_tags": "Use the tags parameter to filter by specific tags",
                },
                "pagination": PAGINATION_HINTS,
            },
        }


# =============================================================================
# Runs
# =============================================================================


class RunTools:
    """Analysis runs."""

    def __init__(self, client: DeepSourceClient, logger: DeepSourceLogger | None = None):
        self.client = client
        self._logger = logger or get_logger("tools.runs")

    def definitions(self) -> list[ToolDefinition]:
        return [
            ToolDefinition(
                name="runs",
                description="List analysis runs of a project, with cursor pagination",
                input_model=RunsInput,
                output_model=RunsOutput,
                handler=self.runs,
            ),
            ToolDefinition(
                name="run",
                description="Get one analysis run by run UID or commit SHA",
                input_model=RunInput,
                output_model=RunDetailOutput,
                handler=self.run,
            ),
            ToolDefinition(
                name="recent_run_issues",
                description="Get the issues reported by the most recent run on a branch",
                input_model=RecentRunIssuesInput,
                output_model=RecentRunIssuesOutput,
                handler=self.recent_run_issues,
            ),
        ]

    async def runs(self, params: RunsInput) -> dict[str, Any]:
        page = await self.client.runs.list_runs(
            params.project_key,
            analyzer_in=params.analyzer_in,
            pagination=params.to_pagination(),
        )
        return {
            "runs": [_run(run) for run in page.items],
            "pageInfo": _page_info(page.page_info),
            "totalCount": page.total_count,
            "usage_examples": {
                "filtering": {
                    "by_analyzer": "Use the analyzerIn parameter to filter by specific analyzers",
                },
                "pagination": PAGINATION_HINTS,
                "related_tools": {
                    "run_details": "Use the run tool to get detailed information about a specific run",
                    "run_issues": "Use the recent_run_issues tool to get issues from the most recent run",
                },
            },
        }

    async def run(self, params: RunInput) -> dict[str, Any]:
        run = await self.client.runs.get_run(
            params.run_identifier,
            is_commit_oid=params.is_commit_oid,
        )
        if run is None:
            by_commit = (
                params.is_commit_oid
                if params.is_commit_oid is not None
                else not is_run_uid(params.run_identifier)
            )
            kind = "commitOid" if by_commit else "runUid"
            raise ClassifiedError(
                ErrorCategory.NOT_FOUND,
                f'Run with {kind} "{params.run_identifier}" not found in project "{params.project_key}"',
                metadata={"project_key": params.project_key, "run_identifier": params.run_identifier},
                code="RUN_NOT_FOUND",
            )

        summary = run.summary
        return {
            "run": _run(run),
            "analysis": {
                "status_info": describe_run_status(run.status),
                "issue_summary": (
                    f"This run introduced {summary.occurrences_introduced} issues, "
                    f"resolved {summary.occurrences_resolved} issues, and suppressed "
                    f"{summary.occurrences_suppressed} issues."
                ),
                "analyzers_used": [
                    entry.analyzer_shortcode
                    for entry in summary.occurrence_distribution_by_analyzer or []
                ],
                "issue_categories": [
                    entry.category for entry in summary.occurrence_distribution_by_category or []
                ],
            },
            "related_tools": {
                "issues": "Use the project_issues tool to get all issues in the project",
                "runs": "Use the runs tool to list all runs for the project",
                "recent_issues": (
                    "Use the recent_run_issues tool to get issues from the most recent run on a branch"
                ),
            },
        }

    async def recent_run_issues(self, params: RecentRunIssuesInput) -> dict[str, Any]:
        result = await self.client.runs.get_recent_run_issues(
            params.project_key,
            params.branch_name,
            params.to_pagination(),
        )
        return {
            "run": _run(result.run),
            "issues": _issues(result.items),
            "pageInfo": _page_info(result.page_info),
            "totalCount": result.total_count,
            "usage_examples": {
                "pagination": PAGINATION_HINTS,
                "related_tools": {
                    "run_details": "Use the run tool to get detailed information about a specific run",
                    "all_issues": "Use the project_issues tool to get all issues in the project",
                    "other_runs": "Use the runs tool to list all runs for the project",
                },
            },
        }


# =============================================================================
# Registry assembly
# =============================================================================


def build_tool_groups(
    client: DeepSourceClient,
    logger: DeepSourceLogger | None = None,
) -> list[ProjectTools | MetricTools | SecurityTools | IssueTools | RunTools]:
    log = logger or get_logger("tools")
    return [
        ProjectTools(client, log.child("projects")),
        MetricTools(client, log.child("metrics")),
        SecurityTools(client, log.child("security")),
        IssueTools(client, log.child("issues")),
        RunTools(client, log.child("runs")),
    ]


def build_registry(
    client: DeepSourceClient,
    logger: DeepSourceLogger | None = None,
) -> ToolRegistry:
    """Registry holding every DeepSource tool, in listing order."""
    log = logger or get_logger("tools")
    registry = ToolRegistry(logger=log.child("registry"))
    for group in build_tool_groups(client, log):
        for definition in group.definitions():
            registry.register_tool(definition)
    return registry


__all__ = [
    "IssueTools",
    "MetricTools",
    "ProjectTools",
    "RunTools",
    "SecurityTools",
    "build_registry",
    "build_tool_groups",
    "threshold_info",
]
