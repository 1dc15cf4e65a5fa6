"""Input and output models for the MCP tools.

Input field names are the camelCase names agents send (``projectKey``,
``shortcodeIn``), except the pagination helpers ``page_size`` and
``max_pages``, which keep their snake_case spelling. Output models describe
the parts of each result that callers rely on; extra keys are allowed so
the guidance blocks can evolve without breaking the schema.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from deepsource_mcp.client.pagination import PaginationParams
from deepsource_mcp.models import MetricKey, MetricShortcode, ReportType


class ToolInput(BaseModel):
    """Base for tool inputs: camelCase aliases, unknown keys rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        extra="forbid",
    )


class ToolOutput(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


# =============================================================================
# Inputs
# =============================================================================


class PaginatedInput(ToolInput):
    """Relay cursor arguments shared by list tools."""

    first: int | None = Field(default=None, description="Number of items to return (forward pagination)")
    after: str | None = Field(default=None, description="Cursor to start after (forward pagination)")
    last: int | None = Field(default=None, description="Number of items to return (backward pagination)")
    before: str | None = Field(default=None, description="Cursor to end before (backward pagination)")
    page_size: int | None = Field(
        default=None,
        alias="page_size",
        description="Alias for 'first'",
    )
    max_pages: int | None = Field(
        default=None,
        ge=1,
        alias="max_pages",
        description="Fetch up to this many pages and merge them",
    )

    def to_pagination(self) -> PaginationParams:
        return PaginationParams(
            first=self.first,
            after=self.after,
            last=self.last,
            before=self.before,
            page_size=self.page_size,
            max_pages=self.max_pages,
        )


class ProjectsInput(ToolInput):
    pass


class QualityMetricsInput(ToolInput):
    project_key: str = Field(min_length=1, description="DeepSource project key")
    shortcode_in: list[MetricShortcode] | None = Field(
        default=None,
        description="Only return these metrics (e.g. LCV, BCV, DDP)",
    )


class UpdateMetricThresholdInput(ToolInput):
    project_key: str = Field(min_length=1, description="DeepSource project key")
    repository_id: str = Field(min_length=1, description="GraphQL repository ID (from quality_metrics)")
    metric_shortcode: MetricShortcode = Field(description="Metric to update")
    metric_key: MetricKey = Field(description="Language key, or AGGREGATE")
    threshold_value: float | None = Field(
        default=None,
        description="New threshold; omit or null to remove the threshold",
    )


class UpdateMetricSettingInput(ToolInput):
    project_key: str = Field(min_length=1, description="DeepSource project key")
    repository_id: str = Field(min_length=1, description="GraphQL repository ID (from quality_metrics)")
    metric_shortcode: MetricShortcode = Field(description="Metric to update")
    is_reported: bool = Field(description="Whether the metric is reported")
    is_threshold_enforced: bool = Field(description="Whether the threshold fails checks")


class ComplianceReportInput(ToolInput):
    project_key: str = Field(min_length=1, description="DeepSource project key")
    report_type: ReportType = Field(description="Report to fetch (OWASP_TOP_10, SANS_TOP_25, MISRA_C)")


class ProjectIssuesInput(PaginatedInput):
    project_key: str = Field(min_length=1, description="DeepSource project key")
    path: str | None = Field(default=None, description="Only issues in this file path")
    analyzer_in: list[str] | None = Field(default=None, description="Only issues from these analyzers")
    tags: list[str] | None = Field(default=None, description="Only issues with these tags")


class RunsInput(PaginatedInput):
    project_key: str = Field(min_length=1, description="DeepSource project key")
    analyzer_in: list[str] | None = Field(default=None, description="Only runs that used these analyzers")


class RunInput(ToolInput):
    project_key: str = Field(min_length=1, description="DeepSource project key")
    run_identifier: str = Field(min_length=1, description="Run UID or commit SHA")
    is_commit_oid: bool | None = Field(
        default=None,
        description="Treat the identifier as a commit SHA; detected automatically when omitted",
    )


class RecentRunIssuesInput(PaginatedInput):
    project_key: str = Field(min_length=1, description="DeepSource project key")
    branch_name: str = Field(min_length=1, description="Branch whose most recent run is inspected")


class DependencyVulnerabilitiesInput(PaginatedInput):
    project_key: str = Field(min_length=1, description="DeepSource project key")


# =============================================================================
# Outputs
# =============================================================================


class PageInfoOutput(ToolOutput):
    hasNextPage: bool
    hasPreviousPage: bool
    startCursor: str | None = None
    endCursor: str | None = None


class ProjectSummary(ToolOutput):
    key: str
    name: str


class ProjectsOutput(ToolOutput):
    projects: list[ProjectSummary]


class ThresholdInfo(ToolOutput):
    difference: float
    percentDifference: str
    isPassing: bool


class MetricItemOutput(ToolOutput):
    key: str
    threshold: float | None = None
    latestValue: float | None = None
    thresholdStatus: str
    thresholdInfo: ThresholdInfo | None = None


class MetricOutput(ToolOutput):
    shortcode: str
    name: str
    isReported: bool
    isThresholdEnforced: bool
    items: list[MetricItemOutput]


class QualityMetricsOutput(ToolOutput):
    metrics: list[MetricOutput]
    usage_examples: dict[str, str]


class UpdateMetricThresholdOutput(ToolOutput):
    ok: bool
    projectKey: str
    metricShortcode: str
    metricKey: str
    thresholdValue: float | None = None
    message: str
    next_steps: list[str]


class MetricSettings(ToolOutput):
    isReported: bool
    isThresholdEnforced: bool


class UpdateMetricSettingOutput(ToolOutput):
    ok: bool
    projectKey: str
    metricShortcode: str
    settings: MetricSettings
    message: str
    next_steps: list[str]


class SeverityCounts(ToolOutput):
    critical: int
    major: int
    minor: int
    total: int


class SecurityIssueStatOutput(ToolOutput):
    key: str
    title: str
    occurrence: SeverityCounts


class ComplianceReportOutput(ToolOutput):
    key: str
    title: str
    currentValue: float | None = None
    status: str
    securityIssueStats: list[SecurityIssueStatOutput]
    analysis: dict[str, Any]
    recommendations: dict[str, list[str]]


class IssueOutput(ToolOutput):
    id: str
    title: str
    shortcode: str
    category: str
    severity: str
    status: str
    issue_text: str
    file_path: str
    line_number: int
    tags: list[str]


class ProjectIssuesOutput(ToolOutput):
    issues: list[IssueOutput]
    pageInfo: PageInfoOutput
    totalCount: int
    pagination: dict[str, Any]


class RunOutput(ToolOutput):
    id: str
    runUid: str
    commitOid: str
    branchName: str
    status: str
    createdAt: str
    summary: dict[str, Any]


class RunsOutput(ToolOutput):
    runs: list[RunOutput]
    pageInfo: PageInfoOutput
    totalCount: int


class RunAnalysis(ToolOutput):
    status_info: str
    issue_summary: str
    analyzers_used: list[str]
    issue_categories: list[str]


class RunDetailOutput(ToolOutput):
    run: RunOutput
    analysis: RunAnalysis


class RecentRunIssuesOutput(ToolOutput):
    run: RunOutput
    issues: list[IssueOutput]
    pageInfo: PageInfoOutput
    totalCount: int


class VulnerabilityOutput(ToolOutput):
    id: str
    title: str
    severity: str
    cvssScore: float | None = None
    packageName: str
    packageVersion: str
    fixedIn: str | None = None
    identifiers: list[str]
    risk_assessment: dict[str, Any]


class DependencyVulnerabilitiesOutput(ToolOutput):
    vulnerabilities: list[VulnerabilityOutput]
    pageInfo: PageInfoOutput
    totalCount: int


__all__ = [
    "ComplianceReportInput",
    "ComplianceReportOutput",
    "DependencyVulnerabilitiesInput",
    "DependencyVulnerabilitiesOutput",
    "PaginatedInput",
    "ProjectIssuesInput",
    "ProjectIssuesOutput",
    "ProjectsInput",
    "ProjectsOutput",
    "QualityMetricsInput",
    "QualityMetricsOutput",
    "RecentRunIssuesInput",
    "RecentRunIssuesOutput",
    "RunDetailOutput",
    "RunInput",
    "RunsInput",
    "RunsOutput",
    "ToolInput",
    "ToolOutput",
    "UpdateMetricSettingInput",
    "UpdateMetricSettingOutput",
    "UpdateMetricThresholdInput",
    "UpdateMetricThresholdOutput",
]
