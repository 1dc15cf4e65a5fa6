"""Pydantic records for DeepSource API data."""

from deepsource_mcp.models.base import DeepSourceModel, PageInfo, PaginatedResponse
from deepsource_mcp.models.issues import Issue
from deepsource_mcp.models.metrics import (
    MetricDirection,
    MetricHistory,
    MetricHistoryParams,
    MetricHistoryValue,
    MetricKey,
    MetricShortcode,
    MetricThresholdStatus,
    MetricUpdateResult,
    QualityMetrics,
    RepositoryMetric,
    RepositoryMetricItem,
    UpdateMetricSettingParams,
    UpdateMetricThresholdParams,
)
from deepsource_mcp.models.projects import Project, RepositoryInfo
from deepsource_mcp.models.runs import (
    RecentRunIssues,
    Run,
    RunStatus,
    RunSummary,
    describe_run_status,
)
from deepsource_mcp.models.security import (
    ComplianceReport,
    ReportStatus,
    ReportType,
    SecurityIssueStat,
    SeverityDistribution,
    VulnerabilityOccurrence,
)

__all__ = [
    "ComplianceReport",
    "DeepSourceModel",
    "Issue",
    "MetricDirection",
    "MetricHistory",
    "MetricHistoryParams",
    "MetricHistoryValue",
    "MetricKey",
    "MetricShortcode",
    "MetricThresholdStatus",
    "MetricUpdateResult",
    "PageInfo",
    "PaginatedResponse",
    "Project",
    "QualityMetrics",
    "RecentRunIssues",
    "ReportStatus",
    "ReportType",
    "RepositoryInfo",
    "RepositoryMetric",
    "RepositoryMetricItem",
    "Run",
    "RunStatus",
    "RunSummary",
    "SecurityIssueStat",
    "SeverityDistribution",
    "UpdateMetricSettingParams",
    "UpdateMetricThresholdParams",
    "VulnerabilityOccurrence",
    "describe_run_status",
]
