"""Quality metric records."""

from __future__ import annotations

from enum import Enum
from typing import Literal

from pydantic import Field

from .base import DeepSourceModel


class MetricShortcode(str, Enum):
    LCV = "LCV"
    """Line coverage."""
    BCV = "BCV"
    """Branch coverage."""
    DCV = "DCV"
    """Documentation coverage."""
    DDP = "DDP"
    """Duplicate code percentage."""
    SCV = "SCV"
    """Statement coverage."""
    TCV = "TCV"
    """Total coverage."""
    CMP = "CMP"
    """Code maturity."""


class MetricKey(str, Enum):
    AGGREGATE = "AGGREGATE"
    PYTHON = "PYTHON"
    JAVASCRIPT = "JAVASCRIPT"
    TYPESCRIPT = "TYPESCRIPT"
    GO = "GO"
    JAVA = "JAVA"
    RUBY = "RUBY"
    RUST = "RUST"


class MetricThresholdStatus(str, Enum):
    PASSING = "PASSING"
    FAILING = "FAILING"
    UNKNOWN = "UNKNOWN"


class MetricDirection(str, Enum):
    UPWARD = "UPWARD"
    DOWNWARD = "DOWNWARD"


Trend = Literal["improving", "declining", "stable"]


class RepositoryMetricItem(DeepSourceModel):
    """One language (or the aggregate) of a metric."""

    id: str = ""
    key: str
    threshold: float | None = None
    latest_value: float | None = None
    latest_value_display: str = ""
    threshold_status: str = MetricThresholdStatus.UNKNOWN.value


class RepositoryMetric(DeepSourceModel):
    name: str = ""
    shortcode: str
    description: str = ""
    positive_direction: str = MetricDirection.UPWARD.value
    unit: str = ""
    min_value_allowed: float = 0
    max_value_allowed: float = 100
    is_reported: bool = True
    is_threshold_enforced: bool = False
    items: list[RepositoryMetricItem] = Field(default_factory=list)


class QualityMetrics(DeepSourceModel):
    """Metrics of one repository, with the repository id mutations need."""

    repository_id: str | None = None
    metrics: list[RepositoryMetric] = Field(default_factory=list)


class UpdateMetricThresholdParams(DeepSourceModel):
    repository_id: str
    metric_shortcode: MetricShortcode
    metric_key: MetricKey
    threshold_value: float | None = None


class UpdateMetricSettingParams(DeepSourceModel):
    repository_id: str
    metric_shortcode: MetricShortcode
    is_reported: bool
    is_threshold_enforced: bool


class MetricUpdateResult(DeepSourceModel):
    ok: bool


class MetricHistoryParams(DeepSourceModel):
    project_key: str
    metric_shortcode: MetricShortcode
    metric_key: MetricKey
    limit: int | None = Field(default=None, ge=1)


class MetricHistoryValue(DeepSourceModel):
    value: float
    value_display: str
    commit_oid: str = ""
    created_at: str


class MetricHistory(DeepSourceModel):
    shortcode: str
    metric_key: str
    name: str = ""
    unit: str = ""
    positive_direction: str = MetricDirection.UPWARD.value
    threshold: float | None = None
    trend: Trend = "stable"
    is_trending_positive: bool = False
    values: list[MetricHistoryValue] = Field(default_factory=list)
