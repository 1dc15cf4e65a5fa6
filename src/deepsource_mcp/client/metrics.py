"""Quality metrics client: read metrics, change thresholds/settings, history."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from deepsource_mcp.client.base import BaseDeepSourceClient, is_none_type_error, iter_edge_nodes
from deepsource_mcp.client.queries import (
    METRIC_HISTORY_QUERY,
    QUALITY_METRICS_QUERY,
    UPDATE_METRIC_SETTING_MUTATION,
    UPDATE_METRIC_THRESHOLD_MUTATION,
)
from deepsource_mcp.core.constants import METRIC_HISTORY_PAGE_SIZE
from deepsource_mcp.core.errors import ClassifiedError, ErrorCategory
from deepsource_mcp.models import (
    MetricDirection,
    MetricHistory,
    MetricHistoryParams,
    MetricHistoryValue,
    MetricUpdateResult,
    QualityMetrics,
    RepositoryMetric,
    RepositoryMetricItem,
    UpdateMetricSettingParams,
    UpdateMetricThresholdParams,
)
from deepsource_mcp.models.metrics import Trend

QUALITY_METRICS_ENDPOINT = "quality_metrics"
UPDATE_THRESHOLD_ENDPOINT = "update_metric_threshold"
UPDATE_SETTING_ENDPOINT = "update_metric_setting"
METRIC_HISTORY_ENDPOINT = "metric_history"

STABLE_CHANGE_PERCENT = 5.0
"""Changes smaller than this (in percent) count as stable."""


def _as_float(value: Any) -> float | None:
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _measured_at(value: MetricHistoryValue) -> tuple[int, float, str]:
    """Sort key: parseable timestamps in time order, anything else after them."""
    try:
        parsed = datetime.fromisoformat(value.created_at)
    except ValueError:
        return (1, 0.0, value.created_at)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return (0, parsed.timestamp(), value.created_at)


def calculate_trend(
    values: Sequence[MetricHistoryValue],
    direction: str = MetricDirection.UPWARD.value,
) -> Trend:
    """Classify a metric's movement between its oldest and newest value.

    A change below ``STABLE_CHANGE_PERCENT`` is stable. Otherwise the sign of
    the change is read against the metric's direction: for a DOWNWARD metric
    (e.g. duplicate code) a decrease is an improvement.
    """
    if len(values) < 2:
        return "stable"

    ordered = sorted(values, key=_measured_at)
    first, last = ordered[0].value, ordered[-1].value

    if first == 0:
        if last == 0:
            return "stable"
        percent_change = 100.0 if last > 0 else -100.0
    else:
        percent_change = (last - first) / abs(first) * 100

    if abs(percent_change) < STABLE_CHANGE_PERCENT:
        return "stable"

    increased = percent_change > 0
    if direction == MetricDirection.DOWNWARD.value:
        return "declining" if increased else "improving"
    return "improving" if increased else "declining"


def _metric_from_node(node: dict[str, Any]) -> RepositoryMetric:
    items = []
    for item in node.get("items") or []:
        value = _as_float(item.get("value"))
        items.append(
            RepositoryMetricItem(
                id=str(item.get("id") or ""),
                key=str(item.get("key") or ""),
                threshold=_as_float(item.get("thresholdValue")),
                latest_value=value,
                latest_value_display="" if item.get("value") is None else str(item.get("value")),
                threshold_status=item.get("thresholdStatus") or "UNKNOWN",
            )
        )
    is_reported = node.get("isReported")
    return RepositoryMetric(
        shortcode=str(node.get("shortcode") or ""),
        name=str(node.get("name") or ""),
        description=str(node.get("description") or ""),
        positive_direction=node.get("direction") or MetricDirection.UPWARD.value,
        unit=str(node.get("unit") or ""),
        is_reported=True if is_reported is None else bool(is_reported),
        is_threshold_enforced=bool(node.get("isThresholdEnforced")),
        items=items,
    )


class MetricsClient(BaseDeepSourceClient):
    component = "client.metrics"

    async def get_quality_metrics(
        self,
        project_key: str,
        shortcode_in: Sequence[str] | None = None,
    ) -> QualityMetrics:
        """Metrics of a project, optionally limited to ``shortcode_in``.

        An unknown project, or a repository without metric data, yields an
        empty result.
        """
        project = await self.find_project_by_key(project_key)
        if project is None:
            return QualityMetrics()

        variables = self.repository_variables(project)
        if shortcode_in:
            variables["shortcodeIn"] = list(shortcode_in)

        try:
            data = await self._execute(
                QUALITY_METRICS_QUERY, variables, endpoint=QUALITY_METRICS_ENDPOINT
            )
        except ClassifiedError as error:
            if is_none_type_error(error):
                self._logger.info("metrics_empty", project_key=project_key, reason=error.message)
                return QualityMetrics()
            raise

        repository = data.get("repository") or {}
        metrics = [_metric_from_node(node) for node in repository.get("metrics") or []]
        self._logger.info("metrics_fetched", project_key=project_key, count=len(metrics))
        return QualityMetrics(repository_id=repository.get("id"), metrics=metrics)

    async def set_metric_threshold(self, params: UpdateMetricThresholdParams) -> MetricUpdateResult:
        """Set (or with ``threshold_value=None`` remove) a metric threshold."""
        self._logger.info(
            "metric_threshold_updating",
            repository_id=params.repository_id,
            metric_shortcode=params.metric_shortcode,
            metric_key=params.metric_key,
        )
        data = await self._execute(
            UPDATE_METRIC_THRESHOLD_MUTATION,
            {
                "repositoryId": params.repository_id,
                "metricShortcode": params.metric_shortcode,
                "metricKey": params.metric_key,
                "thresholdValue": params.threshold_value,
            },
            endpoint=UPDATE_THRESHOLD_ENDPOINT,
        )
        ok = bool((data.get("updateMetricThreshold") or {}).get("success"))
        self._logger.info("metric_threshold_updated", ok=ok)
        return MetricUpdateResult(ok=ok)

    async def update_metric_setting(self, params: UpdateMetricSettingParams) -> MetricUpdateResult:
        self._logger.info(
            "metric_setting_updating",
            repository_id=params.repository_id,
            metric_shortcode=params.metric_shortcode,
            is_reported=params.is_reported,
            is_threshold_enforced=params.is_threshold_enforced,
        )
        data = await self._execute(
            UPDATE_METRIC_SETTING_MUTATION,
            {
                "repositoryId": params.repository_id,
                "metricShortcode": params.metric_shortcode,
                "isReported": params.is_reported,
                "isThresholdEnforced": params.is_threshold_enforced,
            },
            endpoint=UPDATE_SETTING_ENDPOINT,
        )
        ok = bool((data.get("updateMetricSetting") or {}).get("success"))
        self._logger.info("metric_setting_updated", ok=ok)
        return MetricUpdateResult(ok=ok)

    async def get_metric_history(self, params: MetricHistoryParams) -> MetricHistory | None:
        """Historical values of one metric item, with a trend.

        Library API only; no MCP tool is bound to it.

        Returns None when the project, metric or item does not exist.
        """
        project = await self.find_project_by_key(params.project_key)
        if project is None:
            return None

        variables = {
            **self.repository_variables(project),
            "metricShortcode": params.metric_shortcode,
            "metricKey": params.metric_key,
            "first": params.limit or METRIC_HISTORY_PAGE_SIZE,
        }
        try:
            data = await self._execute(
                METRIC_HISTORY_QUERY, variables, endpoint=METRIC_HISTORY_ENDPOINT
            )
        except ClassifiedError as error:
            if error.category is ErrorCategory.NOT_FOUND:
                self._logger.info(
                    "metric_history_not_found",
                    project_key=params.project_key,
                    reason=error.message,
                )
                return None
            raise

        metrics = (data.get("repository") or {}).get("metrics") or []
        metric = next((m for m in metrics if m.get("shortcode") == params.metric_shortcode), None)
        if metric is None:
            return None
        item = next(
            (i for i in metric.get("items") or [] if i.get("key") == params.metric_key),
            None,
        )
        if item is None or not item.get("values"):
            return None

        values = [
            MetricHistoryValue(
                value=_as_float(node.get("value")) or 0.0,
                value_display="0" if node.get("value") is None else str(node.get("value")),
                commit_oid=str(node.get("commitOid") or ""),
                created_at=str(node.get("measuredAt") or ""),
            )
            for node in iter_edge_nodes(item.get("values"))
        ]
        direction = metric.get("direction") or MetricDirection.UPWARD.value
        trend = calculate_trend(values, direction)

        self._logger.info(
            "metric_history_fetched",
            metric_shortcode=params.metric_shortcode,
            metric_key=params.metric_key,
            count=len(values),
            trend=trend,
        )
        return MetricHistory(
            shortcode=params.metric_shortcode,
            metric_key=params.metric_key,
            name=str(metric.get("name") or ""),
            unit=str(metric.get("unit") or ""),
            positive_direction=direction,
            threshold=_as_float(item.get("thresholdValue")),
            trend=trend,
            is_trending_positive=trend == "improving",
            values=values,
        )


__all__ = [
    "METRIC_HISTORY_ENDPOINT",
    "MetricsClient",
    "QUALITY_METRICS_ENDPOINT",
    "UPDATE_SETTING_ENDPOINT",
    "UPDATE_THRESHOLD_ENDPOINT",
    "calculate_trend",
]
