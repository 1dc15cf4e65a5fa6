"""Tests for the domain clients behind DeepSourceClient."""

from unittest.mock import AsyncMock

import httpx
import pytest
from helpers import (
    calls_for,
    compliance_response,
    issues_response,
    metrics_response,
    not_found_error,
    route_executor,
    run_node,
    runs_response,
    vulnerabilities_response,
)

from deepsource_mcp.client import (
    DeepSourceClient,
    PaginationParams,
    build_executor,
    calculate_trend,
    compliance_score,
)
from deepsource_mcp.client.queries import RUN_BY_COMMIT_QUERY, RUN_BY_UID_QUERY
from deepsource_mcp.core.config import CircuitBreakerConfig, RetryConfig, ServerConfig
from deepsource_mcp.core.constants import RUN_OCCURRENCES_PAGE_SIZE
from deepsource_mcp.core.errors import ClassifiedError, ConfigurationError, ErrorCategory
from deepsource_mcp.execution import DirectExecutor, RetryingExecutor
from deepsource_mcp.models import (
    MetricHistoryParams,
    MetricHistoryValue,
    ReportType,
    SeverityDistribution,
    UpdateMetricSettingParams,
    UpdateMetricThresholdParams,
)

RUN_UID = "3f2b8c1e-7d4a-4e2b-9c1d-5a6b7c8d9e0f"
NONE_TYPE = "'NoneType' object has no attribute 'metrics'"


class TestProjects:
    async def test_lists_projects_with_dsn(self, client, executor, viewer_response):
        route_executor(executor, {"projects": viewer_response})

        projects = await client.projects.list_projects()

        assert [project.key for project in projects] == ["dsn-widgets"]
        repo = projects[0].repository
        assert repo.login == "acme"
        assert repo.name == "widgets"
        assert repo.provider == "GITHUB"
        assert repo.is_activated is True
        assert repo.is_private is False

    async def test_none_type_error_means_no_projects(self, client, executor):
        route_executor(executor, {"projects": not_found_error(NONE_TYPE)})
        assert await client.projects.list_projects() == []

    async def test_other_errors_propagate(self, client, executor):
        route_executor(executor, {"projects": ClassifiedError(ErrorCategory.AUTH, "bad key")})
        with pytest.raises(ClassifiedError) as exc_info:
            await client.projects.list_projects()
        assert exc_info.value.category is ErrorCategory.AUTH

    async def test_project_exists(self, client, executor, viewer_response):
        route_executor(executor, {"projects": viewer_response})
        assert await client.projects.project_exists("dsn-widgets")
        assert not await client.projects.project_exists("no-dsn")

    async def test_find_by_login_and_name(self, client, executor, viewer_response):
        route_executor(executor, {"projects": viewer_response})

        project = await client.projects.find_project_by_key("acme/widgets")
        assert project is not None
        assert project.key == "dsn-widgets"
        assert await client.projects.find_project_by_key("acme/unknown") is None


class TestIssues:
    async def test_flattens_occurrences(self, client, executor, viewer_response):
        route_executor(
            executor,
            {"projects": viewer_response, "project_issues": issues_response()},
        )

        page, pages_fetched = await client.issues.get_issues("dsn-widgets", path="app/")

        assert pages_fetched == 1
        assert page.total_count == 42
        assert page.page_info.has_next_page is True
        assert page.page_info.end_cursor == "e1"

        first, second = page.items
        assert first.id == "occ-1"
        assert first.shortcode == "PYL-W0611"
        assert first.file_path == "app/main.py"
        assert first.line_number == 3
        assert first.tags == ["unused"]
        assert second.title == "Unknown Issue"
        assert second.file_path == "N/A"
        assert second.line_number == 0

        (variables,) = calls_for(executor, "project_issues")
        assert variables == {
            "login": "acme",
            "name": "widgets",
            "provider": "GITHUB",
            "path": "app/",
            "first": 10,
        }

    async def test_filters_forwarded(self, client, executor, viewer_response):
        route_executor(
            executor,
            {"projects": viewer_response, "project_issues": issues_response()},
        )
        await client.issues.get_issues(
            "dsn-widgets",
            analyzer_in=["python"],
            tags=["security"],
            pagination=PaginationParams(first=5, after="cur"),
        )

        (variables,) = calls_for(executor, "project_issues")
        assert variables["analyzerIn"] == ["python"]
        assert variables["tags"] == ["security"]
        assert variables["first"] == 5
        assert variables["after"] == "cur"

    async def test_unknown_project_is_empty(self, client, executor, viewer_response):
        route_executor(executor, {"projects": viewer_response})

        page, pages_fetched = await client.issues.get_issues("missing")

        assert page.items == []
        assert pages_fetched == 0
        assert calls_for(executor, "project_issues") == []

    async def test_none_type_is_empty_page(self, client, executor, viewer_response):
        route_executor(
            executor,
            {"projects": viewer_response, "project_issues": not_found_error(NONE_TYPE)},
        )
        page, _ = await client.issues.get_issues("dsn-widgets")
        assert page.items == []
        assert page.total_count == 0


class TestRuns:
    async def test_list_runs_filters_by_analyzer(self, client, executor, viewer_response):
        nodes = [
            run_node("run-a", analyzers=("python",)),
            run_node("run-b", analyzers=("javascript",)),
        ]
        route_executor(executor, {"projects": viewer_response, "runs": runs_response(nodes)})

        page = await client.runs.list_runs("dsn-widgets", analyzer_in=["javascript"])

        assert [run.run_uid for run in page.items] == ["run-b"]
        assert page.total_count == 2

    async def test_get_run_by_uid(self, client, executor):
        route_executor(executor, {"run": {"run": run_node(RUN_UID)}})

        run = await client.runs.get_run(RUN_UID)

        assert run is not None
        assert run.run_uid == RUN_UID
        assert run.summary.occurrences_introduced == 4
        call = executor.execute.await_args
        assert call.args[0] == RUN_BY_UID_QUERY
        assert call.args[1] == {"runUid": RUN_UID}

    async def test_get_run_by_commit(self, client, executor):
        route_executor(executor, {"run": {"runByCommit": run_node(RUN_UID)}})

        run = await client.runs.get_run("abc123def456")

        assert run is not None
        call = executor.execute.await_args
        assert call.args[0] == RUN_BY_COMMIT_QUERY
        assert call.args[1] == {"commitOid": "abc123def456"}

    async def test_explicit_commit_flag_wins(self, client, executor):
        route_executor(executor, {"run": {"runByCommit": run_node(RUN_UID)}})
        await client.runs.get_run(RUN_UID, is_commit_oid=True)
        assert executor.execute.await_args.args[0] == RUN_BY_COMMIT_QUERY

    async def test_missing_run_is_none(self, client, executor):
        route_executor(executor, {"run": not_found_error("Run does not exist")})
        assert await client.runs.get_run(RUN_UID) is None

    async def test_empty_payload_is_none(self, client, executor):
        route_executor(executor, {"run": {"run": None}})
        assert await client.runs.get_run(RUN_UID) is None

    async def test_most_recent_run_scans_all_pages(self, client, executor, viewer_response):
        pages = [
            runs_response(
                [
                    run_node("old-main", created_at="2024-01-01T00:00:00+00:00"),
                    run_node("feature", branch="feature", created_at="2024-06-01T00:00:00+00:00"),
                ],
                has_next=True,
                end_cursor="page-2",
            ),
            runs_response([run_node("new-main", created_at="2024-03-01T00:00:00+00:00")]),
        ]
        route_executor(executor, {"projects": viewer_response, "runs": pages})

        run = await client.runs.find_most_recent_run_for_branch("dsn-widgets", "main")

        assert run.run_uid == "new-main"
        runs_calls = calls_for(executor, "runs")
        assert [call.get("after") for call in runs_calls] == [None, "page-2"]
        assert all(call["first"] == 50 for call in runs_calls)

    async def test_most_recent_run_resolves_project_once(self, client, executor, viewer_response):
        pages = [
            runs_response([run_node("r1")], has_next=True, end_cursor="page-2"),
            runs_response([run_node("r2")], has_next=True, end_cursor="page-3"),
            runs_response([run_node("r3", created_at="2024-02-01T00:00:00+00:00")]),
        ]
        route_executor(executor, {"projects": viewer_response, "runs": pages})

        run = await client.runs.find_most_recent_run_for_branch("dsn-widgets", "main")

        assert run.run_uid == "r3"
        assert len(calls_for(executor, "runs")) == 3
        assert len(calls_for(executor, "projects")) == 1

    async def test_most_recent_run_unknown_project(self, client, executor, viewer_response):
        route_executor(executor, {"projects": viewer_response})

        with pytest.raises(ClassifiedError) as exc_info:
            await client.runs.find_most_recent_run_for_branch("dsn-missing", "main")

        assert exc_info.value.category is ErrorCategory.NOT_FOUND
        assert calls_for(executor, "runs") == []

    async def test_most_recent_run_missing_branch(self, client, executor, viewer_response):
        route_executor(
            executor,
            {"projects": viewer_response, "runs": runs_response([run_node("a")])},
        )

        with pytest.raises(ClassifiedError) as exc_info:
            await client.runs.find_most_recent_run_for_branch("dsn-widgets", "release")

        assert exc_info.value.category is ErrorCategory.NOT_FOUND
        assert exc_info.value.code == "RUN_NOT_FOUND"
        assert "release" in exc_info.value.message

    async def test_recent_run_issues(self, client, executor, viewer_response):
        occurrences = {
            "run": {
                "checks": {
                    "edges": [
                        {
                            "node": {
                                "occurrences": {
                                    "edges": [
                                        {
                                            "node": {
                                                "id": "occ-9",
                                                "issueText": "Possible SQL injection",
                                                "path": "db/query.py",
                                                "beginLine": 12,
                                                "issue": {
                                                    "shortcode": "BAN-B608",
                                                    "title": "SQL injection",
                                                    "category": "SECURITY",
                                                    "severity": "CRITICAL",
                                                },
                                            }
                                        }
                                    ]
                                }
                            }
                        }
                    ]
                }
            }
        }
        route_executor(
            executor,
            {
                "projects": viewer_response,
                "runs": runs_response([run_node(RUN_UID)]),
                "recent_run_issues": occurrences,
            },
        )

        result = await client.runs.get_recent_run_issues("dsn-widgets", "main")

        assert result.run.run_uid == RUN_UID
        assert result.total_count == 1
        assert result.page_info.has_next_page is False
        (issue,) = result.items
        assert issue.shortcode == "BAN-B608"
        assert issue.file_path == "db/query.py"
        assert issue.status == "OPEN"
        assert calls_for(executor, "recent_run_issues") == [
            {"runUid": RUN_UID, "first": RUN_OCCURRENCES_PAGE_SIZE}
        ]


class TestMetrics:
    async def test_quality_metrics(self, client, executor, viewer_response):
        route_executor(
            executor,
            {"projects": viewer_response, "quality_metrics": metrics_response()},
        )

        result = await client.metrics.get_quality_metrics("dsn-widgets", ["LCV"])

        assert result.repository_id == "UmVwb3NpdG9yeTox"
        (metric,) = result.metrics
        assert metric.shortcode == "LCV"
        assert metric.is_threshold_enforced is True
        aggregate, python = metric.items
        assert aggregate.threshold == 80.0
        assert aggregate.latest_value == 72.5
        assert aggregate.latest_value_display == "72.5"
        assert aggregate.threshold_status == "FAILING"
        assert python.latest_value is None
        assert python.latest_value_display == ""
        assert python.threshold_status == "UNKNOWN"
        assert calls_for(executor, "quality_metrics")[0]["shortcodeIn"] == ["LCV"]

    async def test_unknown_project_has_no_metrics(self, client, executor, viewer_response):
        route_executor(executor, {"projects": viewer_response})
        result = await client.metrics.get_quality_metrics("missing")
        assert result.metrics == []
        assert result.repository_id is None

    async def test_set_threshold_reads_success(self, client, executor):
        route_executor(
            executor,
            {"update_metric_threshold": {"updateMetricThreshold": {"success": True}}},
        )
        params = UpdateMetricThresholdParams(
            repository_id="UmVwb3NpdG9yeTox",
            metric_shortcode="LCV",
            metric_key="AGGREGATE",
            threshold_value=None,
        )

        result = await client.metrics.set_metric_threshold(params)

        assert result.ok is True
        assert calls_for(executor, "update_metric_threshold") == [
            {
                "repositoryId": "UmVwb3NpdG9yeTox",
                "metricShortcode": "LCV",
                "metricKey": "AGGREGATE",
                "thresholdValue": None,
            }
        ]

    async def test_update_setting_without_success_is_not_ok(self, client, executor):
        route_executor(executor, {"update_metric_setting": {"updateMetricSetting": None}})
        params = UpdateMetricSettingParams(
            repository_id="UmVwb3NpdG9yeTox",
            metric_shortcode="DDP",
            is_reported=True,
            is_threshold_enforced=False,
        )
        result = await client.metrics.update_metric_setting(params)
        assert result.ok is False

    async def test_metric_history(self, client, executor, viewer_response):
        history = {
            "repository": {
                "metrics": [
                    {
                        "shortcode": "DDP",
                        "name": "Duplicate Code Percentage",
                        "unit": "%",
                        "direction": "DOWNWARD",
                        "items": [
                            {
                                "key": "AGGREGATE",
                                "thresholdValue": 5,
                                "values": {
                                    "edges": [
                                        {
                                            "node": {
                                                "value": 8,
                                                "commitOid": "c2",
                                                "measuredAt": "2024-02-01T00:00:00Z",
                                            }
                                        },
                                        {
                                            "node": {
                                                "value": 12,
                                                "commitOid": "c1",
                                                "measuredAt": "2024-01-01T00:00:00Z",
                                            }
                                        },
                                    ]
                                },
                            }
                        ],
                    }
                ]
            }
        }
        route_executor(executor, {"projects": viewer_response, "metric_history": history})
        params = MetricHistoryParams(
            project_key="dsn-widgets",
            metric_shortcode="DDP",
            metric_key="AGGREGATE",
            limit=2,
        )

        result = await client.metrics.get_metric_history(params)

        assert result is not None
        assert result.trend == "improving"
        assert result.is_trending_positive is True
        assert result.threshold == 5.0
        assert [value.commit_oid for value in result.values] == ["c2", "c1"]
        assert calls_for(executor, "metric_history")[0]["first"] == 2

    async def test_metric_history_missing_item(self, client, executor, viewer_response):
        history = {"repository": {"metrics": [{"shortcode": "DDP", "items": []}]}}
        route_executor(executor, {"projects": viewer_response, "metric_history": history})
        params = MetricHistoryParams(
            project_key="dsn-widgets",
            metric_shortcode="DDP",
            metric_key="AGGREGATE",
        )
        assert await client.metrics.get_metric_history(params) is None


def history(*points: tuple[str, float]) -> list[MetricHistoryValue]:
    return [
        MetricHistoryValue(value=value, value_display=str(value), created_at=created_at)
        for created_at, value in points
    ]


class TestCalculateTrend:
    def test_single_value_is_stable(self):
        assert calculate_trend(history(("2024-01-01", 10.0))) == "stable"

    def test_small_change_is_stable(self):
        values = history(("2024-01-01", 100.0), ("2024-02-01", 103.0))
        assert calculate_trend(values) == "stable"

    def test_upward_metric(self):
        values = history(("2024-01-01", 50.0), ("2024-02-01", 60.0))
        assert calculate_trend(values, "UPWARD") == "improving"
        assert calculate_trend(list(reversed(values)), "UPWARD") == "improving"

    def test_upward_metric_declining(self):
        values = history(("2024-01-01", 60.0), ("2024-02-01", 50.0))
        assert calculate_trend(values, "UPWARD") == "declining"

    def test_downward_metric_inverts(self):
        values = history(("2024-01-01", 60.0), ("2024-02-01", 50.0))
        assert calculate_trend(values, "DOWNWARD") == "improving"

    def test_from_zero(self):
        assert calculate_trend(history(("2024-01-01", 0.0), ("2024-02-01", 5.0))) == "improving"
        assert calculate_trend(history(("2024-01-01", 0.0), ("2024-02-01", 0.0))) == "stable"


class TestSecurity:
    @pytest.mark.parametrize("report_type", ["CODE_COVERAGE", "bogus"])
    async def test_unsupported_report_type(self, client, executor, report_type):
        with pytest.raises(ClassifiedError) as exc_info:
            await client.security.get_compliance_report("dsn-widgets", report_type)

        assert exc_info.value.category is ErrorCategory.CLIENT
        assert exc_info.value.code == "UNSUPPORTED_REPORT_TYPE"
        executor.execute.assert_not_awaited()

    async def test_compliance_report(self, client, executor, viewer_response):
        route_executor(
            executor,
            {"projects": viewer_response, "compliance_report": compliance_response()},
        )

        report = await client.security.get_compliance_report("dsn-widgets", ReportType.OWASP_TOP_10)

        assert report is not None
        assert report.title == "OWASP Top 10"
        assert report.status == "FAILING"
        assert report.severity_distribution.critical == 1
        assert report.severity_distribution.major == 3
        assert report.severity_distribution.total == 7
        assert report.current_value == 72
        assert [stat.key for stat in report.security_issue_stats] == ["A01", "A03"]
        assert "owaspTop10" in executor.execute.await_args.args[0]

    async def test_sans_report_uses_its_field(self, client, executor, viewer_response):
        route_executor(
            executor,
            {
                "projects": viewer_response,
                "compliance_report": compliance_response("sansTop25", "PASSING"),
            },
        )
        report = await client.security.get_compliance_report("dsn-widgets", "SANS_TOP_25")
        assert report is not None
        assert report.title == "SANS Top 25"
        assert report.status == "PASSING"

    async def test_missing_report_is_none(self, client, executor, viewer_response):
        route_executor(
            executor,
            {"projects": viewer_response, "compliance_report": {"repository": {"reports": {}}}},
        )
        assert await client.security.get_compliance_report("dsn-widgets", "MISRA_C") is None

    async def test_vulnerabilities_skip_incomplete_nodes(self, client, executor, viewer_response):
        route_executor(
            executor,
            {
                "projects": viewer_response,
                "dependency_vulnerabilities": vulnerabilities_response(),
            },
        )

        page = await client.security.get_dependency_vulnerabilities("dsn-widgets")

        (occurrence,) = page.items
        assert occurrence.package.name == "requests"
        assert occurrence.package_version.version == "2.19.0"
        assert occurrence.vulnerability.cvss_v3_base_score == 7.5
        assert occurrence.vulnerability.cvss_v2_base_score is None
        assert occurrence.vulnerability.fixed_versions == ["2.20.0"]
        assert page.total_count == 1


class TestComplianceScore:
    def test_no_issues_scores_full(self):
        assert compliance_score(SeverityDistribution()) == 100

    def test_weighted(self):
        distribution = SeverityDistribution(critical=2, major=3, minor=4, total=9)
        assert compliance_score(distribution) == 100 - 20 - 15 - 4

    def test_floored_at_zero(self):
        assert compliance_score(SeverityDistribution(critical=20, total=20)) == 0


class TestFactory:
    def test_retry_disabled_builds_direct_executor(self):
        config = ServerConfig(retry=RetryConfig(enabled=False))
        assert isinstance(build_executor(AsyncMock(), config), DirectExecutor)

    def test_retrying_executor_with_breakers(self):
        executor = build_executor(AsyncMock(), ServerConfig())
        assert isinstance(executor, RetryingExecutor)
        assert executor.breakers is not None
        assert executor.budget is not None

    def test_breakers_can_be_disabled(self):
        config = ServerConfig(circuit_breaker=CircuitBreakerConfig(enabled=False))
        executor = build_executor(AsyncMock(), config)
        assert isinstance(executor, RetryingExecutor)
        assert executor.breakers is None

    def test_health_direct(self):
        client = DeepSourceClient(AsyncMock(), DirectExecutor(AsyncMock()))
        assert client.health() == {"executor": "direct"}

    def test_health_retrying(self):
        client = DeepSourceClient(AsyncMock(), build_executor(AsyncMock(), ServerConfig()))
        health = client.health()
        assert health["executor"] == "retrying"
        assert "circuit_breakers" in health
        assert "retry_budgets" in health

    def test_from_config_requires_key(self):
        with pytest.raises(ConfigurationError):
            DeepSourceClient.from_config(ServerConfig())

    async def test_from_config_end_to_end(self, viewer_response):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": viewer_response})

        config = ServerConfig.model_validate({"client": {"api_key": "ds-test-key"}})
        async with DeepSourceClient.from_config(
            config, http_transport=httpx.MockTransport(handler)
        ) as client:
            projects = await client.projects.list_projects()

        assert [project.key for project in projects] == ["dsn-widgets"]
