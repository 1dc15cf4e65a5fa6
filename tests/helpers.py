"""Helpers shared across client and tool tests."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock

from deepsource_mcp.core.errors import ClassifiedError, ErrorCategory

Route = dict[str, Any] | BaseException | Callable[[dict[str, Any]], Any] | list[Any]


def route_executor(executor: AsyncMock, routes: dict[str, Route]) -> None:
    """Answer ``executor.execute`` by endpoint name.

    A route value may be a response dict, an exception to raise, a callable
    taking the variables, or a list consumed one item per call.
    """

    async def execute(query, variables=None, *, endpoint=None):
        if endpoint not in routes:
            raise AssertionError(f"unexpected endpoint: {endpoint}")
        result = routes[endpoint]
        if isinstance(result, list):
            result = result.pop(0)
        if callable(result) and not isinstance(result, BaseException):
            result = result(dict(variables or {}))
        if isinstance(result, BaseException):
            raise result
        return result

    executor.execute.side_effect = execute


def calls_for(executor: AsyncMock, endpoint: str) -> list[dict[str, Any]]:
    """Variables of every call made for ``endpoint``."""
    return [
        dict(call.args[1] or {}) if len(call.args) > 1 else {}
        for call in executor.execute.await_args_list
        if call.kwargs.get("endpoint") == endpoint
    ]


def run_node(
    run_uid: str,
    *,
    branch: str = "main",
    created_at: str = "2024-01-01T00:00:00+00:00",
    status: str = "SUCCESS",
    analyzers: tuple[str, ...] = ("python",),
) -> dict[str, Any]:
    return {
        "id": f"UnVuOi{run_uid[:4]}",
        "runUid": run_uid,
        "commitOid": "abc123def456",
        "branchName": branch,
        "baseOid": "000000",
        "status": status,
        "createdAt": created_at,
        "updatedAt": created_at,
        "finishedAt": created_at,
        "summary": {
            "occurrencesIntroduced": 4,
            "occurrencesResolved": 2,
            "occurrencesSuppressed": 1,
            "occurrenceDistributionByAnalyzer": [
                {"analyzerShortcode": name, "introduced": 2} for name in analyzers
            ],
            "occurrenceDistributionByCategory": [{"category": "BUG_RISK", "introduced": 4}],
        },
        "repository": {"name": "widgets", "id": "UmVwb3NpdG9yeTox"},
    }


def runs_response(nodes: list[dict[str, Any]], *, has_next=False, end_cursor=None) -> dict[str, Any]:
    return {
        "repository": {
            "name": "widgets",
            "id": "UmVwb3NpdG9yeTox",
            "runs": {
                "edges": [{"node": node} for node in nodes],
                "pageInfo": {
                    "hasNextPage": has_next,
                    "hasPreviousPage": False,
                    "startCursor": None,
                    "endCursor": end_cursor,
                },
                "totalCount": len(nodes),
            },
        }
    }


def issues_response() -> dict[str, Any]:
    return {
        "repository": {
            "name": "widgets",
            "issues": {
                "pageInfo": {
                    "hasNextPage": True,
                    "hasPreviousPage": False,
                    "startCursor": "s1",
                    "endCursor": "e1",
                },
                "totalCount": 42,
                "edges": [
                    {
                        "node": {
                            "id": "SXNzdWU6MQ==",
                            "title": "Unused import",
                            "shortcode": "PYL-W0611",
                            "category": "ANTI_PATTERN",
                            "severity": "MINOR",
                            "occurrences": {
                                "edges": [
                                    {
                                        "node": {
                                            "id": "occ-1",
                                            "status": "OPEN",
                                            "issueText": "`os` imported but unused",
                                            "filePath": "app/main.py",
                                            "beginLine": 3,
                                            "tags": ["unused"],
                                        }
                                    }
                                ]
                            },
                        }
                    },
                    {
                        "node": {
                            "id": "SXNzdWU6Mg==",
                            "title": None,
                            "shortcode": "PYL-E1101",
                            "category": "BUG_RISK",
                            "severity": "MAJOR",
                            "occurrences": {
                                "edges": [
                                    {"node": {"id": "occ-2", "status": "OPEN", "filePath": None}}
                                ]
                            },
                        }
                    },
                ],
            },
        }
    }


def metrics_response() -> dict[str, Any]:
    return {
        "repository": {
            "id": "UmVwb3NpdG9yeTox",
            "metrics": [
                {
                    "shortcode": "LCV",
                    "name": "Line Coverage",
                    "description": "Lines covered by tests",
                    "isReported": True,
                    "isThresholdEnforced": True,
                    "direction": "UPWARD",
                    "unit": "%",
                    "items": [
                        {
                            "id": "item-1",
                            "key": "AGGREGATE",
                            "name": "Aggregate",
                            "value": 72.5,
                            "thresholdValue": 80,
                            "thresholdStatus": "FAILING",
                        },
                        {
                            "id": "item-2",
                            "key": "PYTHON",
                            "name": "Python",
                            "value": None,
                            "thresholdValue": None,
                            "thresholdStatus": None,
                        },
                    ],
                }
            ],
        }
    }


def vulnerabilities_response() -> dict[str, Any]:
    return {
        "repository": {
            "dependencyVulnerabilities": {
                "edges": [
                    {
                        "node": {
                            "id": "vo-1",
                            "package": {"id": "p1", "ecosystem": "PyPI", "name": "requests"},
                            "packageVersion": {"id": "pv1", "version": "2.19.0"},
                            "vulnerability": {
                                "id": "v1",
                                "identifier": "GHSA-x84v-xcm2-53pg",
                                "summary": "Insufficiently protected credentials",
                                "details": "Requests leaks Proxy-Authorization headers.",
                                "severity": "HIGH",
                                "cvssV3BaseScore": 7.5,
                                "cvssV2BaseScore": None,
                                "fixedVersions": ["2.20.0"],
                                "aliases": ["CVE-2018-18074"],
                                "referenceUrls": ["https://nvd.nist.gov/vuln/detail/CVE-2018-18074"],
                            },
                        }
                    },
                    {"node": {"id": "vo-2", "package": None}},
                ],
                "pageInfo": {
                    "hasNextPage": False,
                    "hasPreviousPage": False,
                    "startCursor": None,
                    "endCursor": None,
                },
                "totalCount": 1,
            }
        }
    }


def compliance_response(field: str = "owaspTop10", status: str = "FAILING") -> dict[str, Any]:
    return {
        "repository": {
            "name": "widgets",
            "id": "UmVwb3NpdG9yeTox",
            "reports": {
                field: {
                    "status": status,
                    "categories": [
                        {
                            "name": "A01",
                            "status": "FAILING",
                            "criticalCount": 1,
                            "majorCount": 2,
                            "minorCount": 3,
                            "total": 6,
                        },
                        {
                            "name": "A03",
                            "status": "PASSING",
                            "criticalCount": 0,
                            "majorCount": 1,
                            "minorCount": 0,
                            "total": 1,
                        },
                    ],
                }
            },
        }
    }


def not_found_error(message: str = "Repository not found") -> ClassifiedError:
    return ClassifiedError(ErrorCategory.NOT_FOUND, message)
