"""DeepSource GraphQL client layer."""

from deepsource_mcp.client.base import BaseDeepSourceClient
from deepsource_mcp.client.factory import DeepSourceClient, build_executor
from deepsource_mcp.client.issues import IssuesClient
from deepsource_mcp.client.metrics import MetricsClient, calculate_trend
from deepsource_mcp.client.pagination import (
    PaginationParams,
    fetch_pages,
    fetch_with_pagination,
    normalize_pagination,
    pagination_metadata,
)
from deepsource_mcp.client.projects import ProjectsClient
from deepsource_mcp.client.runs import RunsClient
from deepsource_mcp.client.security import SecurityClient, compliance_score
from deepsource_mcp.client.transport import GraphQLTransport

__all__ = [
    "BaseDeepSourceClient",
    "DeepSourceClient",
    "GraphQLTransport",
    "IssuesClient",
    "MetricsClient",
    "PaginationParams",
    "ProjectsClient",
    "RunsClient",
    "SecurityClient",
    "build_executor",
    "calculate_trend",
    "compliance_score",
    "fetch_pages",
    "fetch_with_pagination",
    "normalize_pagination",
    "pagination_metadata",
]
