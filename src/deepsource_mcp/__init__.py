"""DeepSource MCP server.

Exposes DeepSource's static-analysis API (projects, issues, runs, quality
metrics, compliance reports and dependency vulnerabilities) as Model Context
Protocol tools.
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
