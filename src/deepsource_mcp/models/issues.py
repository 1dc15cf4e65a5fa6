"""Issue records."""

from __future__ import annotations

from pydantic import ConfigDict, Field

from .base import DeepSourceModel


class Issue(DeepSourceModel):
    """One issue occurrence, flattened with its issue metadata.

    Field names are snake_case on the wire as well.
    """

    model_config = ConfigDict(alias_generator=None)

    id: str
    title: str = "Unknown Issue"
    shortcode: str = "UNKNOWN"
    category: str = "UNKNOWN"
    severity: str = "UNKNOWN"
    status: str = "UNKNOWN"
    issue_text: str = ""
    file_path: str = ""
    line_number: int = 0
    tags: list[str] = Field(default_factory=list)
