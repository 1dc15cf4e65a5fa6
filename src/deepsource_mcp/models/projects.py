"""Project records."""

from __future__ import annotations

from .base import DeepSourceModel


class RepositoryInfo(DeepSourceModel):
    """Where a project lives on its VCS provider."""

    url: str
    provider: str
    login: str
    name: str
    is_private: bool = False
    is_activated: bool = False


class Project(DeepSourceModel):
    """A DeepSource project. ``key`` is the repository DSN."""

    key: str
    name: str
    repository: RepositoryInfo
