"""Analysis run records."""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from .base import DeepSourceModel, PageInfo
from .issues import Issue


class RunStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"
    TIMEOUT = "TIMEOUT"
    CANCEL = "CANCEL"
    READY = "READY"
    SKIPPED = "SKIPPED"


RUN_STATUS_INFO: dict[str, str] = {
    RunStatus.PENDING.value: "The run is currently queued and waiting to be processed.",
    RunStatus.SUCCESS.value: "The run completed successfully with all analyzers.",
    RunStatus.FAILURE.value: "The run failed due to an error during analysis.",
    RunStatus.TIMEOUT.value: "The run exceeded the maximum allowed time and was terminated.",
    RunStatus.CANCEL.value: "The run was manually cancelled.",
    RunStatus.READY.value: "The run is ready to be processed but not yet started.",
    RunStatus.SKIPPED.value: "The run was skipped, possibly due to no code changes detected.",
}


def describe_run_status(status: str) -> str:
    return RUN_STATUS_INFO.get(status, f"Unknown status: {status}")


class AnalyzerDistribution(DeepSourceModel):
    analyzer_shortcode: str
    introduced: int = 0


class CategoryDistribution(DeepSourceModel):
    category: str
    introduced: int = 0


class RunSummary(DeepSourceModel):
    occurrences_introduced: int = 0
    occurrences_resolved: int = 0
    occurrences_suppressed: int = 0
    occurrence_distribution_by_analyzer: list[AnalyzerDistribution] | None = None
    occurrence_distribution_by_category: list[CategoryDistribution] | None = None


class RunRepository(DeepSourceModel):
    name: str = ""
    id: str = ""


class Run(DeepSourceModel):
    """A DeepSource analysis run."""

    id: str
    run_uid: str
    commit_oid: str = ""
    branch_name: str = ""
    base_oid: str = ""
    status: str = "UNKNOWN"
    created_at: str = ""
    updated_at: str = ""
    finished_at: str | None = None
    summary: RunSummary = Field(default_factory=RunSummary)
    repository: RunRepository = Field(default_factory=RunRepository)


class RecentRunIssues(DeepSourceModel):
    """Issues of the most recent run on a branch."""

    run: Run
    items: list[Issue] = Field(default_factory=list)
    page_info: PageInfo = Field(default_factory=PageInfo)
    total_count: int = 0
