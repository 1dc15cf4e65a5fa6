"""Compliance report and dependency vulnerability records."""

from __future__ import annotations

from enum import Enum

from pydantic import Field

from .base import DeepSourceModel


class ReportType(str, Enum):
    # Compliance reports
    OWASP_TOP_10 = "OWASP_TOP_10"
    SANS_TOP_25 = "SANS_TOP_25"
    MISRA_C = "MISRA_C"

    # General reports
    CODE_COVERAGE = "CODE_COVERAGE"
    CODE_HEALTH_TREND = "CODE_HEALTH_TREND"
    ISSUE_DISTRIBUTION = "ISSUE_DISTRIBUTION"
    ISSUES_PREVENTED = "ISSUES_PREVENTED"
    ISSUES_AUTOFIXED = "ISSUES_AUTOFIXED"


class ReportStatus(str, Enum):
    PASSING = "PASSING"
    FAILING = "FAILING"
    NOOP = "NOOP"


COMPLIANCE_REPORT_FIELDS: dict[ReportType, str] = {
    ReportType.OWASP_TOP_10: "owaspTop10",
    ReportType.SANS_TOP_25: "sansTop25",
    ReportType.MISRA_C: "misraC",
}

COMPLIANCE_REPORT_TITLES: dict[ReportType, str] = {
    ReportType.OWASP_TOP_10: "OWASP Top 10",
    ReportType.SANS_TOP_25: "SANS Top 25",
    ReportType.MISRA_C: "MISRA C",
}

COMPLIANCE_REPORT_RESOURCES: dict[ReportType, str] = {
    ReportType.OWASP_TOP_10: "OWASP Top 10: https://owasp.org/www-project-top-ten/",
    ReportType.SANS_TOP_25: "SANS Top 25: https://www.sans.org/top25-software-errors/",
    ReportType.MISRA_C: "MISRA-C: https://www.misra.org.uk/",
}


class SeverityDistribution(DeepSourceModel):
    critical: int = 0
    major: int = 0
    minor: int = 0
    total: int = 0


class SecurityIssueStat(DeepSourceModel):
    """Per-category counts of a compliance report."""

    key: str
    title: str
    status: str = ReportStatus.NOOP.value
    description: str = ""
    occurrence: SeverityDistribution = Field(default_factory=SeverityDistribution)


class ReportTrend(DeepSourceModel):
    label: str | None = None
    value: float | None = None
    change_percentage: float | None = None


class ComplianceReport(DeepSourceModel):
    key: ReportType
    title: str
    status: str = ReportStatus.NOOP.value
    current_value: float | None = None
    """Compliance score, 0-100."""
    severity_distribution: SeverityDistribution = Field(default_factory=SeverityDistribution)
    security_issue_stats: list[SecurityIssueStat] = Field(default_factory=list)
    trends: list[ReportTrend] = Field(default_factory=list)


class Package(DeepSourceModel):
    id: str = ""
    ecosystem: str = ""
    name: str = ""


class PackageVersion(DeepSourceModel):
    id: str = ""
    version: str = ""


class Vulnerability(DeepSourceModel):
    id: str = ""
    identifier: str = ""
    summary: str = ""
    details: str = ""
    severity: str = "NONE"
    cvss_v3_base_score: float | None = Field(default=None, alias="cvssV3BaseScore")
    cvss_v2_base_score: float | None = Field(default=None, alias="cvssV2BaseScore")
    fixed_versions: list[str] = Field(default_factory=list)
    aliases: list[str] = Field(default_factory=list)
    reference_urls: list[str] = Field(default_factory=list)


class VulnerabilityOccurrence(DeepSourceModel):
    id: str
    package: Package
    package_version: PackageVersion
    vulnerability: Vulnerability
