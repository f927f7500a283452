"""
Pydantic schemas for Section 1: Ingestion

These models describe the records the dashboard receives from its query
service (endpoints, releases, vulnerabilities, mitigations, and the release /
endpoint detail payloads) plus the rows Section 2 emits after reconciliation.
"""

from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Severity(str, Enum):
    """Severity bucket of a finding or reconciled row."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    CLEAN = "clean"
    UNKNOWN = "unknown"


# Severities that can be counted on an aggregate record
COUNTED_SEVERITIES = (Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW)


class Category(str, Enum):
    """Record kinds the result views can list."""
    ENDPOINT = "endpoint"
    RELEASE = "release"
    VULNERABILITY = "vulnerability"
    MITIGATION = "mitigation"


def _none_to_list(value):
    return [] if value is None else value


def _none_to_zero(value):
    return 0 if value is None else value


class SeverityCounts(BaseModel):
    """Per-severity vulnerability counts carried by aggregate records."""
    critical: int = 0
    high: int = 0
    medium: int = 0
    low: int = 0

    normalize_counts = field_validator("critical", "high", "medium", "low", mode="before")(_none_to_zero)

    @property
    def total(self) -> int:
        return self.critical + self.high + self.medium + self.low

    @property
    def is_clean(self) -> bool:
        """True when no severity has a non-zero count."""
        return self.total == 0

    def count(self, severity: Severity | str) -> int:
        severity = Severity(severity)
        if severity not in COUNTED_SEVERITIES:
            return 0
        return getattr(self, severity.value)


class Finding(BaseModel):
    """
    A single vulnerability occurrence tied to one package/version.

    Findings are immutable once fetched. The query service calls the package
    identifier ``package``; both spellings are accepted.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    cve_id: str = Field(..., description="CVE or advisory identifier")
    summary: Optional[str] = Field(None, description="Short advisory summary")
    severity_rating: Optional[str] = Field(None, description="Raw severity label, any case")
    severity_score: Optional[float] = Field(None, description="Numeric severity score")
    package_identifier: str = Field(..., alias="package", description="Package name or package-URL")
    affected_version: Optional[str] = Field(None, description="Version the finding applies to")
    fixed_in: list[str] = Field(default_factory=list, description="Versions that fix the finding")
    full_purl: Optional[str] = Field(None, description="Package-URL including version")

    normalize_fixed_in = field_validator("fixed_in", mode="before")(_none_to_list)

    @property
    def key(self) -> tuple[str, str, Optional[str]]:
        return (self.cve_id, self.package_identifier, self.affected_version)


class NormalizedFinding(BaseModel):
    """A Finding reduced to the canonical comparison form used by reconciliation."""
    model_config = ConfigDict(frozen=True)

    cve_id: str
    severity: Severity = Severity.UNKNOWN
    score: float = 0.0
    package_identifier: str
    affected_version: str = "unknown"
    fixed_in_display: str = "—"
    full_purl: Optional[str] = None


class ManifestPackage(BaseModel):
    """A dependency declared in a release's software bill of materials."""
    model_config = ConfigDict(frozen=True)

    name: str = Field(..., description="Display name with any @version suffix removed")
    version: str = Field(default="unknown", description="Declared version")
    purl: Optional[str] = Field(None, description="Package-URL, or the computed identifier")

    @property
    def key(self) -> tuple[str, str]:
        return (self.purl or self.name, self.version)


class ParserMetadata(BaseModel):
    """Metadata about the parsing process."""
    parser_name: str = Field(..., description="Name of the parser used")
    parser_version: str = Field(default="1.0.0", description="Version of the parser")
    processed_at: datetime = Field(default_factory=datetime.utcnow, description="When processing occurred")
    processing_time_ms: Optional[int] = Field(None, description="Time taken to process in milliseconds")
    warnings: list[str] = Field(default_factory=list, description="Any warnings during parsing")
    errors: list[str] = Field(default_factory=list, description="Any non-fatal errors during parsing")


# ---------------------------------------------------------------------------
# Category records
# ---------------------------------------------------------------------------

class ReleaseRef(BaseModel):
    release_name: str
    release_version: str


class EndpointRecord(BaseModel):
    """A deployed endpoint and the aggregate vulnerability counts of its releases."""
    CATEGORY: ClassVar[Category] = Category.ENDPOINT

    endpoint_name: str
    endpoint_url: Optional[str] = None
    endpoint_type: Optional[str] = None
    environment: Optional[str] = None
    status: Optional[str] = None
    last_sync: Optional[str] = None
    release_count: int = 0
    total_vulnerabilities: SeverityCounts = Field(default_factory=SeverityCounts)
    releases: list[ReleaseRef] = Field(default_factory=list)

    normalize_releases = field_validator("releases", mode="before")(_none_to_list)
    normalize_release_count = field_validator("release_count", mode="before")(_none_to_zero)

    @field_validator("total_vulnerabilities", mode="before")
    @classmethod
    def default_counts(cls, value):
        return SeverityCounts() if value is None else value

    @property
    def key(self) -> str:
        return self.endpoint_name


class ReleaseRecord(BaseModel):
    """A software release with aggregate vulnerability counts."""
    CATEGORY: ClassVar[Category] = Category.RELEASE

    name: str
    version: str
    description: str = ""
    project_type: Optional[str] = None
    vulnerabilities: SeverityCounts = Field(default_factory=SeverityCounts)
    total_vulnerabilities: int = 0
    openssf_score: Optional[float] = Field(None, description="OpenSSF scorecard score (0-10)")
    dependency_count: int = 0
    synced_endpoint_count: int = 0
    updated: Optional[str] = None

    normalize_counts = field_validator(
        "total_vulnerabilities", "dependency_count", "synced_endpoint_count", mode="before"
    )(_none_to_zero)

    @property
    def key(self) -> tuple[str, str]:
        return (self.name, self.version)


class VulnerabilityRecord(BaseModel):
    """A vulnerability as listed across the organization."""
    CATEGORY: ClassVar[Category] = Category.VULNERABILITY

    cve_id: str
    summary: Optional[str] = None
    severity_score: Optional[float] = None
    severity_rating: Optional[str] = None
    package: Optional[str] = None
    affected_version: Optional[str] = None
    full_purl: Optional[str] = None
    fixed_in: list[str] = Field(default_factory=list)
    affected_releases: int = 0
    affected_endpoints: int = 0

    normalize_fixed_in = field_validator("fixed_in", mode="before")(_none_to_list)
    normalize_counts = field_validator("affected_releases", "affected_endpoints", mode="before")(_none_to_zero)

    @property
    def key(self) -> tuple[str, Optional[str]]:
        return (self.cve_id, self.package)


class MitigationRecord(VulnerabilityRecord):
    """A curated remediation candidate; selectable by CVE id."""
    CATEGORY: ClassVar[Category] = Category.MITIGATION

    @property
    def key(self) -> str:
        return self.cve_id


CategoryRecord = Union[EndpointRecord, ReleaseRecord, VulnerabilityRecord, MitigationRecord]

RECORD_TYPES: dict[Category, type[BaseModel]] = {
    Category.ENDPOINT: EndpointRecord,
    Category.RELEASE: ReleaseRecord,
    Category.VULNERABILITY: VulnerabilityRecord,
    Category.MITIGATION: MitigationRecord,
}


# ---------------------------------------------------------------------------
# Detail payloads
# ---------------------------------------------------------------------------

class SBOMDocument(BaseModel):
    key: Optional[str] = None
    content: Optional[str] = Field(None, description="Raw CycloneDX-style JSON text")


class SyncedEndpointRef(BaseModel):
    endpoint_name: str
    endpoint_url: Optional[str] = None
    endpoint_type: Optional[str] = None
    environment: Optional[str] = None
    last_sync: Optional[str] = None
    status: Optional[str] = None


class ReleaseDetail(BaseModel):
    """Full release payload: findings plus the optional dependency manifest."""
    name: str
    version: str
    project_type: Optional[str] = None
    vulnerabilities: list[Finding] = Field(default_factory=list)
    sbom: Optional[SBOMDocument] = None
    openssf_scorecard_score: Optional[float] = None
    dependency_count: int = 0
    synced_endpoint_count: int = 0
    synced_endpoints: list[SyncedEndpointRef] = Field(default_factory=list)

    normalize_lists = field_validator("vulnerabilities", "synced_endpoints", mode="before")(_none_to_list)
    normalize_counts = field_validator("dependency_count", "synced_endpoint_count", mode="before")(_none_to_zero)


class EndpointReleaseDetail(BaseModel):
    release_name: str
    release_version: str
    openssf_scorecard_score: Optional[float] = None
    dependency_count: int = 0
    last_sync: Optional[str] = None
    vulnerability_count: int = 0
    vulnerabilities: list[Finding] = Field(default_factory=list)

    normalize_vulnerabilities = field_validator("vulnerabilities", mode="before")(_none_to_list)
    normalize_counts = field_validator("dependency_count", "vulnerability_count", mode="before")(_none_to_zero)


class EndpointDetail(BaseModel):
    """Full endpoint payload: every release deployed there with its findings."""
    endpoint_name: str
    endpoint_url: Optional[str] = None
    endpoint_type: Optional[str] = None
    environment: Optional[str] = None
    status: Optional[str] = None
    last_sync: Optional[str] = None
    total_vulnerabilities: SeverityCounts = Field(default_factory=SeverityCounts)
    releases: list[EndpointReleaseDetail] = Field(default_factory=list)

    normalize_releases = field_validator("releases", mode="before")(_none_to_list)


# ---------------------------------------------------------------------------
# Output rows
# ---------------------------------------------------------------------------

class ReconciledRow(BaseModel):
    """
    One package line of a release or endpoint detail table.

    Either a (package, finding) pair or a synthetic ``clean`` row for a
    manifest package that no finding covers.
    """
    model_config = ConfigDict(frozen=True)

    cve_id: str = Field(..., description="Finding id, or an em dash for clean rows")
    severity: Severity
    score: float = 0.0
    package_name: str
    package_version: str
    fixed_in_display: str = "—"
    full_purl: Optional[str] = None
    release_name: Optional[str] = None
    release_version: Optional[str] = None

    @property
    def is_clean(self) -> bool:
        return self.severity == Severity.CLEAN
