"""
Section 1: Ingestion

Turns raw query-service payloads (category lists, release and endpoint
detail documents, SBOM manifests) into typed records for Section 2.

Example:
    >>> from src.section1_ingestion import Normalizer, Category, parse_manifest
    >>>
    >>> records = Normalizer().ingest("data/mitigations.json", Category.MITIGATION)
    >>> packages = parse_manifest(release_detail.sbom.content)
"""

from dotenv import load_dotenv

load_dotenv()

from .schemas import (
    Category,
    CategoryRecord,
    EndpointDetail,
    EndpointRecord,
    Finding,
    ManifestPackage,
    MitigationRecord,
    NormalizedFinding,
    ParserMetadata,
    ReconciledRow,
    ReleaseDetail,
    ReleaseRecord,
    Severity,
    SeverityCounts,
    VulnerabilityRecord,
)
from .normalizer import (
    Normalizer,
    aggregate_affected_releases,
    ingest_file,
    normalize_finding,
    normalize_severity,
)
from .parsers import SBOMParser, parse_manifest

__all__ = [
    # Schemas
    "Category",
    "CategoryRecord",
    "EndpointDetail",
    "EndpointRecord",
    "Finding",
    "ManifestPackage",
    "MitigationRecord",
    "NormalizedFinding",
    "ParserMetadata",
    "ReconciledRow",
    "ReleaseDetail",
    "ReleaseRecord",
    "Severity",
    "SeverityCounts",
    "VulnerabilityRecord",
    # Normalizer
    "Normalizer",
    "aggregate_affected_releases",
    "ingest_file",
    "normalize_finding",
    "normalize_severity",
    # Parsers
    "SBOMParser",
    "parse_manifest",
]
