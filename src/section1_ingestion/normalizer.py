"""
Normalizer: turns raw query-service payloads into typed records.

Finding normalization lives here (severity/score/version defaults and the
fixed-in display string), along with the per-category record loaders and the
aggregation of affected-release rows into release records.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Optional

import pandas as pd

from .schemas import (
    COUNTED_SEVERITIES,
    RECORD_TYPES,
    Category,
    CategoryRecord,
    EndpointDetail,
    Finding,
    NormalizedFinding,
    ReleaseDetail,
    ReleaseRecord,
    Severity,
    SeverityCounts,
)

logger = logging.getLogger(__name__)

UNKNOWN_VERSION = "unknown"
EMPTY_DISPLAY = "—"

# Root keys of the query-service responses per category
RESPONSE_KEYS: dict[Category, str] = {
    Category.ENDPOINT: "syncedEndpoints",
    Category.RELEASE: "affectedReleases",
    Category.VULNERABILITY: "vulnerabilities",
    Category.MITIGATION: "mitigations",
}

# Columns the affected-release aggregation reads, with their fill values
AFFECTED_RELEASE_COLUMNS: dict[str, Any] = {
    "release_name": None,
    "release_version": None,
    "cve_id": None,
    "package": None,
    "affected_version": None,
    "severity_rating": None,
    "project_type": None,
    "openssf_scorecard_score": None,
    "dependency_count": 0,
    "synced_endpoint_count": 0,
    "modified": None,
}

_GROUP_KEYS = ["release_name", "release_version"]


def normalize_severity(rating: Optional[str]) -> Severity:
    """
    Map a raw severity label to a Severity bucket.

    Labels are compared lower-cased; an absent label, an unrecognised one, or
    ``clean`` (a single finding is never clean) become ``unknown``.
    """
    if not rating:
        return Severity.UNKNOWN

    value = str(rating).strip().lower()
    try:
        severity = Severity(value)
    except ValueError:
        logger.debug("Unrecognised severity rating %r", rating)
        return Severity.UNKNOWN

    return Severity.UNKNOWN if severity == Severity.CLEAN else severity


def format_fixed_in(fixed_in: Optional[Iterable[str]]) -> str:
    """Join fix versions with ", "; no versions renders as an em dash."""
    versions = [str(v) for v in (fixed_in or [])]
    return ", ".join(versions) if versions else EMPTY_DISPLAY


def normalize_finding(finding: Finding) -> NormalizedFinding:
    """Pure normalization of one finding; the input is not modified."""
    return NormalizedFinding(
        cve_id=finding.cve_id,
        severity=normalize_severity(finding.severity_rating),
        score=finding.severity_score if finding.severity_score is not None else 0.0,
        package_identifier=finding.package_identifier,
        affected_version=finding.affected_version or UNKNOWN_VERSION,
        fixed_in_display=format_fixed_in(finding.fixed_in),
        full_purl=finding.full_purl,
    )


def _optional_float(value) -> Optional[float]:
    """Convert a pandas cell to float, mapping NaN to None."""
    if pd.isna(value):
        return None
    return float(value)


def _optional_str(value) -> Optional[str]:
    if pd.isna(value) or value == "":
        return None
    return str(value)


def aggregate_affected_releases(rows: Iterable[dict[str, Any]]) -> list[ReleaseRecord]:
    """
    Group per-finding affected-release rows into one ReleaseRecord per release.

    Each distinct finding (cve, package, affected version) is counted once
    under its normalized severity. A row without a ``cve_id`` still produces
    its release, with zero counts. Releases keep first-appearance order.

    Args:
        rows: Rows as returned by the ``affectedReleases`` query

    Returns:
        List of ReleaseRecord objects
    """
    frame = pd.DataFrame(list(rows))
    if frame.empty:
        return []

    for column, default in AFFECTED_RELEASE_COLUMNS.items():
        if column not in frame.columns:
            frame[column] = default

    frame = frame.dropna(subset=_GROUP_KEYS).copy()
    if frame.empty:
        return []

    frame["release_name"] = frame["release_name"].astype(str)
    frame["release_version"] = frame["release_version"].astype(str)
    frame["severity"] = frame["severity_rating"].map(
        lambda v: normalize_severity(v if isinstance(v, str) else None).value
    )
    frame["openssf_scorecard_score"] = pd.to_numeric(frame["openssf_scorecard_score"], errors="coerce")
    for column in ("dependency_count", "synced_endpoint_count"):
        frame[column] = pd.to_numeric(frame[column], errors="coerce").fillna(0)
    frame["modified"] = frame["modified"].fillna("").astype(str)

    has_finding = frame["cve_id"].fillna("").astype(str) != ""
    findings = frame[has_finding].drop_duplicates(
        subset=_GROUP_KEYS + ["cve_id", "package", "affected_version"]
    )
    severity_counts = findings.groupby(_GROUP_KEYS + ["severity"]).size()
    totals = findings.groupby(_GROUP_KEYS).size()

    summary = frame.groupby(_GROUP_KEYS, sort=False).agg(
        project_type=("project_type", "first"),
        openssf_score=("openssf_scorecard_score", "max"),
        dependency_count=("dependency_count", "max"),
        synced_endpoint_count=("synced_endpoint_count", "max"),
        updated=("modified", "max"),
    )

    records = []
    for (name, version), row in summary.iterrows():
        counts = SeverityCounts(**{
            severity.value: int(severity_counts.get((name, version, severity.value), 0))
            for severity in COUNTED_SEVERITIES
        })
        project_type = _optional_str(row["project_type"])
        records.append(ReleaseRecord(
            name=name,
            version=version,
            description=project_type or "",
            project_type=project_type,
            vulnerabilities=counts,
            total_vulnerabilities=int(totals.get((name, version), 0)),
            openssf_score=_optional_float(row["openssf_score"]),
            dependency_count=int(row["dependency_count"]),
            synced_endpoint_count=int(row["synced_endpoint_count"]),
            updated=_optional_str(row["updated"]),
        ))

    return records


class Normalizer:
    """
    Entry point for loading query-service payloads into typed records.

    Accepts either a bare list of rows or a full GraphQL response
    (``{"data": {"<rootKey>": [...]}}``) and dispatches on the category tag.
    """

    def extract_rows(self, category: Category, document: Any) -> list[dict[str, Any]]:
        """
        Pull the row list for a category out of a response document.

        Raises:
            ValueError: If the document does not contain a row list
        """
        category = Category(category)
        if isinstance(document, dict):
            document = document.get("data", document)
            document = document.get(RESPONSE_KEYS[category])

        if not isinstance(document, list):
            raise ValueError(
                f"Expected a list of {category.value} rows or a response with "
                f"'{RESPONSE_KEYS[category]}'"
            )
        return document

    def load_records(self, category: Category, rows: list[dict[str, Any]]) -> list[CategoryRecord]:
        """
        Validate rows into the record type for a category.

        Release rows are per-finding affected-release rows and are aggregated.
        """
        category = Category(category)
        if category == Category.RELEASE:
            return aggregate_affected_releases(rows)

        record_type = RECORD_TYPES[category]
        return [record_type.model_validate(row) for row in rows]

    def load_release_detail(self, document: dict[str, Any]) -> ReleaseDetail:
        payload = document.get("data", document)
        return ReleaseDetail.model_validate(payload.get("release", payload))

    def load_endpoint_detail(self, document: dict[str, Any]) -> EndpointDetail:
        payload = document.get("data", document)
        return EndpointDetail.model_validate(payload.get("endpointDetails", payload))

    def ingest(self, file_path: str | Path, category: Category) -> list[CategoryRecord]:
        """
        Load a saved category response from disk.

        Args:
            file_path: Path to a JSON file with the rows or full response
            category: Category the file holds

        Returns:
            List of typed records
        """
        file_path = Path(file_path)
        with open(file_path, "r", encoding="utf-8") as f:
            document = json.load(f)

        records = self.load_records(category, self.extract_rows(category, document))
        logger.info("Loaded %d %s records from %s", len(records), Category(category).value, file_path.name)
        return records


def ingest_file(file_path: str | Path, category: Category) -> list[CategoryRecord]:
    """
    Convenience function to load a single category file.

    Example:
        >>> records = ingest_file("data/mitigations.json", Category.MITIGATION)
    """
    return Normalizer().ingest(file_path, category)
