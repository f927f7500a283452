"""
Package reconciliation for release and endpoint detail views.

Merges a scope's vulnerability findings with its dependency manifest so that
every manifest package is shown either against the findings that cover it or
as a single ``clean`` row.
"""

import logging
from typing import Iterable, Optional

from src.section1_ingestion.normalizer import EMPTY_DISPLAY, normalize_finding
from src.section1_ingestion.parsers.sbom_parser import SBOMParser, parse_manifest, strip_version_suffix
from src.section1_ingestion.schemas import (
    EndpointDetail,
    Finding,
    ManifestPackage,
    NormalizedFinding,
    ReconciledRow,
    ReleaseDetail,
    Severity,
)

from .filters import DetailFilterState, filter_rows
from .sorter import sort_rows

logger = logging.getLogger(__name__)


def purl_base(purl: str) -> str:
    """Package-URL without its version: everything before the first "@"."""
    return purl.split("@", 1)[0]


def finding_purl(finding: NormalizedFinding) -> Optional[str]:
    """The finding's package-URL: ``full_purl``, else a ``pkg:`` package identifier."""
    if finding.full_purl:
        return finding.full_purl
    if finding.package_identifier.startswith(SBOMParser.PURL_PREFIX):
        return finding.package_identifier
    return None


def covers(finding: NormalizedFinding, package: ManifestPackage) -> bool:
    """
    Whether a finding applies to a manifest package at its exact version.

    When both sides carry a package-URL with the same base, the versions
    decide. Otherwise the finding's package identifier (minus any version
    suffix) must equal the package name and the versions must be equal.
    """
    purl = finding_purl(finding)
    if purl and package.purl:
        if purl_base(package.purl) == purl_base(purl):
            return finding.affected_version == package.version

    return (
        strip_version_suffix(finding.package_identifier) == package.name
        and finding.affected_version == package.version
    )


def _finding_row(finding: NormalizedFinding, **scope) -> ReconciledRow:
    return ReconciledRow(
        cve_id=finding.cve_id,
        severity=finding.severity,
        score=finding.score,
        package_name=finding.package_identifier,
        package_version=finding.affected_version,
        fixed_in_display=finding.fixed_in_display,
        full_purl=finding.full_purl,
        **scope,
    )


def _clean_row(package: ManifestPackage) -> ReconciledRow:
    return ReconciledRow(
        cve_id=EMPTY_DISPLAY,
        severity=Severity.CLEAN,
        score=0.0,
        package_name=package.name,
        package_version=package.version,
        fixed_in_display=EMPTY_DISPLAY,
        full_purl=package.purl,
    )


class PackageReconciler:
    """
    Produces the package rows of one release or endpoint scope.

    Holds no state between calls; the same inputs always give the same rows.
    """

    def reconcile(
        self,
        findings: Iterable[Finding],
        manifest: Iterable[ManifestPackage],
        include_clean: bool,
    ) -> list[ReconciledRow]:
        """
        Merge findings with manifest packages.

        Every finding yields a row whether or not the manifest lists its
        package. With ``include_clean``, each distinct manifest package that
        no finding covers yields one clean row. Rows are returned unsorted.

        Args:
            findings: The scope's vulnerability findings
            manifest: Packages parsed from the scope's SBOM
            include_clean: Whether to add clean rows

        Returns:
            Finding rows followed by clean rows
        """
        normalized = [normalize_finding(f) for f in findings]
        rows = [_finding_row(f) for f in normalized]

        if not include_clean:
            return rows

        seen: set[tuple[str, str]] = set()
        for package in manifest:
            if package.key in seen:
                continue
            seen.add(package.key)
            if not any(covers(f, package) for f in normalized):
                rows.append(_clean_row(package))

        logger.debug(
            "Reconciled %d findings with %d manifest packages into %d rows",
            len(normalized), len(seen), len(rows),
        )
        return rows

    def reconcile_endpoint(self, detail: EndpointDetail) -> list[ReconciledRow]:
        """One row per finding across all of an endpoint's releases, tagged with the release."""
        rows = []
        for release in detail.releases:
            for finding in release.vulnerabilities:
                rows.append(_finding_row(
                    normalize_finding(finding),
                    release_name=release.release_name,
                    release_version=release.release_version,
                ))
        return rows


def release_manifest(detail: ReleaseDetail) -> list[ManifestPackage]:
    """Parse the release's SBOM; a missing or malformed SBOM gives no packages."""
    content: Optional[str] = detail.sbom.content if detail.sbom else None
    if not content:
        return []

    return parse_manifest(content, source_name=f"{detail.name}@{detail.version}")


def build_release_rows(detail: ReleaseDetail, filters: Optional[DetailFilterState] = None) -> list[ReconciledRow]:
    """
    Rows of the release detail table: reconcile, filter, then sort.

    Clean rows are produced only when ``clean`` is among the selected
    severities. Coverage is always decided against the full finding list.
    """
    filters = filters or DetailFilterState()
    rows = PackageReconciler().reconcile(
        detail.vulnerabilities,
        release_manifest(detail),
        include_clean=filters.include_clean,
    )
    return sort_rows(filter_rows(rows, filters))


def build_endpoint_rows(detail: EndpointDetail, filters: Optional[DetailFilterState] = None) -> list[ReconciledRow]:
    """Rows of the endpoint detail table; endpoints have no manifest, so no clean rows."""
    filters = filters or DetailFilterState()
    rows = PackageReconciler().reconcile_endpoint(detail)
    return sort_rows(filter_rows(rows, filters))
