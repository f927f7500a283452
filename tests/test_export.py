"""
Tests for row export and SBOM download.
"""

import pandas as pd
import pytest

from src.section1_ingestion.schemas import (
    ReconciledRow,
    ReleaseDetail,
    ReleaseRecord,
    Severity,
    SeverityCounts,
    VulnerabilityRecord,
)
from src.section2_search.export import (
    export_rows_csv,
    rows_to_frame,
    sbom_download_name,
    write_sbom,
)

ROWS = [
    ReconciledRow(cve_id="CVE-1", severity=Severity.HIGH, score=7.5,
                  package_name="pkg:npm/lodash", package_version="4.17.19", fixed_in_display="4.17.21"),
    ReconciledRow(cve_id="—", severity=Severity.CLEAN, package_name="pkg:npm/chalk", package_version="4.1.2"),
]


def test_rows_to_frame():
    frame = rows_to_frame(ROWS)

    assert list(frame["cve_id"]) == ["CVE-1", "—"]
    assert list(frame["severity"]) == ["high", "clean"]


def test_empty_rows_keep_columns():
    frame = rows_to_frame([])

    assert frame.empty
    assert "package_name" in frame.columns


def test_nested_and_list_fields_are_flattened():
    frame = rows_to_frame([
        ReleaseRecord(name="frontend", version="1.0", vulnerabilities=SeverityCounts(critical=2)),
    ])
    vulns = rows_to_frame([VulnerabilityRecord(cve_id="CVE-1", fixed_in=["1.0.1", "1.1.0"])])

    assert frame.loc[0, "vulnerabilities.critical"] == 2
    assert vulns.loc[0, "fixed_in"] == "1.0.1, 1.1.0"


def test_export_rows_csv(tmp_path):
    output = export_rows_csv(ROWS, tmp_path / "exports" / "frontend.csv",
                             columns=["cve_id", "severity", "package_name"])

    frame = pd.read_csv(output)

    assert list(frame.columns) == ["cve_id", "severity", "package_name"]
    assert len(frame) == 2


def test_sbom_download_name():
    assert sbom_download_name("frontend", "1.0.0") == "frontend-1.0.0-sbom.json"


def test_write_sbom(tmp_path):
    detail = ReleaseDetail(name="frontend", version="1.0.0", sbom={"content": '{"components": []}'})

    path = write_sbom(detail, tmp_path)

    assert path.name == "frontend-1.0.0-sbom.json"
    assert path.read_text(encoding="utf-8") == '{"components": []}'


def test_write_sbom_without_content(tmp_path):
    detail = ReleaseDetail(name="frontend", version="1.0.0", sbom={"key": "sbom-1"})

    with pytest.raises(ValueError, match="no SBOM"):
        write_sbom(detail, tmp_path)
