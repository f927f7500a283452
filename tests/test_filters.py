"""
Tests for the category filter engine and detail filters.
"""

import pytest
from pydantic import ValidationError

from src.section1_ingestion.schemas import (
    Category,
    EndpointRecord,
    MitigationRecord,
    ReconciledRow,
    ReleaseRecord,
    Severity,
    SeverityCounts,
    VulnerabilityRecord,
)
from src.section2_search.filters import (
    FILTER_STATE_TYPES,
    CategoryFilterEngine,
    DetailFilterState,
    EndpointFilterState,
    MitigationFilterState,
    OpenSSFBucket,
    ReleaseFilterState,
    UnknownCategoryError,
    VulnerabilityFilterState,
    filter_records,
    filter_rows,
    new_filter_state,
    openssf_bucket,
)

ENDPOINTS = [
    EndpointRecord(
        endpoint_name="prod-web-01",
        endpoint_url="https://web.example.com",
        endpoint_type="cluster",
        environment="Production",
        status="Active",
        total_vulnerabilities=SeverityCounts(critical=1, low=3),
    ),
    EndpointRecord(
        endpoint_name="staging-api",
        endpoint_url="https://api.staging.internal",
        endpoint_type="server",
        environment="staging",
        status="inactive",
        total_vulnerabilities=None,
    ),
    EndpointRecord(endpoint_name="edge-lambda"),
]

RELEASES = [
    ReleaseRecord(name="frontend", version="1.0", description="docker",
                  vulnerabilities=SeverityCounts(high=2), openssf_score=8.5),
    ReleaseRecord(name="backend", version="2.1", description="python", openssf_score=6.0),
    ReleaseRecord(name="legacy", version="0.9", vulnerabilities=SeverityCounts(low=1)),
]

VULNERABILITIES = [
    VulnerabilityRecord(cve_id="CVE-2021-44228", summary="Log4Shell remote code execution",
                        severity_rating="CRITICAL", package="log4j-core"),
    VulnerabilityRecord(cve_id="CVE-2022-24999", summary="Prototype pollution in qs",
                        severity_rating="medium", package="qs"),
    VulnerabilityRecord(cve_id="GHSA-29mw-wpgm-hmr9", summary=None, severity_rating=None),
]

MITIGATIONS = [MitigationRecord(**v.model_dump()) for v in VULNERABILITIES]


def _names(records):
    return [r.key for r in records]


class TestEndpointFilters:
    """Test endpoint predicates."""

    def test_query_matches_url(self):
        result = filter_records(ENDPOINTS, Category.ENDPOINT, EndpointFilterState(), "EXAMPLE.com")
        assert _names(result) == ["prod-web-01"]

    def test_status_is_case_insensitive(self):
        result = filter_records(ENDPOINTS, "endpoint", EndpointFilterState(statuses={"ACTIVE"}))
        assert _names(result) == ["prod-web-01"]

    def test_environment_and_type_sets(self):
        filters = EndpointFilterState(environments=["production", "staging"], endpoint_types=["server"])
        assert _names(filter_records(ENDPOINTS, Category.ENDPOINT, filters)) == ["staging-api"]

    def test_clean_matches_zero_counts(self):
        result = filter_records(ENDPOINTS, Category.ENDPOINT, EndpointFilterState(severities={"clean"}))
        assert _names(result) == ["staging-api", "edge-lambda"]

    def test_clean_or_real_severity(self):
        filters = EndpointFilterState(severities={"clean", "critical"})
        assert len(filter_records(ENDPOINTS, Category.ENDPOINT, filters)) == 3

    def test_missing_fields_do_not_raise(self):
        filters = EndpointFilterState(statuses={"active"}, environments={"prod"}, name="edge")
        assert filter_records(ENDPOINTS, Category.ENDPOINT, filters, "lambda") == []


class TestReleaseFilters:
    """Test release predicates, including OpenSSF buckets."""

    @pytest.mark.parametrize("buckets, expected", [
        ({"high"}, ["frontend"]),
        ({"medium"}, ["backend"]),
        ({"low"}, []),
        ({"high", "medium"}, ["frontend", "backend"]),
        (set(), ["frontend", "backend", "legacy"]),
    ])
    def test_openssf_buckets(self, buckets, expected):
        result = filter_records(RELEASES, Category.RELEASE, ReleaseFilterState(openssf_buckets=buckets))
        assert [r.name for r in result] == expected

    def test_query_matches_description(self):
        result = filter_records(RELEASES, Category.RELEASE, ReleaseFilterState(), "Python")
        assert [r.name for r in result] == ["backend"]

    def test_name_and_query_both_apply(self):
        result = filter_records(RELEASES, Category.RELEASE, ReleaseFilterState(name="front"), "python")
        assert result == []

    def test_severity_buckets(self):
        clean = filter_records(RELEASES, Category.RELEASE, ReleaseFilterState(severities={"clean"}))
        low = filter_records(RELEASES, Category.RELEASE, ReleaseFilterState(severities=["LOW"]))

        assert [r.name for r in clean] == ["backend"]
        assert [r.name for r in low] == ["legacy"]

    def test_openssf_bucket_thresholds(self):
        assert openssf_bucket(8.0) == OpenSSFBucket.HIGH
        assert openssf_bucket(7.99) == OpenSSFBucket.MEDIUM
        assert openssf_bucket(6.0) == OpenSSFBucket.MEDIUM
        assert openssf_bucket(5.9) == OpenSSFBucket.LOW
        assert openssf_bucket(None) is None


class TestFindingFilters:
    """Test vulnerability and mitigation predicates."""

    @pytest.mark.parametrize("category, records, state_type", [
        (Category.VULNERABILITY, VULNERABILITIES, VulnerabilityFilterState),
        (Category.MITIGATION, MITIGATIONS, MitigationFilterState),
    ])
    def test_clean_alone_matches_nothing(self, category, records, state_type):
        assert filter_records(records, category, state_type(severities={"clean"})) == []

    def test_clean_adds_nothing_to_real_severities(self):
        with_clean = filter_records(VULNERABILITIES, Category.VULNERABILITY,
                                    VulnerabilityFilterState(severities={"critical", "clean"}))
        without = filter_records(VULNERABILITIES, Category.VULNERABILITY,
                                 VulnerabilityFilterState(severities={"critical"}))

        assert with_clean == without
        assert [r.cve_id for r in without] == ["CVE-2021-44228"]

    def test_missing_rating_is_unknown(self):
        result = filter_records(MITIGATIONS, Category.MITIGATION, MitigationFilterState(severities={"unknown"}))
        assert [r.cve_id for r in result] == ["GHSA-29mw-wpgm-hmr9"]

    def test_query_matches_summary(self):
        result = filter_records(VULNERABILITIES, Category.VULNERABILITY, VulnerabilityFilterState(), "log4shell")
        assert [r.cve_id for r in result] == ["CVE-2021-44228"]

    def test_name_matches_cve_id(self):
        result = filter_records(VULNERABILITIES, Category.VULNERABILITY, VulnerabilityFilterState(name="cve-2022"))
        assert [r.cve_id for r in result] == ["CVE-2022-24999"]


class TestDispatch:
    """Test category dispatch and its failure modes."""

    def test_every_category_has_a_predicate_and_state(self):
        assert set(CategoryFilterEngine.PREDICATES) == set(Category)
        assert set(FILTER_STATE_TYPES) == set(Category)

    @pytest.mark.parametrize("category", list(Category))
    def test_new_filter_state_is_empty(self, category):
        state = new_filter_state(category)

        assert state.category == category
        assert not state.is_active()

    def test_unknown_category_raises(self):
        with pytest.raises(UnknownCategoryError):
            filter_records(VULNERABILITIES, "package", VulnerabilityFilterState())

        # Never an unfiltered fallback
        with pytest.raises(ValueError):
            new_filter_state("sbom")

    def test_mismatched_state_raises(self):
        with pytest.raises(ValueError, match="release"):
            CategoryFilterEngine().filter(RELEASES, Category.RELEASE, VulnerabilityFilterState())

    def test_invalid_severity_rejected(self):
        with pytest.raises(ValidationError):
            VulnerabilityFilterState(severities={"urgent"})

    def test_filtering_is_monotonic(self):
        engine = CategoryFilterEngine()
        base = engine.filter(ENDPOINTS, Category.ENDPOINT, EndpointFilterState())
        narrowed = engine.filter(base, Category.ENDPOINT, EndpointFilterState(severities={"clean"}))
        narrower = engine.filter(narrowed, Category.ENDPOINT, EndpointFilterState(
            severities={"clean"}, environments={"staging"},
        ))

        assert len(base) >= len(narrowed) >= len(narrower)
        assert all(r in base for r in narrowed)

    def test_filtering_is_idempotent(self):
        filters = ReleaseFilterState(openssf_buckets={"high", "medium"})
        once = filter_records(RELEASES, Category.RELEASE, filters)

        assert filter_records(once, Category.RELEASE, filters) == once


def _row(cve_id, severity, package="lodash"):
    return ReconciledRow(cve_id=cve_id, severity=severity, package_name=package, package_version="1.0")


class TestDetailFilterState:
    """Test release/endpoint detail filters."""

    def test_defaults(self):
        filters = DetailFilterState()

        assert filters.severities == {
            Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW, Severity.CLEAN,
        }
        assert filters.include_clean
        assert not filters.is_filtered()

    def test_is_filtered_and_reset(self):
        filters = DetailFilterState()
        filters.package = "  lodash "

        assert filters.package == "lodash"
        assert filters.is_filtered()

        filters.reset()
        assert not filters.is_filtered()

    def test_unknown_rows_need_unknown_selected(self):
        rows = [_row("CVE-1", Severity.UNKNOWN), _row("CVE-2", Severity.HIGH)]

        assert [r.cve_id for r in filter_rows(rows, DetailFilterState())] == ["CVE-2"]
        assert len(filter_rows(rows, DetailFilterState(severities={"unknown", "high"}))) == 2

    def test_clean_rows(self):
        rows = [_row("—", Severity.CLEAN, "chalk"), _row("CVE-1", Severity.LOW)]

        without_clean = DetailFilterState(severities={"low"})
        assert [r.cve_id for r in filter_rows(rows, without_clean)] == ["CVE-1"]
        assert [r.package_name for r in filter_rows(rows, DetailFilterState(cve="CVE"))] == ["chalk", "lodash"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
