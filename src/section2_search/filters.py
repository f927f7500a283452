"""
Category filter engine for the result views.

Every category has its own FilterState variant (a tagged union on the
``category`` field) and its own predicate. `CategoryFilterEngine` picks the
predicate from an explicit category tag; records are never inspected to
guess their kind. The dispatch table is checked against `Category` when this
module is imported, so a category added without a predicate fails loudly.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Iterable, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.section1_ingestion.normalizer import normalize_severity
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

from .config import EngineConfig

logger = logging.getLogger(__name__)


class UnknownCategoryError(ValueError):
    """Raised for a category tag outside `Category`; a programming error."""


class OpenSSFBucket(str, Enum):
    """OpenSSF scorecard score buckets used by the release filters."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def _lower_set(value):
    if value is None:
        return set()
    if isinstance(value, (str, Enum)):
        value = [value]
    return {
        (item.value if isinstance(item, Enum) else str(item)).strip().lower()
        for item in value
    }


def _strip(value):
    return (value or "").strip()


# ---------------------------------------------------------------------------
# Filter state variants
# ---------------------------------------------------------------------------

class BaseFilterState(BaseModel):
    """Fields shared by every category's filter state."""
    model_config = ConfigDict(validate_assignment=True)

    severities: set[Severity] = Field(default_factory=set, description="Selected severity buckets")
    name: str = Field(default="", description="Substring of the record's primary name")

    lower_severities = field_validator("severities", mode="before")(_lower_set)
    strip_name = field_validator("name", mode="before")(_strip)

    def is_active(self) -> bool:
        """True when any predicate would restrict the result."""
        return any(
            bool(getattr(self, field_name))
            for field_name in type(self).model_fields
            if field_name != "category"
        )


class EndpointFilterState(BaseFilterState):
    category: Literal[Category.ENDPOINT] = Category.ENDPOINT
    statuses: set[str] = Field(default_factory=set)
    environments: set[str] = Field(default_factory=set)
    endpoint_types: set[str] = Field(default_factory=set)

    lower_sets = field_validator("statuses", "environments", "endpoint_types", mode="before")(_lower_set)


class ReleaseFilterState(BaseFilterState):
    category: Literal[Category.RELEASE] = Category.RELEASE
    openssf_buckets: set[OpenSSFBucket] = Field(default_factory=set)

    lower_buckets = field_validator("openssf_buckets", mode="before")(_lower_set)


class VulnerabilityFilterState(BaseFilterState):
    category: Literal[Category.VULNERABILITY] = Category.VULNERABILITY


class MitigationFilterState(BaseFilterState):
    category: Literal[Category.MITIGATION] = Category.MITIGATION


FilterState = Union[EndpointFilterState, ReleaseFilterState, VulnerabilityFilterState, MitigationFilterState]

FILTER_STATE_TYPES: dict[Category, type[BaseFilterState]] = {
    Category.ENDPOINT: EndpointFilterState,
    Category.RELEASE: ReleaseFilterState,
    Category.VULNERABILITY: VulnerabilityFilterState,
    Category.MITIGATION: MitigationFilterState,
}


def coerce_category(category) -> Category:
    """Turn a tag into a Category, raising UnknownCategoryError otherwise."""
    try:
        return Category(category)
    except ValueError:
        raise UnknownCategoryError(f"Unknown record category: {category!r}") from None


def new_filter_state(category: Category | str) -> FilterState:
    """Create the empty filter state for a category."""
    return FILTER_STATE_TYPES[coerce_category(category)]()


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------

def _contains(text: Optional[str], needle: str) -> bool:
    """Case-insensitive substring test; ``needle`` must already be lower-case."""
    return needle in (text or "").lower()


def _matches_query(needle: str, *fields: Optional[str]) -> bool:
    if not needle:
        return True
    return any(_contains(field, needle) for field in fields)


def _matches_any(value: Optional[str], selected: set[str]) -> bool:
    """Case-insensitive set membership; an empty selection allows everything."""
    if not selected:
        return True
    return (value or "").lower() in selected


def _matches_counts(counts: SeverityCounts, selected: set[Severity]) -> bool:
    """
    Aggregate records match when any selected bucket is present.

    ``clean`` means all four counts are zero; it ORs with the real buckets.
    """
    if not selected:
        return True
    return any(
        counts.is_clean if severity == Severity.CLEAN else counts.count(severity) > 0
        for severity in selected
    )


def _matches_rating(rating: Optional[str], selected: set[Severity]) -> bool:
    """
    Single-finding records match when their own severity is selected.

    A finding is never clean, so ``clean`` alone matches nothing and ``clean``
    alongside real buckets adds nothing.
    """
    if not selected:
        return True
    return normalize_severity(rating) in selected


def openssf_bucket(score: Optional[float]) -> Optional[OpenSSFBucket]:
    """Bucket for an OpenSSF score; None when the release has no score."""
    if score is None:
        return None
    if score >= EngineConfig.OPENSSF_HIGH_THRESHOLD:
        return OpenSSFBucket.HIGH
    if score >= EngineConfig.OPENSSF_MEDIUM_THRESHOLD:
        return OpenSSFBucket.MEDIUM
    return OpenSSFBucket.LOW


def _endpoint_matches(record: EndpointRecord, filters: EndpointFilterState, query: str) -> bool:
    return (
        _matches_query(query, record.endpoint_name, record.endpoint_url)
        and _matches_query(filters.name.lower(), record.endpoint_name)
        and _matches_any(record.status, filters.statuses)
        and _matches_any(record.environment, filters.environments)
        and _matches_any(record.endpoint_type, filters.endpoint_types)
        and _matches_counts(record.total_vulnerabilities, filters.severities)
    )


def _release_matches(record: ReleaseRecord, filters: ReleaseFilterState, query: str) -> bool:
    if not (
        _matches_query(query, record.name, record.description)
        and _matches_query(filters.name.lower(), record.name)
        and _matches_counts(record.vulnerabilities, filters.severities)
    ):
        return False

    if filters.openssf_buckets:
        return openssf_bucket(record.openssf_score) in filters.openssf_buckets
    return True


def _finding_record_matches(
    record: VulnerabilityRecord,
    filters: Union[VulnerabilityFilterState, MitigationFilterState],
    query: str,
) -> bool:
    return (
        _matches_query(query, record.cve_id, record.summary)
        and _matches_query(filters.name.lower(), record.cve_id)
        and _matches_rating(record.severity_rating, filters.severities)
    )


Predicate = Callable[[object, BaseFilterState, str], bool]

_PREDICATES: dict[Category, Predicate] = {
    Category.ENDPOINT: _endpoint_matches,
    Category.RELEASE: _release_matches,
    Category.VULNERABILITY: _finding_record_matches,
    Category.MITIGATION: _finding_record_matches,
}

_missing = set(Category) - set(_PREDICATES)
if _missing:
    raise RuntimeError(f"No filter predicate for categories: {sorted(c.value for c in _missing)}")


class CategoryFilterEngine:
    """
    Applies a category's predicates (logical AND) to its records.

    The free-text query matches the category's searchable pair (name+URL for
    endpoints, name+description for releases, cve+summary otherwise); the
    state's ``name`` field matches the primary name independently.
    """

    PREDICATES = _PREDICATES

    def matches(self, record, category: Category | str, filters: BaseFilterState, query: str = "") -> bool:
        category = coerce_category(category)
        return self.PREDICATES[category](record, filters, (query or "").strip().lower())

    def filter(
        self,
        records: Iterable,
        category: Category | str,
        filters: BaseFilterState,
        query: str = "",
    ) -> list:
        """
        Return the records matching every active predicate, in input order.

        Raises:
            UnknownCategoryError: If ``category`` is not a Category
            ValueError: If ``filters`` belongs to a different category
        """
        category = coerce_category(category)
        if filters.category != category:
            raise ValueError(
                f"{type(filters).__name__} cannot filter {category.value} records"
            )

        predicate = self.PREDICATES[category]
        needle = (query or "").strip().lower()
        records = list(records)
        matched = [record for record in records if predicate(record, filters, needle)]

        logger.debug("Filtered %s records: %d of %d match", category.value, len(matched), len(records))
        return matched


def filter_records(records: Iterable, category: Category | str, filters: BaseFilterState, query: str = "") -> list:
    """Convenience wrapper around `CategoryFilterEngine.filter`."""
    return CategoryFilterEngine().filter(records, category, filters, query)


# ---------------------------------------------------------------------------
# Release / endpoint detail rows
# ---------------------------------------------------------------------------

class DetailFilterState(BaseModel):
    """
    Filters of the release and endpoint detail tables.

    All five display severities start selected. ``package`` is matched
    case-insensitively; ``cve`` is matched case-sensitively and does not
    apply to clean rows.
    """
    model_config = ConfigDict(validate_assignment=True)

    severities: set[Severity] = Field(
        default_factory=lambda: {Severity(s) for s in EngineConfig.DETAIL_SEVERITIES}
    )
    package: str = ""
    cve: str = ""

    lower_severities = field_validator("severities", mode="before")(_lower_set)
    strip_text = field_validator("package", "cve", mode="before")(_strip)

    @property
    def include_clean(self) -> bool:
        return Severity.CLEAN in self.severities

    def is_filtered(self) -> bool:
        """True when the state differs from the defaults."""
        return self != DetailFilterState()

    def reset(self) -> None:
        defaults = DetailFilterState()
        self.severities = defaults.severities
        self.package = ""
        self.cve = ""


def row_matches(row: ReconciledRow, filters: DetailFilterState) -> bool:
    if filters.package and filters.package.lower() not in row.package_name.lower():
        return False
    if row.is_clean:
        return filters.include_clean
    if filters.cve and filters.cve not in row.cve_id:
        return False
    return row.severity in filters.severities


def filter_rows(rows: Iterable[ReconciledRow], filters: DetailFilterState) -> list[ReconciledRow]:
    """Apply detail filters to reconciled rows, keeping their order."""
    return [row for row in rows if row_matches(row, filters)]
