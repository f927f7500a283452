"""
Section 2: Search & Reconciliation

Takes the typed records from Section 1 (Ingestion) and produces what the
result views render:
1. Release/endpoint package rows (findings reconciled with the SBOM)
2. Category lists filtered, sorted and paginated
3. Selection of mitigation records for bulk actions
"""

__version__ = "1.0.0"

from .config import ClientConfig, EngineConfig, load_client_config
from .filters import (
    CategoryFilterEngine,
    DetailFilterState,
    EndpointFilterState,
    FilterState,
    MitigationFilterState,
    ReleaseFilterState,
    UnknownCategoryError,
    VulnerabilityFilterState,
    filter_records,
    filter_rows,
    new_filter_state,
)
from .paginator import Paginator, page_numbers, paginate, total_pages
from .reconciler import PackageReconciler, build_endpoint_rows, build_release_rows
from .selection import SelectionSet
from .sorter import sort_rows
from .view import ResultView, ViewStatus

__all__ = [
    "CategoryFilterEngine",
    "ClientConfig",
    "DetailFilterState",
    "EndpointFilterState",
    "EngineConfig",
    "FilterState",
    "MitigationFilterState",
    "PackageReconciler",
    "Paginator",
    "ReleaseFilterState",
    "ResultView",
    "SelectionSet",
    "UnknownCategoryError",
    "ViewStatus",
    "VulnerabilityFilterState",
    "build_endpoint_rows",
    "build_release_rows",
    "filter_records",
    "filter_rows",
    "load_client_config",
    "new_filter_state",
    "page_numbers",
    "paginate",
    "sort_rows",
    "total_pages",
]
