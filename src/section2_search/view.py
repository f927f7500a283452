"""
Result view controller for Section 2: Search & Reconciliation

A ResultView owns everything one category result list needs: the category,
the search text, the category's filter state, page position, selection and
the loaded records. Fetching goes through a caller-supplied async fetcher;
each fetch carries a ticket and only the newest ticket may commit results.
"""

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, NamedTuple, Optional

from src.section1_ingestion.normalizer import Normalizer
from src.section1_ingestion.schemas import Category, CategoryRecord

from .config import ClientConfig, EngineConfig
from .filters import BaseFilterState, CategoryFilterEngine, coerce_category, new_filter_state
from .paginator import PageLabel, page_numbers, paginate, total_pages
from .queries import QueryRequest, build_category_request
from .selection import SelectionSet

logger = logging.getLogger(__name__)

Fetcher = Callable[[QueryRequest], Awaitable[Any]]


class ViewStatus(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    EMPTY = "empty"
    ERROR = "error"


class FetchTicket(NamedTuple):
    """Identifies one fetch; stale once a newer fetch or category switch happens."""
    generation: int
    key: tuple
    request: QueryRequest


class VisiblePage(NamedTuple):
    items: list
    page: int
    page_size: int
    total_items: int
    total_pages: int
    page_numbers: list[PageLabel]


class ResultView:
    """
    Filter/paginate/select state for one category result list.

    Args:
        config: Resolved client settings used to build requests
        category: Initial category
        organization: Organization scope; defaults to the configured one
    """

    def __init__(
        self,
        config: ClientConfig,
        category: Category | str = Category.VULNERABILITY,
        organization: Optional[str] = None,
    ):
        self.config = config
        self.organization = organization if organization is not None else config.organization
        self.category = coerce_category(category)
        self.filters: BaseFilterState = new_filter_state(self.category)
        self.query = ""
        self.page = 1
        self.page_size = EngineConfig.DEFAULT_PAGE_SIZE
        self.selection = SelectionSet()

        self.records: list[CategoryRecord] = []
        self.status = ViewStatus.IDLE
        self.error: Optional[str] = None

        self._generation = 0
        self._engine = CategoryFilterEngine()
        self._normalizer = Normalizer()

    # ------------------------------------------------------------------
    # Derived data
    # ------------------------------------------------------------------

    def request(self) -> QueryRequest:
        return build_category_request(self.config, self.category, self.organization)

    def filtered(self) -> list[CategoryRecord]:
        return self._engine.filter(self.records, self.category, self.filters, self.query)

    def total_pages(self) -> int:
        return total_pages(len(self.filtered()), self.page_size)

    def visible(self) -> VisiblePage:
        """The current page of filtered records plus what the pager needs."""
        filtered = self.filtered()
        pages = total_pages(len(filtered), self.page_size)
        return VisiblePage(
            items=paginate(filtered, self.page, self.page_size),
            page=self.page,
            page_size=self.page_size,
            total_items=len(filtered),
            total_pages=pages,
            page_numbers=page_numbers(self.page, pages),
        )

    # ------------------------------------------------------------------
    # User interaction
    # ------------------------------------------------------------------

    def _reset_view(self) -> None:
        """Back to page 1 with the selection rescoped to the new filtered keys."""
        self.page = 1
        self.selection.reset(record.key for record in self.filtered())

    def switch_category(self, category: Category | str) -> None:
        """Replace the filter state wholesale and invalidate any fetch in flight."""
        self.category = coerce_category(category)
        self.filters = new_filter_state(self.category)
        self.records = []
        self.status = ViewStatus.IDLE
        self.error = None
        self._generation += 1
        self._reset_view()

    def set_query(self, query: str) -> None:
        self.query = query or ""
        self._reset_view()

    def update_filters(self, **changes) -> None:
        """
        Change filter fields by name, e.g. ``update_filters(severities={"high"})``.

        The changes apply together or not at all.

        Raises:
            ValueError: For the ``category`` field or a field the state lacks
            ValidationError: If a value is rejected; the filters are unchanged
        """
        if "category" in changes:
            raise ValueError("Use switch_category() to change the category")
        state_type = type(self.filters)
        for field_name in changes:
            if field_name not in state_type.model_fields:
                raise ValueError(f"{state_type.__name__} has no filter '{field_name}'")

        self.filters = state_type.model_validate({**self.filters.model_dump(), **changes})
        self._reset_view()

    def clear_filters(self) -> None:
        self.filters = new_filter_state(self.category)
        self._reset_view()

    def set_page_size(self, page_size: int) -> None:
        if page_size not in EngineConfig.PAGE_SIZE_OPTIONS:
            raise ValueError(
                f"Page size must be one of {EngineConfig.PAGE_SIZE_OPTIONS}, got {page_size}"
            )
        self.page_size = page_size
        self._reset_view()

    def go_to_page(self, page: int) -> None:
        """Move to another page; the selection is kept."""
        last = max(self.total_pages(), 1)
        if not 1 <= page <= last:
            raise ValueError(f"Page {page} is outside 1..{last}")
        self.page = page

    def _require_selectable(self) -> None:
        if self.category != Category.MITIGATION:
            raise ValueError(f"Records in the {self.category.value} category cannot be selected")

    def toggle(self, key) -> bool:
        self._require_selectable()
        return self.selection.toggle(key)

    def select_all_visible(self) -> None:
        """Select every filtered record (all pages), or clear if all are selected."""
        self._require_selectable()
        self.selection.select_all_visible(record.key for record in self.filtered())

    # ------------------------------------------------------------------
    # Fetching
    # ------------------------------------------------------------------

    def begin_fetch(self) -> FetchTicket:
        """Start a fetch for the current category; earlier tickets become stale."""
        self._generation += 1
        request = self.request()
        self.status = ViewStatus.LOADING
        self.error = None
        return FetchTicket(self._generation, request.key, request)

    def is_current(self, ticket: FetchTicket) -> bool:
        return ticket.generation == self._generation and ticket.key == self.request().key

    def complete_fetch(self, ticket: FetchTicket, document: Any) -> bool:
        """
        Commit fetched data if the ticket is still current.

        Args:
            ticket: Ticket returned by begin_fetch()
            document: Response document or bare row list for the category

        Returns:
            True if the records were committed, False if the result was stale

        Raises:
            ValueError: If the document does not hold valid rows
        """
        if not self.is_current(ticket):
            logger.debug("Discarding stale fetch %d for %s", ticket.generation, ticket.key)
            return False

        rows = self._normalizer.extract_rows(self.category, document)
        self.records = self._normalizer.load_records(self.category, rows)
        self.status = ViewStatus.READY if self.records else ViewStatus.EMPTY
        self.error = None
        self._reset_view()
        return True

    def fail_fetch(self, ticket: FetchTicket, error: BaseException | str) -> bool:
        """Record a fetch failure; filters, query and selection are left untouched."""
        if not self.is_current(ticket):
            logger.debug("Ignoring failure of stale fetch %d for %s", ticket.generation, ticket.key)
            return False

        self.status = ViewStatus.ERROR
        self.error = str(error) or type(error).__name__
        logger.error("Fetch for %s failed: %s", ticket.key, self.error)
        return True

    async def load(self, fetcher: Fetcher) -> bool:
        """
        Run one fetch through ``fetcher`` and commit its result.

        Returns:
            True if this fetch's result (or failure) was applied to the view
        """
        ticket = self.begin_fetch()
        try:
            document = await fetcher(ticket.request)
            return self.complete_fetch(ticket, document)
        except Exception as e:
            return self.fail_fetch(ticket, e)

    async def retry(self, fetcher: Fetcher) -> bool:
        """Manual retry after an error."""
        return await self.load(fetcher)
