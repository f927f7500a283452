"""
Pagination of filtered result lists and the page-number bar.
"""

import math
from typing import Sequence, TypeVar, Union

from .config import EngineConfig

T = TypeVar("T")

PageLabel = Union[int, str]


def total_pages(item_count: int, page_size: int) -> int:
    """Number of pages needed for ``item_count`` items (0 when there are none)."""
    if page_size < 1:
        raise ValueError(f"page_size must be positive, got {page_size}")
    return math.ceil(item_count / page_size)


def paginate(items: Sequence[T], page: int, page_size: int) -> list[T]:
    """
    Slice one 1-indexed page out of ``items``.

    A page past the end is empty; callers re-derive the page count from the
    filtered length.

    Raises:
        ValueError: If ``page`` or ``page_size`` is below 1
    """
    if page < 1:
        raise ValueError(f"page must be 1 or greater, got {page}")
    if page_size < 1:
        raise ValueError(f"page_size must be positive, got {page_size}")

    start = (page - 1) * page_size
    return list(items[start:start + page_size])


def page_numbers(current_page: int, page_count: int) -> list[PageLabel]:
    """
    Labels for the pagination bar.

    Up to seven pages are all shown. Beyond that the first and last page are
    always present around the current page and its neighbours, with "..."
    standing in for the hidden runs.

    Example:
        >>> page_numbers(10, 20)
        [1, '...', 9, 10, 11, '...', 20]
    """
    if page_count <= EngineConfig.MAX_VISIBLE_PAGES:
        return list(range(1, page_count + 1))

    pages: list[PageLabel] = [1]
    if current_page > 3:
        pages.append(EngineConfig.ELLIPSIS)

    start = max(2, current_page - 1)
    end = min(page_count - 1, current_page + 1)
    pages.extend(range(start, end + 1))

    if current_page < page_count - 2:
        pages.append(EngineConfig.ELLIPSIS)
    pages.append(page_count)
    return pages


class Paginator:
    """Page state for one result list: the items, a page size and the current page."""

    def __init__(self, items: Sequence[T], page_size: int = EngineConfig.DEFAULT_PAGE_SIZE, page: int = 1):
        self.items = items
        self.page_size = page_size
        self.page = page

    @property
    def total_pages(self) -> int:
        return total_pages(len(self.items), self.page_size)

    @property
    def start_index(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def end_index(self) -> int:
        """Exclusive end of the current page, capped at the item count."""
        return min(self.start_index + self.page_size, len(self.items))

    def current(self) -> list[T]:
        return paginate(self.items, self.page, self.page_size)

    def pages(self) -> list[list[T]]:
        """Every page in order; concatenated they equal ``items``."""
        return [paginate(self.items, n, self.page_size) for n in range(1, self.total_pages + 1)]

    def page_numbers(self) -> list[PageLabel]:
        return page_numbers(self.page, self.total_pages)

    def has_previous(self) -> bool:
        return self.page > 1

    def has_next(self) -> bool:
        return self.page < self.total_pages
