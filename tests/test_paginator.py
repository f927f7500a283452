"""
Tests for pagination, sorting and selection.
"""

import pytest

from src.section1_ingestion.schemas import ReconciledRow, Severity
from src.section2_search.paginator import Paginator, page_numbers, paginate, total_pages
from src.section2_search.selection import SelectionSet
from src.section2_search.sorter import sort_rows


class TestPaginate:
    """Test page slicing."""

    def test_twenty_five_items_page_size_twelve(self):
        items = list(range(25))

        assert total_pages(len(items), 12) == 3
        assert paginate(items, 2, 12) == items[12:24]
        assert paginate(items, 3, 12) == [24]

    def test_page_past_end_is_empty(self):
        assert paginate(list(range(5)), 4, 12) == []

    def test_no_items(self):
        assert total_pages(0, 12) == 0
        assert paginate([], 1, 12) == []

    @pytest.mark.parametrize("page, page_size", [(0, 12), (-1, 12), (1, 0)])
    def test_invalid_arguments(self, page, page_size):
        with pytest.raises(ValueError):
            paginate(list(range(10)), page, page_size)

    @pytest.mark.parametrize("count, page_size", [(0, 12), (1, 12), (25, 12), (96, 24), (100, 7)])
    def test_pages_reconstruct_the_sequence(self, count, page_size):
        items = [f"item-{i}" for i in range(count)]
        pages = Paginator(items, page_size).pages()

        assert [item for page in pages for item in page] == items
        assert len(pages) == total_pages(count, page_size)


class TestPageNumbers:
    """Test the page-number bar."""

    def test_large_page_count(self):
        assert page_numbers(10, 20) == [1, "...", 9, 10, 11, "...", 20]

    def test_up_to_seven_pages_all_shown(self):
        assert page_numbers(1, 7) == [1, 2, 3, 4, 5, 6, 7]
        assert page_numbers(4, 5) == [1, 2, 3, 4, 5]
        assert page_numbers(1, 0) == []

    def test_near_start(self):
        assert page_numbers(1, 20) == [1, 2, "...", 20]
        assert page_numbers(3, 8) == [1, 2, 3, 4, "...", 8]

    def test_near_end(self):
        assert page_numbers(20, 20) == [1, "...", 19, 20]
        assert page_numbers(18, 20) == [1, "...", 17, 18, 19, 20]

    def test_paginator_navigation(self):
        paginator = Paginator(list(range(30)), page_size=12, page=3)

        assert paginator.total_pages == 3
        assert paginator.current() == list(range(24, 30))
        assert (paginator.start_index, paginator.end_index) == (24, 30)
        assert paginator.has_previous()
        assert not paginator.has_next()
        assert paginator.page_numbers() == [1, 2, 3]


def _row(score, package, cve_id="CVE-1"):
    return ReconciledRow(
        cve_id=cve_id,
        severity=Severity.CLEAN if score == 0 else Severity.HIGH,
        score=score,
        package_name=package,
        package_version="1.0",
    )


class TestSorter:
    """Test canonical row ordering."""

    def test_score_descending_then_name(self):
        rows = [_row(0, "zlib"), _row(7.5, "requests"), _row(9.8, "urllib3"), _row(7.5, "flask")]

        assert [r.package_name for r in sort_rows(rows)] == ["urllib3", "flask", "requests", "zlib"]

    def test_name_order_is_case_sensitive(self):
        rows = [_row(5.0, "attrs"), _row(5.0, "Babel")]

        assert [r.package_name for r in sort_rows(rows)] == ["Babel", "attrs"]

    def test_stable_and_idempotent(self):
        rows = [_row(5.0, "six", "CVE-2"), _row(5.0, "six", "CVE-1"), _row(9.0, "jinja2")]
        once = sort_rows(rows)

        assert [r.cve_id for r in once] == ["CVE-1", "CVE-2", "CVE-1"]
        assert sort_rows(once) == once


class TestSelectionSet:
    """Test selection scoped to the visible keys."""

    def test_toggle(self):
        selection = SelectionSet(["CVE-1", "CVE-2"])

        assert selection.toggle("CVE-1") is True
        assert "CVE-1" in selection
        assert selection.toggle("CVE-1") is False
        assert "CVE-1" not in selection

    def test_toggle_outside_view_raises(self):
        with pytest.raises(KeyError):
            SelectionSet(["CVE-1"]).toggle("CVE-9")

    def test_select_all_then_clear(self):
        selection = SelectionSet(["CVE-2", "CVE-1"])
        selection.toggle("CVE-1")

        selection.select_all_visible()
        assert selection.selected() == ["CVE-1", "CVE-2"]

        selection.select_all_visible()
        assert len(selection) == 0

    def test_select_all_with_new_keys_rescopes(self):
        selection = SelectionSet(["CVE-1", "CVE-2"])
        selection.toggle("CVE-1")

        selection.select_all_visible(["CVE-2", "CVE-3"])

        assert selection.selected() == ["CVE-2", "CVE-3"]
        assert selection.visible == frozenset({"CVE-2", "CVE-3"})

    def test_reset_clears(self):
        selection = SelectionSet(["CVE-1"])
        selection.toggle("CVE-1")

        selection.reset(["CVE-1", "CVE-2"])

        assert len(selection) == 0
        assert not selection.all_selected()

    def test_empty_view_is_never_all_selected(self):
        selection = SelectionSet()
        selection.select_all_visible()

        assert selection.selected() == []


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
