"""
Canonical ordering for package rows: highest score first, then package name.
"""

from typing import Iterable

from src.section1_ingestion.schemas import ReconciledRow


def row_sort_key(row: ReconciledRow) -> tuple[float, str]:
    """Score descending, package name ascending (plain code-point order)."""
    return (-row.score, row.package_name)


def sort_rows(rows: Iterable[ReconciledRow]) -> list[ReconciledRow]:
    """
    Return rows in canonical order.

    `sorted` is stable, so rows equal on both keys keep their input order and
    sorting an already-sorted list returns it unchanged.
    """
    return sorted(rows, key=row_sort_key)
