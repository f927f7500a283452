"""
Selection of records within the current filtered view.
"""

from typing import Hashable, Iterable


class SelectionSet:
    """
    Keys selected by the user, always a subset of the visible keys.

    Replacing the visible keys (a new category, query or filter result)
    clears the selection first, so nothing selected in an earlier view
    survives into a later one.
    """

    def __init__(self, visible: Iterable[Hashable] = ()):
        self._visible: frozenset = frozenset(visible)
        self._selected: set = set()

    @property
    def visible(self) -> frozenset:
        return self._visible

    def reset(self, visible: Iterable[Hashable]) -> None:
        """Clear the selection and scope it to a new set of visible keys."""
        self._selected.clear()
        self._visible = frozenset(visible)

    def clear(self) -> None:
        self._selected.clear()

    def toggle(self, key: Hashable) -> bool:
        """
        Flip one key's membership.

        Returns:
            True if the key is selected afterwards

        Raises:
            KeyError: If the key is not in the current view
        """
        if key not in self._visible:
            raise KeyError(f"{key!r} is not in the current view")

        if key in self._selected:
            self._selected.discard(key)
            return False
        self._selected.add(key)
        return True

    def all_selected(self) -> bool:
        return bool(self._visible) and self._selected == set(self._visible)

    def select_all_visible(self, keys: Iterable[Hashable] | None = None) -> None:
        """
        Select every visible key, or clear if they already are all selected.

        Passing ``keys`` rescopes the view to them first when they differ.
        """
        if keys is not None:
            keys = frozenset(keys)
            if keys != self._visible:
                self.reset(keys)

        if self.all_selected():
            self._selected.clear()
        else:
            self._selected = set(self._visible)

    def selected(self) -> list:
        """Selected keys in sorted order, as handed to bulk actions."""
        return sorted(self._selected, key=str)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._selected

    def __len__(self) -> int:
        return len(self._selected)
