"""Pending batch of captured selections (core domain)."""

from __future__ import annotations

from typing import Iterable, Iterator

from core.models import PendingSelection


class PendingBatch:
    """Ordered pending selections plus the entry-surface visibility flag.

    Outside an in-flight commit the flag is true exactly when the batch is
    non-empty. Removal only hides the surface when the removed entry was the
    last one; the commit workflow owns visibility while a request is pending.
    """

    def __init__(self) -> None:
        self._selections: list[PendingSelection] = []
        self.visible = False

    def __len__(self) -> int:
        return len(self._selections)

    def __iter__(self) -> Iterator[PendingSelection]:
        return iter(self._selections)

    @property
    def selections(self) -> tuple[PendingSelection, ...]:
        return tuple(self._selections)

    def add(self, selection: PendingSelection) -> None:
        # Duplicates and overlaps are kept as separate entries.
        self._selections.append(selection)
        self.visible = True

    def remove(self, index: int) -> bool:
        """Remove the entry at ``index``; out-of-range indices are ignored."""

        if not 0 <= index < len(self._selections):
            return False
        previous_length = len(self._selections)
        del self._selections[index]
        if previous_length <= 1:
            self.visible = False
        return True

    def clear(self) -> None:
        self._selections.clear()
        self.visible = False

    def discard(self, committed: Iterable[PendingSelection]) -> None:
        """Drop committed entries, keeping spans captured while the commit ran.

        Entries are matched by identity since identical spans may coexist.
        """

        committed_ids = {id(selection) for selection in committed}
        self._selections = [s for s in self._selections if id(s) not in committed_ids]
        self.visible = bool(self._selections)
