"""Convert TextArea selections into message-local character offsets."""

from __future__ import annotations

from typing import Tuple

from core.models import RawSelection

Location = Tuple[int, int]


def location_to_offset(text: str, location: Location) -> int:
    """Return the character offset of a (row, column) location in ``text``.

    Rows follow ``str.splitlines`` like the TextArea document does, so every
    line break it recognizes (``\\r``, ``\\r\\n``, U+2028, ...) counts with its
    own length. Locations past the end of a row or of the text are clamped.
    """

    row, column = location
    lines = text.splitlines(keepends=True)
    if row < 0:
        return 0
    if row >= len(lines):
        return len(text)
    offset = sum(len(line) for line in lines[:row])
    content = lines[row].splitlines()[0]
    return offset + max(0, min(column, len(content)))


def raw_selection_from_locations(
    text: str,
    start: Location,
    end: Location,
    selected_text: str,
) -> RawSelection:
    """Snapshot a selection; backwards drags are normalized to start < end."""

    first = location_to_offset(text, start)
    second = location_to_offset(text, end)
    return RawSelection(
        start_offset=min(first, second),
        end_offset=max(first, second),
        text=selected_text,
    )
