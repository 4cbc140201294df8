"""Read-only message pane that reports text selections."""

from __future__ import annotations

from typing import Any

from textual import events
from textual.message import Message
from textual.widgets import TextArea
from textual.widgets.text_area import Selection

from core.models import RawSelection
from .selection import raw_selection_from_locations


class MessageView(TextArea):
    """One conversation message; selecting text emits ``SpanSelected``."""

    class SpanSelected(Message):
        """Posted on mouse-up (or the add-span key) with a selection snapshot."""

        def __init__(self, view: "MessageView", raw: RawSelection) -> None:
            super().__init__()
            self.view = view
            self.raw = raw

        @property
        def message_index(self) -> int:
            return self.view.message_index

    def __init__(self, message_index: int, role: str, content: str, **kwargs: Any) -> None:
        super().__init__(content, read_only=True, soft_wrap=True, **kwargs)
        self.message_index = message_index
        self.message_text = content
        self.border_title = f"#{message_index} {role}".strip()

    def on_mouse_up(self, event: events.MouseUp) -> None:
        self.capture()

    def capture(self) -> None:
        """Post the current selection; collapsed cursors are filtered by the core."""

        start, end = self.selection
        if start == end:
            return
        raw = raw_selection_from_locations(self.message_text, start, end, self.selected_text)
        self.post_message(self.SpanSelected(self, raw))

    def clear_selection(self) -> None:
        self.selection = Selection.cursor(self.selection.end)

    def set_span_counts(self, committed: int, pending: int) -> None:
        parts = []
        if committed:
            parts.append(f"{committed} annotated")
        if pending:
            parts.append(f"{pending} pending")
        self.border_subtitle = " · ".join(parts)
        self.set_class(bool(committed), "message--annotated")
        self.set_class(bool(pending), "message--pending")
