"""Helpers for working with message-local spans."""

from __future__ import annotations

from typing import Iterable, List, Protocol, TypeVar

from core.models import Annotation, Selection


class _Span(Protocol):
    message_index: int
    start_offset: int
    end_offset: int


SpanT = TypeVar("SpanT", bound=_Span)


def flatten_selections(annotations: Iterable[Annotation]) -> List[Selection]:
    """Flatten committed annotations into their selections, preserving order."""

    return [selection for annotation in annotations for selection in annotation.selections]


def spans_for_message(spans: Iterable[SpanT], message_index: int) -> List[SpanT]:
    """Return the spans that belong to one message, sorted by start offset."""

    matching = [span for span in spans if span.message_index == message_index]
    return sorted(matching, key=lambda span: (span.start_offset, span.end_offset))


def span_text(content: str, span: _Span) -> str:
    """Return the slice of ``content`` covered by ``span``."""

    return content[span.start_offset : span.end_offset]
