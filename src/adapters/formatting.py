"""Shared display formatting helpers.

Keeping formatting here prevents drift between the CLI and the terminal UI
and keeps span and annotation labels consistent across both.
"""

from __future__ import annotations

import re
from typing import Optional, Sequence

from core.models import Annotation, Conversation, PendingSelection, Rule
from core.spans import span_text

DIVIDER = "──────────────"


def clip_text(value: str, limit: int = 48) -> str:
    """Collapse whitespace and clip to ``limit`` characters."""

    value = re.sub(r"\s+", " ", value).strip()
    if len(value) <= limit:
        return value
    return value[: limit - 3] + "..."


def format_span_label(selection: PendingSelection, limit: int = 48) -> str:
    """Return ``#<message> [<start>:<end>] "excerpt"`` for a pending span."""

    return (
        f"#{selection.message_index} "
        f"[{selection.start_offset}:{selection.end_offset}] "
        f"\"{clip_text(selection.text, limit)}\""
    )


def format_conversation_meta(conversation: Conversation) -> str:
    """Return the header line, e.g. ``12 messages • Mar 4, 2024``."""

    noun = "message" if conversation.length == 1 else "messages"
    parts = [f"{conversation.length} {noun}"]
    if conversation.last_updated is not None:
        stamp = conversation.last_updated
        parts.append(f"{stamp:%b} {stamp.day}, {stamp.year}")
    return " • ".join(parts)


def format_rule_option(rule: Rule, limit: int = 60) -> str:
    return f"{rule.id}: {clip_text(rule.content, limit)}"


def format_annotation(
    annotation: Annotation,
    conversation: Optional[Conversation] = None,
) -> str:
    """Return a multi-line plain text summary of a committed annotation.

    When the conversation is given, each span shows the covered text.
    """

    first = annotation.selections[0]
    header = f"{first.type.upper()} {first.rule_id}"
    if annotation.annotator:
        header += f" by {annotation.annotator}"
    if annotation.created_at is not None:
        header += f" ({annotation.created_at.astimezone():%Y-%m-%d %H:%M})"

    lines = [header]
    if first.comment:
        lines.append(f"  {first.comment}")
    for selection in annotation.selections:
        label = f"  - #{selection.message_index} [{selection.start_offset}:{selection.end_offset}]"
        if conversation is not None and selection.message_index < conversation.length:
            content = conversation.messages[selection.message_index].content
            label += f" \"{clip_text(span_text(content, selection))}\""
        lines.append(label)
    return "\n".join(lines)


def format_annotations(
    annotations: Sequence[Annotation],
    conversation: Optional[Conversation] = None,
) -> str:
    if not annotations:
        return "No annotations."
    blocks = [format_annotation(annotation, conversation) for annotation in annotations]
    return f"\n{DIVIDER}\n".join(blocks)
