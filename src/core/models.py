"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any UI or transport-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

VIOLATION = "violation"
COMPLIANCE = "compliance"
ANNOTATION_TYPES = (VIOLATION, COMPLIANCE)


@dataclass(frozen=True)
class Message:
    """One message of a conversation; its content is the offset coordinate space."""

    index: int
    role: str
    content: str


@dataclass(frozen=True)
class Conversation:
    """Transcript under review. Owned by the caller, never mutated."""

    id: str
    title: str
    messages: tuple[Message, ...]
    domain: str
    categories: tuple[str, ...] = ()
    last_updated: Optional[datetime] = None
    post_url: Optional[str] = None

    @property
    def length(self) -> int:
        return len(self.messages)


@dataclass(frozen=True)
class RawSelection:
    """Snapshot of a platform text selection inside one message."""

    start_offset: int
    end_offset: int
    text: str

    @property
    def is_collapsed(self) -> bool:
        return self.start_offset == self.end_offset


@dataclass(frozen=True)
class PendingSelection:
    """A captured span waiting in the pending batch."""

    message_index: int
    start_offset: int
    end_offset: int
    text: str


@dataclass(frozen=True)
class Rule:
    """Reference rule from the shared catalog."""

    id: str
    domain: str
    content: str


@dataclass(frozen=True)
class Selection:
    """A committed span stamped with the annotation judgment."""

    message_index: int
    start_offset: int
    end_offset: int
    rule_id: str
    type: str
    comment: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "messageIndex": self.message_index,
            "startOffset": self.start_offset,
            "endOffset": self.end_offset,
            "ruleId": self.rule_id,
            "type": self.type,
            "comment": self.comment,
        }


@dataclass(frozen=True)
class AnnotationPayload:
    """Body of a single atomic create call."""

    conversation_id: str
    selections: tuple[Selection, ...]
    annotator: str

    def to_payload(self) -> dict[str, Any]:
        return {
            "conversation_id": self.conversation_id,
            "selections": [selection.to_payload() for selection in self.selections],
            "annotator": self.annotator,
        }


@dataclass(frozen=True)
class Annotation:
    """Persisted annotation as returned by the store."""

    conversation_id: str
    selections: tuple[Selection, ...]
    annotator: str
    id: Optional[str] = None
    created_at: Optional[datetime] = field(default=None, compare=False)
