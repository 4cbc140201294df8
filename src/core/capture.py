"""Selection capture (core domain).

Turns a platform selection snapshot into a PendingSelection scoped to one
message, or returns None when there is nothing worth capturing.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional

from core.models import Conversation, PendingSelection, RawSelection

LOGGER = logging.getLogger(__name__)


def capture_selection(
    conversation: Conversation,
    message_index: int,
    raw: RawSelection,
    clear_selection: Optional[Callable[[], None]] = None,
) -> Optional[PendingSelection]:
    """Return a PendingSelection for a valid raw selection.

    Rules:
    - Collapsed selections and whitespace-only text are ignored.
    - Offsets must be message-local with start < end <= len(message content).
    - The message index must exist in the conversation.

    None of these cases is an error. On success the platform selection is
    cleared through ``clear_selection`` so one drag is captured once.
    """

    if raw.is_collapsed:
        return None

    text = raw.text.strip()
    if not text:
        return None

    if not 0 <= message_index < conversation.length:
        LOGGER.debug("Ignoring selection for unknown message %s", message_index)
        return None

    if not 0 <= raw.start_offset < raw.end_offset:
        LOGGER.debug(
            "Ignoring selection with offsets %s..%s", raw.start_offset, raw.end_offset
        )
        return None

    content = conversation.messages[message_index].content
    if raw.end_offset > len(content):
        LOGGER.debug(
            "Ignoring selection past end of message %s (%s > %s)",
            message_index,
            raw.end_offset,
            len(content),
        )
        return None

    selection = PendingSelection(
        message_index=message_index,
        start_offset=raw.start_offset,
        end_offset=raw.end_offset,
        text=text,
    )
    if clear_selection is not None:
        clear_selection()
    return selection
