"""Record-to-core model mapping adapter.

Stores and files speak plain JSON-like dicts using the wire field names
(``messageIndex``, ``ruleId``, ``lastUpdated``...). This keeps those details out
of the core session.
"""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from core.errors import RecordError
from core.models import (
    ANNOTATION_TYPES,
    Annotation,
    Conversation,
    Message,
    Rule,
    Selection,
)


def _require(record: Mapping[str, Any], key: str) -> Any:
    try:
        return record[key]
    except KeyError:
        raise RecordError(f"record is missing '{key}'") from None
    except TypeError:
        raise RecordError(f"record must be an object, got {type(record).__name__}") from None


def _as_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise RecordError(f"'{key}' must be an integer")
    return value


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp; a trailing 'Z' is accepted."""

    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value
    text = str(value)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        raise RecordError(f"invalid timestamp: {value!r}") from None


def _message_content(record: Mapping[str, Any]) -> str:
    for key in ("content", "text"):
        value = record.get(key)
        if isinstance(value, str):
            return value
    raise RecordError("message record needs 'content'")


def conversation_from_record(record: Mapping[str, Any]) -> Conversation:
    """Build a Conversation from its JSON record."""

    raw_messages = _require(record, "conversation")
    if not isinstance(raw_messages, list):
        raise RecordError("'conversation' must be a list of messages")

    messages = []
    for index, raw in enumerate(raw_messages):
        if isinstance(raw, str):
            messages.append(Message(index=index, role="", content=raw))
            continue
        if not isinstance(raw, Mapping):
            raise RecordError(f"message {index} must be an object or string")
        role = raw.get("role") or raw.get("author") or ""
        messages.append(Message(index=index, role=str(role), content=_message_content(raw)))

    categories = record.get("categories") or []
    if not isinstance(categories, list):
        raise RecordError("'categories' must be a list")

    return Conversation(
        id=str(_require(record, "id")),
        title=str(record.get("title", "")),
        messages=tuple(messages),
        domain=str(_require(record, "domain")),
        categories=tuple(str(category) for category in categories),
        last_updated=parse_timestamp(record.get("lastUpdated")),
        post_url=record.get("postUrl") or None,
    )


def rule_from_record(record: Mapping[str, Any]) -> Rule:
    return Rule(
        id=str(_require(record, "id")),
        domain=str(_require(record, "domain")),
        content=str(record.get("content", "")),
    )


def selection_from_record(record: Mapping[str, Any]) -> Selection:
    start = _as_int(_require(record, "startOffset"), "startOffset")
    end = _as_int(_require(record, "endOffset"), "endOffset")
    if not 0 <= start < end:
        raise RecordError(f"invalid span offsets {start}..{end}")
    annotation_type = str(_require(record, "type"))
    if annotation_type not in ANNOTATION_TYPES:
        raise RecordError(f"unknown annotation type: {annotation_type}")
    return Selection(
        message_index=_as_int(_require(record, "messageIndex"), "messageIndex"),
        start_offset=start,
        end_offset=end,
        rule_id=str(_require(record, "ruleId")),
        type=annotation_type,
        comment=str(record.get("comment") or ""),
    )


def annotation_from_record(record: Mapping[str, Any]) -> Annotation:
    """Build an Annotation; server-assigned fields are optional."""

    raw_selections = _require(record, "selections")
    if not isinstance(raw_selections, list) or not raw_selections:
        raise RecordError("'selections' must be a non-empty list")
    raw_id = record.get("id", record.get("_id"))
    return Annotation(
        conversation_id=str(_require(record, "conversation_id")),
        selections=tuple(selection_from_record(item) for item in raw_selections),
        annotator=str(record.get("annotator", "")),
        id=str(raw_id) if raw_id is not None else None,
        created_at=parse_timestamp(record.get("created_at")),
    )


def load_conversation(path: Union[str, Path]) -> Conversation:
    """Read a conversation JSON file."""

    with open(path, "r", encoding="utf-8") as handle:
        try:
            data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise RecordError(f"{path}: {exc.msg}") from exc
    return conversation_from_record(data)


def load_rules(path: Union[str, Path]) -> list[Rule]:
    """Read a JSON list of rule records (or an object with a 'rules' list)."""

    with open(path, "r", encoding="utf-8") as handle:
        try:
            data = json.load(handle)
        except json.JSONDecodeError as exc:
            raise RecordError(f"{path}: {exc.msg}") from exc
    if isinstance(data, dict):
        data = data.get("rules", [])
    if not isinstance(data, list):
        raise RecordError(f"{path}: expected a list of rules")
    return [rule_from_record(item) for item in data]
