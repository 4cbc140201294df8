"""Validation helpers for the annotation form."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

from core.models import ANNOTATION_TYPES


@dataclass
class CommitForm:
    rule_id: str | None
    annotation_type: str | None
    comment: str
    error: str | None = None


def parse_commit_form(
    rule_value: Any,
    type_value: Any,
    comment: str,
    rule_ids: Iterable[str],
) -> CommitForm:
    """Check the sidebar inputs before a commit is attempted.

    Select widgets report a blank sentinel instead of a string when nothing
    is chosen, so anything that is not a known string is rejected.
    """

    comment = comment.strip()
    if not isinstance(rule_value, str) or not rule_value:
        return CommitForm(None, None, comment, "choose a rule")
    if rule_value not in set(rule_ids):
        return CommitForm(None, None, comment, "rule is not available for this domain")
    if not isinstance(type_value, str) or type_value not in ANNOTATION_TYPES:
        return CommitForm(rule_value, None, comment, "choose violation or compliance")
    return CommitForm(rule_value, type_value, comment)
