"""Rule lookup helpers (core domain)."""

from __future__ import annotations

from typing import Iterable, List, Optional

from core.models import Rule


def rules_for_domain(rules: Iterable[Rule], domain: str) -> List[Rule]:
    """Return the rules applicable to a conversation domain, in catalog order."""

    return [rule for rule in rules if rule.domain == domain]


def find_rule(rules: Iterable[Rule], rule_id: str) -> Optional[Rule]:
    """Return the rule with ``rule_id`` or None."""

    for rule in rules:
        if rule.id == rule_id:
            return rule
    return None
