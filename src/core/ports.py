"""Ports (interfaces) used by the annotation session.

Ports define the minimal contracts for the rule catalog and the annotation
store so that the core can be reused with different backends. Every method is
a suspension point; failures are raised as ``core.errors.StoreError``.
"""

from __future__ import annotations

from typing import Protocol, Sequence

from core.models import Annotation, AnnotationPayload, Rule


class RuleCatalogPort(Protocol):
    """Read access to the shared rule catalog."""

    async def get_all(self) -> Sequence[Rule]:
        """Return every rule regardless of domain."""
        ...


class AnnotationStorePort(Protocol):
    """Annotation persistence required by the session."""

    async def get_by_conversation(self, conversation_id: str) -> Sequence[Annotation]:
        ...

    async def create(self, payload: AnnotationPayload) -> Annotation:
        """Persist all selections of the payload as one annotation, or none."""
        ...
