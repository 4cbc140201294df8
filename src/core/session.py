"""Annotation review session.

This module is UI-agnostic. It only relies on ports for the rule catalog and
the annotation store, so the terminal UI (or any other view) only forwards
selection events and renders the exposed state.

Lifecycle of one conversation view:
1) ``bind`` loads rules and annotations concurrently
2) selection events accumulate into the pending batch
3) ``on_commit_batch`` submits the whole batch as one annotation
4) on success the annotation list is re-read and the batch is cleared

Every load and commit is tagged with the generation that was current when it
started. Binding another conversation bumps the generation, and late results
for an older one are dropped instead of overwriting the new view.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional

from core.batch import PendingBatch
from core.capture import capture_selection
from core.models import (
    ANNOTATION_TYPES,
    Annotation,
    AnnotationPayload,
    Conversation,
    PendingSelection,
    RawSelection,
    Rule,
    Selection,
)
from core.ports import AnnotationStorePort, RuleCatalogPort
from core.rules import find_rule, rules_for_domain
from core.spans import flatten_selections

LOGGER = logging.getLogger(__name__)

LOAD_RULES_ERROR = "Failed to load rules. Please try again later."
LOAD_ANNOTATIONS_ERROR = "Failed to load annotations. Please try again later."
SAVE_ERROR = "Failed to save annotations. Please try again."
INVALID_TYPE_ERROR = "Choose whether the selection is a violation or compliance."
UNKNOWN_RULE_ERROR = "Choose a rule for the '{domain}' domain."


class AnnotationSession:
    """Owns the pending batch, loaded lists and error slot of one view."""

    def __init__(
        self,
        rule_catalog: RuleCatalogPort,
        annotation_store: AnnotationStorePort,
        annotator: str,
        on_change: Optional[Callable[[], None]] = None,
    ) -> None:
        self._rule_catalog = rule_catalog
        self._annotation_store = annotation_store
        self._annotator = annotator
        self.on_change = on_change

        self._conversation: Optional[Conversation] = None
        self._generation = 0
        self._batch = PendingBatch()
        self._rules: List[Rule] = []
        self._annotations: List[Annotation] = []

        self.error: Optional[str] = None
        self.loading = False
        self.committing = False

    @property
    def conversation(self) -> Optional[Conversation]:
        return self._conversation

    @property
    def annotator(self) -> str:
        return self._annotator

    @property
    def pending_selections(self) -> tuple[PendingSelection, ...]:
        return self._batch.selections

    @property
    def sidebar_visible(self) -> bool:
        return self._batch.visible

    @property
    def rules(self) -> tuple[Rule, ...]:
        return tuple(self._rules)

    @property
    def applicable_rules(self) -> List[Rule]:
        if self._conversation is None:
            return []
        return rules_for_domain(self._rules, self._conversation.domain)

    @property
    def annotations(self) -> tuple[Annotation, ...]:
        return tuple(self._annotations)

    @property
    def committed_selections(self) -> List[Selection]:
        return flatten_selections(self._annotations)

    @property
    def can_commit(self) -> bool:
        return bool(self._batch) and not self.committing

    async def bind(self, conversation: Conversation) -> None:
        """Attach the session to a conversation and load its data."""

        self._generation += 1
        self._conversation = conversation
        # Spans of the previous transcript are meaningless here.
        self._batch.clear()
        self._annotations = []
        self.committing = False
        self.error = None
        self.loading = True
        self._notify()
        LOGGER.info("Reviewing conversation %s", conversation.id)
        await self._load(self._generation)

    async def reload(self) -> None:
        """Re-run both reads for the current conversation."""

        if self._conversation is None:
            return
        self.loading = True
        self._notify()
        await self._load(self._generation)

    def on_selection_captured(
        self,
        message_index: int,
        raw: RawSelection,
        clear_selection: Optional[Callable[[], None]] = None,
    ) -> Optional[PendingSelection]:
        """Capture a raw selection into the pending batch."""

        if self._conversation is None:
            return None
        selection = capture_selection(self._conversation, message_index, raw, clear_selection)
        if selection is None:
            return None
        self._batch.add(selection)
        LOGGER.debug(
            "Captured span %s:%s-%s",
            selection.message_index,
            selection.start_offset,
            selection.end_offset,
        )
        self._notify()
        return selection

    def on_remove_pending_selection(self, index: int) -> None:
        if self._batch.remove(index):
            self._notify()

    def on_cancel_batch(self) -> None:
        self._batch.clear()
        self._notify()

    async def on_commit_batch(self, rule_id: str, annotation_type: str, comment: str) -> bool:
        """Submit the pending batch as one annotation.

        Returns True when the store accepted the annotation. An empty batch or
        a commit already in flight is a no-op and returns False.
        """

        conversation = self._conversation
        if conversation is None or not self._batch or self.committing:
            return False

        if annotation_type not in ANNOTATION_TYPES:
            self._set_error(INVALID_TYPE_ERROR)
            return False
        if find_rule(self.applicable_rules, rule_id) is None:
            self._set_error(UNKNOWN_RULE_ERROR.format(domain=conversation.domain))
            return False

        submitted = self._batch.selections
        comment = comment.strip()
        payload = AnnotationPayload(
            conversation_id=conversation.id,
            selections=tuple(
                Selection(
                    message_index=pending.message_index,
                    start_offset=pending.start_offset,
                    end_offset=pending.end_offset,
                    rule_id=rule_id,
                    type=annotation_type,
                    comment=comment,
                )
                for pending in submitted
            ),
            annotator=self._annotator,
        )

        generation = self._generation
        self.committing = True
        self._notify()
        try:
            await self._annotation_store.create(payload)
        except Exception:
            LOGGER.exception("Error saving annotations for %s", conversation.id)
            if self._is_current(generation):
                self.committing = False
                self._set_error(SAVE_ERROR)
            return False

        LOGGER.info(
            "Saved annotation with %s span(s) for %s (%s, %s)",
            len(submitted),
            conversation.id,
            rule_id,
            annotation_type,
        )
        if not self._is_current(generation):
            return True

        try:
            # Read-through: the store's canonical list replaces the local one.
            await self._load_annotations(generation)
        finally:
            if self._is_current(generation):
                self._batch.discard(submitted)
                self.committing = False
                self._notify()
        return True

    async def _load(self, generation: int) -> None:
        # Both reads write disjoint state, so completion order does not matter.
        await asyncio.gather(
            self._load_rules(generation),
            self._load_annotations(generation),
        )

    async def _load_rules(self, generation: int) -> None:
        try:
            rules = await self._rule_catalog.get_all()
        except Exception:
            LOGGER.exception("Error loading rules")
            if self._is_current(generation):
                self._set_error(LOAD_RULES_ERROR)
            return

        if not self._is_current(generation):
            LOGGER.debug("Dropping stale rule load (generation %s)", generation)
            return
        self._rules = list(rules)
        self.error = None
        self._notify()

    async def _load_annotations(self, generation: int) -> None:
        conversation_id = self._conversation.id if self._conversation else None
        try:
            annotations = await self._annotation_store.get_by_conversation(conversation_id)
        except Exception:
            LOGGER.exception("Error loading annotations for %s", conversation_id)
            if self._is_current(generation):
                self.loading = False
                self._set_error(LOAD_ANNOTATIONS_ERROR)
            return

        if not self._is_current(generation):
            LOGGER.debug("Dropping stale annotation load for %s", conversation_id)
            return
        self._annotations = list(annotations)
        self.error = None
        self.loading = False
        self._notify()

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _set_error(self, message: str) -> None:
        self.error = message
        self._notify()

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change()
