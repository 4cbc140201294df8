from __future__ import annotations

import asyncio

import pytest

from core.models import Annotation, Selection
from core.session import (
    INVALID_TYPE_ERROR,
    LOAD_ANNOTATIONS_ERROR,
    LOAD_RULES_ERROR,
    SAVE_ERROR,
    AnnotationSession,
)

from fakes import FakeAnnotationStore, FakeRuleCatalog, make_conversation, raw


def _session(catalog=None, store=None) -> tuple[AnnotationSession, FakeRuleCatalog, FakeAnnotationStore]:
    catalog = catalog or FakeRuleCatalog()
    store = store or FakeAnnotationStore()
    session = AnnotationSession(rule_catalog=catalog, annotation_store=store, annotator="reviewer-7")
    return session, catalog, store


def _bound_session(**kwargs):
    session, catalog, store = _session(**kwargs)
    asyncio.run(session.bind(make_conversation()))
    return session, catalog, store


def _existing_annotation(conversation_id: str = "conv-1") -> Annotation:
    return Annotation(
        conversation_id=conversation_id,
        selections=(
            Selection(
                message_index=3,
                start_offset=0,
                end_offset=11,
                rule_id="R1",
                type="violation",
                comment="vague",
            ),
        ),
        annotator="someone",
        id="existing",
    )


def test_bind_loads_rules_and_annotations() -> None:
    store = FakeAnnotationStore()
    store.annotations["conv-1"] = [_existing_annotation()]
    session, catalog, _ = _bound_session(store=store)

    assert catalog.calls == 1
    assert store.fetches == ["conv-1"]
    assert not session.loading
    assert session.error is None
    assert [rule.id for rule in session.applicable_rules] == ["R1", "R2"]
    assert len(session.committed_selections) == 1
    assert session.committed_selections[0].message_index == 3


def test_select_spans_in_two_messages() -> None:
    session, _, _ = _bound_session()

    session.on_selection_captured(0, raw(0, 8, "My order"))
    assert len(session.pending_selections) == 1
    assert session.sidebar_visible

    session.on_selection_captured(2, raw(0, 8, "How long"))
    assert len(session.pending_selections) == 2
    assert session.sidebar_visible


def test_remove_from_two_keeps_sidebar_open() -> None:
    session, _, _ = _bound_session()
    session.on_selection_captured(0, raw(0, 8, "My order"))
    session.on_selection_captured(2, raw(0, 8, "How long"))

    session.on_remove_pending_selection(0)

    assert [s.message_index for s in session.pending_selections] == [2]
    assert session.sidebar_visible


def test_remove_last_selection_hides_sidebar() -> None:
    session, _, _ = _bound_session()
    session.on_selection_captured(0, raw(0, 8, "My order"))

    session.on_remove_pending_selection(0)

    assert session.pending_selections == ()
    assert not session.sidebar_visible


def test_out_of_range_remove_leaves_state_unchanged() -> None:
    session, _, _ = _bound_session()
    session.on_selection_captured(0, raw(0, 8, "My order"))
    before = session.pending_selections

    session.on_remove_pending_selection(5)

    assert session.pending_selections == before
    assert session.sidebar_visible


def test_whitespace_selection_does_not_change_visibility() -> None:
    session, _, _ = _bound_session()

    assert session.on_selection_captured(0, raw(2, 3, " ")) is None
    assert session.on_selection_captured(0, raw(4, 4, "")) is None
    assert session.pending_selections == ()
    assert not session.sidebar_visible


def test_cancel_clears_batch() -> None:
    session, _, _ = _bound_session()
    session.on_selection_captured(0, raw(0, 8, "My order"))
    session.on_selection_captured(1, raw(0, 4, "Sure"))

    session.on_cancel_batch()

    assert session.pending_selections == ()
    assert not session.sidebar_visible


def test_commit_sends_one_batch_and_refetches() -> None:
    session, _, store = _bound_session()
    session.on_selection_captured(0, raw(0, 8, "My order"))
    session.on_selection_captured(2, raw(0, 8, "How long"))

    saved = asyncio.run(session.on_commit_batch("R1", "violation", "too vague"))

    assert saved
    assert len(store.created) == 1
    payload = store.created[0]
    assert payload.conversation_id == "conv-1"
    assert payload.annotator == "reviewer-7"
    assert len(payload.selections) == 2
    assert {(s.rule_id, s.type, s.comment) for s in payload.selections} == {("R1", "violation", "too vague")}
    assert [s.message_index for s in payload.selections] == [0, 2]
    assert store.fetches == ["conv-1", "conv-1"]
    assert session.pending_selections == ()
    assert not session.sidebar_visible
    assert not session.committing
    assert len(session.committed_selections) == 2


def test_commit_payload_uses_wire_field_names() -> None:
    session, _, store = _bound_session()
    session.on_selection_captured(1, raw(6, 13, "we will"))

    asyncio.run(session.on_commit_batch("R2", "compliance", "  fine  "))

    assert store.created[0].to_payload() == {
        "conversation_id": "conv-1",
        "selections": [
            {
                "messageIndex": 1,
                "startOffset": 6,
                "endOffset": 13,
                "ruleId": "R2",
                "type": "compliance",
                "comment": "fine",
            }
        ],
        "annotator": "reviewer-7",
    }


def test_commit_failure_preserves_batch() -> None:
    store = FakeAnnotationStore()
    store.fail_create = True
    session, _, _ = _bound_session(store=store)
    session.on_selection_captured(0, raw(0, 8, "My order"))
    session.on_selection_captured(2, raw(0, 8, "How long"))
    before = session.pending_selections

    saved = asyncio.run(session.on_commit_batch("R1", "violation", "too vague"))

    assert not saved
    assert session.pending_selections == before
    assert session.sidebar_visible
    assert session.error == SAVE_ERROR
    assert not session.committing
    assert store.fetches == ["conv-1"]


def test_retry_after_failure_succeeds() -> None:
    store = FakeAnnotationStore()
    store.fail_create = True
    session, _, _ = _bound_session(store=store)
    session.on_selection_captured(0, raw(0, 8, "My order"))
    asyncio.run(session.on_commit_batch("R1", "violation", "x"))

    store.fail_create = False
    assert asyncio.run(session.on_commit_batch("R1", "violation", "x"))
    assert session.error is None
    assert session.pending_selections == ()


def test_commit_with_empty_batch_is_noop() -> None:
    session, _, store = _bound_session()

    assert not asyncio.run(session.on_commit_batch("R1", "violation", "x"))
    assert store.created == []
    assert session.error is None


def test_commit_rejects_unknown_type_and_foreign_rule() -> None:
    session, _, store = _bound_session()
    session.on_selection_captured(0, raw(0, 8, "My order"))

    assert not asyncio.run(session.on_commit_batch("R1", "praise", "x"))
    assert session.error == INVALID_TYPE_ERROR

    assert not asyncio.run(session.on_commit_batch("M1", "violation", "x"))
    assert "support" in (session.error or "")

    assert store.created == []
    assert len(session.pending_selections) == 1


def test_second_commit_while_in_flight_is_ignored() -> None:
    async def scenario():
        store = FakeAnnotationStore()
        session, _, _ = _session(store=store)
        await session.bind(make_conversation())
        session.on_selection_captured(0, raw(0, 8, "My order"))
        store.create_gate = asyncio.Event()

        first = asyncio.create_task(session.on_commit_batch("R1", "violation", "x"))
        await asyncio.sleep(0)
        in_flight = (session.committing, session.sidebar_visible, session.can_commit)
        second = await session.on_commit_batch("R1", "violation", "x")
        # Spans captured while the request is outstanding stay pending.
        session.on_selection_captured(2, raw(0, 8, "How long"))
        store.create_gate.set()
        return session, store, in_flight, second, await first

    session, store, in_flight, second, first = asyncio.run(scenario())

    assert in_flight == (True, True, False)
    assert second is False
    assert first is True
    assert len(store.created) == 1
    assert [s.message_index for s in session.pending_selections] == [2]
    assert session.sidebar_visible


def test_annotation_load_failure_clears_loading() -> None:
    store = FakeAnnotationStore()
    store.fail_fetch = True
    session, _, _ = _bound_session(store=store)

    assert not session.loading
    assert session.error == LOAD_ANNOTATIONS_ERROR
    assert session.annotations == ()
    assert session.committed_selections == []


def test_rule_load_failure_does_not_block_annotations() -> None:
    store = FakeAnnotationStore()
    store.annotations["conv-1"] = [_existing_annotation()]
    session, _, _ = _bound_session(catalog=FakeRuleCatalog(fail=True), store=store)

    assert not session.loading
    assert len(session.annotations) == 1
    assert session.rules == ()
    assert session.applicable_rules == []


def test_rule_failure_settling_last_sets_error() -> None:
    catalog = FakeRuleCatalog(fail=True)
    session, _, _ = _session(catalog=catalog)

    async def scenario():
        catalog.gate = asyncio.Event()
        task = asyncio.create_task(session.bind(make_conversation()))
        await asyncio.sleep(0)
        # Readiness only waits for the annotation read.
        while session.loading:
            await asyncio.sleep(0)
        ready_error = session.error
        catalog.gate.set()
        await task
        return ready_error

    ready_error = asyncio.run(scenario())

    assert ready_error is None
    assert session.error == LOAD_RULES_ERROR


def test_stale_annotation_load_is_discarded() -> None:
    store = FakeAnnotationStore()
    store.annotations["conv-a"] = [_existing_annotation("conv-a")]
    store.annotations["conv-b"] = []
    session, _, _ = _session(store=store)

    async def scenario():
        store.fetch_gates["conv-a"] = asyncio.Event()
        first = asyncio.create_task(session.bind(make_conversation("conv-a")))
        await asyncio.sleep(0)
        await session.bind(make_conversation("conv-b"))
        store.fetch_gates["conv-a"].set()
        await first

    asyncio.run(scenario())

    assert session.conversation is not None
    assert session.conversation.id == "conv-b"
    assert session.annotations == ()
    assert not session.loading


def test_rebinding_clears_pending_batch() -> None:
    session, _, _ = _bound_session()
    session.on_selection_captured(0, raw(0, 8, "My order"))

    asyncio.run(session.bind(make_conversation("conv-2")))

    assert session.pending_selections == ()
    assert not session.sidebar_visible


def test_reload_refetches_current_conversation() -> None:
    session, catalog, store = _bound_session()
    store.annotations["conv-1"] = [_existing_annotation()]

    asyncio.run(session.reload())

    assert catalog.calls == 2
    assert store.fetches == ["conv-1", "conv-1"]
    assert len(session.annotations) == 1


def test_change_listener_is_called() -> None:
    calls: list[int] = []
    session, _, _ = _session()
    session.on_change = lambda: calls.append(1)

    asyncio.run(session.bind(make_conversation()))
    before = len(calls)
    session.on_selection_captured(0, raw(0, 8, "My order"))

    assert before > 0
    assert len(calls) == before + 1


def test_selection_before_bind_is_ignored() -> None:
    session, _, _ = _session()

    assert session.on_selection_captured(0, raw(0, 2, "My")) is None
    assert session.pending_selections == ()


@pytest.mark.parametrize("late_failure", [False, True])
def test_stale_rule_load_is_discarded(late_failure: bool) -> None:
    catalog = FakeRuleCatalog()
    session, _, _ = _session(catalog=catalog)

    async def scenario():
        catalog.gate = asyncio.Event()
        old_gate = catalog.gate
        first = asyncio.create_task(session.bind(make_conversation("conv-a")))
        while catalog.calls < 1:
            await asyncio.sleep(0)
        catalog.gate = None
        await session.bind(make_conversation("conv-b"))
        # The held-back conv-a read now settles with a different outcome.
        catalog.rules = []
        catalog.fail = late_failure
        old_gate.set()
        await first

    asyncio.run(scenario())

    assert session.conversation.id == "conv-b"
    assert [rule.id for rule in session.applicable_rules] == ["R1", "R2"]
    assert session.error is None


@pytest.mark.parametrize("fail_create", [False, True])
def test_stale_commit_outcome_leaves_new_conversation_alone(fail_create: bool) -> None:
    store = FakeAnnotationStore()
    session, _, _ = _session(store=store)

    async def scenario():
        await session.bind(make_conversation("conv-a"))
        session.on_selection_captured(0, raw(0, 8, "My order"))
        store.create_gate = asyncio.Event()
        store.fail_create = fail_create
        commit = asyncio.create_task(session.on_commit_batch("R1", "violation", "x"))
        while not store.created:
            await asyncio.sleep(0)
        await session.bind(make_conversation("conv-b"))
        session.on_selection_captured(2, raw(0, 8, "How long"))
        store.create_gate.set()
        return await commit

    saved = asyncio.run(scenario())

    assert saved is not fail_create
    assert [s.message_index for s in session.pending_selections] == [2]
    assert session.sidebar_visible
    assert not session.committing
    assert session.error is None
    assert store.fetches == ["conv-a", "conv-b"]


def test_failed_refetch_after_commit_still_clears_batch() -> None:
    session, _, store = _bound_session()
    session.on_selection_captured(0, raw(0, 8, "My order"))
    store.fail_fetch = True

    saved = asyncio.run(session.on_commit_batch("R1", "violation", "x"))

    assert saved
    assert len(store.created) == 1
    assert session.pending_selections == ()
    assert not session.sidebar_visible
    assert not session.committing
    assert session.error == LOAD_ANNOTATIONS_ERROR
