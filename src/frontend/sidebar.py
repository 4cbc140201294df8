"""Annotation sidebar shown while a pending batch exists."""

from __future__ import annotations

from typing import Any, Optional

from textual import on
from textual.containers import Horizontal, Vertical
from textual.widgets import Button, DataTable, Input, Select, Static

from adapters.formatting import format_rule_option, format_span_label
from .constants import TYPE_OPTIONS
from .validators import parse_commit_form


class AnnotationSidebar(Vertical):
    """Pending spans table plus the rule/type/comment form."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._table_ready = False
        self._rule_ids: tuple[str, ...] = ()
        self._current_row: Optional[int] = None

    def compose(self):
        yield Static("New annotation", id="sidebar-title")
        yield Static("selections", classes="form-label")
        yield DataTable(id="pending-table", cursor_type="row")
        with Horizontal(id="pending-actions"):
            yield Button("Remove span", id="remove-span", variant="warning")
        yield Static("rule", classes="form-label")
        yield Select([], id="rule-select", prompt="Choose a rule")
        yield Static("type", classes="form-label")
        yield Select(TYPE_OPTIONS, id="type-select", value="violation", allow_blank=False)
        yield Static("comment", classes="form-label")
        yield Input(placeholder="Why does this apply?", id="comment-input")
        yield Static("", id="form-error", classes="form-error")
        with Horizontal(id="sidebar-actions"):
            yield Button("Submit", id="submit-batch", variant="success")
            yield Button("Cancel", id="cancel-batch", variant="error")

    def on_mount(self) -> None:
        table = self.query_one("#pending-table", DataTable)
        table.add_column("span", key="span")
        table.zebra_stripes = True
        self._table_ready = True
        self.reload_from_session()

    def reload_from_session(self) -> None:
        if not self._table_ready:
            return
        session = self.app.session
        table = self.query_one("#pending-table", DataTable)
        table.clear()
        for index, selection in enumerate(session.pending_selections):
            table.add_row(format_span_label(selection), key=str(index))
        if self._current_row is not None and self._current_row >= len(session.pending_selections):
            self._current_row = None

        rules = session.applicable_rules
        rule_ids = tuple(rule.id for rule in rules)
        if rule_ids != self._rule_ids:
            # set_options resets the value, so only rebuild when the list changed.
            self._rule_ids = rule_ids
            self.query_one("#rule-select", Select).set_options(
                [(format_rule_option(rule), rule.id) for rule in rules]
            )

        self.query_one("#submit-batch", Button).disabled = not session.can_commit
        self.query_one("#remove-span", Button).disabled = (
            self._current_row is None or session.committing
        )

    def reset_form(self) -> None:
        self.query_one("#comment-input", Input).value = ""
        self._set_form_error("")

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        row_key = getattr(event.row_key, "value", event.row_key)
        try:
            self._current_row = int(row_key)
        except (TypeError, ValueError):
            self._current_row = None
        self.query_one("#remove-span", Button).disabled = self._current_row is None

    @on(Button.Pressed, "#remove-span")
    def _on_remove_span(self) -> None:
        if self._current_row is None:
            return
        index = self._current_row
        self._current_row = None
        self.app.remove_pending(index)

    @on(Button.Pressed, "#cancel-batch")
    def _on_cancel(self) -> None:
        self.reset_form()
        self.app.action_cancel_batch()

    @on(Button.Pressed, "#submit-batch")
    @on(Input.Submitted, "#comment-input")
    def _on_submit(self) -> None:
        form = parse_commit_form(
            self.query_one("#rule-select", Select).value,
            self.query_one("#type-select", Select).value,
            self.query_one("#comment-input", Input).value,
            self._rule_ids,
        )
        if form.error:
            self._set_form_error(form.error)
            return
        self._set_form_error("")
        self.app.submit_batch(form.rule_id, form.annotation_type, form.comment)

    def _set_form_error(self, message: str) -> None:
        self.query_one("#form-error", Static).update(message)
