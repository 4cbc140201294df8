"""Main Textual app for reviewing one conversation."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical, VerticalScroll
from textual.widgets import Footer, LoadingIndicator, Static

from adapters.formatting import format_conversation_meta
from core.models import Conversation
from core.session import AnnotationSession
from core.spans import spans_for_message
from .constants import ACCENT
from .message_view import MessageView
from .modals import DiscardBatchScreen
from .sidebar import AnnotationSidebar


class ReviewApp(App):
    """Conversation transcript with span selection and an annotation sidebar."""

    def __init__(
        self,
        session: AnnotationSession,
        conversation: Conversation,
        on_exit: Optional[Callable[[], Awaitable[None]]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.session = session
        self.conversation = conversation
        self._on_exit = on_exit
        self.session.on_change = self._refresh_view

    BINDINGS = [
        ("a", "add_span", "Add span"),
        ("escape", "cancel_batch", "Cancel batch"),
        ("ctrl+r", "reload", "Reload"),
        ("q", "request_quit", "Quit"),
        ("ctrl+c", "request_quit", "Quit"),
    ]

    CSS_PATH = "app.tcss"

    def compose(self) -> ComposeResult:
        conversation = self.conversation
        with Container(id="header"):
            with Horizontal(id="header-row"):
                with Vertical(id="header-left"):
                    yield Static(self._title_text(), id="title")
                    yield Static(format_conversation_meta(conversation), classes="subtle")
                    if conversation.categories:
                        yield Static(" ".join(f"[{c}]" for c in conversation.categories), id="categories")
                    yield Static(conversation.domain, id="domain")
                with Vertical(id="header-right"):
                    yield Static(f"annotator: {self.session.annotator}", classes="subtle")
                    if conversation.post_url:
                        yield Static(f"Original post: {conversation.post_url}", id="post-url")
        yield Static("", id="error-banner")
        yield LoadingIndicator(id="loading")
        with Horizontal(id="body"):
            with VerticalScroll(id="messages"):
                for message in conversation.messages:
                    yield MessageView(
                        message.index,
                        message.role,
                        message.content,
                        id=f"message-{message.index}",
                        classes="message",
                    )
            yield AnnotationSidebar(id="sidebar")
        yield Footer()

    def on_mount(self) -> None:
        self._refresh_view()
        self.run_worker(self.session.bind(self.conversation), group="load", exclusive=True)

    async def on_unmount(self) -> None:
        if self._on_exit is not None:
            await self._on_exit()

    def on_message_view_span_selected(self, event: MessageView.SpanSelected) -> None:
        self.session.on_selection_captured(
            event.message_index,
            event.raw,
            clear_selection=event.view.clear_selection,
        )

    def action_add_span(self) -> None:
        focused = self.focused
        if isinstance(focused, MessageView):
            focused.capture()

    def action_cancel_batch(self) -> None:
        self.session.on_cancel_batch()

    def action_reload(self) -> None:
        self.run_worker(self.session.reload(), group="load", exclusive=True)

    def action_request_quit(self) -> None:
        pending = len(self.session.pending_selections)
        if pending:
            self.push_screen(DiscardBatchScreen(pending), self._handle_quit_choice)
        else:
            self.exit()

    def _handle_quit_choice(self, choice: str | None) -> None:
        if choice == "discard":
            self.exit()

    def remove_pending(self, index: int) -> None:
        self.session.on_remove_pending_selection(index)

    def submit_batch(self, rule_id: str, annotation_type: str, comment: str) -> None:
        if not self.session.can_commit:
            return
        self.run_worker(self._commit(rule_id, annotation_type, comment), group="commit")

    async def _commit(self, rule_id: str, annotation_type: str, comment: str) -> None:
        if await self.session.on_commit_batch(rule_id, annotation_type, comment):
            self.query_one(AnnotationSidebar).reset_form()

    def _refresh_view(self) -> None:
        if not self.is_mounted:
            return
        session = self.session

        banner = self.query_one("#error-banner", Static)
        banner.update(session.error or "")
        banner.display = bool(session.error)

        self.query_one("#loading", LoadingIndicator).display = session.loading
        self.query_one("#messages").display = not session.loading

        committed = session.committed_selections
        pending = session.pending_selections
        for view in self.query(MessageView):
            view.set_span_counts(
                len(spans_for_message(committed, view.message_index)),
                len(spans_for_message(pending, view.message_index)),
            )

        sidebar = self.query_one(AnnotationSidebar)
        sidebar.display = session.sidebar_visible
        sidebar.reload_from_session()

    def _title_text(self) -> Text:
        return Text.assemble(
            ("SPAN", ACCENT),
            ("SCOPE > ", "bold"),
            (self.conversation.title or self.conversation.id, "bold"),
        )
