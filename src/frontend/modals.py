"""Modal dialogs for the review app."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Static


class DiscardBatchScreen(ModalScreen[str]):
    """Prompt when quitting with pending selections."""

    def __init__(self, pending_count: int) -> None:
        super().__init__()
        self._pending_count = pending_count

    def compose(self) -> ComposeResult:
        noun = "selection" if self._pending_count == 1 else "selections"
        yield Container(
            Static("Unsaved selections", classes="modal-title"),
            Static(
                f"{self._pending_count} pending {noun} will be lost.",
                classes="modal-body",
            ),
            Horizontal(
                Button("Discard", id="discard-confirm", variant="error"),
                Button("Cancel", id="discard-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--confirm",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "discard-confirm":
            self.dismiss("discard")
        else:
            self.dismiss("cancel")
