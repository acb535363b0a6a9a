from typing import Optional, Tuple

from textual import events, on
from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label

from utils.tracking import MISSING_VERIFICATION_MESSAGE


class CancelOrderModal(ModalScreen[Optional[Tuple[str, str]]]):
    """
    Confirms a cancellation. Guests must also give the order's email or phone.
    Dismisses with (email, phone), or None if backed out.
    """

    def __init__(self, order_id: str, require_contact: bool) -> None:
        super().__init__()
        self.order_id = order_id
        self.require_contact = require_contact

    def compose(self) -> ComposeResult:
        with Container(id="div-cancel-order"):
            yield Label(
                f"Cancel order {self.order_id}? This cannot be undone.", id="caption"
            )
            if self.require_contact:
                yield Label(
                    "Enter the email or phone number used for this order.",
                    classes="label-hint",
                )
                yield Label("Email")
                yield Input(placeholder="you@example.com", id="input-cancel-email")
                yield Label("Phone")
                yield Input(placeholder="9876543210", id="input-cancel-phone")
            with Horizontal(id="dialog"):
                yield Button("Keep Order", id="btn-secondary")
                yield Button("Cancel Order", variant="error", id="btn-primary")

    def on_mount(self) -> None:
        if self.require_contact:
            self.query_one("#input-cancel-email").focus()
        else:
            self.query_one("#btn-secondary").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    @on(Button.Pressed, "#btn-secondary")
    def handle_keep(self) -> None:
        self.dismiss(None)

    @on(Button.Pressed, "#btn-primary")
    def handle_confirm(self) -> None:
        if not self.require_contact:
            self.dismiss(("", ""))
            return

        email = self.query_one("#input-cancel-email", Input).value.strip()
        phone = self.query_one("#input-cancel-phone", Input).value.strip()
        if not email and not phone:
            self.notify(MISSING_VERIFICATION_MESSAGE, severity="error")
            self.query_one("#input-cancel-email", Input).add_class("-invalid")
            return
        self.dismiss((email, phone))
