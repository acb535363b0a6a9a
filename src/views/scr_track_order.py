import dataclasses

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, Checkbox, Input, Label, MarkdownViewer, Static

from backend.errors import ApiError, ValidationError
from backend.models import Order
from utils.logger import get_logger
from utils.messages import SessionChangedMessage
from utils.pure import (
    STATUS_LABELS,
    STATUS_STEPS,
    format_date,
    format_price,
    generate_markdown_table,
)
from utils.tracking import OrderTracker
from views.base_screen import BaseScreen
from views.modal_cancel_order import CancelOrderModal

_logger = get_logger(__name__)

STEP_MARKERS = {
    "completed": ("✔", "green"),
    "current": ("●", "blue"),
    "upcoming": ("○", "grey50"),
}


class TrackOrderScreen(BaseScreen):
    """
    Look up an order by order id or tracking id, follow its progress, and cancel it
    while it hasn't shipped.
    """

    def __init__(self):
        super().__init__()
        self.tracker: OrderTracker | None = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical(id="div-track-form"):
            with Horizontal(id="hort-track-input"):
                yield Input(placeholder="e.g. TL2025001", id="input-track-id")
                yield Button("Track", id="btn-track", variant="primary")
            yield Checkbox("Search by tracking ID", id="chk-use-tracking")
            yield Label("", id="label-track-error")
        yield Static("", id="static-progress")
        yield MarkdownViewer(
            "Enter your order ID to see its status.",
            id="md-order-status",
            show_table_of_contents=False,
        )
        with Horizontal(id="hort-track-actions"):
            yield Button("Cancel Order", id="btn-cancel-order", variant="error")

    def on_mount(self) -> None:
        state = self.app.state
        self.tracker = OrderTracker(state.client, state.session)
        self.query_one("#btn-cancel-order").display = False
        self.query_one("#static-progress").display = False
        self.query_one("#input-track-id").focus()
        self._consume_pending()

    @on(ScreenResume)
    def handle_resume(self) -> None:
        self._consume_pending()

    def _consume_pending(self) -> None:
        """Pick up an order handed over by another screen or the command line."""
        if self.tracker is None:
            return
        app = self.app
        pending = app.pending_track
        app.pending_track = None
        if pending is None:
            launch = app.launch
            if launch.tracking_id:
                pending = (launch.tracking_id, True)
            elif launch.order_id:
                pending = (launch.order_id, False)
            app.launch = dataclasses.replace(launch, order_id=None, tracking_id=None)
        if pending is None:
            return

        identifier, use_tracking = pending
        self.query_one("#input-track-id", Input).value = identifier
        self.query_one("#chk-use-tracking", Checkbox).value = use_tracking
        self.track_order(identifier, use_tracking)

    @on(Input.Submitted, "#input-track-id")
    @on(Button.Pressed, "#btn-track")
    def handle_track(self) -> None:
        identifier = self.query_one("#input-track-id", Input).value
        use_tracking = self.query_one("#chk-use-tracking", Checkbox).value
        self.track_order(identifier, use_tracking)

    def _set_error(self, message: str) -> None:
        label = self.query_one("#label-track-error", Label)
        label.update(message)
        label.set_class(bool(message), "-error")

    @work(exclusive=True, group="track")
    async def track_order(self, identifier: str, use_tracking: bool) -> None:
        self._set_error("")
        button = self.query_one("#btn-track", Button)
        button.disabled = True
        try:
            order = await self.tracker.track(identifier, use_tracking)
        except (ValidationError, ApiError) as e:
            self._set_error(e.message)
            await self._render(None)
            return
        finally:
            button.disabled = False

        self.query_one("#input-track-id", Input).value = self.tracker.identifier
        await self._render(order)

    async def _render(self, order: Order | None) -> None:
        progress = self.query_one("#static-progress", Static)
        md_viewer = self.query_one("#md-order-status", MarkdownViewer)
        cancel_btn = self.query_one("#btn-cancel-order", Button)

        if order is None:
            progress.display = False
            cancel_btn.display = False
            await md_viewer.document.update("Enter your order ID to see its status.")
            return

        progress.display = True
        progress.update(self._progress_markup(order))
        cancel_btn.display = self.tracker.can_cancel
        await md_viewer.document.update(self._order_markdown(order))

    def _progress_markup(self, order: Order) -> str:
        if order.order_status == "cancelled":
            return "[bold red]✘ This order has been cancelled.[/]"
        parts = []
        for status, step_state in zip(STATUS_STEPS, self.tracker.step_states):
            marker, color = STEP_MARKERS[step_state]
            label = STATUS_LABELS[status]
            if step_state == "current":
                label = f"[b]{label}[/b]"
            parts.append(f"[{color}]{marker}[/] {label}")
        return "  ─  ".join(parts)

    def _order_markdown(self, order: Order) -> str:
        status_label = STATUS_LABELS.get(order.order_status, order.order_status or "-")
        md = f"### Order {order.order_id}\n\n"
        md += f"**Status:** {status_label}  \n"
        md += f"**Placed on:** {format_date(order.created_at)}  \n"
        md += f"**Payment:** {order.payment_method.upper() or '-'} ({order.payment_status or '-'})  \n"
        if order.tracking_id:
            md += f"**Tracking ID:** `{order.tracking_id}`  \n"
        if order.estimated_delivery:
            md += (
                "**Estimated delivery:** "
                f"{format_date(order.estimated_delivery, '%A, %b %d, %Y')}  \n"
            )
        md += f"**Ship to:** {order.customer.name or '-'}, {order.shipping_address or '-'}\n\n"

        md += "#### Items\n\n"
        rows = [
            [i.name, i.size or "-", i.quantity, format_price(i.price * i.quantity)]
            for i in order.items
        ]
        md += generate_markdown_table(["Item", "Size", "Qty", "Price"], rows, ["l", "c", "c", "r"])
        md += f"\n\n**Total:** {format_price(order.total)}\n"

        if order.status_history:
            md += "\n#### History\n\n"
            for entry in order.status_history:
                label = STATUS_LABELS.get(entry.status, entry.status)
                md += f"- **{label}** ({format_date(entry.timestamp, '%b %d, %Y %H:%M')})"
                md += f": {entry.note}\n" if entry.note else "\n"
        return md

    @on(SessionChangedMessage)
    async def handle_session_change(self) -> None:
        if self.tracker is not None and self.tracker.order is not None:
            await self._render(self.tracker.order)

    @on(Button.Pressed, "#btn-cancel-order")
    @work(exclusive=True, group="cancel")
    async def handle_cancel_order(self) -> None:
        order = self.tracker.order
        if order is None:
            return

        is_guest = not self.app.state.session.is_authenticated
        contact = await self.app.push_screen_wait(
            CancelOrderModal(order.order_id, require_contact=is_guest)
        )
        if contact is None:
            return

        email, phone = contact
        try:
            updated = await self.tracker.cancel(email, phone)
        except ValidationError as e:
            self.notify(e.message, severity="error")
            return
        except ApiError as e:
            _logger.warning(f"Cancelling {order.order_id} failed: {e!r}")
            self.notify(e.message, severity="error")
            return

        self.notify("Order cancelled successfully")
        await self._render(updated)
