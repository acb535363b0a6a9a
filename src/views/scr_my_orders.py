from typing import Dict, List

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, MarkdownViewer

import backend.endpoints as endpoints
from backend.errors import ApiError
from backend.models import Order
from utils.messages import (
    LoginRequestedMessage,
    SessionChangedMessage,
    TrackOrderRequestedMessage,
)
from utils.pure import STATUS_LABELS, format_date, format_price
from views.base_screen import BaseScreen

GUEST_PROMPT = (
    "### Sign in to see your orders\n\n"
    "Orders placed while signed in show up here.  \n"
    "Placed an order as a guest? Use **Track Order** with your order ID."
)


class MyOrdersScreen(BaseScreen):
    """
    Signed-in customers browse their orders and view details.

    Layout:
    - Markdown detail view at the top, showing the highlighted order.
    - Orders table below, newest first.
    """

    # Show some hints in footer
    BINDINGS = [
        Binding("enter", "noop", "Track Order", show=True, key_display="⏎"),
    ]

    def __init__(self) -> None:
        super().__init__()
        self._orders: Dict[str, Order] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            yield MarkdownViewer(id="md-order-detail", show_table_of_contents=False)
            yield DataTable(id="table-orders")
        with Horizontal(id="hort-table-control"):
            yield Button("Refresh", id="btn-refresh")
            yield Button("Track Order", id="btn-track", variant="primary")
            yield Button("Log in", id="btn-login", variant="primary")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Order ID", "Date", "Items", "Status", "Total")

    def action_noop(self) -> None:
        pass

    @on(Button.Pressed, "#btn-refresh")
    @on(ScreenResume)
    @on(SessionChangedMessage)
    def handle_refresh(self) -> None:
        self._load_orders()

    @work(exclusive=True, group="orders")
    async def _load_orders(self) -> None:
        state = self.app.state
        is_guest = not state.session.is_authenticated
        table = self.query_one(DataTable)
        self.query_one("#btn-login").display = is_guest
        self.query_one("#btn-track").display = not is_guest
        self.query_one("#btn-refresh").display = not is_guest
        table.display = not is_guest

        if is_guest:
            table.clear()
            self._orders = {}
            await self._render_detail(None, GUEST_PROMPT)
            return

        try:
            orders = await endpoints.list_my_orders(state.client)
        except ApiError as e:
            self.notify(f"Failed to load orders: {e.message}", severity="error")
            orders = []

        orders = sorted(orders, key=lambda o: o.created_at, reverse=True)
        self._populate(orders)

    def _populate(self, orders: List[Order]) -> None:
        table = self.query_one(DataTable)
        table.clear()
        self._orders = {}
        for o in orders:
            self._orders[o.order_id] = o
            table.add_row(
                o.order_id,
                format_date(o.created_at),
                sum(i.quantity for i in o.items),
                STATUS_LABELS.get(o.order_status, o.order_status),
                format_price(o.total),
                key=o.order_id,
            )
        if orders:
            table.cursor_coordinate = (0, 0)
            self.call_next(self._render_detail, orders[0])
        else:
            self.call_next(
                self._render_detail,
                None,
                "### No orders yet\n\nBrowse the shop and place your first order!",
            )

    @on(DataTable.RowHighlighted)
    async def handle_row_highlight(self, event: DataTable.RowHighlighted) -> None:
        order = self._orders.get(event.row_key.value)
        if order is not None:
            await self._render_detail(order)

    @on(DataTable.RowSelected)
    def handle_row_selected(self, event: DataTable.RowSelected) -> None:
        order = self._orders.get(event.row_key.value)
        if order is not None:
            self.post_message(TrackOrderRequestedMessage(order.order_id))

    @on(Button.Pressed, "#btn-track")
    def handle_track(self) -> None:
        table = self.query_one(DataTable)
        if table.row_count == 0:
            self.notify("No order selected.", severity="warning")
            return
        order_id = table.get_row_at(table.cursor_row)[0]
        self.post_message(TrackOrderRequestedMessage(order_id))

    @on(Button.Pressed, "#btn-login")
    def handle_login(self) -> None:
        self.post_message(LoginRequestedMessage())

    async def _render_detail(self, order: Order | None, placeholder: str = "") -> None:
        md_viewer = self.query_one("#md-order-detail", MarkdownViewer)
        if not order:
            await md_viewer.document.update(
                placeholder or "### Select an order to view its details."
            )
            return

        header = (
            f"### Order {order.order_id}\n"
            f"Date: {format_date(order.created_at)}  \n"
            f"Status: {STATUS_LABELS.get(order.order_status, order.order_status)}  \n"
            f"Ship To: {order.shipping_address or '-'}\n\n"
        )
        # Build items table in Markdown
        rows = [
            "| Product | Size | Qty | Unit Price | Line Total |",
            "|---|:---:|---:|---:|---:|",
        ]
        for item in order.items:
            rows.append(
                f"| {item.name} | {item.size or '-'} | {item.quantity} "
                f"| {format_price(item.price)} | {format_price(item.price * item.quantity)} |"
            )
        footer = f"\n\n**Grand Total:** {format_price(order.total)}"
        await md_viewer.document.update(header + "\n".join(rows) + footer)
