from typing import Dict, Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, MarkdownViewer

import backend.endpoints as endpoints
from backend.errors import ApiError
from utils.logger import get_logger
from utils.pure import (
    build_order_payload,
    format_price,
    generate_markdown_table,
    summarize_cart,
    validate_checkout,
)
from views.modal_dialog import DialogModal

_logger = get_logger(__name__)

# (input id suffix, label, placeholder)
CUSTOMER_FIELDS = [
    ("name", "Full Name", "Jane Doe"),
    ("email", "Email", "you@example.com"),
    ("phone", "Phone", "9876543210"),
]
SHIPPING_FIELDS = [
    ("firstName", "First Name", "Jane"),
    ("lastName", "Last Name (optional)", "Doe"),
    ("address", "Address", "12 MG Road"),
    ("apartment", "Apartment (optional)", "Flat 4B"),
    ("city", "City", "Chennai"),
    ("state", "State", "Tamil Nadu"),
    ("pinCode", "PIN Code", "600001"),
]


class CheckoutModal(ModalScreen[Optional[str]]):
    """
    Order summary plus contact and shipping fields.
    Places a cash-on-delivery order; returns the new order id, None if cancelled.
    """

    def compose(self) -> ComposeResult:
        with Vertical():
            yield MarkdownViewer("", show_table_of_contents=False)
            with VerticalScroll(id="vertscroll-checkout-form"):
                yield Label("Contact", classes="label-section")
                for key, label, placeholder in CUSTOMER_FIELDS:
                    yield Label(label)
                    yield Input(placeholder=placeholder, id=f"input-customer-{key}")
                yield Label("Shipping Address", classes="label-section")
                for key, label, placeholder in SHIPPING_FIELDS:
                    yield Label(label)
                    yield Input(placeholder=placeholder, id=f"input-shipping-{key}")
                yield Label("Payment: Cash on Delivery", classes="label-section")
            with Horizontal():
                yield Button("Go Back", id="btn-quit")
                yield Button("Place Order", id="btn-submit", variant="primary")

    async def on_mount(self):
        state = self.app.state
        items = state.cart.items
        summary = summarize_cart(items, state.session.is_authenticated, state.session.user)

        headers = ["Product Name", "Size", "Unit Price", "Quantity", "Total Price"]
        rows = [
            [i.name, i.size, format_price(i.price), i.quantity, format_price(i.line_total)]
            for i in items
        ]
        md = "### Order Summary\n\n"
        md += generate_markdown_table(headers, rows, ["l", "c", "r", "c", "r"])
        md += f"\n\n**Subtotal:** {format_price(summary.subtotal)}  \n"
        if summary.discount:
            md += f"**Discount:** -{format_price(summary.discount)}  \n"
        md += "**Shipping:** " + (
            "Free" if summary.shipping == 0 else format_price(summary.shipping)
        )
        md += f"  \n**Total:** {format_price(summary.total)}"
        await self.query_one(MarkdownViewer).document.update(md)

        user = state.session.user
        if state.session.is_authenticated and user:
            self.query_one("#input-customer-name", Input).value = user.name
            self.query_one("#input-customer-email", Input).value = user.email
            first_name = user.name.split(" ")[0] if user.name else ""
            self.query_one("#input-shipping-firstName", Input).value = first_name
            self.query_one("#input-customer-phone", Input).focus()
        else:
            self.query_one("#input-customer-name", Input).focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(None)

    def _read_fields(self, prefix: str, fields) -> Dict[str, str]:
        values = {}
        for key, _, _ in fields:
            value = self.query_one(f"#input-{prefix}-{key}", Input).value.strip()
            if value:
                values[key] = value
        return values

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self):
        customer = self._read_fields("customer", CUSTOMER_FIELDS)
        shipping = self._read_fields("shipping", SHIPPING_FIELDS)
        shipping["country"] = "India"

        for inp in self.query(Input):
            inp.remove_class("-invalid")
        errors = validate_checkout(customer, shipping)
        if errors:
            for field in errors:
                section, key = field.split(".", 1)
                self.query_one(f"#input-{section}-{key}", Input).add_class("-invalid")
            first = next(iter(errors))
            self.query_one(f"#input-{first.replace('.', '-', 1)}", Input).focus()
            self.notify(errors[first], severity="error")
            return

        if not await self.app.push_screen_wait(
            DialogModal(
                "Place order? Payment is collected on delivery.",
                primary_text="Yes",
                secondary_text="No",
                tone="positive",
            )
        ):
            return

        state = self.app.state
        items = list(state.cart.items)
        summary = summarize_cart(items, state.session.is_authenticated, state.session.user)
        order = build_order_payload(items, summary, customer, shipping)

        button = self.query_one("#btn-submit", Button)
        button.disabled = True
        try:
            order_id = await endpoints.place_order(state.client, order)
        except ApiError as e:
            _logger.error(f"Order placement failed: {e!r}")
            self.notify(e.message or "Failed to place order", severity="error")
            return
        finally:
            button.disabled = False

        await state.cart.clear()
        if state.session.is_authenticated:
            await state.session.increment_order_count()
            await state.session.refresh_user(state.client)
        _logger.info(f"Order {order_id} placed.")
        self.notify(f"Order placed. Your order ID is {order_id}.")
        self.dismiss(order_id)

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(None)
