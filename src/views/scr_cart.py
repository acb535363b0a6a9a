from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, HorizontalGroup, VerticalScroll
from textual.events import ScreenResume
from textual.widgets import Button, Label, Markdown, Rule

from backend.models import CartItem
from utils.messages import CartChangedMessage, NewOrderMessage, SessionChangedMessage
from utils.pure import (
    DISCOUNT_PERCENTAGE,
    FREE_SHIPPING_ORDER_LIMIT,
    GUEST_SHIPPING_HINT,
    format_price,
    summarize_cart,
)
from views.base_screen import BaseScreen
from views.modal_checkout import CheckoutModal
from views.modal_dialog import DialogModal


class CartItemWidget(HorizontalGroup):
    def __init__(self, item: CartItem):
        super().__init__()
        self.item = item

    def compose(self):
        item = self.item
        with Container(id="div-cart-item-group"):
            with Container(id="div-item"):
                yield Label(item.name, id="label-item-name")
                yield Label(f"Size: {item.size}", id="label-item-size")
                yield Label(f"{format_price(item.price)} each", id="label-item-price")
                yield Label(format_price(item.line_total), id="label-item-total")
            with Horizontal(id="div-actions"):
                yield Button("-", classes="btn-qty-sub", disabled=item.quantity <= 1)
                yield Label(str(item.quantity), id="label-item-qty")
                yield Button(
                    "+", classes="btn-qty-add", disabled=item.quantity >= item.max_stock
                )
                yield Button("Remove", classes="btn-item-remove", variant="error")

    @on(Button.Pressed, ".btn-qty-sub")
    async def handle_sub_qty(self):
        await self._set_quantity(self.item.quantity - 1)

    @on(Button.Pressed, ".btn-qty-add")
    async def handle_add_qty(self):
        await self._set_quantity(self.item.quantity + 1)

    async def _set_quantity(self, quantity: int) -> None:
        await self.app.state.cart.update_quantity(
            self.item.product_id, self.item.size, quantity
        )
        self.post_message(CartChangedMessage())

    @on(Button.Pressed, ".btn-item-remove")
    @work()
    async def handle_remove_item(self):
        remove_confirmed = await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove this item from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        )

        if remove_confirmed:
            await self.app.state.cart.remove_item(self.item.product_id, self.item.size)
            self.post_message(CartChangedMessage())
            self.notify("Item removed from cart.", severity="information")


class CartScreen(BaseScreen):
    """
    Cart lines, order summary, and the checkout hand-off.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield VerticalScroll(id="vertscroll-content")
        yield Rule(line_style="dashed")
        yield Markdown("", id="md-cart-summary")
        with Horizontal(id="hort-buttons"):
            yield Button("Clear Cart", id="btn-clear-cart")
            yield Button("Checkout", id="btn-checkout", variant="primary")

    def on_mount(self):
        self.handle_cart_change()

    @on(ScreenResume)
    @work(exclusive=True, group="order-count")
    async def sync_order_count(self):
        """Free shipping depends on the order count, so re-read it on each visit."""
        state = self.app.state
        if state.session.is_authenticated:
            await state.session.sync_order_count(state.client)
            self.handle_cart_change()

    @on(CartChangedMessage)
    @on(SessionChangedMessage)
    @on(ScreenResume)
    @work(exclusive=True)  # must exclusive, else might race cond and gen duplicate
    async def handle_cart_change(self):
        state = self.app.state
        items = list(state.cart.items)

        content = self.query_one("#vertscroll-content")
        await content.remove_children()
        await content.mount_all([CartItemWidget(item) for item in items])

        if not items:
            content.add_class("no-items")
            await content.mount(Label("Your cart is empty. Visit the shop to add items."))
        else:
            content.remove_class("no-items")

        summary = summarize_cart(items, state.session.is_authenticated, state.session.user)
        lines = [f"**Subtotal:** {format_price(summary.subtotal)}  "]
        if summary.discount > 0:
            lines.append(
                f"**Discount ({DISCOUNT_PERCENTAGE}% off):** -{format_price(summary.discount)}  "
            )
        lines.append(
            "**Shipping:** "
            + ("Free" if summary.shipping == 0 else format_price(summary.shipping))
            + "  "
        )
        lines.append(f"### Total: {format_price(summary.total)}")
        if state.session.is_authenticated:
            lines.append(f"\n_Free shipping for your first {FREE_SHIPPING_ORDER_LIMIT} orders!_")
        else:
            lines.append(f"\n_{GUEST_SHIPPING_HINT}_")
        await self.query_one("#md-cart-summary", Markdown).update("\n".join(lines))

        self.query_one("#btn-checkout", Button).disabled = not items
        await self.refresh_sidebar()

    @on(Button.Pressed, "#btn-clear-cart")
    @work()
    async def handle_clear_cart(self) -> None:
        cart = self.app.state.cart
        if not cart.items:
            self.app.notify("Cart is empty.", severity="warning")
            return

        remove_confirmed = await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove all items from cart?",
                primary_text="Yes",
                secondary_text="No",
                tone="error",
            )
        )
        if remove_confirmed:
            await cart.clear()
            self.post_message(CartChangedMessage())

    @on(Button.Pressed, "#btn-checkout")
    @work()
    async def handle_checkout(self) -> None:
        if not self.app.state.cart.items:
            self.app.notify("Cart is empty.", severity="warning")
            return

        order_id = await self.app.push_screen_wait(CheckoutModal())
        if order_id:
            self.app.post_message(NewOrderMessage(order_id))
        self.post_message(CartChangedMessage())
