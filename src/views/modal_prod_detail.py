from typing import Optional

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, MarkdownViewer, Select

from backend.models import CartItem, Product, ProductSize
from utils.images import image_size_for, optimized_image_url
from utils.pure import format_price, generate_markdown_table
from views.modal_review import ReviewsModal


class ProdDetailModal(ModalScreen[bool]):
    """
    prod detail, plus size/quantity selection
    Will return true if cart changed, false if not
    """

    order_qty = reactive(1)

    def __init__(self, product: Product) -> None:
        super().__init__()
        self._prod = product
        self._size: Optional[ProductSize] = None

    def compose(self) -> ComposeResult:
        with Horizontal(id="hort-prod-detail"):
            yield MarkdownViewer("", show_table_of_contents=False)
            with Vertical():
                yield Label("Size")
                yield Select(
                    [
                        (f"{s.size} ({s.stock} left)", s.size)
                        for s in self._prod.sizes
                        if s.stock > 0
                    ],
                    prompt="Select a size",
                    id="select-size",
                )
                yield Label("Quantity")
                with Horizontal():
                    yield Button("-", id="btn-sub-qty")
                    yield Input(value="1", id="input-order-qty", type="integer")
                    yield Button("+", id="btn-add-qty")
                with Horizontal():
                    yield Button("Go Back", id="btn-quit")
                    yield Button("Reviews", id="btn-reviews")
                    yield Button("Add to Cart", id="btn-addcart", variant="primary")

    async def on_mount(self):
        prod = self._prod
        table_rows = [
            ["Price", format_price(prod.price)],
            ["Category", prod.category or "-"],
            ["Rating", f"{prod.rating:.1f} / 5 ({prod.review_count} reviews)"],
            ["Sizes", ", ".join(f"{s.size}: {s.stock}" for s in prod.sizes) or "-"],
        ]
        if prod.original_price and prod.original_price > prod.price:
            table_rows.insert(1, ["MRP", f"~~{format_price(prod.original_price)}~~"])

        md = f"### {prod.name}\n\n"
        md += generate_markdown_table(["Attribute", "Value"], table_rows, ["l", "l"])
        md += f"\n\n{prod.description}\n"
        if prod.primary_image:
            image_url = optimized_image_url(prod.primary_image, width=image_size_for(320))
            md += f"\n[View image]({image_url})\n"
        await self.query_one(MarkdownViewer).document.update(md)

        if prod.total_stock < 1:
            order_btn = self.query_one("#btn-addcart", Button)
            order_btn.label = "Out of Stock"
            order_btn.disabled = True
            order_btn.variant = "warning"
            self.query_one("#select-size", Select).disabled = True

        self._refresh_qty_buttons()
        self.query_one("#select-size").focus()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    @on(Select.Changed, "#select-size")
    def handle_size_changed(self, event: Select.Changed) -> None:
        self._size = next(
            (s for s in self._prod.sizes if s.size == event.value), None
        )
        if self._size and self.order_qty > self._size.stock:
            self.order_qty = self._size.stock
        self._refresh_qty_buttons()

    def _max_qty(self) -> int:
        return self._size.stock if self._size else 1

    def validate_order_qty(self, qty: int) -> int:
        return max(1, min(qty, self._max_qty()))

    def _refresh_qty_buttons(self) -> None:
        self.query_one("#btn-sub-qty", Button).disabled = self.order_qty <= 1
        self.query_one("#btn-add-qty", Button).disabled = (
            self.order_qty >= self._max_qty()
        )

    def on_input_changed(self, message: Input.Changed) -> None:
        if (
            message.input.id == "input-order-qty"
            and message.value.isdigit()
            and self.focused == message.input
        ):
            self.order_qty = int(message.value)

    def watch_order_qty(self, qty: int) -> None:
        self._refresh_qty_buttons()
        input_order_qty = self.query_one("#input-order-qty", Input)
        if input_order_qty.value != str(qty):
            input_order_qty.value = str(qty)

    @on(Button.Pressed, "#btn-add-qty")
    def handle_add_qty(self):
        self.order_qty += 1

    @on(Button.Pressed, "#btn-sub-qty")
    def handle_sub_qty(self):
        self.order_qty -= 1

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)

    @on(Button.Pressed, "#btn-reviews")
    def handle_reviews(self):
        self.app.push_screen(ReviewsModal(self._prod))

    @on(Button.Pressed, "#btn-addcart")
    @work(exclusive=True)
    async def handle_addcart(self):
        if self._size is None:
            self.notify("Please select a size.", severity="error")
            self.query_one("#select-size").focus()
            return

        cart = self.app.state.cart
        item = CartItem(
            product_id=self._prod.id,
            name=self._prod.name,
            price=self._prod.price,
            size=self._size.size,
            quantity=self.order_qty,
            category=self._prod.category,
            max_stock=self._size.stock,
            image=self._prod.primary_image,
        )
        existing = cart.get_item(item.product_id, item.size)

        if not await cart.add_item(item):
            in_cart = existing.quantity if existing else 0
            self.notify(
                f"Only {self._size.stock} in stock, {in_cart} already in your cart.",
                severity="warning",
            )
            return

        if existing:
            self.app.notify("Updated cart item quantity.")
        else:
            self.app.notify("Item added to cart successfully.")
        self.dismiss(True)
