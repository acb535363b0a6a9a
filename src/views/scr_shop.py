import dataclasses
from typing import Dict, List

from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Button, DataTable, Input, Label, Select

import backend.endpoints as endpoints
from backend.errors import ApiError
from backend.models import Category, Product
from utils.messages import CartChangedMessage
from utils.pure import filter_products, format_price
from views.base_screen import BaseScreen
from views.modal_prod_detail import ProdDetailModal


class ShopScreen(BaseScreen):
    """
    Product catalog with search and category filter.
    Filtering happens client-side over the fetched product list.
    """

    # only here to be displayed in footer
    BINDINGS = [
        Binding("enter", "noop", "View Product", show=True, key_display="⏎"),
    ]

    def __init__(self):
        super().__init__()
        self._products: List[Product] = []
        self._categories: List[Category] = []
        self._visible: Dict[str, Product] = {}

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-shop-filters"):
            yield Input(id="input-search", placeholder="Search products...")
            yield Select([], prompt="All categories", id="select-category")
            yield Button("Clear", id="btn-clear-filters")
        yield DataTable(id="table-products")
        yield Label("", id="label-result-count")

    def on_mount(self):
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("Name", "Category", "Price", "In Stock", "Rating")

        launch = self.app.launch
        if launch.focus_search:
            self.query_one("#input-search").focus()
        else:
            table.focus()

        self.load_catalog()

    def action_noop(self) -> None:
        pass

    @work(exclusive=True, group="catalog")
    async def load_catalog(self) -> None:
        client = self.app.state.client
        try:
            self._products = await endpoints.list_products(client)
        except ApiError as e:
            self.notify(f"Failed to load products: {e.message}", severity="error")
            self._products = []

        try:
            self._categories = await endpoints.list_categories(client)
        except ApiError as e:
            self.notify(f"Failed to load categories: {e.message}", severity="warning")
            self._categories = []

        select = self.query_one("#select-category", Select)
        select.set_options((c.name, c.slug) for c in self._categories)

        category = self.app.launch.category
        if category:
            match = next(
                (
                    c.slug
                    for c in self._categories
                    if category.lower() in (c.name.lower(), c.slug.lower())
                ),
                None,
            )
            if match is not None:
                select.value = match
        self.apply_filters()

    def _selected_category(self) -> str:
        select = self.query_one("#select-category", Select)
        if select.value == Select.BLANK:
            # a category given on the command line that isn't in the list still filters
            return self.app.launch.category or ""
        return str(select.value)

    def apply_filters(self) -> None:
        search = self.query_one("#input-search", Input).value
        products = filter_products(self._products, search, self._selected_category())

        table = self.query_one(DataTable)
        table.clear()
        self._visible = {}
        for p in products:
            self._visible[p.id] = p
            table.add_row(
                p.name,
                p.category or "-",
                format_price(p.price),
                p.total_stock,
                f"{p.rating:.1f} ({p.review_count})",
                key=p.id,
            )
        self.query_one("#label-result-count", Label).update(
            f"Showing {len(products)} of {len(self._products)} products"
        )

    @on(Input.Changed, "#input-search")
    def handle_search(self) -> None:
        self.apply_filters()

    @on(Select.Changed, "#select-category")
    def handle_category(self) -> None:
        self.apply_filters()

    @on(Button.Pressed, "#btn-clear-filters")
    def handle_clear_filters(self) -> None:
        self.app.launch = dataclasses.replace(self.app.launch, category=None)
        self.query_one("#input-search", Input).value = ""
        self.query_one("#select-category", Select).clear()
        self.apply_filters()

    @on(DataTable.RowSelected)
    def handle_row_selected(self, event: DataTable.RowSelected) -> None:
        product = self._visible.get(event.row_key.value)
        if product is not None:
            self.open_product(product)

    @work()
    async def open_product(self, product: Product) -> None:
        if await self.app.push_screen_wait(ProdDetailModal(product)):
            self.post_message(CartChangedMessage())
