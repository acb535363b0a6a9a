from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, MarkdownViewer, Select

import backend.endpoints as endpoints
from backend.errors import ApiError
from backend.models import Product


class ReviewsModal(ModalScreen[bool]):
    """
    Lists a product's reviews and submits a new one.
    Returns True if a review was submitted.
    """

    def __init__(self, product: Product) -> None:
        super().__init__()
        self._prod = product
        self._submitted = False

    def compose(self) -> ComposeResult:
        with Vertical(id="div-reviews"):
            yield MarkdownViewer("", show_table_of_contents=False)
            yield Label("Write a review")
            yield Select(
                [("★" * n, n) for n in range(5, 0, -1)],
                prompt="Rating",
                id="select-rating",
            )
            yield Input(placeholder="Title", id="input-review-title")
            yield Input(placeholder="Tell others what you think", id="input-review-comment")
            with Horizontal():
                yield Button("Go Back", id="btn-quit")
                yield Button("Submit Review", id="btn-submit", variant="primary")

    def on_mount(self) -> None:
        self.load_reviews()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(self._submitted)

    @work(exclusive=True, group="reviews")
    async def load_reviews(self) -> None:
        md = f"### Reviews: {self._prod.name}\n\n"
        try:
            reviews = await endpoints.list_reviews(self.app.state.client, self._prod.id)
        except ApiError as e:
            reviews = []
            md += f"_Could not load reviews: {e.message}_\n"

        if not reviews:
            md += "No reviews yet. Be the first to review this product!\n"
        for r in reviews:
            stars = "★" * r.rating + "☆" * (5 - r.rating)
            md += f"#### {stars} {r.title}\n"
            if r.author:
                md += f"_by {r.author}_\n\n"
            md += f"{r.comment}\n\n"
        await self.query_one(MarkdownViewer).document.update(md)

    @on(Button.Pressed, "#btn-submit")
    @work(exclusive=True)
    async def handle_submit(self) -> None:
        rating = self.query_one("#select-rating", Select).value
        title = self.query_one("#input-review-title", Input).value
        comment = self.query_one("#input-review-comment", Input).value

        if rating == Select.BLANK:
            self.notify("Please select a rating", severity="error")
            return
        if not title.strip() or not comment.strip():
            self.notify("Please fill in all fields", severity="error")
            return

        try:
            await endpoints.submit_review(
                self.app.state.client, self._prod.id, int(rating), title, comment
            )
        except ApiError as e:
            self.notify(e.message or "Failed to submit review", severity="error")
            return

        self._submitted = True
        self.notify("Review submitted successfully!")
        self.query_one("#select-rating", Select).clear()
        self.query_one("#input-review-title", Input).value = ""
        self.query_one("#input-review-comment", Input).value = ""
        self.load_reviews()

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self) -> None:
        self.dismiss(self._submitted)
