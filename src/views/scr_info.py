from textual.app import ComposeResult
from textual.widgets import MarkdownViewer, TabbedContent, TabPane

from views.base_screen import BaseScreen
from views.info_content import ABOUT, CONTACT, SHIPPING_POLICY, faq_markdown


class InfoScreen(BaseScreen):
    """FAQ, shipping policy, about and contact pages."""

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent(id="super-tab-info"):
            with TabPane("FAQ", id="tab-faq"):
                yield MarkdownViewer(faq_markdown(), show_table_of_contents=True)
            with TabPane("Shipping Policy", id="tab-shipping"):
                yield MarkdownViewer(SHIPPING_POLICY, show_table_of_contents=False)
            with TabPane("About", id="tab-about"):
                yield MarkdownViewer(ABOUT, show_table_of_contents=False)
            with TabPane("Contact", id="tab-contact"):
                yield MarkdownViewer(CONTACT, show_table_of_contents=False)
