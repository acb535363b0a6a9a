from textual import on, work
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container
from textual.events import ScreenResume
from textual.screen import Screen
from textual.widgets import Button, Footer, Header, Label, ListItem, ListView, Markdown

from utils.messages import (
    CartChangedMessage,
    LoginRequestedMessage,
    ModeSwitchedMessage,
    SessionChangedMessage,
    UserLogoutMessage,
)
from utils.pure import GUEST_SHIPPING_HINT, generate_markdown_table
from views.modal_dialog import DialogModal, QuitDialogModal


class Sidebar(Container):
    init_mode = ""

    def compose(self) -> ComposeResult:
        yield Label("Account", id="label-info-1")
        yield Markdown("", id="md-userinfo")
        yield Button("Log in", id="btn-auth", variant="primary")
        yield Label("Cart: 0 items", id="label-cart-count")
        yield Label("Menu", id="label-info-2")
        yield ListView(id="list-menu")

    async def on_mount(self):
        self.init_mode = self.app.current_mode

        list_menu: ListView = self.query_one("#list-menu")
        await list_menu.clear()
        await list_menu.extend(
            [
                ListItem(Label(v), id="list-menu-item-" + k)
                for k, v in self.app.MENU.items()
            ]
        )
        self.highlight_item(self.init_mode)
        await self.refresh_info()

    async def refresh_info(self) -> None:
        session = self.app.state.session
        btn_auth = self.query_one("#btn-auth", Button)

        if session.is_authenticated:
            user = session.user
            table_rows = [
                ["Name", user.name if user else "-"],
                ["Email", user.email if user else "-"],
                ["Orders", user.order_count if user else 0],
            ]
            md = generate_markdown_table(None, table_rows, ["l", "l"])
            btn_auth.label = "Log out"
            btn_auth.variant = "error"
        else:
            md = f"Browsing as **guest**.  \n{GUEST_SHIPPING_HINT}"
            btn_auth.label = "Log in"
            btn_auth.variant = "primary"

        await self.query_one("#md-userinfo", Markdown).update(md)
        count = self.app.state.cart.items_count()
        self.query_one("#label-cart-count", Label).update(
            f"Cart: {count} item{'' if count == 1 else 's'}"
        )

    async def on_list_view_selected(self, event: ListView.Selected):
        selected_mode = event.item.id.removeprefix("list-menu-item-")
        self.highlight_item(self.init_mode)
        if self.app.current_mode != selected_mode:
            self.post_message(ModeSwitchedMessage(self.app.current_mode, selected_mode))
            await self.app.switch_mode(selected_mode)

    @on(Button.Pressed, "#btn-auth")
    @work()
    async def handle_auth(self):
        if not self.app.state.session.is_authenticated:
            self.post_message(LoginRequestedMessage())
            return

        if not await self.app.push_screen_wait(
            DialogModal(
                "Are you sure you want to log out?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        ):
            return

        self.post_message(UserLogoutMessage())

    def highlight_item(self, mode_str: str):
        list_menu = self.query_one("#list-menu")
        for item in list_menu.children:
            item.highlighted = item.id == "list-menu-item-" + mode_str


class BaseScreen(Screen):
    """
    Inherited by all screens, contains common elements like
    headers, footers, sidebar, and keybindings.
    """

    BINDINGS = [
        Binding("ctrl+z", "quit", "Quit App", show=True),
    ]

    def __init__(self):
        super().__init__()

        self.configure()

    def configure(
        self,
        header_sub_title: str = "Storefront",
        show_sidebar: bool = True,
    ) -> None:
        """
        configure behavior of the base screen
        :return:
        """

        self.app.title = "TrustyLads"
        self.sub_title = header_sub_title
        for k, v in self.app.MODES.items():
            if isinstance(self, v) and k in self.app.MENU:
                self.sub_title = self.app.MENU[k]

        self._show_sidebar = show_sidebar

    def compose(self) -> ComposeResult:
        if self._show_sidebar:
            yield Sidebar()
        yield Header()
        yield Footer(show_command_palette=False)

    async def refresh_sidebar(self) -> None:
        for sidebar in self.query(Sidebar):
            if sidebar.is_mounted:
                await sidebar.refresh_info()

    @on(ScreenResume)
    @on(SessionChangedMessage)
    @on(CartChangedMessage)
    async def handle_state_change(self):
        await self.refresh_sidebar()

    @work()
    async def action_quit(self):
        await self.app.push_screen_wait(QuitDialogModal())
