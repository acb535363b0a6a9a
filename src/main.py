import argparse
from typing import Optional, Sequence, Tuple

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

from utils.config import LaunchOptions, Settings, load_settings
from utils.logger import get_logger
from utils.messages import (
    LoginRequestedMessage,
    ModeSwitchedMessage,
    NewOrderMessage,
    QuitRequestedMessage,
    SessionChangedMessage,
    TrackOrderRequestedMessage,
    UserLogoutMessage,
)
from utils.state import AppState
from views.scr_cart import CartScreen
from views.scr_info import InfoScreen
from views.scr_login import LoginScreen
from views.scr_my_orders import MyOrdersScreen
from views.scr_shop import ShopScreen
from views.scr_track_order import TrackOrderScreen

_logger = get_logger(__name__)


class StorefrontApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    MODES = {
        "shop": ShopScreen,
        "cart": CartScreen,
        "track_order": TrackOrderScreen,
        "my_orders": MyOrdersScreen,
        "info": InfoScreen,
    }

    MENU = {
        "shop": "Shop",
        "cart": "Cart",
        "track_order": "Track Order",
        "my_orders": "My Orders",
        "info": "Help & Info",
    }

    CSS_PATH = [
        "styles/index.tcss",
        "styles/login.tcss",
        "styles/shop.tcss",
        "styles/cart.tcss",
        "styles/track_order.tcss",
        "styles/my_orders.tcss",
        "styles/info.tcss",
    ]

    state: AppState
    launch: LaunchOptions
    # (identifier, use_tracking) handed to the tracking screen
    pending_track: Optional[Tuple[str, bool]]

    def __init__(
        self,
        settings: Optional[Settings] = None,
        launch: Optional[LaunchOptions] = None,
        state: Optional[AppState] = None,
    ):
        super().__init__()
        settings = settings or load_settings()
        self.state = state or AppState.create(settings)
        self.launch = launch or LaunchOptions()
        self.pending_track = None

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        self.main_flow()

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    def _broadcast_session_change(self) -> None:
        # screens in other modes pick the change up on ScreenResume
        self.screen.post_message(SessionChangedMessage())

    def handle_session_expired(self) -> None:
        self.notify("Session expired, please log in again", severity="warning")
        self._broadcast_session_change()

    @on(LoginRequestedMessage)
    @work(exclusive=True, group="login")
    async def handle_login_requested(self):
        if await self.push_screen_wait(LoginScreen()):
            _logger.info("Session established.")
            self._broadcast_session_change()

    @on(UserLogoutMessage)
    @work
    async def handle_user_logout(self):
        await self.state.end_session()
        self.notify("Logged out successfully")
        self._broadcast_session_change()

    @on(TrackOrderRequestedMessage)
    async def handle_track_requested(self, message: TrackOrderRequestedMessage):
        self.pending_track = (message.identifier, message.use_tracking)
        self.post_message(ModeSwitchedMessage(self.current_mode, "track_order"))
        await self.switch_mode("track_order")

    @on(NewOrderMessage)
    def handle_new_order(self, message: NewOrderMessage):
        _logger.info(f"New order {message.order_id}")

    @on(ModeSwitchedMessage)
    def handle_mode_switched(self, message: ModeSwitchedMessage):
        _logger.debug(f"Mode switched: {message.old_mode} -> {message.new_mode}")

    @on(QuitRequestedMessage)
    @work
    async def handle_quit(self):
        await self.state.aclose()
        self.exit()

    @work(exclusive=True, group="identity")
    async def init_identity(self):
        await self.state.identity.initialize()

    @work
    async def main_flow(self):
        state = self.state
        state.client.on_session_expired = self.handle_session_expired
        await state.restore()
        state.identity.notify = self.notify

        if self.launch.login_status:
            await state.identity.complete_redirect(self.launch.login_status)
        elif state.session.is_authenticated:
            await state.session.refresh_user(state.client)

        self.init_identity()

        if self.launch.order_id or self.launch.tracking_id:
            start_mode = "track_order"
        else:
            start_mode = "shop"
        self.post_message(ModeSwitchedMessage(self.current_mode, start_mode))
        await self.switch_mode(start_mode)


def parse_args(argv: Optional[Sequence[str]] = None) -> LaunchOptions:
    parser = argparse.ArgumentParser(
        prog="storefront", description="TrustyLads storefront in the terminal."
    )
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--order-id", help="open order tracking for this order ID")
    target.add_argument(
        "--tracking-id", help="open order tracking for this courier tracking ID"
    )
    parser.add_argument("--category", help="open the shop filtered to a category")
    parser.add_argument(
        "--search", action="store_true", help="start with the search box focused"
    )
    parser.add_argument(
        "--login",
        dest="login_status",
        choices=["success", "failed"],
        help="finish a browser-based Google sign-in",
    )
    args = parser.parse_args(argv)
    return LaunchOptions(
        order_id=args.order_id,
        tracking_id=args.tracking_id,
        category=args.category,
        focus_search=args.search,
        login_status=args.login_status,
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    launch = parse_args(argv)
    app = StorefrontApp(launch=launch)
    app.run()


if __name__ == "__main__":
    main()
