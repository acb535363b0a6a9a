from typing import Optional

from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class UserLogoutMessage(Message):
    """
    broadcasted when the user asks to log out
    """

    bubble = True


class SessionChangedMessage(Message):
    """
    Fired after login, logout, or a profile refresh, so screens can redraw
    user info and shipping eligibility.
    The app posts it to the active screen; other screens catch up on ScreenResume.
    """

    bubble = True


class CartChangedMessage(Message):
    """
    Fired whenever a cart line is added, edited or removed.
    Will trigger a refresh of cart screen and the sidebar badge.
    """

    bubble = True


class NewOrderMessage(Message):
    """
    Posted to the app when a new order is placed.
    My orders picks the order up on its next ScreenResume.
    """

    bubble = True

    def __init__(self, order_id: str) -> None:
        super().__init__()
        self.order_id = order_id


class TrackOrderRequestedMessage(Message):
    """
    Ask the app to open the tracking screen for an order.
    """

    bubble = True

    def __init__(self, identifier: str, use_tracking: bool = False) -> None:
        super().__init__()
        self.identifier = identifier
        self.use_tracking = use_tracking


class ModeSwitchedMessage(Message):
    """
    fired whenever switch_mode is called
    must be fired from app level
    """

    bubble = True

    def __init__(self, old_mode: Optional[str], new_mode: str) -> None:
        super().__init__()
        self.old_mode = old_mode
        self.new_mode = new_mode


class LoginRequestedMessage(Message):
    """
    Ask the app to show the login screen.
    """

    bubble = True
