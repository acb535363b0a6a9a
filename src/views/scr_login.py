from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.events import Key
from textual.widgets import Button, Input, Label, TabbedContent, TabPane

import backend.endpoints as endpoints
from backend.errors import ApiError
from utils.identity import SignInOutcome
from utils.logger import get_logger
from views.base_screen import BaseScreen
from views.modal_dialog import SimpleDialogModal

_logger = get_logger(__name__)


class LoginScreen(BaseScreen):
    """
    Email/password login, registration and Google sign-in.
    Dismisses with True once a session is established, False if backed out.
    """

    def __init__(self):
        super().__init__()
        self.configure(header_sub_title="Login", show_sidebar=False)
        # email of the last login rejected as unverified
        self._verification_email = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent(id="super-tab-loginscr"):
            with TabPane("Login", id="tab-login"):
                with Vertical(id="div-login"):
                    yield Label("Email")
                    yield Input(placeholder="you@example.com", id="input-login-email")
                    yield Label("Password")
                    yield Input(
                        placeholder="*********", password=True, id="input-login-pwd"
                    )
                    with Horizontal(id="div-login-btns"):
                        yield Button("Forgot password?", id="btn-forgot")
                        yield Button("Back", id="btn-back")
                        yield Button("Login", id="btn-login", variant="primary")
                    yield Button(
                        "Resend verification email", id="btn-resend", variant="warning"
                    )
                    yield Button(
                        "Sign in with Google", id="btn-google", variant="success"
                    )

            with TabPane("Sign up", id="tab-signup"):
                with Vertical(id="div-reg"):
                    yield Label("Name")
                    yield Input(placeholder="Jane Doe", id="input-reg-name")
                    yield Label("Email")
                    yield Input(placeholder="you@example.com", id="input-reg-email")
                    yield Label("Password")
                    yield Input(
                        placeholder="*********", password=True, id="input-reg-pwd"
                    )
                    with Container(id="div-reg-btns"):
                        yield Button("Register", id="btn-reg", variant="primary")

    def on_mount(self):
        self.query_one("#btn-resend").display = False
        self.query_one("#input-login-email").focus()

    def on_key(self, event: Key) -> None:
        if event.key == "enter" and self.focused == self.query_one("#input-login-pwd"):
            self.handle_login_submit()
        if event.key == "enter" and self.focused == self.query_one("#input-reg-pwd"):
            self.handle_registration_submit()
        if event.key == "escape":
            self.dismiss(False)

    def _finish(self) -> None:
        self.dismiss(True)

    def _reset_password(self, input_id: str) -> None:
        input_pwd = self.query_one(input_id, Input)
        input_pwd.value = ""
        input_pwd.focus()
        input_pwd.add_class("-invalid")

    @on(Button.Pressed, "#btn-login")
    @work(exclusive=True)
    async def handle_login_submit(self) -> None:
        email = self.query_one("#input-login-email", Input).value.strip()
        pwd = self.query_one("#input-login-pwd", Input).value.strip()

        if not email or not pwd:
            self.notify("Email or password cannot be empty!", severity="error")
            return

        state = self.app.state
        try:
            result = await endpoints.login(state.client, email, pwd)
        except ApiError as e:
            if e.status == 401 and "verify your email" in e.message:
                self._verification_email = email
                self.query_one("#btn-resend").display = True
                self.notify(
                    "Please verify your email before logging in. "
                    "Check your inbox for a verification link.",
                    severity="error",
                )
            elif e.status == 401:
                self.notify("Invalid email or password. Please try again.", severity="error")
                self._reset_password("#input-login-pwd")
            else:
                self.notify(e.message, severity="error")
            return

        await state.session.login(result.token, result.user)
        if result.user is None:
            await state.session.refresh_user(state.client)
        _logger.info(f"Logged in as {email}")
        self.notify("Successfully logged in!")
        self._finish()

    @on(Button.Pressed, "#btn-resend")
    @work(exclusive=True, group="resend")
    async def handle_resend_verification(self) -> None:
        if not self._verification_email:
            return
        button = self.query_one("#btn-resend", Button)
        button.disabled = True
        try:
            await endpoints.resend_verification(
                self.app.state.client, self._verification_email
            )
        except ApiError as e:
            self.notify(
                e.message or "Failed to resend verification email", severity="error"
            )
            return
        finally:
            button.disabled = False
        self.notify("Verification email sent! Please check your inbox.")

    @on(Button.Pressed, "#btn-forgot")
    @work(exclusive=True, group="forgot")
    async def handle_forgot_password(self) -> None:
        email = self.query_one("#input-login-email", Input).value.strip()
        if not email:
            self.notify("Enter your email address first.", severity="error")
            self.query_one("#input-login-email").focus()
            return
        try:
            await endpoints.forgot_password(self.app.state.client, email)
        except ApiError as e:
            # the reply must not reveal whether the account exists
            _logger.info(f"Forgot-password request failed: {e.message}")
        self.notify(
            "If an account with this email exists, "
            "password reset instructions have been sent."
        )

    @on(Button.Pressed, "#btn-reg")
    @work(exclusive=True)
    async def handle_registration_submit(self) -> None:
        name = self.query_one("#input-reg-name", Input).value.strip()
        email = self.query_one("#input-reg-email", Input).value.strip()
        pwd = self.query_one("#input-reg-pwd", Input).value.strip()

        if not name or not email or not pwd:
            self.notify("Make sure all inputs are filled.", severity="error")
            return

        state = self.app.state
        try:
            result = await endpoints.register(state.client, name, email, pwd)
        except ApiError as e:
            if e.status == 409:
                self.notify(
                    "An account with this email already exists. "
                    "Please try logging in instead.",
                    severity="error",
                )
                self._show_login_tab(email)
            else:
                self.notify(e.message, severity="error")
            return

        if result is not None:
            await state.session.login(result.token, result.user)
            self.notify("Welcome! Account created.")
            self._finish()
            return

        await self.app.push_screen_wait(
            SimpleDialogModal(
                f"Account created. We sent a verification link to {email}; "
                "verify your email, then log in."
            )
        )
        self._show_login_tab(email)

    def _show_login_tab(self, email: str) -> None:
        self.get_child_by_type(TabbedContent).active = "tab-login"
        self.query_one("#input-login-email", Input).value = email
        self.query_one("#input-login-pwd", Input).focus()

    @on(Button.Pressed, "#btn-google")
    @work(exclusive=True)
    async def handle_google_sign_in(self) -> None:
        button = self.query_one("#btn-google", Button)
        button.disabled = True
        try:
            outcome = await self.app.state.identity.sign_in()
        finally:
            button.disabled = False

        if outcome == SignInOutcome.SIGNED_IN:
            self._finish()

    @on(Button.Pressed, "#btn-back")
    def handle_back(self) -> None:
        self.dismiss(False)
