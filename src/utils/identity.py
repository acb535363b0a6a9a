"""
Google sign-in bridge.

The bridge loads Google's OpenID discovery document once, then signs the user
in by obtaining an ID token (the "credential") and forwarding it to the
backend. When the identity provider can't be reached, or no client id is
configured, sign-in falls back to the backend's browser redirect flow.
"""

from __future__ import annotations

import asyncio
import inspect
import time
import webbrowser
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional

import httpx

import backend.endpoints as endpoints
from backend.client import COOKIE_SESSION_TOKEN
from backend.errors import ApiError
from utils.logger import get_logger

if TYPE_CHECKING:
    from backend.client import ApiClient
    from utils.config import Settings
    from utils.state import SessionStore

_logger = get_logger(__name__)

GOOGLE_DISCOVERY_URL = "https://accounts.google.com/.well-known/openid-configuration"
DEVICE_CODE_GRANT = "urn:ietf:params:oauth:grant-type:device_code"

CredentialPrompt = Callable[[Dict[str, Any]], Awaitable[str]]


class IdentityError(Exception):
    pass


class BridgeState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class AttemptState(str, Enum):
    PROMPTING = "prompting"
    RESOLVED = "resolved"
    FAILED = "failed"


class SignInOutcome(str, Enum):
    SIGNED_IN = "signed_in"
    REDIRECTED = "redirected"
    FAILED = "failed"


async def _call_maybe_async(fn: Callable[..., Any], *args) -> None:
    result = fn(*args)
    if inspect.isawaitable(result):
        await result


class DeviceCodePrompt:
    """
    OAuth 2.0 device authorization flow.

    Asks Google for a user code, hands it to on_user_code(verification_url, code)
    for display, then polls the token endpoint until the user approves.
    Returns the ID token.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: Optional[str] = None,
        on_user_code: Optional[Callable[[str, str], Any]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        scope: str = "openid email profile",
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.client_id = client_id
        self.client_secret = client_secret
        self.on_user_code = on_user_code
        self.scope = scope
        self._transport = transport
        self._sleep = sleep

    async def __call__(self, discovery: Dict[str, Any]) -> str:
        device_endpoint = discovery.get("device_authorization_endpoint")
        token_endpoint = discovery.get("token_endpoint")
        if not device_endpoint or not token_endpoint:
            raise IdentityError("Google sign-in is not available on this device.")

        async with httpx.AsyncClient(transport=self._transport, timeout=30.0) as http:
            resp = await http.post(
                device_endpoint, data={"client_id": self.client_id, "scope": self.scope}
            )
            if not resp.is_success:
                raise IdentityError("Could not start Google sign-in.")
            grant = resp.json()

            verification_url = grant.get("verification_url") or grant.get(
                "verification_uri"
            )
            if self.on_user_code:
                await _call_maybe_async(
                    self.on_user_code, verification_url, grant.get("user_code")
                )

            interval = int(grant.get("interval") or 5)
            deadline = time.monotonic() + int(grant.get("expires_in") or 1800)
            form = {
                "client_id": self.client_id,
                "device_code": grant.get("device_code"),
                "grant_type": DEVICE_CODE_GRANT,
            }
            if self.client_secret:
                form["client_secret"] = self.client_secret

            while time.monotonic() < deadline:
                await self._sleep(interval)
                token_resp = await http.post(token_endpoint, data=form)
                try:
                    body = token_resp.json()
                except ValueError:
                    body = {}

                if token_resp.is_success and body.get("id_token"):
                    return body["id_token"]

                error = body.get("error")
                if error == "authorization_pending":
                    continue
                if error == "slow_down":
                    interval += 5
                    continue
                raise IdentityError(
                    body.get("error_description") or error or "Google sign-in failed."
                )

        raise IdentityError("Google sign-in timed out. Please try again.")


class IdentityBridge:
    """
    Initialization: UNINITIALIZED -> INITIALIZING -> READY | FAILED
    Each sign-in attempt: PROMPTING -> RESOLVED | FAILED
    """

    def __init__(
        self,
        settings: "Settings",
        session: "SessionStore",
        client: "ApiClient",
        prompt: Optional[CredentialPrompt] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        open_browser: Callable[[str], Any] = webbrowser.open,
    ) -> None:
        self.settings = settings
        self.session = session
        self.client = client
        self.state = BridgeState.UNINITIALIZED
        self.attempt: Optional[AttemptState] = None

        # views replace these to surface messages
        self.notify: Callable[..., Any] = self._log_notification
        self.on_user_code: Optional[Callable[[str, str], Any]] = None

        self._transport = transport
        self._open_browser = open_browser
        self._discovery: Optional[Dict[str, Any]] = None
        self._init_lock = asyncio.Lock()

        if prompt is None and settings.google_client_id:
            prompt = DeviceCodePrompt(
                settings.google_client_id,
                settings.google_client_secret,
                on_user_code=self._announce_user_code,
                transport=transport,
            )
        self._prompt = prompt

    @property
    def is_ready(self) -> bool:
        return self.state == BridgeState.READY

    @staticmethod
    def _log_notification(message: str, severity: str = "information", **_) -> None:
        _logger.info(f"[{severity}] {message}")

    async def _announce_user_code(self, verification_url: str, user_code: str) -> None:
        if self.on_user_code:
            await _call_maybe_async(self.on_user_code, verification_url, user_code)
        else:
            self.notify(
                f"Visit {verification_url} and enter code {user_code}",
                severity="information",
                timeout=120,
            )

    async def initialize(self) -> bool:
        """Load the discovery document once. Returns readiness."""
        async with self._init_lock:
            if self.state in (BridgeState.READY, BridgeState.FAILED):
                return self.is_ready

            if not self.settings.google_client_id or self._prompt is None:
                _logger.info("No Google client id configured, using redirect sign-in.")
                self.state = BridgeState.FAILED
                return False

            self.state = BridgeState.INITIALIZING
            try:
                async with httpx.AsyncClient(
                    transport=self._transport, timeout=self.settings.request_timeout
                ) as http:
                    resp = await http.get(GOOGLE_DISCOVERY_URL)
                    resp.raise_for_status()
                    self._discovery = resp.json()
            except (httpx.HTTPError, ValueError) as e:
                _logger.warning(f"Failed to load Google identity services: {e!r}")
                self.state = BridgeState.FAILED
                return False

            self.state = BridgeState.READY
            _logger.debug("Google identity services ready.")
            return True

    def _redirect(self) -> SignInOutcome:
        url = self.client.url_for("/auth/google")
        _logger.info(f"Falling back to redirect sign-in: {url}")
        self._open_browser(url)
        self.notify(
            "Continue signing in with Google in your browser.", severity="information"
        )
        return SignInOutcome.REDIRECTED

    def _fail(self, message: str) -> SignInOutcome:
        _logger.warning(f"Google sign-in failed: {message}")
        self.attempt = AttemptState.FAILED
        self.notify(message, severity="error")
        return SignInOutcome.FAILED

    async def sign_in(self) -> SignInOutcome:
        if not await self.initialize():
            return self._redirect()

        self.attempt = AttemptState.PROMPTING
        try:
            credential = await self._prompt(self._discovery)
            if not credential:
                return self._fail("No credential received from Google.")
            result = await endpoints.google_sign_in(self.client, credential)
        except ApiError as e:
            return self._fail(e.message or "Google sign-in failed.")
        except (IdentityError, httpx.HTTPError, ValueError) as e:
            return self._fail(str(e) or "Google sign-in failed.")

        await self.session.login(result.token, result.user)
        self.attempt = AttemptState.RESOLVED
        self.notify("Successfully signed in with Google!", severity="information")
        return SignInOutcome.SIGNED_IN

    async def complete_redirect(self, login_status: Optional[str]) -> bool:
        """
        Finish the redirect flow once the backend reports its result
        ("success" or "failed"). The session then lives in a cookie.
        """
        if login_status == "failed":
            self.notify("Google authentication failed. Please try again.", severity="error")
            return False
        if login_status != "success":
            return False

        try:
            user = await endpoints.fetch_me(self.client)
        except ApiError as e:
            _logger.warning(f"Error processing Google auth: {e.message}")
            user = None
        if user is None:
            self.notify("Failed to process Google authentication", severity="error")
            return False

        await self.session.login(COOKIE_SESSION_TOKEN, user)
        self.notify("Successfully signed in with Google!", severity="information")
        return True

    async def sign_out(self) -> None:
        await self.session.logout()
