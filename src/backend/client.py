# HTTP gateway to the storefront backend
from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional

import httpx

from backend.errors import (
    GENERIC_ERROR,
    NETWORK_ERROR,
    ApiError,
    error_for_status,
)
from utils.logger import get_logger

if TYPE_CHECKING:
    from utils.state import SessionStore

_logger = get_logger(__name__)

# token value stored for sessions that live in an httpOnly cookie
COOKIE_SESSION_TOKEN = "google-oauth"

REFRESH_PATH = "/api/auth/refresh"
_NO_REFRESH_PATHS = {REFRESH_PATH, "/api/users/login", "/api/auth/login"}


def normalize_payload(body: Any, status: int = 200) -> Any:
    """
    Collapse the backend's envelope shapes into one.

    - { success: true, data: X }  -> X (the whole body if data is missing)
    - { success: false, ... }     -> ApiError with the backend message
    - anything else               -> returned unchanged
    """
    if isinstance(body, dict):
        if body.get("success") is True:
            data = body.get("data")
            return data if data is not None else body
        if body.get("success") is False:
            raise ApiError(_message_from(body), status, body)
    return body


def unwrap(payload: Any, key: str, default: Any = None) -> Any:
    """Probe payload[key], then payload["data"][key]."""
    if not isinstance(payload, dict):
        return default
    if payload.get(key) is not None:
        return payload[key]
    nested = payload.get("data")
    if isinstance(nested, dict) and nested.get(key) is not None:
        return nested[key]
    return default


def _message_from(body: Any, fallback: str = GENERIC_ERROR) -> str:
    if isinstance(body, dict):
        for key in ("message", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
            if isinstance(value, dict) and value.get("message"):
                return str(value["message"])
    return fallback


def _json_or_none(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


class ApiClient:
    """
    Thin async wrapper around httpx.AsyncClient.

    Every request carries the session's bearer token when one is held, and the
    cookie jar covers the cookie-backed calls. Responses come back normalized
    (see normalize_payload); failures raise ApiError.
    """

    def __init__(
        self,
        base_url: str,
        session: Optional["SessionStore"] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_read_retries: int = 2,
        retry_backoff: float = 0.5,
        on_session_expired: Optional[Callable[[], Any]] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.session = session
        # called after a rejected session has been logged out locally
        self.on_session_expired = on_session_expired
        self.max_read_retries = max_read_retries
        self.retry_backoff = retry_backoff
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    def url_for(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _auth_headers(self) -> Dict[str, str]:
        token = self.session.token if self.session else None
        if token and token != COOKIE_SESSION_TOKEN:
            return {"Authorization": f"Bearer {token}"}
        return {}

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        attempts = 1 + (self.max_read_retries if method == "GET" else 0)
        for attempt in range(1, attempts + 1):
            try:
                response = await self._http.request(
                    method, path, headers=self._auth_headers(), **kwargs
                )
            except httpx.RequestError as e:
                if attempt < attempts:
                    _logger.warning(
                        f"{method} {path} failed ({e!r}), retry {attempt}/{attempts - 1}"
                    )
                    await asyncio.sleep(self.retry_backoff * attempt)
                    continue
                _logger.error(f"{method} {path} failed: {e!r}")
                raise ApiError(NETWORK_ERROR) from e

            if response.status_code >= 500 and attempt < attempts:
                _logger.warning(
                    f"{method} {path} returned {response.status_code}, "
                    f"retry {attempt}/{attempts - 1}"
                )
                await asyncio.sleep(self.retry_backoff * attempt)
                continue

            _logger.debug(f"{method} {path} -> {response.status_code}")
            return response

        raise AssertionError("unreachable")

    async def _try_refresh(self) -> bool:
        try:
            response = await self._http.post(REFRESH_PATH, headers=self._auth_headers())
        except httpx.RequestError as e:
            _logger.warning(f"Token refresh failed: {e!r}")
            return False
        if not response.is_success:
            _logger.info(f"Token refresh rejected ({response.status_code})")
            return False
        try:
            payload = normalize_payload(_json_or_none(response), response.status_code)
        except ApiError:
            return False
        token = unwrap(payload, "token")
        if not token:
            return False
        await self.session.set_token(token)
        _logger.info("Session token refreshed.")
        return True

    async def request(self, method: str, path: str, **kwargs) -> Any:
        response = await self._send(method, path, **kwargs)

        if response.status_code == 401 and path not in _NO_REFRESH_PATHS:
            if self.session is not None and self.session.is_authenticated:
                if await self._try_refresh():
                    response = await self._send(method, path, **kwargs)
                if response.status_code == 401:
                    _logger.info("Backend rejected the session, logging out.")
                    await self.session.logout()
                    if self.on_session_expired is not None:
                        self.on_session_expired()

        return self._handle_response(response)

    def _handle_response(self, response: httpx.Response) -> Any:
        body = _json_or_none(response)
        if not response.is_success:
            fallback = response.reason_phrase or GENERIC_ERROR
            raise error_for_status(
                response.status_code, _message_from(body, fallback), body
            )
        return normalize_payload(body, response.status_code)

    async def get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, data: Any = None) -> Any:
        return await self.request("POST", path, json=data)

    async def put(self, path: str, data: Any = None) -> Any:
        return await self.request("PUT", path, json=data)

    async def patch(self, path: str, data: Any = None) -> Any:
        return await self.request("PATCH", path, json=data)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)
