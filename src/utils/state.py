from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

import backend.endpoints as endpoints
from backend.client import COOKIE_SESSION_TOKEN, ApiClient
from backend.errors import ApiError
from backend.models import CartItem, User
from utils.config import Settings
from utils.identity import IdentityBridge
from utils.logger import get_logger
from utils.storage import KeyValueStorage, MemoryStorage, SqliteStorage

_logger = get_logger(__name__)

SESSION_KEY = "trustylads-auth"
CART_KEY = "trustylads-cart"


def _load_json(raw: Optional[str], key: str) -> Optional[Dict[str, Any]]:
    if raw is None:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        _logger.warning(f"Discarding unreadable value stored under '{key}'.")
        return None
    if not isinstance(data, dict):
        _logger.warning(f"Discarding malformed value stored under '{key}'.")
        return None
    return data


class SessionStore:
    """
    Current authenticated identity and token.

    is_authenticated is derived from the token, so the two never disagree.
    Every mutation is written through to a single storage key.
    """

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage
        self.token: Optional[str] = None
        self.user: Optional[User] = None
        self.is_google_oauth = False

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "token": self.token,
            "isAuthenticated": self.is_authenticated,
            "user": endpoints.user_to_payload(self.user) if self.user else None,
            "isGoogleOAuth": self.is_google_oauth,
        }

    async def _persist(self) -> None:
        await self._storage.set(SESSION_KEY, json.dumps(self.snapshot()))

    def _reset(self) -> None:
        self.token = None
        self.user = None
        self.is_google_oauth = False

    async def load(self) -> None:
        """Restore the persisted session; anything unreadable means logged out."""
        self._reset()
        data = _load_json(await self._storage.get(SESSION_KEY), SESSION_KEY)
        if data is None:
            return
        token = data.get("token")
        user = data.get("user")
        if not isinstance(token, str) or not token:
            return
        self.token = token
        self.user = endpoints.user_from_payload(user) if isinstance(user, dict) else None
        self.is_google_oauth = token == COOKIE_SESSION_TOKEN
        _logger.debug(f"Restored session for {self.user.email if self.user else '?'}")

    async def login(self, token: str, user: Optional[User] = None) -> None:
        self.token = token or None
        self.user = user
        self.is_google_oauth = token == COOKIE_SESSION_TOKEN
        await self._persist()

    async def logout(self) -> None:
        self._reset()
        await self._persist()

    async def set_token(self, token: Optional[str]) -> None:
        self.token = token or None
        self.is_google_oauth = token == COOKIE_SESSION_TOKEN
        await self._persist()

    async def set_user(self, user: Optional[User]) -> None:
        self.user = user
        await self._persist()

    async def increment_order_count(self) -> None:
        if self.user is None:
            return
        self.user = dataclasses.replace(
            self.user, order_count=self.user.order_count + 1
        )
        await self._persist()

    async def refresh_user(self, client: ApiClient) -> None:
        """Re-fetch the profile; failures leave the current user in place."""
        if not self.token:
            return
        try:
            user = await endpoints.fetch_me(client)
        except ApiError as e:
            _logger.warning(f"Failed to refresh user data: {e.message}")
            return
        if user is None:
            _logger.warning("Refresh returned no user, keeping the cached profile.")
            return
        await self.set_user(user)

    async def sync_order_count(self, client: ApiClient) -> None:
        """Recount the user's orders from the backend."""
        if not self.token or self.user is None:
            return
        try:
            orders = await endpoints.list_my_orders(client)
        except ApiError as e:
            _logger.warning(f"Failed to sync order count: {e.message}")
            return
        if self.user is None:
            return
        self.user = dataclasses.replace(self.user, order_count=len(orders))
        await self._persist()


def cart_item_to_payload(item: CartItem) -> Dict[str, Any]:
    return {
        "productId": item.product_id,
        "name": item.name,
        "price": item.price,
        "size": item.size,
        "quantity": item.quantity,
        "image": item.image,
        "category": item.category,
        "maxStock": item.max_stock,
    }


def cart_item_from_payload(data: Dict[str, Any]) -> CartItem:
    return CartItem(
        product_id=str(data["productId"]),
        name=data.get("name") or "",
        price=float(data.get("price") or 0),
        size=str(data.get("size") or ""),
        quantity=int(data.get("quantity") or 0),
        category=data.get("category") or "",
        max_stock=int(data.get("maxStock") or 0),
        image=data.get("image"),
    )


class CartStore:
    """
    Cart lines keyed by (product_id, size).
    Quantities stay within [1, max_stock]; a line at zero is removed.
    """

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage
        self.items: List[CartItem] = []

    async def _persist(self) -> None:
        payload = {"items": [cart_item_to_payload(i) for i in self.items]}
        await self._storage.set(CART_KEY, json.dumps(payload))

    async def load(self) -> None:
        self.items = []
        data = _load_json(await self._storage.get(CART_KEY), CART_KEY)
        if data is None:
            return
        raw_items = data.get("items") or []
        if not isinstance(raw_items, list):
            _logger.warning(f"Discarding malformed cart items stored under '{CART_KEY}'.")
            return
        for raw in raw_items:
            try:
                item = cart_item_from_payload(raw)
            except (KeyError, TypeError, ValueError):
                _logger.warning(f"Skipping malformed cart line: {raw!r}")
                continue
            if item.quantity <= 0 or item.max_stock <= 0:
                _logger.warning(f"Skipping empty cart line: {raw!r}")
                continue
            self.items.append(item)

    def _index_of(self, product_id: str, size: str) -> int:
        for i, item in enumerate(self.items):
            if item.product_id == product_id and item.size == size:
                return i
        return -1

    async def add_item(self, new_item: CartItem) -> bool:
        """
        Add a line, or merge into the existing (product_id, size) line.
        Returns False if merging would exceed the stock limit; the cart is then unchanged.
        """
        idx = self._index_of(new_item.product_id, new_item.size)
        if idx < 0:
            quantity = min(new_item.quantity, new_item.max_stock)
            if quantity <= 0:
                return False
            self.items.append(dataclasses.replace(new_item, quantity=quantity))
        else:
            existing = self.items[idx]
            new_quantity = existing.quantity + new_item.quantity
            if new_quantity > existing.max_stock:
                return False
            self.items[idx] = dataclasses.replace(existing, quantity=new_quantity)
        await self._persist()
        return True

    async def update_quantity(self, product_id: str, size: str, quantity: int) -> None:
        if quantity <= 0:
            await self.remove_item(product_id, size)
            return
        idx = self._index_of(product_id, size)
        if idx < 0:
            return
        item = self.items[idx]
        self.items[idx] = dataclasses.replace(
            item, quantity=min(quantity, item.max_stock)
        )
        await self._persist()

    async def remove_item(self, product_id: str, size: str) -> None:
        self.items = [
            i for i in self.items if not (i.product_id == product_id and i.size == size)
        ]
        await self._persist()

    async def clear(self) -> None:
        self.items = []
        await self._persist()

    def items_count(self) -> int:
        return sum(i.quantity for i in self.items)

    def subtotal(self) -> float:
        return sum(i.line_total for i in self.items)

    def get_item(self, product_id: str, size: str) -> Optional[CartItem]:
        idx = self._index_of(product_id, size)
        return self.items[idx] if idx >= 0 else None

    def is_in_cart(self, product_id: str, size: Optional[str] = None) -> bool:
        if size is not None:
            return self._index_of(product_id, size) >= 0
        return any(i.product_id == product_id for i in self.items)


@dataclass
class AppState:
    """
    Client state shared by screens, reachable as `self.app.state`.

    Fields:
      - settings: runtime configuration
      - session: authenticated identity + token
      - cart: cart lines
      - client: HTTP gateway to the backend
      - identity: Google sign-in bridge
    """

    settings: Settings
    session: SessionStore
    cart: CartStore
    client: ApiClient
    identity: IdentityBridge

    @classmethod
    def create(
        cls,
        settings: Settings,
        storage: Optional[KeyValueStorage] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "AppState":
        if storage is None:
            storage = SqliteStorage(settings.db_path) if settings.db_path else MemoryStorage()
        session = SessionStore(storage)
        client = ApiClient(
            settings.api_url,
            session=session,
            timeout=settings.request_timeout,
            transport=transport,
        )
        identity = IdentityBridge(settings, session, client)
        return cls(
            settings=settings,
            session=session,
            cart=CartStore(storage),
            client=client,
            identity=identity,
        )

    async def restore(self) -> None:
        await self.session.load()
        await self.cart.load()

    async def end_session(self) -> None:
        """
        Log out on the backend, then locally.
        The local logout happens even if the backend call fails.
        """
        if self.session.is_authenticated:
            try:
                await endpoints.logout(self.client)
            except ApiError as e:
                _logger.info(f"Backend logout failed ({e.message}), logging out locally.")
        await self.identity.sign_out()

    async def aclose(self) -> None:
        await self.client.aclose()
