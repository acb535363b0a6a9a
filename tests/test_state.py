import json
import unittest

from backend.errors import ApiError
from backend.models import CartItem, User
from support import FakeBackend, fail, make_client, ok
from utils.config import Settings
from utils.state import CART_KEY, SESSION_KEY, AppState, CartStore, SessionStore
from utils.storage import MemoryStorage


def shirt(size="M", quantity=1, max_stock=5, price=450.0):
    return CartItem(
        product_id="p1",
        name="Linen Shirt",
        price=price,
        size=size,
        quantity=quantity,
        category="Shirts",
        max_stock=max_stock,
    )


class SessionStoreTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.storage = MemoryStorage()
        self.session = SessionStore(self.storage)
        self.user = User("u1", "asha@example.com", "Asha", order_count=2)

    async def test_login_persists_and_reloads(self):
        await self.session.login("tok", self.user)
        self.assertTrue(self.session.is_authenticated)
        self.assertFalse(self.session.is_google_oauth)

        stored = json.loads(self.storage.data[SESSION_KEY])
        self.assertEqual(stored["token"], "tok")
        self.assertTrue(stored["isAuthenticated"])
        self.assertEqual(stored["user"]["orderCount"], 2)

        restored = SessionStore(self.storage)
        await restored.load()
        self.assertEqual(restored.token, "tok")
        self.assertEqual(restored.user, self.user)

    async def test_cookie_session_is_flagged(self):
        await self.session.login("google-oauth", self.user)
        self.assertTrue(self.session.is_google_oauth)
        self.assertTrue(self.session.is_authenticated)

    async def test_set_token_updates_cookie_flag(self):
        await self.session.login("google-oauth", self.user)
        await self.session.set_token("bearer")
        self.assertFalse(self.session.is_google_oauth)
        self.assertFalse(json.loads(self.storage.data[SESSION_KEY])["isGoogleOAuth"])

    async def test_logout_clears_everything(self):
        await self.session.login("tok", self.user)
        await self.session.logout()
        self.assertFalse(self.session.is_authenticated)
        self.assertIsNone(self.session.user)
        self.assertIsNone(json.loads(self.storage.data[SESSION_KEY])["token"])

    async def test_empty_token_means_logged_out(self):
        await self.session.login("", self.user)
        self.assertFalse(self.session.is_authenticated)
        await self.session.set_token(None)
        self.assertFalse(self.session.is_authenticated)

    async def test_corrupt_storage_loads_as_guest(self):
        for raw in ("{not json", "[1, 2]", json.dumps({"token": 42})):
            session = SessionStore(MemoryStorage({SESSION_KEY: raw}))
            await session.load()
            self.assertFalse(session.is_authenticated)
            self.assertIsNone(session.user)

    async def test_increment_order_count(self):
        await self.session.increment_order_count()  # no user: nothing happens
        await self.session.login("tok", self.user)
        await self.session.increment_order_count()
        self.assertEqual(self.session.user.order_count, 3)

    async def test_refresh_user_keeps_cache_on_failure(self):
        backend = FakeBackend().on("GET", "/api/users/me", fail("Server error", 500))
        client = make_client(backend, self.session)
        await self.session.login("tok", self.user)

        await self.session.refresh_user(client)
        self.assertEqual(self.session.user, self.user)
        await client.aclose()

    async def test_refresh_user_replaces_profile(self):
        backend = FakeBackend().on(
            "GET",
            "/api/users/me",
            ok({"user": {"id": "u1", "email": "asha@example.com", "name": "Asha R", "orderCount": 4}}),
        )
        client = make_client(backend, self.session)
        await self.session.login("tok", self.user)

        await self.session.refresh_user(client)
        self.assertEqual(self.session.user.name, "Asha R")
        self.assertEqual(self.session.user.order_count, 4)
        await client.aclose()

    async def test_sync_order_count_counts_orders(self):
        backend = FakeBackend().on(
            "GET", "/api/orders/my-orders", ok({"orders": [{"orderId": "A"}, {"orderId": "B"}]})
        )
        client = make_client(backend, self.session)
        await self.session.login("tok", self.user)

        await self.session.sync_order_count(client)
        self.assertEqual(self.session.user.order_count, 2)
        await client.aclose()


class CartStoreTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.storage = MemoryStorage()
        self.cart = CartStore(self.storage)

    async def test_add_merges_same_product_and_size(self):
        self.assertTrue(await self.cart.add_item(shirt(quantity=2)))
        self.assertTrue(await self.cart.add_item(shirt(quantity=1)))
        self.assertTrue(await self.cart.add_item(shirt(size="L")))

        self.assertEqual(len(self.cart.items), 2)
        self.assertEqual(self.cart.get_item("p1", "M").quantity, 3)
        self.assertEqual(self.cart.items_count(), 4)
        self.assertEqual(self.cart.subtotal(), 1800)

    async def test_merge_beyond_stock_is_refused(self):
        await self.cart.add_item(shirt(quantity=4, max_stock=5))
        self.assertFalse(await self.cart.add_item(shirt(quantity=2, max_stock=5)))
        self.assertEqual(self.cart.get_item("p1", "M").quantity, 4)

    async def test_new_line_is_clamped_to_stock(self):
        self.assertTrue(await self.cart.add_item(shirt(quantity=9, max_stock=3)))
        self.assertEqual(self.cart.get_item("p1", "M").quantity, 3)
        self.assertFalse(await self.cart.add_item(shirt(size="S", max_stock=0)))

    async def test_update_quantity_clamps_and_removes(self):
        await self.cart.add_item(shirt(quantity=1, max_stock=5))
        await self.cart.update_quantity("p1", "M", 10)
        self.assertEqual(self.cart.get_item("p1", "M").quantity, 5)

        await self.cart.update_quantity("p1", "M", 0)
        self.assertFalse(self.cart.is_in_cart("p1"))

    async def test_persisted_and_reloaded(self):
        await self.cart.add_item(shirt(quantity=2))
        stored = json.loads(self.storage.data[CART_KEY])
        self.assertEqual(stored["items"][0]["productId"], "p1")
        self.assertEqual(stored["items"][0]["maxStock"], 5)

        restored = CartStore(self.storage)
        await restored.load()
        self.assertEqual(restored.items, self.cart.items)

    async def test_malformed_lines_are_skipped(self):
        raw = json.dumps({"items": [{"name": "no id"}, {"productId": "p2", "size": "S", "quantity": 1, "maxStock": 2}]})
        cart = CartStore(MemoryStorage({CART_KEY: raw}))
        await cart.load()
        self.assertEqual([i.product_id for i in cart.items], ["p2"])

    async def test_non_list_items_load_as_empty(self):
        for items in (5, "junk", {"productId": "p1"}):
            cart = CartStore(MemoryStorage({CART_KEY: json.dumps({"items": items})}))
            await cart.load()
            self.assertEqual(cart.items, [])

    async def test_empty_lines_are_dropped_on_load(self):
        lines = [
            {"productId": "p1", "size": "M", "quantity": 0, "maxStock": 3},
            {"productId": "p2", "size": "M", "quantity": 1, "maxStock": 0},
            {"productId": "p3", "size": "L", "quantity": 2, "maxStock": 4},
        ]
        cart = CartStore(MemoryStorage({CART_KEY: json.dumps({"items": lines})}))
        await cart.load()
        self.assertEqual([i.product_id for i in cart.items], ["p3"])

    async def test_remove_and_clear(self):
        await self.cart.add_item(shirt(size="M"))
        await self.cart.add_item(shirt(size="L"))
        await self.cart.remove_item("p1", "M")
        self.assertFalse(self.cart.is_in_cart("p1", "M"))
        self.assertTrue(self.cart.is_in_cart("p1", "L"))
        await self.cart.clear()
        self.assertEqual(self.cart.items, [])


class AppStateTestCase(unittest.IsolatedAsyncioTestCase):
    async def test_end_session_logs_out_even_if_backend_fails(self):
        backend = FakeBackend().on("POST", "/api/auth/logout", fail("Server error", 500))
        state = AppState.create(
            Settings(api_url="http://api.test"),
            storage=MemoryStorage(),
            transport=backend.transport,
        )
        await state.session.login("tok", User("u1", "a@b.c", "A"))

        await state.end_session()
        self.assertFalse(state.session.is_authenticated)
        self.assertEqual(backend.calls("POST", "/api/auth/logout"), 1)
        await state.aclose()

    async def test_restore_reads_both_slots(self):
        storage = MemoryStorage()
        state = AppState.create(Settings(), storage=storage)
        await state.session.login("tok", User("u1", "a@b.c", "A"))
        await state.cart.add_item(shirt())

        fresh = AppState.create(Settings(), storage=storage)
        await fresh.restore()
        self.assertTrue(fresh.session.is_authenticated)
        self.assertEqual(fresh.cart.items_count(), 1)
        await state.aclose()
        await fresh.aclose()

    def test_api_error_repr(self):
        self.assertEqual(
            repr(ApiError("Nope", 400)), "ApiError(status=400, message='Nope')"
        )
