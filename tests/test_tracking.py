import json
import unittest

from backend.errors import ApiError, NotFoundError, ValidationError
from backend.models import User
from support import FakeBackend, fail, make_client, ok, order_payload
from utils.state import SessionStore
from utils.storage import MemoryStorage
from utils.tracking import (
    FETCH_FAILED_MESSAGE,
    MISSING_VERIFICATION_MESSAGE,
    NOT_FOUND_MESSAGE,
    OrderTracker,
)


class OrderTrackerTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.backend = FakeBackend()
        self.session = SessionStore(MemoryStorage())
        self.client = make_client(self.backend, self.session)
        self.tracker = OrderTracker(self.client, self.session)

    async def asyncTearDown(self):
        await self.client.aclose()

    async def test_track_shipped_order(self):
        self.backend.on(
            "GET", "/api/orders/TL2025001", ok({"order": order_payload()})
        )
        order = await self.tracker.track("  tl2025001 ")

        self.assertEqual(order.order_id, "TL2025001")
        self.assertEqual(order.tracking_id, "MSH123456789")
        self.assertEqual(
            self.tracker.step_states, ["completed", "completed", "current", "upcoming"]
        )
        self.assertFalse(self.tracker.can_cancel)

    async def test_track_by_tracking_id(self):
        self.backend.on(
            "GET", "/api/orders/track/MSH123456789", ok({"order": order_payload()})
        )
        order = await self.tracker.track("msh123456789", use_tracking=True)
        self.assertEqual(order.order_id, "TL2025001")
        self.assertEqual(self.backend.calls("GET", "/api/orders/MSH123456789"), 0)

    async def test_blank_identifier_is_rejected_locally(self):
        with self.assertRaises(ValidationError):
            await self.tracker.track("   ")
        self.assertEqual(self.backend.requests, [])

    async def test_not_found(self):
        self.backend.on("GET", "/api/orders/TL404", fail("Order not found", 404))
        with self.assertRaises(NotFoundError) as ctx:
            await self.tracker.track("TL404")
        self.assertEqual(ctx.exception.message, NOT_FOUND_MESSAGE)
        self.assertIsNone(self.tracker.order)

    async def test_generic_failure_clears_previous_order(self):
        self.backend.on("GET", "/api/orders/TL2025001", ok({"order": order_payload()}))
        await self.tracker.track("TL2025001")

        self.backend.on("GET", "/api/orders/TL2025002", fail("Internal error", 500))
        with self.assertRaises(ApiError) as ctx:
            await self.tracker.track("TL2025002")
        self.assertEqual(ctx.exception.message, FETCH_FAILED_MESSAGE)
        self.assertIsNone(self.tracker.order)

    async def test_guest_cancel_needs_email_or_phone(self):
        self.backend.on(
            "GET", "/api/orders/TL2025001", ok({"order": order_payload(orderStatus="pending")})
        )
        await self.tracker.track("TL2025001")
        sent = len(self.backend.requests)

        with self.assertRaises(ValidationError) as ctx:
            await self.tracker.cancel("  ", "")
        self.assertEqual(ctx.exception.message, MISSING_VERIFICATION_MESSAGE)
        self.assertEqual(len(self.backend.requests), sent)

    async def test_guest_cancel_refetches_order(self):
        self.backend.on(
            "GET",
            "/api/orders/TL2025001",
            ok({"order": order_payload(orderStatus="pending")}),
            ok({"order": order_payload(orderStatus="cancelled")}),
        )
        self.backend.on("POST", "/api/orders/TL2025001/cancel", ok())
        await self.tracker.track("TL2025001")
        self.assertTrue(self.tracker.can_cancel)

        order = await self.tracker.cancel(email="asha@example.com")
        self.assertEqual(order.order_status, "cancelled")
        self.assertFalse(self.tracker.can_cancel)

        cancel_request = next(r for r in self.backend.requests if r.method == "POST")
        self.assertEqual(json.loads(cancel_request.content), {"email": "asha@example.com"})

    async def test_failed_cancel_keeps_order(self):
        self.backend.on(
            "GET", "/api/orders/TL2025001", ok({"order": order_payload(orderStatus="processing")})
        )
        self.backend.on(
            "POST",
            "/api/orders/TL2025001/cancel",
            fail("Verification failed. Email or phone doesn't match.", 403),
        )
        await self.tracker.track("TL2025001")

        with self.assertRaises(ApiError) as ctx:
            await self.tracker.cancel(phone="9999999999")
        self.assertIn("Verification failed", ctx.exception.message)
        self.assertEqual(self.tracker.order.order_status, "processing")

    async def test_signed_in_cancel_uses_order_contact(self):
        await self.session.login("tok", User("u1", "asha@example.com", "Asha"))
        self.backend.on(
            "GET", "/api/orders/TL2025001", ok({"order": order_payload(orderStatus="pending")})
        )
        self.backend.on("POST", "/api/orders/TL2025001/cancel", ok())
        await self.tracker.track("TL2025001")

        await self.tracker.cancel()
        cancel_request = next(r for r in self.backend.requests if r.method == "POST")
        self.assertEqual(
            json.loads(cancel_request.content),
            {"email": "asha@example.com", "phone": "9876543210"},
        )

    async def test_shipped_order_cannot_be_cancelled(self):
        self.backend.on("GET", "/api/orders/TL2025001", ok({"order": order_payload()}))
        await self.tracker.track("TL2025001")
        with self.assertRaises(ValidationError):
            await self.tracker.cancel(email="asha@example.com")
        self.assertEqual(self.backend.calls("POST", "/api/orders/TL2025001/cancel"), 0)
