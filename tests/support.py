"""Shared fakes: an in-process backend served through httpx.MockTransport."""

from typing import Any, Callable, Dict, List, Tuple, Union

import httpx

from backend.client import ApiClient

BASE_URL = "http://api.test"

Reply = Union[httpx.Response, Callable[[httpx.Request], httpx.Response], type]


def ok(data: Any = None, status: int = 200, **extra) -> httpx.Response:
    body = {"success": True, **extra}
    if data is not None:
        body["data"] = data
    return httpx.Response(status, json=body)


def fail(message: str, status: int = 400) -> httpx.Response:
    return httpx.Response(status, json={"success": False, "message": message})


class FakeBackend:
    """
    Routes (method, path) to queued replies. The last reply of a route repeats.
    A reply may be a Response, a callable taking the request, or an httpx
    exception class to raise.
    """

    def __init__(self) -> None:
        self.routes: Dict[Tuple[str, str], List[Reply]] = {}
        self.requests: List[httpx.Request] = []

    def on(self, method: str, path: str, *replies: Reply) -> "FakeBackend":
        self.routes[(method, path)] = list(replies)
        return self

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return fail("Route not found", 404)
        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(reply, type) and issubclass(reply, httpx.RequestError):
            raise reply("simulated transport failure", request=request)
        if callable(reply) and not isinstance(reply, httpx.Response):
            return reply(request)
        return reply

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def calls(self, method: str, path: str) -> int:
        return sum(
            1 for r in self.requests if r.method == method and r.url.path == path
        )


def make_client(backend: FakeBackend, session=None) -> ApiClient:
    return ApiClient(
        BASE_URL, session=session, transport=backend.transport, retry_backoff=0
    )


ORDER_PAYLOAD = {
    "orderId": "TL2025001",
    "customer": {"name": "Asha", "email": "asha@example.com", "phone": "9876543210"},
    "items": [{"name": "Linen Shirt", "quantity": 2, "price": 450, "size": "M"}],
    "shipping": {
        "address": "12 MG Road",
        "city": "Chennai",
        "state": "Tamil Nadu",
        "pinCode": "600001",
        "country": "India",
    },
    "orderStatus": "shipped",
    "paymentStatus": "pending",
    "paymentMethod": "cod",
    "total": 909,
    "createdAt": "2025-01-05T10:00:00",
    "trackingId": "MSH123456789",
    "statusHistory": [
        {"status": "pending", "timestamp": "2025-01-05T10:00:00", "note": "Order placed"},
        {"status": "shipped", "timestamp": "2025-01-06T09:30:00"},
    ],
}


def order_payload(**overrides) -> Dict[str, Any]:
    return {**ORDER_PAYLOAD, **overrides}
