from __future__ import annotations

from typing import TYPE_CHECKING, List, Optional

import backend.endpoints as endpoints
from backend.errors import ApiError, NotFoundError, ValidationError
from backend.models import Order
from utils.logger import get_logger
from utils.pure import StepState, can_cancel, current_step_index, step_states

if TYPE_CHECKING:
    from backend.client import ApiClient
    from utils.state import SessionStore

_logger = get_logger(__name__)

MISSING_ID_MESSAGE = "Please enter an order ID"
NOT_FOUND_MESSAGE = "Order not found. Please check your order ID and try again."
FETCH_FAILED_MESSAGE = "Failed to fetch order details. Please try again."
MISSING_VERIFICATION_MESSAGE = (
    "Please provide either email or phone number to verify your identity"
)
NOT_CANCELLABLE_MESSAGE = "This order can no longer be cancelled."
CANCEL_FAILED_MESSAGE = "Failed to cancel order"


class OrderTracker:
    """
    Looks up one order by order id or carrier tracking id and cancels it.

    The tracker never edits the order itself: after a cancellation it fetches
    the order again, and a failed cancellation leaves it as it was.
    """

    def __init__(self, client: "ApiClient", session: "SessionStore") -> None:
        self.client = client
        self.session = session
        self.order: Optional[Order] = None
        self.identifier = ""
        self.use_tracking = False

    async def track(self, identifier: str, use_tracking: bool = False) -> Order:
        identifier = (identifier or "").strip().upper()
        if not identifier:
            raise ValidationError(MISSING_ID_MESSAGE, "identifier")

        self.identifier = identifier
        self.use_tracking = use_tracking
        fetch = endpoints.get_order_by_tracking if use_tracking else endpoints.get_order

        try:
            order = await fetch(self.client, identifier)
        except NotFoundError as e:
            self.order = None
            raise NotFoundError(NOT_FOUND_MESSAGE, e.data) from e
        except ApiError as e:
            self.order = None
            _logger.warning(f"Tracking {identifier} failed: {e!r}")
            raise ApiError(FETCH_FAILED_MESSAGE, e.status, e.data) from e

        self.order = order
        return order

    async def refresh(self) -> Order:
        return await self.track(self.identifier, self.use_tracking)

    @property
    def step_index(self) -> int:
        return current_step_index(self.order.order_status) if self.order else -1

    @property
    def step_states(self) -> List[StepState]:
        return step_states(self.order.order_status if self.order else "")

    @property
    def can_cancel(self) -> bool:
        return self.order is not None and can_cancel(self.order.order_status)

    async def cancel(self, email: str = "", phone: str = "") -> Optional[Order]:
        """
        Ask the backend to cancel the loaded order.

        Guests must give an email or a phone number; the backend checks them
        against the order. Signed-in customers fall back to the order's own
        contact details. Returns the re-fetched order.
        """
        if self.order is None:
            raise ValidationError(MISSING_ID_MESSAGE, "identifier")
        if not self.can_cancel:
            raise ValidationError(NOT_CANCELLABLE_MESSAGE)

        email = (email or "").strip()
        phone = (phone or "").strip()
        if self.session.is_authenticated:
            email = email or self.order.customer.email
            phone = phone or self.order.customer.phone
        elif not email and not phone:
            raise ValidationError(MISSING_VERIFICATION_MESSAGE, "email")

        order_id = self.order.order_id
        try:
            await endpoints.cancel_order(self.client, order_id, email or None, phone or None)
        except ApiError as e:
            raise ApiError(e.message or CANCEL_FAILED_MESSAGE, e.status, e.data) from e

        _logger.info(f"Order {order_id} cancelled.")
        try:
            await self.refresh()
        except ApiError as e:
            _logger.warning(f"Order {order_id} cancelled but re-fetch failed: {e.message}")
        return self.order
