import re
from dataclasses import dataclass
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, Iterable, List, Literal, Optional, Sequence

from backend.models import CartItem, Product, User

DISCOUNT_THRESHOLD = 500
DISCOUNT_PERCENTAGE = 10
SHIPPING_FEE = 99
FREE_SHIPPING_ORDER_LIMIT = 5
GUEST_SHIPPING_HINT = (
    f"Sign in for free shipping on your first {FREE_SHIPPING_ORDER_LIMIT} orders!"
)

STATUS_STEPS = ("pending", "processing", "shipped", "delivered")
STATUS_LABELS = {
    "pending": "Order Received",
    "processing": "Processing",
    "shipped": "Shipped",
    "delivered": "Delivered",
    "cancelled": "Cancelled",
}
NON_CANCELLABLE_STATUSES = frozenset({"shipped", "delivered", "cancelled"})

StepState = Literal["completed", "current", "upcoming"]


def round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ---------------------------
# Pricing
# ---------------------------


def compute_discount(subtotal: float) -> int:
    """10% off (rounded) once the subtotal reaches the threshold."""
    if subtotal >= DISCOUNT_THRESHOLD:
        return round_half_up(subtotal * DISCOUNT_PERCENTAGE / 100)
    return 0


def compute_shipping(is_authenticated: bool, user: Optional[User]) -> int:
    """Signed-in customers ship free for their first few orders."""
    if is_authenticated and user is not None and user.order_count < FREE_SHIPPING_ORDER_LIMIT:
        return 0
    return SHIPPING_FEE


@dataclass(frozen=True)
class CartSummary:
    subtotal: float
    discount: int
    shipping: int

    @property
    def total(self) -> float:
        return self.subtotal - self.discount + self.shipping


def summarize_cart(
    items: Iterable[CartItem], is_authenticated: bool, user: Optional[User]
) -> CartSummary:
    subtotal = sum(i.line_total for i in items)
    return CartSummary(
        subtotal=subtotal,
        discount=compute_discount(subtotal),
        shipping=compute_shipping(is_authenticated, user),
    )


def format_price(amount: float) -> str:
    if float(amount).is_integer():
        return f"₹{int(amount):,}"
    return f"₹{amount:,.2f}"


# ---------------------------
# Catalog & checkout
# ---------------------------


def filter_products(
    products: Iterable[Product], search: str = "", category: str = ""
) -> List[Product]:
    """
    Case-insensitive match of search against name or description, and of
    category against the category name or slug. Empty filters match everything.
    """
    term = (search or "").strip().lower()
    selected = (category or "").strip().lower()
    result = []
    for p in products:
        if term and term not in p.name.lower() and term not in p.description.lower():
            continue
        if selected and selected not in (p.category.lower(), p.category_slug.lower()):
            continue
        result.append(p)
    return result


def build_order_payload(
    items: Sequence[CartItem],
    summary: CartSummary,
    customer: Dict[str, str],
    shipping: Dict[str, str],
    payment_method: str = "cod",
) -> Dict[str, Any]:
    return {
        "customer": customer,
        "shipping": shipping,
        "items": [
            {
                "productId": i.product_id,
                "name": i.name,
                "price": i.price,
                "size": i.size,
                "quantity": i.quantity,
                "image": i.image,
            }
            for i in items
        ],
        "subtotal": summary.subtotal,
        "discountAmount": summary.discount,
        "shippingCost": summary.shipping,
        "total": summary.total,
        "paymentMethod": payment_method,
    }


_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_PHONE_RE = re.compile(r"^[6-9]\d{9}$")
_PIN_CODE_RE = re.compile(r"^\d{6}$")

REQUIRED_SHIPPING_FIELDS = {
    "firstName": "First name",
    "address": "Address",
    "city": "City",
    "state": "State",
}


def validate_checkout(
    customer: Dict[str, str], shipping: Dict[str, str]
) -> Dict[str, str]:
    """
    Field errors for the checkout form, keyed like "customer.email".
    An empty dict means the form can be submitted.
    """
    errors: Dict[str, str] = {}

    email = customer.get("email", "").strip()
    if not email:
        errors["customer.email"] = "Email is required"
    elif not _EMAIL_RE.match(email):
        errors["customer.email"] = "Please enter a valid email address"

    phone = customer.get("phone", "").strip()
    if not phone:
        errors["customer.phone"] = "Phone number is required"
    elif not _PHONE_RE.match(phone):
        errors["customer.phone"] = "Please enter a valid 10-digit phone number"

    for field, label in REQUIRED_SHIPPING_FIELDS.items():
        if not shipping.get(field, "").strip():
            errors[f"shipping.{field}"] = f"{label} is required"

    pin_code = shipping.get("pinCode", "").strip()
    if not pin_code:
        errors["shipping.pinCode"] = "PIN code is required"
    elif not _PIN_CODE_RE.match(pin_code):
        errors["shipping.pinCode"] = "Please enter a valid 6-digit PIN code"

    return errors


# ---------------------------
# Order progress
# ---------------------------


def current_step_index(order_status: str) -> int:
    """Position of the status in STATUS_STEPS, -1 if it isn't a step (e.g. cancelled)."""
    try:
        return STATUS_STEPS.index(order_status)
    except ValueError:
        return -1


def step_states(order_status: str) -> List[StepState]:
    current = current_step_index(order_status)
    states: List[StepState] = []
    for i in range(len(STATUS_STEPS)):
        if i < current:
            states.append("completed")
        elif i == current:
            states.append("current")
        else:
            states.append("upcoming")
    return states


def can_cancel(order_status: str) -> bool:
    return bool(order_status) and order_status.lower() not in NON_CANCELLABLE_STATUSES


# ---------------------------
# Markdown
# ---------------------------


def generate_markdown_table(
    headers: Optional[Sequence[str]],
    rows: Sequence[Sequence[object]],
    aligns: Optional[Sequence[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Render rows as a Markdown table.

    With headers=None the first row becomes the header row. aligns defaults to
    centered columns and must match the column count when given.
    """
    if not rows:
        return ""

    if not headers:
        headers, rows = rows[0], rows[1:]

    headers = [str(h) for h in headers]
    if aligns is None:
        aligns = ["c"] * len(headers)
    elif len(aligns) != len(headers):
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {"l": ":---", "c": ":---:", "r": "---:"}
    lines = [
        "| " + " | ".join(headers) + " |",
        "| " + " | ".join(align_map[a] for a in aligns) + " |",
    ]
    lines += ["| " + " | ".join(str(c) for c in row) + " |" for row in rows]
    return "\n".join(lines)


def format_date(value: str, fmt: str = "%b %d, %Y") -> str:
    """Render an ISO timestamp from the backend; unparseable values come back as-is."""
    if not value:
        return "-"
    try:
        return datetime.fromisoformat(value).strftime(fmt)
    except ValueError:
        return value
