# src/backend/endpoints.py
from __future__ import annotations

from typing import Any, Dict, List, Optional
from urllib.parse import quote

from backend import models
from backend.client import ApiClient, unwrap
from backend.errors import INVALID_RESPONSE, ApiError, NotFoundError


def _path_id(value: str) -> str:
    return quote(str(value).strip(), safe="")


def _to_int(val, default: int = 0) -> int:
    try:
        return int(val)
    except (TypeError, ValueError):
        return default


def _to_float(val, default: float = 0.0) -> float:
    try:
        return float(val)
    except (TypeError, ValueError):
        return default


def _as_list(payload: Any, key: str) -> List[Any]:
    """Accept either a bare list or a list nested under key (once or twice)."""
    if isinstance(payload, list):
        return payload
    found = unwrap(payload, key)
    return found if isinstance(found, list) else []


# ---------------------------
# Payload -> model conversion
# ---------------------------


def user_from_payload(data: Dict[str, Any]) -> models.User:
    return models.User(
        id=str(data.get("id") or data.get("_id") or data.get("uid") or ""),
        email=data.get("email") or "",
        name=data.get("name") or "",
        order_count=_to_int(data.get("orderCount")),
    )


def user_to_payload(user: models.User) -> Dict[str, Any]:
    return {
        "id": user.id,
        "email": user.email,
        "name": user.name,
        "orderCount": user.order_count,
    }


def product_from_payload(data: Dict[str, Any]) -> models.Product:
    category = data.get("category")
    if isinstance(category, dict):
        cat_name = category.get("name") or ""
        cat_slug = category.get("slug") or cat_name
    else:
        cat_name = cat_slug = category or ""

    images = []
    for img in data.get("images") or []:
        url = img.get("url") if isinstance(img, dict) else img
        if url:
            images.append(url)

    sizes = tuple(
        models.ProductSize(size=str(s.get("size", "")), stock=_to_int(s.get("stock")))
        for s in data.get("sizes") or []
        if isinstance(s, dict)
    )
    original_price = data.get("originalPrice")

    return models.Product(
        id=str(data.get("_id") or data.get("id") or data.get("productId") or ""),
        name=data.get("name") or "",
        description=data.get("description") or "",
        price=_to_float(data.get("price")),
        category=cat_name,
        category_slug=cat_slug,
        sizes=sizes,
        images=tuple(images),
        original_price=_to_float(original_price) if original_price else None,
        rating=_to_float(data.get("rating")),
        review_count=_to_int(data.get("reviewCount")),
    )


def category_from_payload(data: Dict[str, Any]) -> models.Category:
    name = data.get("name") or ""
    return models.Category(
        id=str(data.get("_id") or data.get("id") or ""),
        name=name,
        slug=data.get("slug") or name.lower(),
        description=data.get("description") or "",
        product_count=_to_int(data.get("productCount")),
    )


def _shipping_address(shipping: Any) -> str:
    if isinstance(shipping, str):
        return shipping
    if not isinstance(shipping, dict):
        return ""
    parts = [
        shipping.get("address"),
        shipping.get("apartment"),
        shipping.get("city"),
        shipping.get("state"),
    ]
    line = ", ".join(p for p in parts if p)
    if shipping.get("pinCode"):
        line += f" - {shipping['pinCode']}"
    if shipping.get("country"):
        line += f", {shipping['country']}"
    return line


def order_from_payload(data: Dict[str, Any]) -> models.Order:
    customer = data.get("customer") or {}
    items = tuple(
        models.OrderItem(
            name=i.get("name") or "",
            quantity=_to_int(i.get("quantity")),
            price=_to_float(i.get("price")),
            size=i.get("size"),
            image=i.get("image"),
        )
        for i in data.get("items") or []
    )
    history = tuple(
        models.StatusEntry(
            status=h.get("status") or "",
            timestamp=h.get("timestamp") or "",
            note=h.get("note") or "",
        )
        for h in data.get("statusHistory") or []
    )
    return models.Order(
        order_id=str(data.get("orderId") or ""),
        customer=models.Customer(
            name=customer.get("name") or "",
            email=customer.get("email") or "",
            phone=customer.get("phone") or "",
        ),
        items=items,
        shipping_address=_shipping_address(data.get("shipping")),
        order_status=data.get("orderStatus") or "",
        payment_status=data.get("paymentStatus") or "",
        payment_method=data.get("paymentMethod") or "",
        total=_to_float(data.get("total")),
        created_at=data.get("createdAt") or "",
        tracking_id=data.get("trackingId") or None,
        estimated_delivery=data.get("estimatedDelivery") or None,
        status_history=history,
    )


def review_from_payload(data: Dict[str, Any]) -> models.Review:
    author = data.get("user")
    if isinstance(author, dict):
        author = author.get("name")
    return models.Review(
        id=str(data.get("_id") or data.get("id") or ""),
        product_id=str(data.get("productId") or ""),
        rating=_to_int(data.get("rating")),
        title=data.get("title") or "",
        comment=data.get("comment") or "",
        author=author or data.get("userName") or "",
        created_at=data.get("createdAt") or "",
    )


def _auth_result(payload: Any) -> models.AuthResult:
    token = unwrap(payload, "token")
    if not token:
        raise ApiError(INVALID_RESPONSE, 0, payload)
    user = unwrap(payload, "user")
    return models.AuthResult(
        token=token,
        user=user_from_payload(user) if isinstance(user, dict) else None,
    )


# ---------------------------
# Auth
# ---------------------------


async def login(client: ApiClient, email: str, password: str) -> models.AuthResult:
    """Email/password login. Raises ApiError if the response carries no token."""
    payload = await client.post(
        "/api/users/login", {"email": email, "password": password}
    )
    return _auth_result(payload)


async def register(
    client: ApiClient, name: str, email: str, password: str
) -> Optional[models.AuthResult]:
    """
    Create an account.
    Returns None when the backend asks for email verification instead of
    signing the user in straight away.
    """
    payload = await client.post(
        "/api/users/register", {"name": name, "email": email, "password": password}
    )
    if not unwrap(payload, "token"):
        return None
    return _auth_result(payload)


async def fetch_me(client: ApiClient) -> Optional[models.User]:
    payload = await client.get("/api/users/me")
    user = unwrap(payload, "user") or payload
    if not isinstance(user, dict) or not user.get("email"):
        return None
    return user_from_payload(user)


async def refresh_token(client: ApiClient) -> str:
    payload = await client.post("/api/auth/refresh")
    token = unwrap(payload, "token")
    if not token:
        raise ApiError(INVALID_RESPONSE, 0, payload)
    return token


async def logout(client: ApiClient) -> None:
    await client.post("/api/auth/logout")


async def resend_verification(client: ApiClient, email: str) -> None:
    await client.post("/api/users/resend-verification", {"email": email})


async def forgot_password(client: ApiClient, email: str) -> None:
    """Ask the backend to email password reset instructions."""
    await client.post("/api/users/forgot-password", {"email": email})


async def google_sign_in(client: ApiClient, credential: str) -> models.AuthResult:
    """Forward an identity-provider credential (ID token) to the backend."""
    payload = await client.post("/api/auth/google", {"credential": credential})
    error = unwrap(payload, "error")
    if error:
        raise ApiError(str(error), 0, payload)
    return _auth_result(payload)


# ---------------------------
# Orders
# ---------------------------


def _order_or_not_found(payload: Any) -> models.Order:
    order = unwrap(payload, "order") or payload
    if not isinstance(order, dict) or not order.get("orderId"):
        raise NotFoundError("Order not found.", payload)
    return order_from_payload(order)


async def get_order(client: ApiClient, order_id: str) -> models.Order:
    return _order_or_not_found(await client.get(f"/api/orders/{_path_id(order_id)}"))


async def get_order_by_tracking(client: ApiClient, tracking_id: str) -> models.Order:
    return _order_or_not_found(
        await client.get(f"/api/orders/track/{_path_id(tracking_id)}")
    )


async def cancel_order(
    client: ApiClient,
    order_id: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
) -> None:
    body = {}
    if email:
        body["email"] = email
    if phone:
        body["phone"] = phone
    await client.post(f"/api/orders/{_path_id(order_id)}/cancel", body)


async def list_my_orders(client: ApiClient) -> List[models.Order]:
    payload = await client.get("/api/orders/my-orders")
    return [
        order_from_payload(o) for o in _as_list(payload, "orders") if isinstance(o, dict)
    ]


async def place_order(client: ApiClient, order: Dict[str, Any]) -> str:
    """Submit an order and return its id."""
    payload = await client.post("/api/orders", order)
    order_id = unwrap(payload, "orderId")
    if not order_id:
        order_id = (unwrap(payload, "order") or {}).get("orderId")
    if not order_id:
        raise ApiError(INVALID_RESPONSE, 0, payload)
    return str(order_id)


# ---------------------------
# Catalog & reviews
# ---------------------------


async def list_products(
    client: ApiClient,
    limit: int = 100,
    category: Optional[str] = None,
    search: Optional[str] = None,
) -> List[models.Product]:
    params: Dict[str, Any] = {"limit": limit}
    if category:
        params["category"] = category
    if search:
        params["search"] = search
    payload = await client.get("/api/products", params=params)
    return [
        product_from_payload(p)
        for p in _as_list(payload, "products")
        if isinstance(p, dict)
    ]


async def get_product(client: ApiClient, product_id: str) -> Optional[models.Product]:
    try:
        payload = await client.get(f"/api/products/{_path_id(product_id)}")
    except NotFoundError:
        return None
    product = unwrap(payload, "product") or payload
    if not isinstance(product, dict):
        return None
    return product_from_payload(product)


async def list_categories(client: ApiClient) -> List[models.Category]:
    payload = await client.get("/api/categories")
    return [
        category_from_payload(c)
        for c in _as_list(payload, "categories")
        if isinstance(c, dict)
    ]


async def list_reviews(client: ApiClient, product_id: str) -> List[models.Review]:
    payload = await client.get(f"/api/products/{_path_id(product_id)}/reviews")
    return [
        review_from_payload(r) for r in _as_list(payload, "reviews") if isinstance(r, dict)
    ]


async def submit_review(
    client: ApiClient, product_id: str, rating: int, title: str, comment: str
) -> None:
    await client.post(
        "/api/reviews",
        {
            "productId": product_id,
            "rating": rating,
            "title": title.strip(),
            "comment": comment.strip(),
        },
    )
