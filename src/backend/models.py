# frozen dataclass records built from backend payloads

from dataclasses import dataclass, field
from typing import Optional, Tuple


@dataclass(frozen=True)
class User:
    id: str
    email: str
    name: str
    order_count: int = 0


@dataclass(frozen=True)
class CartItem:
    product_id: str
    name: str
    price: float
    size: str
    quantity: int
    category: str
    max_stock: int
    image: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str]:
        return self.product_id, self.size

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


@dataclass(frozen=True)
class ProductSize:
    size: str
    stock: int


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    description: str
    price: float
    category: str
    category_slug: str
    sizes: Tuple[ProductSize, ...] = ()
    images: Tuple[str, ...] = ()
    original_price: Optional[float] = None
    rating: float = 0.0
    review_count: int = 0

    @property
    def total_stock(self) -> int:
        return sum(s.stock for s in self.sizes)

    @property
    def primary_image(self) -> Optional[str]:
        return self.images[0] if self.images else None


@dataclass(frozen=True)
class Category:
    id: str
    name: str
    slug: str
    description: str = ""
    product_count: int = 0


@dataclass(frozen=True)
class Customer:
    name: str
    email: str
    phone: str


@dataclass(frozen=True)
class OrderItem:
    name: str
    quantity: int
    price: float
    size: Optional[str] = None
    image: Optional[str] = None


@dataclass(frozen=True)
class StatusEntry:
    status: str
    timestamp: str
    note: str = ""


@dataclass(frozen=True)
class Order:
    """Read-only projection of an order as reported by the backend."""

    order_id: str
    customer: Customer
    items: Tuple[OrderItem, ...]
    shipping_address: str
    order_status: str
    payment_status: str
    payment_method: str
    total: float
    created_at: str
    tracking_id: Optional[str] = None
    estimated_delivery: Optional[str] = None
    status_history: Tuple[StatusEntry, ...] = field(default=())


@dataclass(frozen=True)
class Review:
    id: str
    product_id: str
    rating: int
    title: str
    comment: str
    author: str = ""
    created_at: str = ""


@dataclass(frozen=True)
class AuthResult:
    token: str
    user: Optional[User]
