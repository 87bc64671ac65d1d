# storefront/models.py
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict, List, Optional, Tuple, Union

ProductId = Union[int, str]
# backend user ids are sent back in the type the backend issued them
UserId = Union[int, str]

CENTS = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Convert a backend price (int, float or numeric string) to Decimal.

    Floats go through ``str`` so 3.5 becomes Decimal("3.5") and not the
    binary expansion.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def quantize_price(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_price(amount: Decimal) -> str:
    # fixed-point, never scientific notation
    return format(quantize_price(amount), "f")


# ---------- Data Models ---------- #

@dataclass(frozen=True)
class Product:
    id: ProductId
    name: str
    price: Decimal

    def __post_init__(self):
        price = to_decimal(self.price)
        if price < 0:
            raise ValueError(f"Product {self.id} has a negative price: {price}")
        object.__setattr__(self, "price", price)

    def as_line_item(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "price": float(self.price)}


@dataclass(frozen=True)
class CartLine:
    product: Product
    quantity: int

    def __post_init__(self):
        if self.quantity < 1:
            raise ValueError("CartLine quantity must be >= 1")

    @property
    def subtotal(self) -> Decimal:
        return self.product.price * self.quantity

    def as_line_item(self) -> Dict[str, Any]:
        return {"product": self.product.as_line_item(), "quantity": self.quantity}


@dataclass(frozen=True)
class Identity:
    user_id: Optional[UserId]
    credential: Optional[str]
    username: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.user_id not in (None, "") and bool(self.credential)


@dataclass(frozen=True)
class CatalogSnapshot:
    products: Tuple[Product, ...] = ()

    def get(self, product_id: ProductId) -> Optional[Product]:
        # ids arrive from JSON bodies and URLs as either int or str
        key = str(product_id)
        return next((p for p in self.products if str(p.id) == key), None)

    def __len__(self) -> int:
        return len(self.products)

    def __iter__(self):
        return iter(self.products)


def compute_totals(lines) -> Tuple[int, Decimal]:
    total_quantity = 0
    total_price = Decimal("0")
    for line in lines:
        total_quantity += line.quantity
        total_price += line.subtotal
    return total_quantity, total_price


@dataclass(frozen=True)
class CheckoutRequest:
    lines: Tuple[CartLine, ...]
    user_id: UserId
    credential: str
    total_quantity: int
    total_price: Decimal
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @classmethod
    def from_lines(cls, lines, identity: Identity) -> "CheckoutRequest":
        frozen = tuple(lines)
        total_quantity, total_price = compute_totals(frozen)
        return cls(
            lines=frozen,
            user_id=identity.user_id,
            credential=identity.credential,
            total_quantity=total_quantity,
            total_price=total_price,
        )

    def line_items(self) -> List[Dict[str, Any]]:
        return [line.as_line_item() for line in self.lines]
