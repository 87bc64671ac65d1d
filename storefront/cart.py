# storefront/cart.py
from decimal import Decimal
from typing import Dict, List, Tuple

from .models import CartLine, CheckoutRequest, Identity, Product, ProductId, compute_totals


def _key(product_id: ProductId) -> str:
    return str(product_id)


class Cart:
    """Session-scoped cart: at most one line per product id, quantities >= 1.

    Totals are recomputed from the lines on every read.
    """

    def __init__(self):
        # product id -> line, insertion order kept for display
        self._lines: Dict[str, CartLine] = {}

    def add(self, product: Product) -> None:
        key = _key(product.id)
        existing = self._lines.get(key)
        if existing:
            self._lines[key] = CartLine(product=existing.product, quantity=existing.quantity + 1)
        else:
            self._lines[key] = CartLine(product=product, quantity=1)

    def remove(self, product: Product) -> None:
        # pressing "-" with the counter at zero is a no-op
        key = _key(product.id)
        existing = self._lines.get(key)
        if not existing:
            return
        if existing.quantity > 1:
            self._lines[key] = CartLine(product=existing.product, quantity=existing.quantity - 1)
        else:
            del self._lines[key]

    def quantity_of(self, product_id: ProductId) -> int:
        line = self._lines.get(_key(product_id))
        return line.quantity if line else 0

    def totals(self) -> Tuple[int, Decimal]:
        return compute_totals(self._lines.values())

    @property
    def total_quantity(self) -> int:
        return self.totals()[0]

    @property
    def total_price(self) -> Decimal:
        return self.totals()[1]

    def lines(self) -> List[CartLine]:
        return list(self._lines.values())

    def is_empty(self) -> bool:
        return not self._lines

    def clear(self) -> None:
        self._lines = {}

    def snapshot(self, identity: Identity) -> CheckoutRequest:
        return CheckoutRequest.from_lines(self._lines.values(), identity)

    def __len__(self) -> int:
        return len(self._lines)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Cart):
            return NotImplemented
        return self._lines == other._lines

    def __repr__(self) -> str:
        inner = ", ".join(f"{line.product.name}x{line.quantity}" for line in self._lines.values())
        return f"Cart({inner})"
