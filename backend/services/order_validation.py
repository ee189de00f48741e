"""
Read-only feasibility check and pricing for a proposed order.

Nothing here writes to storage. The result is an immutable snapshot that the
order workflow uses to build the order and to compute the stock changes.
"""

from collections import Counter
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from typing import Mapping, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from errors import InsufficientStock, InvalidQuantity, ProductExpired, ProductNotFound
from models import Product, as_utc, utcnow
from repositories import product_repository
from schemas import OrderDetailRequest


@dataclass(frozen=True)
class ProductSnapshot:
    id: int
    name: str
    price: float
    stock: int
    expiration_time: datetime

    @classmethod
    def from_product(cls, product: Product) -> "ProductSnapshot":
        return cls(
            id=product.id,
            name=product.name,
            price=product.price,
            stock=product.stock,
            expiration_time=as_utc(product.expiration_time),
        )


@dataclass(frozen=True)
class PricedLine:
    product_id: int
    quantity: int
    price: float

    @property
    def subtotal(self) -> float:
        return self.quantity * self.price


@dataclass(frozen=True)
class ValidatedOrder:
    total_price: float
    products: Mapping[int, ProductSnapshot]
    lines: Tuple[PricedLine, ...]

    def quantities(self) -> Mapping[int, int]:
        """Units to take from each product, lines for the same product summed."""
        totals: Counter = Counter()
        for line in self.lines:
            totals[line.product_id] += line.quantity
        return dict(totals)


def _check_quantities(details: Sequence[OrderDetailRequest]) -> None:
    for detail in details:
        if isinstance(detail.quantity, bool) or detail.quantity <= 0:
            raise InvalidQuantity("Quantity must be greater than zero")


def validate_order_request(
    session: Session,
    details: Sequence[OrderDetailRequest],
    *,
    now: Optional[datetime] = None,
) -> ValidatedOrder:
    _check_quantities(details)
    checked_at = as_utc(now) if now else utcnow()

    found = product_repository.find_by_ids(session, [d.product_id for d in details])
    products = {p.id: ProductSnapshot.from_product(p) for p in found}

    requested: Counter = Counter()
    lines = []
    total_price = 0.0
    for detail in details:
        product = products.get(detail.product_id)
        if product is None:
            raise ProductNotFound("Product not found or already sold out")

        requested[product.id] += detail.quantity
        if product.stock < requested[product.id]:
            raise InsufficientStock(f"Insufficient stock for product {product.name}")

        if checked_at > product.expiration_time:
            raise ProductExpired(f"Product {product.name} is expired")

        line = PricedLine(product_id=product.id, quantity=detail.quantity, price=product.price)
        lines.append(line)
        total_price += line.subtotal

    return ValidatedOrder(
        total_price=total_price,
        products=MappingProxyType(products),
        lines=tuple(lines),
    )
