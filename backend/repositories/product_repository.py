from datetime import datetime
from typing import Iterable, List, Mapping, Optional

import sqlalchemy as sa
from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.util import identity_key

from models import Product


def _visible():
    return select(Product).where(
        Product.is_deleted.is_(False),
        Product.is_sold_out.is_(False),
    )


def find_by_ids(session: Session, ids: Iterable[int]) -> List[Product]:
    unique_ids = sorted(set(ids))
    if not unique_ids:
        return []
    stmt = _visible().where(Product.id.in_(unique_ids))
    return list(session.scalars(stmt))


def find_by_id(session: Session, product_id: int) -> Optional[Product]:
    return session.scalars(_visible().where(Product.id == product_id)).first()


def internal_find_by_id(session: Session, product_id: int) -> Optional[Product]:
    """Lookup that ignores the sold-out and deleted flags."""
    return session.get(Product, product_id, populate_existing=True)


def find_all(session: Session) -> List[Product]:
    return list(session.scalars(_visible().order_by(Product.id)))


def create(session: Session, product: Product) -> Product:
    session.add(product)
    session.flush()
    return product


def update(session: Session, product: Product) -> Product:
    session.add(product)
    session.flush()
    return product


def batch_update_stock(
    session: Session,
    quantities: Mapping[int, int],
    *,
    now: datetime,
) -> List[int]:
    """Take ``quantities[product_id]`` units from each product's stock.

    Every decrement only applies while the stored stock still covers it.
    Returns the ids whose stock was too low at write time; nothing is
    rolled back here, that is left to the caller's transaction.
    """
    short: List[int] = []
    for product_id, quantity in sorted(quantities.items()):
        stmt = (
            sa.update(Product)
            .where(Product.id == product_id, Product.stock >= quantity)
            .values(stock=Product.stock - quantity, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        result = session.execute(stmt)
        if result.rowcount == 0:
            short.append(product_id)
            continue
        cached = session.identity_map.get(identity_key(Product, product_id))
        if cached is not None:
            session.expire(cached)
    return short
