from datetime import datetime
from typing import ContextManager, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from database import transaction
from models import Order, OrderDetail


def _orders(include_deleted: bool = False):
    stmt = select(Order)
    if not include_deleted:
        stmt = stmt.where(Order.is_deleted.is_(False))
    return stmt


def begin_transaction(session: Session) -> ContextManager[Session]:
    return transaction(session)


def create(session: Session, order: Order) -> Order:
    session.add(order)
    session.flush()
    return order


def find_by_id(session: Session, order_id: int) -> Optional[Order]:
    stmt = _orders().where(Order.id == order_id)
    return session.scalars(stmt).first()


def find_by_id_including_deleted(session: Session, order_id: int) -> Optional[Order]:
    stmt = _orders(include_deleted=True).where(Order.id == order_id)
    return session.scalars(stmt).first()


def update(session: Session, order: Order) -> Order:
    session.add(order)
    session.flush()
    return order


def soft_delete(session: Session, order: Order, *, now: datetime) -> Order:
    order.is_deleted = True
    order.deleted_at = now
    return update(session, order)


def find_all(session: Session, *, include_deleted: bool = False) -> List[Order]:
    stmt = _orders(include_deleted).order_by(Order.id)
    return list(session.scalars(stmt))


def find_by_user_id(
    session: Session, user_id: int, *, include_deleted: bool = False
) -> List[Order]:
    stmt = _orders(include_deleted).where(Order.user_id == user_id).order_by(Order.id)
    return list(session.scalars(stmt))


def find_by_user_id_and_product_id(
    session: Session,
    user_id: int,
    product_id: int,
    *,
    include_deleted: bool = False,
) -> List[Order]:
    has_product = (
        select(OrderDetail.id)
        .where(OrderDetail.order_id == Order.id, OrderDetail.product_id == product_id)
        .exists()
    )
    stmt = (
        _orders(include_deleted)
        .where(Order.user_id == user_id, has_product)
        .order_by(Order.id)
    )
    return list(session.scalars(stmt))
