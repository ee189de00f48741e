import asyncio
import contextlib
import logging
from datetime import datetime
from typing import Iterator, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from constants import ORDER_STATUS_PENDING
from database import run_in_session
from errors import InsufficientStock, OrderNotFound, ProductNotFound, StorageError, UserNotFound
from models import Order, OrderDetail, utcnow
from repositories import order_repository, product_repository, user_repository
from schemas import OrderListResponse, OrderRequest, OrderResponse, OrderStatusRequest
from services.order_validation import ValidatedOrder, validate_order_request

logger = logging.getLogger("shopping-cart")


def _build_order(request: OrderRequest, validated: ValidatedOrder) -> Order:
    return Order(
        user_id=request.user_id,
        total_price=validated.total_price,
        note=request.note,
        status=ORDER_STATUS_PENDING,
        is_deleted=False,
        order_details=[
            OrderDetail(product_id=line.product_id, quantity=line.quantity, price=line.price)
            for line in validated.lines
        ],
    )


@contextlib.contextmanager
def _reading(what: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        logger.exception("Failed to read %s", what)
        raise StorageError(f"Failed to read {what}") from exc


def create_order(
    session: Session,
    request: OrderRequest,
    *,
    now: Optional[datetime] = None,
) -> Order:
    now = now or utcnow()
    with _reading("products"):
        validated = validate_order_request(session, request.order_details, now=now)
    order = _build_order(request, validated)

    try:
        with order_repository.begin_transaction(session):
            order_repository.create(session, order)
            short = product_repository.batch_update_stock(
                session, validated.quantities(), now=now
            )
            if short:
                name = validated.products[short[0]].name
                raise InsufficientStock(f"Insufficient stock for product {name}")
    except SQLAlchemyError as exc:
        logger.warning("Order for user %s rolled back: %s", request.user_id, exc)
        raise StorageError("Failed to create order") from exc
    except InsufficientStock:
        logger.warning("Order for user %s rolled back: stock changed", request.user_id)
        raise

    logger.info(
        "Created order %s for user %s (total %.2f)", order.id, order.user_id, order.total_price
    )
    return order


def get_order_by_id(
    session: Session, order_id: int, *, include_deleted: bool = False
) -> Order:
    with _reading("order"):
        if include_deleted:
            order = order_repository.find_by_id_including_deleted(session, order_id)
        else:
            order = order_repository.find_by_id(session, order_id)
    if order is None:
        raise OrderNotFound("Order not found")
    return order


def update_order_status_and_note(
    session: Session, order_id: int, request: OrderStatusRequest
) -> Order:
    order = get_order_by_id(session, order_id)
    if request.status:
        order.status = request.status
    if request.note:
        order.note = request.note

    try:
        with order_repository.begin_transaction(session):
            order_repository.update(session, order)
    except SQLAlchemyError as exc:
        raise StorageError("Failed to update order") from exc
    return order


def delete_order(session: Session, order_id: int, *, now: Optional[datetime] = None) -> None:
    """Give the ordered units back to stock and soft delete the order."""
    order = get_order_by_id(session, order_id)
    now = now or utcnow()

    try:
        with order_repository.begin_transaction(session):
            for detail in order.order_details:
                product = product_repository.internal_find_by_id(session, detail.product_id)
                if product is None:
                    raise ProductNotFound(f"Product {detail.product_id} not found")
                product.stock += detail.quantity
                product_repository.update(session, product)
            order_repository.soft_delete(session, order, now=now)
    except SQLAlchemyError as exc:
        logger.warning("Cancellation of order %s rolled back: %s", order_id, exc)
        raise StorageError("Failed to delete order") from exc
    except ProductNotFound as exc:
        logger.warning("Cancellation of order %s rolled back: %s", order_id, exc)
        raise

    logger.info("Cancelled order %s", order_id)


def list_all_orders(session: Session, *, include_deleted: bool = False) -> List[Order]:
    with _reading("orders"):
        return order_repository.find_all(session, include_deleted=include_deleted)


def _user_id_for(session: Session, display_name: str) -> int:
    user = user_repository.find_by_display_name(session, display_name)
    if user is None:
        raise UserNotFound(f"User {display_name} not found")
    return user.id


def get_orders_by_user_display_name(session: Session, display_name: str) -> List[Order]:
    with _reading("orders"):
        return order_repository.find_by_user_id(session, _user_id_for(session, display_name))


def list_history_orders_by_display_name_and_product_id(
    session: Session, display_name: str, product_id: int
) -> List[Order]:
    with _reading("orders"):
        user_id = _user_id_for(session, display_name)
        return order_repository.find_by_user_id_and_product_id(session, user_id, product_id)


def _to_list(orders: List[Order]) -> OrderListResponse:
    return OrderListResponse(items=[OrderResponse.model_validate(o) for o in orders])


def _place(session: Session, request: OrderRequest) -> OrderResponse:
    return OrderResponse.model_validate(create_order(session, request))


def _read(session: Session, order_id: int, include_deleted: bool) -> OrderResponse:
    order = get_order_by_id(session, order_id, include_deleted=include_deleted)
    return OrderResponse.model_validate(order)


def _edit(session: Session, order_id: int, request: OrderStatusRequest) -> OrderResponse:
    return OrderResponse.model_validate(update_order_status_and_note(session, order_id, request))


async def place_order(request: OrderRequest) -> OrderResponse:
    return await asyncio.to_thread(run_in_session, _place, request)


async def read_order(order_id: int, include_deleted: bool = False) -> OrderResponse:
    return await asyncio.to_thread(run_in_session, _read, order_id, include_deleted)


async def edit_order(order_id: int, request: OrderStatusRequest) -> OrderResponse:
    return await asyncio.to_thread(run_in_session, _edit, order_id, request)


async def cancel_order(order_id: int) -> None:
    await asyncio.to_thread(run_in_session, delete_order, order_id)


async def read_orders(include_deleted: bool = False) -> OrderListResponse:
    return await asyncio.to_thread(
        run_in_session,
        lambda session: _to_list(list_all_orders(session, include_deleted=include_deleted)),
    )


async def read_user_orders(display_name: str) -> OrderListResponse:
    return await asyncio.to_thread(
        run_in_session,
        lambda session: _to_list(get_orders_by_user_display_name(session, display_name)),
    )


async def read_order_history(display_name: str, product_id: int) -> OrderListResponse:
    return await asyncio.to_thread(
        run_in_session,
        lambda session: _to_list(
            list_history_orders_by_display_name_and_product_id(session, display_name, product_id)
        ),
    )
