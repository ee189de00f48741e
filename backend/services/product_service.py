import asyncio
import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from database import run_in_session, transaction
from errors import ProductNotFound, StorageError
from models import Product
from repositories import product_repository
from schemas import ProductListResponse, ProductPayload, ProductResponse

logger = logging.getLogger("shopping-cart")


def _apply_payload(product: Product, payload: ProductPayload) -> None:
    product.name = payload.name
    product.picture = payload.picture
    product.price = payload.price
    product.stock = payload.stock
    product.description = payload.description
    product.expiration_time = payload.expiration_time
    product.is_sold_out = payload.is_sold_out
    product.sold_out_at = payload.sold_out_at if payload.is_sold_out else None


def create_product(session: Session, payload: ProductPayload) -> Product:
    product = Product(is_deleted=False, sold_out_at=None)
    _apply_payload(product, payload)
    try:
        with transaction(session):
            product_repository.create(session, product)
    except SQLAlchemyError as exc:
        raise StorageError("Failed to store product") from exc
    logger.info("Created product %s (%s)", product.id, product.name)
    return product


def update_product(session: Session, product_id: int, payload: ProductPayload) -> Product:
    product = product_repository.internal_find_by_id(session, product_id)
    if product is None or product.is_deleted:
        raise ProductNotFound(f"Product {product_id} not found")
    _apply_payload(product, payload)
    try:
        with transaction(session):
            product_repository.update(session, product)
    except SQLAlchemyError as exc:
        raise StorageError("Failed to update product") from exc
    return product


def get_product(session: Session, product_id: int) -> Product:
    product = product_repository.find_by_id(session, product_id)
    if product is None:
        raise ProductNotFound("Product not found or already sold out")
    return product


async def list_products() -> ProductListResponse:
    def _list(session: Session) -> ProductListResponse:
        products = product_repository.find_all(session)
        return ProductListResponse(
            items=[ProductResponse.model_validate(p) for p in products]
        )

    return await asyncio.to_thread(run_in_session, _list)


async def read_product(product_id: int) -> ProductResponse:
    return await asyncio.to_thread(
        run_in_session,
        lambda session: ProductResponse.model_validate(get_product(session, product_id)),
    )


async def add_product(payload: ProductPayload) -> ProductResponse:
    return await asyncio.to_thread(
        run_in_session,
        lambda session: ProductResponse.model_validate(create_product(session, payload)),
    )


async def replace_product(product_id: int, payload: ProductPayload) -> ProductResponse:
    return await asyncio.to_thread(
        run_in_session,
        lambda session: ProductResponse.model_validate(
            update_product(session, product_id, payload)
        ),
    )
