from fastapi import APIRouter, Depends, Response, status

from auth import get_current_user_id
from schemas import (
    OrderCreate,
    OrderListResponse,
    OrderRequest,
    OrderResponse,
    OrderStatusRequest,
)
from services import order_service

router = APIRouter(prefix="/api/orders", tags=["orders"])


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    payload: OrderCreate,
    user_id: int = Depends(get_current_user_id),
) -> OrderResponse:
    request = OrderRequest(user_id=user_id, **payload.model_dump())
    return await order_service.place_order(request)


@router.get("", response_model=OrderListResponse)
async def list_orders(
    include_deleted: bool = False,
    user_id: int = Depends(get_current_user_id),
) -> OrderListResponse:
    _ = user_id
    return await order_service.read_orders(include_deleted)


@router.get("/history", response_model=OrderListResponse)
async def list_order_history(
    display_name: str,
    product_id: int,
    user_id: int = Depends(get_current_user_id),
) -> OrderListResponse:
    _ = user_id
    return await order_service.read_order_history(display_name, product_id)


@router.get("/users/{display_name}", response_model=OrderListResponse)
async def list_user_orders(
    display_name: str,
    user_id: int = Depends(get_current_user_id),
) -> OrderListResponse:
    _ = user_id
    return await order_service.read_user_orders(display_name)


@router.get("/{order_id}", response_model=OrderResponse)
async def read_order(
    order_id: int,
    include_deleted: bool = False,
    user_id: int = Depends(get_current_user_id),
) -> OrderResponse:
    _ = user_id
    return await order_service.read_order(order_id, include_deleted)


@router.patch("/{order_id}", response_model=OrderResponse)
async def update_order(
    order_id: int,
    payload: OrderStatusRequest,
    user_id: int = Depends(get_current_user_id),
) -> OrderResponse:
    _ = user_id
    return await order_service.edit_order(order_id, payload)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_order(
    order_id: int,
    user_id: int = Depends(get_current_user_id),
) -> Response:
    _ = user_id
    await order_service.cancel_order(order_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
