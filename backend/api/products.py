from fastapi import APIRouter, Depends, status

from auth import get_current_user_id
from schemas import ProductListResponse, ProductPayload, ProductResponse
from services import product_service

router = APIRouter(prefix="/api/products", tags=["products"])


@router.get("", response_model=ProductListResponse)
async def list_products() -> ProductListResponse:
    return await product_service.list_products()


@router.get("/{product_id}", response_model=ProductResponse)
async def read_product(product_id: int) -> ProductResponse:
    return await product_service.read_product(product_id)


@router.post("", response_model=ProductResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    payload: ProductPayload,
    user_id: int = Depends(get_current_user_id),
) -> ProductResponse:
    _ = user_id
    return await product_service.add_product(payload)


@router.put("/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    payload: ProductPayload,
    user_id: int = Depends(get_current_user_id),
) -> ProductResponse:
    _ = user_id
    return await product_service.replace_product(product_id, payload)
