from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class OrderDetailRequest(BaseModel):
    product_id: int
    quantity: int = Field(..., description="Units to buy, must be greater than zero")
    price: Optional[float] = Field(
        default=None, description="Ignored: the catalogue price is charged"
    )


class OrderCreate(BaseModel):
    note: str = ""
    order_details: List[OrderDetailRequest] = Field(..., min_length=1)


class OrderRequest(OrderCreate):
    user_id: int


class OrderStatusRequest(BaseModel):
    status: Optional[str] = None
    note: Optional[str] = None


class OrderDetailResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    quantity: int
    price: float


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    total_price: float
    note: str
    status: str
    is_deleted: bool
    deleted_at: Optional[datetime]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    order_details: List[OrderDetailResponse]


class OrderListResponse(BaseModel):
    items: List[OrderResponse]


class ProductPayload(BaseModel):
    name: str
    picture: Optional[str] = None
    price: float = Field(..., ge=0)
    stock: int = Field(..., ge=0)
    description: Optional[str] = None
    expiration_time: datetime
    is_sold_out: bool = False
    sold_out_at: Optional[datetime] = None


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    picture: Optional[str]
    price: float
    stock: int
    description: Optional[str]
    expiration_time: datetime
    is_sold_out: bool
    sold_out_at: Optional[datetime]
    created_at: Optional[datetime]
    updated_at: Optional[datetime]


class ProductListResponse(BaseModel):
    items: List[ProductResponse]


class LineProfile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., alias="userId")
    display_name: str = Field(..., alias="displayName")
    email: Optional[str] = None
    picture_url: Optional[str] = Field(default=None, alias="pictureUrl")


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    line_id: str
    display_name: str
    email: Optional[str]
    phone: Optional[str]
    is_member: bool


class UserListResponse(BaseModel):
    items: List[UserResponse]
