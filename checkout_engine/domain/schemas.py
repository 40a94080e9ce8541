# checkout_engine/domain/schemas.py
from pydantic import BaseModel, Field, ConfigDict, model_validator
from typing import List, Optional
from decimal import Decimal
from datetime import datetime

from checkout_engine.data.models.coupon import DiscountType


class ItemIn(BaseModel):
    """Schema dla dodawania produktu do koszyka."""

    product_id: int = Field(..., gt=0, description="ID produktu (musi być > 0)")
    quantity: int = Field(..., description="Ilość produktu (musi być > 0)")
    coupon_code: Optional[str] = Field(None, max_length=64, description="Opcjonalny kod kuponu")


class CartItemOut(BaseModel):
    product_id: int
    quantity: int
    unit_price: Decimal
    applied_coupon_code: Optional[str] = None
    line_total: Decimal


class CartOut(BaseModel):
    """Schema dla koszyka (response)."""

    cart_id: int
    user_id: int
    items: List[CartItemOut]
    total_price: Decimal
    version: int

    model_config = ConfigDict(from_attributes=True)


class OrderItemOut(BaseModel):
    product_id: int
    quantity: int
    unit_price: Decimal

    model_config = ConfigDict(from_attributes=True)


class OrderOut(BaseModel):
    """Schema dla zamówienia (response)."""

    id: int
    user_id: int
    status: str
    total_price: Decimal
    created_at: datetime
    items: List[OrderItemOut]

    model_config = ConfigDict(from_attributes=True)


class CheckoutOut(OrderOut):
    order_id: int


class CouponValidateIn(BaseModel):
    code: str = Field(..., min_length=1, max_length=64)
    product_id: int = Field(..., gt=0)
    quantity: int = Field(..., gt=0)
    original_unit_price: Decimal = Field(..., ge=0)


class CouponValidateOut(BaseModel):
    is_valid: bool
    discount_amount: Decimal
    final_price: Decimal
    message: str
    reason: Optional[str] = None
    remaining: Optional[int] = None
    minimum_amount: Optional[Decimal] = None


class CouponIn(BaseModel):
    """Schema dla tworzenia / edycji kuponu."""

    code: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=100)
    description: str = ""
    discount_type: DiscountType
    value: Decimal = Field(..., gt=0)
    minimum_amount: Optional[Decimal] = Field(None, ge=0)
    start_date: datetime
    end_date: datetime
    usage_limit: Optional[int] = Field(None, gt=0)
    usage_limit_per_user: Optional[int] = Field(None, gt=0)
    is_active: bool = True
    product_ids: List[int] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_percentage(self):
        if self.discount_type == DiscountType.PERCENTAGE and self.value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class CouponOut(BaseModel):
    id: int
    code: str
    name: str
    description: str
    discount_type: DiscountType
    value: Decimal
    minimum_amount: Optional[Decimal] = None
    start_date: datetime
    end_date: datetime
    usage_limit: Optional[int] = None
    usage_limit_per_user: Optional[int] = None
    current_usage_count: int
    is_active: bool
    created_by: int
    product_ids: List[int]

    model_config = ConfigDict(from_attributes=True)
