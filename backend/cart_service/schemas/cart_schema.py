# backend/cart_service/schemas/cart_schema.py
import enum
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ZERO = Decimal("0.00")


def new_id() -> str:
    return uuid4().hex


class CartStatus(str, enum.Enum):
    ACTIVE = "active"
    ABANDONED = "abandoned"
    PROCESSING = "processing"
    COMPLETED = "completed"


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Coupon(_CamelModel):
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    applied_at: datetime


class CartItem(_CamelModel):
    id: str = Field(default_factory=new_id)
    product_id: str
    title: str
    description: Optional[str] = None
    price: Decimal  # unit price at time of add
    quantity: int = Field(..., gt=0)
    weight: Optional[str] = None
    image: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)
    added_at: datetime


class Cart(_CamelModel):
    """
    Shopping cart document.

    Monetary fields are derived by the pricing engine and only ever written
    by the cart service. `subtotal` is the raw sum of the lines before any
    coupon; `discount_amount` is what the coupon took off.
    """

    id: str = Field(default_factory=new_id)
    user_id: Optional[str] = None  # None for guest carts
    status: CartStatus = CartStatus.ACTIVE
    items: List[CartItem] = Field(default_factory=list)
    coupon: Optional[Coupon] = None
    subtotal: Decimal = ZERO
    discount_amount: Decimal = ZERO
    tax_amount: Decimal = ZERO
    shipping_cost: Decimal = ZERO
    total_amount: Decimal = ZERO
    metadata: Dict[str, str] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime
    expires_at: datetime
    version: int = 0

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def find_item(self, item_id: str) -> Optional[CartItem]:
        return next((it for it in self.items if it.id == item_id), None)


class CartSummary(_CamelModel):
    id: str
    item_count: int
    total_amount: Decimal
    status: CartStatus

    @classmethod
    def from_cart(cls, cart: Cart) -> "CartSummary":
        return cls(
            id=cart.id,
            item_count=sum(it.quantity for it in cart.items),
            total_amount=cart.total_amount,
            status=cart.status,
        )


class CartStatistics(_CamelModel):
    total_carts: int = 0
    active_carts: int = 0
    abandoned_carts: int = 0
    processing_carts: int = 0
    completed_carts: int = 0
    average_cart_value: Decimal = ZERO
