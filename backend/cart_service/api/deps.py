from datetime import datetime
from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.orm import Session

from cart_service.adapters.product_client import HttpProductClient
from cart_service.config import CartPolicy, settings
from cart_service.db import get_db
from cart_service.services.cart_service import CartService, utcnow
from cart_service.services.coupons import FixedPercentageCouponResolver

_product_client = HttpProductClient(
    settings.PRODUCT_SERVICE_URL, timeout=settings.PRODUCT_SERVICE_TIMEOUT_SECONDS
)


def get_product_client():
    return _product_client


def get_policy() -> CartPolicy:
    return CartPolicy.from_settings(settings)


def get_clock():
    return utcnow


def get_cart_service(
    db: Session = Depends(get_db),
    product_client=Depends(get_product_client),
    policy: CartPolicy = Depends(get_policy),
    clock=Depends(get_clock),
) -> CartService:
    return CartService(
        db,
        product_client,
        coupon_resolver=FixedPercentageCouponResolver(settings.CART_COUPON_PERCENT_OFF),
        policy=policy,
        clock=clock,
    )


def current_user_id(x_user_id: Optional[str] = Header(None)) -> Optional[str]:
    """Caller identity, forwarded by the gateway once it has verified the JWT."""
    return x_user_id or None
