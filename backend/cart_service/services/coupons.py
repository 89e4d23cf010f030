from datetime import datetime
from decimal import Decimal

from cart_service.exceptions import CouponInvalid
from cart_service.schemas.cart_schema import Coupon, DiscountType


class FixedPercentageCouponResolver:
    """
    Stand-in for a coupon catalog: any non-blank code is worth the same
    percentage off. Swap in a resolver with the same `resolve` signature to
    back coupons with real data; pricing does not change.
    """

    def __init__(self, percent_off: Decimal = Decimal("10")):
        self.percent_off = Decimal(str(percent_off))

    def resolve(self, code: str, now: datetime) -> Coupon:
        code = (code or "").strip()
        if not code:
            raise CouponInvalid("Coupon code is required")
        return Coupon(
            code=code,
            discount_type=DiscountType.PERCENTAGE,
            discount_value=self.percent_off,
            applied_at=now,
        )
