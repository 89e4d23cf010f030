from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, NamedTuple, Optional

from cart_service.schemas.cart_schema import ZERO, Cart, CartItem, Coupon, DiscountType

CENT = Decimal("0.01")
HUNDRED = Decimal("100")


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


class Pricing(NamedTuple):
    subtotal: Decimal
    discount_amount: Decimal
    tax_amount: Decimal
    shipping_cost: Decimal
    total_amount: Decimal


def recompute(
    items: Iterable[CartItem],
    coupon: Optional[Coupon],
    tax_rate: Decimal,
    shipping_cost: Decimal,
) -> Pricing:
    """
    Price a list of cart lines.

    Steps run in a fixed order: raw subtotal, coupon, clamp at zero, tax on
    the discounted amount, shipping, total. Shipping is charged whatever the
    lines are; only create and clear leave a cart with zero money.
    """
    items = list(items)
    subtotal = to_money(sum((it.price * it.quantity for it in items), ZERO))

    discounted = subtotal
    if coupon is not None:
        if coupon.discount_type == DiscountType.PERCENTAGE:
            discounted = subtotal - to_money(subtotal * coupon.discount_value / HUNDRED)
        elif coupon.discount_type == DiscountType.FIXED:
            discounted = subtotal - to_money(coupon.discount_value)
    discounted = max(discounted, ZERO)

    tax = to_money(discounted * Decimal(str(tax_rate)))
    shipping = to_money(shipping_cost)
    total = to_money(discounted + tax + shipping)

    return Pricing(
        subtotal=subtotal,
        discount_amount=to_money(subtotal - discounted),
        tax_amount=tax,
        shipping_cost=shipping,
        total_amount=total,
    )


def apply_pricing(cart: Cart, tax_rate: Decimal, shipping_cost: Decimal) -> Cart:
    p = recompute(cart.items, cart.coupon, tax_rate, shipping_cost)
    return cart.model_copy(update=p._asdict())
