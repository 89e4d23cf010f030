from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, Optional

from sqlalchemy.orm import Session

from cart_service.config import CartPolicy
from cart_service.exceptions import (
    CartEmpty,
    CartExpired,
    CartNotActive,
    CartNotFound,
    CartServiceException,
    ConcurrentModification,
    InvalidMerge,
    InvalidPrice,
    InvalidQuantity,
    ItemNotFound,
)
from cart_service.repositories.cart_repo import CartRepository
from cart_service.schemas.cart_schema import ZERO, Cart, CartItem, CartStatus, CartSummary
from cart_service.services.coupons import FixedPercentageCouponResolver
from cart_service.services.pricing import Pricing, apply_pricing
from cart_service.utils.logging import get_logger

log = get_logger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CartService:
    """
    Owns the cart documents: queries (get, get_by_owner, summary) only read,
    commands load the cart, change a copy, reprice it and write it back
    conditionally on the version they read. A lost race re-reads and tries
    again, up to policy.max_write_retries times.
    """

    def __init__(
        self,
        db: Session,
        product_client,
        coupon_resolver=None,
        policy: Optional[CartPolicy] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repo = CartRepository(db)
        self.products = product_client
        self.coupons = coupon_resolver or FixedPercentageCouponResolver()
        self.policy = policy or CartPolicy()
        self.clock = clock

    def _now(self) -> datetime:
        return self.clock()

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------
    def get(self, cart_id: str) -> Cart:
        cart = self.repo.find_one(cart_id)
        if cart is None:
            raise CartNotFound()
        # the purge job removes expired documents eventually; until then they are gone logically
        if cart.is_expired(self._now()):
            raise CartExpired()
        return cart

    def get_by_owner(self, user_id: str) -> Cart:
        cart = self.repo.find_active_by_owner(user_id)
        if cart is None:
            raise CartNotFound(f"No active cart for user {user_id}")
        if cart.is_expired(self._now()):
            raise CartExpired()
        return cart

    def summary(self, cart_id: str) -> CartSummary:
        return CartSummary.from_cart(self.get(cart_id))

    # ------------------------------------------------------------------
    # commands
    # ------------------------------------------------------------------
    def create(self, user_id: Optional[str] = None, metadata: Optional[Dict[str, str]] = None) -> Cart:
        now = self._now()
        cart = Cart(
            user_id=user_id,
            metadata=dict(metadata or {}),
            created_at=now,
            updated_at=now,
            expires_at=now + self.policy.ttl,
            version=1,
        )
        self.repo.insert_one(cart)
        log.info(f"Created cart {cart.id} for {'user ' + user_id if user_id else 'guest'}")
        return cart.model_copy(deep=True)

    def _mutate(
        self,
        cart_id: str,
        change: Callable[[Cart], None],
        operation: str,
        reprice: bool = True,
        renew_expiry: bool = True,
    ) -> Cart:
        for attempt in range(1, self.policy.max_write_retries + 1):
            current = self.get(cart_id)
            if current.status != CartStatus.ACTIVE:
                raise CartNotActive(f"Cart {cart_id} is {current.status.value}")

            draft = current.model_copy(deep=True)
            change(draft)
            if reprice:
                draft = apply_pricing(draft, self.policy.tax_rate, self.policy.shipping_cost)
            now = self._now()
            draft.updated_at = now
            if renew_expiry:
                draft.expires_at = now + self.policy.ttl

            saved = self.repo.find_one_and_update(draft, expected_version=current.version)
            if saved is not None:
                log.info(f"{operation} on cart {cart_id} -> version {saved.version}")
                return saved
            log.warning(
                f"{operation} on cart {cart_id} lost a write race "
                f"(attempt {attempt}/{self.policy.max_write_retries})"
            )
        raise ConcurrentModification()

    def add_item(
        self,
        cart_id: str,
        product_id: str,
        title: str,
        price,
        quantity: int,
        description: Optional[str] = None,
        weight: Optional[str] = None,
        image: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> Cart:
        if quantity <= 0:
            raise InvalidQuantity()
        price = Decimal(str(price))
        if price <= 0:
            raise InvalidPrice()
        # availability is checked for the quantity asked for, not the line total
        self.products.check_availability(product_id, quantity)

        def change(cart: Cart):
            existing = next((it for it in cart.items if it.product_id == product_id), None)
            if existing:
                existing.quantity += quantity
                return
            cart.items.append(
                CartItem(
                    product_id=product_id,
                    title=title,
                    description=description,
                    price=price,
                    quantity=quantity,
                    weight=weight,
                    image=image,
                    metadata=dict(metadata or {}),
                    added_at=self._now(),
                )
            )

        return self._mutate(cart_id, change, "add_item")

    def update_item(self, cart_id: str, item_id: str, quantity: int) -> Cart:
        if quantity <= 0:
            raise InvalidQuantity()

        def change(cart: Cart):
            item = cart.find_item(item_id)
            if item is None:
                raise ItemNotFound()
            self.products.check_availability(item.product_id, quantity)
            item.quantity = quantity

        return self._mutate(cart_id, change, "update_item")

    def remove_item(self, cart_id: str, item_id: str) -> Cart:
        def change(cart: Cart):
            if cart.find_item(item_id) is None:
                raise ItemNotFound()
            cart.items = [it for it in cart.items if it.id != item_id]

        return self._mutate(cart_id, change, "remove_item")

    def clear(self, cart_id: str) -> Cart:
        def change(cart: Cart):
            cart.items = []
            cart.coupon = None
            for field in Pricing._fields:
                setattr(cart, field, ZERO)

        return self._mutate(cart_id, change, "clear", reprice=False)

    def apply_coupon(self, cart_id: str, code: str) -> Cart:
        def change(cart: Cart):
            if not cart.items:
                raise CartEmpty("Cannot apply coupon to empty cart")
            cart.coupon = self.coupons.resolve(code, self._now())

        return self._mutate(cart_id, change, "apply_coupon")

    def remove_coupon(self, cart_id: str) -> Cart:
        def change(cart: Cart):
            cart.coupon = None

        return self._mutate(cart_id, change, "remove_coupon")

    def checkout(self, cart_id: str) -> Cart:
        """
        Hand the cart over for settlement. The expiry is deliberately left
        where it is; payment, stock and order creation happen elsewhere.
        """

        def change(cart: Cart):
            if not cart.items:
                raise CartEmpty("Cannot checkout empty cart")
            cart.status = CartStatus.PROCESSING

        return self._mutate(cart_id, change, "checkout", reprice=False, renew_expiry=False)

    def merge(self, target_cart_id: str, source_cart_id: str) -> Cart:
        """
        Fold the source (guest) cart into the target cart.

        Lines for a product the target already holds add their quantity;
        the rest are appended as they were. The source must be a guest cart
        or belong to the target's owner. Once the target is written the source
        is retired as completed with metadata.mergedTo, conditionally on the
        version that was merged, so only one merge can retire it. If retiring
        the source fails the merge still stands and the failure is logged.
        """
        if target_cart_id == source_cart_id:
            raise InvalidMerge("A cart cannot be merged into itself")

        # source is re-read per attempt so a retry never folds in a retired cart
        read = {}

        def change(cart: Cart):
            source = self.get(source_cart_id)
            if source.status != CartStatus.ACTIVE:
                raise CartNotActive(f"Cart {source_cart_id} is {source.status.value}")
            if source.user_id and source.user_id != cart.user_id:
                raise InvalidMerge("Only a guest cart or a cart of the same user can be merged")
            read["version"] = source.version

            index = {it.product_id: i for i, it in enumerate(cart.items)}
            for item in source.items:
                if item.product_id in index:
                    cart.items[index[item.product_id]].quantity += item.quantity
                else:
                    index[item.product_id] = len(cart.items)
                    cart.items.append(item.model_copy(deep=True))

        merged = self._mutate(target_cart_id, change, "merge")

        try:
            retired = self.repo.set_fields(
                source_cart_id,
                CartStatus.COMPLETED,
                {"mergedTo": target_cart_id},
                expected_version=read["version"],
            )
            if not retired:
                log.error(
                    f"Merged cart {source_cart_id} into {target_cart_id} "
                    f"but the source cart changed or disappeared before it could be retired"
                )
        except CartServiceException as e:
            log.error(
                f"Merged cart {source_cart_id} into {target_cart_id} "
                f"but failed to mark the source completed: {e}"
            )
        return merged
