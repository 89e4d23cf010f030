from decimal import Decimal
from typing import Dict, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from cart_service.api.deps import current_user_id, get_cart_service
from cart_service.exceptions import CartExpired, CartNotFound
from cart_service.schemas.cart_schema import Cart, CartSummary
from cart_service.services.cart_service import CartService

router = APIRouter(prefix="/api", tags=["cart"])


class _In(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateCartIn(_In):
    metadata: Dict[str, str] = Field(default_factory=dict)


class AddItemIn(_In):
    product_id: str = Field(..., min_length=1)
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: Decimal = Field(..., gt=0)
    # range checked by the service so it reports InvalidQuantity
    quantity: int
    weight: Optional[str] = None
    image: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)


class UpdateItemIn(_In):
    quantity: int


class ApplyCouponIn(_In):
    code: str


class MergeIn(_In):
    guest_cart_id: str = Field(..., min_length=1)


def _authorize(cart: Cart, user_id: Optional[str]):
    # guest carts are reachable by anyone holding the id
    if user_id and cart.user_id and cart.user_id != user_id:
        raise HTTPException(status_code=403, detail="Not authorized to access this cart")


def _owned(svc: CartService, cart_id: str, user_id: Optional[str]) -> Cart:
    cart = svc.get(cart_id)
    _authorize(cart, user_id)
    return cart


@router.post("/carts", status_code=201, response_model=Cart, summary="Create cart")
def create_cart(
    payload: Optional[CreateCartIn] = None,
    user_id: Optional[str] = Depends(current_user_id),
    svc: CartService = Depends(get_cart_service),
):
    metadata = payload.metadata if payload else {}
    return svc.create(user_id=user_id, metadata=metadata)


@router.get("/carts/{cart_id}", response_model=Cart, summary="Get cart")
def get_cart(
    cart_id: str,
    user_id: Optional[str] = Depends(current_user_id),
    svc: CartService = Depends(get_cart_service),
):
    return _owned(svc, cart_id, user_id)


@router.get("/carts/{cart_id}/summary", response_model=CartSummary, summary="Cart summary")
def get_cart_summary(
    cart_id: str,
    user_id: Optional[str] = Depends(current_user_id),
    svc: CartService = Depends(get_cart_service),
):
    return CartSummary.from_cart(_owned(svc, cart_id, user_id))


@router.get("/user/cart", response_model=Cart, summary="Active cart of the caller")
def get_user_cart(
    user_id: Optional[str] = Depends(current_user_id),
    svc: CartService = Depends(get_cart_service),
):
    if not user_id:
        raise HTTPException(status_code=401, detail="User authentication required")
    try:
        return svc.get_by_owner(user_id)
    except (CartNotFound, CartExpired):
        # a missing or lapsed cart is replaced by a fresh one
        return svc.create(user_id=user_id)


@router.post("/carts/{cart_id}/items", response_model=Cart, summary="Add item")
def add_item(
    cart_id: str,
    payload: AddItemIn,
    user_id: Optional[str] = Depends(current_user_id),
    svc: CartService = Depends(get_cart_service),
):
    _owned(svc, cart_id, user_id)
    return svc.add_item(
        cart_id,
        product_id=payload.product_id,
        title=payload.title,
        price=payload.price,
        quantity=payload.quantity,
        description=payload.description,
        weight=payload.weight,
        image=payload.image,
        metadata=payload.metadata,
    )


@router.put("/carts/{cart_id}/items/{item_id}", response_model=Cart, summary="Update item quantity")
def update_item(
    cart_id: str,
    item_id: str,
    payload: UpdateItemIn,
    user_id: Optional[str] = Depends(current_user_id),
    svc: CartService = Depends(get_cart_service),
):
    _owned(svc, cart_id, user_id)
    return svc.update_item(cart_id, item_id, payload.quantity)


@router.delete("/carts/{cart_id}/items/{item_id}", response_model=Cart, summary="Remove item")
def remove_item(
    cart_id: str,
    item_id: str,
    user_id: Optional[str] = Depends(current_user_id),
    svc: CartService = Depends(get_cart_service),
):
    _owned(svc, cart_id, user_id)
    return svc.remove_item(cart_id, item_id)


@router.delete("/carts/{cart_id}/items", response_model=Cart, summary="Clear cart")
def clear_cart(
    cart_id: str,
    user_id: Optional[str] = Depends(current_user_id),
    svc: CartService = Depends(get_cart_service),
):
    _owned(svc, cart_id, user_id)
    return svc.clear(cart_id)


@router.post("/carts/{cart_id}/coupon", response_model=Cart, summary="Apply coupon")
def apply_coupon(
    cart_id: str,
    payload: ApplyCouponIn,
    user_id: Optional[str] = Depends(current_user_id),
    svc: CartService = Depends(get_cart_service),
):
    _owned(svc, cart_id, user_id)
    return svc.apply_coupon(cart_id, payload.code)


@router.delete("/carts/{cart_id}/coupon", response_model=Cart, summary="Remove coupon")
def remove_coupon(
    cart_id: str,
    user_id: Optional[str] = Depends(current_user_id),
    svc: CartService = Depends(get_cart_service),
):
    _owned(svc, cart_id, user_id)
    return svc.remove_coupon(cart_id)


@router.post("/carts/{cart_id}/checkout", response_model=Cart, summary="Checkout")
def checkout(
    cart_id: str,
    user_id: Optional[str] = Depends(current_user_id),
    svc: CartService = Depends(get_cart_service),
):
    _owned(svc, cart_id, user_id)
    return svc.checkout(cart_id)


@router.post("/carts/{cart_id}/merge", response_model=Cart, summary="Merge a guest cart into the caller's cart")
def merge_guest_cart(
    cart_id: str,
    payload: MergeIn,
    user_id: Optional[str] = Depends(current_user_id),
    svc: CartService = Depends(get_cart_service),
):
    if not user_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    target = svc.get(cart_id)
    if not target.user_id:
        raise HTTPException(status_code=400, detail="Target cart must be a user cart")
    _authorize(target, user_id)
    return svc.merge(cart_id, payload.guest_cart_id)
