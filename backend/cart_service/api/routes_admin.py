from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from cart_service.api.deps import current_user_id, get_clock, get_policy
from cart_service.config import CartPolicy
from cart_service.db import get_db
from cart_service.schemas.cart_schema import CartStatistics
from cart_service.services.abandonment import AbandonmentSweeper
from cart_service.services.statistics import RANGES, CartStatisticsService

router = APIRouter(prefix="/api/admin", tags=["admin"])


def _require_user(user_id: Optional[str]):
    if not user_id:
        raise HTTPException(status_code=401, detail="Authentication required")


@router.get("/carts/statistics", response_model=CartStatistics, summary="Cart statistics")
def cart_statistics(
    range_: str = Query("day", alias="range"),
    user_id: Optional[str] = Depends(current_user_id),
    db: Session = Depends(get_db),
    clock=Depends(get_clock),
):
    _require_user(user_id)
    # unknown ranges fall back to one day
    window = RANGES.get(range_, RANGES["day"])
    return CartStatisticsService(db, clock=clock).collect(window)


@router.post("/carts/sweep", summary="Mark idle carts abandoned now")
def sweep_abandoned(
    user_id: Optional[str] = Depends(current_user_id),
    db: Session = Depends(get_db),
    policy: CartPolicy = Depends(get_policy),
    clock=Depends(get_clock),
):
    _require_user(user_id)
    count = AbandonmentSweeper(db, policy=policy, clock=clock).sweep()
    return {"abandoned": count}
