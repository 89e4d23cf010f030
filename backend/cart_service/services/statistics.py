from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable

from sqlalchemy.orm import Session

from cart_service.repositories.cart_repo import CartRepository
from cart_service.schemas.cart_schema import ZERO, CartStatistics
from cart_service.services.cart_service import utcnow
from cart_service.services.pricing import to_money

# accepted values of the statistics `range` query parameter
RANGES = {
    "day": timedelta(days=1),
    "week": timedelta(days=7),
    "month": timedelta(days=30),
}


class CartStatisticsService:
    def __init__(self, db: Session, clock: Callable[[], datetime] = utcnow):
        self.repo = CartRepository(db)
        self.clock = clock

    def collect(self, window: timedelta) -> CartStatistics:
        """Counts and average total of carts created within `window` of now. Read only."""
        row = self.repo.aggregate_statistics(self.clock() - window)
        total = row["total_carts"]
        average = ZERO
        if total > 0:
            average = to_money(Decimal(row["total_cents"]) / 100 / total)
        return CartStatistics(
            total_carts=total,
            active_carts=row["active_carts"],
            abandoned_carts=row["abandoned_carts"],
            processing_carts=row["processing_carts"],
            completed_carts=row["completed_carts"],
            average_cart_value=average,
        )
