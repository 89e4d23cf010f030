from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from cart_service.api.deps import get_product_client
from cart_service.db import get_db
from cart_service.exceptions import TransportError
from cart_service.repositories.cart_repo import CartRepository

router = APIRouter()


@router.get("/health", tags=["health"])
def health(db: Session = Depends(get_db), product_client=Depends(get_product_client)):
    try:
        db_ok = CartRepository(db).ping()
    except TransportError:
        db_ok = False
    product_ok = product_client.health_check()

    return {
        "status": "ok" if db_ok and product_ok else "degraded",
        "db": db_ok,
        "product_service": product_ok,
    }
