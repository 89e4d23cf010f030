from datetime import datetime, timezone
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import case, delete, func, select, update
from sqlalchemy.orm import Session

from cart_service.exceptions import InternalError
from cart_service.models.cart import CartDocument
from cart_service.schemas.cart_schema import Cart, CartStatus
from cart_service.utils.transactions import store_read, store_write

# fields kept in indexed columns rather than in the JSON body
_PROMOTED = {"id", "user_id", "status", "version", "created_at", "updated_at", "expires_at"}


def _utc(dt: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything is written as UTC
    if dt is not None and dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def _cents(amount) -> int:
    return int((amount * 100).to_integral_value())


def to_document(cart: Cart) -> dict:
    return {
        "user_id": cart.user_id,
        "status": cart.status.value,
        "created_at": cart.created_at,
        "updated_at": cart.updated_at,
        "expires_at": cart.expires_at,
        "total_cents": _cents(cart.total_amount),
        "body": cart.model_dump(mode="json", by_alias=True, exclude=_PROMOTED),
    }


def from_document(row: CartDocument) -> Cart:
    data = dict(row.body or {})
    data.update(
        id=row.id,
        userId=row.user_id,
        status=row.status,
        version=row.version,
        createdAt=_utc(row.created_at),
        updatedAt=_utc(row.updated_at),
        expiresAt=_utc(row.expires_at),
    )
    try:
        return Cart.model_validate(data)
    except ValidationError as e:
        raise InternalError(f"Stored cart {row.id} is not a valid cart document: {e}") from e


class CartRepository:
    """
    Document-store facade over the `carts` table.

    Every method is one store round trip. Writes commit immediately; the
    only multi-document write is the abandonment bulk update.
    """

    def __init__(self, db: Session):
        self.db = db

    def _fresh(self, cart_id: str) -> Optional[CartDocument]:
        stmt = (
            select(CartDocument)
            .where(CartDocument.id == cart_id)
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def insert_one(self, cart: Cart) -> str:
        with store_write(self.db):
            doc = CartDocument(id=cart.id, version=cart.version, **to_document(cart))
            self.db.add(doc)
        return cart.id

    def find_one(self, cart_id: str) -> Optional[Cart]:
        with store_read(self.db):
            row = self._fresh(cart_id)
            return from_document(row) if row else None

    def find_active_by_owner(self, user_id: str) -> Optional[Cart]:
        with store_read(self.db):
            stmt = (
                select(CartDocument)
                .where(
                    CartDocument.user_id == user_id,
                    CartDocument.status == CartStatus.ACTIVE.value,
                )
                .order_by(CartDocument.updated_at.desc())
                .limit(1)
                .execution_options(populate_existing=True)
            )
            row = self.db.execute(stmt).scalar_one_or_none()
            return from_document(row) if row else None

    def find_one_and_update(self, cart: Cart, expected_version: int) -> Optional[Cart]:
        """
        Replace the stored document if its version is still `expected_version`.

        Returns the post-image, or None when another writer got there first.
        """
        with store_write(self.db):
            res = self.db.execute(
                update(CartDocument)
                .where(
                    CartDocument.id == cart.id,
                    CartDocument.version == expected_version,
                )
                .values(version=expected_version + 1, **to_document(cart))
                .execution_options(synchronize_session=False)
            )
            if res.rowcount == 0:
                return None
            updated = from_document(self._fresh(cart.id))
        return updated

    def set_fields(
        self,
        cart_id: str,
        status: CartStatus,
        metadata: dict,
        expected_version: Optional[int] = None,
    ) -> bool:
        """
        Patch status and merge `metadata` into one document.

        With `expected_version` the patch only lands if the stored version
        still matches; without it, it applies to whatever version is stored.
        Returns False when the document is gone or the version moved on.
        """
        with store_write(self.db):
            row = self._fresh(cart_id)
            if row is None:
                return False
            version = row.version if expected_version is None else expected_version
            body = dict(row.body or {})
            body["metadata"] = {**body.get("metadata", {}), **metadata}
            res = self.db.execute(
                update(CartDocument)
                .where(CartDocument.id == cart_id, CartDocument.version == version)
                .values(status=status.value, version=version + 1, body=body)
                .execution_options(synchronize_session=False)
            )
        return res.rowcount == 1

    def update_many_abandon(self, cutoff: datetime) -> int:
        """Mark active carts last touched before `cutoff` abandoned. Timestamps are left alone."""
        with store_write(self.db):
            res = self.db.execute(
                update(CartDocument)
                .where(
                    CartDocument.status == CartStatus.ACTIVE.value,
                    CartDocument.updated_at < cutoff,
                )
                .values(
                    status=CartStatus.ABANDONED.value,
                    version=CartDocument.version + 1,
                )
                .execution_options(synchronize_session=False)
            )
        return res.rowcount or 0

    def delete_expired(self, now: datetime) -> int:
        with store_write(self.db):
            res = self.db.execute(
                delete(CartDocument)
                .where(CartDocument.expires_at < now)
                .execution_options(synchronize_session=False)
            )
        return res.rowcount or 0

    def aggregate_statistics(self, since: datetime) -> dict:
        def count_status(status: CartStatus):
            return func.coalesce(
                func.sum(case((CartDocument.status == status.value, 1), else_=0)), 0
            )

        stmt = select(
            func.count(CartDocument.id).label("total_carts"),
            count_status(CartStatus.ACTIVE).label("active_carts"),
            count_status(CartStatus.ABANDONED).label("abandoned_carts"),
            count_status(CartStatus.PROCESSING).label("processing_carts"),
            count_status(CartStatus.COMPLETED).label("completed_carts"),
            func.coalesce(func.sum(CartDocument.total_cents), 0).label("total_cents"),
        ).where(CartDocument.created_at >= since)
        with store_read(self.db):
            row = self.db.execute(stmt).one()
        return {k: int(v or 0) for k, v in row._mapping.items()}

    def ping(self) -> bool:
        with store_read(self.db):
            self.db.execute(select(1))
        return True
