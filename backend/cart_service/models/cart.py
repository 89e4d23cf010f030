from sqlalchemy import JSON, Column, DateTime, Index, Integer, String

from cart_service.db import Base


class CartDocument(Base):
    """
    Cart stored as a document.

    Fields the store has to filter, sort or aggregate on are promoted to
    indexed columns; everything else (items, coupon, money, metadata) lives
    in `body`. `total_cents` mirrors body.totalAmount for aggregation.
    """

    __tablename__ = "carts"
    id = Column(String(32), primary_key=True)
    user_id = Column(String(128), nullable=True, index=True)
    status = Column(String(16), nullable=False, default="active", index=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False, index=True)
    total_cents = Column(Integer, nullable=False, default=0)
    body = Column(JSON, nullable=False, default=dict)

    __table_args__ = (
        # sweeper filter: status = active AND updated_at < cutoff
        Index("ix_carts_status_updated_at", "status", "updated_at"),
    )

    def __repr__(self):
        return f"<CartDocument id={self.id} status={self.status} v{self.version}>"
