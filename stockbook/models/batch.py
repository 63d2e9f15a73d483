"""SQLAlchemy model for purchase batches."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base
from ..db.types import DecimalText


class PurchaseBatch(Base):
    """One purchase of one product.

    ``unit_price`` and ``freight`` are in the source currency, ``customs`` is
    already in the target currency. ``remaining_qty`` only moves through the
    batch ledger's consume/restore operations once the batch exists.
    """

    __tablename__ = "purchase_batches"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_purchase_batches_quantity_positive"),
        CheckConstraint(
            "remaining_qty >= 0 AND remaining_qty <= quantity",
            name="ck_purchase_batches_remaining_bounds",
        ),
        Index("ix_purchase_batches_fifo", "product_id", "purchase_date", "id"),
    )

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    purchase_date = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False)
    remaining_qty = Column(Integer, nullable=False)
    unit_price = Column(DecimalText, nullable=False)
    exchange_rate = Column(DecimalText, nullable=False)
    freight = Column(DecimalText, nullable=False, default=0)
    customs = Column(DecimalText, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    product = relationship("Product", back_populates="batches", lazy="joined")
    allocations = relationship("SaleBatchAllocation", back_populates="batch")

    @property
    def product_name(self) -> str | None:
        return self.product.name if self.product else None

    @property
    def sku(self) -> str | None:
        return self.product.sku if self.product else None

    @property
    def consumed_qty(self) -> int:
        return self.quantity - self.remaining_qty


__all__ = ["PurchaseBatch"]
