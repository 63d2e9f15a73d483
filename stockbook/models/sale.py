"""SQLAlchemy models for sales and the batches that funded them."""

from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base
from ..db.types import DecimalText


class Sale(Base):
    __tablename__ = "sales"
    __table_args__ = (CheckConstraint("quantity_sold > 0", name="ck_sales_quantity_positive"),)

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, ForeignKey("products.id"), nullable=False, index=True)
    sale_date = Column(Text, nullable=False, index=True)
    quantity_sold = Column(Integer, nullable=False)
    sale_price = Column(DecimalText, nullable=False)
    delivery_cost = Column(DecimalText, nullable=False, default=0)
    notes = Column(Text, nullable=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    product = relationship("Product", back_populates="sales", lazy="joined")
    allocations = relationship(
        "SaleBatchAllocation",
        back_populates="sale",
        cascade="all, delete-orphan",
        order_by="SaleBatchAllocation.id",
    )

    @property
    def product_name(self) -> str | None:
        return self.product.name if self.product else None

    @property
    def sku(self) -> str | None:
        return self.product.sku if self.product else None


class SaleBatchAllocation(Base):
    """Audit record of how many units a sale drew from a batch, and at what cost.

    ``landed_cost_per_unit`` is frozen when the allocation is written; reports
    trust it rather than recomputing from the batch.
    """

    __tablename__ = "sale_batch_allocations"
    __table_args__ = (CheckConstraint("units_taken > 0", name="ck_allocations_units_positive"),)

    id = Column(Integer, primary_key=True, index=True)
    sale_id = Column(Integer, ForeignKey("sales.id", ondelete="CASCADE"), nullable=False, index=True)
    batch_id = Column(Integer, ForeignKey("purchase_batches.id"), nullable=False, index=True)
    units_taken = Column(Integer, nullable=False)
    landed_cost_per_unit = Column(DecimalText, nullable=False)

    sale = relationship("Sale", back_populates="allocations")
    batch = relationship("PurchaseBatch", back_populates="allocations")


__all__ = ["Sale", "SaleBatchAllocation"]
