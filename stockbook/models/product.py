"""SQLAlchemy model for catalogue products."""

from __future__ import annotations

from sqlalchemy import Boolean, Column, Integer, Text
from sqlalchemy.orm import relationship

from ..db.session import Base


class Product(Base):
    """A sellable item identified by its SKU.

    Products are never physically removed while batches or sales point at
    them; deleting one flips ``is_active`` instead.
    """

    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(Text, nullable=False, unique=True, index=True)
    name = Column(Text, nullable=False)
    category = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    unit = Column(Text, nullable=False, default="piece")
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(Text, nullable=False)
    updated_at = Column(Text, nullable=False)

    batches = relationship("PurchaseBatch", back_populates="product")
    sales = relationship("Sale", back_populates="product")


__all__ = ["Product"]
