"""SQLAlchemy-backed unit of work for the sale ledger."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..models.batch import PurchaseBatch
from ..models.product import Product
from ..models.sale import Sale, SaleBatchAllocation
from ..services.errors import InvariantViolation, NotFound


def _utcnow() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class SqlProductStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, product_id: int) -> Product | None:
        return self.session.get(Product, product_id)


class SqlBatchStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, batch_id: int) -> PurchaseBatch | None:
        return self.session.get(PurchaseBatch, batch_id)

    def list_available(self, product_id: int) -> Sequence[PurchaseBatch]:
        stmt = (
            select(PurchaseBatch)
            .where(PurchaseBatch.product_id == product_id, PurchaseBatch.remaining_qty > 0)
            .order_by(PurchaseBatch.purchase_date.asc(), PurchaseBatch.id.asc())
            .with_for_update(of=PurchaseBatch)
        )
        return self.session.execute(stmt).scalars().all()

    def adjust_remaining(self, batch_id: int, delta: int) -> None:
        """Add ``delta`` to ``remaining_qty`` in one guarded UPDATE.

        The bound check and the write cannot be split by another writer. A
        writer that loses a race for the last units of a batch therefore fails
        here with ``InvariantViolation`` (HTTP 500) and rolls back, rather than
        with ``InsufficientStock`` (409), which is only raised by the
        allocator's up-front availability check.
        """

        new_remaining = PurchaseBatch.remaining_qty + delta
        stmt = (
            update(PurchaseBatch)
            .where(
                PurchaseBatch.id == batch_id,
                new_remaining >= 0,
                new_remaining <= PurchaseBatch.quantity,
            )
            .values(remaining_qty=new_remaining, updated_at=_utcnow())
            .execution_options(synchronize_session=False)
        )
        result = self.session.execute(stmt)
        if result.rowcount == 1:
            cached = self.session.identity_map.get(self.session.identity_key(PurchaseBatch, batch_id))
            if cached is not None:
                self.session.expire(cached, ["remaining_qty", "updated_at"])
            return
        batch = self.get(batch_id)
        if batch is None:
            raise NotFound("batch", batch_id)
        raise InvariantViolation(
            batch_id,
            delta,
            f"remaining_qty of batch {batch_id} would become {batch.remaining_qty + delta}"
            f" (allowed 0..{batch.quantity})",
        )


class SqlSaleStore:
    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, sale_id: int) -> Sale | None:
        return self.session.get(Sale, sale_id)

    def add(self, fields: Mapping[str, Any]) -> Sale:
        now = _utcnow()
        sale = Sale(**dict(fields), created_at=now, updated_at=now)
        self.session.add(sale)
        self.session.flush()
        return sale

    def update(self, sale: Sale, fields: Mapping[str, Any]) -> Sale:
        for key, value in fields.items():
            setattr(sale, key, value)
        sale.updated_at = _utcnow()
        self.session.flush()
        return sale

    def delete(self, sale: Sale) -> None:
        self.session.delete(sale)
        self.session.flush()

    def list_allocations(self, sale: Sale) -> list[SaleBatchAllocation]:
        return list(sale.allocations)

    def add_allocation(self, sale: Sale, allocation: Any) -> SaleBatchAllocation:
        row = SaleBatchAllocation(
            batch_id=allocation.batch_id,
            units_taken=allocation.units_taken,
            landed_cost_per_unit=allocation.landed_cost_per_unit,
        )
        sale.allocations.append(row)
        self.session.flush()
        return row

    def delete_allocations(self, sale: Sale) -> None:
        sale.allocations.clear()
        self.session.flush()


class SqlAlchemyUnitOfWork:
    """Commit on a clean exit, roll back on any exception."""

    def __init__(self, session: Session) -> None:
        self.session = session
        self.products = SqlProductStore(session)
        self.batches = SqlBatchStore(session)
        self.sales = SqlSaleStore(session)

    def __enter__(self) -> "SqlAlchemyUnitOfWork":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is None:
            self.session.commit()
        else:
            self.session.rollback()
        return False
