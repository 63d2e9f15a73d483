"""Sale ledger: create, amend and void sales against FIFO-allocated stock.

Every operation runs inside the injected unit of work, so a failure at any
step (including ``InsufficientStock`` halfway through an amend) leaves the
batches, the sale and its allocations exactly as they were.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Any, Mapping

from ..core.money import ZERO, to_decimal
from .errors import NotFound, ValidationError
from .fifo import Allocation, FifoAllocator
from .ledger import BatchLedger
from .reporting import SaleFinancials, sale_financials
from .uow import UnitOfWork

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("product_id", "sale_date", "quantity_sold", "sale_price")


@dataclass
class SaleOutcome:
    sale: Any
    allocations: list[Any] = field(default_factory=list)
    financials: SaleFinancials | None = None


def _positive_int(name: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ValidationError(name, "must be a whole number")
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(name, "must be a whole number") from exc
    if number != value and not isinstance(value, str):
        raise ValidationError(name, "must be a whole number")
    if number <= 0:
        raise ValidationError(name, "must be positive")
    return number


def _amount(name: str, value: Any, *, allow_zero: bool) -> Decimal:
    try:
        amount = to_decimal(value)
    except ValueError as exc:
        raise ValidationError(name, "must be a decimal amount") from exc
    if not amount.is_finite():
        raise ValidationError(name, "must be a decimal amount")
    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(name, "must be positive" if not allow_zero else "must not be negative")
    return amount


def _iso_date(name: str, value: Any) -> str:
    if isinstance(value, date):
        return value.isoformat()
    try:
        return date.fromisoformat(str(value).strip()).isoformat()
    except ValueError as exc:
        raise ValidationError(name, "must be an ISO date (YYYY-MM-DD)") from exc


def validate_sale_fields(fields: Mapping[str, Any]) -> dict[str, Any]:
    """Normalise a sale payload or raise ``ValidationError``."""

    for name in REQUIRED_FIELDS:
        value = fields.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(name, "is required")
    delivery_cost = fields.get("delivery_cost")
    notes = (fields.get("notes") or "").strip() or None
    return {
        "product_id": _positive_int("product_id", fields["product_id"]),
        "sale_date": _iso_date("sale_date", fields["sale_date"]),
        "quantity_sold": _positive_int("quantity_sold", fields["quantity_sold"]),
        "sale_price": _amount("sale_price", fields["sale_price"], allow_zero=False),
        "delivery_cost": ZERO if delivery_cost is None else _amount("delivery_cost", delivery_cost, allow_zero=True),
        "notes": notes,
    }


class SaleLedger:
    def __init__(self, uow: UnitOfWork) -> None:
        self.uow = uow
        self.batches = BatchLedger(uow.batches)
        self.allocator = FifoAllocator(self.batches)

    def _require_product(self, product_id: int, *, active: bool = True) -> None:
        product = self.uow.products.get(product_id)
        if product is None or (active and not getattr(product, "is_active", True)):
            raise NotFound("product", product_id)

    def _require_sale(self, sale_id: int) -> Any:
        sale = self.uow.sales.get(sale_id)
        if sale is None:
            raise NotFound("sale", sale_id)
        return sale

    def _persist(self, sale: Any, allocations: list[Allocation]) -> list[Any]:
        return [self.uow.sales.add_allocation(sale, allocation) for allocation in allocations]

    def _reverse(self, sale: Any) -> list[tuple[int, int]]:
        restored = []
        for row in list(self.uow.sales.list_allocations(sale)):
            self.batches.restore(row.batch_id, row.units_taken)
            restored.append((row.batch_id, row.units_taken))
        return restored

    def create_sale(self, fields: Mapping[str, Any]) -> SaleOutcome:
        data = validate_sale_fields(fields)
        with self.uow:
            self._require_product(data["product_id"])
            allocations = self.allocator.allocate(data["product_id"], data["quantity_sold"])
            sale = self.uow.sales.add(data)
            rows = self._persist(sale, allocations)
        logger.info(
            "sale.created",
            extra={
                "extra_data": {
                    "sale_id": sale.id,
                    "product_id": data["product_id"],
                    "quantity_sold": data["quantity_sold"],
                    "allocations": [(a.batch_id, a.units_taken) for a in allocations],
                }
            },
        )
        return SaleOutcome(sale=sale, allocations=rows, financials=sale_financials(sale, rows))

    def amend_sale(self, sale_id: int, fields: Mapping[str, Any]) -> SaleOutcome:
        data = validate_sale_fields(fields)
        with self.uow:
            sale = self._require_sale(sale_id)
            # A discontinued product keeps its past sales correctable; only
            # moving a sale onto it is refused.
            self._require_product(data["product_id"], active=data["product_id"] != sale.product_id)
            restored = self._reverse(sale)
            self.uow.sales.delete_allocations(sale)
            allocations = self.allocator.allocate(data["product_id"], data["quantity_sold"])
            self.uow.sales.update(sale, data)
            rows = self._persist(sale, allocations)
        logger.info(
            "sale.amended",
            extra={
                "extra_data": {
                    "sale_id": sale_id,
                    "restored": restored,
                    "allocations": [(a.batch_id, a.units_taken) for a in allocations],
                }
            },
        )
        return SaleOutcome(sale=sale, allocations=rows, financials=sale_financials(sale, rows))

    def void_sale(self, sale_id: int) -> None:
        with self.uow:
            sale = self._require_sale(sale_id)
            restored = self._reverse(sale)
            self.uow.sales.delete(sale)
        # The row is gone for good; the log line is what remains of it.
        logger.info(
            "sale.voided",
            extra={"extra_data": {"sale_id": sale_id, "restored": restored}},
        )
