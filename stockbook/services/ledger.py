"""Batch ledger: landed-cost math and the only writers of ``remaining_qty``."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Sequence

from ..core.money import to_decimal
from .errors import InvariantViolation
from .uow import BatchStore

logger = logging.getLogger(__name__)


def landed_unit_cost(batch: Any) -> Decimal:
    """Cost of one unit of ``batch`` in the target currency.

    Freight (source currency) and customs (target currency) are prorated over
    the batch's original ``quantity``, never over what is left, so the cost of
    a unit does not drift as the batch depletes.
    """

    unit_price = to_decimal(batch.unit_price)
    exchange_rate = to_decimal(batch.exchange_rate)
    freight = to_decimal(batch.freight or 0)
    customs = to_decimal(batch.customs or 0)
    quantity = Decimal(batch.quantity)
    return (unit_price * exchange_rate) + (freight * exchange_rate / quantity) + (customs / quantity)


class BatchLedger:
    def __init__(self, store: BatchStore) -> None:
        self.store = store

    def list_available_batches(self, product_id: int) -> Sequence[Any]:
        return self.store.list_available(product_id)

    def consume(self, batch_id: int, units: int) -> None:
        if units <= 0:
            raise InvariantViolation(batch_id, -units, f"consume requires a positive unit count, got {units}")
        self.store.adjust_remaining(batch_id, -units)

    def restore(self, batch_id: int, units: int) -> None:
        if units <= 0:
            raise InvariantViolation(batch_id, units, f"restore requires a positive unit count, got {units}")
        self.store.adjust_remaining(batch_id, units)
        logger.debug(
            "batch.restored",
            extra={"extra_data": {"batch_id": batch_id, "units": units}},
        )

    landed_unit_cost = staticmethod(landed_unit_cost)
