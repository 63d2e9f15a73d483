"""First-in-first-out stock allocation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from .errors import InsufficientStock
from .ledger import BatchLedger, landed_unit_cost

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Allocation:
    batch_id: int
    units_taken: int
    landed_cost_per_unit: Decimal


class FifoAllocator:
    """Consume a product's batches oldest purchase first.

    Allocation is all-or-nothing: availability is checked against every
    candidate batch before the first unit is consumed.
    """

    def __init__(self, ledger: BatchLedger) -> None:
        self.ledger = ledger

    def allocate(self, product_id: int, quantity: int) -> list[Allocation]:
        batches = self.ledger.list_available_batches(product_id)
        available = sum(batch.remaining_qty for batch in batches)
        if available < quantity:
            logger.info(
                "stock.insufficient",
                extra={"extra_data": {"product_id": product_id, "available": available, "requested": quantity}},
            )
            raise InsufficientStock(available=available, requested=quantity)

        allocations: list[Allocation] = []
        remaining = quantity
        for batch in batches:
            if remaining == 0:
                break
            taken = min(remaining, batch.remaining_qty)
            cost = landed_unit_cost(batch)
            self.ledger.consume(batch.id, taken)
            allocations.append(Allocation(batch_id=batch.id, units_taken=taken, landed_cost_per_unit=cost))
            remaining -= taken
        return allocations
