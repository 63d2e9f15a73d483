"""The sale ledger against a plain in-memory unit of work.

The ledger only talks to the store interfaces, so the same guarantees must hold
without a database: FIFO order, all-or-nothing writes and unit conservation.
"""

import copy
import os
import random
import sys
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from stockbook.services.errors import InsufficientStock, InvariantViolation, NotFound
from stockbook.services.sales import SaleLedger


@dataclass
class MemoryProduct:
    id: int
    is_active: bool = True


@dataclass
class MemoryBatch:
    id: int
    product_id: int
    purchase_date: str
    quantity: int
    remaining_qty: int
    unit_price: Decimal = Decimal("10")
    exchange_rate: Decimal = Decimal("40")
    freight: Decimal = Decimal("0")
    customs: Decimal = Decimal("0")


@dataclass
class MemoryAllocation:
    id: int
    sale_id: int
    batch_id: int
    units_taken: int
    landed_cost_per_unit: Decimal


@dataclass
class MemorySale:
    id: int
    product_id: int
    sale_date: str
    quantity_sold: int
    sale_price: Decimal
    delivery_cost: Decimal
    notes: str | None = None
    allocations: list = field(default_factory=list)


class MemoryState:
    def __init__(self):
        self.products = {}
        self.batches = {}
        self.sales = {}
        self.next_id = 1

    def new_id(self):
        value = self.next_id
        self.next_id += 1
        return value


class MemoryProducts:
    def __init__(self, state):
        self.state = state

    def get(self, product_id):
        return self.state.products.get(product_id)


class MemoryBatches:
    def __init__(self, state):
        self.state = state

    def get(self, batch_id):
        return self.state.batches.get(batch_id)

    def list_available(self, product_id):
        candidates = [
            batch
            for batch in self.state.batches.values()
            if batch.product_id == product_id and batch.remaining_qty > 0
        ]
        return sorted(candidates, key=lambda batch: (batch.purchase_date, batch.id))

    def adjust_remaining(self, batch_id, delta):
        batch = self.get(batch_id)
        if batch is None:
            raise NotFound("batch", batch_id)
        new_remaining = batch.remaining_qty + delta
        if not 0 <= new_remaining <= batch.quantity:
            raise InvariantViolation(batch_id, delta, f"remaining_qty would become {new_remaining}")
        batch.remaining_qty = new_remaining


class MemorySales:
    def __init__(self, state):
        self.state = state

    def get(self, sale_id):
        return self.state.sales.get(sale_id)

    def add(self, fields):
        sale = MemorySale(id=self.state.new_id(), **fields)
        self.state.sales[sale.id] = sale
        return sale

    def update(self, sale, fields):
        for key, value in fields.items():
            setattr(sale, key, value)
        return sale

    def delete(self, sale):
        del self.state.sales[sale.id]

    def list_allocations(self, sale):
        return list(sale.allocations)

    def add_allocation(self, sale, allocation):
        row = MemoryAllocation(
            id=self.state.new_id(),
            sale_id=sale.id,
            batch_id=allocation.batch_id,
            units_taken=allocation.units_taken,
            landed_cost_per_unit=allocation.landed_cost_per_unit,
        )
        sale.allocations.append(row)
        return row

    def delete_allocations(self, sale):
        sale.allocations.clear()


class MemoryUnitOfWork:
    """Snapshot on enter, put the snapshot back if the block raises."""

    def __init__(self, state):
        self.state = state
        self.products = MemoryProducts(state)
        self.batches = MemoryBatches(state)
        self.sales = MemorySales(state)
        self.commits = 0
        self.rollbacks = 0

    def __enter__(self):
        self._snapshot = copy.deepcopy(self.state.__dict__)
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.commits += 1
        else:
            self.state.__dict__.clear()
            self.state.__dict__.update(self._snapshot)
            self.rollbacks += 1
        return False


@pytest.fixture()
def state():
    state = MemoryState()
    state.products[1] = MemoryProduct(id=1)
    state.products[2] = MemoryProduct(id=2)
    state.next_id = 10
    return state


def _add_batch(state, product_id, purchase_date, quantity, **extra):
    batch = MemoryBatch(
        id=state.new_id(),
        product_id=product_id,
        purchase_date=purchase_date,
        quantity=quantity,
        remaining_qty=quantity,
        **extra,
    )
    state.batches[batch.id] = batch
    return batch


def _fields(product_id, quantity, price="100"):
    return {"product_id": product_id, "sale_date": "2024-05-01", "quantity_sold": quantity, "sale_price": price}


def _remaining(state):
    return {batch_id: batch.remaining_qty for batch_id, batch in state.batches.items()}


def _assert_conserved(state):
    consumed = sum(batch.quantity - batch.remaining_qty for batch in state.batches.values())
    allocated = sum(row.units_taken for sale in state.sales.values() for row in sale.allocations)
    assert consumed == allocated
    for sale in state.sales.values():
        assert sum(row.units_taken for row in sale.allocations) == sale.quantity_sold
        for row in sale.allocations:
            assert state.batches[row.batch_id].product_id == sale.product_id


def test_fifo_split_across_two_batches(state):
    older = _add_batch(state, 1, "2024-01-01", 10)
    newer = _add_batch(state, 1, "2024-02-01", 10)
    uow = MemoryUnitOfWork(state)

    outcome = SaleLedger(uow).create_sale(_fields(1, 15))

    assert [(row.batch_id, row.units_taken) for row in outcome.allocations] == [(older.id, 10), (newer.id, 5)]
    assert _remaining(state) == {older.id: 0, newer.id: 5}
    assert uow.commits == 1


def test_frozen_cost_comes_from_the_batch_at_allocation_time(state):
    _add_batch(state, 1, "2024-01-01", 5, exchange_rate=Decimal("38.5"), freight=Decimal("2"), customs=Decimal("100"))
    uow = MemoryUnitOfWork(state)

    outcome = SaleLedger(uow).create_sale(_fields(1, 2, price="500"))

    assert outcome.allocations[0].landed_cost_per_unit == Decimal("420.4")
    assert outcome.financials.cogs == Decimal("840.8")
    assert outcome.financials.net_profit == Decimal("159.2")


def test_failed_create_rolls_back(state):
    _add_batch(state, 1, "2024-01-01", 3)
    before = _remaining(state)
    uow = MemoryUnitOfWork(state)

    with pytest.raises(InsufficientStock):
        SaleLedger(uow).create_sale(_fields(1, 4))

    assert _remaining(state) == before
    assert state.sales == {}
    assert uow.rollbacks == 1


def test_failed_amend_keeps_original_sale_and_allocations(state):
    first = _add_batch(state, 1, "2024-01-01", 4)
    second = _add_batch(state, 1, "2024-01-02", 4)
    ledger = SaleLedger(MemoryUnitOfWork(state))
    sale_id = ledger.create_sale(_fields(1, 6)).sale.id

    with pytest.raises(InsufficientStock):
        ledger.amend_sale(sale_id, _fields(1, 9))

    sale = state.sales[sale_id]
    assert sale.quantity_sold == 6
    assert [(row.batch_id, row.units_taken) for row in sale.allocations] == [(first.id, 4), (second.id, 2)]
    assert _remaining(state) == {first.id: 0, second.id: 2}
    _assert_conserved(state)


def test_void_then_resell_gets_same_batches(state):
    first = _add_batch(state, 1, "2024-01-01", 2)
    second = _add_batch(state, 1, "2024-01-02", 2)
    ledger = SaleLedger(MemoryUnitOfWork(state))
    sale_id = ledger.create_sale(_fields(1, 3)).sale.id

    ledger.void_sale(sale_id)
    assert _remaining(state) == {first.id: 2, second.id: 2}

    again = ledger.create_sale(_fields(1, 3))
    assert [(row.batch_id, row.units_taken) for row in again.allocations] == [(first.id, 2), (second.id, 1)]


def test_inactive_product_cannot_be_sold(state):
    _add_batch(state, 1, "2024-01-01", 2)
    state.products[1].is_active = False

    with pytest.raises(NotFound):
        SaleLedger(MemoryUnitOfWork(state)).create_sale(_fields(1, 1))


def test_conservation_holds_over_a_mixed_sequence(state):
    rng = random.Random(20240501)
    for product_id in (1, 2):
        for day in range(1, 6):
            _add_batch(state, product_id, f"2024-01-{day:02d}", rng.randint(1, 8))
    ledger = SaleLedger(MemoryUnitOfWork(state))

    for _ in range(200):
        action = rng.choice(["create", "create", "amend", "void"])
        try:
            if action == "create" or not state.sales:
                ledger.create_sale(_fields(rng.choice((1, 2)), rng.randint(1, 6)))
            elif action == "amend":
                sale_id = rng.choice(sorted(state.sales))
                ledger.amend_sale(sale_id, _fields(rng.choice((1, 2)), rng.randint(1, 6)))
            else:
                ledger.void_sale(rng.choice(sorted(state.sales)))
        except InsufficientStock:
            pass
        for batch in state.batches.values():
            assert 0 <= batch.remaining_qty <= batch.quantity
        _assert_conserved(state)


def test_amend_keeping_an_inactive_product_is_allowed(state):
    batch = _add_batch(state, 1, "2024-01-01", 4)
    ledger = SaleLedger(MemoryUnitOfWork(state))
    sale_id = ledger.create_sale(_fields(1, 2)).sale.id
    state.products[1].is_active = False

    ledger.amend_sale(sale_id, _fields(1, 3, price="120"))

    assert state.sales[sale_id].quantity_sold == 3
    assert state.sales[sale_id].sale_price == Decimal("120")
    assert _remaining(state) == {batch.id: 1}
