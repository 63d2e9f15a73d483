"""Landed unit cost: the one formula shared by allocation and inventory views."""

import os
import sys
from decimal import Decimal
from pathlib import Path
from types import SimpleNamespace

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from stockbook.core.money import percentage, quantize_currency, to_decimal
from stockbook.services.ledger import BatchLedger, landed_unit_cost


def _batch(**overrides):
    values = {
        "unit_price": Decimal("10"),
        "exchange_rate": Decimal("38.5"),
        "freight": Decimal("2"),
        "customs": Decimal("100"),
        "quantity": 5,
        "remaining_qty": 5,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def test_landed_cost_matches_worked_example():
    # 10*38.5 + 2*38.5/5 + 100/5 = 385 + 15.4 + 20
    assert landed_unit_cost(_batch()) == Decimal("420.4")


def test_landed_cost_prorates_over_original_quantity_not_remaining():
    full = _batch()
    depleted = _batch(remaining_qty=1)
    assert landed_unit_cost(depleted) == landed_unit_cost(full)


def test_landed_cost_without_freight_or_customs_is_converted_price():
    batch = _batch(freight=Decimal("0"), customs=Decimal("0"), exchange_rate=Decimal("40"))
    assert landed_unit_cost(batch) == Decimal("400")


def test_landed_cost_accepts_missing_optional_inputs():
    batch = _batch(freight=None, customs=None)
    assert landed_unit_cost(batch) == Decimal("385.0")


def test_landed_cost_uses_decimal_not_float_for_float_inputs():
    batch = _batch(unit_price=0.1, exchange_rate=3, freight=0, customs=0, quantity=1)
    assert landed_unit_cost(batch) == Decimal("0.3")


def test_batch_ledger_exposes_the_same_formula():
    assert BatchLedger.landed_unit_cost(_batch()) == landed_unit_cost(_batch())


def test_money_helpers():
    assert to_decimal("1,234.50") == Decimal("1234.50")
    assert to_decimal(38.5) == Decimal("38.5")
    assert quantize_currency(Decimal("2.345")) == Decimal("2.35")
    assert percentage(Decimal("25"), Decimal("200")) == Decimal("12.50")
    assert percentage(Decimal("25"), Decimal("0")) == Decimal("0.00")
