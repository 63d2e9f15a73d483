import os
import sys
from decimal import Decimal
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from stockbook.db.session import Base
from stockbook.crud.batches import batch_has_allocations, create_batch, delete_batch, get_batch, list_batches, update_batch
from stockbook.crud.products import create_product, deactivate_product, get_product, list_products, update_product
from stockbook.db.uow import SqlAlchemyUnitOfWork
from stockbook.services.errors import BatchLocked, DuplicateSku, NotFound, ValidationError
from stockbook.services.sales import SaleLedger

# Ensure models are registered so metadata tables are created
from stockbook.models import batch as batch_model  # noqa: F401
from stockbook.models import product as product_model  # noqa: F401
from stockbook.models import sale as sale_model  # noqa: F401


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


def _batch_payload(product, **overrides):
    payload = {
        "product_id": product.id,
        "purchase_date": "2024-01-01",
        "quantity": 5,
        "unit_price": "10",
        "exchange_rate": "38.5",
        "freight": "2",
        "customs": "100",
    }
    payload.update(overrides)
    return payload


def test_create_product_trims_and_defaults(db_session):
    product = create_product(db_session, {"sku": " BAG-001 ", "name": "Canvas tote ", "category": "  "})

    assert product.sku == "BAG-001"
    assert product.name == "Canvas tote"
    assert product.category is None
    assert product.unit == "piece"
    assert product.is_active is True


def test_duplicate_sku_is_rejected(db_session):
    create_product(db_session, {"sku": "BAG-001", "name": "Canvas tote"})

    with pytest.raises(DuplicateSku):
        create_product(db_session, {"sku": "BAG-001", "name": "Another"})


def test_update_keeps_the_original_sku(db_session):
    product = create_product(db_session, {"sku": "BAG-001", "name": "Canvas tote"})

    with pytest.raises(ValidationError) as excinfo:
        update_product(db_session, product, {"sku": "BAG-999", "name": "Renamed tote"})
    assert excinfo.value.field == "sku"
    db_session.rollback()
    db_session.refresh(product)
    assert product.sku == "BAG-001"
    assert product.name == "Canvas tote"

    updated = update_product(db_session, product, {"sku": "BAG-001", "name": "Renamed tote", "unit": "pair"})
    assert updated.sku == "BAG-001"
    assert updated.name == "Renamed tote"
    assert updated.unit == "pair"

    updated = update_product(db_session, product, {"name": "Canvas tote"})
    assert updated.sku == "BAG-001"


def test_product_requires_sku_and_name(db_session):
    with pytest.raises(ValidationError) as excinfo:
        create_product(db_session, {"sku": "BAG-001", "name": ""})
    assert excinfo.value.field == "name"


def test_deactivated_product_is_hidden_but_kept(db_session):
    product = create_product(db_session, {"sku": "BAG-001", "name": "Canvas tote"})

    deactivate_product(db_session, product)

    assert get_product(db_session, product.id) is None
    assert get_product(db_session, product.id, include_inactive=True) is not None
    assert list_products(db_session) == []


def test_list_products_summarises_stock_on_hand(db_session):
    product = create_product(db_session, {"sku": "BAG-001", "name": "Canvas tote"})
    create_product(db_session, {"sku": "HAT-001", "name": "Bucket hat"})
    create_batch(db_session, _batch_payload(product, quantity=5))
    create_batch(db_session, _batch_payload(product, quantity=3, purchase_date="2024-02-01"))

    rows = {row["product"].sku: row for row in list_products(db_session)}

    assert rows["BAG-001"]["stock_on_hand"] == 8
    assert rows["BAG-001"]["batch_count"] == 2
    assert rows["HAT-001"]["stock_on_hand"] == 0
    assert rows["HAT-001"]["batch_count"] == 0


def test_new_batch_starts_full_and_stores_exact_amounts(db_session):
    product = create_product(db_session, {"sku": "BAG-001", "name": "Canvas tote"})

    batch = create_batch(db_session, _batch_payload(product))

    assert batch.remaining_qty == batch.quantity == 5
    assert batch.exchange_rate == Decimal("38.5")
    assert batch.freight == Decimal("2")
    assert batch.consumed_qty == 0
    assert batch.sku == "BAG-001"


def test_optional_costs_default_to_zero(db_session):
    product = create_product(db_session, {"sku": "BAG-001", "name": "Canvas tote"})

    batch = create_batch(db_session, _batch_payload(product, freight=None, customs=""))

    assert batch.freight == Decimal("0")
    assert batch.customs == Decimal("0")


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"quantity": 0}, "quantity"),
        ({"quantity": "5"}, "quantity"),
        ({"unit_price": None}, "unit_price"),
        ({"exchange_rate": "0"}, "exchange_rate"),
        ({"freight": "-1"}, "freight"),
        ({"purchase_date": "yesterday"}, "purchase_date"),
    ],
)
def test_invalid_batch_input_is_rejected(db_session, overrides, field):
    product = create_product(db_session, {"sku": "BAG-001", "name": "Canvas tote"})

    with pytest.raises(ValidationError) as excinfo:
        create_batch(db_session, _batch_payload(product, **overrides))

    assert excinfo.value.field == field
    assert list_batches(db_session) == []


def test_batch_for_unknown_product_is_not_found(db_session):
    with pytest.raises(NotFound):
        create_batch(db_session, {"product_id": 99, "purchase_date": "2024-01-01", "quantity": 1, "unit_price": "1", "exchange_rate": "1"})


def test_unreferenced_batch_can_be_edited_and_deleted(db_session):
    product = create_product(db_session, {"sku": "BAG-001", "name": "Canvas tote"})
    batch = create_batch(db_session, _batch_payload(product))

    updated = update_batch(db_session, batch, _batch_payload(product, quantity=8, unit_price="12"))
    assert updated.quantity == 8
    assert updated.remaining_qty == 8
    assert updated.unit_price == Decimal("12")

    batch_id = batch.id
    delete_batch(db_session, batch)
    assert get_batch(db_session, batch_id) is None


def test_batch_is_locked_once_a_sale_draws_from_it(db_session):
    product = create_product(db_session, {"sku": "BAG-001", "name": "Canvas tote"})
    batch = create_batch(db_session, _batch_payload(product))
    SaleLedger(SqlAlchemyUnitOfWork(db_session)).create_sale(
        {"product_id": product.id, "sale_date": "2024-01-10", "quantity_sold": 1, "sale_price": "500"}
    )

    assert batch_has_allocations(db_session, batch.id)
    with pytest.raises(BatchLocked) as excinfo:
        update_batch(db_session, batch, _batch_payload(product, unit_price="1"))
    assert excinfo.value.details == {"batch_id": batch.id}
    with pytest.raises(BatchLocked):
        delete_batch(db_session, batch)

    db_session.refresh(batch)
    assert batch.unit_price == Decimal("10")
    assert batch.remaining_qty == 4


def test_list_batches_is_newest_first(db_session):
    product = create_product(db_session, {"sku": "BAG-001", "name": "Canvas tote"})
    old = create_batch(db_session, _batch_payload(product, purchase_date="2023-06-01"))
    new = create_batch(db_session, _batch_payload(product, purchase_date="2024-06-01"))

    assert [batch.id for batch in list_batches(db_session, product.id)] == [new.id, old.id]
