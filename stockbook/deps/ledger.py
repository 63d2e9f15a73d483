from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from ..db.session import get_db
from ..db.uow import SqlAlchemyUnitOfWork
from ..services.sales import SaleLedger


def get_sale_ledger(db: Session = Depends(get_db)) -> SaleLedger:
    """Build a sale ledger bound to the request's database session."""

    return SaleLedger(SqlAlchemyUnitOfWork(db))
