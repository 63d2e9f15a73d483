"""Custom column types."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import Text
from sqlalchemy.types import TypeDecorator

from ..core.money import to_decimal


class DecimalText(TypeDecorator):
    """Store ``Decimal`` values as their exact text form.

    SQLite has no decimal type and would silently round-trip through a float,
    so money, rates and frozen allocation costs are kept as text instead.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return str(to_decimal(value))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return Decimal(value)

    @property
    def python_type(self):
        return Decimal
