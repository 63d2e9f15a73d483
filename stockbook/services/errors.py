"""Domain errors raised by the ledger.

Each error carries a stable ``code`` and a ``details`` mapping so the web
layer can render it without knowing anything about the ledger internals.
"""

from __future__ import annotations

from typing import Any


class LedgerError(Exception):
    code = "ledger_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def details(self) -> dict[str, Any] | None:
        return None


class ValidationError(LedgerError):
    """Missing or out-of-range input, rejected before any state changes."""

    code = "validation_error"

    def __init__(self, field: str, message: str) -> None:
        super().__init__(f"{field}: {message}")
        self.field = field

    @property
    def details(self) -> dict[str, Any]:
        return {"field": self.field}


class InsufficientStock(LedgerError):
    code = "insufficient_stock"

    def __init__(self, available: int, requested: int) -> None:
        super().__init__(f"Insufficient stock. Available: {available}, Requested: {requested}")
        self.available = available
        self.requested = requested

    @property
    def details(self) -> dict[str, Any]:
        return {"available": self.available, "requested": self.requested}


class NotFound(LedgerError):
    code = "not_found"

    def __init__(self, entity: str, identifier: Any) -> None:
        super().__init__(f"{entity.capitalize()} not found")
        self.entity = entity
        self.identifier = identifier

    @property
    def details(self) -> dict[str, Any]:
        return {"entity": self.entity, "id": self.identifier}


class BatchLocked(LedgerError):
    """A batch that already funded a sale cannot be edited or deleted."""

    code = "batch_locked"

    def __init__(self, batch_id: int, action: str = "modify") -> None:
        super().__init__(f"Cannot {action} a batch that has recorded sales")
        self.batch_id = batch_id

    @property
    def details(self) -> dict[str, Any]:
        return {"batch_id": self.batch_id}


class DuplicateSku(LedgerError):
    code = "duplicate_sku"

    def __init__(self, sku: str) -> None:
        super().__init__("SKU already exists")
        self.sku = sku

    @property
    def details(self) -> dict[str, Any]:
        return {"sku": self.sku}


class InvariantViolation(LedgerError):
    """``remaining_qty`` would leave ``[0, quantity]``. Always a bug, never clamped."""

    code = "invariant_violation"

    def __init__(self, batch_id: int, delta: int, message: str) -> None:
        super().__init__(message)
        self.batch_id = batch_id
        self.delta = delta

    @property
    def details(self) -> dict[str, Any]:
        return {"batch_id": self.batch_id, "delta": self.delta}


__all__ = [
    "BatchLocked",
    "DuplicateSku",
    "InsufficientStock",
    "InvariantViolation",
    "LedgerError",
    "NotFound",
    "ValidationError",
]
