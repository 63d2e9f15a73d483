"""Store interfaces the ledger depends on.

The ledger never opens a connection of its own. Callers hand it a unit of
work exposing the three stores below; everything done between ``__enter__``
and ``__exit__`` is committed together or rolled back together.
"""

from __future__ import annotations

from typing import Any, Iterable, Mapping, Protocol, Sequence


class ProductStore(Protocol):
    def get(self, product_id: int) -> Any | None: ...


class BatchStore(Protocol):
    def get(self, batch_id: int) -> Any | None: ...

    def list_available(self, product_id: int) -> Sequence[Any]:
        """Batches with stock left, ordered oldest purchase first, then by id."""

    def adjust_remaining(self, batch_id: int, delta: int) -> None:
        """Atomically add ``delta`` to ``remaining_qty``.

        Raises ``InvariantViolation`` when the result would leave
        ``[0, quantity]`` and ``NotFound`` for an unknown batch.
        """


class SaleStore(Protocol):
    def get(self, sale_id: int) -> Any | None: ...

    def add(self, fields: Mapping[str, Any]) -> Any: ...

    def update(self, sale: Any, fields: Mapping[str, Any]) -> Any: ...

    def delete(self, sale: Any) -> None:
        """Remove the sale together with its allocation rows."""

    def list_allocations(self, sale: Any) -> Iterable[Any]: ...

    def add_allocation(self, sale: Any, allocation: Any) -> Any: ...

    def delete_allocations(self, sale: Any) -> None: ...


class UnitOfWork(Protocol):
    products: ProductStore
    batches: BatchStore
    sales: SaleStore

    def __enter__(self) -> "UnitOfWork": ...

    def __exit__(self, exc_type, exc, tb) -> bool | None: ...
