"""Deterministic ordering of compiled documents."""

from __future__ import annotations

from typing import Protocol, Sequence, TypeVar


class Orderable(Protocol):
    @property
    def order(self) -> float | None: ...

    @property
    def path(self) -> str: ...


T = TypeVar("T", bound=Orderable)


def _order_key(item: Orderable) -> tuple[int, float | str]:
    if item.order is not None:
        return (0, item.order)
    return (1, item.path)


def sort_by_order(items: Sequence[T]) -> list[T]:
    """Sort ordered items ascending by order, then unordered items by path.

    The sort is stable: items sharing an order value, or an unordered path,
    keep their discovery order.
    """

    return sorted(items, key=_order_key)
