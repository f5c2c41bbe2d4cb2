"""Free-text search over the active view's primary identifiers."""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Sequence

A = TypeVar("A")


def search_aggregates(items: Sequence[A], term: str | None) -> Sequence[A]:
    """
    Case-insensitive substring match against each item's `id`.

    Nested rankings and SKU maps are not searched. An empty term returns
    `items` unchanged.
    """
    if not term:
        return items
    needle = term.lower()
    return [item for item in items if needle in item.id.lower()]  # type: ignore[attr-defined]
