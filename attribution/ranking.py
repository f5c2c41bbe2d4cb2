"""
Ranking/Projection Stage - sorted views and top-N sub-rankings.

All sorts are stable: ties keep the order in which keys were first seen.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Any, TypeVar

from attribution.config import TOP_N

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping

    from attribution.aggregation import CreatorAggregate, ProductAggregate

A = TypeVar("A")


@dataclass(frozen=True)
class RankedEntry:
    """One line of a top-N ranking."""

    id: str
    quantity: int


def sort_by_total(items: Iterable[A]) -> list[A]:
    """Sort aggregates by `total_quantity`, largest first."""
    return sorted(items, key=lambda item: -item.total_quantity)  # type: ignore[attr-defined]


def rank_quantities(quantities: Mapping[str, Any], limit: int | None = TOP_N) -> tuple[RankedEntry, ...]:
    """
    Turn an id -> quantity map into a descending ranking.

    Values may be plain ints or objects with a `quantity` attribute.

    Args:
        quantities: Insertion-ordered mapping of id to quantity.
        limit: Maximum number of entries to keep; None keeps all.
    """
    entries = [
        RankedEntry(id=key, quantity=getattr(value, "quantity", value))
        for key, value in quantities.items()
    ]
    entries.sort(key=lambda entry: -entry.quantity)
    if limit is not None:
        entries = entries[:limit]
    return tuple(entries)


def project_creator(creator: CreatorAggregate, limit: int = TOP_N) -> CreatorAggregate:
    return replace(
        creator,
        top_skus=rank_quantities(creator.sku_quantities, limit),
        top_contents=rank_quantities(creator.content_quantities, limit),
    )


def project_product(product: ProductAggregate, limit: int = TOP_N) -> ProductAggregate:
    # Variants stay complete; only the content ranking is truncated
    return replace(product, top_contents=rank_quantities(product.content_quantities, limit))


def project_creators(creators: Iterable[CreatorAggregate], limit: int = TOP_N) -> tuple[CreatorAggregate, ...]:
    return tuple(sort_by_total(project_creator(creator, limit) for creator in creators))


def project_products(products: Iterable[ProductAggregate], limit: int = TOP_N) -> tuple[ProductAggregate, ...]:
    return tuple(sort_by_total(project_product(product, limit) for product in products))
