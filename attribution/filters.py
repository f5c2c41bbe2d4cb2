"""
SKU filter stage and the toggle helpers that edit the active filter.

The active filter is a frozenset of seller SKU variant ids; an empty set means
no restriction. Filtering is keyed on the variant id alone, so a variant id
shared by two product names restricts both products.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from attribution.config import UNSET_SKU

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from attribution.aggregation import ProductAggregate
    from attribution.record_parser import Row

SELECTION_ALL = "all"
SELECTION_SOME = "some"
SELECTION_NONE = "none"


def sku_of(row: Row, sku_column: str) -> str:
    """SKU variant id of a row, with empty values mapped to the unset bucket."""
    return row.get(sku_column) or UNSET_SKU


def filter_rows(
    rows: Sequence[Row],
    active_skus: frozenset[str] | set[str],
    sku_column: str,
) -> Sequence[Row]:
    """
    Keep rows whose SKU variant id is in `active_skus`.

    Returns `rows` itself when the filter is empty.
    """
    if not active_skus:
        return rows
    return [row for row in rows if sku_of(row, sku_column) in active_skus]


def toggle_sku(active: Iterable[str], variant_id: str) -> frozenset[str]:
    """Add `variant_id` if absent, remove it if present."""
    selected = set(active)
    if variant_id in selected:
        selected.discard(variant_id)
    else:
        selected.add(variant_id)
    return frozenset(selected)


def toggle_product_variants(active: Iterable[str], product: ProductAggregate) -> frozenset[str]:
    """
    Select or deselect every variant of a product at once.

    If all of the product's variants are already selected they are all
    removed; otherwise the missing ones are added.
    """
    selected = set(active)
    variant_ids = list(product.variants)
    if all(variant_id in selected for variant_id in variant_ids):
        selected.difference_update(variant_ids)
    else:
        selected.update(variant_ids)
    return frozenset(selected)


def product_selection_state(product: ProductAggregate, active: frozenset[str] | set[str]) -> str:
    """Return "all", "some" or "none" depending on how many variants are selected."""
    hits = sum(1 for variant_id in product.variants if variant_id in active)
    if hits and hits == len(product.variants):
        return SELECTION_ALL
    if hits:
        return SELECTION_SOME
    return SELECTION_NONE


def is_product_fully_selected(product: ProductAggregate, active: frozenset[str] | set[str]) -> bool:
    return product_selection_state(product, active) == SELECTION_ALL


def is_product_partially_selected(product: ProductAggregate, active: frozenset[str] | set[str]) -> bool:
    """True when at least one variant is selected (fully selected included)."""
    return product_selection_state(product, active) != SELECTION_NONE
