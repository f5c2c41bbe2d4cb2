"""
Tabular projection of derived views.

Flattens each aggregate family into a pandas DataFrame for the dashboard
tables, the CLI printout and the Excel export. Nested breakdowns are rendered
as "id (qty)" strings joined with " | ".
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import pandas as pd

from attribution.config import content_url
from attribution.pipeline import ViewMode

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from attribution.aggregation import (
        ContentAggregate,
        CreatorAggregate,
        GlobalMetrics,
        ProductAggregate,
    )
    from attribution.pipeline import Views
    from attribution.ranking import RankedEntry

CONTENT_COLUMNS = ["Content_ID", "Content_URL", "Creator", "Orders", "Quantity", "SKU_Breakdown"]
CREATOR_COLUMNS = ["Creator", "Orders", "Quantity", "Content_Count", "Top_SKUs", "Top_Contents"]
PRODUCT_COLUMNS = ["Product", "Orders", "Quantity", "Variant_Count", "Variants", "Top_Contents"]


def format_breakdown(pairs: Iterable[tuple[str, int]]) -> str:
    return " | ".join(f"{key} ({qty})" for key, qty in pairs)


def _ranked(entries: Sequence[RankedEntry]) -> str:
    return format_breakdown((entry.id, entry.quantity) for entry in entries)


def _mapping(quantities: Mapping[str, int]) -> str:
    return format_breakdown(quantities.items())


def content_frame(items: Iterable[ContentAggregate]) -> pd.DataFrame:
    records = [
        {
            "Content_ID": item.id,
            "Content_URL": content_url(item.id),
            "Creator": item.creator,
            "Orders": item.order_count,
            "Quantity": item.total_quantity,
            "SKU_Breakdown": _mapping(item.skus),
        }
        for item in items
    ]
    return pd.DataFrame(records, columns=CONTENT_COLUMNS)


def creator_frame(items: Iterable[CreatorAggregate]) -> pd.DataFrame:
    records = [
        {
            "Creator": item.id,
            "Orders": item.order_count,
            "Quantity": item.total_quantity,
            "Content_Count": item.content_count,
            "Top_SKUs": _ranked(item.top_skus),
            "Top_Contents": _ranked(item.top_contents),
        }
        for item in items
    ]
    return pd.DataFrame(records, columns=CREATOR_COLUMNS)


def product_frame(items: Iterable[ProductAggregate]) -> pd.DataFrame:
    records = [
        {
            "Product": item.id,
            "Orders": item.order_count,
            "Quantity": item.total_quantity,
            "Variant_Count": item.variant_count,
            "Variants": format_breakdown((v.variant_id, v.quantity) for v in item.variants.values()),
            "Top_Contents": _ranked(item.top_contents),
        }
        for item in items
    ]
    return pd.DataFrame(records, columns=PRODUCT_COLUMNS)


def metrics_frame(metrics: GlobalMetrics) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {"Metric": "Orders", "Value": metrics.order_count},
            {"Metric": "Quantity", "Value": metrics.total_quantity},
            {"Metric": "Contents", "Value": metrics.content_count},
            {"Metric": "Creators", "Value": metrics.creator_count},
        ]
    )


_FRAME_BUILDERS: dict[ViewMode, Any] = {
    ViewMode.CONTENT: content_frame,
    ViewMode.CREATOR: creator_frame,
    ViewMode.PRODUCT: product_frame,
}


def display_frame(views: Views) -> pd.DataFrame:
    """Searched list of the active view."""
    return _FRAME_BUILDERS[views.view_mode](views.display)


def views_to_frames(views: Views) -> dict[str, pd.DataFrame]:
    """
    All three families (unsearched) plus the metrics table.

    Returns:
        Dictionary keyed by "content", "creator", "product" and "metrics".
    """
    return {
        ViewMode.CONTENT.value: content_frame(views.content),
        ViewMode.CREATOR.value: creator_frame(views.creators),
        ViewMode.PRODUCT.value: product_frame(views.products),
        "metrics": metrics_frame(views.metrics),
    }
