"""
Pipeline - derive every presentation view from the current session state.

    rows -> filter_rows -> aggregate_rows -> project_* -> search_aggregates

`derive_views` is a pure function of its inputs and is re-run after every
action. `AttributionSession` owns the mutable state (row store, active SKU
filter, view mode, search term) and exposes the actions a dashboard calls.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING, Any

from attribution.aggregation import (
    AggregateViews,
    ContentAggregate,
    CreatorAggregate,
    GlobalMetrics,
    ProductAggregate,
    aggregate_rows,
    compute_global_metrics,
)
from attribution.config import TOP_N
from attribution.filters import (
    filter_rows,
    is_product_fully_selected,
    is_product_partially_selected,
    toggle_product_variants,
    toggle_sku,
)
from attribution.logger import debug_watcher, get_logger
from attribution.ranking import project_creators, project_products
from attribution.row_store import RowStore
from attribution.search import search_aggregates

if TYPE_CHECKING:
    from collections.abc import Sequence

    from attribution.column_resolver import ResolvedColumns
    from attribution.ingestion import ReportSource
    from attribution.record_parser import Row

logger = get_logger(__name__)


class ViewMode(str, Enum):
    CONTENT = "content"
    CREATOR = "creator"
    PRODUCT = "product"


@dataclass(frozen=True)
class Views:
    """Everything the presentation layer needs for one render."""

    content: tuple[ContentAggregate, ...] = ()
    creators: tuple[CreatorAggregate, ...] = ()
    products: tuple[ProductAggregate, ...] = ()
    metrics: GlobalMetrics = field(default_factory=GlobalMetrics)
    active_filter: frozenset[str] = frozenset()
    view_mode: ViewMode = ViewMode.CONTENT
    search_term: str = ""
    display: tuple[Any, ...] = ()
    filtered_row_count: int = 0

    @property
    def badge_counts(self) -> dict[ViewMode, int]:
        """Unsearched list sizes, one per view tab."""
        return {
            ViewMode.CONTENT: len(self.content),
            ViewMode.CREATOR: len(self.creators),
            ViewMode.PRODUCT: len(self.products),
        }

    def aggregates_for(self, mode: ViewMode | str) -> tuple[Any, ...]:
        mode = ViewMode(mode)
        if mode is ViewMode.CREATOR:
            return self.creators
        if mode is ViewMode.PRODUCT:
            return self.products
        return self.content

    def is_sku_selected(self, variant_id: str) -> bool:
        return variant_id in self.active_filter

    def is_product_fully_selected(self, product: ProductAggregate) -> bool:
        return is_product_fully_selected(product, self.active_filter)

    def is_product_partially_selected(self, product: ProductAggregate) -> bool:
        return is_product_partially_selected(product, self.active_filter)


@debug_watcher
def derive_views(
    rows: Sequence[Row],
    columns: ResolvedColumns,
    active_filter: frozenset[str] = frozenset(),
    search_term: str = "",
    view_mode: ViewMode | str = ViewMode.CONTENT,
    top_n: int = TOP_N,
) -> Views:
    """
    Run filter, aggregation, ranking and search over the full row set.

    Args:
        rows: All rows of the current upload (unfiltered).
        columns: Resolved header names.
        active_filter: Selected SKU variant ids; empty means all rows.
        search_term: Case-insensitive filter on the active view's ids.
        view_mode: Which family feeds `Views.display`.
        top_n: Length of creator/product sub-rankings.

    Returns:
        Views with the three sorted families, global metrics over the
        unfiltered rows, and the searched list for the active view.
    """
    mode = ViewMode(view_mode)
    active = frozenset(active_filter)

    filtered = filter_rows(rows, active, columns.sku)
    families: AggregateViews = aggregate_rows(filtered, columns)

    creators = project_creators(families.creators, top_n)
    products = project_products(families.products, top_n)

    views = Views(
        content=families.content,
        creators=creators,
        products=products,
        metrics=compute_global_metrics(rows, columns),
        active_filter=active,
        view_mode=mode,
        search_term=search_term,
        filtered_row_count=len(filtered),
    )
    display = search_aggregates(views.aggregates_for(mode), search_term)
    return replace(views, display=tuple(display))


class AttributionSession:
    """
    Session context for one dashboard user.

    Each action replaces the relevant piece of state; `views` recomputes
    lazily and is memoised on (store generation, filter, search, mode).
    """

    def __init__(self, top_n: int = TOP_N) -> None:
        self.store = RowStore()
        self.active_filter: frozenset[str] = frozenset()
        self.view_mode = ViewMode.CONTENT
        self.search_term = ""
        self.top_n = top_n
        self._cache_key: tuple | None = None
        self._cache: Views | None = None

    # --- actions -----------------------------------------------------------

    def upload(self, sources: Sequence[ReportSource]) -> int:
        """Replace the loaded rows with `sources`. An empty upload is ignored."""
        if not sources:
            logger.debug("Upload called without files; keeping current data")
            return len(self.store.rows)
        return self.store.load(sources)

    def reset(self) -> None:
        """Drop all rows and clear the SKU filter."""
        self.store.clear()
        self.active_filter = frozenset()
        logger.info("Session reset")

    def toggle_sku_filter(self, variant_id: str) -> frozenset[str]:
        self.active_filter = toggle_sku(self.active_filter, variant_id)
        return self.active_filter

    def toggle_all_variants_of_product(self, product: ProductAggregate) -> frozenset[str]:
        self.active_filter = toggle_product_variants(self.active_filter, product)
        return self.active_filter

    def clear_sku_filters(self) -> None:
        self.active_filter = frozenset()

    def set_view_mode(self, mode: ViewMode | str) -> None:
        self.view_mode = ViewMode(mode)

    def set_search_term(self, term: str | None) -> None:
        self.search_term = term or ""

    # --- derived state -----------------------------------------------------

    @property
    def is_loaded(self) -> bool:
        return self.store.is_loaded

    @property
    def views(self) -> Views:
        key = (
            self.store.generation,
            self.active_filter,
            self.search_term,
            self.view_mode,
            self.top_n,
        )
        if self._cache is None or key != self._cache_key:
            self._cache = derive_views(
                self.store.rows,
                self.store.columns,
                self.active_filter,
                self.search_term,
                self.view_mode,
                self.top_n,
            )
            self._cache_key = key
        return self._cache
