"""
Visualization module for the attribution dashboard.

Renders the global metric strip, the active SKU filter pool, the view tables
and the per-row drill-downs with SKU toggles. All state changes go through
AttributionSession actions registered as Streamlit callbacks.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import streamlit as st

from attribution.config import content_url
from attribution.frames import display_frame
from attribution.pipeline import ViewMode

if TYPE_CHECKING:
    from attribution.aggregation import ContentAggregate, CreatorAggregate, ProductAggregate
    from attribution.pipeline import AttributionSession, Views

VIEW_LABELS = {
    ViewMode.CONTENT: "Content",
    ViewMode.CREATOR: "Creators",
    ViewMode.PRODUCT: "Products / SKUs",
}

# Drill-down panels are only drawn for the first rows of the table
MAX_DRILLDOWN_ROWS = 50


def render_metric_strip(views: Views) -> None:
    """Headline metrics over the whole upload (not affected by filters)."""
    metrics = views.metrics
    col1, col2, col3, col4 = st.columns(4)
    with col1:
        st.metric("Orders", f"{metrics.order_count:,}")
    with col2:
        st.metric("Units Sold", f"{metrics.total_quantity:,}")
    with col3:
        st.metric("Content IDs", f"{metrics.content_count:,}")
    with col4:
        st.metric("Creators", f"{metrics.creator_count:,}")


def render_filter_pool(session: AttributionSession) -> None:
    """Active SKU chips; clicking a chip removes it from the filter."""
    active = sorted(session.active_filter)
    header_col, clear_col = st.columns([5, 1])
    with header_col:
        st.markdown(f"**SKU filter pool ({len(active)})**")
    with clear_col:
        if active:
            st.button("Clear filters", on_click=session.clear_sku_filters, key="clear-filters")

    if not active:
        st.caption("Showing all rows. Select any SKU or product below to filter every view.")
        return

    chip_cols = st.columns(min(len(active), 6))
    for i, sku in enumerate(active):
        with chip_cols[i % len(chip_cols)]:
            st.button(f"✕ {sku}", key=f"chip-{sku}", on_click=session.toggle_sku_filter, args=(sku,))


def _sku_button(session: AttributionSession, sku: str, qty: int, key: str) -> None:
    selected = sku in session.active_filter
    label = f"{'✓ ' if selected else ''}{sku} · {qty}"
    st.button(label, key=key, on_click=session.toggle_sku_filter, args=(sku,))


def _render_content_detail(session: AttributionSession, item: ContentAggregate) -> None:
    st.markdown(f"[{content_url(item.id)}]({content_url(item.id)}) · creator **{item.creator}**")
    for sku, qty in item.skus.items():
        _sku_button(session, sku, qty, key=f"content-{item.id}-{sku}")


def _render_creator_detail(session: AttributionSession, item: CreatorAggregate) -> None:
    st.caption(f"{item.content_count} content id(s) with orders")
    sku_col, content_col = st.columns(2)
    with sku_col:
        st.markdown("**Top SKUs**")
        for entry in item.top_skus:
            _sku_button(session, entry.id, entry.quantity, key=f"creator-{item.id}-{entry.id}")
    with content_col:
        st.markdown("**Top content**")
        for entry in item.top_contents:
            st.markdown(f"[Video link]({content_url(entry.id)}) · {entry.quantity} units")


def _render_product_detail(session: AttributionSession, views: Views, item: ProductAggregate) -> None:
    if views.is_product_fully_selected(item):
        label = "Deselect all variants"
    elif views.is_product_partially_selected(item):
        label = "Select all variants (partially selected)"
    else:
        label = "Select all variants"
    st.button(
        label,
        key=f"product-all-{item.id}",
        on_click=session.toggle_all_variants_of_product,
        args=(item,),
    )
    st.caption(f"{item.variant_count} SKU variant(s)")
    for variant in item.variants.values():
        _sku_button(session, variant.variant_id, variant.quantity, key=f"product-{item.id}-{variant.variant_id}")

    if item.top_contents:
        st.markdown("**Top contributing content**")
        for entry in item.top_contents:
            st.markdown(f"[{content_url(entry.id)}]({content_url(entry.id)}) · {entry.quantity} units")


def render_view(session: AttributionSession, views: Views) -> None:
    """Table of the active view plus drill-down panels for its first rows."""
    table = display_frame(views)
    if table.empty:
        st.info("No rows match the current filter and search.")
        return

    column_config = {}
    if views.view_mode is ViewMode.CONTENT:
        column_config["Content_URL"] = st.column_config.LinkColumn("Content_URL")

    st.dataframe(table, use_container_width=True, hide_index=True, column_config=column_config)
    st.caption(f"Showing {len(table)} of {views.badge_counts[views.view_mode]} rows")

    st.subheader("Drill-down")
    for item in views.display[:MAX_DRILLDOWN_ROWS]:
        with st.expander(f"{item.id} · {item.order_count} orders · {item.total_quantity} units"):
            if views.view_mode is ViewMode.CREATOR:
                _render_creator_detail(session, item)
            elif views.view_mode is ViewMode.PRODUCT:
                _render_product_detail(session, views, item)
            else:
                _render_content_detail(session, item)


def render_dashboard(session: AttributionSession) -> None:
    """Render the full dashboard for a loaded session."""
    views = session.views
    if not session.is_loaded:
        st.warning("No data loaded. Upload one or more attribution CSV reports.")
        return

    render_metric_strip(views)
    st.divider()
    render_filter_pool(session)
    st.divider()

    counts = views.badge_counts
    modes = list(ViewMode)
    mode_col, search_col = st.columns([2, 3])
    with mode_col:
        selected = st.radio(
            "View",
            modes,
            key="view-mode",
            format_func=lambda mode: f"{VIEW_LABELS[mode]} ({counts[mode]})",
            horizontal=True,
        )
    with search_col:
        term = st.text_input("Search", key="search-term", placeholder="Search content id, creator or product...")

    session.set_view_mode(selected)
    session.set_search_term(term)
    render_view(session, session.views)
