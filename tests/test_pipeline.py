"""
Integration tests for filtering, search and the session pipeline.

Covers the full path: report sources -> row store -> filter -> aggregation
-> ranking -> search.
"""

import sys
from pathlib import Path

import pytest

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from attribution.aggregation import aggregate_rows, parse_quantity
from attribution.column_resolver import resolve_columns
from attribution.config import UNSET_SKU
from attribution.filters import (
    filter_rows,
    is_product_fully_selected,
    is_product_partially_selected,
    product_selection_state,
    toggle_product_variants,
    toggle_sku,
)
from attribution.ingestion import ReportSource
from attribution.pipeline import AttributionSession, ViewMode, derive_views
from attribution.record_parser import parse_csv
from attribution.search import search_aggregates

HEADER = "订单 ID,内容ID,达人用户名,商品名称,Seller Sku,下单件数"

REPORT_ONE = "\n".join([
    HEADER,
    "o1,v1,CreatorX,Hoodie,HD-S,2",
    "o1,v1,CreatorX,Hoodie,HD-M,1",
    "o2,v2,CreatorX,Cap,CAP-1,4",
    "o3,v3,creator_y,Hoodie,HD-S,3",
    "o4,v3,creator_y,Socks,,5",
])

# Same columns in a different order, one column missing
REPORT_TWO = "\n".join([
    "Seller Sku,下单件数,订单 ID,达人用户名,内容ID",
    "CAP-1,6,o5,creator_z,v4",
])


class UnreadablePayload(bytes):
    def decode(self, *args, **kwargs):
        raise OSError("read failed")


def source(name, text):
    return ReportSource(name=name, payload=text.encode("utf-8"))


@pytest.fixture
def loaded():
    report = parse_csv(REPORT_ONE)
    return report.rows, resolve_columns(report.headers)


class TestFilterStage:
    """Tests for SKU filtering and toggle helpers."""

    def test_empty_filter_is_identity(self, loaded):
        rows, columns = loaded
        assert filter_rows(rows, frozenset(), columns.sku) is rows

    def test_filter_by_sku(self, loaded):
        rows, columns = loaded
        kept = filter_rows(rows, frozenset({"HD-S"}), columns.sku)
        assert [row.get(columns.order_id) for row in kept] == ["o1", "o3"]

    def test_unset_sku_is_filterable(self, loaded):
        rows, columns = loaded
        kept = filter_rows(rows, frozenset({UNSET_SKU}), columns.sku)
        assert [row.get(columns.order_id) for row in kept] == ["o4"]

    def test_shared_variant_filters_both_products(self):
        report = parse_csv("\n".join([HEADER, "o1,v1,a,Shirt,SHARED,1", "o2,v2,b,Tee,SHARED,2", "o3,v3,c,Tee,T-2,3"]))
        columns = resolve_columns(report.headers)
        views = derive_views(report.rows, columns, frozenset({"SHARED"}))
        assert sorted(p.id for p in views.products) == ["Shirt", "Tee"]
        assert sum(p.total_quantity for p in views.products) == 3

    def test_toggle_sku(self):
        active = toggle_sku(frozenset(), "A")
        assert active == frozenset({"A"})
        assert toggle_sku(active, "A") == frozenset()

    def test_toggle_product_variants(self, loaded):
        rows, columns = loaded
        hoodie = next(p for p in aggregate_rows(rows, columns).products if p.id == "Hoodie")

        partial = frozenset({"HD-S"})
        assert product_selection_state(hoodie, partial) == "some"
        assert is_product_partially_selected(hoodie, partial)
        assert not is_product_fully_selected(hoodie, partial)

        full = toggle_product_variants(partial, hoodie)
        assert full == frozenset({"HD-S", "HD-M"})
        assert is_product_fully_selected(hoodie, full)

        assert toggle_product_variants(full | {"CAP-1"}, hoodie) == frozenset({"CAP-1"})
        assert product_selection_state(hoodie, frozenset()) == "none"


class TestSearchStage:
    def test_case_insensitive_match(self, loaded):
        rows, columns = loaded
        creators = aggregate_rows(rows, columns).creators
        assert [c.id for c in search_aggregates(creators, "creatorx")] == ["CreatorX"]

    def test_empty_term_returns_input(self, loaded):
        rows, columns = loaded
        creators = aggregate_rows(rows, columns).creators
        assert search_aggregates(creators, "") is creators

    def test_nested_data_is_not_searched(self, loaded):
        rows, columns = loaded
        products = aggregate_rows(rows, columns).products
        assert search_aggregates(products, "HD-S") == []


class TestDeriveViews:
    """Tests for the end-to-end derivation."""

    def test_conservation_under_filter(self, loaded):
        rows, columns = loaded
        active = frozenset({"HD-S", "CAP-1"})
        views = derive_views(rows, columns, active)
        filtered = filter_rows(rows, active, columns.sku)
        expected = sum(parse_quantity(row.get(columns.quantity)) for row in filtered)
        assert expected == 9
        assert sum(c.total_quantity for c in views.content) == expected
        assert sum(c.total_quantity for c in views.creators) == expected
        assert sum(p.total_quantity for p in views.products) == expected
        assert views.filtered_row_count == 3

    def test_global_metrics_ignore_filter(self, loaded):
        rows, columns = loaded
        unfiltered = derive_views(rows, columns)
        filtered = derive_views(rows, columns, frozenset({"CAP-1"}))
        assert filtered.metrics == unfiltered.metrics
        assert unfiltered.metrics.order_count == 4
        assert unfiltered.metrics.total_quantity == 15

    def test_empty_filter_reproduces_unfiltered(self, loaded):
        rows, columns = loaded
        baseline = derive_views(rows, columns)
        assert derive_views(rows, columns, frozenset()) == baseline
        assert baseline.content == aggregate_rows(rows, columns).content

    def test_idempotent(self, loaded):
        rows, columns = loaded
        first = derive_views(rows, columns, frozenset({"HD-S"}), "v", ViewMode.CONTENT)
        second = derive_views(rows, columns, frozenset({"HD-S"}), "v", ViewMode.CONTENT)
        assert first == second

    def test_display_follows_view_mode_and_search(self, loaded):
        rows, columns = loaded
        views = derive_views(rows, columns, search_term="hood", view_mode="product")
        assert [p.id for p in views.display] == ["Hoodie"]
        assert views.badge_counts[ViewMode.PRODUCT] == 3

    def test_creator_projection(self, loaded):
        rows, columns = loaded
        views = derive_views(rows, columns, view_mode=ViewMode.CREATOR)
        creator_x = next(c for c in views.creators if c.id == "CreatorX")
        assert [e.id for e in creator_x.top_skus] == ["CAP-1", "HD-S", "HD-M"]
        assert [e.id for e in creator_x.top_contents] == ["v2", "v1"]
        assert creator_x.order_count == 2

    def test_invalid_view_mode(self, loaded):
        rows, columns = loaded
        with pytest.raises(ValueError):
            derive_views(rows, columns, view_mode="sku")


class TestAttributionSession:
    """Tests for session actions."""

    def setup_method(self):
        self.session = AttributionSession()

    def test_upload_concatenates_reports(self):
        rows = self.session.upload([source("one.csv", REPORT_ONE), source("two.csv", REPORT_TWO)])
        assert rows == 6
        assert self.session.store.headers == HEADER.split(",")
        assert self.session.store.source_names == ["one.csv", "two.csv"]

        views = self.session.views
        assert views.metrics.total_quantity == 21
        assert views.metrics.creator_count == 3
        assert any(p.id == "未命名商品" for p in views.products)

    def test_failed_report_is_skipped(self):
        broken = ReportSource(name="bad.csv", payload=UnreadablePayload())
        rows = self.session.upload([source("one.csv", REPORT_ONE), broken])
        assert rows == 5
        assert self.session.store.failed_sources == ["bad.csv"]
        assert self.session.store.source_names == ["one.csv"]
        assert self.session.store.files_uploaded == 2

    def test_failed_first_report_leaves_headers_empty(self):
        broken = ReportSource(name="bad.csv", payload=UnreadablePayload())
        rows = self.session.upload([broken, source("one.csv", REPORT_ONE)])
        assert rows == 5
        assert self.session.store.headers == []
        # Roles fall back to their fragments, which match this export exactly
        assert self.session.store.columns.sku == "Seller Sku"
        assert self.session.views.metrics.total_quantity == 15

    def test_invalid_byte_keeps_report(self):
        payload = REPORT_ONE.encode("utf-8").replace(b"Cap", b"Ca\xffp")
        rows = self.session.upload([ReportSource(name="one.csv", payload=payload)])
        assert rows == 5
        assert self.session.store.failed_sources == []
        assert any(p.id == "Ca\ufffdp" for p in self.session.views.products)

    def test_upload_replaces_previous_rows(self):
        self.session.upload([source("one.csv", REPORT_ONE)])
        self.session.upload([source("two.csv", REPORT_TWO)])
        assert len(self.session.store.rows) == 1
        assert self.session.views.metrics.order_count == 1

    def test_empty_upload_keeps_data(self):
        self.session.upload([source("one.csv", REPORT_ONE)])
        assert self.session.upload([]) == 5
        assert self.session.is_loaded

    def test_reset_clears_rows_and_filter(self):
        self.session.upload([source("one.csv", REPORT_ONE)])
        self.session.toggle_sku_filter("HD-S")
        self.session.reset()
        assert not self.session.is_loaded
        assert self.session.active_filter == frozenset()
        assert self.session.views.content == ()

    def test_toggle_filter_updates_views(self):
        self.session.upload([source("one.csv", REPORT_ONE)])
        before = self.session.views
        assert self.session.views is before

        self.session.toggle_sku_filter("CAP-1")
        after = self.session.views
        assert after is not before
        assert [c.id for c in after.content] == ["v2"]
        assert after.metrics == before.metrics

        self.session.toggle_sku_filter("CAP-1")
        assert self.session.views.content == before.content

    def test_toggle_all_variants_of_product(self):
        self.session.upload([source("one.csv", REPORT_ONE)])
        hoodie = next(p for p in self.session.views.products if p.id == "Hoodie")
        self.session.toggle_all_variants_of_product(hoodie)
        assert self.session.active_filter == frozenset({"HD-S", "HD-M"})
        assert self.session.views.is_product_fully_selected(hoodie)
        self.session.clear_sku_filters()
        assert self.session.active_filter == frozenset()

    def test_view_mode_and_search(self):
        self.session.upload([source("one.csv", REPORT_ONE)])
        self.session.set_view_mode("creator")
        self.session.set_search_term("CREATOR_Y")
        views = self.session.views
        assert views.view_mode is ViewMode.CREATOR
        assert [c.id for c in views.display] == ["creator_y"]
        self.session.set_search_term(None)
        assert len(self.session.views.display) == 2
