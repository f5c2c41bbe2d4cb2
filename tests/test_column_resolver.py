"""
Unit tests for logical column resolution.
"""

import sys
from pathlib import Path

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from attribution.column_resolver import ResolvedColumns, find_header, resolve_columns

HEADERS = ["主订单 ID", "内容ID", "达人用户名", "商品名称", "Seller Sku", "下单件数", "备注"]


class TestResolveColumns:
    """Tests for resolve_columns."""

    def test_substring_match(self):
        columns = resolve_columns(HEADERS)
        assert columns.order_id == "主订单 ID"
        assert columns.content_id == "内容ID"
        assert columns.creator == "达人用户名"
        assert columns.product_name == "商品名称"
        assert columns.sku == "Seller Sku"
        assert columns.quantity == "下单件数"

    def test_first_matching_header_wins(self):
        columns = resolve_columns(["子订单 ID", "订单 ID"])
        assert columns.order_id == "子订单 ID"

    def test_missing_role_falls_back_to_fragment(self):
        columns = resolve_columns(["something else"])
        assert columns.order_id == "订单 ID"
        assert columns.sku == "Seller Sku"

    def test_empty_headers(self):
        columns = resolve_columns([])
        assert isinstance(columns, ResolvedColumns)
        assert columns.quantity == "下单件数"

    def test_custom_fragments(self):
        columns = resolve_columns(["Order No.", "Units"], {"order_id": "Order", "quantity": "Units"})
        assert columns.order_id == "Order No."
        assert columns.quantity == "Units"
        assert columns.creator == "达人用户名"

    def test_as_dict_lists_every_role(self):
        mapping = resolve_columns(HEADERS).as_dict()
        assert set(mapping) == {"order_id", "quantity", "creator", "content_id", "product_name", "sku"}


def test_find_header_is_case_sensitive():
    assert find_header(["seller sku"], "Seller Sku") is None
    assert find_header(["Seller Sku ID"], "Seller Sku") == "Seller Sku ID"
