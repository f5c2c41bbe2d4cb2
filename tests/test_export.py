"""
Tests for ingestion helpers, tabular projection, Excel export and the CLI.
"""

import sys
from io import BytesIO
from pathlib import Path

import pandas as pd

project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

import main as cli
from attribution.column_resolver import resolve_columns
from attribution.excel_exporter import AttributionWorkbookWriter, export_workbook
from attribution.frames import (
    CONTENT_COLUMNS,
    content_frame,
    display_frame,
    format_breakdown,
    views_to_frames,
)
from attribution.ingestion import read_report_buffer, read_report_file, scan_dropzone
from attribution.pipeline import ViewMode, derive_views
from attribution.record_parser import parse_csv

REPORT = "\n".join([
    "订单 ID,内容ID,达人用户名,商品名称,Seller Sku,下单件数",
    "o1,123,alice,Hoodie,sku-red,3",
    "o1,123,alice,Hoodie,sku-blue,2",
    "o2,456,bob,Cap,cap-1,1",
])


def make_views(**kwargs):
    report = parse_csv(REPORT)
    return derive_views(report.rows, resolve_columns(report.headers), **kwargs)


class TestIngestion:
    def test_scan_dropzone_filters_files(self, tmp_path):
        (tmp_path / "b.csv").write_text("x", encoding="utf-8")
        (tmp_path / "a.CSV").write_text("x", encoding="utf-8")
        (tmp_path / ".hidden.csv").write_text("x", encoding="utf-8")
        (tmp_path / "notes.txt").write_text("x", encoding="utf-8")
        assert [p.name for p in scan_dropzone(tmp_path)] == ["a.CSV", "b.csv"]

    def test_scan_missing_dropzone(self, tmp_path):
        assert scan_dropzone(tmp_path / "missing") == []

    def test_read_report_file_and_buffer(self, tmp_path):
        path = tmp_path / "report.csv"
        path.write_bytes(REPORT.encode("utf-8"))
        assert read_report_file(path).payload == REPORT.encode("utf-8")
        assert read_report_buffer("r.csv", BytesIO(b"abc")).payload == b"abc"
        assert read_report_buffer("r.csv", b"abc").name == "r.csv"


class TestFrames:
    def test_content_frame(self):
        views = make_views()
        df = content_frame(views.content)
        assert list(df.columns) == CONTENT_COLUMNS
        first = df.iloc[0]
        assert first["Content_ID"] == "123"
        assert first["Content_URL"] == "https://www.tiktok.com/@/video/123"
        assert first["Quantity"] == 5
        assert first["Orders"] == 1
        assert first["SKU_Breakdown"] == "sku-red (3) | sku-blue (2)"

    def test_empty_frame_keeps_columns(self):
        assert list(content_frame([]).columns) == CONTENT_COLUMNS

    def test_display_frame_uses_active_view(self):
        views = make_views(view_mode=ViewMode.CREATOR, search_term="ALI")
        df = display_frame(views)
        assert df["Creator"].tolist() == ["alice"]
        assert df.iloc[0]["Top_SKUs"] == "sku-red (3) | sku-blue (2)"

    def test_views_to_frames(self):
        frames = views_to_frames(make_views())
        assert set(frames) == {"content", "creator", "product", "metrics"}
        metrics = dict(zip(frames["metrics"]["Metric"], frames["metrics"]["Value"]))
        assert metrics == {"Orders": 2, "Quantity": 6, "Contents": 2, "Creators": 2}
        assert frames["product"].iloc[0]["Variants"] == "sku-red (3) | sku-blue (2)"

    def test_format_breakdown(self):
        assert format_breakdown([("a", 1), ("b", 2)]) == "a (1) | b (2)"
        assert format_breakdown([]) == ""


class TestExcelExport:
    def test_workbook_sheets(self, tmp_path):
        views = make_views(active_filter=frozenset({"sku-red"}))
        path = export_workbook(views, ["report.csv"], output_path=tmp_path, output_filename="out.xlsx")
        assert path == tmp_path / "out.xlsx"
        assert path.exists()

        sheets = pd.read_excel(path, sheet_name=None)
        assert list(sheets) == ["Summary", "Content", "Creators", "Products"]
        content = sheets["Content"]
        assert content["Quantity"].tolist() == [3]
        assert content["Content_ID"].astype(str).tolist() == ["123"]

    def test_generated_filename(self, tmp_path):
        path = export_workbook(make_views(), output_path=tmp_path, scope="TEST")
        assert path.name.startswith("Attribution_TEST_")
        assert path.suffix == ".xlsx"

    def test_to_bytes(self, tmp_path):
        data = AttributionWorkbookWriter(tmp_path).to_bytes(make_views())
        assert data[:2] == b"PK"
        sheets = pd.read_excel(BytesIO(data), sheet_name=None)
        assert sheets["Creators"]["Creator"].tolist() == ["alice", "bob"]


class TestCli:
    def test_run_pipeline_prints_view(self, tmp_path, capsys):
        report = tmp_path / "report.csv"
        report.write_bytes(REPORT.encode("utf-8"))
        session = cli.run_pipeline(files=[report], view_mode="creator", skus=["cap-1"])
        assert session is not None
        assert session.active_filter == frozenset({"cap-1"})
        out = capsys.readouterr().out
        assert "bob" in out
        assert "View: creator (1 of 1)" in out

    def test_run_pipeline_export(self, tmp_path):
        report = tmp_path / "report.csv"
        report.write_bytes(REPORT.encode("utf-8"))
        out_dir = tmp_path / "out"
        cli.run_pipeline(files=[report], export=True, output_path=out_dir)
        assert len(list(out_dir.glob("*.xlsx"))) == 1

    def test_main_returns_error_without_rows(self, tmp_path, monkeypatch):
        empty = tmp_path / "empty.csv"
        empty.write_text("", encoding="utf-8")
        monkeypatch.setattr(sys, "argv", ["main.py", str(empty)])
        assert cli.main() == 1
