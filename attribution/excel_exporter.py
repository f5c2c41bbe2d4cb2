"""
Excel Exporter Module - attribution workbook output

Creates an .xlsx workbook with:
- Summary (global metrics, active SKU filter, source reports)
- Content (per content id)
- Creators (per creator, with top SKUs and top contents)
- Products (per product name, with every variant and top contents)
"""

from __future__ import annotations

from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import TYPE_CHECKING, Any, BinaryIO

import xlsxwriter
from xlsxwriter.workbook import Workbook
from xlsxwriter.worksheet import Worksheet

from attribution.config import OUTPUT_PATH, OUTPUT_SETTINGS
from attribution.frames import views_to_frames
from attribution.logger import debug_watcher, get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    import pandas as pd

    from attribution.pipeline import Views

logger = get_logger(__name__)

SHEET_NAMES = {
    "content": "Content",
    "creator": "Creators",
    "product": "Products",
}

# Column widths by header name; anything else gets the default
_COLUMN_WIDTHS = {
    "Content_ID": 24,
    "Content_URL": 48,
    "Creator": 22,
    "Product": 40,
    "SKU_Breakdown": 60,
    "Top_SKUs": 50,
    "Top_Contents": 60,
    "Variants": 60,
}
_DEFAULT_WIDTH = 12


class AttributionWorkbookWriter:
    """Writes derived views to a formatted Excel workbook."""

    def __init__(self, output_path: Path | str | None = None):
        """
        Args:
            output_path: Directory for output files. Defaults to OUTPUT_PATH.
        """
        self.output_path = Path(output_path) if output_path else OUTPUT_PATH
        self.output_path.mkdir(parents=True, exist_ok=True)

        self.workbook: Workbook | None = None
        self.formats: dict[str, Any] = {}

    def _generate_filename(self, scope: str = "ALL") -> str:
        timestamp = datetime.now().strftime(OUTPUT_SETTINGS["timestamp_format"])
        return OUTPUT_SETTINGS["workbook_name_pattern"].format(scope=scope, timestamp=timestamp)

    def _setup_formats(self) -> None:
        if self.workbook is None:
            return

        self.formats["header"] = self.workbook.add_format({
            "bold": True,
            "bg_color": "#4F46E5",
            "font_color": "#FFFFFF",
            "border": 1,
            "align": "center",
            "valign": "vcenter",
            "text_wrap": True,
        })
        self.formats["title"] = self.workbook.add_format({
            "bold": True,
            "font_size": 14,
        })
        self.formats["integer"] = self.workbook.add_format({
            "num_format": OUTPUT_SETTINGS["integer_format"],
            "border": 1,
        })
        self.formats["default"] = self.workbook.add_format({
            "border": 1,
        })

    def _cell_format(self, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return self.formats["integer"]
        return self.formats["default"]

    def create_table_sheet(self, df: pd.DataFrame, sheet_name: str) -> Worksheet:
        """Write one DataFrame as a header row plus data rows."""
        if self.workbook is None:
            raise RuntimeError("Workbook not initialized")

        ws = self.workbook.add_worksheet(sheet_name)
        for col, header in enumerate(df.columns):
            ws.write(0, col, header, self.formats["header"])
            ws.set_column(col, col, _COLUMN_WIDTHS.get(header, _DEFAULT_WIDTH))

        for row_idx, record in enumerate(df.itertuples(index=False), start=1):
            for col, value in enumerate(record):
                if hasattr(value, "item"):
                    value = value.item()
                ws.write(row_idx, col, value, self._cell_format(value))

        ws.freeze_panes(1, 0)
        if len(df.columns):
            ws.autofilter(0, 0, max(len(df), 1), len(df.columns) - 1)
        return ws

    def create_summary_sheet(
        self,
        views: Views,
        metrics_df: pd.DataFrame,
        source_names: Sequence[str] = (),
        sheet_name: str = "Summary",
    ) -> Worksheet:
        if self.workbook is None:
            raise RuntimeError("Workbook not initialized")

        ws = self.workbook.add_worksheet(sheet_name)
        ws.write(0, 0, "Order Attribution Summary", self.formats["title"])
        ws.write(1, 0, f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M')}")

        row = 3
        ws.write(row, 0, "Metric", self.formats["header"])
        ws.write(row, 1, "Value", self.formats["header"])
        for record in metrics_df.itertuples(index=False):
            row += 1
            ws.write(row, 0, record.Metric, self.formats["default"])
            ws.write(row, 1, int(record.Value), self.formats["integer"])

        row += 2
        ws.write(row, 0, "Active SKU filter", self.formats["header"])
        ws.write(row, 1, ", ".join(sorted(views.active_filter)) or "(all SKUs)", self.formats["default"])
        row += 1
        ws.write(row, 0, "Filtered rows", self.formats["default"])
        ws.write(row, 1, views.filtered_row_count, self.formats["integer"])

        if source_names:
            row += 2
            ws.write(row, 0, "Source reports", self.formats["header"])
            for name in source_names:
                row += 1
                ws.write(row, 0, name, self.formats["default"])

        ws.set_column(0, 0, 30)
        ws.set_column(1, 1, 60)
        return ws

    def _build(
        self,
        target: str | BinaryIO,
        views: Views,
        source_names: Sequence[str],
        options: dict[str, Any] | None = None,
    ) -> None:
        frames = views_to_frames(views)

        self.workbook = xlsxwriter.Workbook(target, {"strings_to_formulas": False, **(options or {})})
        self._setup_formats()
        try:
            self.create_summary_sheet(views, frames["metrics"], source_names)
            for key, sheet_name in SHEET_NAMES.items():
                self.create_table_sheet(frames[key], sheet_name)
        finally:
            self.workbook.close()
            self.workbook = None

    def to_bytes(self, views: Views, source_names: Sequence[str] = ()) -> bytes:
        """Build the workbook in memory (for download buttons)."""
        buffer = BytesIO()
        self._build(buffer, views, source_names, {"in_memory": True})
        return buffer.getvalue()

    @debug_watcher
    def write(
        self,
        views: Views,
        source_names: Sequence[str] = (),
        scope: str = "ALL",
        output_filename: str | None = None,
    ) -> Path:
        """
        Create the full workbook.

        Args:
            views: Derived views to export (all three families are written).
            source_names: Report file names listed on the Summary sheet.
            scope: Label used in the generated filename.
            output_filename: Custom file name. If None, auto-generated.

        Returns:
            Path to the created workbook.
        """
        if output_filename is None:
            output_filename = self._generate_filename(scope)
        output_path = self.output_path / output_filename

        self._build(str(output_path), views, source_names)
        logger.info(f"Workbook written: {output_path}")
        return output_path


def export_workbook(
    views: Views,
    source_names: Sequence[str] = (),
    output_path: Path | str | None = None,
    scope: str = "ALL",
    output_filename: str | None = None,
) -> Path:
    """Convenience wrapper around AttributionWorkbookWriter.write()."""
    writer = AttributionWorkbookWriter(output_path)
    return writer.write(views, source_names, scope=scope, output_filename=output_filename)
