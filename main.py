"""
Order Attribution Matrix - command line entry point

Loads one or more attribution CSV exports and prints the global metrics plus
one pivot view (content, creator or product), optionally restricted to a set
of seller SKUs and a search term. Can also export every view to Excel.

Usage:
    python main.py [FILES ...] [--sku ID ...] [--search TERM] [--view MODE]
                   [--top N] [--export] [--output DIR]

Examples:
    python main.py                                   # All CSVs in 01_dropzone/
    python main.py reports/week1.csv reports/week2.csv
    python main.py --view creator --sku RED-L --sku RED-M
    python main.py --view product --search hoodie --export
"""

from __future__ import annotations

import argparse
import sys
from datetime import datetime
from pathlib import Path

import pandas as pd

from attribution.config import DROPZONE_PATH, TOP_N, ensure_directories, validate_config
from attribution.excel_exporter import export_workbook
from attribution.frames import display_frame, metrics_frame
from attribution.ingestion import read_report_file, scan_dropzone
from attribution.logger import get_logger
from attribution.pipeline import AttributionSession, ViewMode

logger = get_logger(__name__)


def run_pipeline(
    files: list[Path | str] | None = None,
    skus: list[str] | None = None,
    search_term: str = "",
    view_mode: ViewMode | str = ViewMode.CONTENT,
    top_n: int = TOP_N,
    export: bool = False,
    output_path: Path | str | None = None,
) -> AttributionSession | None:
    """
    Load reports, apply the filter/search and print the selected view.

    Args:
        files: Report paths. If None or empty, scans the dropzone.
        skus: SKU variant ids to filter on.
        search_term: Case-insensitive id search for the selected view.
        view_mode: content, creator or product.
        top_n: Length of top-N sub-rankings.
        export: Whether to write an Excel workbook.
        output_path: Workbook directory (defaults to 02_output/).

    Returns:
        The populated session, or None if no rows could be loaded.
    """
    start_time = datetime.now()

    is_valid, errors = validate_config()
    if not is_valid:
        for error in errors:
            logger.error(f"Configuration error: {error}")
        return None

    paths = [Path(f) for f in files] if files else scan_dropzone(DROPZONE_PATH)
    if not paths:
        logger.error("No report files given and none found in the dropzone")
        return None

    sources = []
    for path in paths:
        try:
            sources.append(read_report_file(path))
        except OSError as e:
            logger.warning(f"Failed to read {path}: {e}")

    session = AttributionSession(top_n=top_n)
    if session.upload(sources) == 0:
        logger.error("No rows loaded from the given reports")
        return None

    for sku in skus or []:
        session.toggle_sku_filter(sku)
    session.set_view_mode(view_mode)
    session.set_search_term(search_term)

    views = session.views
    with pd.option_context("display.max_rows", 200, "display.max_colwidth", 60, "display.width", 200):
        print(metrics_frame(views.metrics).to_string(index=False))
        print()
        if views.active_filter:
            print(f"SKU filter: {', '.join(sorted(views.active_filter))} ({views.filtered_row_count} rows)")
        print(f"View: {views.view_mode.value} ({len(views.display)} of {views.badge_counts[views.view_mode]})")
        print(display_frame(views).to_string(index=False))

    if export:
        ensure_directories()
        workbook = export_workbook(views, session.store.source_names, output_path=output_path)
        print(f"\nWorkbook: {workbook}")

    elapsed = (datetime.now() - start_time).total_seconds()
    logger.info(f"Execution time: {elapsed:.1f} seconds")
    return session


def main() -> int:
    """Main entry point with argument parsing."""
    parser = argparse.ArgumentParser(
        description="Order Attribution Matrix - pivot orders by content, creator and product",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py                                 # All CSVs in 01_dropzone/
  python main.py a.csv b.csv --view creator      # Creator view of two reports
  python main.py --sku RED-L --export            # Filter by SKU and export
        """,
    )

    parser.add_argument("files", nargs="*", help="Report CSV files (default: scan 01_dropzone/)")
    parser.add_argument(
        "--sku", "-s",
        action="append",
        default=[],
        help="Seller SKU variant id to filter on (repeatable)",
    )
    parser.add_argument("--search", "-q", default="", help="Case-insensitive id search")
    parser.add_argument(
        "--view", "-v",
        choices=[mode.value for mode in ViewMode],
        default=ViewMode.CONTENT.value,
        help="Pivot view to print (default: content)",
    )
    parser.add_argument("--top", "-n", type=int, default=TOP_N, help="Top-N ranking length")
    parser.add_argument("--export", "-e", action="store_true", help="Write an Excel workbook")
    parser.add_argument("--output", "-o", default=None, help="Workbook output directory")

    args = parser.parse_args()

    try:
        session = run_pipeline(
            files=args.files,
            skus=args.sku,
            search_term=args.search,
            view_mode=args.view,
            top_n=args.top,
            export=args.export,
            output_path=args.output,
        )
        return 0 if session is not None else 1

    except Exception as e:
        logger.error(f"Pipeline failed: {e}", exc_info=True)
        return 1


if __name__ == "__main__":
    sys.exit(main())
