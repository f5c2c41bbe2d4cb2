"""
Row Store - combined rows of every report in the current upload.

The store is replaced wholesale on each upload and emptied on reset. The
header list of the first uploaded report becomes the session header set (empty
if that report fails); later reports are assumed to share the same column
names.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from attribution.column_resolver import ResolvedColumns, resolve_columns
from attribution.logger import debug_watcher, get_logger
from attribution.record_parser import decode_report, parse_csv

if TYPE_CHECKING:
    from collections.abc import Sequence

    from attribution.ingestion import ReportSource
    from attribution.record_parser import Row

logger = get_logger(__name__)


class RowStore:
    """Single source of truth for parsed rows and session headers."""

    def __init__(self) -> None:
        self.headers: list[str] = []
        self.rows: list[Row] = []
        self.source_names: list[str] = []
        self.failed_sources: list[str] = []
        self.files_uploaded = 0
        self.generation = 0
        self._columns: ResolvedColumns | None = None

    @property
    def is_loaded(self) -> bool:
        return bool(self.rows)

    @property
    def columns(self) -> ResolvedColumns:
        if self._columns is None:
            self._columns = resolve_columns(self.headers)
        return self._columns

    @debug_watcher
    def load(self, sources: Sequence[ReportSource]) -> int:
        """
        Replace the store with the rows of `sources`.

        Each report is decoded and parsed independently; a report that fails
        is logged and skipped.

        Returns:
            Number of rows loaded.
        """
        headers: list[str] = []
        rows: list[Row] = []
        loaded: list[str] = []
        failed: list[str] = []

        for position, source in enumerate(sources):
            try:
                report = parse_csv(decode_report(source.payload))
            except Exception as e:
                logger.warning(f"Failed to parse {source.name}: {type(e).__name__}: {e}")
                failed.append(source.name)
                continue

            if position == 0:
                headers = report.headers
            rows.extend(report.rows)
            loaded.append(source.name)
            logger.info(f"Processed: {source.name} ({len(report.rows)} rows)")

        self.headers = headers
        self.rows = rows
        self.source_names = loaded
        self.failed_sources = failed
        self.files_uploaded = len(sources)
        self._bump()

        logger.info(
            f"Loaded {len(rows)} rows from {len(loaded)}/{len(sources)} report(s)"
            + (f"; failed: {', '.join(failed)}" if failed else "")
        )
        return len(rows)

    def clear(self) -> None:
        self.headers = []
        self.rows = []
        self.source_names = []
        self.failed_sources = []
        self.files_uploaded = 0
        self._bump()

    def _bump(self) -> None:
        self._columns = None
        self.generation += 1
