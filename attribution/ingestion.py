"""
Data ingestion module.

Wraps uploaded buffers and files on disk as report sources and scans the
dropzone directory for report exports.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from attribution.config import ALLOWED_SUFFIXES, DROPZONE_PATH
from attribution.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class ReportSource:
    """One uploaded report: a display name and its raw content."""

    name: str
    payload: bytes | str


def read_report_file(path: Path | str) -> ReportSource:
    """Read a report from disk without decoding it."""
    file_path = Path(path)
    return ReportSource(name=file_path.name, payload=file_path.read_bytes())


def read_report_buffer(name: str, data: bytes | BinaryIO) -> ReportSource:
    """Wrap an in-memory upload (bytes or a file-like object)."""
    payload = data if isinstance(data, bytes) else data.read()
    return ReportSource(name=name, payload=payload)


def _is_hidden_file(path: Path) -> bool:
    """Check if file should be skipped (hidden/system files)."""
    name = path.name.lower()
    return name.startswith(".") or name in ["thumbs.db", "desktop.ini"]


def scan_dropzone(path: str | Path = DROPZONE_PATH) -> list[Path]:
    """
    List report files in the dropzone, sorted by name.

    Args:
        path: Directory to scan (non-recursive).

    Returns:
        Paths of supported, non-hidden files. Empty if the directory is missing.
    """
    dropzone_path = Path(path)
    if not dropzone_path.exists():
        logger.warning(f"Dropzone directory not found: {dropzone_path}")
        return []

    if not dropzone_path.is_dir():
        logger.error(f"Path is not a directory: {dropzone_path}")
        return []

    found = [
        p
        for p in dropzone_path.iterdir()
        if p.is_file() and not _is_hidden_file(p) and p.suffix.lower() in ALLOWED_SUFFIXES
    ]
    logger.info(f"Found {len(found)} report file(s) in {dropzone_path}")
    return sorted(found, key=lambda p: p.name)
