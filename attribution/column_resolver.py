"""
Column Resolver - binds logical roles to concrete report headers.

Exports from different locales and report versions decorate the same field
differently (e.g. "订单 ID" vs "主订单 ID"), so each role is located by
substring. A role without a matching header resolves to its own fragment,
which simply never matches any row value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from attribution.config import COLUMN_FRAGMENTS, COLUMN_ROLES
from attribution.logger import get_logger

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResolvedColumns:
    """Header name used for each logical role."""

    order_id: str
    quantity: str
    creator: str
    content_id: str
    product_name: str
    sku: str

    def as_dict(self) -> dict[str, str]:
        return {role: getattr(self, role) for role in COLUMN_ROLES}


def find_header(headers: Sequence[str], fragment: str) -> str | None:
    """Return the first header containing `fragment`, or None."""
    for header in headers:
        if fragment in header:
            return header
    return None


def resolve_columns(
    headers: Sequence[str],
    fragments: Mapping[str, str] | None = None,
) -> ResolvedColumns:
    """
    Resolve every logical role against the session headers.

    Args:
        headers: Header list of the first uploaded report.
        fragments: Optional role -> fragment table. Defaults to COLUMN_FRAGMENTS.

    Returns:
        ResolvedColumns; unmatched roles carry the fragment itself.
    """
    table = dict(COLUMN_FRAGMENTS)
    if fragments:
        table.update(fragments)

    resolved: dict[str, str] = {}
    for role in COLUMN_ROLES:
        fragment = table[role]
        header = find_header(headers, fragment)
        if header is None:
            if headers:
                logger.debug(f"No header matches '{fragment}' for role {role}; using fallback name")
            header = fragment
        resolved[role] = header

    return ResolvedColumns(**resolved)
