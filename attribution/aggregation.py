"""
Aggregation Engine - three pivot rollups from one pass over the rows.

Every filtered row contributes at once to:
- its content aggregate (keyed by content id)
- its creator aggregate (keyed by creator username)
- its product aggregate (keyed by product name)

The three families are built in a single fold so their quantities always
agree for a given filter state. Entries are mutable only inside the fold;
callers receive frozen aggregates sorted by total quantity.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Generic, NamedTuple, TypeVar

from attribution.config import (
    SYNTHETIC_ORDER_PREFIX,
    UNKNOWN_CONTENT,
    UNKNOWN_CREATOR,
    UNNAMED_PRODUCT,
    UNSET_SKU,
)
from attribution.ranking import RankedEntry, sort_by_total

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from attribution.column_resolver import ResolvedColumns
    from attribution.record_parser import Row

E = TypeVar("E")

_LEADING_INT = re.compile(r"^[+-]?\d+", re.ASCII)


# ============================================================================
# PUBLISHED AGGREGATES
# ============================================================================

@dataclass(frozen=True)
class VariantQuantity:
    """Quantity sold for one SKU variant under a product."""

    variant_id: str
    quantity: int


@dataclass(frozen=True)
class ContentAggregate:
    id: str
    creator: str
    order_ids: frozenset[str]
    total_quantity: int
    skus: Mapping[str, int]

    @property
    def order_count(self) -> int:
        return len(self.order_ids)


@dataclass(frozen=True)
class CreatorAggregate:
    id: str
    order_ids: frozenset[str]
    total_quantity: int
    content_ids: frozenset[str]
    sku_quantities: Mapping[str, int]
    content_quantities: Mapping[str, int]
    top_skus: tuple[RankedEntry, ...] = ()
    top_contents: tuple[RankedEntry, ...] = ()

    @property
    def order_count(self) -> int:
        return len(self.order_ids)

    @property
    def content_count(self) -> int:
        return len(self.content_ids)


@dataclass(frozen=True)
class ProductAggregate:
    id: str
    order_ids: frozenset[str]
    total_quantity: int
    variants: Mapping[str, VariantQuantity]
    content_quantities: Mapping[str, int]
    top_contents: tuple[RankedEntry, ...] = ()

    @property
    def order_count(self) -> int:
        return len(self.order_ids)

    @property
    def variant_count(self) -> int:
        return len(self.variants)


@dataclass(frozen=True)
class GlobalMetrics:
    """Headline numbers over the whole upload, independent of any filter."""

    order_count: int = 0
    total_quantity: int = 0
    content_count: int = 0
    creator_count: int = 0


@dataclass(frozen=True)
class AggregateViews:
    content: tuple[ContentAggregate, ...] = ()
    creators: tuple[CreatorAggregate, ...] = ()
    products: tuple[ProductAggregate, ...] = ()


# ============================================================================
# ACCUMULATORS
# ============================================================================

class Accumulator(Generic[E]):
    """Insertion-ordered map of keys to mutable entries created on first sight."""

    def __init__(self, factory: Callable[[str], E]):
        self._factory = factory
        self._entries: dict[str, E] = {}

    def upsert(self, key: str) -> E:
        entry = self._entries.get(key)
        if entry is None:
            entry = self._factory(key)
            self._entries[key] = entry
        return entry

    def values(self) -> list[E]:
        return list(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


def _add(counter: dict[str, int], key: str, quantity: int) -> None:
    counter[key] = counter.get(key, 0) + quantity


@dataclass
class _ContentEntry:
    id: str
    creator: str = ""
    order_ids: set[str] = field(default_factory=set)
    total_quantity: int = 0
    skus: dict[str, int] = field(default_factory=dict)

    def freeze(self) -> ContentAggregate:
        return ContentAggregate(
            id=self.id,
            creator=self.creator,
            order_ids=frozenset(self.order_ids),
            total_quantity=self.total_quantity,
            skus=MappingProxyType(dict(self.skus)),
        )


@dataclass
class _CreatorEntry:
    id: str
    order_ids: set[str] = field(default_factory=set)
    total_quantity: int = 0
    content_ids: set[str] = field(default_factory=set)
    sku_quantities: dict[str, int] = field(default_factory=dict)
    content_quantities: dict[str, int] = field(default_factory=dict)

    def freeze(self) -> CreatorAggregate:
        return CreatorAggregate(
            id=self.id,
            order_ids=frozenset(self.order_ids),
            total_quantity=self.total_quantity,
            content_ids=frozenset(self.content_ids),
            sku_quantities=MappingProxyType(dict(self.sku_quantities)),
            content_quantities=MappingProxyType(dict(self.content_quantities)),
        )


@dataclass
class _ProductEntry:
    id: str
    order_ids: set[str] = field(default_factory=set)
    total_quantity: int = 0
    variants: dict[str, int] = field(default_factory=dict)
    content_quantities: dict[str, int] = field(default_factory=dict)

    def freeze(self) -> ProductAggregate:
        variants = {
            variant_id: VariantQuantity(variant_id=variant_id, quantity=quantity)
            for variant_id, quantity in self.variants.items()
        }
        return ProductAggregate(
            id=self.id,
            order_ids=frozenset(self.order_ids),
            total_quantity=self.total_quantity,
            variants=MappingProxyType(variants),
            content_quantities=MappingProxyType(dict(self.content_quantities)),
        )


# ============================================================================
# ROW EXTRACTION
# ============================================================================

class RowFields(NamedTuple):
    content_id: str
    creator: str
    sku: str
    order_id: str
    quantity: int
    product_name: str


def parse_quantity(value: str | None) -> int:
    """
    Read the leading integer of a quantity cell.

    "3" -> 3, "3.7" -> 3, "12 pcs" -> 12; empty or non-numeric text -> 0.
    """
    if not value:
        return 0
    match = _LEADING_INT.match(value.strip())
    if match is None:
        return 0
    return int(match.group(0))


def extract_fields(row: Row, columns: ResolvedColumns, position: int) -> RowFields:
    """Read every role of a row, substituting sentinels for empty values."""
    return RowFields(
        content_id=row.get(columns.content_id) or UNKNOWN_CONTENT,
        creator=row.get(columns.creator) or UNKNOWN_CREATOR,
        sku=row.get(columns.sku) or UNSET_SKU,
        order_id=row.get(columns.order_id) or f"{SYNTHETIC_ORDER_PREFIX}{position}",
        quantity=parse_quantity(row.get(columns.quantity)),
        product_name=row.get(columns.product_name) or UNNAMED_PRODUCT,
    )


# ============================================================================
# FOLD
# ============================================================================

def aggregate_rows(rows: Iterable[Row], columns: ResolvedColumns) -> AggregateViews:
    """
    Build the content, creator and product rollups in one pass.

    Args:
        rows: Filtered rows.
        columns: Resolved header names.

    Returns:
        AggregateViews with each family sorted by total quantity, descending.
        Top-N rankings are left empty; see attribution.ranking.
    """
    content_acc: Accumulator[_ContentEntry] = Accumulator(lambda key: _ContentEntry(id=key))
    creator_acc: Accumulator[_CreatorEntry] = Accumulator(lambda key: _CreatorEntry(id=key))
    product_acc: Accumulator[_ProductEntry] = Accumulator(lambda key: _ProductEntry(id=key))

    for position, row in enumerate(rows):
        fields = extract_fields(row, columns, position)

        content = content_acc.upsert(fields.content_id)
        if not content.creator:
            content.creator = fields.creator
        content.order_ids.add(fields.order_id)
        content.total_quantity += fields.quantity
        _add(content.skus, fields.sku, fields.quantity)

        creator = creator_acc.upsert(fields.creator)
        creator.order_ids.add(fields.order_id)
        creator.total_quantity += fields.quantity
        creator.content_ids.add(fields.content_id)
        _add(creator.sku_quantities, fields.sku, fields.quantity)
        _add(creator.content_quantities, fields.content_id, fields.quantity)

        product = product_acc.upsert(fields.product_name)
        product.order_ids.add(fields.order_id)
        product.total_quantity += fields.quantity
        _add(product.variants, fields.sku, fields.quantity)
        _add(product.content_quantities, fields.content_id, fields.quantity)

    return AggregateViews(
        content=tuple(sort_by_total(entry.freeze() for entry in content_acc.values())),
        creators=tuple(sort_by_total(entry.freeze() for entry in creator_acc.values())),
        products=tuple(sort_by_total(entry.freeze() for entry in product_acc.values())),
    )


def compute_global_metrics(rows: Sequence[Row], columns: ResolvedColumns) -> GlobalMetrics:
    """
    Headline counts over the unfiltered rows.

    Empty identifiers are not counted; quantities use parse_quantity.
    """
    if not rows:
        return GlobalMetrics()

    orders: set[str] = set()
    creators: set[str] = set()
    contents: set[str] = set()
    total_quantity = 0

    for row in rows:
        order_id = row.get(columns.order_id)
        if order_id:
            orders.add(order_id)
        creator = row.get(columns.creator)
        if creator:
            creators.add(creator)
        content_id = row.get(columns.content_id)
        if content_id:
            contents.add(content_id)
        total_quantity += parse_quantity(row.get(columns.quantity))

    return GlobalMetrics(
        order_count=len(orders),
        total_quantity=total_quantity,
        content_count=len(contents),
        creator_count=len(creators),
    )
