from __future__ import annotations

from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Optional, Tuple

from .refs import LineRef


@dataclass(frozen=True)
class LineMeta:
    name: str
    image: str = ""
    size: Optional[str] = None
    product_id: Optional[int] = None


@dataclass(frozen=True)
class CatalogEntry:
    """What the catalog knows about a line target at the time it is added."""

    ref: LineRef
    unit_price: Decimal
    meta: LineMeta


@dataclass(frozen=True)
class CartLine:
    id: str
    ref: LineRef
    quantity: int
    unit_price: Decimal
    meta: LineMeta

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity

    @property
    def is_persisted(self) -> bool:
        return not self.id.startswith("local-")


@dataclass(frozen=True)
class SavedItem:
    product_id: int
    name: str = ""
    image: str = ""


@dataclass(frozen=True)
class CartSnapshot:
    """Immutable view of a cart. Mutators return a new snapshot."""

    lines: Tuple[CartLine, ...] = ()
    saved: Tuple[SavedItem, ...] = ()
    mode: str = "local"

    @property
    def subtotal(self) -> Decimal:
        return sum((line.line_total for line in self.lines), Decimal("0"))

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    @property
    def has_content(self) -> bool:
        return bool(self.lines or self.saved)

    def find_line(self, line_id: str) -> Optional[CartLine]:
        return next((line for line in self.lines if line.id == line_id), None)

    def find_by_ref(self, ref: LineRef) -> Optional[CartLine]:
        return next((line for line in self.lines if line.ref == ref), None)

    def is_saved(self, product_id: int) -> bool:
        return any(item.product_id == product_id for item in self.saved)

    def with_added(
        self,
        ref: LineRef,
        quantity: int,
        unit_price: Decimal,
        meta: LineMeta,
        new_id: str,
    ) -> "CartSnapshot":
        existing = self.find_by_ref(ref)
        if existing:
            return self.with_quantity(existing.id, existing.quantity + 1)
        line = CartLine(
            id=new_id, ref=ref, quantity=quantity, unit_price=unit_price, meta=meta
        )
        return replace(self, lines=self.lines + (line,))

    def with_quantity(self, line_id: str, quantity: int) -> "CartSnapshot":
        if quantity <= 0:
            return self.without_line(line_id)
        return replace(
            self,
            lines=tuple(
                replace(line, quantity=quantity) if line.id == line_id else line
                for line in self.lines
            ),
        )

    def without_line(self, line_id: str) -> "CartSnapshot":
        return replace(
            self, lines=tuple(line for line in self.lines if line.id != line_id)
        )

    def with_saved_toggled(self, item: SavedItem) -> "CartSnapshot":
        if self.is_saved(item.product_id):
            kept = tuple(s for s in self.saved if s.product_id != item.product_id)
            return replace(self, saved=kept)
        return replace(self, saved=self.saved + (item,))

    def emptied(self) -> "CartSnapshot":
        return replace(self, lines=())

    def with_lines(self, lines) -> "CartSnapshot":
        return replace(self, lines=tuple(lines))


@dataclass
class MergeReport:
    updated: list = field(default_factory=list)
    inserted: list = field(default_factory=list)
    failed: list = field(default_factory=list)
    saved_inserted: list = field(default_factory=list)
    saved_failed: list = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (self.failed or self.saved_failed)

    @property
    def merged_count(self) -> int:
        return len(self.updated) + len(self.inserted)
