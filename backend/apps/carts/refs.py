"""Tagged identity of a cart line: a product variant or a combo."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, ClassVar, Union


@dataclass(frozen=True)
class VariantRef:
    variant_id: int
    kind: ClassVar[str] = "variant"

    @property
    def id(self) -> int:
        return self.variant_id

    @property
    def key(self) -> str:
        return f"{self.kind}:{self.variant_id}"


@dataclass(frozen=True)
class ComboRef:
    combo_id: int
    kind: ClassVar[str] = "combo"

    @property
    def id(self) -> int:
        return self.combo_id

    @property
    def key(self) -> str:
        return f"{self.kind}:{self.combo_id}"


LineRef = Union[VariantRef, ComboRef]


def make_ref(kind: str, ref_id: Any) -> LineRef:
    try:
        ident = int(ref_id)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid {kind} id: {ref_id!r}") from None
    if ident <= 0:
        raise ValueError(f"Invalid {kind} id: {ref_id!r}")
    if kind == VariantRef.kind:
        return VariantRef(ident)
    if kind == ComboRef.kind:
        return ComboRef(ident)
    raise ValueError(f"Unknown line kind: {kind!r}")


def parse_ref_key(key: str) -> LineRef:
    """Inverse of ``ref.key``."""
    kind, sep, raw_id = (key or "").partition(":")
    if not sep:
        raise ValueError(f"Malformed line reference: {key!r}")
    return make_ref(kind, raw_id)
