from dataclasses import dataclass
from typing import Any, Dict, Optional

from .refs import ComboRef, LineRef, VariantRef, make_ref


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(value) if value is not None else None
    except (ValueError, TypeError):
        return None


@dataclass
class AddItemCommand:
    ref: LineRef
    quantity: int = 1

    @staticmethod
    def from_raw(raw: Dict[str, Any]) -> Optional["AddItemCommand"]:
        """Build from ``{"variantId"|"comboId": id, "quantity": n}``; exactly one target."""
        if not isinstance(raw, dict):
            return None
        variant_id = raw.get("variantId", raw.get("variant_id"))
        combo_id = raw.get("comboId", raw.get("combo_id"))
        if (variant_id is None) == (combo_id is None):
            return None
        kind = VariantRef.kind if variant_id is not None else ComboRef.kind
        try:
            ref = make_ref(kind, variant_id if variant_id is not None else combo_id)
        except ValueError:
            return None
        quantity = raw.get("quantity", 1)
        quantity = _to_int(quantity)
        if quantity is None or quantity < 1:
            return None
        return AddItemCommand(ref=ref, quantity=quantity)


@dataclass
class SetQuantityCommand:
    line_id: str
    quantity: int

    @property
    def removes(self) -> bool:
        return self.quantity <= 0

    @staticmethod
    def from_raw(line_id: str, raw: Dict[str, Any]) -> Optional["SetQuantityCommand"]:
        if not isinstance(raw, dict) or not line_id:
            return None
        quantity = _to_int(raw.get("quantity"))
        if quantity is None:
            return None
        return SetQuantityCommand(line_id=str(line_id), quantity=quantity)


@dataclass
class ToggleSavedCommand:
    product_id: int

    @staticmethod
    def from_raw(raw: Dict[str, Any]) -> Optional["ToggleSavedCommand"]:
        if not isinstance(raw, dict):
            return None
        pid = _to_int(raw.get("productId", raw.get("product_id")))
        if not pid or pid <= 0:
            return None
        return ToggleSavedCommand(product_id=pid)
