from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

from .dtos import CartLine, CartSnapshot, LineMeta, SavedItem
from .refs import make_ref, parse_ref_key


class CartLineMapper:
    def to_dto(self, item) -> CartLine:
        return CartLine(
            id=str(item.id),
            ref=make_ref(item.kind, item.target_id),
            quantity=item.quantity,
            unit_price=Decimal(item.unit_price),
            meta=LineMeta(
                name=item.name,
                image=item.image or "",
                size=item.size or None,
                product_id=item.product_id,
            ),
        )

    def many_to_dto(self, items: Iterable) -> List[CartLine]:
        return [self.to_dto(i) for i in items]


class SavedItemMapper:
    def to_dto(self, saved) -> SavedItem:
        product = saved.product
        return SavedItem(
            product_id=saved.product_id,
            name=getattr(product, "name", "") or "",
            image=getattr(product, "image", "") or "",
        )

    def many_to_dto(self, items: Iterable) -> List[SavedItem]:
        return [self.to_dto(i) for i in items]


class SessionCartMapper:
    """Plain-JSON round trip for a guest cart kept in the session."""

    def to_payload(self, snapshot: CartSnapshot) -> Dict[str, Any]:
        return {
            "lines": [
                {
                    "id": line.id,
                    "ref": line.ref.key,
                    "quantity": line.quantity,
                    "unitPrice": str(line.unit_price),
                    "name": line.meta.name,
                    "image": line.meta.image,
                    "size": line.meta.size,
                    "productId": line.meta.product_id,
                }
                for line in snapshot.lines
            ],
            "saved": [
                {"productId": s.product_id, "name": s.name, "image": s.image}
                for s in snapshot.saved
            ],
        }

    def from_payload(self, payload: Optional[Dict[str, Any]]) -> CartSnapshot:
        if not isinstance(payload, dict):
            return CartSnapshot()
        lines: List[CartLine] = []
        seen = set()
        for raw in payload.get("lines") or []:
            line = self._line_from_raw(raw)
            # A tampered session must not break the one-line-per-ref invariant.
            if line is None or line.ref in seen:
                continue
            seen.add(line.ref)
            lines.append(line)
        saved: List[SavedItem] = []
        for raw in payload.get("saved") or []:
            try:
                pid = int(raw.get("productId"))
            except (AttributeError, TypeError, ValueError):
                continue
            if any(s.product_id == pid for s in saved):
                continue
            saved.append(
                SavedItem(
                    product_id=pid,
                    name=str(raw.get("name") or ""),
                    image=str(raw.get("image") or ""),
                )
            )
        return CartSnapshot(lines=tuple(lines), saved=tuple(saved))

    @staticmethod
    def _line_from_raw(raw: Any) -> Optional[CartLine]:
        if not isinstance(raw, dict):
            return None
        try:
            ref = parse_ref_key(raw.get("ref"))
            quantity = int(raw.get("quantity", 0))
            unit_price = Decimal(str(raw.get("unitPrice")))
            product_id = raw.get("productId")
            product_id = int(product_id) if product_id is not None else None
        except (TypeError, ValueError, InvalidOperation):
            return None
        if quantity <= 0 or not raw.get("id"):
            return None
        return CartLine(
            id=str(raw["id"]),
            ref=ref,
            quantity=quantity,
            unit_price=unit_price,
            meta=LineMeta(
                name=str(raw.get("name") or ""),
                image=str(raw.get("image") or ""),
                size=raw.get("size") or None,
                product_id=product_id,
            ),
        )
