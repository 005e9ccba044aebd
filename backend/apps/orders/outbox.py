"""Retryable inventory adjustments for placed orders.

Every stock bookkeeping call of an order is written as an outbox entry before it
is attempted. A failed call leaves its entry behind for ``drain`` to retry; it
never fails the order.

An entry is applied only by the worker that claimed it, and the stock change
commits together with the entry being marked done. A claim older than the lease
is treated as abandoned and may be taken over.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from functools import partial
from typing import Any, Dict, List, Optional, Sequence

from django.conf import settings

from apps.common import get_logger
from apps.common.errors import TransientBackendError
from apps.common.retry import RetryPolicy, retry_async

from .constants import AdjustmentKind
from .dtos import OrderLineDTO
from .errors import InventoryAdjustmentError
from .protocols import InventoryGatewayProtocol, OutboxEntry, OutboxStoreProtocol

logger = get_logger(__name__).bind(component="orders", layer="outbox")

DRAIN_POLICY = RetryPolicy(
    max_attempts=3,
    delay_seconds=0.5,
    retry_on=(TransientBackendError,),
)


def plan_adjustments(lines: Sequence[OrderLineDTO]) -> List[Dict[str, Any]]:
    """One batch entry per variant call, one entry per combo line."""
    variant_items: Dict[int, int] = {}
    for line in lines:
        if line.variant_id is not None:
            variant_items[line.variant_id] = variant_items.get(line.variant_id, 0) + line.quantity
    entries: List[Dict[str, Any]] = []
    if variant_items:
        items = [
            {"variant_id": variant_id, "quantity": quantity}
            for variant_id, quantity in sorted(variant_items.items())
        ]
        entries.append({"kind": AdjustmentKind.DECREMENT_VARIANT_STOCK, "payload": {"items": items}})
        entries.append({"kind": AdjustmentKind.INCREMENT_PURCHASE_COUNTS, "payload": {"items": items}})
    for line in lines:
        if line.combo_id is not None:
            entries.append(
                {
                    "kind": AdjustmentKind.DECREMENT_COMBO_STOCK,
                    "payload": {"combo_id": line.combo_id, "quantity": line.quantity},
                }
            )
    return entries


@dataclass
class DrainReport:
    done: List[int] = field(default_factory=list)
    failed: List[int] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.done) + len(self.failed)


class InventoryOutbox:
    def __init__(
        self,
        store: OutboxStoreProtocol,
        inventory: InventoryGatewayProtocol,
        *,
        max_attempts: Optional[int] = None,
        lease_seconds: Optional[int] = None,
        policy: Optional[RetryPolicy] = None,
    ):
        self.store = store
        self.inventory = inventory
        self.max_attempts = max_attempts or getattr(settings, "STOREFRONT_OUTBOX_MAX_ATTEMPTS", 5)
        self.lease_seconds = lease_seconds or getattr(settings, "STOREFRONT_OUTBOX_LEASE_SECONDS", 300)
        self.policy = policy or DRAIN_POLICY
        self.logger = logger.bind(service="InventoryOutbox")

    async def enqueue(self, order_id: uuid.UUID, lines: Sequence[OrderLineDTO]) -> List[OutboxEntry]:
        """Queue the order's adjustments, claimed for the caller's ``dispatch``."""
        planned = plan_adjustments(lines)
        if not planned:
            return []
        return await self.store.add_many(order_id, planned)

    async def dispatch(self, entries: Sequence[OutboxEntry], **context) -> int:
        """Attempt each claimed entry once. Returns how many are still outstanding."""
        outstanding = 0
        for entry in entries:
            try:
                await self._apply(entry)
            except Exception as exc:
                outstanding += 1
                await self._record_failure(entry, InventoryAdjustmentError(entry.id, exc), **context)
        return outstanding

    async def drain(self, limit: int = 100) -> DrainReport:
        """Retry due entries; ones that keep failing stay queued until max attempts."""
        report = DrainReport()
        entries = await self.store.due(
            max_attempts=self.max_attempts, limit=limit, lease_seconds=self.lease_seconds
        )
        self.logger.info("Draining inventory outbox", due=len(entries))
        for entry in entries:
            if not await self.store.claim(entry.id, lease_seconds=self.lease_seconds):
                self.logger.debug("Adjustment claimed elsewhere", entry_id=entry.id)
                continue
            try:
                await retry_async(
                    lambda entry=entry: self._apply(entry),
                    self.policy,
                    entry_id=entry.id,
                    kind=entry.kind,
                )
            except Exception as exc:
                report.failed.append(entry.id)
                await self._record_failure(entry, InventoryAdjustmentError(entry.id, exc))
                continue
            report.done.append(entry.id)
        return report

    async def backlog(self) -> int:
        return await self.store.backlog()

    async def _apply(self, entry: OutboxEntry) -> None:
        await self.store.apply(entry.id, partial(self._apply_sync, entry.kind, entry.payload))

    def _apply_sync(self, kind: str, payload: Dict[str, Any]) -> None:
        if kind == AdjustmentKind.DECREMENT_VARIANT_STOCK:
            self.inventory.decrement_variant_stock(_quantities(payload))
        elif kind == AdjustmentKind.INCREMENT_PURCHASE_COUNTS:
            self.inventory.increment_purchase_counts(_quantities(payload))
        elif kind == AdjustmentKind.DECREMENT_COMBO_STOCK:
            self.inventory.decrement_combo_stock(
                int(payload["combo_id"]), int(payload["quantity"])
            )
        else:
            raise ValueError(f"Unknown adjustment kind: {kind!r}")

    async def _record_failure(self, entry: OutboxEntry, error: InventoryAdjustmentError, **context) -> None:
        fields = {"order_id": entry.order_id, **context}
        self.logger.failure(
            "Inventory adjustment failed",
            error.cause,
            entry_id=entry.id,
            kind=entry.kind,
            backend_code=error.backend_code.value,
            **fields,
        )
        try:
            await self.store.mark_failed(entry.id, str(error.cause) or error.cause.__class__.__name__)
        except Exception as exc:
            self.logger.failure("Could not record adjustment failure", exc, entry_id=entry.id)


def _quantities(payload: Dict[str, Any]) -> Dict[int, int]:
    return {int(item["variant_id"]): int(item["quantity"]) for item in payload.get("items", [])}
