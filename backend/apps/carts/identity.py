from __future__ import annotations

import asyncio
from enum import Enum
from typing import Optional

from apps.common import get_logger

from .dtos import CartLine, CartSnapshot, MergeReport
from .protocols import CartBackendProtocol
from .store import CartStore
from .strategies import LocalCartStrategy, RemoteCartStrategy

logger = get_logger(__name__).bind(component="carts", layer="identity")


class IdentityState(str, Enum):
    ANONYMOUS = "anonymous"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


class MergeProcedure:
    """Fold a guest cart into an account's persisted cart, once per sign-in.

    Lines are matched by LineRef, never by id. Every insert/update runs
    independently; a failure is logged and recorded in the report without
    aborting the rest of the batch.
    """

    def __init__(self, backend: CartBackendProtocol):
        self.backend = backend
        self.logger = logger.bind(service="MergeProcedure")

    async def run(self, user_id: int, local: CartSnapshot) -> MergeReport:
        report = MergeReport()
        if not local.has_content:
            return report
        log = self.logger.bind(user_id=user_id)
        log.info(
            "Merging guest cart", lines=len(local.lines), saved=len(local.saved)
        )
        if local.lines:
            await self._merge_lines(user_id, local, report, log)
        if local.saved:
            await self._merge_saved(user_id, local, report, log)
        if report.ok:
            log.info("Guest cart merged", merged=report.merged_count)
        else:
            log.error(
                "Guest cart merged with losses",
                merged=report.merged_count,
                failed=[ref.key for ref in report.failed],
                saved_failed=report.saved_failed,
            )
        return report

    async def _merge_lines(self, user_id, local: CartSnapshot, report: MergeReport, log):
        try:
            persisted = await self.backend.list_lines(user_id)
        except Exception as exc:
            # Without the persisted cart every insert could duplicate a line.
            log.failure("Could not fetch persisted cart for merge", exc)
            report.failed.extend(line.ref for line in local.lines)
            return
        by_ref = {line.ref: line for line in persisted}
        outcomes = await asyncio.gather(
            *(self._merge_line(user_id, line, by_ref.get(line.ref)) for line in local.lines),
            return_exceptions=True,
        )
        for line, outcome in zip(local.lines, outcomes):
            if isinstance(outcome, Exception):
                log.failure("Merge of cart line failed", outcome, ref=line.ref.key)
                report.failed.append(line.ref)
            elif outcome == "updated":
                report.updated.append(line.ref)
            else:
                report.inserted.append(line.ref)

    async def _merge_line(
        self, user_id: int, local: CartLine, persisted: Optional[CartLine]
    ) -> str:
        if persisted is not None:
            await self.backend.update_quantity(
                user_id, persisted.id, persisted.quantity + local.quantity
            )
            return "updated"
        await self.backend.insert_line(
            user_id, local.ref, local.quantity, local.unit_price, local.meta
        )
        return "inserted"

    async def _merge_saved(self, user_id, local: CartSnapshot, report: MergeReport, log):
        outcomes = await asyncio.gather(
            *(self.backend.insert_saved(user_id, item) for item in local.saved),
            return_exceptions=True,
        )
        for item, outcome in zip(local.saved, outcomes):
            if isinstance(outcome, Exception):
                log.failure("Merge of saved item failed", outcome, product_id=item.product_id)
                report.saved_failed.append(item.product_id)
            else:
                report.saved_inserted.append(item.product_id)


class IdentityTransition:
    """Drives the cart store across sign-in and sign-out."""

    def __init__(
        self,
        store: CartStore,
        backend: CartBackendProtocol,
        *,
        merge: Optional[MergeProcedure] = None,
        user_id: Optional[int] = None,
    ):
        self.store = store
        self.backend = backend
        self.merge = merge or MergeProcedure(backend)
        self.user_id = user_id
        self.state = (
            IdentityState.AUTHENTICATED if user_id is not None else IdentityState.ANONYMOUS
        )
        self.logger = logger.bind(service="IdentityTransition")

    async def sign_in(self, user_id: int) -> MergeReport:
        if self.state is IdentityState.AUTHENTICATED:
            if self.user_id == user_id:
                self.logger.debug("Sign-in ignored; already authenticated", user_id=user_id)
                return MergeReport()
            await self.sign_out()
        self.state = IdentityState.AUTHENTICATING
        self.logger.info("Signing in", user_id=user_id)
        local = self.store.snapshot()
        report = MergeReport()
        try:
            if local.has_content:
                report = await self.merge.run(user_id, local)
            # The guest cart is dropped whatever the per-line outcome was.
            self.store.switch_strategy(RemoteCartStrategy(self.backend, user_id))
            await self.store.reload()
        except Exception:
            self.state = IdentityState.ANONYMOUS
            raise
        self.user_id = user_id
        self.state = IdentityState.AUTHENTICATED
        self.logger.info(
            "Signed in",
            user_id=user_id,
            lines=len(self.store.snapshot().lines),
            merge_ok=report.ok,
        )
        return report

    async def sign_out(self) -> None:
        self.logger.info("Signing out", user_id=self.user_id)
        self.store.switch_strategy(LocalCartStrategy())
        self.user_id = None
        self.state = IdentityState.ANONYMOUS
