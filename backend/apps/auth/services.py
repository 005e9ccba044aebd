from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

from asgiref.sync import sync_to_async
from rest_framework_simplejwt.tokens import RefreshToken

from apps.carts.dtos import MergeReport
from apps.carts.services import CartService
from apps.carts.session import Shopper
from apps.common import get_logger

logger = get_logger(__name__).bind(component="auth", layer="service")


def merge_payload(report: Optional[MergeReport]) -> Dict[str, Any]:
    if report is None:
        return {"merged": 0, "ok": False, "failed": [], "savedFailed": []}
    return {
        "merged": report.merged_count,
        "ok": report.ok,
        "failed": [ref.key for ref in report.failed],
        "savedFailed": list(report.saved_failed),
    }


class SessionService:
    """Moves the shopper's cart across sign-in and sign-out."""

    def __init__(self, carts: CartService):
        self.carts = carts
        self.logger = logger.bind(service="SessionService")

    async def sign_in(self, shopper: Shopper, user_id: int) -> Dict[str, Any]:
        try:
            report = await self.carts.sign_in(shopper, user_id)
        except Exception as exc:
            # Tokens are still issued; the guest cart stays in the session.
            self.logger.failure("Guest cart merge failed", exc, user_id=user_id)
            return merge_payload(None)
        self.logger.info(
            "User signed in", user_id=user_id, merged=report.merged_count, ok=report.ok
        )
        return merge_payload(report)

    async def sign_out(
        self, shopper: Shopper, refresh_token: Optional[str]
    ) -> Optional[Tuple[str, str, Optional[Dict[str, Any]]]]:
        if not refresh_token:
            self.logger.warning("Logout rejected: missing refresh token", actor_id=shopper.user_id)
            return ("VALIDATION_ERROR", "Invalid token", {"refresh": None})
        try:
            await sync_to_async(_blacklist)(refresh_token)
        except Exception as exc:
            self.logger.warning(
                "Logout failed: token error", actor_id=shopper.user_id, error=str(exc)
            )
            return ("VALIDATION_ERROR", "Invalid token", {"error": str(exc)})
        await self.carts.sign_out(shopper)
        self.logger.info("User logged out", actor_id=shopper.user_id)
        return None


def _blacklist(refresh_token: str) -> None:
    RefreshToken(refresh_token).blacklist()
