from __future__ import annotations

from urllib.parse import quote

from apps.common import get_logger

from .dtos import HandoffResult
from .errors import HandoffUnavailableError
from .protocols import LinkOpenerProtocol

logger = get_logger(__name__).bind(component="orders", layer="handoff")


def messaging_link(phone: str, text: str) -> str:
    return f"whatsapp://send?phone={quote(phone)}&text={quote(text, safe='')}"


def phone_link(phone: str) -> str:
    return f"tel:{phone}"


class ClientLinkOpener:
    """Hands the link back to the client, which opens it on the device.

    The client reports up front whether a messaging app is installed.
    """

    def __init__(self, messaging_available: bool = True):
        self.messaging_available = messaging_available

    async def open(self, url: str) -> None:
        if url.startswith("whatsapp:") and not self.messaging_available:
            raise HandoffUnavailableError("Messaging app is not available")


class OrderHandoff:
    def __init__(self, phone: str, opener: LinkOpenerProtocol):
        self.phone = phone
        self.opener = opener
        self.logger = logger.bind(service="OrderHandoff")

    async def dispatch(self, summary: str, **context) -> HandoffResult:
        """Open the messaging link, or fall back to a phone link. Never raises."""
        if not self.phone:
            self.logger.warning("No hand-off phone configured; order not handed off", **context)
            return HandoffResult(channel="none", url="")
        url = messaging_link(self.phone, summary)
        try:
            await self.opener.open(url)
            return HandoffResult(channel="messaging", url=url, phone=self.phone)
        except HandoffUnavailableError as exc:
            self.logger.failure("Messaging hand-off unavailable", exc, **context)
        except Exception as exc:
            self.logger.failure("Messaging hand-off failed", exc, **context)
        return HandoffResult(channel="phone", url=phone_link(self.phone), phone=self.phone)
