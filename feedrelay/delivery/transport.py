"""
Delivery transports for outbound chat messages.

Provides an ABC for transports plus a Telegram Bot API implementation.
Errors are classified here so the engine only has to distinguish
"destination gone for good" from everything else.
"""

import html
import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from feedrelay.fetching.schemas import FeedItem

logger = logging.getLogger(__name__)

# Bot API descriptions that mean the chat will never accept messages again
PERMANENT_DESCRIPTIONS: tuple[str, ...] = (
    "bot was blocked",
    "chat not found",
    "user is deactivated",
    "bot was kicked",
    "group chat was deleted",
)


class DeliveryError(Exception):
    """Base exception for delivery failures."""

    def __init__(
        self,
        chat_id: str,
        message: str,
        error_code: int | None = None,
        description: str | None = None,
        retry_after: float | None = None,
    ):
        super().__init__(message)
        self.chat_id = chat_id
        self.error_code = error_code
        self.description = description
        self.retry_after = retry_after


class TransientDeliveryError(DeliveryError):
    """Send failed; the item stays undelivered and is retried next cycle."""


class PermanentDeliveryError(DeliveryError):
    """Destination is permanently unreachable; the subscriber should be dropped."""


def classify_api_error(
    chat_id: str,
    error_code: int | None,
    description: str | None,
    retry_after: float | None = None,
) -> DeliveryError:
    """Map a Bot API error response to a classified DeliveryError."""
    text = str(description or "").lower()
    message = f"Delivery to {chat_id} failed ({error_code}): {description}"
    if error_code == 403 or any(marker in text for marker in PERMANENT_DESCRIPTIONS):
        return PermanentDeliveryError(
            chat_id, message, error_code=error_code, description=description,
        )
    return TransientDeliveryError(
        chat_id,
        message,
        error_code=error_code,
        description=description,
        retry_after=retry_after,
    )


def render_item_html(item: FeedItem) -> str:
    """Format a feed item as a Telegram HTML message."""
    title = html.escape(item.title or item.link)
    link = html.escape(item.link, quote=True)
    return f'<b>{title}</b>\n\n<a href="{link}"><i>Source</i></a>'


class DeliveryTransport(ABC):
    """Abstract base for outbound message transports."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this transport (e.g. 'telegram')."""

    @abstractmethod
    async def deliver(
        self,
        chat_id: str,
        topic_id: int | None,
        content: str,
    ) -> Any:
        """Send one message.

        Args:
            chat_id: Destination chat.
            topic_id: Optional thread/topic inside the chat.
            content: Rendered message body.

        Returns:
            Transport-specific receipt (e.g. message id).

        Raises:
            PermanentDeliveryError: Destination is gone.
            TransientDeliveryError: Any other failure.
        """

    async def close(self) -> None:
        """Release any held resources."""


class TelegramTransport(DeliveryTransport):
    """Sends HTML messages through the Telegram Bot API ``sendMessage``."""

    def __init__(
        self,
        bot_token: str,
        api_base: str = "https://api.telegram.org",
        timeout: float = 10.0,
        disable_preview: bool = False,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._url = f"{api_base.rstrip('/')}/bot{bot_token}/sendMessage"
        self._timeout = timeout
        self._disable_preview = disable_preview
        self._client = client
        self._owns_client = client is None

    @property
    def name(self) -> str:
        return "telegram"

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    def _build_payload(
        self, chat_id: str, topic_id: int | None, content: str,
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "chat_id": chat_id,
            "text": content,
            "parse_mode": "HTML",
            "disable_web_page_preview": self._disable_preview,
        }
        if topic_id:
            payload["message_thread_id"] = int(topic_id)
        return payload

    async def deliver(
        self,
        chat_id: str,
        topic_id: int | None,
        content: str,
    ) -> int | None:
        payload = self._build_payload(chat_id, topic_id, content)
        try:
            resp = await self._get_client().post(self._url, json=payload)
        except httpx.TimeoutException as e:
            raise TransientDeliveryError(
                chat_id, f"Delivery to {chat_id} timed out"
            ) from e
        except httpx.HTTPError as e:
            raise TransientDeliveryError(
                chat_id, f"Delivery to {chat_id} failed: {type(e).__name__}: {e}"
            ) from e

        try:
            body = resp.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            body = {}

        if resp.is_success and body.get("ok", True):
            result = body.get("result")
            return result.get("message_id") if isinstance(result, dict) else None

        parameters = body.get("parameters")
        raise classify_api_error(
            chat_id,
            body.get("error_code", resp.status_code),
            body.get("description", resp.text[:200]),
            retry_after=(
                parameters.get("retry_after") if isinstance(parameters, dict) else None
            ),
        )

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None


class LoggingTransport(DeliveryTransport):
    """Writes messages to the log instead of sending them (local runs)."""

    def __init__(self) -> None:
        self._sent = 0

    @property
    def name(self) -> str:
        return "log"

    @property
    def sent_count(self) -> int:
        return self._sent

    async def deliver(
        self,
        chat_id: str,
        topic_id: int | None,
        content: str,
    ) -> int:
        self._sent += 1
        logger.info("[%s/%s] %s", chat_id, topic_id or "-", content.replace("\n", " "))
        return self._sent
