"""Gotify-style webhook sender."""

from typing import Any, Optional

import httpx

from src.core.config import get_settings
from src.core.exceptions import DeliveryException
from src.core.logging import get_logger
from src.webhooks.builder import OutboundMessage

settings = get_settings()
logger = get_logger(__name__)


class WebhookSender:
    """Delivers notifications with a single POST attempt per message."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Initialize webhook sender.

        Args:
            url: Webhook URL (default from settings)
            timeout: Per-request timeout in seconds (default from settings)
            transport: Custom httpx transport (tests)
        """
        self.url = url or settings.gotify_url
        self.timeout = timeout or settings.webhook_timeout
        self._transport = transport

        if not self.url:
            raise ValueError("Webhook URL is not configured")

        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "WebhookSender":
        """Enter async context manager."""
        await self._ensure_client()
        return self

    async def __aexit__(self, *args: Any) -> None:
        """Exit async context manager."""
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        """Ensure HTTP client is initialized."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                headers={"Content-Type": "application/json"},
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def send(self, message: OutboundMessage) -> None:
        """Post a message to the webhook.

        Args:
            message: Rendered notification

        Raises:
            DeliveryException: On transport errors or a non-2xx response
        """
        client = await self._ensure_client()

        try:
            response = await client.post(self.url, json=message.to_payload())
        except httpx.RequestError as e:
            raise DeliveryException(
                f"Request error: {e}",
                details={"url": self.url},
            ) from e

        if not 200 <= response.status_code < 300:
            raise DeliveryException(
                f"HTTP {response.status_code}: {response.text[:500]}",
                status_code=response.status_code,
                details={"url": self.url},
            )

        logger.debug("webhook_response", status_code=response.status_code)
