"""Tests for the webhook sender."""

import json

import httpx
import pytest
from pytest_mock import MockerFixture

from src.core.exceptions import DeliveryException
from src.webhooks.builder import OutboundMessage
from src.webhooks.sender import WebhookSender

URL = "http://gotify.local/message?token=abc"
MESSAGE = OutboundMessage(title="Hi Ann", body="new comment", priority=5)


def test_sender_initialization() -> None:
    """Test sender configuration."""
    sender = WebhookSender(url=URL, timeout=3.0)

    assert sender.url == URL
    assert sender.timeout == 3.0


def test_sender_requires_url(mocker: MockerFixture) -> None:
    """Test that a missing URL is rejected at construction."""
    mocker.patch("src.webhooks.sender.settings.gotify_url", None)

    with pytest.raises(ValueError):
        WebhookSender()


@pytest.mark.asyncio
async def test_send_posts_json() -> None:
    """Test the request sent to the webhook."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"id": 1})

    async with WebhookSender(url=URL, transport=httpx.MockTransport(handler)) as sender:
        await sender.send(MESSAGE)

    assert len(requests) == 1
    assert requests[0].method == "POST"
    assert str(requests[0].url) == URL
    assert json.loads(requests[0].content) == {
        "title": "Hi Ann",
        "message": "new comment",
        "priority": 5,
    }


@pytest.mark.asyncio
async def test_send_non_success_status() -> None:
    """Test that non-2xx responses raise DeliveryException."""
    transport = httpx.MockTransport(lambda request: httpx.Response(401, text="unauthorized"))

    async with WebhookSender(url=URL, transport=transport) as sender:
        with pytest.raises(DeliveryException) as exc_info:
            await sender.send(MESSAGE)

    assert exc_info.value.status_code == 401
    assert "unauthorized" in exc_info.value.message


@pytest.mark.asyncio
async def test_send_transport_error() -> None:
    """Test that connection errors raise DeliveryException."""

    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with WebhookSender(url=URL, transport=httpx.MockTransport(handler)) as sender:
        with pytest.raises(DeliveryException) as exc_info:
            await sender.send(MESSAGE)

    assert exc_info.value.status_code is None


@pytest.mark.asyncio
async def test_send_single_attempt() -> None:
    """Test that a failed delivery is not retried."""
    calls = 0

    def handler(request: httpx.Request) -> httpx.Response:
        nonlocal calls
        calls += 1
        return httpx.Response(503)

    async with WebhookSender(url=URL, transport=httpx.MockTransport(handler)) as sender:
        with pytest.raises(DeliveryException):
            await sender.send(MESSAGE)

    assert calls == 1


@pytest.mark.asyncio
async def test_sender_close() -> None:
    """Test that closing releases the client."""
    sender = WebhookSender(url=URL)
    await sender._ensure_client()
    assert sender._client is not None

    await sender.close()

    assert sender._client is None
