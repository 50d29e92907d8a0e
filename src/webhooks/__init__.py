"""Webhook notification system."""

from src.webhooks.builder import OutboundMessage, build
from src.webhooks.dispatcher import DispatchResult, NotificationDispatcher
from src.webhooks.sender import WebhookSender

__all__ = [
    "DispatchResult",
    "NotificationDispatcher",
    "OutboundMessage",
    "WebhookSender",
    "build",
]
