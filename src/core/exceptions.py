"""Custom exceptions for the push notification bridge."""

from typing import Optional


class BridgeException(Exception):
    """Base exception for all bridge errors."""

    def __init__(self, message: str, details: dict | None = None) -> None:
        """Initialize exception with message and optional details.

        Args:
            message: Error message
            details: Additional error details
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationException(BridgeException):
    """Configuration error."""

    pass


class RuleLoadException(ConfigurationException):
    """A notification rule document could not be loaded."""

    pass


class EventException(BridgeException):
    """Exceptions related to inbound events."""

    pass


class MalformedEventException(EventException):
    """Event envelope or payload has an unexpected shape."""

    pass


class EventChannelException(EventException):
    """Event socket could not be opened or registered."""

    pass


class DeliveryException(BridgeException):
    """Webhook delivery failed."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: dict | None = None,
    ) -> None:
        """Initialize delivery exception.

        Args:
            message: Error message
            status_code: HTTP status code, if a response was received
            details: Additional error details
        """
        super().__init__(message, details)
        self.status_code = status_code
