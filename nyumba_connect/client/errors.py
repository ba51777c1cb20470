"""Error types raised by the messaging client."""
from typing import List


class MessagingError(Exception):
    """Base class for messaging client errors."""


class ValidationError(MessagingError):
    """Raised before any network call when the outgoing message breaks a rule."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class TransportError(MessagingError):
    """Network failure, unexpected status or undecodable response."""


class SendError(MessagingError):
    """An outgoing message could not be delivered."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ApplicationError(SendError):
    """The server answered with ``success: false``."""


class NotificationPermissionError(MessagingError):
    """The host refused permission to raise system notifications."""


class APIError(MessagingError):
    """A non-messaging request was rejected; carries the server's error text."""

    def __init__(self, message: str, status_code: int = 0):
        self.message = message
        self.status_code = status_code
        super().__init__(message)
