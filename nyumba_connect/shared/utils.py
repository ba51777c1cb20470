"""Shared utility functions."""
from typing import List

MAX_MESSAGE_LENGTH = 2000

EMPTY_MESSAGE_ERROR = "Message cannot be empty"
MESSAGE_TOO_LONG_ERROR = f"Message is too long (maximum {MAX_MESSAGE_LENGTH} characters)"


def validate_message_text(text: str, max_length: int = MAX_MESSAGE_LENGTH) -> List[str]:
    """Return the list of rules the message text violates (empty when valid)."""
    errors: List[str] = []
    if not text or not text.strip():
        errors.append(EMPTY_MESSAGE_ERROR)
    if text and len(text) > max_length:
        errors.append(MESSAGE_TOO_LONG_ERROR)
    return errors
