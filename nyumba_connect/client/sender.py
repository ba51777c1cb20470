"""Outgoing message validation and delivery."""
from typing import Optional

from .api import APIClient
from .errors import ApplicationError, SendError, TransportError, ValidationError
from .logging_config import configure_logging
from .models import Message
from ..shared.utils import validate_message_text

logger = configure_logging()

SEND_FALLBACK_ERROR = "Failed to send message"
INVALID_CONVERSATION_ERROR = "Invalid conversation"


class Sender:
    def __init__(self, api: APIClient):
        self.api = api

    @staticmethod
    def validate(conversation_id: Optional[int], text: str) -> None:
        errors = validate_message_text(text)
        if conversation_id is None:
            errors.insert(0, INVALID_CONVERSATION_ERROR)
        if errors:
            raise ValidationError(errors)

    def send(self, conversation_id: Optional[int], text: str, auth_token: str) -> Message:
        self.validate(conversation_id, text)
        try:
            payload = self.api.send_message(conversation_id, text, auth_token)
        except TransportError as exc:
            logger.warning("SEND_FAIL mentorship_id=%s reason=transport error=%s", conversation_id, exc)
            raise SendError(SEND_FALLBACK_ERROR) from exc

        if not payload.get("success"):
            error = payload.get("error") or SEND_FALLBACK_ERROR
            logger.info("SEND_FAIL mentorship_id=%s reason=server error=%s", conversation_id, error)
            raise ApplicationError(error)

        try:
            message = Message.from_wire(payload.get("message") or payload)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("SEND_FAIL mentorship_id=%s reason=decode error=%s", conversation_id, exc)
            raise SendError(SEND_FALLBACK_ERROR) from exc
        logger.info("MESSAGE_SENT mentorship_id=%s message_id=%s", conversation_id, message.id)
        return message
