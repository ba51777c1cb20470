"""Polling fetch of new conversation messages."""
from typing import Optional

from .api import APIClient
from .errors import TransportError
from .logging_config import configure_logging
from .models import FetchResult, Message

logger = configure_logging()


class MessageFetcher:
    """Fetches messages newer than a watermark.

    Failures are logged and reported as a failed ``FetchResult`` so the poll
    loop keeps running; nothing is raised to the caller.
    """

    def __init__(self, api: APIClient):
        self.api = api

    def fetch_new_messages(self, conversation_id: Optional[int], last_seen_message_id: int) -> FetchResult:
        if conversation_id is None:
            return FetchResult()
        try:
            payload = self.api.fetch_messages(conversation_id, last_message_id=last_seen_message_id)
        except TransportError as exc:
            logger.warning("FETCH_FAIL mentorship_id=%s reason=transport error=%s", conversation_id, exc)
            return FetchResult.failed()

        if not payload.get("success"):
            logger.warning(
                "FETCH_FAIL mentorship_id=%s reason=server error=%s", conversation_id, payload.get("error")
            )
            return FetchResult.failed()

        try:
            messages = sorted((Message.from_wire(m) for m in payload.get("messages") or []), key=lambda m: m.id)
            total_unread = max(0, int(payload.get("total_unread") or 0))
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("FETCH_FAIL mentorship_id=%s reason=decode error=%s", conversation_id, exc)
            return FetchResult.failed()

        return FetchResult(
            ok=True,
            has_new_messages=bool(payload.get("has_new_messages", bool(messages))),
            messages=tuple(messages),
            total_unread=total_unread,
        )
