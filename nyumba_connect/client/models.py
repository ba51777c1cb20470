"""Client-side models for conversations and message display."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple


@dataclass(frozen=True)
class Message:
    id: int
    sender_id: int
    sender_name: str
    text: str
    created_at: datetime

    @classmethod
    def from_wire(cls, data: Dict[str, Any]) -> "Message":
        """Decode a message object as returned by the messaging endpoints.

        Raises ``KeyError``, ``TypeError`` or ``ValueError`` on malformed input.
        """
        text = data["text"] if "text" in data else data["message_text"]
        created_at = data["created_at"] if "created_at" in data else data["sent_at"]
        if not isinstance(created_at, datetime):
            created_at = datetime.fromisoformat(str(created_at))
        return cls(
            id=int(data["message_id"]),
            sender_id=int(data["sender_id"]),
            sender_name=str(data.get("sender_name") or ""),
            text=str(text),
            created_at=created_at,
        )


@dataclass
class FetchResult:
    ok: bool = True
    has_new_messages: bool = False
    messages: Tuple[Message, ...] = ()
    total_unread: int = 0

    @classmethod
    def failed(cls) -> "FetchResult":
        return cls(ok=False)


@dataclass
class ConversationSession:
    """State of one open conversation view."""

    conversation_id: Optional[int]
    viewer_id: int
    last_seen_message_id: int = 0
    unread_count: int = 0
    transcript: List[Message] = field(default_factory=list)

    def advance_watermark(self, message_id: int) -> bool:
        """Move the watermark forward; return True if it changed."""
        if message_id > self.last_seen_message_id:
            self.last_seen_message_id = message_id
            return True
        return False
