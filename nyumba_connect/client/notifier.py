"""Transcript updates, system notifications and unread badges."""
import re
from typing import Iterable, Optional, Protocol

from .config import APP_NAME, ICON_DEFAULT, ICON_UNREAD
from .errors import NotificationPermissionError
from .logging_config import configure_logging
from .models import Message

logger = configure_logging()

UNREAD_PREFIX = re.compile(r"^\(\d+\)\s*")


class ConversationView(Protocol):
    """Display layer of an open conversation."""

    def append_message(self, message: Message) -> None: ...

    def scroll_to_bottom(self) -> None: ...

    def title(self) -> str: ...

    def set_title(self, title: str) -> None: ...

    def set_icon(self, icon_name: str) -> None: ...


class NotificationBackend(Protocol):
    def request_permission(self) -> bool: ...

    def notify(self, title: str, body: str) -> None: ...


def badge_title(title: str, count: int) -> str:
    """Return ``title`` carrying exactly one ``(<count>) `` prefix, or none for zero."""
    base = UNREAD_PREFIX.sub("", title)
    return f"({count}) {base}" if count > 0 else base


class Notifier:
    def __init__(self, view: ConversationView, backend: Optional[NotificationBackend], viewer_id: int):
        self.view = view
        self.backend = backend
        self.viewer_id = viewer_id
        self._permission_requested = False
        self._permission_granted = False

    @property
    def permission_granted(self) -> bool:
        return self._permission_granted

    def request_permission(self) -> None:
        if self._permission_requested:
            return
        self._permission_requested = True
        if self.backend is None:
            return
        try:
            self._permission_granted = bool(self.backend.request_permission())
        except NotificationPermissionError as exc:
            logger.info("NOTIFICATIONS_DENIED reason=%s", exc)
            self._permission_granted = False

    def on_messages_arrived(self, messages: Iterable[Message], is_foreground: bool) -> None:
        arrived = list(messages)
        for message in arrived:
            self.view.append_message(message)
        if arrived:
            self.view.scroll_to_bottom()
        if is_foreground or not self._permission_granted:
            return
        for message in arrived:
            if message.sender_id == self.viewer_id:
                continue
            try:
                self.backend.notify(APP_NAME, f"New message from {message.sender_name}")
            except NotificationPermissionError:
                self._permission_granted = False
                return

    def on_unread_count_changed(self, count: int) -> None:
        count = max(0, count)
        self.view.set_title(badge_title(self.view.title(), count))
        self.view.set_icon(ICON_UNREAD if count > 0 else ICON_DEFAULT)
