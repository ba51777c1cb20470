"""Application controller logic for the PyQt GUI client."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .. import api
from ..fetcher import MessageFetcher
from ..messenger import PollingMessenger
from ..models import ConversationSession, Message
from ..notifier import ConversationView, NotificationBackend, Notifier
from ..scheduler import EventLoop
from ..sender import Sender
from ..storage import clear_auth, get_csrf_token, get_server_url, get_token, get_user, store_auth, store_server_url
from ..visibility import VisibilityMonitor


class ChatController:
    """Encapsulates network calls and messenger wiring for the GUI."""

    def __init__(self, base_url: Optional[str] = None):
        self.base_url = base_url or get_server_url() or ""
        if self.base_url:
            self.api = api.APIClient(self.base_url, token=get_token())
        else:
            self.api = None
        self.user = get_user()
        self.csrf_token: Optional[str] = get_csrf_token()

    def set_base_url(self, url: str) -> None:
        self.base_url = url.rstrip("/")
        store_server_url(self.base_url)
        self.api = api.APIClient(self.base_url, token=get_token())

    def ensure_ready(self) -> None:
        if not self.api:
            raise RuntimeError("Server URL not configured")

    @property
    def is_admin(self) -> bool:
        return bool(self.user and self.user.get("role") == "admin")

    def login(self, login: str, password: str) -> Dict[str, Any]:
        self.ensure_ready()
        response = self.api.login(login, password)
        store_auth(response["token"], response["csrf_token"], response["user"])
        self.user = response["user"]
        self.csrf_token = response["csrf_token"]
        return response

    def logout(self) -> None:
        clear_auth()
        self.user = None
        self.csrf_token = None
        if self.api:
            self.api.token = None

    def list_conversations(self) -> List[Dict[str, Any]]:
        self.ensure_ready()
        return self.api.list_conversations()

    def load_history(self, mentorship_id: int) -> Tuple[List[Message], int]:
        """Return every message of the conversation so far and the highest id seen."""
        self.ensure_ready()
        result = MessageFetcher(self.api).fetch_new_messages(mentorship_id, 0)
        if not result.ok:
            raise RuntimeError("Could not load conversation")
        messages = list(result.messages)
        return messages, max((m.id for m in messages), default=0)

    def open_conversation(
        self,
        mentorship_id: int,
        last_message_id: int,
        view: ConversationView,
        loop: EventLoop,
        visibility: VisibilityMonitor,
        notifications: Optional[NotificationBackend] = None,
    ) -> PollingMessenger:
        self.ensure_ready()
        if not self.user:
            raise RuntimeError("Not logged in")
        session = ConversationSession(
            conversation_id=mentorship_id, viewer_id=self.user["id"], last_seen_message_id=last_message_id
        )
        return PollingMessenger(
            session,
            loop,
            MessageFetcher(self.api),
            Sender(self.api),
            Notifier(view, notifications, viewer_id=self.user["id"]),
            visibility,
        )

    def list_resources(self, page: int = 1, search: str = "", sort: str = "created_at", order: str = "DESC"):
        self.ensure_ready()
        return self.api.list_resources(page=page, search=search, sort=sort, order=order)

    def download_resource(self, resource: Dict[str, Any], dest_dir: Path) -> Path:
        self.ensure_ready()
        return self.api.download_resource(resource["id"], dest_dir, resource["file_name"])

    def delete_resource(self, resource_id: int) -> Dict[str, Any]:
        self.ensure_ready()
        return self.api.delete_resource(resource_id, self.csrf_token or "")

    @property
    def is_student(self) -> bool:
        return bool(self.user and self.user.get("role") == "student")

    @property
    def is_alumni(self) -> bool:
        return bool(self.user and self.user.get("role") == "alumni")

    def list_alumni(self) -> List[Dict[str, Any]]:
        self.ensure_ready()
        return self.api.list_alumni()

    def request_mentorship(self, alumni_id: int, message: str) -> Dict[str, Any]:
        self.ensure_ready()
        return self.api.send_mentorship_request(alumni_id, message, self.csrf_token or "")

    def list_mentorship_requests(self) -> Dict[str, Any]:
        self.ensure_ready()
        return self.api.list_mentorship_requests()

    def respond_to_request(self, request_id: int, accept: bool) -> Optional[int]:
        """Accept or decline a pending request; returns the mentorship id on accept."""
        self.ensure_ready()
        response = "accepted" if accept else "declined"
        return self.api.respond_mentorship_request(request_id, response, self.csrf_token or "").get("mentorship_id")


__all__ = ["ChatController"]
