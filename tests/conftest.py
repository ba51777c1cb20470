"""Shared fixtures: a manual event loop and fakes for the client, a test database for the server."""
import os
import tempfile
from concurrent.futures import Future

_TMP = tempfile.mkdtemp(prefix="nyumba_connect_tests_")
os.environ.setdefault("NYUMBA_CLIENT_LOG", os.path.join(_TMP, "client.log"))
os.environ.setdefault("NYUMBA_SERVER_LOG", os.path.join(_TMP, "server.log"))
os.environ.setdefault("NYUMBA_DATABASE_URL", "sqlite://")
os.environ.setdefault("NYUMBA_UPLOAD_DIR", os.path.join(_TMP, "uploads"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from nyumba_connect.client.fetcher import MessageFetcher  # noqa: E402
from nyumba_connect.client.messenger import PollingMessenger  # noqa: E402
from nyumba_connect.client.models import ConversationSession  # noqa: E402
from nyumba_connect.client.notifier import Notifier  # noqa: E402
from nyumba_connect.client.sender import Sender  # noqa: E402
from nyumba_connect.client.visibility import VisibilityMonitor  # noqa: E402
from nyumba_connect.server import auth, config, mentorship, messages  # noqa: E402
from nyumba_connect.server.database import Base, get_db  # noqa: E402
from nyumba_connect.server.main import app  # noqa: E402
from nyumba_connect.server.models import Mentorship, User  # noqa: E402

# =============================================================================
# Client fakes
# =============================================================================


class ManualTimer:
    def __init__(self, due: int, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualLoop:
    """Deterministic event loop: time moves only through ``advance`` and jobs finish only through ``complete``."""

    def __init__(self):
        self.now = 0
        self.timers = []
        self.pending = []
        self.submitted = 0

    def call_later(self, delay_ms, callback):
        timer = ManualTimer(self.now + delay_ms, callback)
        self.timers.append(timer)
        return timer

    @property
    def live_timers(self):
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def advance(self, ms: int) -> None:
        target = self.now + ms
        while True:
            due = [t for t in self.live_timers if t.due <= target]
            if not due:
                break
            timer = min(due, key=lambda t: t.due)
            self.now = timer.due
            timer.fired = True
            timer.callback()
        self.now = target

    def submit(self, func, callback):
        self.submitted += 1
        self.pending.append((func, callback))

    def complete(self, index: int = 0) -> None:
        func, callback = self.pending.pop(index)
        future = Future()
        try:
            future.set_result(func())
        except Exception as exc:  # noqa: BLE001
            future.set_exception(exc)
        callback(future)

    def complete_all(self) -> None:
        while self.pending:
            self.complete()


EMPTY_FETCH = {"success": True, "has_new_messages": False, "messages": [], "total_unread": 0}


class FakeAPI:
    def __init__(self):
        self.fetch_responses = []
        self.fetch_calls = []
        self.send_response = None
        self.send_calls = []

    def fetch_messages(self, mentorship_id, last_message_id=0):
        self.fetch_calls.append((mentorship_id, last_message_id))
        response = self.fetch_responses.pop(0) if self.fetch_responses else EMPTY_FETCH
        if isinstance(response, Exception):
            raise response
        return response

    def send_message(self, mentorship_id, message_text, csrf_token):
        self.send_calls.append((mentorship_id, message_text, csrf_token))
        if isinstance(self.send_response, Exception):
            raise self.send_response
        return self.send_response


class FakeView:
    def __init__(self, title: str = "Conversation"):
        self.messages = []
        self.scrolls = 0
        self._title = title
        self.icon = None

    def append_message(self, message):
        self.messages.append(message)

    def scroll_to_bottom(self):
        self.scrolls += 1

    def title(self):
        return self._title

    def set_title(self, title):
        self._title = title

    def set_icon(self, icon_name):
        self.icon = icon_name


class FakeNotifications:
    def __init__(self, granted: bool = True, error: Exception = None):
        self.granted = granted
        self.error = error
        self.permission_requests = 0
        self.sent = []

    def request_permission(self):
        self.permission_requests += 1
        if self.error is not None:
            raise self.error
        return self.granted

    def notify(self, title, body):
        self.sent.append((title, body))


def wire_message(message_id, sender_id, sender_name="Alice", text="hello", created_at="2024-05-01 10:00:00"):
    return {
        "message_id": message_id,
        "sender_id": sender_id,
        "sender_name": sender_name,
        "text": text,
        "created_at": created_at,
    }


def fetch_payload(*msgs, total_unread=0):
    return {
        "success": True,
        "has_new_messages": bool(msgs),
        "messages": list(msgs),
        "total_unread": total_unread,
    }


@pytest.fixture
def loop():
    return ManualLoop()


@pytest.fixture
def fake_api():
    return FakeAPI()


@pytest.fixture
def view():
    return FakeView()


@pytest.fixture
def notifications():
    return FakeNotifications()


@pytest.fixture
def visibility():
    return VisibilityMonitor(is_foreground=True)


@pytest.fixture
def make_messenger(loop, fake_api, view, notifications, visibility):
    def _make(conversation_id=7, viewer_id=1, last_seen=0):
        session = ConversationSession(
            conversation_id=conversation_id, viewer_id=viewer_id, last_seen_message_id=last_seen
        )
        return PollingMessenger(
            session,
            loop,
            MessageFetcher(fake_api),
            Sender(fake_api),
            Notifier(view, notifications, viewer_id=viewer_id),
            visibility,
        )

    return _make


# =============================================================================
# Server fixtures
# =============================================================================

TEST_PASSWORD = "correct-horse-battery"


@pytest.fixture
def db_session_factory():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(db_session_factory):
    session = db_session_factory()
    yield session
    session.close()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    path = tmp_path / "uploads"
    path.mkdir()
    monkeypatch.setattr(config, "UPLOAD_DIR", path)
    return path


@pytest.fixture
def client(db_session_factory, upload_dir):
    def override_get_db():
        session = db_session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    auth.TOKEN_STORE.clear()
    messages.RATE_LIMITS.clear()
    mentorship.REQUEST_RATE_LIMITS.clear()
    yield TestClient(app)
    app.dependency_overrides.clear()
    auth.TOKEN_STORE.clear()
    messages.RATE_LIMITS.clear()
    mentorship.REQUEST_RATE_LIMITS.clear()


def create_user(db, login, name, role="student"):
    user = User(login=login, name=name, role=role, password_hash=auth.hash_password(TEST_PASSWORD, rounds=4))
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def login_as(client, login):
    response = client.post("/auth/login", json={"login": login, "password": TEST_PASSWORD})
    assert response.status_code == 200, response.text
    data = response.json()
    return {
        "headers": {"Authorization": f"Bearer {data['token']}"},
        "csrf_token": data["csrf_token"],
        "user": data["user"],
    }


@pytest.fixture
def people(db):
    """Ids of a student, an alumni mentor, an outsider and an admin sharing one active mentorship."""
    student = create_user(db, "student", "Sam Student")
    alumni = create_user(db, "alumni", "Alex Alumni", role="alumni")
    outsider = create_user(db, "outsider", "Olive Outsider")
    admin = create_user(db, "admin", "Ada Admin", role="admin")
    mentorship = Mentorship(student_id=student.id, alumni_id=alumni.id, active=True)
    db.add(mentorship)
    db.commit()
    db.refresh(mentorship)
    return {
        "student": student.id,
        "alumni": alumni.id,
        "outsider": outsider.id,
        "admin": admin.id,
        "mentorship": mentorship.id,
    }
