"""Tests for transcript updates, notifications and the unread badge."""
from datetime import datetime

import pytest

from conftest import FakeNotifications, FakeView
from nyumba_connect.client.errors import NotificationPermissionError
from nyumba_connect.client.models import Message
from nyumba_connect.client.notifier import Notifier, badge_title


def message(message_id, sender_id, sender_name="Alex"):
    return Message(message_id, sender_id, sender_name, "hi", datetime(2024, 5, 1, 10, 0))


@pytest.mark.parametrize(
    "title,count,expected",
    [
        ("Inbox", 5, "(5) Inbox"),
        ("(5) Inbox", 5, "(5) Inbox"),
        ("(12) Inbox", 3, "(3) Inbox"),
        ("(3) Inbox", 0, "Inbox"),
        ("Inbox", 0, "Inbox"),
    ],
)
def test_badge_title(title, count, expected):
    assert badge_title(title, count) == expected


class TestUnreadBadge:
    def test_repeated_counts_never_accumulate_prefixes(self):
        view = FakeView("Thread")
        notifier = Notifier(view, None, viewer_id=1)
        for _ in range(3):
            notifier.on_unread_count_changed(5)
        assert view.title() == "(5) Thread"
        assert "(5) (5)" not in view.title()

    def test_icon_follows_latest_count(self):
        view = FakeView()
        notifier = Notifier(view, None, viewer_id=1)
        notifier.on_unread_count_changed(2)
        assert view.icon == "favicon-unread.ico"
        notifier.on_unread_count_changed(0)
        assert view.icon == "favicon.ico"
        assert view.title() == "Conversation"

    def test_negative_count_treated_as_zero(self):
        view = FakeView("(4) Thread")
        Notifier(view, None, viewer_id=1).on_unread_count_changed(-1)
        assert view.title() == "Thread"


class TestMessagesArrived:
    def test_appends_and_scrolls(self):
        view = FakeView()
        notifier = Notifier(view, FakeNotifications(), viewer_id=1)
        notifier.on_messages_arrived([message(1, 2), message(2, 2)], is_foreground=True)
        assert [m.id for m in view.messages] == [1, 2]
        assert view.scrolls == 1

    def test_nothing_arrived_does_not_scroll(self):
        view = FakeView()
        Notifier(view, None, viewer_id=1).on_messages_arrived([], is_foreground=False)
        assert view.scrolls == 0

    def test_background_notifications_need_permission(self):
        backend = FakeNotifications(granted=True)
        notifier = Notifier(FakeView(), backend, viewer_id=1)
        notifier.on_messages_arrived([message(1, 2)], is_foreground=False)
        assert backend.sent == []

        notifier.request_permission()
        notifier.on_messages_arrived([message(2, 2, "Bo"), message(3, 1, "Me")], is_foreground=False)
        assert backend.sent == [("Nyumba Connect", "New message from Bo")]

    def test_permission_error_degrades_silently(self):
        backend = FakeNotifications(error=NotificationPermissionError("no tray"))
        notifier = Notifier(FakeView(), backend, viewer_id=1)
        notifier.request_permission()
        notifier.request_permission()
        notifier.on_messages_arrived([message(1, 2)], is_foreground=False)
        assert backend.permission_requests == 1
        assert not notifier.permission_granted
        assert backend.sent == []

    def test_without_backend(self):
        view = FakeView()
        notifier = Notifier(view, None, viewer_id=1)
        notifier.request_permission()
        notifier.on_messages_arrived([message(1, 2)], is_foreground=False)
        assert len(view.messages) == 1
