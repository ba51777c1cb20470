"""Polling messenger for one open conversation."""
from concurrent.futures import Future
from functools import partial
from typing import Callable, Optional

from .fetcher import MessageFetcher
from .logging_config import configure_logging
from .models import ConversationSession, FetchResult
from .notifier import Notifier
from .scheduler import EventLoop, PollScheduler, PollState
from .sender import Sender
from .visibility import VisibilityMonitor

logger = configure_logging()


class PollingMessenger:
    """Keeps one conversation view in sync with the server.

    All state lives on the event loop thread. Each dispatched fetch carries
    the generation it was issued under; ``stop()`` and ``destroy()`` bump the
    generation so responses that arrive afterwards are dropped. At most one
    fetch is in flight per messenger.
    """

    def __init__(
        self,
        session: ConversationSession,
        loop: EventLoop,
        fetcher: MessageFetcher,
        sender: Sender,
        notifier: Notifier,
        visibility: VisibilityMonitor,
        foreground_interval_ms: Optional[int] = None,
        background_interval_ms: Optional[int] = None,
    ):
        self.session: Optional[ConversationSession] = session
        self.loop = loop
        self.fetcher = fetcher
        self.sender = sender
        self.notifier = notifier
        self.visibility = visibility
        intervals = {}
        if foreground_interval_ms is not None:
            intervals["foreground_interval_ms"] = foreground_interval_ms
        if background_interval_ms is not None:
            intervals["background_interval_ms"] = background_interval_ms
        self.scheduler = PollScheduler(loop, self.fetch_now, **intervals)
        self._generation = 0
        self._in_flight = False
        self._destroyed = False
        self.visibility.subscribe(self._on_visibility_changed)
        self.notifier.request_permission()

    @property
    def state(self) -> PollState:
        return self.scheduler.state

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def start(self) -> None:
        if self._destroyed:
            logger.warning("POLL_START_IGNORED reason=destroyed")
            return
        if self.scheduler.state is not PollState.STOPPED:
            return
        self.scheduler.start()
        if not self.visibility.is_foreground:
            self.scheduler.on_hidden()
        logger.info("POLL_START mentorship_id=%s", self.session.conversation_id)

    def stop(self) -> None:
        if self.scheduler.state is not PollState.STOPPED:
            logger.info("POLL_STOP mentorship_id=%s", self.session.conversation_id if self.session else None)
        self.scheduler.stop()
        self._generation += 1
        self._in_flight = False

    def destroy(self) -> None:
        """Halt polling and drop the session; later callbacks become no-ops."""
        self.stop()
        self.visibility.unsubscribe(self._on_visibility_changed)
        self.session = None
        self._destroyed = True

    def fetch_now(self) -> None:
        session = self.session
        if session is None or session.conversation_id is None:
            return
        if self._in_flight:
            logger.debug("FETCH_SKIPPED mentorship_id=%s reason=in_flight", session.conversation_id)
            return
        self._in_flight = True
        job = partial(self.fetcher.fetch_new_messages, session.conversation_id, session.last_seen_message_id)
        self.loop.submit(job, partial(self._on_fetch_done, self._generation))

    def send(self, text: str, csrf_token: str, on_done: Callable[[Future], None]) -> None:
        """Validate synchronously, then post the message and hand the future to ``on_done``.

        ``on_done`` is not called if the messenger is destroyed before the
        response arrives.
        """
        conversation_id = self.session.conversation_id if self.session else None
        self.sender.validate(conversation_id, text)
        job = partial(self.sender.send, conversation_id, text, csrf_token)
        self.loop.submit(job, partial(self._on_send_done, on_done))

    def _on_send_done(self, on_done: Callable[[Future], None], future: Future) -> None:
        if self._destroyed:
            return
        on_done(future)

    def _on_fetch_done(self, generation: int, future: Future) -> None:
        if generation != self._generation or self.session is None:
            logger.debug("FETCH_DISCARDED generation=%s current=%s", generation, self._generation)
            return
        self._in_flight = False
        try:
            result: FetchResult = future.result()
        except Exception:  # noqa: BLE001
            logger.exception("FETCH_FAIL mentorship_id=%s reason=unexpected", self.session.conversation_id)
            return
        if result.ok:
            self.apply(result)

    def apply(self, result: FetchResult) -> None:
        session = self.session
        delivered = []
        for message in sorted(result.messages, key=lambda m: m.id):
            if not session.advance_watermark(message.id):
                continue
            if message.sender_id != session.viewer_id:
                delivered.append(message)
        if delivered:
            session.transcript.extend(delivered)
            self.notifier.on_messages_arrived(delivered, self.visibility.is_foreground)
        session.unread_count = result.total_unread
        self.notifier.on_unread_count_changed(result.total_unread)

    def _on_visibility_changed(self, is_foreground: bool) -> None:
        if is_foreground:
            self.scheduler.on_visible()
        else:
            self.scheduler.on_hidden()
