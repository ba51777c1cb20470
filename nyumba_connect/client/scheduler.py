"""Visibility-aware poll scheduling."""
from concurrent.futures import Future
from enum import Enum
from typing import Any, Callable, Optional, Protocol

from .config import BACKGROUND_POLL_INTERVAL_MS, FOREGROUND_POLL_INTERVAL_MS
from .logging_config import configure_logging

logger = configure_logging()


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class EventLoop(Protocol):
    """Host event loop the messaging client runs on.

    ``call_later`` runs ``callback`` once on the loop thread after ``delay_ms``.
    ``submit`` runs ``func`` off the loop thread and then calls ``callback``
    with the finished ``Future`` back on the loop thread.
    """

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> TimerHandle: ...

    def submit(self, func: Callable[[], Any], callback: Callable[[Future], None]) -> None: ...


class PollState(Enum):
    STOPPED = "stopped"
    ACTIVE_FOREGROUND = "active_foreground"
    ACTIVE_BACKGROUND = "active_background"


class PollScheduler:
    """Drives ``on_tick`` periodically, faster while the view is in the foreground.

    Only one timer is ever alive: re-arming always cancels the previous one.
    """

    def __init__(
        self,
        loop: EventLoop,
        on_tick: Callable[[], None],
        foreground_interval_ms: int = FOREGROUND_POLL_INTERVAL_MS,
        background_interval_ms: int = BACKGROUND_POLL_INTERVAL_MS,
    ):
        self._loop = loop
        self._on_tick = on_tick
        self._intervals = {
            PollState.ACTIVE_FOREGROUND: foreground_interval_ms,
            PollState.ACTIVE_BACKGROUND: background_interval_ms,
        }
        self._state = PollState.STOPPED
        self._handle: Optional[TimerHandle] = None

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def interval_ms(self) -> Optional[int]:
        return self._intervals.get(self._state)

    @property
    def active_timers(self) -> int:
        return 0 if self._handle is None else 1

    def start(self) -> None:
        if self._state is not PollState.STOPPED:
            return
        self._arm(PollState.ACTIVE_FOREGROUND)

    def on_hidden(self) -> None:
        if self._state is PollState.STOPPED:
            return
        self._arm(PollState.ACTIVE_BACKGROUND)

    def on_visible(self) -> None:
        if self._state is not PollState.ACTIVE_BACKGROUND:
            return
        self._arm(PollState.ACTIVE_FOREGROUND)
        self._on_tick()

    def stop(self) -> None:
        self._cancel()
        self._state = PollState.STOPPED

    def _arm(self, state: PollState) -> None:
        self._cancel()
        self._state = state
        self._handle = self._loop.call_later(self._intervals[state], self._fire)
        logger.debug("POLL_SCHEDULED state=%s interval_ms=%s", state.value, self._intervals[state])

    def _cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        if self._state is PollState.STOPPED:
            return
        self._arm(self._state)
        self._on_tick()
