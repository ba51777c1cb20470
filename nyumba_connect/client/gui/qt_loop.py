"""Qt implementation of the messaging client's event loop."""
from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from ..logging_config import configure_logging

logger = configure_logging()


class QtTimerHandle:
    """One-shot QTimer that disposes of itself after firing or cancelling."""

    def __init__(self, parent: QObject, delay_ms: int, callback: Callable[[], None]):
        self._callback = callback
        self._timer: QTimer | None = QTimer(parent)
        self._timer.setSingleShot(True)
        self._timer.timeout.connect(self._fire)
        self._timer.start(delay_ms)

    def _fire(self) -> None:
        self._release()
        self._callback()

    def _release(self) -> None:
        if self._timer is None:
            return
        self._timer.stop()
        self._timer.deleteLater()
        self._timer = None

    def cancel(self) -> None:
        self._release()


class QtEventLoop(QObject):
    """Timers on the GUI thread, blocking work on a small thread pool.

    Worker results are re-emitted through a queued signal so callbacks always
    run on the GUI thread. After ``shutdown()`` results of jobs still running
    are dropped.
    """

    _finished = pyqtSignal(object, object)

    def __init__(self, parent: QObject | None = None, max_workers: int = 4):
        super().__init__(parent)
        self._closed = False
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="nyumba-io")
        self._finished.connect(self._dispatch)

    @property
    def closed(self) -> bool:
        return self._closed

    def call_later(self, delay_ms: int, callback: Callable[[], None]) -> QtTimerHandle:
        return QtTimerHandle(self, delay_ms, callback)

    def submit(self, func: Callable[[], Any], callback: Callable[[Future], None]) -> None:
        if self._closed:
            logger.debug("SUBMIT_IGNORED reason=shutdown")
            return
        future = self._executor.submit(func)
        future.add_done_callback(lambda f: self._post(f, callback))

    def _post(self, future: Future, callback: Callable[[Future], None]) -> None:
        # Runs on the worker thread.
        if self._closed:
            return
        try:
            self._finished.emit(future, callback)
        except RuntimeError:
            # The QObject was deleted between the check and the emit.
            logger.debug("RESULT_DROPPED reason=loop_deleted")

    def _dispatch(self, future: Future, callback: Callable[[Future], None]) -> None:
        if self._closed:
            return
        callback(future)

    def shutdown(self) -> None:
        self._closed = True
        self._executor.shutdown(wait=False, cancel_futures=True)
