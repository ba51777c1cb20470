"""Tests for the Qt event loop that hands worker results back to the GUI thread."""
import threading
import time

import pytest
from PyQt6.QtCore import QCoreApplication

from nyumba_connect.client.gui.qt_loop import QtEventLoop


@pytest.fixture(scope="module")
def qt_app():
    return QCoreApplication.instance() or QCoreApplication([])


@pytest.fixture
def qt_loop(qt_app):
    event_loop = QtEventLoop()
    yield event_loop
    event_loop.shutdown()


def process_until(app, predicate, timeout=2.0):
    deadline = time.monotonic() + timeout
    while not predicate() and time.monotonic() < deadline:
        app.processEvents()
        time.sleep(0.005)
    return predicate()


def test_submit_runs_off_thread_and_calls_back_on_gui_thread(qt_app, qt_loop):
    gui_thread = threading.get_ident()
    seen = {}

    def job():
        seen["worker"] = threading.get_ident()
        return 42

    def done(future):
        seen["callback"] = threading.get_ident()
        seen["result"] = future.result()

    qt_loop.submit(job, done)
    assert process_until(qt_app, lambda: "result" in seen)
    assert seen["result"] == 42
    assert seen["worker"] != gui_thread
    assert seen["callback"] == gui_thread


def test_submit_delivers_exceptions_through_the_future(qt_app, qt_loop):
    outcome = {}

    def job():
        raise ValueError("boom")

    qt_loop.submit(job, lambda future: outcome.update(error=future.exception()))
    assert process_until(qt_app, lambda: "error" in outcome)
    assert isinstance(outcome["error"], ValueError)


def test_call_later_fires_once(qt_app, qt_loop):
    fired = []
    qt_loop.call_later(10, lambda: fired.append(True))
    assert process_until(qt_app, lambda: fired)
    process_until(qt_app, lambda: len(fired) > 1, timeout=0.1)
    assert fired == [True]


def test_cancelled_timer_never_fires(qt_app, qt_loop):
    fired = []
    handle = qt_loop.call_later(10, lambda: fired.append(True))
    handle.cancel()
    handle.cancel()
    assert not process_until(qt_app, lambda: fired, timeout=0.1)


def test_results_after_shutdown_are_dropped(qt_app):
    event_loop = QtEventLoop()
    release = threading.Event()
    started = threading.Event()
    delivered = []

    def job():
        started.set()
        release.wait(timeout=2)
        return "late"

    event_loop.submit(job, delivered.append)
    assert started.wait(timeout=2)
    event_loop.shutdown()
    release.set()
    event_loop._executor.shutdown(wait=True)

    assert not process_until(qt_app, lambda: delivered, timeout=0.1)
    assert event_loop.closed

    event_loop.submit(lambda: "ignored", delivered.append)
    assert not process_until(qt_app, lambda: delivered, timeout=0.1)
