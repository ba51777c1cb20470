"""Foreground/background tracking for the client surface."""
from typing import Callable, List

Listener = Callable[[bool], None]


class VisibilityMonitor:
    """Holds the current foreground flag and notifies listeners on transitions."""

    def __init__(self, is_foreground: bool = True):
        self._is_foreground = is_foreground
        self._listeners: List[Listener] = []

    @property
    def is_foreground(self) -> bool:
        return self._is_foreground

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def set_foreground(self, is_foreground: bool) -> None:
        if is_foreground == self._is_foreground:
            return
        self._is_foreground = is_foreground
        for listener in list(self._listeners):
            listener(is_foreground)
