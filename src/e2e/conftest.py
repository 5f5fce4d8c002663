from __future__ import annotations
from collections import deque
from concurrent.futures import Future
from typing import Any, Callable, List, Optional

import pytest

from clear_editor.models import Thought

SAMPLE = "I walked home. I felt relieved. Then I slept."


class _Timer:
    def __init__(self, when: float, callback: Callable[..., Any], args: tuple) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeLoop:
    """Deterministic stand-in for an event loop: time only moves on advance()."""

    def __init__(self) -> None:
        self.now = 0.0
        self._timers: List[_Timer] = []
        self._ready: deque = deque()

    def call_later(self, delay: float, callback, *args) -> _Timer:
        t = _Timer(self.now + delay, callback, args)
        self._timers.append(t)
        return t

    def call_soon(self, callback, *args) -> None:
        self._ready.append((callback, args))

    call_soon_threadsafe = call_soon

    def run_ready(self) -> None:
        """Run what is queued now; callbacks queued meanwhile wait for the next tick."""
        for _ in range(len(self._ready)):
            callback, args = self._ready.popleft()
            callback(*args)

    def advance(self, seconds: float) -> None:
        self.run_ready()
        target = self.now + seconds
        while True:
            due = [t for t in self._timers if not t.cancelled and t.when <= target]
            if not due:
                break
            t = min(due, key=lambda x: x.when)
            self._timers.remove(t)
            self.now = t.when
            t.callback(*t.args)
            self.run_ready()
        self.now = target


class FakeService:
    """InferenceService double: records requests, leaves futures for the test to resolve."""

    def __init__(self, ready: bool = True) -> None:
        self.ready = ready
        self.futures: List[Future] = []
        self.messages: List[list] = []

    def submit(self, messages, *, temperature: float, max_tokens: int) -> Future:
        f: Future = Future()
        self.futures.append(f)
        self.messages.append(messages)
        return f


class RecordingDisplay:
    def __init__(self) -> None:
        self.loading: List[tuple] = []
        self.errors: List[Optional[str]] = []
        self.thoughts: List[Optional[Thought]] = []

    def set_loading(self, show: bool, label: str = "Loading...") -> None:
        self.loading.append((show, label))

    def set_error(self, message: Optional[str]) -> None:
        self.errors.append(message)

    def show_thought(self, thought: Optional[Thought]) -> None:
        self.thoughts.append(thought)


@pytest.fixture
def loop() -> FakeLoop:
    return FakeLoop()


@pytest.fixture
def service() -> FakeService:
    return FakeService()


@pytest.fixture
def display() -> RecordingDisplay:
    return RecordingDisplay()
