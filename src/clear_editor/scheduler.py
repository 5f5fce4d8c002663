from __future__ import annotations
import logging
from concurrent.futures import Future
from typing import Any, Callable, Optional, Protocol

from . import config as CFG
from .inference import InferenceService, build_messages
from .models import GenerationState, Thought
from .parse import parse_thought

log = logging.getLogger(__name__)


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class EventLoop(Protocol):
    """The subset of ``asyncio.AbstractEventLoop`` the editor relies on."""
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...
    def call_soon(self, callback: Callable[..., Any], *args: Any) -> Any: ...
    def call_soon_threadsafe(self, callback: Callable[..., Any], *args: Any) -> Any: ...


class StatusDisplay(Protocol):
    def set_loading(self, show: bool, label: str = "Loading...") -> None: ...
    def set_error(self, message: Optional[str]) -> None: ...
    def show_thought(self, thought: Optional[Thought]) -> None: ...


class LogDisplay:
    """StatusDisplay that only logs; used when no front end is attached."""

    def set_loading(self, show: bool, label: str = "Loading...") -> None:
        if show:
            log.info("%s", label)

    def set_error(self, message: Optional[str]) -> None:
        if message:
            log.error("%s", message)

    def show_thought(self, thought: Optional[Thought]) -> None:
        if thought is not None:
            log.info("question: %s", thought.question)


class GenerationScheduler:
    """
    Decides when inference runs.

      IDLE --input--> DEBOUNCING --timer/trigger--> IN_FLIGHT --done/failed--> IDLE
      DEBOUNCING --gate refused--> IDLE

    At most one request is outstanding. Timers and completions all run on
    ``loop``; only the future's done-callback may arrive on another thread and
    it is marshalled back with ``call_soon_threadsafe``.
    """

    def __init__(
        self,
        loop: EventLoop,
        service: Optional[InferenceService],
        *,
        read_text: Callable[[], str],
        on_thought: Callable[[Thought], None],
        display: Optional[StatusDisplay] = None,
        debounce: float = CFG.DEBOUNCE_SECONDS,
        min_length: int = CFG.MIN_TEXT_LENGTH,
    ) -> None:
        self.loop = loop
        self.service = service
        self.read_text = read_text
        self.on_thought = on_thought
        self.display = display or LogDisplay()
        self.debounce = debounce
        self.min_length = min_length
        self._timer: Optional[TimerHandle] = None
        self._in_flight = False
        self.requests_issued = 0

    # ------------- state -------------

    @property
    def state(self) -> GenerationState:
        if self._in_flight:
            return GenerationState.IN_FLIGHT
        if self._timer is not None:
            return GenerationState.DEBOUNCING
        return GenerationState.IDLE

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    # ------------- events -------------

    def notify_input(self) -> None:
        """A qualifying edit: restart the debounce window."""
        self.cancel_pending()
        self._timer = self.loop.call_later(self.debounce, self._on_timer)

    def cancel_pending(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def trigger(self) -> bool:
        """Manual generation: skip the debounce wait. Returns True if a request started."""
        self.cancel_pending()
        return self._maybe_start()

    # ------------- internals -------------

    def _on_timer(self) -> None:
        self._timer = None
        self._maybe_start()

    def _maybe_start(self) -> bool:
        if self._in_flight:
            log.debug("generation already in flight; trigger ignored")
            return False
        if self.service is None or not getattr(self.service, "ready", False):
            log.debug("inference service not ready; trigger ignored")
            return False
        text = self.read_text().strip()
        if len(text) < self.min_length:
            log.debug("text too short to generate (%d < %d)", len(text), self.min_length)
            return False

        self._in_flight = True
        self.requests_issued += 1
        self.display.set_error(None)
        self.display.set_loading(True, "Thinking...")
        log.info("requesting thought for %d chars", len(text))
        try:
            future = self.service.submit(
                build_messages(text), temperature=CFG.TEMPERATURE, max_tokens=CFG.MAX_TOKENS
            )
        except Exception as exc:
            self._finish(None, exc)
            return False
        future.add_done_callback(self._on_future_done)
        return True

    def _on_future_done(self, future: "Future[str]") -> None:
        # may run on the inference worker thread
        try:
            raw = future.result()
        except Exception as exc:
            self.loop.call_soon_threadsafe(self._finish, None, exc)
        else:
            self.loop.call_soon_threadsafe(self._finish, raw, None)

    def _finish(self, raw: Optional[str], error: Optional[BaseException]) -> None:
        try:
            if error is not None:
                log.warning("generation failed: %s", error)
                self.display.set_error(str(error) or CFG.GENERIC_ERROR)
                return
            parsed = parse_thought(raw)
            thought = Thought(
                question=parsed.question or CFG.FALLBACK_QUESTION,
                sentences=parsed.sentences,
            )
            self.on_thought(thought)
        finally:
            self._in_flight = False
            self.display.set_loading(False)
