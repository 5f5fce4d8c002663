from __future__ import annotations
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from . import config as CFG
from .DB.api import KeyValueStore
from .DB.storage import load_editor, save_editor
from .inference import InferenceService
from .models import GenerationState, HighlightPlan, Thought
from .render import clear, decorate
from .scheduler import EventLoop, GenerationScheduler, LogDisplay, StatusDisplay, TimerHandle
from .surface import Surface

log = logging.getLogger(__name__)


class EditorSession:
    """
    One editor instance: the surface, the current thought, the generation
    scheduler, persistence and the status display, wired together.

    Front ends feed user events in (``on_input``, ``on_keydown``,
    ``trigger``) and read projections of ``surface`` back out.
    """

    # ------------- lifecycle -------------

    def __init__(
        self,
        loop: EventLoop,
        service: Optional[InferenceService],
        *,
        store: Optional[KeyValueStore] = None,
        display: Optional[StatusDisplay] = None,
        surface: Optional[Surface] = None,
        debounce: float = CFG.DEBOUNCE_SECONDS,
        save_debounce: float = CFG.SAVE_DEBOUNCE_SECONDS,
        min_length: int = CFG.MIN_TEXT_LENGTH,
    ) -> None:
        self.loop = loop
        self.store = store
        self.display = display or LogDisplay()
        self.surface = surface or Surface()
        self.thought: Optional[Thought] = None
        self.last_plan: Optional[HighlightPlan] = None
        self.save_debounce = save_debounce
        self._guard = 0
        self._save_timer: Optional[TimerHandle] = None
        self.scheduler = GenerationScheduler(
            loop,
            service,
            read_text=self.document_text,
            on_thought=self.apply_thought,
            display=self.display,
            debounce=debounce,
            min_length=min_length,
        )
        self._unsubscribe = self.surface.subscribe(self._on_surface_changed)

    def close(self) -> None:
        self.scheduler.cancel_pending()
        if self._save_timer is not None:
            self._save_timer.cancel()
            self._save_timer = None
            self.save()
        self._unsubscribe()

    # ------------- reading -------------

    @property
    def state(self) -> GenerationState:
        return self.scheduler.state

    @property
    def guarded(self) -> bool:
        return self._guard > 0

    def document_text(self) -> str:
        # re-read from the surface on every trigger, never cached
        return self.surface.plain_text()

    # ------------- user events -------------

    def on_input(self, text: str, caret: Optional[int] = None) -> None:
        """The user edited the text; ``caret`` is the new caret offset."""
        self.surface.set_text(text, caret)

    def on_keydown(self) -> None:
        self.scheduler.cancel_pending()

    def trigger(self) -> bool:
        return self.scheduler.trigger()

    def _on_surface_changed(self, user: bool) -> None:
        # user edits always count, even while a decoration pass holds the guard
        if self._guard and not user:
            log.debug("ignoring self-induced surface change")
            return
        self._schedule_save()
        self.clear_thought()
        self.scheduler.notify_input()

    # ------------- thought -------------

    def apply_thought(self, thought: Thought) -> None:
        self.thought = thought
        self._render()

    def clear_thought(self) -> None:
        self.thought = None
        self._render()

    def _render(self) -> None:
        self.last_plan = None
        sentences = self.thought.sentences if self.thought is not None else []
        if sentences or self.surface.has_highlights():
            with self.programmatic():
                clear(self.surface)
                if sentences:
                    self.last_plan = decorate(self.surface, sentences)
        self.display.show_thought(self.thought)

    @contextmanager
    def programmatic(self) -> Iterator[None]:
        """
        Bracket a programmatic mutation. Programmatic surface changes seen
        while held are not treated as edits; the guard drops on the next loop
        tick. User edits are never suppressed.
        """
        self._guard += 1
        try:
            yield
        finally:
            self.loop.call_soon(self._release_guard)

    def _release_guard(self) -> None:
        self._guard = max(0, self._guard - 1)

    # ------------- persistence -------------

    def restore(self) -> bool:
        """Load saved content and caret without triggering generation."""
        if self.store is None:
            return False
        saved = load_editor(self.store)
        if saved is None or not saved.content:
            return False
        with self.programmatic():
            self.surface.set_text(saved.content, saved.cursor, user=False)
        log.info("restored %d chars (cursor=%d)", len(saved.content), saved.cursor)
        return True

    def save(self) -> None:
        if self.store is None:
            return
        text = self.surface.plain_text()
        save_editor(self.store, text, self.surface.caret_offset())

    def _schedule_save(self) -> None:
        if self.store is None:
            return
        if self._save_timer is not None:
            self._save_timer.cancel()
        self._save_timer = self.loop.call_later(self.save_debounce, self._on_save_timer)

    def _on_save_timer(self) -> None:
        self._save_timer = None
        self.save()
