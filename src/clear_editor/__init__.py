"""
Reflective editor core.

Locates model-suggested sentences inside live-edited text, decorates them
without disturbing the caret, recovers ``{question, sentences}`` from
unreliable model output, and decides when inference should run.

Main entry points:
    normalize(text)                  whitespace-collapsed text + index map
    locate(text, fragment)           best-effort original range of a fragment
    merge(ranges)                    sorted, coalesced ranges
    parse_thought(raw)               Thought from arbitrary model output
    decorate(surface, sentences)     highlight located sentences
    clear(surface)                   remove highlights
    EditorSession(loop, service)     the wired-up editor

Example Usage:
    import asyncio
    from clear_editor import EditorSession, ChatCompletionClient

    client = ChatCompletionClient()
    client.load()
    session = EditorSession(asyncio.get_event_loop(), client)
    session.on_input("Today I finally told my sister how I felt.")
    session.trigger()
"""

# src/clear_editor/__init__.py
from .inference import ChatCompletionClient, InferenceError
from .locate import locate
from .merge import merge, plan_highlights
from .models import GenerationState, Range, Thought
from .normalize import normalize
from .parse import parse_thought
from .render import clear, decorate
from .session import EditorSession
from .surface import Surface

__version__ = "1.0.0"
__all__ = [
    "ChatCompletionClient", "InferenceError", "EditorSession", "Surface",
    "GenerationState", "Range", "Thought",
    "normalize", "locate", "merge", "plan_highlights", "parse_thought",
    "decorate", "clear",
]
