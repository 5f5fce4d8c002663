"""
Recover a ``Thought`` from untrusted model output.

Models asked for a single JSON object still answer with code fences, prose
around the object, several objects in a row, or no JSON at all. The parser
accepts all of these: every top-level ``{...}`` span is tried on its own,
the last non-empty question wins and sentences accumulate across spans.
"""
from __future__ import annotations
import json
import logging
import re
from typing import Any, Iterator, Optional

from .models import Thought

log = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?\s*|\s*```", re.IGNORECASE)


def strip_fences(raw: str) -> str:
    return _FENCE.sub("", raw).strip()


def iter_object_spans(s: str) -> Iterator[str]:
    """
    Yield each top-level ``{...}`` span of ``s``.

    Braces inside JSON string literals do not count, stray ``}`` outside an
    object are ignored, and an unterminated trailing object yields nothing.
    """
    depth = 0
    start = -1
    in_string = False
    escaped = False
    for i, ch in enumerate(s):
        if in_string:
            if escaped:
                escaped = False
            elif ch == "\\":
                escaped = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"' and depth > 0:
            in_string = True
        elif ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                yield s[start:i + 1]
                start = -1


def _loads(chunk: str) -> Optional[Any]:
    try:
        return json.loads(chunk)
    except (ValueError, RecursionError):
        return None


def _absorb(obj: Any, thought: Thought) -> bool:
    """Fold one decoded object into ``thought``; True if it contributed anything."""
    if not isinstance(obj, dict):
        return False
    found = False
    question = obj.get("question")
    if isinstance(question, str) and question.strip():
        thought.question = question.strip()
        found = True
    sentences = obj.get("sentences")
    if isinstance(sentences, list):
        for s in sentences:
            if isinstance(s, str) and s.strip():
                thought.sentences.append(s.strip())
                found = True
    return found


def parse_thought(raw: Optional[str]) -> Thought:
    """Extract ``{question, sentences}`` from model output. Never raises."""
    thought = Thought()
    if not raw:
        return thought
    s = strip_fences(str(raw))

    spans = 0
    for chunk in iter_object_spans(s):
        spans += 1
        obj = _loads(chunk)
        if obj is None:
            log.debug("ignoring unparseable span: %r", chunk[:80])
            continue
        _absorb(obj, thought)

    if thought.question or thought.sentences:
        return thought

    # nothing usable in the spans: one whole-string attempt, then free text
    obj = _loads(s)
    if obj is not None:
        _absorb(obj, thought)
    elif s and "{" not in s:
        thought.question = s
    log.debug("parsed %d spans; question=%r sentences=%d", spans, thought.question[:60], len(thought.sentences))
    return thought
