from __future__ import annotations
import logging
from typing import Iterable, List, Optional, Sequence

from . import config as CFG
from .locate import QUOTES, SENTENCE_PUNCT, find_ranges
from .models import HighlightPlan, Range

log = logging.getLogger(__name__)

_WORD_EDGE = SENTENCE_PUNCT + QUOTES + "()[]{}-"


def merge(ranges: Iterable[Range]) -> List[Range]:
    """Sort by start and coalesce overlapping or touching ranges."""
    merged: List[Range] = []
    for r in sorted(ranges):
        if merged and r.start <= merged[-1].end:
            last = merged[-1]
            merged[-1] = Range(last.start, max(last.end, r.end))
        else:
            merged.append(r)
    return merged


def anchor_fallback(text: str, fragments: Sequence[str]) -> Optional[Range]:
    """
    Last resort when no fragment located: the first word (>= MIN_ANCHOR_WORD
    chars, punctuation stripped) of the first fragment, at its first literal
    occurrence in the raw text.
    """
    if not fragments or not text.strip():
        return None
    for word in (fragments[0] or "").split():
        word = word.strip(_WORD_EDGE)
        if len(word) < CFG.MIN_ANCHOR_WORD:
            continue
        idx = text.find(word)
        if idx < 0:
            return None
        return Range(idx, idx + len(word))
    return None


def plan_highlights(text: str, fragments: Sequence[str]) -> HighlightPlan:
    """locate -> merge -> first-word fallback."""
    fragments = list(fragments)
    ranges, dropped = find_ranges(text, fragments)
    if ranges:
        if dropped:
            log.info("located %d of %d fragments", len(ranges), len(ranges) + dropped)
        return HighlightPlan(ranges=merge(ranges), dropped=dropped)

    anchor = anchor_fallback(text, fragments)
    if anchor is None:
        if fragments:
            log.info("no fragment located; nothing to highlight")
        return HighlightPlan(ranges=[], dropped=dropped)
    log.info("no fragment located; anchoring on %r", anchor.slice(text))
    return HighlightPlan(ranges=[anchor], dropped=dropped, used_fallback=True)
