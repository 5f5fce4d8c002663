from __future__ import annotations
import logging
import re
from typing import Callable, Iterable, List, Optional, Tuple

from . import config as CFG
from .models import NormalizedMap, Range
from .normalize import normalize, normalize_for_match, to_original

log = logging.getLogger(__name__)

# /* ~~~ characters a model tends to add around an echoed sentence ~~~ */
SENTENCE_PUNCT = ".,;:!?"
QUOTES = "\"'“”‘’„‚«»‹›"

_TRAILING_PUNCT = re.compile(f"[{re.escape(SENTENCE_PUNCT)}]+$")
_EDGE_QUOTES = re.compile(f"^[{re.escape(QUOTES)}]+|[{re.escape(QUOTES)}]+$")


def strip_punct(s: str) -> str:
    """Drop trailing sentence punctuation (repeated), then trim."""
    return _TRAILING_PUNCT.sub("", s.strip()).strip()


def strip_quotes(s: str) -> str:
    """Drop leading/trailing quote characters, then trim."""
    return _EDGE_QUOTES.sub("", s.strip()).strip()


def strip_both(s: str) -> str:
    # quotes may sit outside or inside the final punctuation: "Done." / "Done".
    return strip_quotes(strip_punct(strip_quotes(s)))


_STRATEGIES: Tuple[Tuple[str, Callable[[str], str]], ...] = (
    ("exact", lambda s: s),
    ("punct", strip_punct),
    ("quotes", strip_quotes),
    ("punct+quotes", strip_both),
)


def _find(nmap: NormalizedMap, needle: str) -> Optional[Range]:
    if not needle:
        return None
    idx = nmap.normalized.find(needle)
    if idx < 0:
        return None
    return to_original(nmap, idx, idx + len(needle))


def _word_prefix(nmap: NormalizedMap, fragment: str) -> Optional[Range]:
    words = fragment.split(" ")
    floor = max(1, CFG.MIN_PREFIX_WORDS)
    for n in range(len(words), floor - 1, -1):
        hit = _find(nmap, strip_punct(" ".join(words[:n])))
        if hit is not None:
            return hit
    return None


def locate_tier(text: str, fragment: str) -> Tuple[Optional[Range], Optional[str]]:
    """
    Locate ``fragment`` in ``text`` and report which strategy matched.

    Tiers, first success wins:
      exact -> punct -> quotes -> punct+quotes -> prefix
    Returns ``(None, None)`` when no tier matches or the fragment is blank.
    """
    needle = normalize_for_match(fragment)
    if not needle:
        return None, None
    nmap = normalize(text)
    for name, prep in _STRATEGIES:
        hit = _find(nmap, prep(needle))
        if hit is not None:
            return hit, name
    hit = _word_prefix(nmap, needle)
    if hit is not None:
        return hit, "prefix"
    return None, None


def locate(text: str, fragment: str) -> Optional[Range]:
    """Leftmost original-text range of ``fragment`` in ``text``, or None."""
    return locate_tier(text, fragment)[0]


def find_ranges(text: str, fragments: Iterable[str]) -> Tuple[List[Range], int]:
    """Locate each non-blank fragment. Returns (ranges in input order, dropped count)."""
    ranges: List[Range] = []
    dropped = 0
    for raw in fragments:
        if not raw or not raw.strip():
            continue
        hit, tier = locate_tier(text, raw)
        if hit is None:
            dropped += 1
            log.debug("fragment not located: %r", raw[:80])
            continue
        log.debug("fragment located via %s at [%d, %d)", tier, hit.start, hit.end)
        ranges.append(hit)
    return ranges, dropped
