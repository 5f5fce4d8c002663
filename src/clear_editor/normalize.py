from __future__ import annotations
import re
from typing import List

from .models import NormalizedMap, Range

_WS = re.compile(r"\s+")


def normalize(text: str) -> NormalizedMap:
    """
    Collapse whitespace for matching and return:
      - normalized string (every whitespace run -> one space, outer runs kept)
      - mapping list: normalized index -> original index (in the ORIGINAL string)
    The single space standing in for a run maps to the run's first character.
    """
    out_chars: list[str] = []
    mapping: List[int] = []

    last_was_space = False
    for orig_i, ch in enumerate(text):
        if ch.isspace():
            if not last_was_space:
                out_chars.append(" ")
                mapping.append(orig_i)  # first space of this run
            last_was_space = True
            continue
        out_chars.append(ch)
        mapping.append(orig_i)
        last_was_space = False

    return NormalizedMap(normalized="".join(out_chars), orig_index=mapping)


def normalize_for_match(s: str) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    return _WS.sub(" ", s).strip()


def to_original(nmap: NormalizedMap, norm_start: int, norm_end: int) -> Range:
    """Translate a normalized ``[norm_start, norm_end)`` span back to original offsets."""
    if norm_start < 0 or norm_end > len(nmap.orig_index) or norm_end <= norm_start:
        raise ValueError(f"span [{norm_start}, {norm_end}) outside normalized text")
    return Range(nmap.orig_index[norm_start], nmap.orig_index[norm_end - 1] + 1)
