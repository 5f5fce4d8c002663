"""
Data models for the reflective editor.

These classes hold data only; locating, merging, rendering and parsing live
in their own modules.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List


@dataclass(frozen=True)
class NormalizedMap:
    normalized: str        # whitespace runs collapsed to a single space
    orig_index: List[int]  # normalized index -> original index of the run's first char


@dataclass(frozen=True, order=True)
class Range:
    """Half-open ``[start, end)`` interval over original-text offsets."""
    start: int
    end: int

    def __post_init__(self) -> None:
        if self.start < 0 or self.end <= self.start:
            raise ValueError(f"invalid range [{self.start}, {self.end})")

    def slice(self, text: str) -> str:
        return text[self.start:self.end]


@dataclass
class Thought:
    question: str = ""
    sentences: List[str] = field(default_factory=list)


class GenerationState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    IN_FLIGHT = "in_flight"


@dataclass(frozen=True)
class Message:
    role: str      # "system" | "user" | "assistant"
    content: str

    def as_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class StoredEditor:
    content: str
    cursor: int


@dataclass(frozen=True)
class HighlightPlan:
    """Where a thought's fragments landed in a text."""
    ranges: List[Range]
    dropped: int = 0              # fragments that could not be located
    used_fallback: bool = False   # ranges come from the first-word anchor
