"""
Editable surface: an owned text-with-annotations tree.

The surface is a flat list of top-level nodes. A node is either a plain
``TextNode`` or a ``Highlight`` container wrapping one or more text nodes.
The caret is anchored inside a text node, the way a browser selection is
anchored inside a DOM text node, so programmatic restructuring has to
relocate it explicitly.

Front ends never mutate the tree directly; they read projections:
``plain_text()``, ``highlight_ranges()`` (desktop text tags) and
``to_html()`` (web editor).
"""
from __future__ import annotations
import html
import logging
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Union

from .models import Range

log = logging.getLogger(__name__)

HIGHLIGHT_CLASS = "highlight"


class TextNode:
    __slots__ = ("text", "origin")

    def __init__(self, text: str = "", origin: Optional["TextNode"] = None) -> None:
        self.text = text
        self.origin = origin   # node this piece was split from by decoration

    def __repr__(self) -> str:
        return f"TextNode({self.text!r})"


class Highlight:
    """Decoration container; its text is the concatenation of its children."""

    __slots__ = ("children",)

    def __init__(self, children: List[TextNode]) -> None:
        self.children = children

    @property
    def text(self) -> str:
        return "".join(c.text for c in self.children)

    def __repr__(self) -> str:
        return f"Highlight({self.children!r})"


Node = Union[TextNode, Highlight]


@dataclass
class Caret:
    node: TextNode
    offset: int


class Surface:
    def __init__(self, text: str = "", caret: Optional[int] = None) -> None:
        self.nodes: List[Node] = [TextNode(text)] if text else []
        self.caret: Optional[Caret] = None
        self._listeners: List[Callable[[bool], None]] = []
        if caret is not None:
            self.set_caret_offset(caret)

    # ------------- change notifications -------------

    def subscribe(self, listener: Callable[[bool], None]) -> Callable[[], None]:
        """
        Register ``listener`` for every mutation; returns an unsubscribe callable.
        The listener receives True for user edits and False for programmatic passes.
        """
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _changed(self, user: bool) -> None:
        for listener in list(self._listeners):
            listener(user)

    # ------------- reading -------------

    def text_nodes(self) -> Iterator[TextNode]:
        """Walk text nodes in document order (the tree-walker of a DOM)."""
        for node in self.nodes:
            if isinstance(node, Highlight):
                yield from node.children
            else:
                yield node

    def plain_text(self) -> str:
        return "".join(n.text for n in self.text_nodes())

    def caret_offset(self) -> int:
        """Caret position as a character count from the start of the text."""
        if self.caret is None:
            return 0
        offset = 0
        for node in self.text_nodes():
            length = len(node.text)
            if node is self.caret.node:
                return offset + min(self.caret.offset, length)
            offset += length
        # anchor no longer in the tree
        return 0

    def has_highlights(self) -> bool:
        return any(isinstance(n, Highlight) for n in self.nodes)

    def highlight_ranges(self) -> List[Range]:
        out: List[Range] = []
        offset = 0
        for node in self.nodes:
            length = len(node.text)
            if isinstance(node, Highlight) and length:
                out.append(Range(offset, offset + length))
            offset += length
        return out

    def to_html(self) -> str:
        parts: List[str] = []
        for node in self.nodes:
            if isinstance(node, Highlight):
                parts.append(f'<span class="{HIGHLIGHT_CLASS}">{html.escape(node.text)}</span>')
            else:
                parts.append(html.escape(node.text))
        return "".join(parts)

    # ------------- caret -------------

    def set_caret_offset(self, target: int) -> None:
        """Place the caret at character offset ``target`` (clamped to the text)."""
        target = max(0, int(target))
        offset = 0
        last: Optional[TextNode] = None
        for node in self.text_nodes():
            length = len(node.text)
            if offset + length >= target:
                self.caret = Caret(node, min(target - offset, length))
                return
            offset += length
            last = node
        if last is not None:
            self.caret = Caret(last, len(last.text))
        else:
            self.caret = None

    # ------------- mutation -------------

    def set_text(self, text: str, caret: Optional[int] = None, *, user: bool = True) -> None:
        """Replace the whole content, as a user edit (or, with ``user=False``, a load) does."""
        self.nodes = [TextNode(text)] if text else []
        self.set_caret_offset(len(text) if caret is None else caret)
        self._changed(user)

    def replace_nodes(self, nodes: List[Node], caret_offset: Optional[int] = None) -> None:
        """
        Swap in a restructured node list holding the same text.
        The caret keeps its anchor if that text node survived; otherwise it
        moves to ``caret_offset`` in the new structure.
        """
        old_anchor = self.caret.node if self.caret else None
        self.nodes = nodes
        if old_anchor is not None:
            survived = any(n is old_anchor for n in self.text_nodes())
            if not survived:
                self.set_caret_offset(caret_offset or 0)
        self._changed(False)
