from __future__ import annotations
import logging
from typing import List, Optional, Sequence

from .merge import plan_highlights
from .models import HighlightPlan, Range
from .surface import Highlight, Node, Surface, TextNode

log = logging.getLogger(__name__)


class DecorationError(Exception):
    """A single range could not be wrapped in the current structure."""


def _wrap_range(nodes: List[Node], r: Range) -> List[Node]:
    """
    Return a new node list with ``r`` wrapped in one Highlight.
    Only text nodes the range touches are split; the rest are reused as-is.
    """
    out: List[Optional[Node]] = []
    inside: List[TextNode] = []
    slot: Optional[int] = None
    offset = 0
    for node in nodes:
        length = len(node.text)
        start, end = offset, offset + length
        offset = end
        if end <= r.start or start >= r.end:
            out.append(node)
            continue
        if isinstance(node, Highlight):
            raise DecorationError(f"[{r.start}, {r.end}) overlaps an existing highlight")
        lo = max(r.start, start) - start
        hi = min(r.end, end) - start
        origin = node.origin or node
        if lo > 0:
            out.append(TextNode(node.text[:lo], origin))
        if slot is None:
            slot = len(out)
            out.append(None)
        inside.append(TextNode(node.text[lo:hi], origin))
        if hi < length:
            out.append(TextNode(node.text[hi:], origin))

    if slot is None or not any(n.text for n in inside):
        raise DecorationError(f"[{r.start}, {r.end}) lies outside the text")
    out[slot] = Highlight([n for n in inside if n.text])
    return [n for n in out if n is not None]


def decorate(surface: Surface, sentences: Sequence[str]) -> Optional[HighlightPlan]:
    """
    Highlight where ``sentences`` occur in the surface text.
    Returns the plan used, or None when there was nothing to do.
    """
    text = surface.plain_text()
    if not text.strip() or not sentences:
        return None
    plan = plan_highlights(text, sentences)
    if not plan.ranges:
        return plan

    caret_at = surface.caret_offset()
    nodes: List[Node] = list(surface.nodes)
    applied = 0
    for r in plan.ranges:
        try:
            nodes = _wrap_range(nodes, r)
            applied += 1
        except DecorationError as exc:
            log.warning("skipping highlight: %s", exc)
    if applied:
        surface.replace_nodes(nodes, caret_offset=caret_at)
    log.debug("decorated %d/%d ranges", applied, len(plan.ranges))
    return plan


def _rejoin(pieces: List[TextNode]) -> TextNode:
    origin = pieces[0].origin
    text = "".join(p.text for p in pieces)
    if origin is not None and origin.text == text:
        return origin
    return TextNode(text)


def clear(surface: Surface) -> bool:
    """
    Unwrap every highlight back into plain text. Returns False if there were none.

    Pieces split off by ``decorate`` rejoin into the node they came from;
    nodes decoration never touched are kept as they are.
    """
    if not surface.has_highlights():
        return False
    caret_at = surface.caret_offset()
    nodes: List[Node] = []
    run: List[TextNode] = []
    for node in surface.text_nodes():
        if run and node.origin is not run[0].origin:
            nodes.append(_rejoin(run))
            run = []
        if node.origin is None:
            nodes.append(node)
        else:
            run.append(node)
    if run:
        nodes.append(_rejoin(run))
    surface.replace_nodes(nodes, caret_offset=caret_at)
    return True
