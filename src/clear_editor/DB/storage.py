# clear_editor/DB/storage.py
from __future__ import annotations
import json
import logging
from typing import Optional

from ..config import STORAGE_KEY
from ..models import StoredEditor
from .api import KeyValueStore

log = logging.getLogger(__name__)


def save_editor(store: KeyValueStore, content: str, cursor: int, *, key: str = STORAGE_KEY) -> None:
    """Persist content + caret; empty content removes the entry. Storage errors are logged only."""
    try:
        if content:
            cursor = min(max(0, int(cursor)), len(content))
            store.set(key, json.dumps({"content": content, "cursor": cursor}, ensure_ascii=False))
        else:
            store.delete(key)
    except Exception as exc:
        log.warning("could not save editor content: %r", exc)


def load_editor(store: KeyValueStore, *, key: str = STORAGE_KEY) -> Optional[StoredEditor]:
    """Load saved content + caret. A bare legacy string loads with the caret at 0."""
    try:
        raw = store.get(key)
    except Exception as exc:
        log.warning("could not load editor content: %r", exc)
        return None
    if not raw:
        return None
    try:
        parsed = json.loads(raw)
    except ValueError:
        parsed = None
    if isinstance(parsed, dict) and isinstance(parsed.get("content"), str):
        content = parsed["content"]
        cursor = parsed.get("cursor")
        if isinstance(cursor, int) and not isinstance(cursor, bool) and cursor >= 0:
            cursor = min(cursor, len(content))
        else:
            cursor = 0
        return StoredEditor(content=content, cursor=cursor)
    # legacy format: the value is the content itself
    return StoredEditor(content=raw, cursor=0)
