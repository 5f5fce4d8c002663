# clear_editor/DB/api.py
from __future__ import annotations
import os
from typing import Optional, Protocol


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...
    def set(self, key: str, value: str) -> None: ...
    def delete(self, key: str) -> None: ...
    # lifecycle
    def close(self) -> None: ...


def make_store(dsn: str) -> KeyValueStore:
    """
    Factory:
      - sqlite:///path -> SQLiteStore (file and table created on first use)
      - memory://      -> MemoryStore
    """
    if dsn.startswith("sqlite:///"):
        path = dsn.removeprefix("sqlite:///")
        os.makedirs(os.path.dirname(os.path.abspath(path)), exist_ok=True)
        from .sqlite_store import SQLiteStore
        return SQLiteStore(path)

    if dsn.startswith("memory://"):
        from .memory_store import MemoryStore
        return MemoryStore()

    raise ValueError(f"Unsupported store DSN: {dsn}")
