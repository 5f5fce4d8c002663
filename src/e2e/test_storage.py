import json
from pathlib import Path

import pytest

from clear_editor import config as CFG
from clear_editor.DB.api import make_store
from clear_editor.DB.memory_store import MemoryStore
from clear_editor.DB.storage import load_editor, save_editor
from clear_editor.models import StoredEditor


def test_memory_roundtrip():
    store = make_store("memory://")
    save_editor(store, "Dear diary, today was long.", 5)
    assert load_editor(store) == StoredEditor("Dear diary, today was long.", 5)


def test_sqlite_persists_across_reopen(tmp_path: Path):
    dsn = f"sqlite:///{tmp_path / 'nested' / 'clear.sqlite'}"
    store = make_store(dsn)
    save_editor(store, "Dear diary", 4)
    store.close()

    reopened = make_store(dsn)
    assert load_editor(reopened) == StoredEditor("Dear diary", 4)
    reopened.close()


def test_legacy_bare_string_loads_with_caret_at_start():
    store = MemoryStore({CFG.STORAGE_KEY: "Old content"})
    assert load_editor(store) == StoredEditor("Old content", 0)


def test_json_that_is_not_an_editor_record_is_treated_as_content():
    store = MemoryStore({CFG.STORAGE_KEY: "[1, 2, 3]"})
    assert load_editor(store) == StoredEditor("[1, 2, 3]", 0)


@pytest.mark.parametrize("cursor, expected", [
    (3, 3),
    (999, 5),
    (-4, 0),
    ("7", 0),
    (True, 0),
    (None, 0),
])
def test_stored_cursor_is_validated(cursor, expected):
    store = MemoryStore({CFG.STORAGE_KEY: json.dumps({"content": "hello", "cursor": cursor})})
    assert load_editor(store).cursor == expected


def test_save_clamps_cursor_to_content():
    store = MemoryStore()
    save_editor(store, "abc", 50)
    assert json.loads(store.get(CFG.STORAGE_KEY)) == {"content": "abc", "cursor": 3}
    save_editor(store, "abc", -2)
    assert json.loads(store.get(CFG.STORAGE_KEY))["cursor"] == 0


def test_empty_content_deletes_entry():
    store = MemoryStore()
    save_editor(store, "abc", 1)
    save_editor(store, "", 0)
    assert store.get(CFG.STORAGE_KEY) is None
    assert load_editor(store) is None


def test_storage_failures_are_not_fatal():
    class Broken(MemoryStore):
        def get(self, key):
            raise OSError("disk gone")

        def set(self, key, value):
            raise OSError("disk gone")

    store = Broken()
    save_editor(store, "abc", 1)
    assert load_editor(store) is None


def test_custom_key():
    store = MemoryStore()
    save_editor(store, "draft", 2, key="other")
    assert load_editor(store) is None
    assert load_editor(store, key="other") == StoredEditor("draft", 2)


def test_unsupported_dsn():
    with pytest.raises(ValueError):
        make_store("postgres://localhost/clear")
