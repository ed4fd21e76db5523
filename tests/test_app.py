"""Tests for app.py menu logic.

ClipkeepApp inherits from rumps.App, which needs the macOS GUI, so the menu
logic is exercised on an instance built without running __init__.
"""
from unittest.mock import MagicMock

import pytest

pytest.importorskip("rumps")

from clipkeep.app import ClipkeepApp, MenuItemSpec, entry_title  # noqa: E402
from clipkeep.models import ContentType  # noqa: E402
from clipkeep.utils import compute_hash  # noqa: E402


@pytest.fixture
def app(store, config):
    instance = ClipkeepApp.__new__(ClipkeepApp)
    instance._config = config
    instance._store = store
    return instance


def _titles(specs):
    return [s.title if s else None for s in specs]


class TestMenuSpecs:
    def test_empty_history(self, app):
        assert "(No clipboard history)" in _titles(app._compute_menu_specs())

    def test_entries_most_recent_first(self, app, store):
        store.upsert(ContentType.TEXT, "first", compute_hash("first"))
        store.upsert(ContentType.TEXT, "second", compute_hash("second"))
        titles = _titles(app._compute_menu_specs())
        assert titles.index("second") < titles.index("first")

    def test_entry_has_delete_child(self, app, store):
        entry_id = store.upsert(ContentType.TEXT, "deletable", compute_hash("deletable"))
        spec = next(s for s in app._compute_menu_specs() if s and s.title == "deletable")
        assert spec.children[0].title == "Delete"
        assert spec.children[0].entry_id == entry_id

    def test_respects_display_count(self, app, store):
        for i in range(20):
            store.upsert(ContentType.TEXT, f"item {i}", compute_hash(f"item {i}"))
        titles = _titles(app._compute_menu_specs())
        assert sum(1 for t in titles if t and t.startswith("item ")) == app._config.menu_display_count


class TestEntryTitle:
    def test_image_title(self, store):
        entry_id = store.upsert(ContentType.IMAGE, "/tmp/shot.png", "h")
        assert entry_title(store.get_entry(entry_id)).startswith("[Image]")


class TestDelete:
    def test_on_delete_removes_entry(self, app, store):
        entry_id = store.upsert(ContentType.TEXT, "gone", compute_hash("gone"))
        app._build_menu = MagicMock()
        app._on_delete(MagicMock(_id=f"clipkeep_entry_{entry_id}"))
        assert store.get_entry(entry_id) is None
        app._build_menu.assert_called_once()

    def test_history_changed_rebuilds_menu(self, app):
        app._build_menu = MagicMock()
        app.on_history_changed()
        app._build_menu.assert_called_once()


def test_menu_item_spec_defaults():
    spec = MenuItemSpec("Title")
    assert spec.callback is None
    assert spec.children is None
