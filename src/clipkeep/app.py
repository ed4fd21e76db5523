import logging
import subprocess
from dataclasses import dataclass
from typing import Callable

import rumps

from clipkeep import __version__
from clipkeep.config import PREVIEW_LENGTH, AppConfig
from clipkeep.models import ContentType, HistoryEntry
from clipkeep.monitor import CaptureCoordinator
from clipkeep.notifier import ChangeNotifier
from clipkeep.pasteboard import PasteboardSource
from clipkeep.storage import HistoryStore
from clipkeep.utils import truncate_text

logger = logging.getLogger(__name__)

ENTRY_KEY_PREFIX = "clipkeep_entry_"


@dataclass
class MenuItemSpec:
    """Specification for a menu item, separating logic from rumps rendering."""

    title: str
    callback: Callable | None = None
    entry_id: int | None = None
    children: list["MenuItemSpec | None"] | None = None


def entry_title(entry: HistoryEntry) -> str:
    if entry.kind == ContentType.IMAGE:
        return f"[Image] {truncate_text(entry.image_ref or '', PREVIEW_LENGTH)}"
    return truncate_text(entry.text_content or "", PREVIEW_LENGTH) or "(empty)"


class ClipkeepApp(rumps.App):
    def __init__(self, config: AppConfig, store: HistoryStore):
        super().__init__("Clipkeep", title="📋", quit_button=None)
        self._config = config
        self._store = store
        self._notifier = ChangeNotifier(self.on_history_changed)
        self._source = PasteboardSource()
        self._coordinator = CaptureCoordinator(store, self._source.read, config.image_dir, self._notifier)
        self._subscription = self._coordinator.attach(self._source)
        self._timer = rumps.Timer(self._poll_clipboard, config.poll_interval)
        self._timer.start()
        self._build_menu()

    def _build_menu(self) -> None:
        self.menu.clear()
        self.menu = [self._render_single_spec(spec) for spec in self._compute_menu_specs()]

    def _compute_menu_specs(self) -> list[MenuItemSpec | None]:
        """Compute menu item specifications. Pure logic, no rumps dependency."""
        specs: list[MenuItemSpec | None] = [
            MenuItemSpec(f"Clipkeep v{__version__} - Clipboard History"),
            None,  # separator
        ]

        entries = self._store.list_recent(limit=self._config.menu_display_count)
        if not entries:
            specs.append(MenuItemSpec("(No clipboard history)"))
        for entry in entries:
            specs.append(
                MenuItemSpec(
                    entry_title(entry),
                    children=[MenuItemSpec("Delete", callback=self._on_delete, entry_id=entry.id)],
                )
            )

        specs.extend([
            None,  # separator
            MenuItemSpec("Open Images Folder", callback=self._on_open_images),
            None,  # separator
            MenuItemSpec("Quit Clipkeep", callback=self._on_quit),
        ])
        return specs

    def _render_single_spec(self, spec: MenuItemSpec | None) -> rumps.MenuItem | None:
        if spec is None:
            return None

        item = rumps.MenuItem(spec.title, callback=spec.callback)
        if spec.entry_id is not None:
            item._id = f"{ENTRY_KEY_PREFIX}{spec.entry_id}"
        for child in spec.children or []:
            item.add(self._render_single_spec(child))
        return item

    def on_history_changed(self) -> None:
        self._build_menu()

    def _poll_clipboard(self, _sender) -> None:
        self._source.poll()

    def _on_delete(self, sender) -> None:
        key = getattr(sender, "_id", "")
        if not key.startswith(ENTRY_KEY_PREFIX):
            return
        try:
            self._store.delete_by_id(int(key[len(ENTRY_KEY_PREFIX):]))
        except Exception:
            logger.exception("Error deleting history entry")
        self._build_menu()

    def _on_open_images(self, _sender) -> None:
        subprocess.run(["open", str(self._config.image_dir)], check=False)

    def _on_quit(self, _sender) -> None:
        self._timer.stop()
        self._source.unsubscribe(self._subscription)
        rumps.quit_application()
