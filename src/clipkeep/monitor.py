import logging
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from clipkeep.classifier import classify
from clipkeep.models import ClipboardSnapshot, ContentType, ImagePayload, TextPayload
from clipkeep.notifier import ChangeNotifier
from clipkeep.storage import HistoryStore
from clipkeep.utils import compute_hash, get_image_dimensions, write_image_bytes

logger = logging.getLogger(__name__)


class ClipboardSource(Protocol):
    """Host clipboard capability the coordinator depends on."""

    def read(self) -> ClipboardSnapshot | None: ...

    def subscribe(self, on_change: Callable[[], None]) -> Any: ...

    def unsubscribe(self, handle: Any) -> None: ...


class CaptureCoordinator:
    def __init__(
        self,
        store: HistoryStore,
        reader: Callable[[], ClipboardSnapshot | None],
        image_dir: str | Path,
        notifier: ChangeNotifier | None = None,
    ):
        self._store = store
        self._reader = reader
        self._image_dir = Path(image_dir)
        self._notifier = notifier or ChangeNotifier()

    @property
    def notifier(self) -> ChangeNotifier:
        return self._notifier

    def handle_change(self) -> bool:
        """React to one "clipboard changed" signal.

        Returns True when an entry was inserted or touched. Failures are logged
        and reported as False so the caller keeps listening.
        """
        try:
            return self.capture(self._reader()) is not None
        except Exception:
            logger.exception("Error capturing clipboard")
            return False

    def capture(self, snapshot: ClipboardSnapshot | None) -> int | None:
        payload = classify(snapshot)

        if isinstance(payload, TextPayload):
            fingerprint = compute_hash(payload.text)
            entry_id = self._store.upsert(ContentType.TEXT, payload.text, fingerprint)
            logger.info("Text content copied (entry %d)", entry_id)
        elif isinstance(payload, ImagePayload):
            fingerprint = compute_hash(payload.data)
            # The bytes must be on disk before a row can point at them
            image_path = write_image_bytes(self._image_dir, payload.data, payload.extension)
            entry_id = self._store.upsert(ContentType.IMAGE, str(image_path), fingerprint)
            width, height = get_image_dimensions(payload.data)
            if width:
                logger.info("Image content copied: %dx%d (entry %d)", width, height, entry_id)
            else:
                logger.info("Image content copied (entry %d)", entry_id)
        else:
            return None

        self._notifier.notify()
        return entry_id

    def attach(self, source: ClipboardSource) -> Any:
        """Subscribe to a clipboard source; returns its subscription handle."""
        return source.subscribe(self.handle_change)
