import itertools
import logging
from collections.abc import Callable

from AppKit import NSPasteboard, NSPasteboardTypePNG, NSPasteboardTypeString, NSPasteboardTypeTIFF

from clipkeep.models import ClipboardSnapshot

logger = logging.getLogger(__name__)


class PasteboardSource:
    """Clipboard source backed by the macOS general pasteboard.

    AppKit has no change notification for the pasteboard, so ``poll`` compares
    ``changeCount`` and calls every subscriber once per observed change. The
    app drives ``poll`` from its run loop timer.
    """

    def __init__(self):
        self._pasteboard = NSPasteboard.generalPasteboard()
        self._last_change_count = self._pasteboard.changeCount()
        self._subscribers: dict[int, Callable[[], None]] = {}
        self._handles = itertools.count(1)

    def subscribe(self, on_change: Callable[[], None]) -> int:
        handle = next(self._handles)
        self._subscribers[handle] = on_change
        return handle

    def unsubscribe(self, handle: int) -> None:
        self._subscribers.pop(handle, None)

    def poll(self) -> bool:
        current_count = self._pasteboard.changeCount()
        if current_count == self._last_change_count:
            return False

        self._last_change_count = current_count
        for callback in list(self._subscribers.values()):
            callback()
        return True

    def read(self) -> ClipboardSnapshot | None:
        types = self._pasteboard.types()
        if types is None:
            return None

        text = None
        if NSPasteboardTypeString in types:
            text = self._pasteboard.stringForType_(NSPasteboardTypeString)
            if text is not None:
                text = str(text)

        for img_type, img_format in ((NSPasteboardTypePNG, "png"), (NSPasteboardTypeTIFF, "tiff")):
            if img_type in types:
                data = self._pasteboard.dataForType_(img_type)
                if data is not None:
                    return ClipboardSnapshot(text=text, image=bytes(data), image_format=img_format)

        return ClipboardSnapshot(text=text)
