import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)


class ChangeNotifier:
    """Single-slot observer called synchronously after each history change."""

    def __init__(self, callback: Callable[[], None] | None = None):
        self._callback = callback

    def register(self, callback: Callable[[], None]) -> None:
        self._callback = callback

    def clear(self) -> None:
        self._callback = None

    @property
    def has_observer(self) -> bool:
        return self._callback is not None

    def notify(self) -> None:
        if self._callback is None:
            return
        try:
            self._callback()
        except Exception:
            logger.exception("History observer failed")
