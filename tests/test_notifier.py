from unittest.mock import MagicMock

from clipkeep.notifier import ChangeNotifier


class TestChangeNotifier:
    def test_notify_without_observer_is_noop(self):
        notifier = ChangeNotifier()
        notifier.notify()
        assert notifier.has_observer is False

    def test_register_and_notify(self):
        callback = MagicMock()
        notifier = ChangeNotifier()
        notifier.register(callback)
        notifier.notify()
        callback.assert_called_once_with()

    def test_single_slot_replaces_previous(self):
        first, second = MagicMock(), MagicMock()
        notifier = ChangeNotifier(first)
        notifier.register(second)
        notifier.notify()
        first.assert_not_called()
        second.assert_called_once()

    def test_clear(self):
        callback = MagicMock()
        notifier = ChangeNotifier(callback)
        notifier.clear()
        notifier.notify()
        callback.assert_not_called()

    def test_observer_exception_is_logged(self, caplog):
        notifier = ChangeNotifier(MagicMock(side_effect=RuntimeError("boom")))
        notifier.notify()
        assert "History observer failed" in caplog.text
