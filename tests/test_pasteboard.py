from unittest.mock import MagicMock, patch

import pytest

pytest.importorskip("AppKit")

from clipkeep.models import ClipboardSnapshot  # noqa: E402
from clipkeep.pasteboard import PasteboardSource  # noqa: E402


@pytest.fixture
def mock_pasteboard():
    with (
        patch("clipkeep.pasteboard.NSPasteboard") as mock_pb_class,
        patch("clipkeep.pasteboard.NSPasteboardTypeString", "public.utf8-plain-text"),
        patch("clipkeep.pasteboard.NSPasteboardTypePNG", "public.png"),
        patch("clipkeep.pasteboard.NSPasteboardTypeTIFF", "public.tiff"),
    ):
        mock_pb = MagicMock()
        mock_pb_class.generalPasteboard.return_value = mock_pb
        mock_pb.changeCount.return_value = 0
        mock_pb.types.return_value = []
        yield mock_pb


@pytest.fixture
def source(mock_pasteboard):
    return PasteboardSource()


class TestPoll:
    def test_no_change(self, source, mock_pasteboard):
        callback = MagicMock()
        source.subscribe(callback)
        assert source.poll() is False
        callback.assert_not_called()

    def test_change_notifies_once(self, source, mock_pasteboard):
        callback = MagicMock()
        source.subscribe(callback)
        mock_pasteboard.changeCount.return_value = 1
        assert source.poll() is True
        assert source.poll() is False
        callback.assert_called_once()

    def test_unsubscribe(self, source, mock_pasteboard):
        callback = MagicMock()
        handle = source.subscribe(callback)
        source.unsubscribe(handle)
        mock_pasteboard.changeCount.return_value = 1
        source.poll()
        callback.assert_not_called()


class TestRead:
    def test_text(self, source, mock_pasteboard):
        mock_pasteboard.types.return_value = ["public.utf8-plain-text"]
        mock_pasteboard.stringForType_.return_value = "hello world"
        assert source.read() == ClipboardSnapshot(text="hello world")

    def test_png(self, source, mock_pasteboard):
        mock_pasteboard.types.return_value = ["public.png"]
        mock_pasteboard.dataForType_.return_value = b"png-bytes"
        assert source.read() == ClipboardSnapshot(image=b"png-bytes", image_format="png")

    def test_tiff(self, source, mock_pasteboard):
        mock_pasteboard.types.return_value = ["public.tiff"]
        mock_pasteboard.dataForType_.return_value = b"tiff-bytes"
        assert source.read().image_format == "tiff"

    def test_empty(self, source, mock_pasteboard):
        assert source.read() == ClipboardSnapshot()

    def test_none_types(self, source, mock_pasteboard):
        mock_pasteboard.types.return_value = None
        assert source.read() is None
