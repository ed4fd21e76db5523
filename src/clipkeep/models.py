from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ContentType(str, Enum):
    TEXT = "text"
    IMAGE = "image"


@dataclass
class HistoryEntry:
    id: int
    kind: ContentType
    text_content: str | None
    image_ref: str | None
    fingerprint: str | None
    last_seen_at: datetime


@dataclass(frozen=True)
class ClipboardSnapshot:
    """Raw representations found on the clipboard at one point in time."""

    text: str | None = None
    image: bytes | None = None
    image_format: str | None = None  # "png" or "tiff"


@dataclass(frozen=True)
class TextPayload:
    text: str


@dataclass(frozen=True)
class ImagePayload:
    data: bytes
    extension: str = ".png"


class Unsupported:
    def __repr__(self) -> str:
        return "UNSUPPORTED"


UNSUPPORTED = Unsupported()

Payload = TextPayload | ImagePayload | Unsupported
