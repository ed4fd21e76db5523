import hashlib
import os
import struct
import uuid
from pathlib import Path

from clipkeep.config import AppConfig


class ImageWriteError(OSError):
    """Image bytes could not be durably written to the image directory."""


def compute_hash(data: str | bytes) -> str:
    if isinstance(data, str):
        data = data.encode("utf-8")
    return hashlib.sha256(data).hexdigest()


def truncate_text(text: str, max_len: int) -> str:
    single_line = " ".join(text.split())
    if len(single_line) <= max_len:
        return single_line
    return single_line[: max_len - 3] + "..."


def ensure_dirs(config: AppConfig) -> None:
    config.data_dir.mkdir(parents=True, exist_ok=True)
    config.image_dir.mkdir(parents=True, exist_ok=True)


def get_image_dimensions(png_bytes: bytes) -> tuple[int, int]:
    if len(png_bytes) < 24 or png_bytes[:8] != b"\x89PNG\r\n\x1a\n":
        return (0, 0)
    width = struct.unpack(">I", png_bytes[16:20])[0]
    height = struct.unpack(">I", png_bytes[20:24])[0]
    return (width, height)


def write_image_bytes(image_dir: str | Path, data: bytes, extension: str = ".png") -> Path:
    """Write image bytes to a new uniquely named file and confirm it landed.

    Args:
        image_dir: Directory holding captured images
        data: Encoded image bytes
        extension: File suffix including the dot

    Returns:
        Path of the written file

    Raises:
        ImageWriteError: if the file could not be written or its size on disk
            does not match ``data``
    """
    path = Path(image_dir) / f"{uuid.uuid4().hex}{extension}"
    try:
        with open(path, "xb") as fh:
            fh.write(data)
            fh.flush()
            os.fsync(fh.fileno())
        written = path.stat().st_size
    except OSError as exc:
        raise ImageWriteError(f"Could not write image to {path}: {exc}") from exc
    if written != len(data):
        raise ImageWriteError(f"Short write for {path}: {written} of {len(data)} bytes")
    return path
