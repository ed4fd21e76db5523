import logging

from clipkeep.config import MAX_IMAGE_SIZE, MAX_TEXT_SIZE
from clipkeep.models import UNSUPPORTED, ClipboardSnapshot, ImagePayload, Payload, TextPayload

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = {"png": ".png", "tiff": ".tiff"}


def classify(snapshot: ClipboardSnapshot | None) -> Payload:
    """Map a clipboard snapshot to a text, image or unsupported payload.

    Text wins when both representations are present.
    """
    if snapshot is None:
        return UNSUPPORTED

    if snapshot.text:
        size = len(snapshot.text.encode("utf-8"))
        if size > MAX_TEXT_SIZE:
            logger.warning("Text too large (%d bytes), skipping", size)
        else:
            return TextPayload(snapshot.text)

    if snapshot.image:
        if len(snapshot.image) > MAX_IMAGE_SIZE:
            logger.warning("Image too large (%d bytes), skipping", len(snapshot.image))
            return UNSUPPORTED
        extension = IMAGE_EXTENSIONS.get(snapshot.image_format or "png", ".png")
        return ImagePayload(bytes(snapshot.image), extension)

    return UNSUPPORTED
