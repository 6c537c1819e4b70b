"""
Image reference resolution and size reduction.
"""
from io import BytesIO
from pathlib import Path
from urllib.parse import unquote, urlparse
import logging

from PIL import Image

logger = logging.getLogger(__name__)


class ImageTooLarge(Exception):
    """Raised when an image cannot be brought under a provider size limit."""
    pass


def resolve_image_path(image_ref: str) -> Path:
    """Turn a filesystem path or file:// URI into a Path."""
    if image_ref.startswith("file://"):
        return Path(unquote(urlparse(image_ref).path))
    return Path(image_ref)


def load_image_bytes(image_ref: str) -> bytes:
    """Read the referenced image; raises FileNotFoundError if it is missing."""
    path = resolve_image_path(image_ref)
    if not path.is_file():
        raise FileNotFoundError(f"Image not found: {image_ref}")
    return path.read_bytes()


def shrink_to_limit(image_bytes: bytes, max_bytes: int, quality: int = 85) -> bytes:
    """
    Return image bytes no larger than max_bytes.

    Images already under the limit are returned untouched. Larger ones are
    downscaled by the area ratio and re-encoded as JPEG, a few passes at most.

    Raises:
        ImageTooLarge: If the image is still above the limit after shrinking
    """
    if len(image_bytes) <= max_bytes:
        return image_bytes

    try:
        img = Image.open(BytesIO(image_bytes))
        img = img.convert("RGB")
    except Exception as e:
        raise ImageTooLarge(f"Cannot re-encode image for size reduction: {e}")

    data = image_bytes
    for _ in range(4):
        ratio = (max_bytes / len(data)) ** 0.5 * 0.9
        new_size = (max(1, int(img.width * ratio)), max(1, int(img.height * ratio)))
        img = img.resize(new_size)
        buf = BytesIO()
        img.save(buf, format="JPEG", quality=quality)
        data = buf.getvalue()
        if len(data) <= max_bytes:
            logger.info(f"Shrunk image from {len(image_bytes)} to {len(data)} bytes")
            return data

    raise ImageTooLarge(
        f"Image too large ({len(image_bytes) / (1024 * 1024):.1f}MB > {max_bytes / (1024 * 1024):.0f}MB limit)"
    )
