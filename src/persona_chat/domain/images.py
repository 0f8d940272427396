"""Data-URL encoding for image attachments."""

import base64
import mimetypes
from pathlib import Path

from .exceptions import ImageValidationError

MAX_IMAGE_BYTES = 5 * 1024 * 1024


def image_to_data_url(data: bytes, mime_type: str) -> str:
    """
    Encode image bytes as a ``data:`` URL.

    Only the declared MIME type and the size are checked; the payload is not decoded.

    Raises:
        ImageValidationError: If the type is not ``image/*`` or the payload exceeds 5 MB
    """
    if not mime_type or not mime_type.startswith("image/"):
        raise ImageValidationError(
            f"Unsupported file type '{mime_type}'. Please attach an image.",
            mime_type=mime_type,
        )
    if len(data) > MAX_IMAGE_BYTES:
        raise ImageValidationError(
            "Image is larger than 5MB.",
            mime_type=mime_type,
            size_bytes=len(data),
        )
    if not data:
        raise ImageValidationError("Image file is empty.", mime_type=mime_type, size_bytes=0)

    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


def load_image_file(path: str | Path) -> str:
    """Read an image file and return it as a data URL, guessing the MIME type from its name."""
    path = Path(path)
    mime_type, _ = mimetypes.guess_type(path.name)
    if not mime_type or not mime_type.startswith("image/"):
        raise ImageValidationError(
            f"Unsupported file type for '{path.name}'. Please attach an image.",
            mime_type=mime_type,
        )
    try:
        size = path.stat().st_size
        if size > MAX_IMAGE_BYTES:
            raise ImageValidationError("Image is larger than 5MB.", mime_type=mime_type, size_bytes=size)
        data = path.read_bytes()
    except OSError as e:
        raise ImageValidationError(f"Cannot read image '{path}': {e}") from e

    return image_to_data_url(data, mime_type)
