"""
Image payload helpers: base64 handling, data URIs and MIME detection.
"""

import base64
import binascii
import io
from dataclasses import dataclass
from typing import Optional

from PIL import Image, UnidentifiedImageError

from openjourney.core.exceptions import InvalidInputError

DEFAULT_MIME_TYPE = "image/png"

_FORMAT_MIME_TYPES = {
    "PNG": "image/png",
    "JPEG": "image/jpeg",
    "WEBP": "image/webp",
    "GIF": "image/gif",
    "BMP": "image/bmp",
}


@dataclass(frozen=True)
class SourceImage:
    """A base64 image ready to be sent to a provider."""
    data: str
    mime_type: str = DEFAULT_MIME_TYPE

    @property
    def data_uri(self) -> str:
        return to_data_uri(self.data, self.mime_type)


def to_data_uri(data: str, mime_type: Optional[str] = None) -> str:
    return f"data:{mime_type or DEFAULT_MIME_TYPE};base64,{data}"


def strip_data_uri(value: str) -> str:
    """Accept either raw base64 or a data URI and return the base64 part."""
    if value.startswith("data:") and "," in value:
        return value.split(",", 1)[1]
    return value


def detect_mime_type(raw: bytes) -> str:
    """Identify the image format with Pillow."""
    try:
        with Image.open(io.BytesIO(raw)) as img:
            image_format = img.format
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidInputError("Source image could not be decoded", {"error": str(e)})
    return _FORMAT_MIME_TYPES.get(image_format or "", DEFAULT_MIME_TYPE)


def decode_source_image(value: str) -> SourceImage:
    """
    Validate base64 image bytes supplied by a caller.

    Raises:
        InvalidInputError: if the value is empty, not base64, or not an image
    """
    if not value or not value.strip():
        raise InvalidInputError("Image data is required")

    data = strip_data_uri(value.strip())
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError):
        raise InvalidInputError("Image data is not valid base64")

    return SourceImage(data=data, mime_type=detect_mime_type(raw))
