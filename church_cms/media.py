"""
Uploaded file value type and the pure validators applied before any upload.
"""

from __future__ import annotations

import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from PIL import Image, UnidentifiedImageError

from church_cms.errors import InvalidMediaType, MediaTooLarge

logger = logging.getLogger(__name__)

MAX_IMAGE_SIZE = 5 * 1024 * 1024
MAX_AUDIO_SIZE = 100 * 1024 * 1024

IMAGE_TYPES = frozenset(
    {
        "image/jpeg",
        "image/jpg",
        "image/png",
        "image/gif",
        "image/webp",
        "image/svg+xml",
    }
)

# Browsers and phones disagree on audio MIME strings, so the list is broad.
AUDIO_TYPES = frozenset(
    {
        "audio/mpeg",
        "audio/mp3",
        "audio/wav",
        "audio/wave",
        "audio/x-wav",
        "audio/m4a",
        "audio/mp4",
        "audio/x-m4a",
        "audio/mp4a-latm",
        "audio/mpeg4-generic",
        "audio/aac",
        "audio/x-aac",
        "audio/ogg",
        "audio/vorbis",
        "audio/flac",
        "audio/x-flac",
        "audio/webm",
        "audio/opus",
        "audio/3gpp",
        "audio/3gpp2",
        "audio/amr",
        "audio/basic",
        "audio/mid",
        "audio/midi",
        "audio/x-midi",
        "audio/wma",
        "audio/x-ms-wma",
    }
)


class MediaKind(str, Enum):
    IMAGE = "image"
    AUDIO = "audio"


@dataclass(frozen=True)
class MediaSlot:
    """
    One URL field of a record that points at a blob.

    The optional ``*_field`` names are record fields filled from the file
    itself whenever a new blob is attached.
    """

    field: str
    kind: MediaKind
    folder: str
    required: bool = False
    label: str = "File"
    size_field: Optional[str] = None
    width_field: Optional[str] = None
    height_field: Optional[str] = None
    type_field: Optional[str] = None


@dataclass(frozen=True)
class UploadedMedia:
    """A file received from a multipart request, fully read into memory."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def _normalize(mimetype: Optional[str]) -> str:
    return (mimetype or "").split(";", 1)[0].strip().lower()


def is_valid_image_type(mimetype: Optional[str]) -> bool:
    return _normalize(mimetype) in IMAGE_TYPES


def is_valid_audio_type(mimetype: Optional[str]) -> bool:
    return _normalize(mimetype) in AUDIO_TYPES


def is_valid_image_size(size: int) -> bool:
    return size <= MAX_IMAGE_SIZE


def is_valid_audio_size(size: int) -> bool:
    return size <= MAX_AUDIO_SIZE


def validate_media(kind: MediaKind, media: UploadedMedia) -> None:
    """Raise if ``media`` is not an acceptable file of ``kind``."""
    if kind is MediaKind.AUDIO:
        if not is_valid_audio_type(media.content_type):
            raise InvalidMediaType(media.content_type, kind.value)
        if not is_valid_audio_size(media.size):
            raise MediaTooLarge(media.size, MAX_AUDIO_SIZE, kind.value)
        return
    if not is_valid_image_type(media.content_type):
        raise InvalidMediaType(media.content_type, kind.value)
    if not is_valid_image_size(media.size):
        raise MediaTooLarge(media.size, MAX_IMAGE_SIZE, kind.value)


def image_subtype(mimetype: Optional[str]) -> str:
    """``image/svg+xml`` -> ``svg``, ``image/jpeg`` -> ``jpeg``."""
    subtype = _normalize(mimetype).split("/", 1)[-1]
    return subtype.split("+", 1)[0]


def probe_image_size(data: bytes) -> Optional[tuple[int, int]]:
    """
    Return ``(width, height)`` of a raster image, or None when Pillow cannot
    read it (SVG, truncated uploads).
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            return img.size
    except (UnidentifiedImageError, OSError) as e:
        logger.debug("Could not read image dimensions: %s", e)
        return None
