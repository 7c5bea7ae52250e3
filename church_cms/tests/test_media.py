import io
import unittest
from dataclasses import dataclass

from PIL import Image

from church_cms.errors import InvalidMediaType, MediaTooLarge
from church_cms.media import (
    MAX_AUDIO_SIZE,
    MAX_IMAGE_SIZE,
    MediaKind,
    UploadedMedia,
    image_subtype,
    is_valid_audio_type,
    is_valid_image_type,
    probe_image_size,
    validate_media,
)


@dataclass
class SizedFile:
    """Stands in for UploadedMedia without allocating the bytes."""

    content_type: str
    size: int


def png_bytes(width: int = 4, height: int = 3) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), "white").save(buffer, format="PNG")
    return buffer.getvalue()


class MediaValidatorTests(unittest.TestCase):
    def test_image_types(self):
        self.assertTrue(is_valid_image_type("image/png"))
        self.assertTrue(is_valid_image_type("IMAGE/JPEG"))
        self.assertTrue(is_valid_image_type("image/svg+xml"))
        self.assertFalse(is_valid_image_type("image/tiff"))
        self.assertFalse(is_valid_image_type(None))

    def test_audio_types_ignore_parameters(self):
        self.assertTrue(is_valid_audio_type("audio/mpeg"))
        self.assertTrue(is_valid_audio_type("audio/webm;codecs=opus"))
        self.assertTrue(is_valid_audio_type("audio/x-m4a"))
        self.assertFalse(is_valid_audio_type("video/mp4"))

    def test_image_size_boundary(self):
        validate_media(MediaKind.IMAGE, SizedFile("image/png", MAX_IMAGE_SIZE))
        with self.assertRaises(MediaTooLarge) as ctx:
            validate_media(MediaKind.IMAGE, SizedFile("image/png", MAX_IMAGE_SIZE + 1))
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertIn("max 5MB", ctx.exception.message)

    def test_audio_size_boundary(self):
        validate_media(MediaKind.AUDIO, SizedFile("audio/mpeg", MAX_AUDIO_SIZE))
        with self.assertRaises(MediaTooLarge) as ctx:
            validate_media(MediaKind.AUDIO, SizedFile("audio/mpeg", MAX_AUDIO_SIZE + 1))
        self.assertIn("max 100MB", ctx.exception.message)

    def test_wrong_kind_is_rejected(self):
        with self.assertRaises(InvalidMediaType):
            validate_media(MediaKind.AUDIO, SizedFile("image/png", 10))
        with self.assertRaises(InvalidMediaType):
            validate_media(MediaKind.IMAGE, SizedFile("audio/mpeg", 10))

    def test_uploaded_media_size(self):
        media = UploadedMedia("a.png", "image/png", b"12345")
        self.assertEqual(media.size, 5)


class ImageProbeTests(unittest.TestCase):
    def test_probe_png(self):
        self.assertEqual(probe_image_size(png_bytes(7, 5)), (7, 5))

    def test_probe_unreadable(self):
        self.assertIsNone(probe_image_size(b"<svg xmlns='http://www.w3.org/2000/svg'/>"))

    def test_image_subtype(self):
        self.assertEqual(image_subtype("image/svg+xml"), "svg")
        self.assertEqual(image_subtype("image/JPEG"), "jpeg")


if __name__ == "__main__":
    unittest.main()
