"""Image and sticker conversion backed by Pillow."""

from __future__ import annotations

import logging
from io import BytesIO

from PIL import Image, ImageOps, UnidentifiedImageError

STICKER_SIZE = 512


class MediaConversionError(Exception):
    """Raised when the payload cannot be decoded or re-encoded."""


class StickerCodec:
    def __init__(self, *, size: int = STICKER_SIZE, quality: int = 90) -> None:
        self.size = size
        self.quality = quality

    @staticmethod
    def _open(data: bytes) -> Image.Image:
        try:
            image = Image.open(BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError) as exc:
            raise MediaConversionError(f"Unsupported media: {exc}") from exc
        return image

    def to_sticker(self, image_bytes: bytes) -> bytes:
        """Encode as WEBP no larger than ``size``×``size``."""
        image = ImageOps.exif_transpose(self._open(image_bytes)).convert("RGBA")
        image.thumbnail((self.size, self.size))
        buffer = BytesIO()
        image.save(buffer, format="WEBP", quality=self.quality)
        logging.debug("Converted %d bytes to %dx%d sticker", len(image_bytes), *image.size)
        return buffer.getvalue()

    def to_image(self, sticker_bytes: bytes) -> bytes:
        image = self._open(sticker_bytes)
        image.seek(0)
        buffer = BytesIO()
        image.convert("RGBA").save(buffer, format="PNG")
        return buffer.getvalue()
