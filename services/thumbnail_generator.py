"""Preview generator for captured leaf photos.

Provides a small OOP wrapper around Pillow to render a display preview
from encoded image bytes. The preview fits within 320x320 pixels and is
returned as PNG bytes.

Example:
    tg = ThumbnailGenerator(max_size=(320, 320))
    png = tg.create_thumbnail(image.payload)
"""
from __future__ import annotations

import io
from typing import Tuple

from PIL import Image


class ThumbnailGenerator:
    """Generate previews from encoded image bytes.

    Args:
        max_size: Maximum width and height for the preview. Defaults to (320, 320).
        background: Optional background color used when flattening images with alpha.
            If None, images with alpha are flattened against white.
    """

    def __init__(self, max_size: Tuple[int, int] = (320, 320), background: Tuple[int, int, int] | None = None):
        self.max_size = max_size
        self.background = background or (255, 255, 255)

    def create_thumbnail(self, data: bytes) -> bytes:
        """Create a PNG preview from encoded image bytes.

        Raises:
            ValueError: If the bytes cannot be opened as an image.
        """
        try:
            src = Image.open(io.BytesIO(data))
            src = src.convert("RGBA")
        except Exception as exc:
            raise ValueError("Bytes are not a supported image format") from exc

        src.thumbnail(self.max_size, Image.LANCZOS)

        # Flatten alpha against the background color
        background = Image.new("RGB", src.size, self.background)
        background.paste(src, mask=src.split()[3])

        out_io = io.BytesIO()
        background.save(out_io, format="PNG", optimize=True)
        return out_io.getvalue()


def detect_encoding(data: bytes) -> str:
    """Return the lower-case format tag of encoded image bytes (e.g. "jpeg").

    Raises:
        ValueError: If Pillow cannot identify the bytes as an image.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.verify()
            fmt = img.format
    except Exception as exc:
        raise ValueError("Frame is not a decodable image") from exc
    if not fmt:
        raise ValueError("Frame format could not be determined")
    return fmt.lower()
