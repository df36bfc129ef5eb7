"""
Conversion between encoded image bytes and PixelBuffer, backed by Pillow.
"""

import io
from itertools import chain
from typing import Optional

from PIL import Image

from pixels import Pixel, PixelBuffer


class DecodeError(ValueError):
    """Raised when bytes cannot be turned into a PixelBuffer."""


def decode(data: bytes, max_pixels: Optional[int] = None) -> PixelBuffer:
    """Decode any Pillow-supported image into an RGBA PixelBuffer.

    The header is checked against ``max_pixels`` before any pixel data is
    read, so oversized uploads are rejected without being decompressed.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            if max_pixels is not None and width * height > max_pixels:
                raise DecodeError(
                    f"Failed to load image: {width}x{height} exceeds the "
                    f"limit of {max_pixels} pixels"
                )
            raw = img.convert("RGBA").tobytes()
    except DecodeError:
        raise
    except (OSError, ValueError, SyntaxError, EOFError, Image.DecompressionBombError) as exc:
        raise DecodeError(f"Failed to load image: {exc}") from exc

    channels = iter(raw)
    pixels = tuple(map(Pixel._make, zip(channels, channels, channels, channels)))
    return PixelBuffer(width, height, pixels)


def encode(buffer: PixelBuffer) -> bytes:
    """Encode a PixelBuffer as an RGBA PNG."""
    if buffer.width == 0 or buffer.height == 0:
        raise ValueError("Cannot encode an empty image as PNG")

    raw = bytes(chain.from_iterable(buffer.pixels))
    img = Image.frombytes("RGBA", buffer.size, raw)
    out = io.BytesIO()
    img.save(out, format="PNG")
    return out.getvalue()
