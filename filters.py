"""
Per-pixel filters and the engine that applies them.

A filter is any function ``(x, y, pixel) -> pixel``. Filters only see the
pixel they are asked about, so the engine may visit cells in any order.
"""

from typing import Callable, Dict

from pixels import Pixel, PixelBuffer

FilterFunction = Callable[[int, int, Pixel], Pixel]


def apply(filter_fn: FilterFunction, buffer: PixelBuffer) -> PixelBuffer:
    """Return a new buffer holding ``filter_fn(x, y, buffer[x, y])`` for every cell."""
    width = buffer.width
    pixels = tuple(
        filter_fn(i % width, i // width, pixel)
        for i, pixel in enumerate(buffer.pixels)
    )
    return PixelBuffer(buffer.width, buffer.height, pixels)


# --- Built-in filters ---------------------------------------------------------

def identity(x: int, y: int, pixel: Pixel) -> Pixel:
    return pixel


def green_boost(x: int, y: int, pixel: Pixel) -> Pixel:
    return pixel._replace(g=255)


def red_boost(x: int, y: int, pixel: Pixel) -> Pixel:
    return pixel._replace(r=255)


def blue_boost(x: int, y: int, pixel: Pixel) -> Pixel:
    return pixel._replace(b=255)


def swap_red_blue(x: int, y: int, pixel: Pixel) -> Pixel:
    return pixel._replace(r=pixel.b, b=pixel.r)


def invert(x: int, y: int, pixel: Pixel) -> Pixel:
    return Pixel(255 - pixel.r, 255 - pixel.g, 255 - pixel.b, pixel.a)


def grayscale(x: int, y: int, pixel: Pixel) -> Pixel:
    # ITU-R 601-2 luma, same weights as Pillow's "L" conversion
    luma = (pixel.r * 299 + pixel.g * 587 + pixel.b * 114 + 500) // 1000
    return Pixel(luma, luma, luma, pixel.a)


FILTERS: Dict[str, FilterFunction] = {
    "identity": identity,
    "green": green_boost,
    "red": red_boost,
    "blue": blue_boost,
    "swap": swap_red_blue,
    "invert": invert,
    "grayscale": grayscale,
}

DEFAULT_FILTER = green_boost


def select_filter(name: str) -> FilterFunction:
    """Look up a filter by name, falling back to the green boost."""
    return FILTERS.get(name.strip().lower(), DEFAULT_FILTER)
