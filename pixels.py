"""
In-memory image representation shared by the codec and the filters.
"""

from dataclasses import dataclass
from itertools import chain
from typing import Iterator, NamedTuple, Tuple


class Pixel(NamedTuple):
    """One RGBA pixel, each channel 0-255."""

    r: int
    g: int
    b: int
    a: int = 255


@dataclass(frozen=True)
class PixelBuffer:
    """A dense width x height grid of pixels.

    Pixels are stored row-major in a tuple, so a buffer is immutable and
    compares by value. Use ``buffer[x, y]`` to read a single pixel.
    """

    width: int
    height: int
    pixels: Tuple[Pixel, ...]

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Invalid dimensions {self.width}x{self.height}")
        if len(self.pixels) != self.width * self.height:
            raise ValueError(
                f"Expected {self.width * self.height} pixels for a "
                f"{self.width}x{self.height} buffer, got {len(self.pixels)}"
            )
        try:
            raw = bytes(chain.from_iterable(self.pixels))
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Pixel channels must be integers in 0-255: {exc}") from exc
        if len(raw) != 4 * len(self.pixels):
            raise ValueError("Every pixel must have exactly four channels")

    @classmethod
    def filled(cls, width: int, height: int, pixel: Pixel) -> "PixelBuffer":
        return cls(width, height, (pixel,) * (width * height))

    def __getitem__(self, xy: Tuple[int, int]) -> Pixel:
        x, y = xy
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"({x}, {y}) outside {self.width}x{self.height} buffer")
        return self.pixels[y * self.width + x]

    @property
    def size(self) -> Tuple[int, int]:
        return self.width, self.height

    def coordinates(self) -> Iterator[Tuple[int, int]]:
        """Yield every (x, y) in storage order."""
        for y in range(self.height):
            for x in range(self.width):
                yield x, y
