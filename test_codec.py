"""
Tests for the Pillow-backed codec adapter.
"""

import io

import pytest
from PIL import Image

import codec
from pixels import Pixel, PixelBuffer


def _make_image_bytes(width=8, height=6, color=(128, 64, 32), fmt="PNG", mode="RGB"):
    img = Image.new(mode, (width, height), color)
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def _gradient_png(width=5, height=4):
    img = Image.new("RGBA", (width, height))
    for x in range(width):
        for y in range(height):
            img.putpixel((x, y), (x * 40, y * 50, (x + y) * 20, 255 - x * 30))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


# ── decode ─────────────────────────────────────────────────────────────────────

def test_decode_png_pixels():
    buf = codec.decode(_gradient_png())
    assert buf.size == (5, 4)
    assert buf[0, 0] == Pixel(0, 0, 0, 255)
    assert buf[3, 2] == Pixel(120, 100, 100, 165)


def test_decode_rgb_is_opaque():
    buf = codec.decode(_make_image_bytes(color=(10, 20, 30)))
    assert set(buf.pixels) == {Pixel(10, 20, 30, 255)}


def test_decode_palette_image():
    data = _make_image_bytes(color=(200, 0, 0), mode="RGB")
    img = Image.open(io.BytesIO(data)).convert("P")
    out = io.BytesIO()
    img.save(out, format="GIF")
    buf = codec.decode(out.getvalue())
    assert buf.size == (8, 6)
    assert all(p.a == 255 for p in buf.pixels)


def test_decode_garbage():
    with pytest.raises(codec.DecodeError, match="Failed to load image"):
        codec.decode(b"not an image")


def test_decode_empty_bytes():
    with pytest.raises(codec.DecodeError):
        codec.decode(b"")


def test_decode_truncated_png():
    data = _make_image_bytes(width=64, height=64)
    with pytest.raises(codec.DecodeError):
        codec.decode(data[: len(data) // 2])


def test_decode_respects_pixel_limit():
    data = _make_image_bytes(width=20, height=20)
    with pytest.raises(codec.DecodeError, match="exceeds"):
        codec.decode(data, max_pixels=399)
    assert codec.decode(data, max_pixels=400).size == (20, 20)


# ── encode ─────────────────────────────────────────────────────────────────────

def test_encode_produces_rgba_png():
    buf = PixelBuffer.filled(3, 2, Pixel(1, 2, 3, 4))
    img = Image.open(io.BytesIO(codec.encode(buf)))
    assert img.format == "PNG"
    assert img.mode == "RGBA"
    assert img.size == (3, 2)
    assert img.getpixel((2, 1)) == (1, 2, 3, 4)


def test_encode_empty_buffer_rejected():
    with pytest.raises(ValueError):
        codec.encode(PixelBuffer(0, 0, ()))


def test_png_round_trip_keeps_transparency():
    original = codec.decode(_gradient_png())
    assert codec.decode(codec.encode(original)) == original


def test_jpeg_round_trip_matches_decoded_pixels():
    data = _make_image_bytes(width=16, height=9, color=(90, 180, 45), fmt="JPEG")
    decoded = codec.decode(data)
    again = codec.decode(codec.encode(decoded))
    assert again.size == (16, 9)
    assert again == decoded
