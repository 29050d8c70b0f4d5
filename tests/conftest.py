"""Shared fixtures for slicer tests."""

import struct
import zlib

import numpy as np
import pytest

from py_slicer.core.raster import RasterImage


def _make_image(width, height, opaque_box=None, color=(200, 60, 30)):
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    if opaque_box is not None:
        x0, y0, x1, y1 = opaque_box
        pixels[y0:y1, x0:x1] = (*color, 255)
    return RasterImage(pixels)


def _make_disc(width, height, cx, cy, radius):
    ys, xs = np.mgrid[0:height, 0:width]
    inside = (xs + 0.5 - cx) ** 2 + (ys + 0.5 - cy) ** 2 <= radius ** 2

    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[..., 0] = (xs * 5) % 256
    pixels[..., 1] = (ys * 3) % 256
    pixels[..., 2] = 120
    pixels[..., 3] = np.where(inside, 255, 0)
    pixels[~inside] = 0
    return RasterImage(pixels)


@pytest.fixture
def make_image():
    """Factory for RGBA images, transparent except an optional opaque box."""
    return _make_image


@pytest.fixture
def disc_image():
    """100x100 image holding an opaque, colour-graded disc."""
    return _make_disc(100, 100, 50, 50, 30)


@pytest.fixture
def opaque_square():
    """Fully opaque 100x100 image."""
    return _make_image(100, 100, (0, 0, 100, 100))


def _png_chunk(tag, payload):
    crc = zlib.crc32(tag + payload) & 0xFFFFFFFF
    return struct.pack(">I", len(payload)) + tag + payload + struct.pack(">I", crc)


@pytest.fixture
def png_header():
    """Factory for PNG bytes declaring a size but carrying no pixel data."""
    def _png_header(width, height):
        ihdr = struct.pack(">IIBBBBB", width, height, 8, 6, 0, 0, 0)
        return (
            b"\x89PNG\r\n\x1a\n"
            + _png_chunk(b"IHDR", ihdr)
            + _png_chunk(b"IDAT", b"")
            + _png_chunk(b"IEND", b"")
        )
    return _png_header
