"""Tests for raster buffers and pure raster operations."""

import pytest
import numpy as np

from py_slicer.core.errors import InvalidInputError, SourceTooLargeError
from py_slicer.core.geometry import ClosedRing
from py_slicer.core.raster import (
    RasterImage,
    crop,
    decode_image,
    encode_png,
    opaque_bounds,
    opaque_pivot,
    opaque_ratio,
    rasterize_clip,
    recenter_on_pivot,
    trim_to_opaque,
)


class TestRasterImage:
    """Test the immutable image container."""

    def test_read_only(self, make_image):
        """Pixel buffers cannot be written through the image."""
        image = make_image(4, 4)

        with pytest.raises(ValueError):
            image.pixels[0, 0, 3] = 255

    def test_rejects_wrong_shape(self):
        """Only (h, w, 4) uint8 arrays are accepted."""
        with pytest.raises(ValueError):
            RasterImage(np.zeros((4, 4, 3), dtype=np.uint8))
        with pytest.raises(ValueError):
            RasterImage(np.zeros((4, 4, 4), dtype=np.float32))

    def test_from_array_copies(self):
        """from_array does not alias the caller's buffer."""
        source = np.zeros((2, 3, 4), dtype=np.uint8)
        image = RasterImage.from_array(source)
        source[0, 0, 3] = 255

        assert image.alpha[0, 0] == 0
        assert (image.width, image.height) == (3, 2)


class TestCodec:
    """Test PNG decode/encode."""

    def test_png_round_trip(self, disc_image):
        """Encoding to PNG and decoding back is lossless."""
        decoded = decode_image(encode_png(disc_image))

        np.testing.assert_array_equal(decoded.pixels, disc_image.pixels)

    def test_invalid_bytes(self):
        """Non-image data raises InvalidInputError."""
        with pytest.raises(InvalidInputError):
            decode_image(b"definitely not a png")

    def test_size_limit_checked_from_header(self, png_header):
        """The pixel limit applies before any pixel data is decoded."""
        with pytest.raises(SourceTooLargeError):
            decode_image(png_header(20, 20), max_pixels=100)

    def test_decompression_bomb(self, png_header):
        """Pillow's bomb guard is reported as a too-large source."""
        with pytest.raises(SourceTooLargeError):
            decode_image(png_header(20000, 20000))

    def test_within_limit(self, disc_image):
        decoded = decode_image(encode_png(disc_image), max_pixels=100 * 100)

        assert (decoded.width, decoded.height) == (100, 100)


class TestOpaqueBounds:
    """Test opaque-bounds detection and trimming."""

    def test_bounds_are_exclusive(self, make_image):
        """Bounds cover exactly the opaque box."""
        image = make_image(20, 20, (3, 4, 10, 15))

        assert opaque_bounds(image) == (3, 4, 10, 15)

    def test_transparent_has_no_bounds(self, make_image):
        """A transparent image has no opaque bounds."""
        assert opaque_bounds(make_image(5, 5)) is None

    def test_trim(self, make_image):
        """Trimming crops to the opaque box and reports the shift."""
        image = make_image(20, 20, (3, 4, 10, 15))
        trimmed, offset = trim_to_opaque(image)

        assert offset == (3, 4)
        assert (trimmed.width, trimmed.height) == (7, 11)
        assert np.all(trimmed.alpha == 255)

    def test_trim_transparent_is_noop(self, make_image):
        """Nothing to trim returns the same image and no shift."""
        image = make_image(5, 5)
        trimmed, offset = trim_to_opaque(image)

        assert trimmed is image
        assert offset == (0, 0)

    def test_opaque_ratio(self, make_image):
        """Ratio is opaque pixels over all pixels."""
        image = make_image(10, 10, (0, 0, 5, 2))

        assert opaque_ratio(image) == pytest.approx(0.1)
        assert opaque_ratio(make_image(3, 3)) == 0.0


class TestCropAndClip:
    """Test rectangular copies and polygon clipping."""

    def test_crop_outside_reads_transparent(self, opaque_square):
        """Regions past the source edge are transparent."""
        region = crop(opaque_square, 95, -5, 10, 10)

        assert region.alpha[5, 0] == 255
        assert region.alpha[0, 0] == 0
        assert region.alpha[5, 9] == 0

    def test_clip_square(self, opaque_square):
        """A square ring copies every pixel whose center it covers."""
        ring = ClosedRing.from_coords([(2, 2), (6, 2), (6, 6), (2, 6)])
        clipped = rasterize_clip(opaque_square, ring, (2, 2, 4, 4))

        assert np.all(clipped.alpha == 255)

    def test_clip_triangle(self, opaque_square):
        """Pixels outside the ring are transparent."""
        ring = ClosedRing.from_coords([(0, 0), (10, 0), (0, 10)])
        clipped = rasterize_clip(opaque_square, ring, (0, 0, 10, 10))

        assert clipped.alpha[0, 0] == 255
        assert clipped.alpha[9, 9] == 0
        assert clipped.alpha[5, 9] == 0
        assert np.count_nonzero(clipped.alpha) < 100

    def test_clip_keeps_source_colors(self, disc_image):
        """Clipped pixels carry the source RGBA values."""
        ring = ClosedRing.from_coords([(0, 0), (100, 0), (100, 100), (0, 100)])
        clipped = rasterize_clip(disc_image, ring, (0, 0, 100, 100))

        np.testing.assert_array_equal(clipped.pixels, disc_image.pixels)


class TestPivot:
    """Test pivot selection and recentering."""

    def test_pivot_snaps_to_opaque_pixel(self, make_image):
        """A hollow frame's centroid is transparent; the pivot is not."""
        pixels = np.array(make_image(9, 9, (0, 0, 9, 9)).pixels)
        pixels[1:8, 1:8] = 0
        frame = RasterImage(pixels)

        pivot = opaque_pivot(frame)

        assert pivot == (4, 0)
        assert frame.alpha[pivot[1], pivot[0]] == 255

    def test_pivot_of_transparent(self, make_image):
        """No opaque pixels means no pivot."""
        assert opaque_pivot(make_image(4, 4)) is None

    def test_recenter(self, make_image):
        """The pivot pixel ends up at (w // 2, h // 2)."""
        pixels = np.array(make_image(3, 5).pixels)
        pixels[4, 0] = (1, 2, 3, 255)
        image = RasterImage(pixels)

        centered, shift = recenter_on_pivot(image, (0, 4))

        assert (centered.width, centered.height) == (6, 8)
        assert shift == (3, 0)
        np.testing.assert_array_equal(
            centered.pixels[centered.height // 2, centered.width // 2], (1, 2, 3, 255)
        )

    def test_recenter_single_pixel(self, make_image):
        """A 1x1 image grows to 2x2 with the pixel at index (1, 1)."""
        centered, shift = recenter_on_pivot(make_image(1, 1, (0, 0, 1, 1)), (0, 0))

        assert (centered.width, centered.height) == (2, 2)
        assert shift == (1, 1)
        assert centered.alpha[1, 1] == 255
