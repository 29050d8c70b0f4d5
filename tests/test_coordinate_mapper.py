"""Tests for pixel/world/anchored coordinate conversion."""

import pytest

from py_slicer.core.coordinate_mapper import CoordinateMapper
from py_slicer.core.geometry import ClosedRing
from py_slicer.core.piece_extractor import Piece
from py_slicer.core.raster import RasterImage


class TestCoordinateMapper:
    """Test the coordinate conventions."""

    def test_known_values(self):
        """A point right of and above center maps to positive x and y."""
        mapper = CoordinateMapper(200, 100, pixels_per_unit=100)

        assert mapper.to_world((150, 25)) == pytest.approx((0.5, 0.25))
        assert mapper.to_anchored((150, 25)) == pytest.approx((50.0, 25.0))

    def test_image_center_is_origin(self):
        """The image center is the origin of both external systems."""
        mapper = CoordinateMapper(640, 480)

        assert mapper.to_world((320, 240)) == (0.0, 0.0)
        assert mapper.to_anchored((320, 240)) == (0.0, 0.0)

    @pytest.mark.parametrize("width,height,ppu,point", [
        (200, 100, 100.0, (0.0, 0.0)),
        (640, 480, 32.0, (17.25, 401.5)),
        (33, 77, 1.0, (32.9, 0.1)),
        (1024, 1024, 256.0, (-10.0, 2000.0)),
    ])
    def test_round_trip(self, width, height, ppu, point):
        """from_world/from_anchored invert their forward conversions."""
        mapper = CoordinateMapper(width, height, pixels_per_unit=ppu)

        assert mapper.from_world(mapper.to_world(point)) == pytest.approx(point)
        assert mapper.from_anchored(mapper.to_anchored(point)) == pytest.approx(point)

    def test_piece_center(self):
        """The piece center is its offset plus half its size."""
        piece = Piece(
            id=3,
            image=RasterImage.blank(12, 8),
            original_offset=(-1, 40),
            source_cell_polygon=ClosedRing.from_coords([(0, 40), (10, 40), (10, 48)]),
        )

        assert CoordinateMapper.piece_center(piece) == (5.0, 44.0)

    @pytest.mark.parametrize("ppu", [0, -1.5])
    def test_invalid_pixels_per_unit(self, ppu):
        """pixels_per_unit must be positive."""
        with pytest.raises(ValueError):
            CoordinateMapper(100, 100, pixels_per_unit=ppu)
