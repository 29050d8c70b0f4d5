"""
Conversions from image pixel space to external engine coordinate systems.

Pixel space: origin top-left, x right, y down, pixels.
World space: origin at the image center, x right, y up, world units
    (pixels / pixels_per_unit).
Anchored-rect space: origin at the parent rect center, x right, y up, pixels.
"""

from dataclasses import dataclass
from typing import Tuple

from .geometry import Point2D
from .piece_extractor import Piece


@dataclass(frozen=True)
class CoordinateMapper:
    """Maps piece placement for a source image of size width x height."""

    width: float
    height: float
    pixels_per_unit: float = 100.0

    def __post_init__(self):
        if self.pixels_per_unit <= 0:
            raise ValueError(f"pixels_per_unit must be positive, got {self.pixels_per_unit}")

    @property
    def half_width(self) -> float:
        return self.width / 2

    @property
    def half_height(self) -> float:
        return self.height / 2

    @staticmethod
    def piece_center(piece: Piece) -> Point2D:
        """Center of the piece image in source pixel space."""
        x, y = piece.original_offset
        return Point2D(x + piece.width / 2, y + piece.height / 2)

    def to_world(self, center: Tuple[float, float]) -> Point2D:
        cx, cy = center
        return Point2D(
            (cx - self.half_width) / self.pixels_per_unit,
            (self.half_height - cy) / self.pixels_per_unit,
        )

    def from_world(self, world: Tuple[float, float]) -> Point2D:
        wx, wy = world
        return Point2D(
            wx * self.pixels_per_unit + self.half_width,
            self.half_height - wy * self.pixels_per_unit,
        )

    def to_anchored(self, center: Tuple[float, float]) -> Point2D:
        cx, cy = center
        return Point2D(cx - self.half_width, self.half_height - cy)

    def from_anchored(self, anchored: Tuple[float, float]) -> Point2D:
        ax, ay = anchored
        return Point2D(ax + self.half_width, self.half_height - ay)
