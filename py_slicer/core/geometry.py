"""Planar geometry primitives shared by the tessellation and extraction steps."""

import math
from dataclasses import dataclass
from typing import Iterable, Iterator, NamedTuple, Sequence, Tuple

from shapely.geometry import Polygon as ShapelyPolygon

# Voronoi vertices carry float noise; edges this close to a grid line snap onto it.
GRID_TOLERANCE = 1e-6


class Point2D(NamedTuple):
    """A point in image pixel space (origin top-left, y down)."""
    x: float
    y: float


class BoundsRect(NamedTuple):
    """Axis-aligned rectangle given as [x0, y0, x1, y1]."""
    x0: float
    y0: float
    x1: float
    y1: float

    @classmethod
    def for_image(cls, width: int, height: int) -> "BoundsRect":
        return cls(0.0, 0.0, float(width), float(height))

    @property
    def width(self) -> float:
        return self.x1 - self.x0

    @property
    def height(self) -> float:
        return self.y1 - self.y0

    @property
    def area(self) -> float:
        return self.width * self.height


@dataclass(frozen=True)
class ClosedRing:
    """
    Ordered vertex loop describing a simple polygon.

    The ring is stored WITHOUT a repeated first vertex. There is always an
    implicit closing edge from the last vertex back to the first one, and
    every operation on the ring (``edges``, ``area``, rendering) accounts for
    it. Winding direction is not guaranteed.
    """
    vertices: Tuple[Point2D, ...]

    @classmethod
    def from_coords(cls, coords: Iterable[Sequence[float]]) -> "ClosedRing":
        """
        Build a ring from an iterable of (x, y) pairs.

        A trailing vertex equal to the first one (as produced by shapely
        exteriors) is dropped so the closing edge stays implicit.
        """
        points = [Point2D(float(x), float(y)) for x, y in coords]
        if len(points) > 1 and points[0] == points[-1]:
            points = points[:-1]
        return cls(tuple(points))

    def __len__(self) -> int:
        return len(self.vertices)

    def __iter__(self) -> Iterator[Point2D]:
        return iter(self.vertices)

    def edges(self) -> Iterator[Tuple[Point2D, Point2D]]:
        """Yield every edge including the closing edge (last -> first)."""
        count = len(self.vertices)
        for i in range(count - 1):
            yield self.vertices[i], self.vertices[i + 1]
        if count > 1:
            yield self.vertices[-1], self.vertices[0]

    def bounds(self) -> BoundsRect:
        xs = [p.x for p in self.vertices]
        ys = [p.y for p in self.vertices]
        return BoundsRect(min(xs), min(ys), max(xs), max(ys))

    def area(self) -> float:
        return polygon_area(self)

    def translated(self, dx: float, dy: float) -> "ClosedRing":
        return ClosedRing(tuple(Point2D(p.x + dx, p.y + dy) for p in self.vertices))

    def as_lists(self) -> list:
        """Vertices as plain [x, y] lists, suitable for JSON manifests."""
        return [[p.x, p.y] for p in self.vertices]

    def to_shapely(self) -> ShapelyPolygon:
        return ShapelyPolygon(self.vertices)


def polygon_area(ring: ClosedRing) -> float:
    """
    Absolute area of a ring using the shoelace formula.

    Args:
        ring: Polygon ring (closing edge implicit)

    Returns:
        Non-negative area in square pixels
    """
    if len(ring) < 3:
        return 0.0

    twice_area = 0.0
    for a, b in ring.edges():
        twice_area += a.x * b.y - b.x * a.y

    return abs(twice_area) / 2.0


def pixel_box(bounds: BoundsRect) -> Tuple[int, int, int, int]:
    """
    Snap a float bounding box outward to the pixel grid.

    Returns:
        (x, y, width, height) with width and height of at least 1
    """
    x = math.floor(bounds.x0 + GRID_TOLERANCE)
    y = math.floor(bounds.y0 + GRID_TOLERANCE)
    width = max(1, math.ceil(bounds.x1 - GRID_TOLERANCE) - x)
    height = max(1, math.ceil(bounds.y1 - GRID_TOLERANCE) - y)
    return x, y, width, height
