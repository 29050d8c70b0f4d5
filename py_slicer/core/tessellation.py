"""Voronoi tessellation of seed points, clipped to a bounding rectangle."""

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np
import structlog
from scipy.spatial import Voronoi
from shapely.geometry import MultiPoint, box

from .geometry import BoundsRect, ClosedRing

logger = structlog.get_logger()

# Sentinels sit this many extents away from the seeds, far enough that no
# location inside the bounds is ever closer to a sentinel than to a seed.
SENTINEL_DISTANCE_FACTOR = 10.0
MIN_CELL_AREA = 1e-9
# Seeds closer than this on both axes count as the same seed.
SEED_TOLERANCE = 1e-7


@dataclass
class Tessellation:
    """Voronoi cells of a seed set, one optional ring per seed index."""
    points: np.ndarray
    bounds: BoundsRect
    cells: List[Optional[ClosedRing]]

    def __len__(self) -> int:
        return len(self.cells)

    def cell_polygon(self, index: int) -> Optional[ClosedRing]:
        """Clipped cell of seed ``index``, or None when it has no visible area."""
        if index < 0 or index >= len(self.cells):
            return None
        return self.cells[index]

    def total_area(self) -> float:
        return sum(cell.area() for cell in self.cells if cell is not None)


def get_boundary_points(seeds: np.ndarray, bounds: BoundsRect) -> np.ndarray:
    """
    Generate sentinel points around the seeds and the bounds.

    Eight points (corners and edge midpoints of a square far outside the
    area of interest) make every real Voronoi cell finite and guarantee qhull
    a non-degenerate input even for one or two collinear seeds.

    Args:
        seeds: Unique seed coordinates, shape (n, 2)
        bounds: Clip rectangle

    Returns:
        Array of 8 sentinel [x, y] coordinates
    """
    xs = np.append(seeds[:, 0], [bounds.x0, bounds.x1])
    ys = np.append(seeds[:, 1], [bounds.y0, bounds.y1])

    cx = (xs.min() + xs.max()) / 2
    cy = (ys.min() + ys.max()) / 2
    extent = max(xs.max() - xs.min(), ys.max() - ys.min(), 1.0)
    r = extent * SENTINEL_DISTANCE_FACTOR

    return np.array([
        [cx - r, cy - r], [cx, cy - r], [cx + r, cy - r],
        [cx - r, cy], [cx + r, cy],
        [cx - r, cy + r], [cx, cy + r], [cx + r, cy + r],
    ])


def _unique_seeds(points: np.ndarray) -> Tuple[List[int], np.ndarray]:
    """Indices of the first occurrence of each distinct seed, and their coordinates."""
    first_seen: Dict[Tuple[int, int], int] = {}
    for i, (x, y) in enumerate(points):
        first_seen.setdefault((round(x / SEED_TOLERANCE), round(y / SEED_TOLERANCE)), i)

    indices = sorted(first_seen.values())
    return indices, points[indices] if indices else np.empty((0, 2))


def _clip_region(vertices: np.ndarray, clip) -> Optional[ClosedRing]:
    cell = MultiPoint([tuple(v) for v in vertices]).convex_hull.intersection(clip)
    if cell.is_empty or cell.geom_type != "Polygon" or cell.area <= MIN_CELL_AREA:
        return None
    return ClosedRing.from_coords(cell.exterior.coords)


def build_tessellation(points: Sequence[Sequence[float]],
                       bounds: BoundsRect) -> Tessellation:
    """
    Build the Voronoi diagram of ``points`` constrained to ``bounds``.

    Degenerate inputs never raise: duplicate and near-duplicate seeds keep a
    cell only for their first occurrence, seeds whose cell is clipped away
    get no cell, and an empty seed list yields an empty tessellation.

    Args:
        points: Seed coordinates
        bounds: Clip rectangle, typically [0, 0, width, height]

    Returns:
        Tessellation with one (possibly None) cell per input seed
    """
    seeds = np.asarray(points, dtype=float).reshape(-1, 2)
    cells: List[Optional[ClosedRing]] = [None] * len(seeds)

    indices, unique = _unique_seeds(seeds)
    if not indices:
        logger.info("Empty seed set, tessellation has no cells")
        return Tessellation(points=seeds, bounds=bounds, cells=cells)

    if len(indices) < len(seeds):
        logger.debug("Duplicate seeds dropped", duplicates=len(seeds) - len(indices))

    sentinels = get_boundary_points(unique, bounds)
    vor = Voronoi(np.vstack([unique, sentinels]))

    clip = box(bounds.x0, bounds.y0, bounds.x1, bounds.y1)
    claimed_regions = set()
    for k, seed_index in enumerate(indices):
        region_idx = vor.point_region[k]
        if region_idx == -1:
            continue

        # qhull merges near-coincident seeds into one region; it stays with
        # the first of them.
        if region_idx in claimed_regions:
            logger.debug("Near-duplicate seed dropped", seed=seed_index)
            continue
        claimed_regions.add(region_idx)

        region = vor.regions[region_idx]
        if -1 in region or len(region) < 3:
            continue

        cells[seed_index] = _clip_region(vor.vertices[region], clip)

    built = sum(1 for cell in cells if cell is not None)
    logger.info("Tessellation built", seeds=len(seeds), cells=built,
                width=bounds.width, height=bounds.height)

    return Tessellation(points=seeds, bounds=bounds, cells=cells)


def cell_polygon(tessellation: Tessellation, index: int) -> Optional[ClosedRing]:
    """Clipped polygon for seed ``index`` (None when degenerate)."""
    return tessellation.cell_polygon(index)
