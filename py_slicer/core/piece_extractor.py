"""
Piece extraction: turn tessellation cells into standalone sub-images.

Each cell is rasterized from the source image through its polygon, then
post-processed by one of two strategies:

- PivotCorrect: trim to the opaque bounds, pick an opaque pivot pixel near
  the opaque centroid and pad the piece so that pixel sits at the image
  center. Every shift is folded into the piece's offset. Nothing is dropped.
- RatioFilter: keep the raw bounding-box raster and drop the piece when its
  opaque pixel ratio is below ``min_opaque_ratio``.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np
import structlog

from ..config.slice_settings import PivotCorrect, RatioFilter, SliceOptions
from .geometry import ClosedRing, pixel_box
from .raster import (
    RasterImage,
    opaque_pivot,
    opaque_ratio,
    pixel_center_mask,
    rasterize_mask,
    recenter_on_pivot,
    trim_to_opaque,
)
from .tessellation import Tessellation

logger = structlog.get_logger()


@dataclass(frozen=True, eq=False)
class Piece:
    """One extracted piece of the source image."""
    id: int
    image: RasterImage
    # Top-left of ``image`` in untrimmed source pixel space, all shifts included.
    original_offset: Tuple[int, int]
    # Untranslated cell ring in full-image pixel space.
    source_cell_polygon: ClosedRing

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


def _pivot_correct(raster: RasterImage, offset: Tuple[int, int],
                   threshold: int) -> Tuple[RasterImage, Tuple[int, int]]:
    """Trim and recenter a rasterized cell; returns the new raster and offset."""
    pivot_source, (trim_dx, trim_dy) = trim_to_opaque(raster, threshold)
    pivot = opaque_pivot(pivot_source, threshold)
    if pivot is None:
        # No opaque pixel: keep the bounding-box raster as it is.
        return raster, offset

    centered, (pad_dx, pad_dy) = recenter_on_pivot(pivot_source, pivot)
    return centered, (offset[0] + trim_dx - pad_dx, offset[1] + trim_dy - pad_dy)


def _claim_pixels(claimed: np.ndarray, inside: np.ndarray,
                  box: Tuple[int, int, int, int]) -> np.ndarray:
    """
    Drop already claimed pixels from ``inside`` and claim the rest.

    ``claimed`` is a source-sized mask updated in place; ``inside`` is the
    box-sized mask of the current cell. Box pixels outside the source are
    left as they are since they read as transparent anyway.
    """
    x, y, width, height = box
    x0, y0 = max(x, 0), max(y, 0)
    x1, y1 = min(x + width, claimed.shape[1]), min(y + height, claimed.shape[0])
    if x1 <= x0 or y1 <= y0:
        return inside

    owned = inside.copy()
    window = claimed[y0:y1, x0:x1]
    owned[y0 - y:y1 - y, x0 - x:x1 - x] &= ~window
    window |= owned[y0 - y:y1 - y, x0 - x:x1 - x]
    return owned


def extract_piece(image: RasterImage, index: int, cell: ClosedRing,
                  options: SliceOptions,
                  claimed: Optional[np.ndarray] = None) -> Optional[Piece]:
    """
    Extract the piece for a single cell.

    Args:
        image: Source raster
        index: Seed/cell index, becomes the piece id
        cell: Clipped cell polygon in source pixel space
        options: Slice options selecting the post-processing strategy
        claimed: Source-sized mask of pixels owned by earlier cells. Pixels
            set here are left out of this piece, and the pixels this cell
            takes are added to it.

    Returns:
        The piece, or None when the ratio filter discards it
    """
    box = pixel_box(cell.bounds())
    inside = pixel_center_mask(cell, box)
    if claimed is not None:
        inside = _claim_pixels(claimed, inside, box)
    raster = rasterize_mask(image, inside, box)
    offset = (box[0], box[1])
    threshold = options.alpha_threshold
    strategy = options.strategy

    if isinstance(strategy, PivotCorrect):
        raster, offset = _pivot_correct(raster, offset, threshold)
    elif isinstance(strategy, RatioFilter):
        ratio = opaque_ratio(raster, threshold)
        if ratio < strategy.min_opaque_ratio:
            logger.debug("Piece below opaque ratio, dropped", piece_id=index,
                         ratio=round(ratio, 4), min_ratio=strategy.min_opaque_ratio)
            return None
    else:
        raise TypeError(f"Unknown extraction strategy: {strategy!r}")

    return Piece(id=index, image=raster, original_offset=offset, source_cell_polygon=cell)


def extract_pieces(image: RasterImage, tessellation: Tessellation, n: int,
                   options: Optional[SliceOptions] = None) -> List[Piece]:
    """
    Extract pieces for cell indices [0, n).

    Cells without a polygon are skipped silently. Pieces are returned in
    ascending id order. Every source pixel belongs to at most one piece: a
    pixel whose center lies on an edge shared by several cells goes to the
    cell with the lowest index.

    Args:
        image: Source raster
        tessellation: Voronoi cells of the seeds
        n: Number of cell indices to process
        options: Slice options (defaults to pivot-correct mode)

    Returns:
        List of pieces
    """
    options = options or SliceOptions()
    pieces: List[Piece] = []
    skipped = 0
    claimed = np.zeros((image.height, image.width), dtype=bool)

    for i in range(n):
        cell = tessellation.cell_polygon(i)
        if cell is None:
            skipped += 1
            continue

        piece = extract_piece(image, i, cell, options, claimed)
        if piece is not None:
            pieces.append(piece)

    logger.info("Pieces extracted", requested=n, pieces=len(pieces),
                degenerate_cells=skipped, mode=options.strategy.mode)
    return pieces
