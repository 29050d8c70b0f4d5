"""Reassemble extracted pieces into a single preview image."""

from typing import Iterable, Tuple

import structlog
from PIL import Image, ImageDraw

from .piece_extractor import Piece

logger = structlog.get_logger()

OUTLINE_COLOR = (0, 0, 0, 255)
OUTLINE_WIDTH = 2


def _composite_piece(canvas: Image.Image, piece: Piece) -> None:
    """Source-over composite a piece at its offset, clipped to the canvas."""
    x, y = piece.original_offset
    left, top = max(x, 0), max(y, 0)
    right = min(x + piece.width, canvas.width)
    bottom = min(y + piece.height, canvas.height)
    if right <= left or bottom <= top:
        return

    visible = piece.image.to_pil().crop((left - x, top - y, right - x, bottom - y))
    canvas.alpha_composite(visible, dest=(left, top))


def render_preview(width: int, height: int, pieces: Iterable[Piece],
                   include_outline: bool = True,
                   outline_color: Tuple[int, int, int, int] = OUTLINE_COLOR,
                   outline_width: int = OUTLINE_WIDTH) -> Image.Image:
    """
    Draw every piece at its recorded offset on a fresh transparent canvas.

    Args:
        width, height: Canvas size, normally the source image size
        pieces: Pieces to draw, in drawing order
        include_outline: Stroke each piece's cell polygon after drawing it
        outline_color: RGBA stroke color
        outline_width: Stroke width in pixels

    Returns:
        New RGBA image
    """
    canvas = Image.new("RGBA", (width, height), (0, 0, 0, 0))
    count = 0

    for piece in pieces:
        _composite_piece(canvas, piece)
        count += 1

        if include_outline:
            # The outline follows the ORIGINAL cell polygon, not the trimmed
            # and recentered piece bounds, so it shows the true tessellation
            # even where the piece image has been cropped or padded.
            ring = piece.source_cell_polygon
            if len(ring) >= 2:
                loop = [(p.x, p.y) for p in ring] + [(ring.vertices[0].x, ring.vertices[0].y)]
                ImageDraw.Draw(canvas).line(loop, fill=outline_color, width=outline_width)

    logger.debug("Preview rendered", width=width, height=height, pieces=count,
                 outlines=include_outline)
    return canvas
