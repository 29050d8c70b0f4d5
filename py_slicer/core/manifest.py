"""
Manifest records describing exported pieces.

The manifest is descriptive only: it tells an external engine where each
piece goes in image, world and anchored-rect coordinates. Writing it to disk
or packing it into an archive is up to the caller.
"""

import re
from typing import Any, Dict, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .coordinate_mapper import CoordinateMapper
from .piece_extractor import Piece

DEFAULT_EXPORT_NAME = "sliced-pieces"


class ManifestModel(BaseModel):
    """Base for manifest records; serializes with camelCase keys via by_alias."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Vector2(ManifestModel):
    x: float
    y: float


class Size2(ManifestModel):
    width: float
    height: float


class PixelBounds(ManifestModel):
    x: int
    y: int
    width: int
    height: int


class CoordinateSystem(ManifestModel):
    """Description of an axis convention."""

    name: str
    origin: str
    x: str = "right"
    y: str
    units: str


IMAGE_SPACE = CoordinateSystem(name="image", origin="top-left", y="down", units="pixels")
WORLD_SPACE = CoordinateSystem(name="world-2d", origin="image-center", y="up", units="world")
ANCHORED_SPACE = CoordinateSystem(
    name="anchored-rect", origin="parent-rect-center", y="up", units="pixels"
)


class SourceInfo(ManifestModel):
    file_base_name: str
    width: int
    height: int
    coordinate_system: CoordinateSystem = IMAGE_SPACE


class WorldPlacement(ManifestModel):
    pixels_per_unit: float
    coordinate_system: CoordinateSystem = WORLD_SPACE
    placement: Dict[str, Any] = Field(default_factory=lambda: {
        "spritePivot": "center",
        "positionUses": "piece center",
        "formula": {
            "worldX": "(centerPx.x - source.width/2) / pixelsPerUnit",
            "worldY": "(source.height/2 - centerPx.y) / pixelsPerUnit",
        },
    })


class AnchoredPlacement(ManifestModel):
    coordinate_system: CoordinateSystem = ANCHORED_SPACE
    placement: Dict[str, Any] = Field(default_factory=lambda: {
        "parentRect": {
            "sizeDeltaPx": {"width": "source.width", "height": "source.height"},
            "anchors": "center",
            "pivot": "center",
        },
        "pieceRect": {
            "anchors": "center",
            "pivot": "center",
            "positionUses": "piece center",
            "formula": {
                "anchoredX": "centerPx.x - source.width/2",
                "anchoredY": "source.height/2 - centerPx.y",
            },
        },
    })


class SlicerInfo(ManifestModel):
    type: str = "voronoi"
    requested_pieces: int
    alpha_threshold: int
    mode: str
    min_opaque_ratio: Optional[float] = None
    seed: Optional[str] = None


class PieceManifestEntry(ManifestModel):
    """Placement record for one exported piece."""

    id: int = Field(description="Seed/cell index the piece came from")
    file: str = Field(description="File name of the piece PNG")
    bounds_px: PixelBounds
    center_px: Vector2
    world_center: Vector2
    anchored_center_px: Vector2
    anchored_size_px: Size2
    polygon_abs_px: List[List[float]] = Field(description="Cell polygon in full-image pixels")
    polygon_local_px: List[List[float]] = Field(description="Cell polygon relative to the piece image")


class SliceManifest(ManifestModel):
    source: SourceInfo
    world: WorldPlacement
    anchored: AnchoredPlacement = Field(default_factory=AnchoredPlacement)
    slicer: SlicerInfo
    pieces: List[PieceManifestEntry] = Field(default_factory=list)


def export_base_name(name: Optional[str], fallback: Optional[str] = None) -> str:
    """Normalize a user supplied export name: trimmed, whitespace runs become '-'."""
    base = (name or "").strip() or (fallback or "").strip() or DEFAULT_EXPORT_NAME
    return re.sub(r"\s+", "-", base)


def piece_file_name(base_name: str, position: int, piece_id: int) -> str:
    """File name for the piece at 0-based ``position`` in the export order."""
    return f"{base_name}-{position + 1:03d}-piece-{piece_id}.png"


def build_manifest_entry(piece: Piece, file_name: str,
                         mapper: CoordinateMapper) -> PieceManifestEntry:
    x, y = piece.original_offset
    center = mapper.piece_center(piece)
    world = mapper.to_world(center)
    anchored = mapper.to_anchored(center)
    local = piece.source_cell_polygon.translated(-x, -y)

    return PieceManifestEntry(
        id=piece.id,
        file=file_name,
        bounds_px=PixelBounds(x=x, y=y, width=piece.width, height=piece.height),
        center_px=Vector2(x=center.x, y=center.y),
        world_center=Vector2(x=world.x, y=world.y),
        anchored_center_px=Vector2(x=anchored.x, y=anchored.y),
        anchored_size_px=Size2(width=piece.width, height=piece.height),
        polygon_abs_px=piece.source_cell_polygon.as_lists(),
        polygon_local_px=local.as_lists(),
    )


def build_manifest(pieces: Sequence[Piece], file_names: Dict[int, str],
                   mapper: CoordinateMapper, source: SourceInfo,
                   slicer: SlicerInfo) -> SliceManifest:
    """
    Assemble the slice manifest.

    Only pieces present in ``file_names`` (piece id -> file name) are listed,
    so pieces whose encoding failed are left out. Entries are sorted by id.
    """
    entries = [
        build_manifest_entry(piece, file_names[piece.id], mapper)
        for piece in pieces
        if piece.id in file_names
    ]
    entries.sort(key=lambda entry: entry.id)

    return SliceManifest(
        source=source,
        world=WorldPlacement(pixels_per_unit=mapper.pixels_per_unit),
        slicer=slicer,
        pieces=entries,
    )
