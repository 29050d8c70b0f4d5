"""
Slicing pipeline: seeds -> tessellation -> pieces -> encoded export.

Geometry and rasterization run synchronously. PNG encoding of the pieces is
the only asynchronous step: all encodes run concurrently and the manifest is
built only once every one of them has finished.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import structlog
from PIL import Image

from ..config.slice_settings import RatioFilter, SliceOptions
from .alea_prng import AleaPRNG, Seed
from .composite_preview import render_preview
from .coordinate_mapper import CoordinateMapper
from .errors import EncodingFailure
from .geometry import BoundsRect, Point2D
from .manifest import (
    SliceManifest,
    SlicerInfo,
    SourceInfo,
    build_manifest,
    export_base_name,
    piece_file_name,
)
from .piece_extractor import Piece, extract_pieces
from .pixel_sampler import generate_seed_points
from .raster import DEFAULT_ALPHA_THRESHOLD, RasterImage, encode_png, trim_to_opaque
from .tessellation import Tessellation, build_tessellation

logger = structlog.get_logger()


@dataclass
class SliceResult:
    """Everything produced by one slice invocation."""
    source: RasterImage
    requested: int
    seed: str
    options: SliceOptions
    seeds: List[Point2D]
    tessellation: Tessellation
    pieces: List[Piece]
    generation: int = 0


@dataclass
class ExportedPiece:
    piece_id: int
    file_name: str
    png: bytes


@dataclass
class ExportResult:
    manifest: SliceManifest
    files: List[ExportedPiece] = field(default_factory=list)
    failures: List[EncodingFailure] = field(default_factory=list)


def prepare_source(image: RasterImage,
                   threshold: int = DEFAULT_ALPHA_THRESHOLD) -> Tuple[RasterImage, Tuple[int, int]]:
    """
    Trim a freshly loaded source image to its opaque bounds.

    This happens once per source, before any slicing. A fully transparent
    image is kept as is.

    Returns:
        Tuple of (prepared image, (dx, dy) trim offset inside the original)
    """
    trimmed, offset = trim_to_opaque(image, threshold)
    if trimmed is not image:
        logger.info("Source trimmed to opaque bounds",
                    original=(image.width, image.height),
                    trimmed=(trimmed.width, trimmed.height), offset=offset)
    return trimmed, offset


def slice_image(image: RasterImage, n: int, options: Optional[SliceOptions] = None,
                seed: Optional[Seed] = None, use_alpha_bias: bool = True) -> SliceResult:
    """
    Partition ``image`` into up to ``n`` Voronoi pieces.

    Args:
        image: Source raster (already prepared)
        n: Number of seeds / requested pieces
        options: Slice options (defaults to pivot-correct mode)
        seed: PRNG seed; a random one is drawn when omitted
        use_alpha_bias: Bias seeds toward opaque pixels

    Returns:
        SliceResult with seeds, tessellation and pieces
    """
    if n < 0:
        raise ValueError(f"Piece count must be non-negative, got {n}")

    options = options or SliceOptions()
    rng = AleaPRNG.from_seed(seed)

    logger.info("Slicing image", width=image.width, height=image.height,
                pieces=n, seed=rng.seed, mode=options.strategy.mode)

    seeds = generate_seed_points(
        image.width, image.height, n, rng,
        image=image if use_alpha_bias else None,
        threshold=options.alpha_threshold,
    )
    tessellation = build_tessellation(seeds, BoundsRect.for_image(image.width, image.height))
    pieces = extract_pieces(image, tessellation, n, options)

    return SliceResult(
        source=image,
        requested=n,
        seed=rng.seed,
        options=options,
        seeds=seeds,
        tessellation=tessellation,
        pieces=pieces,
    )


async def encode_piece(piece: Piece) -> bytes:
    """Encode one piece to PNG off the event loop."""
    try:
        return await asyncio.to_thread(encode_png, piece.image)
    except Exception as e:
        raise EncodingFailure(piece.id, str(e)) from e


async def encode_pieces(pieces: List[Piece]) -> Tuple[Dict[int, bytes], List[EncodingFailure]]:
    """
    Encode all pieces concurrently and wait for every one of them.

    A failed piece is reported in the failure list and does not affect the
    others.

    Returns:
        Tuple of (piece id -> PNG bytes, failures)
    """
    results = await asyncio.gather(
        *(encode_piece(piece) for piece in pieces), return_exceptions=True
    )

    encoded: Dict[int, bytes] = {}
    failures: List[EncodingFailure] = []
    for piece, result in zip(pieces, results):
        if isinstance(result, EncodingFailure):
            logger.warning("Piece encoding failed", piece_id=piece.id, reason=result.reason)
            failures.append(result)
        elif isinstance(result, BaseException):
            raise result
        else:
            encoded[piece.id] = result

    return encoded, failures


async def export_pieces(result: SliceResult, export_name: Optional[str] = None,
                        file_base_name: Optional[str] = None,
                        pixels_per_unit: float = 100.0) -> ExportResult:
    """
    Encode every piece and build the manifest describing them.

    Args:
        result: Slice to export
        export_name: Name used as prefix for piece files
        file_base_name: Base name of the uploaded source file
        pixels_per_unit: World-space scale

    Returns:
        ExportResult with PNG files, manifest and per-piece failures
    """
    base_name = export_base_name(export_name, file_base_name)
    encoded, failures = await encode_pieces(result.pieces)

    files: List[ExportedPiece] = []
    file_names: Dict[int, str] = {}
    for position, piece in enumerate(result.pieces):
        if piece.id not in encoded:
            continue
        file_name = piece_file_name(base_name, position, piece.id)
        file_names[piece.id] = file_name
        files.append(ExportedPiece(piece_id=piece.id, file_name=file_name, png=encoded[piece.id]))

    strategy = result.options.strategy
    manifest = build_manifest(
        result.pieces,
        file_names,
        CoordinateMapper(result.source.width, result.source.height, pixels_per_unit),
        SourceInfo(
            file_base_name=file_base_name or base_name,
            width=result.source.width,
            height=result.source.height,
        ),
        SlicerInfo(
            requested_pieces=result.requested,
            alpha_threshold=result.options.alpha_threshold,
            mode=strategy.mode,
            min_opaque_ratio=strategy.min_opaque_ratio if isinstance(strategy, RatioFilter) else None,
            seed=result.seed,
        ),
    )

    logger.info("Pieces exported", files=len(files), failures=len(failures))
    return ExportResult(manifest=manifest, files=files, failures=failures)


class SliceSession:
    """
    Slicing state for one loaded source image.

    The source is trimmed once when the session is created. Every call to
    ``slice`` starts a new generation; results of an older generation are
    stale and are discarded instead of being exported.
    """

    def __init__(self, image: RasterImage, alpha_threshold: int = DEFAULT_ALPHA_THRESHOLD,
                 file_base_name: Optional[str] = None):
        self.source, self.trim_offset = prepare_source(image, alpha_threshold)
        self.file_base_name = file_base_name
        self.generation = 0

    def slice(self, n: int, options: Optional[SliceOptions] = None,
              seed: Optional[Seed] = None) -> SliceResult:
        self.generation += 1
        result = slice_image(self.source, n, options, seed)
        result.generation = self.generation
        return result

    def is_current(self, result: SliceResult) -> bool:
        return result.generation == self.generation

    def preview(self, result: SliceResult) -> Image.Image:
        return render_preview(self.source.width, self.source.height, result.pieces,
                              include_outline=result.options.include_outline)

    async def export(self, result: SliceResult, export_name: Optional[str] = None,
                     pixels_per_unit: float = 100.0) -> Optional[ExportResult]:
        """Export ``result`` unless a newer slice superseded it (returns None then)."""
        if not self.is_current(result):
            logger.info("Discarding superseded slice", generation=result.generation,
                        current=self.generation)
            return None

        exported = await export_pieces(result, export_name, self.file_base_name, pixels_per_unit)

        if not self.is_current(result):
            logger.info("Slice superseded during export, discarding", generation=result.generation,
                        current=self.generation)
            return None
        return exported
