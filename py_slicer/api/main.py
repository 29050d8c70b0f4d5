"""FastAPI main application."""

import asyncio
import base64
import binascii
import io
import logging
from typing import Any, Dict, List, Optional

import structlog
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .. import __version__
from ..config import settings
from ..config.slice_settings import ExtractionStrategy, PivotCorrect, SliceOptions
from ..core.errors import InvalidInputError, SourceTooLargeError
from ..core.raster import RasterImage, decode_image
from ..core.slicer import SliceResult, SliceSession


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """Route structlog through stdlib logging with the configured renderer."""
    logging.basicConfig(format="%(message)s", level=getattr(logging, log_level.upper(), logging.INFO))

    renderer = (
        structlog.dev.ConsoleRenderer()
        if log_format == "console"
        else structlog.processors.JSONRenderer()
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


# Configure logging
configure_logging(settings.log_level, settings.log_format)

logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="Voronoi Image Slicer API",
    description="Slice RGBA images into Voronoi pieces with engine placement data",
    version=__version__,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request/Response models
class SliceRequest(BaseModel):
    """Request to slice an image."""

    image_base64: str = Field(..., description="Base64 encoded PNG/JPEG source image")
    pieces: int = Field(20, ge=1, description="Number of pieces requested")
    seed: Optional[str] = Field(None, description="Random seed for reproducible slicing")
    alpha_threshold: int = Field(
        default_factory=lambda: settings.default_alpha_threshold, ge=0, le=255,
        description="Minimum alpha counted as opaque",
    )
    strategy: ExtractionStrategy = Field(default_factory=PivotCorrect, description="Post-processing policy")
    include_outline: bool = Field(True, description="Stroke cell outlines on the preview")
    include_preview: bool = Field(False, description="Return a composite preview PNG")
    export_name: Optional[str] = Field(None, description="Prefix for piece file names")
    file_base_name: Optional[str] = Field(None, description="Base name of the uploaded file")
    pixels_per_unit: float = Field(
        default_factory=lambda: settings.default_pixels_per_unit, gt=0,
        description="World-space pixels per unit",
    )


class PieceFile(BaseModel):
    """One encoded piece."""

    id: int
    file: str
    png_base64: str


class SliceResponse(BaseModel):
    """Result of a slice request."""

    seed: str
    trim_offset: List[int]
    manifest: Dict[str, Any]
    pieces: List[PieceFile]
    failed_piece_ids: List[int]
    preview_base64: Optional[str] = None


def _decode_upload(image_base64: str) -> RasterImage:
    try:
        data = base64.b64decode(image_base64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid base64 payload: {e}")

    try:
        return decode_image(data, max_pixels=settings.max_source_pixels)
    except SourceTooLargeError as e:
        raise HTTPException(status_code=413, detail=f"Source image is too large: {e}")
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _render_preview_png(session: SliceSession, result: SliceResult) -> str:
    buffer = io.BytesIO()
    session.preview(result).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


# API endpoints
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Voronoi Image Slicer API",
        "version": __version__,
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.post("/slice", response_model=SliceResponse)
async def slice_endpoint(request: SliceRequest):
    """
    Slice an uploaded image into Voronoi pieces.

    Returns the manifest plus every piece as base64 PNG. Pieces that fail
    to encode are listed in ``failed_piece_ids`` and left out of the manifest.
    """
    if not settings.min_pieces <= request.pieces <= settings.max_pieces:
        raise HTTPException(
            status_code=422,
            detail=f"pieces must be between {settings.min_pieces} and {settings.max_pieces}",
        )

    image = await asyncio.to_thread(_decode_upload, request.image_base64)
    logger.info("Slice requested", width=image.width, height=image.height,
                pieces=request.pieces, mode=request.strategy.mode)

    options = SliceOptions(
        alpha_threshold=request.alpha_threshold,
        include_outline=request.include_outline,
        strategy=request.strategy,
    )

    session = await asyncio.to_thread(
        SliceSession, image, request.alpha_threshold, request.file_base_name
    )
    result = await asyncio.to_thread(session.slice, request.pieces, options, request.seed)
    exported = await session.export(result, request.export_name, request.pixels_per_unit)

    preview_base64 = None
    if request.include_preview:
        preview_base64 = await asyncio.to_thread(_render_preview_png, session, result)

    return SliceResponse(
        seed=result.seed,
        trim_offset=list(session.trim_offset),
        manifest=exported.manifest.model_dump(by_alias=True),
        pieces=[
            PieceFile(id=f.piece_id, file=f.file_name, png_base64=base64.b64encode(f.png).decode("ascii"))
            for f in exported.files
        ],
        failed_piece_ids=[failure.piece_id for failure in exported.failures],
        preview_base64=preview_base64,
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
