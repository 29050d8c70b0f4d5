"""
Immutable RGBA raster buffers and the pure functions that transform them.

Every function in this module takes a RasterImage and returns a NEW one; the
input buffer is never written to. Pixel arrays are numpy uint8 arrays of
shape (height, width, 4) flagged read-only.
"""

import io
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
import shapely
import structlog
from PIL import Image, UnidentifiedImageError

from .errors import InvalidInputError, SourceTooLargeError
from .geometry import ClosedRing

logger = structlog.get_logger()

DEFAULT_ALPHA_THRESHOLD = 8


@dataclass(frozen=True, eq=False)
class RasterImage:
    """Read-only RGBA pixel grid."""
    pixels: np.ndarray

    def __post_init__(self):
        if self.pixels.ndim != 3 or self.pixels.shape[2] != 4:
            raise ValueError(f"Expected (height, width, 4) array, got {self.pixels.shape}")
        if self.pixels.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixels, got {self.pixels.dtype}")
        self.pixels.setflags(write=False)

    @classmethod
    def from_array(cls, array: np.ndarray) -> "RasterImage":
        """Copy an RGBA array into a new immutable image."""
        return cls(np.array(array, dtype=np.uint8, copy=True))

    @classmethod
    def blank(cls, width: int, height: int) -> "RasterImage":
        return cls(np.zeros((height, width, 4), dtype=np.uint8))

    @classmethod
    def from_pil(cls, image: Image.Image) -> "RasterImage":
        return cls(np.array(image.convert("RGBA"), dtype=np.uint8))

    def to_pil(self) -> Image.Image:
        return Image.fromarray(np.ascontiguousarray(self.pixels))

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def alpha(self) -> np.ndarray:
        return self.pixels[:, :, 3]


def decode_image(data: bytes, max_pixels: Optional[int] = None) -> RasterImage:
    """
    Decode PNG/JPEG (or any Pillow-readable) bytes into an RGBA raster.

    The size in the image header is checked against ``max_pixels`` before
    any pixel data is decoded.

    Raises:
        SourceTooLargeError: if the image exceeds ``max_pixels`` or trips
            Pillow's decompression bomb guard
        InvalidInputError: if the bytes are not a readable image
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            width, height = img.size
            if max_pixels is not None and width * height > max_pixels:
                logger.warning("Image too large", width=width, height=height,
                               max_pixels=max_pixels)
                raise SourceTooLargeError(
                    f"Image of {width}x{height} exceeds the limit of {max_pixels} pixels"
                )
            img.load()
            raster = RasterImage.from_pil(img)
    except Image.DecompressionBombError as e:
        logger.warning("Image rejected as decompression bomb", error=str(e))
        raise SourceTooLargeError(str(e)) from e
    except (UnidentifiedImageError, OSError, ValueError) as e:
        logger.warning("Image decode failed", error=str(e), size_bytes=len(data))
        raise InvalidInputError(f"Could not decode image: {e}") from e

    if raster.width == 0 or raster.height == 0:
        raise InvalidInputError("Image has zero width or height")

    return raster


def encode_png(image: RasterImage) -> bytes:
    buffer = io.BytesIO()
    image.to_pil().save(buffer, format="PNG")
    return buffer.getvalue()


def opaque_mask(image: RasterImage, threshold: int = DEFAULT_ALPHA_THRESHOLD) -> np.ndarray:
    """Boolean (height, width) mask of pixels with alpha >= threshold."""
    return image.alpha >= threshold


def opaque_bounds(image: RasterImage,
                  threshold: int = DEFAULT_ALPHA_THRESHOLD) -> Optional[Tuple[int, int, int, int]]:
    """
    Bounding box of the opaque pixels.

    Returns:
        (x0, y0, x1, y1) with exclusive x1/y1, or None when nothing is opaque
    """
    mask = opaque_mask(image, threshold)
    rows = np.flatnonzero(mask.any(axis=1))
    if rows.size == 0:
        return None
    cols = np.flatnonzero(mask.any(axis=0))
    return int(cols[0]), int(rows[0]), int(cols[-1]) + 1, int(rows[-1]) + 1


def opaque_ratio(image: RasterImage, threshold: int = DEFAULT_ALPHA_THRESHOLD) -> float:
    """Fraction of pixels that are opaque; 0 for an empty image."""
    total = image.width * image.height
    if total == 0:
        return 0.0
    return float(np.count_nonzero(opaque_mask(image, threshold))) / total


def crop(image: RasterImage, x: int, y: int, width: int, height: int) -> RasterImage:
    """
    Copy a rectangular region of the image.

    Parts of the region that fall outside the source read as fully
    transparent pixels.
    """
    out = np.zeros((height, width, 4), dtype=np.uint8)

    src_x0, src_y0 = max(x, 0), max(y, 0)
    src_x1, src_y1 = min(x + width, image.width), min(y + height, image.height)
    if src_x1 > src_x0 and src_y1 > src_y0:
        out[src_y0 - y:src_y1 - y, src_x0 - x:src_x1 - x] = image.pixels[src_y0:src_y1, src_x0:src_x1]

    return RasterImage(out)


def trim_to_opaque(image: RasterImage,
                   threshold: int = DEFAULT_ALPHA_THRESHOLD) -> Tuple[RasterImage, Tuple[int, int]]:
    """
    Crop an image to the bounding box of its opaque pixels.

    Returns:
        Tuple of (trimmed image, (dx, dy)) where (dx, dy) is the position of
        the trimmed image's top-left corner inside the input. A fully
        transparent image is returned unchanged with a zero shift.
    """
    bounds = opaque_bounds(image, threshold)
    if bounds is None:
        return image, (0, 0)

    x0, y0, x1, y1 = bounds
    if (x0, y0, x1, y1) == (0, 0, image.width, image.height):
        return image, (0, 0)

    return RasterImage(image.pixels[y0:y1, x0:x1].copy()), (x0, y0)


def pixel_center_mask(ring: ClosedRing, box: Tuple[int, int, int, int]) -> np.ndarray:
    """
    Boolean (height, width) mask of the box pixels whose center lies inside
    or on the boundary of ``ring``.
    """
    x, y, width, height = box

    polygon = ring.to_shapely()
    shapely.prepare(polygon)

    centers_x, centers_y = np.meshgrid(
        np.arange(width, dtype=float) + x + 0.5,
        np.arange(height, dtype=float) + y + 0.5,
    )
    return shapely.intersects_xy(polygon, centers_x, centers_y)


def rasterize_mask(image: RasterImage, mask: np.ndarray,
                   box: Tuple[int, int, int, int]) -> RasterImage:
    """Copy the box region of ``image``, keeping only pixels set in ``mask``."""
    x, y, width, height = box
    region = crop(image, x, y, width, height).pixels.copy()
    region[~mask] = 0
    return RasterImage(region)


def rasterize_clip(image: RasterImage, ring: ClosedRing,
                   box: Tuple[int, int, int, int]) -> RasterImage:
    """
    Copy the part of ``image`` covered by ``ring`` into a box-sized buffer.

    The clip is applied before the copy: a pixel is taken from the source
    only when its center lies inside or on the boundary of the ring, every
    other pixel of the result is transparent.

    Args:
        image: Source raster
        ring: Clip polygon in source pixel coordinates
        box: (x, y, width, height) region of the source to copy

    Returns:
        New raster of size width x height
    """
    return rasterize_mask(image, pixel_center_mask(ring, box), box)


def opaque_pivot(image: RasterImage,
                 threshold: int = DEFAULT_ALPHA_THRESHOLD) -> Optional[Tuple[int, int]]:
    """
    Pick the opaque pixel closest to the centroid of all opaque pixels.

    The centroid itself may fall on a transparent pixel (rings, crescents),
    so it is snapped to the nearest opaque pixel by Euclidean distance; ties
    resolve to the first pixel in row-major order.

    Returns:
        (px, py) pixel indices, or None when nothing is opaque
    """
    ys, xs = np.nonzero(opaque_mask(image, threshold))
    if xs.size == 0:
        return None

    cx, cy = xs.mean(), ys.mean()
    nearest = int(np.argmin((xs - cx) ** 2 + (ys - cy) ** 2))
    return int(xs[nearest]), int(ys[nearest])


def recenter_on_pivot(image: RasterImage,
                      pivot: Tuple[int, int]) -> Tuple[RasterImage, Tuple[int, int]]:
    """
    Pad an image so the pivot pixel sits at its geometric center.

    The new canvas is grown symmetrically around the pivot: each half extent
    is the larger of the pivot's distances to the two opposite edges, and the
    full size is twice that. The pivot ends up at index (width // 2,
    height // 2) of the result.

    Returns:
        Tuple of (padded image, (dx, dy)) where (dx, dy) is how far the
        original content moved right/down inside the new canvas
    """
    px, py = pivot
    half_w = max(px, image.width - px)
    half_h = max(py, image.height - py)

    dx = half_w - px
    dy = half_h - py

    out = np.zeros((2 * half_h, 2 * half_w, 4), dtype=np.uint8)
    out[dy:dy + image.height, dx:dx + image.width] = image.pixels

    return RasterImage(out), (dx, dy)
