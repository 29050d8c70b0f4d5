"""
Seed point generation for the tessellation.

Seeds are either spread uniformly over the image rectangle or biased toward
opaque pixels by rejection sampling, so that transparent background does not
soak up most of the requested pieces.
"""

import math
from typing import List, Optional

import structlog

from .alea_prng import AleaPRNG
from .geometry import Point2D
from .raster import DEFAULT_ALPHA_THRESHOLD, RasterImage

logger = structlog.get_logger()

DEFAULT_MAX_ATTEMPTS = 200


def sample_alpha(image: RasterImage, x: float, y: float,
                 threshold: int = DEFAULT_ALPHA_THRESHOLD) -> bool:
    """
    Check whether the pixel under (x, y) is opaque.

    The coordinate is floored to a pixel index and clamped to the image
    bounds, so points on or past the right/bottom edge read the last pixel.

    Args:
        image: Source raster
        x, y: Position in pixel space
        threshold: Minimum alpha (0-255) counted as opaque

    Returns:
        True if alpha >= threshold
    """
    ix = min(max(int(math.floor(x)), 0), image.width - 1)
    iy = min(max(int(math.floor(y)), 0), image.height - 1)
    return bool(image.alpha[iy, ix] >= threshold)


def _uniform_point(rng: AleaPRNG, width: float, height: float) -> Point2D:
    return Point2D(rng.random() * width, rng.random() * height)


def random_opaque_point(image: RasterImage, rng: AleaPRNG,
                        threshold: int = DEFAULT_ALPHA_THRESHOLD,
                        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
                        width: Optional[float] = None,
                        height: Optional[float] = None) -> Point2D:
    """
    Rejection-sample a point that lands on an opaque pixel.

    After ``max_attempts`` misses a plain uniform point is returned instead,
    which degrades gracefully for sparse or fully transparent images.

    Args:
        image: Source raster
        rng: Seeded generator
        threshold: Minimum alpha counted as opaque
        max_attempts: Number of rejected samples before giving up
        width, height: Sampling rectangle (defaults to the image size)

    Returns:
        Sampled point
    """
    width = image.width if width is None else width
    height = image.height if height is None else height

    for _ in range(max_attempts):
        point = _uniform_point(rng, width, height)
        if sample_alpha(image, point.x, point.y, threshold):
            return point

    return _uniform_point(rng, width, height)


def uniform_points(width: float, height: float, n: int, rng: AleaPRNG) -> List[Point2D]:
    """Generate ``n`` points uniformly distributed in [0, width) x [0, height)."""
    return [_uniform_point(rng, width, height) for _ in range(n)]


def biased_points(image: RasterImage, width: float, height: float, n: int,
                  rng: AleaPRNG, threshold: int = DEFAULT_ALPHA_THRESHOLD,
                  max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> List[Point2D]:
    """Generate ``n`` points biased toward the opaque pixels of ``image``."""
    return [
        random_opaque_point(image, rng, threshold, max_attempts, width, height)
        for _ in range(n)
    ]


def generate_seed_points(width: float, height: float, n: int, rng: AleaPRNG,
                         image: Optional[RasterImage] = None,
                         threshold: int = DEFAULT_ALPHA_THRESHOLD) -> List[Point2D]:
    """
    Generate tessellation seeds, alpha-biased whenever pixel data is available.

    Args:
        width, height: Sampling rectangle
        n: Number of seeds
        rng: Seeded generator
        image: Source raster, or None to fall back to uniform sampling
        threshold: Minimum alpha counted as opaque

    Returns:
        List of ``n`` seed points
    """
    if image is None:
        logger.debug("No pixel data, using uniform seeds", count=n)
        return uniform_points(width, height, n, rng)

    logger.debug("Generating alpha-biased seeds", count=n, threshold=threshold)
    return biased_points(image, width, height, n, rng, threshold)
