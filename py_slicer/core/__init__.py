"""
Core slicing functionality.
"""

from .alea_prng import AleaPRNG
from .composite_preview import render_preview
from .coordinate_mapper import CoordinateMapper
from .errors import EncodingFailure, InvalidInputError, SlicerError, SourceTooLargeError
from .geometry import BoundsRect, ClosedRing, Point2D, polygon_area
from .piece_extractor import Piece, extract_pieces
from .pixel_sampler import biased_points, random_opaque_point, sample_alpha, uniform_points
from .raster import RasterImage, decode_image, encode_png
from .slicer import SliceResult, SliceSession, export_pieces, slice_image
from .tessellation import Tessellation, build_tessellation, cell_polygon

__all__ = ['AleaPRNG', 'render_preview', 'CoordinateMapper',
           'EncodingFailure', 'InvalidInputError', 'SlicerError', 'SourceTooLargeError',
           'BoundsRect', 'ClosedRing', 'Point2D', 'polygon_area',
           'Piece', 'extract_pieces',
           'biased_points', 'random_opaque_point', 'sample_alpha', 'uniform_points',
           'RasterImage', 'decode_image', 'encode_png',
           'SliceResult', 'SliceSession', 'export_pieces', 'slice_image',
           'Tessellation', 'build_tessellation', 'cell_polygon']
