"""Voronoi image slicer: cut an RGBA image into engine-ready pieces."""

__version__ = "0.1.0"
