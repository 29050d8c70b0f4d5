"""Exceptions raised by the slicing core."""


class SlicerError(Exception):
    """Base class for slicer failures."""


class InvalidInputError(SlicerError):
    """Source bytes could not be decoded into a raster image."""


class EncodingFailure(SlicerError):
    """A single piece could not be serialized to PNG."""

    def __init__(self, piece_id: int, reason: str):
        super().__init__(f"Failed to encode piece {piece_id}: {reason}")
        self.piece_id = piece_id
        self.reason = reason


class SourceTooLargeError(InvalidInputError):
    """Source image dimensions exceed the accepted pixel count."""
