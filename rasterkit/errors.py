"""Exception taxonomy for rasterkit.

Validation errors subclass ``ValueError``, backend errors ``RuntimeError``
and filesystem errors ``OSError`` so callers can catch either the rasterkit
class or the builtin family it belongs to.
"""


class RasterError(Exception):
    """Base class for every error raised by rasterkit."""


class InvalidDimensions(RasterError, ValueError):
    """Width or height below 1."""


class InvalidCoordinate(RasterError, ValueError):
    """Negative x or y coordinate."""


class OutOfBounds(RasterError, ValueError):
    """Region exceeds the extent of the source or target image."""


class InvalidColor(RasterError, ValueError):
    """Malformed hex string, too short component list or wrong type."""


class InvalidArgument(RasterError, ValueError):
    """Unsupported argument value (thumbnail mode, convolution divisor...)."""


class UnsupportedFormat(RasterError, ValueError):
    """Encode format other than JPEG or PNG."""


class BackendFailure(RasterError, RuntimeError):
    """A raster primitive failed (allocation, copy, resample, convolve, fill...)."""


class DecodeFailure(RasterError, RuntimeError):
    """Encoded bytes are not in a recognised format or are corrupted."""


class IoFailure(RasterError, OSError):
    """File unreadable, directory uncreatable or write failure."""
