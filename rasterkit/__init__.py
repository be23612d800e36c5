"""
rasterkit: in-process true-color image manipulation.

    from rasterkit import RasterImage

    with RasterImage.create(200, 100, "#336699") as canvas:
        thumb = canvas.thumbnail(100, 1000)
        thumb.save("out/thumb.png", "png")
"""
from .errors import (
    BackendFailure,
    DecodeFailure,
    InvalidArgument,
    InvalidColor,
    InvalidCoordinate,
    InvalidDimensions,
    IoFailure,
    OutOfBounds,
    RasterError,
    UnsupportedFormat,
)
from .models.color import parse_color
from .models.formats import ImageFormat, ThumbnailMode
from .services.raster_image import RasterImage

__version__ = "1.0.0"

__all__ = [
    "RasterImage",
    "parse_color",
    "ImageFormat",
    "ThumbnailMode",
    "RasterError",
    "InvalidDimensions",
    "InvalidCoordinate",
    "OutOfBounds",
    "InvalidColor",
    "InvalidArgument",
    "UnsupportedFormat",
    "BackendFailure",
    "DecodeFailure",
    "IoFailure",
]
