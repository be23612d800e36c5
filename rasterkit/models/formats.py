from __future__ import annotations
from enum import Enum

from ..errors import InvalidArgument, UnsupportedFormat


class ImageFormat(str, Enum):
    JPEG = "jpeg"
    PNG = "png"

    @classmethod
    def parse(cls, value: ImageFormat | str) -> ImageFormat:
        """Case-insensitive lookup; "jpg" is accepted for JPEG."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            raise UnsupportedFormat(f'Image format "{value}" is not supported')
        name = value.strip().lower()
        if name == "jpg":
            name = "jpeg"
        try:
            return cls(name)
        except ValueError as err:
            raise UnsupportedFormat(f'Image format "{name}" is not supported') from err


class ThumbnailMode(int, Enum):
    OUTER = 0   # scale to fit, keeps the whole image
    INNER = 1   # center crop, keeps the scale

    @classmethod
    def parse(cls, value: ThumbnailMode | int | str) -> ThumbnailMode:
        if isinstance(value, cls):
            return value
        # bool is an int subclass, True must not select INNER
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                pass
        elif isinstance(value, str) and value.strip().upper() in cls.__members__:
            return cls[value.strip().upper()]
        raise InvalidArgument("Specified thumbnail mode is not supported")
