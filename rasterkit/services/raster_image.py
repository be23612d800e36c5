from __future__ import annotations
from pathlib import Path
from typing import Tuple, Union
import logging
import math

from ..config import get_config
from ..errors import (
    BackendFailure,
    InvalidArgument,
    InvalidCoordinate,
    InvalidDimensions,
    OutOfBounds,
)
from ..models.color import ColorInput, parse_color, to_external_alpha
from ..models.formats import ImageFormat, ThumbnailMode
from ..models.raster_buffer import RasterBuffer
from ..repositories.file_repository import FileRepository
from ..repositories.raster_repository import RasterRepository
from ..utils.rounding import clamp, round_half_up

logger = logging.getLogger(__name__)


def _check_dimensions(width, height) -> Tuple[int, int]:
    try:
        width, height = int(width), int(height)
    except (TypeError, ValueError, OverflowError) as err:
        raise InvalidDimensions(f"Image dimensions must be integers, {width!r}x{height!r} given.") from err
    if width < 1 or height < 1:
        raise InvalidDimensions(f"Image dimension cannot be less than 1, {width}x{height} given.")
    return width, height


def _check_coordinates(x, y) -> Tuple[int, int]:
    try:
        x, y = int(x), int(y)
    except (TypeError, ValueError, OverflowError) as err:
        raise InvalidCoordinate(f"Image coordinates must be integers, ({x!r},{y!r}) given") from err
    if x < 0 or y < 0:
        raise InvalidCoordinate(f"Image coordinate cannot be negative, ({x},{y}) given")
    return x, y


class RasterImage:
    """
    True-color image with alpha, owning exactly one backend buffer.

    Transforms (copy, resize, crop, thumbnail) return a new RasterImage and
    leave the receiver untouched; paste and sharpen mutate in place and
    return ``self``. The buffer keeps alpha blending off and alpha saving on
    outside of paste().
    """

    raster_repository = RasterRepository()
    file_repository = FileRepository()

    def __init__(self, buffer: RasterBuffer):
        self._buffer = buffer

    # ─── Lifecycle ─────────────────────────────────────────────────
    def _release(self) -> None:
        # getattr: __del__ also runs for instances whose __init__ never finished
        buffer = getattr(self, "_buffer", None)
        if buffer is not None and not buffer.released:
            self.raster_repository.release(buffer)

    def close(self) -> None:
        """Release the pixel buffer now instead of on garbage collection."""
        self._release()

    def __del__(self):
        self._release()

    def __enter__(self) -> RasterImage:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self._release()

    def __str__(self) -> str:
        return self.to_display_string()

    def __repr__(self) -> str:
        if self._buffer.released:
            return "RasterImage(released)"
        return f"RasterImage({self})"

    @classmethod
    def _new_canvas(cls, width: int, height: int) -> RasterBuffer:
        """Blank buffer in the canonical state: no blending, alpha saved."""
        repo = cls.raster_repository
        buffer = repo.allocate(width, height)
        try:
            repo.set_blending(buffer, False)
            repo.set_alpha_save(buffer, True)
        except BackendFailure:
            repo.release(buffer)
            raise
        return buffer

    @classmethod
    def _build(cls, width: int, height: int, draw) -> RasterImage:
        """
        Allocate a canvas, let ``draw(buffer)`` fill it, and wrap it.
        The canvas is released if drawing fails.
        """
        buffer = cls._new_canvas(width, height)
        try:
            draw(buffer)
        except BackendFailure:
            cls.raster_repository.release(buffer)
            raise
        return cls(buffer)

    # ─── Construction ──────────────────────────────────────────────
    @classmethod
    def create(
        cls,
        width: int,
        height: int,
        color: ColorInput | None = None,
        alpha: float | None = None,
    ) -> RasterImage:
        """
        Create a blank image filled with ``color``.

        Args:
            width, height: image size, at least 1.
            color: hex string or (r, g, b[, alpha]) sequence. Defaults to white.
            alpha: transparency percentage, 0 (opaque) to 100.
        """
        width, height = _check_dimensions(width, height)
        if color is None:
            color = get_config().default_color
        r, g, b, a = parse_color(color, alpha)

        def draw(buffer):
            repo = cls.raster_repository
            repo.fill(buffer, 0, 0, repo.allocate_color(buffer, r, g, b, a))

        image = cls._build(width, height, draw)
        logger.debug(f"Created {image} canvas filled with ({r},{g},{b},{a})")
        return image

    @classmethod
    def decode(cls, data: bytes) -> RasterImage:
        """Create an image from encoded bytes (any format the codec recognises)."""
        repo = cls.raster_repository
        buffer = repo.decode(data)
        repo.set_blending(buffer, False)
        repo.set_alpha_save(buffer, True)
        image = cls(buffer)
        logger.debug(f"Decoded {image} image from {len(data)} bytes")
        return image

    @classmethod
    def decode_file(cls, path: Union[str, Path]) -> RasterImage:
        return cls.decode(cls.file_repository.read_file(path))

    # ─── Accessors ─────────────────────────────────────────────────
    @property
    def buffer(self) -> RasterBuffer:
        return self._buffer

    @property
    def width(self) -> int:
        return self.raster_repository.width(self._buffer)

    @property
    def height(self) -> int:
        return self.raster_repository.height(self._buffer)

    def to_display_string(self) -> str:
        return f"{self.width}x{self.height}"

    def color_at(self, x: int = 0, y: int = 0) -> Tuple[int, int, int, int]:
        """
        Color of the pixel at (x, y) as (r, g, b, alpha) where alpha is a
        percentage, 0 (opaque) to 100 (transparent).
        """
        x, y = _check_coordinates(x, y)
        if x >= self.width or y >= self.height:
            raise OutOfBounds(f"Pixel ({x},{y}) is outside of the {self} image")

        repo = self.raster_repository
        r, g, b, a = repo.resolve_color(self._buffer, repo.pixel_at(self._buffer, x, y))
        return r, g, b, to_external_alpha(a)

    # ─── Geometry ──────────────────────────────────────────────────
    def copy(self) -> RasterImage:
        width, height = self.width, self.height
        return self._build(
            width, height,
            lambda dst: self.raster_repository.copy(dst, self._buffer, 0, 0, 0, 0, width, height),
        )

    def resize(self, width: int, height: int) -> RasterImage:
        """Resampled copy at exactly width x height. Aspect ratio is not kept."""
        width, height = _check_dimensions(width, height)
        src_width, src_height = self.width, self.height

        resized = self._build(
            width, height,
            lambda dst: self.raster_repository.resample(
                dst, self._buffer, 0, 0, 0, 0, width, height, src_width, src_height
            ),
        )
        logger.debug(f"Resized {src_width}x{src_height} → {resized}")
        return resized

    def crop(self, width: int, height: int, x: int = 0, y: int = 0) -> RasterImage:
        width, height = _check_dimensions(width, height)
        x, y = _check_coordinates(x, y)

        if width + x > self.width or height + y > self.height:
            raise OutOfBounds("Cannot crop the image outside it's boundary.")

        cropped = self._build(
            width, height,
            lambda dst: self.raster_repository.copy(dst, self._buffer, 0, 0, x, y, width, height),
        )
        logger.debug(f"Cropped {self} at ({x},{y}) → {cropped}")
        return cropped

    def paste(self, image: RasterImage, x: int = 0, y: int = 0) -> RasterImage:
        """
        Alpha-composite ``image`` onto this image with its top-left corner at
        (x, y). Mutates this image and returns it.
        """
        if not isinstance(image, RasterImage):
            raise InvalidArgument(f"Only a RasterImage can be pasted, {type(image).__name__} given")
        x, y = _check_coordinates(x, y)

        if image.width + x > self.width or image.height + y > self.height:
            raise OutOfBounds(
                "Paste operation cannot be done because source image goes outside image boundary."
            )

        repo = self.raster_repository
        repo.set_blending(self._buffer, True)
        try:
            repo.set_blending(image._buffer, True)
            repo.copy(self._buffer, image._buffer, x, y, 0, 0, image.width, image.height)
        finally:
            repo.set_blending(self._buffer, False)
            if not image._buffer.released:
                repo.set_blending(image._buffer, False)

        logger.debug(f"Pasted {image} onto {self} at ({x},{y})")
        return self

    def thumbnail(
        self,
        max_width: int,
        max_height: int,
        mode: ThumbnailMode | int | str = ThumbnailMode.OUTER,
    ) -> RasterImage:
        """
        Fit the image into max_width x max_height (a bound ≤ 0 is ignored).

        OUTER scales the whole image down, applying the width bound first and
        then the height bound to the result. INNER crops the center region.
        """
        mode = ThumbnailMode.parse(mode)
        max_width, max_height = int(max_width), int(max_height)
        width, height = self.width, self.height

        if mode is ThumbnailMode.OUTER:
            if 0 < max_width < width:
                height = round_half_up(height * max_width / width)
                width = max_width

            if 0 < max_height < height:
                width = round_half_up(width * max_height / height)
                height = max_height

            return self.resize(width, height)

        x = y = 0
        if 0 < max_width < width:
            x = round_half_up((width - max_width) / 2)
            width = max_width

        if 0 < max_height < height:
            y = round_half_up((height - max_height) / 2)
            height = max_height

        return self.crop(width, height, x, y)

    # ─── Filters ───────────────────────────────────────────────────
    def sharpen(self, factor: float) -> RasterImage:
        """
        Sharpen in place. ``factor`` goes from 0 to 1, higher is sharper;
        values outside the range are clamped.
        """
        factor = clamp(float(factor), 0.0, 1.0)
        center = round_half_up((1 - math.sqrt(factor)) * 11 + 5)

        matrix = [
            [0, -1, 0],
            [-1, center, -1],
            [0, -1, 0],
        ]
        divisor = sum(map(sum, matrix))

        self.raster_repository.convolve(self._buffer, matrix, divisor, 0)
        logger.debug(f"Sharpened {self} with factor {factor:.2f} (center={center})")
        return self

    # ─── Encoding / persistence ────────────────────────────────────
    def encode(self, format: ImageFormat | str, quality: int | None = None) -> bytes:
        """
        Encode as JPEG or PNG.

        Args:
            format: "jpeg" / "jpg" / "png", any case, or an ImageFormat.
            quality: JPEG quality percentage. PNG always uses the configured
                best compression level and ignores it.
        """
        image_format = ImageFormat.parse(format)
        config = get_config()

        if image_format is ImageFormat.PNG:
            return self.raster_repository.encode_png(self._buffer, config.png_compression)

        if quality is None:
            quality = config.jpeg_quality
        return self.raster_repository.encode_jpeg(self._buffer, clamp(int(quality), 0, 100))

    def save(
        self,
        path: Union[str, Path],
        format: ImageFormat | str = ImageFormat.JPEG,
        quality: int | None = None,
    ) -> bytes:
        """Encode and write the image to ``path``, creating parent directories."""
        ImageFormat.parse(format)
        path = Path(path)

        self.file_repository.ensure_dir(path.parent, get_config().dir_mode)
        data = self.encode(format, quality)
        self.file_repository.write_file_exclusive(path, data)
        return data
