from __future__ import annotations
from io import BytesIO
from typing import Sequence
import logging

import cv2
import numpy as np
from PIL import Image as PILImage

from ..errors import BackendFailure, DecodeFailure, InvalidArgument
from ..models.color import MAX_ALPHA, Color, pack_color, unpack_color
from ..models.raster_buffer import RasterBuffer

logger = logging.getLogger(__name__)


class RasterRepository:
    """
    Raster backend: every pixel primitive rasterkit needs, on top of
    numpy buffers, OpenCV (resample / flood fill / convolution) and
    Pillow (JPEG / PNG codecs).

    Primitives raise BackendFailure instead of returning a failure flag,
    so services never inspect sentinel values.
    """

    # ─── Helpers ───────────────────────────────────────────────────
    @staticmethod
    def _fail(message: str, err: Exception | None = None) -> BackendFailure:
        if err is None:
            logger.error(message)
        else:
            logger.error(f"{message}: {err}")
        return BackendFailure(message)

    def _pixels(self, buffer: RasterBuffer) -> np.ndarray:
        if buffer.released:
            raise self._fail("Image buffer has already been released")
        return buffer.pixels

    @staticmethod
    def _blend(src: np.ndarray, dst: np.ndarray) -> np.ndarray:
        """
        Source-over alpha compositing of two (h, w, 4) regions.
        Internal alpha is inverted (0 = opaque), so convert to coverage first.
        """
        src_cov = (MAX_ALPHA - src[..., 3:4].astype(np.float32)) / MAX_ALPHA
        dst_cov = (MAX_ALPHA - dst[..., 3:4].astype(np.float32)) / MAX_ALPHA

        out_cov = src_cov + dst_cov * (1.0 - src_cov)
        safe_cov = np.where(out_cov > 0, out_cov, 1.0)
        rgb = (src[..., :3] * src_cov + dst[..., :3] * dst_cov * (1.0 - src_cov)) / safe_cov

        out = np.empty_like(dst)
        out[..., :3] = np.clip(np.rint(rgb), 0, 255)
        out[..., 3:4] = np.clip(np.rint(MAX_ALPHA - out_cov * MAX_ALPHA), 0, MAX_ALPHA)
        return out

    def _put(self, dst: RasterBuffer, dst_x: int, dst_y: int, region: np.ndarray) -> None:
        """Write ``region`` into ``dst`` at (dst_x, dst_y), clipped to dst."""
        dst_px = self._pixels(dst)
        h = min(region.shape[0], dst_px.shape[0] - dst_y)
        w = min(region.shape[1], dst_px.shape[1] - dst_x)
        if h <= 0 or w <= 0:
            return

        region = region[:h, :w]
        target = dst_px[dst_y:dst_y + h, dst_x:dst_x + w]
        if dst.alpha_blending:
            target[...] = self._blend(region, target)
        else:
            target[...] = region

    @staticmethod
    def _to_pil(pixels: np.ndarray, keep_alpha: bool) -> PILImage.Image:
        if not keep_alpha:
            return PILImage.fromarray(np.ascontiguousarray(pixels[..., :3]))

        rgba = pixels.copy()
        internal = pixels[..., 3].astype(np.uint16)
        rgba[..., 3] = (255 - ((internal << 1) + (internal >> 6))).astype(np.uint8)
        return PILImage.fromarray(rgba)

    # ─── Buffer lifecycle ──────────────────────────────────────────
    def allocate(self, width: int, height: int) -> RasterBuffer:
        """Opaque black canvas; blending on, alpha saving off."""
        if width < 1 or height < 1:
            raise self._fail(f"Creating new image failed, {width}x{height} requested")
        try:
            pixels = np.zeros((height, width, 4), dtype=np.uint8)
        except (MemoryError, ValueError) as err:
            raise self._fail("Creating new image failed", err) from err
        return RasterBuffer(pixels=pixels)

    def release(self, buffer: RasterBuffer) -> None:
        if not buffer.released:
            buffer.pixels = None

    def set_blending(self, buffer: RasterBuffer, enabled: bool) -> None:
        self._pixels(buffer)
        buffer.alpha_blending = bool(enabled)

    def set_alpha_save(self, buffer: RasterBuffer, enabled: bool) -> None:
        self._pixels(buffer)
        buffer.save_alpha = bool(enabled)

    def width(self, buffer: RasterBuffer) -> int:
        return int(self._pixels(buffer).shape[1])

    def height(self, buffer: RasterBuffer) -> int:
        return int(self._pixels(buffer).shape[0])

    # ─── Pixel transfer ────────────────────────────────────────────
    def copy(
        self,
        dst: RasterBuffer,
        src: RasterBuffer,
        dst_x: int,
        dst_y: int,
        src_x: int,
        src_y: int,
        width: int,
        height: int,
    ) -> None:
        """
        Copy a (width x height) region of src at (src_x, src_y) onto dst at
        (dst_x, dst_y). Composites when dst has alpha blending enabled.
        """
        if min(dst_x, dst_y, src_x, src_y) < 0:
            raise self._fail("Failed to copy image, negative coordinate given")

        src_px = self._pixels(src)
        # copy() so that copying a buffer onto itself reads the original pixels
        region = src_px[src_y:src_y + height, src_x:src_x + width].copy()
        self._put(dst, dst_x, dst_y, region)

    def resample(
        self,
        dst: RasterBuffer,
        src: RasterBuffer,
        dst_x: int,
        dst_y: int,
        src_x: int,
        src_y: int,
        dst_width: int,
        dst_height: int,
        src_width: int,
        src_height: int,
    ) -> None:
        """Interpolated stretch of a src region into a dst region."""
        if min(dst_x, dst_y, src_x, src_y) < 0 or min(dst_width, dst_height, src_width, src_height) < 1:
            raise self._fail("Failed to resample image, invalid region given")

        src_px = self._pixels(src)
        region = src_px[src_y:src_y + src_height, src_x:src_x + src_width]
        if region.shape[:2] != (src_height, src_width):
            raise self._fail("Failed to resample image, source region outside the image")

        shrinking = dst_width < src_width or dst_height < src_height
        interpolation = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
        try:
            scaled = cv2.resize(np.ascontiguousarray(region), (dst_width, dst_height),
                                interpolation=interpolation)
        except cv2.error as err:
            raise self._fail("Failed to resample image", err) from err

        self._put(dst, dst_x, dst_y, scaled)

    def convolve(
        self,
        buffer: RasterBuffer,
        kernel: Sequence[Sequence[float]],
        divisor: float,
        offset: float,
    ) -> None:
        """
        Apply a 3x3 convolution to the color channels in place, edges clamped.
        Alpha is left untouched.
        """
        matrix = np.asarray(kernel, dtype=np.float32)
        if matrix.shape != (3, 3):
            raise InvalidArgument(f"Convolution kernel must be 3x3, {matrix.shape} given")
        if divisor == 0:
            raise InvalidArgument("Convolution divisor cannot be zero")

        pixels = self._pixels(buffer)
        rgb = np.ascontiguousarray(pixels[..., :3], dtype=np.float32)
        try:
            # filter2D correlates; identical to convolution for symmetric kernels
            filtered = cv2.filter2D(rgb, -1, matrix / float(divisor),
                                    borderType=cv2.BORDER_REPLICATE)
        except cv2.error as err:
            raise self._fail("Failed to apply image convolution", err) from err

        pixels[..., :3] = np.clip(np.rint(filtered + offset), 0, 255).astype(np.uint8)

    # ─── Colors ────────────────────────────────────────────────────
    def allocate_color(self, buffer: RasterBuffer, r: int, g: int, b: int, a: int) -> int:
        self._pixels(buffer)
        if not all(0 <= v <= 255 for v in (r, g, b)) or not 0 <= a <= MAX_ALPHA:
            raise self._fail(f"Failed to allocate image color ({r},{g},{b},{a})")
        return pack_color(r, g, b, a)

    def fill(self, buffer: RasterBuffer, x: int, y: int, color_index: int) -> None:
        """Flood fill (4-connected) the region sharing the color at (x, y)."""
        pixels = self._pixels(buffer)
        height, width = pixels.shape[:2]
        if not (0 <= x < width and 0 <= y < height):
            raise self._fail(f"Could not set background color fill at ({x},{y})")

        # 1 where the pixel matches the seed, then flood the seed's component to 2
        same = np.all(pixels == pixels[y, x], axis=2).astype(np.uint8)
        mask = np.zeros((height + 2, width + 2), dtype=np.uint8)
        try:
            cv2.floodFill(same, mask, (x, y), 2, loDiff=0, upDiff=0, flags=4)
        except cv2.error as err:
            raise self._fail("Could not set background color fill", err) from err

        pixels[same == 2] = unpack_color(color_index)

    def pixel_at(self, buffer: RasterBuffer, x: int, y: int) -> int:
        pixels = self._pixels(buffer)
        if not (0 <= x < pixels.shape[1] and 0 <= y < pixels.shape[0]):
            raise self._fail(f"Pixel ({x},{y}) is outside the image")
        r, g, b, a = (int(v) for v in pixels[y, x])
        return pack_color(r, g, b, a)

    def resolve_color(self, buffer: RasterBuffer, color_index: int) -> Color:
        self._pixels(buffer)
        return unpack_color(color_index)

    # ─── Codecs ────────────────────────────────────────────────────
    def decode(self, data: bytes) -> RasterBuffer:
        """Sniff the format of ``data`` and decode it into a fresh buffer."""
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise DecodeFailure(f"Image data must be bytes, {type(data).__name__} given")

        try:
            with PILImage.open(BytesIO(data)) as pil_img:
                rgba = np.array(pil_img.convert("RGBA"), dtype=np.uint8)
        except (OSError, ValueError, SyntaxError) as err:
            logger.error(f"Image decoding failed: {err}")
            raise DecodeFailure("Image data is not in a recognised format or is corrupted") from err

        pixels = rgba.copy()
        pixels[..., 3] = MAX_ALPHA - (rgba[..., 3] >> 1)
        return RasterBuffer(pixels=pixels)

    def encode_jpeg(self, buffer: RasterBuffer, quality: int) -> bytes:
        pil_img = self._to_pil(self._pixels(buffer), keep_alpha=False)
        out = BytesIO()
        try:
            pil_img.save(out, format="JPEG", quality=int(quality))
        except (OSError, ValueError) as err:
            raise self._fail("Unable to encode JPEG image", err) from err
        return out.getvalue()

    def encode_png(self, buffer: RasterBuffer, compression_level: int) -> bytes:
        pil_img = self._to_pil(self._pixels(buffer), keep_alpha=buffer.save_alpha)
        out = BytesIO()
        try:
            pil_img.save(out, format="PNG", compress_level=int(compression_level))
        except (OSError, ValueError) as err:
            raise self._fail("Unable to encode PNG image", err) from err
        return out.getvalue()
