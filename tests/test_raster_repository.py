import numpy as np
import pytest

from rasterkit import BackendFailure, DecodeFailure, InvalidArgument
from rasterkit.models.color import pack_color
from rasterkit.repositories.raster_repository import RasterRepository


@pytest.fixture
def repo():
    return RasterRepository()


def test_allocate_gives_opaque_black_blending_canvas(repo):
    buffer = repo.allocate(3, 2)
    assert (repo.width(buffer), repo.height(buffer)) == (3, 2)
    assert repo.pixel_at(buffer, 2, 1) == pack_color(0, 0, 0, 0)
    assert buffer.alpha_blending is True
    assert buffer.save_alpha is False


@pytest.mark.parametrize("width, height", [(0, 1), (1, 0), (-3, 4)])
def test_allocate_rejects_empty_canvas(repo, width, height):
    with pytest.raises(BackendFailure):
        repo.allocate(width, height)


def test_fill_floods_only_the_connected_region(repo):
    buffer = repo.allocate(5, 5)
    buffer.pixels[:, 2] = (255, 255, 255, 0)  # wall splitting the canvas

    repo.fill(buffer, 0, 0, repo.allocate_color(buffer, 255, 0, 0, 0))

    assert repo.resolve_color(buffer, repo.pixel_at(buffer, 1, 4)) == (255, 0, 0, 0)
    assert repo.resolve_color(buffer, repo.pixel_at(buffer, 2, 0)) == (255, 255, 255, 0)
    assert repo.resolve_color(buffer, repo.pixel_at(buffer, 4, 4)) == (0, 0, 0, 0)


def test_allocate_color_rejects_out_of_range(repo):
    buffer = repo.allocate(1, 1)
    with pytest.raises(BackendFailure):
        repo.allocate_color(buffer, 256, 0, 0, 0)
    with pytest.raises(BackendFailure):
        repo.allocate_color(buffer, 0, 0, 0, 128)


def test_copy_overwrites_when_blending_disabled(repo):
    dst = repo.allocate(2, 2)
    dst.pixels[...] = (255, 255, 255, 0)
    src = repo.allocate(1, 1)
    src.pixels[...] = (255, 0, 0, 127)

    repo.set_blending(dst, False)
    repo.copy(dst, src, 1, 1, 0, 0, 1, 1)

    assert tuple(dst.pixels[1, 1]) == (255, 0, 0, 127)
    assert tuple(dst.pixels[0, 0]) == (255, 255, 255, 0)


def test_copy_composites_when_blending_enabled(repo):
    dst = repo.allocate(1, 1)
    dst.pixels[...] = (255, 255, 255, 0)
    transparent = repo.allocate(1, 1)
    transparent.pixels[...] = (255, 0, 0, 127)
    opaque = repo.allocate(1, 1)
    opaque.pixels[...] = (0, 0, 255, 0)

    repo.copy(dst, transparent, 0, 0, 0, 0, 1, 1)
    assert tuple(dst.pixels[0, 0]) == (255, 255, 255, 0)

    repo.copy(dst, opaque, 0, 0, 0, 0, 1, 1)
    assert tuple(dst.pixels[0, 0]) == (0, 0, 255, 0)


def test_copy_is_clipped_to_destination(repo):
    dst = repo.allocate(2, 2)
    src = repo.allocate(4, 4)
    src.pixels[...] = (9, 9, 9, 0)

    repo.copy(dst, src, 1, 1, 0, 0, 4, 4)

    assert tuple(dst.pixels[1, 1]) == (9, 9, 9, 0)
    assert tuple(dst.pixels[0, 0]) == (0, 0, 0, 0)


def test_resample_stretches_into_destination(repo):
    src = repo.allocate(4, 4)
    src.pixels[...] = (10, 20, 30, 0)
    dst = repo.allocate(8, 2)
    repo.set_blending(dst, False)

    repo.resample(dst, src, 0, 0, 0, 0, 8, 2, 4, 4)

    assert np.all(dst.pixels == np.array([10, 20, 30, 0], dtype=np.uint8))


def test_resample_rejects_source_region_outside_image(repo):
    src = repo.allocate(4, 4)
    dst = repo.allocate(2, 2)
    with pytest.raises(BackendFailure):
        repo.resample(dst, src, 0, 0, 2, 2, 2, 2, 4, 4)


def test_convolve_identity_kernel_keeps_pixels(repo):
    buffer = repo.allocate(3, 3)
    buffer.pixels[...] = np.arange(36, dtype=np.uint8).reshape(3, 3, 4)
    before = buffer.pixels.copy()

    repo.convolve(buffer, [[0, 0, 0], [0, 1, 0], [0, 0, 0]], 1, 0)

    assert np.array_equal(buffer.pixels, before)


def test_convolve_keeps_alpha_and_applies_offset(repo):
    buffer = repo.allocate(2, 2)
    buffer.pixels[...] = (100, 100, 100, 50)

    repo.convolve(buffer, [[0, 0, 0], [0, 1, 0], [0, 0, 0]], 1, 20)

    assert tuple(buffer.pixels[0, 0]) == (120, 120, 120, 50)


def test_convolve_rejects_zero_divisor(repo):
    buffer = repo.allocate(2, 2)
    with pytest.raises(InvalidArgument):
        repo.convolve(buffer, [[0, -1, 0], [-1, 4, -1], [0, -1, 0]], 0, 0)


def test_convolve_rejects_non_3x3_kernel(repo):
    buffer = repo.allocate(2, 2)
    with pytest.raises(InvalidArgument):
        repo.convolve(buffer, [[1, 1], [1, 1]], 4, 0)


def test_png_round_trip_keeps_alpha_when_saved(repo):
    buffer = repo.allocate(2, 1)
    buffer.pixels[...] = (1, 2, 3, 64)
    repo.set_alpha_save(buffer, True)

    decoded = repo.decode(repo.encode_png(buffer, 9))

    assert tuple(decoded.pixels[0, 1]) == (1, 2, 3, 64)


def test_png_drops_alpha_when_not_saved(repo):
    buffer = repo.allocate(1, 1)
    buffer.pixels[...] = (1, 2, 3, 64)

    decoded = repo.decode(repo.encode_png(buffer, 9))

    assert tuple(decoded.pixels[0, 0]) == (1, 2, 3, 0)


def test_jpeg_encoding_produces_jpeg_bytes(repo):
    buffer = repo.allocate(8, 8)
    assert repo.encode_jpeg(buffer, 85)[:2] == b"\xff\xd8"


@pytest.mark.parametrize("data", [b"", b"not an image", "text"])
def test_decode_rejects_garbage(repo, data):
    with pytest.raises(DecodeFailure):
        repo.decode(data)


def test_release_is_idempotent_and_final(repo):
    buffer = repo.allocate(2, 2)
    repo.release(buffer)
    repo.release(buffer)

    assert buffer.released
    with pytest.raises(BackendFailure):
        repo.width(buffer)
