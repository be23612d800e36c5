import pytest

from rasterkit import ImageFormat, InvalidArgument, ThumbnailMode, UnsupportedFormat


@pytest.mark.parametrize("value, expected", [
    ("jpeg", ImageFormat.JPEG),
    ("JPG", ImageFormat.JPEG),
    ("Png", ImageFormat.PNG),
    (ImageFormat.PNG, ImageFormat.PNG),
])
def test_image_format_parse(value, expected):
    assert ImageFormat.parse(value) is expected


@pytest.mark.parametrize("value", ["gif", "", None, 1])
def test_image_format_rejects_unknown(value):
    with pytest.raises(UnsupportedFormat):
        ImageFormat.parse(value)


@pytest.mark.parametrize("value, expected", [
    (0, ThumbnailMode.OUTER),
    (1, ThumbnailMode.INNER),
    ("inner", ThumbnailMode.INNER),
    (ThumbnailMode.OUTER, ThumbnailMode.OUTER),
])
def test_thumbnail_mode_parse(value, expected):
    assert ThumbnailMode.parse(value) is expected


@pytest.mark.parametrize("value", [2, -1, "middle", True, None, 0.0])
def test_thumbnail_mode_rejects_unknown(value):
    with pytest.raises(InvalidArgument):
        ThumbnailMode.parse(value)
