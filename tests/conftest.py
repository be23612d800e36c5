import pytest

from rasterkit import RasterImage
from rasterkit.config import reset_config


@pytest.fixture(autouse=True)
def fresh_config():
    """Every test sees configuration built from its own environment."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def white_canvas():
    """200x100 opaque white image."""
    return RasterImage.create(200, 100)


@pytest.fixture
def red_pixel():
    return RasterImage.create(1, 1, "#f00")
