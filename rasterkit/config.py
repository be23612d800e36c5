from __future__ import annotations
from dataclasses import dataclass
import logging
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


@dataclass(frozen=True)
class RasterConfig:
    """
    Process-wide defaults, read from the environment (or a .env file).
    """
    jpeg_quality: int = 85          # [0, 100]
    png_compression: int = 9        # [0, 9], 9 = best compression
    dir_mode: int = 0o777           # mode for directories created by save()
    default_color: str = "ffffff"   # create() background
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "RasterConfig":
        return cls(
            jpeg_quality=int(os.getenv("RASTER_JPEG_QUALITY", "85")),
            png_compression=int(os.getenv("RASTER_PNG_COMPRESSION", "9")),
            dir_mode=int(os.getenv("RASTER_DIR_MODE", "777"), 8),
            default_color=os.getenv("RASTER_DEFAULT_COLOR", "ffffff"),
            log_level=os.getenv("RASTER_LOG_LEVEL", "WARNING").upper(),
        )


_config: RasterConfig | None = None


def get_config() -> RasterConfig:
    """Return the cached configuration, building it on first use."""
    global _config
    if _config is None:
        _config = RasterConfig.from_env()
        logging.getLogger("rasterkit").setLevel(_config.log_level)
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads the env."""
    global _config
    _config = None
