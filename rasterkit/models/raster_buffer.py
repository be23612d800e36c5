from __future__ import annotations
from dataclasses import dataclass
import numpy as np


@dataclass(eq=False)
class RasterBuffer:
    """
    Backend pixel buffer handle. Only RasterRepository touches the pixels.
    """
    pixels: np.ndarray | None    # Shape (H, W, 4), dtype uint8, (r, g, b, internal alpha 0-127).
    alpha_blending: bool = True  # Composite on copy instead of overwriting.
    save_alpha: bool = False     # Keep the alpha channel when encoding PNG.

    @property
    def released(self) -> bool:
        return self.pixels is None
