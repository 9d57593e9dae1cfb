import numpy as np
import pytest


def _gray_rgba(values) -> np.ndarray:
    """(h, w) grey levels -> (h, w, 4) uint8 RGBA grid."""
    v = np.asarray(values, dtype=np.uint8)
    rgba = np.empty(v.shape + (4,), dtype=np.uint8)
    rgba[..., 0] = v
    rgba[..., 1] = v
    rgba[..., 2] = v
    rgba[..., 3] = 255
    return rgba


def _checker_patch(width=16, height=12, x0=4, y0=3, x1=9, y1=7, level=200) -> np.ndarray:
    """Dark grid with a checkerboard patch over cells [x0..x1] x [y0..y1]."""
    g = np.zeros((height, width), dtype=np.uint8)
    for y in range(y0, y1 + 1):
        for x in range(x0, x1 + 1):
            if (x + y) % 2 == 0:
                g[y, x] = level
    return g


@pytest.fixture
def gray_rgba():
    return _gray_rgba


@pytest.fixture
def checker_patch():
    return _checker_patch
