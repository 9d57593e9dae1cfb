"""4-neighbour binary morphology on the analysis grid.

Every operation reads its input as a snapshot and returns a fresh array.
Cells outside the grid count as inactive.
"""

import cv2
import numpy as np


_CROSS = cv2.getStructuringElement(cv2.MORPH_CROSS, (3, 3))


def _neighbour_count(src: np.ndarray) -> np.ndarray:
    count = np.zeros(src.shape, dtype=np.uint8)
    count[1:, :] += src[:-1, :]
    count[:-1, :] += src[1:, :]
    count[:, 1:] += src[:, :-1]
    count[:, :-1] += src[:, 1:]
    return count


def dilate(mask: np.ndarray) -> np.ndarray:
    """A cell becomes active if it or any 4-neighbour is active."""
    src = mask.astype(np.uint8)
    out = cv2.dilate(src, _CROSS, borderType=cv2.BORDER_CONSTANT, borderValue=0)
    return out.astype(bool)


def erode(mask: np.ndarray) -> np.ndarray:
    """A cell stays active only if it and all 4 neighbours are active.

    Border cells have a missing neighbour and are always cleared.
    """
    src = mask.astype(np.uint8)
    out = cv2.erode(src, _CROSS, borderType=cv2.BORDER_CONSTANT, borderValue=0)
    return out.astype(bool)


def remove_isolated(mask: np.ndarray) -> np.ndarray:
    """Clear active cells that have no active 4-neighbour."""
    src = mask.astype(bool, copy=True)
    return src & (_neighbour_count(src) > 0)


def close(mask: np.ndarray, iterations: int = 1) -> np.ndarray:
    """Dilate then erode ``iterations`` times, then drop single-cell specks.

    Dilation followed by erosion with the 4-neighbour cross never removes a
    cell on its own, so lone cells are cleared explicitly afterwards.
    """
    out = mask.astype(bool, copy=True)
    for _ in range(iterations):
        out = erode(dilate(out))
    return remove_isolated(out)
