"""
Connected-component labeling of the cleaned activity mask.

Iterative 4-connected flood fill over flat cell indices with a separate
visited bitmap; blobs come out in raster order of their first cell.
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from salience.errors import BufferShapeError


@dataclass
class Blob:
    min_x: int
    max_x: int
    min_y: int
    max_y: int
    cell_count: int
    centroid: Tuple[float, float]
    score: float = 0.0          # mean member score

    @property
    def width(self) -> int:
        return self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        return self.max_y - self.min_y + 1

    @property
    def aspect(self) -> float:
        return self.width / self.height

    @property
    def bbox_area(self) -> int:
        return self.width * self.height


def label_components(
    mask: np.ndarray,
    scores: Optional[np.ndarray] = None,
    visited: Optional[np.ndarray] = None,
) -> List[Blob]:
    gh, gw = mask.shape
    active = mask.astype(bool).ravel()
    flat_scores = None
    if scores is not None:
        if scores.shape != mask.shape:
            raise BufferShapeError(
                f"Score map shape {scores.shape} does not match mask {mask.shape}")
        flat_scores = scores.ravel()
    if visited is None:
        visited = np.zeros(gw * gh, dtype=np.uint8)
    elif visited.size != gw * gh:
        raise BufferShapeError(f"Visited bitmap has {visited.size} cells, expected {gw * gh}")
    else:
        visited[:] = 0

    blobs: List[Blob] = []
    for start in np.flatnonzero(active):
        start = int(start)
        if visited[start]:
            continue
        visited[start] = 1
        stack = [start]
        min_x = max_x = start % gw
        min_y = max_y = start // gw
        count = 0
        sum_x = sum_y = 0
        sum_score = 0.0

        while stack:
            idx = stack.pop()
            y, x = divmod(idx, gw)
            count += 1
            sum_x += x
            sum_y += y
            if flat_scores is not None:
                sum_score += float(flat_scores[idx])
            if x < min_x: min_x = x
            if x > max_x: max_x = x
            if y < min_y: min_y = y
            if y > max_y: max_y = y

            if x + 1 < gw:
                n = idx + 1
                if active[n] and not visited[n]:
                    visited[n] = 1;  stack.append(n)
            if x > 0:
                n = idx - 1
                if active[n] and not visited[n]:
                    visited[n] = 1;  stack.append(n)
            if y + 1 < gh:
                n = idx + gw
                if active[n] and not visited[n]:
                    visited[n] = 1;  stack.append(n)
            if y > 0:
                n = idx - gw
                if active[n] and not visited[n]:
                    visited[n] = 1;  stack.append(n)

        blobs.append(Blob(
            min_x=min_x, max_x=max_x, min_y=min_y, max_y=max_y,
            cell_count=count,
            centroid=(sum_x / count, sum_y / count),
            score=sum_score / count,
        ))
    return blobs
