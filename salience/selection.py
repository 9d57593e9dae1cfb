"""Candidate filtering and winner selection."""

import math
from typing import Iterable, List, Optional, Tuple

import numpy as np

from salience.config import BlobConfig
from salience.grid import Grid
from salience.labeling import Blob


def min_cluster_cells(grid: Grid, config: BlobConfig) -> int:
    if config.min_cluster_fraction is not None:
        return max(1, math.ceil(grid.area * config.min_cluster_fraction))
    return config.min_cluster_size


def passes_filters(blob: Blob, grid: Grid, config: BlobConfig) -> bool:
    if blob.cell_count < min_cluster_cells(grid, config):
        return False
    if blob.cell_count > grid.area * config.max_cluster_fraction:
        return False
    if config.use_aspect_filter and not config.min_aspect <= blob.aspect <= config.max_aspect:
        return False
    return True


def filter_blobs(blobs: Iterable[Blob], grid: Grid, config: BlobConfig) -> List[Blob]:
    return [b for b in blobs if passes_filters(b, grid, config)]


def pick_largest(blobs: Iterable[Blob]) -> Optional[Blob]:
    """Largest blob by cell count; the first one in raster order wins ties."""
    best: Optional[Blob] = None
    for blob in blobs:
        if best is None or blob.cell_count > best.cell_count:
            best = blob
    return best


def select_region(blobs: Iterable[Blob], grid: Grid, config: BlobConfig) -> Optional[Blob]:
    return pick_largest(filter_blobs(blobs, grid, config))


def grow_from_seed(
    scores: np.ndarray,
    seed: Tuple[int, int],
    seed_score: float,
    config: BlobConfig,
    visited: Optional[np.ndarray] = None,
) -> Optional[Blob]:
    """Flood fill from the seed over cells scoring above ``cluster_threshold``.

    Nothing grows unless the seed itself clears ``lock_threshold``. Growth
    stops once the region exceeds ``max_cluster_fraction`` of the grid.
    """
    if seed_score <= config.lock_threshold:
        return None
    gh, gw = scores.shape
    flat = scores.ravel()
    if visited is None:
        visited = np.zeros(gw * gh, dtype=np.uint8)
    else:
        visited[:] = 0
    max_cells = gw * gh * config.max_cluster_fraction

    sx, sy = seed
    start = sy * gw + sx
    visited[start] = 1
    stack = [start]
    min_x = max_x = sx
    min_y = max_y = sy
    count = 0
    sum_x = sum_y = 0
    sum_score = 0.0

    while stack and count < max_cells:
        idx = stack.pop()
        y, x = divmod(idx, gw)
        count += 1
        sum_x += x;  sum_y += y
        sum_score += float(flat[idx])
        min_x = min(min_x, x);  max_x = max(max_x, x)
        min_y = min(min_y, y);  max_y = max(max_y, y)

        for nx, ny in ((x + 1, y), (x - 1, y), (x, y + 1), (x, y - 1)):
            if 0 <= nx < gw and 0 <= ny < gh:
                n = ny * gw + nx
                if not visited[n] and flat[n] > config.cluster_threshold:
                    visited[n] = 1
                    stack.append(n)

    return Blob(
        min_x=min_x, max_x=max_x, min_y=min_y, max_y=max_y,
        cell_count=count,
        centroid=(sum_x / count, sum_y / count),
        score=sum_score / count,
    )
