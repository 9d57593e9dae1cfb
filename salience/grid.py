"""
Analysis grid and frame sampling.

The source frame is resampled onto a coarse grid of ``gw x gh`` cells; every
later stage works on that grid. Buffers are sized to the grid and kept until
the grid dimensions change.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from loguru import logger

from salience.config import GridConfig
from salience.errors import BufferShapeError


@dataclass(frozen=True)
class Grid:
    width: int
    height: int

    @property
    def area(self) -> int:
        return self.width * self.height

    @property
    def shape(self) -> Tuple[int, int]:
        return (self.height, self.width)

    def normalize_box(
        self, min_x: int, min_y: int, max_x: int, max_y: int
    ) -> Tuple[float, float, float, float]:
        """Inclusive cell bounds -> (x, y, w, h) in [0, 1]."""
        return (
            min_x / self.width,
            min_y / self.height,
            (max_x - min_x + 1) / self.width,
            (max_y - min_y + 1) / self.height,
        )


def grid_for(source_width: int, source_height: int, config: GridConfig) -> Optional[Grid]:
    """Grid dimensions for a source frame, or None if the grid would be empty."""
    if source_width <= 0 or source_height <= 0:
        return None
    if config.mode == "fixed_width":
        gw = config.width_cells
        gh = int(gw / (source_width / source_height))
    else:
        gw = source_width // config.cell_size
        gh = source_height // config.cell_size
    if gw < 1 or gh < 1:
        return None
    return Grid(gw, gh)


class FrameBuffers:
    """Per-grid scratch arrays reused from frame to frame."""

    def __init__(self, grid: Grid):
        self.grid = grid
        self.scores = np.zeros(grid.shape, dtype=np.float32)
        self.visited = np.zeros(grid.area, dtype=np.uint8)

    def matches(self, grid: Grid) -> bool:
        return self.grid == grid


def ensure_buffers(buffers: Optional[FrameBuffers], grid: Grid) -> FrameBuffers:
    if buffers is not None and buffers.matches(grid):
        return buffers
    logger.debug(f"Allocating analysis buffers for {grid.width}x{grid.height} grid")
    return FrameBuffers(grid)


def check_rgba(rgba: np.ndarray, grid: Grid) -> np.ndarray:
    expected = (grid.height, grid.width, 4)
    if rgba.shape != expected:
        raise BufferShapeError(
            f"Sampled buffer has shape {rgba.shape}, expected {expected}"
        )
    return rgba


# ---------------------------------------------------------------------------
# Sampler
# ---------------------------------------------------------------------------

class FrameSampler:
    """Reads the current source frame at grid resolution.

    ``sample`` returns ``(grid, rgba)`` or ``None`` when the source is not
    ready or too small for a single cell.
    """

    def __init__(self, config: GridConfig):
        self._config = config

    def grid_for(self, source) -> Optional[Grid]:
        return grid_for(int(source.width), int(source.height), self._config)

    def sample(self, source) -> Optional[Tuple[Grid, np.ndarray]]:
        if not source.ready:
            return None
        grid = self.grid_for(source)
        if grid is None:
            return None
        rgba = np.asarray(source.sample(grid.width, grid.height))
        return grid, check_rgba(rgba, grid)
