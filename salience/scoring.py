"""
Per-cell feature scoring and binarization.

Two interchangeable scoring rules, both pure functions of the sampled grid,
the cell coordinates and the frame counter:

  edge      score = clamp(edge strength, ceiling); seeks textured / contour
            cells.
  variance  score = local std * variance_weight - edge * edge_weight
            (+ attraction inside the brightness band); prefers busy but
            directionless cells.

Edge strength is the mean absolute luminance step to the right and lower
neighbours that exist; steps below ``edge_floor`` count as zero.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from salience.config import ScoreConfig
from salience.errors import BufferShapeError


@dataclass
class ScoreResult:
    scores: np.ndarray            # (gh, gw) float32
    seed: Tuple[int, int]         # (x, y) of the first maximum in raster order
    seed_score: float


def luminance(rgba: np.ndarray) -> np.ndarray:
    return rgba[..., :3].astype(np.float32).sum(axis=2) / 3.0


def edge_strength(lum: np.ndarray) -> np.ndarray:
    total = np.zeros_like(lum)
    count = np.zeros_like(lum)
    if lum.shape[1] > 1:
        total[:, :-1] += np.abs(lum[:, :-1] - lum[:, 1:])
        count[:, :-1] += 1.0
    if lum.shape[0] > 1:
        total[:-1, :] += np.abs(lum[:-1, :] - lum[1:, :])
        count[:-1, :] += 1.0
    return np.divide(total, count, out=np.zeros_like(total), where=count > 0)


def local_std(lum: np.ndarray) -> np.ndarray:
    """Std of luminance over each cell and its right/lower neighbours."""
    s1 = lum.copy()
    s2 = lum * lum
    n = np.ones_like(lum)
    if lum.shape[1] > 1:
        right = lum[:, 1:]
        s1[:, :-1] += right
        s2[:, :-1] += right * right
        n[:, :-1] += 1.0
    if lum.shape[0] > 1:
        down = lum[1:, :]
        s1[:-1, :] += down
        s2[:-1, :] += down * down
        n[:-1, :] += 1.0
    mean = s1 / n
    return np.sqrt(np.maximum(s2 / n - mean * mean, 0.0))


def liveness_noise(width: int, height: int, frame: int,
                   weight: float, seed: float = 0.0) -> np.ndarray:
    """Smooth periodic jitter; deterministic for a given (frame, seed)."""
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float64)
    u = xs * 0.1 + ys * 0.1 + frame * 0.05 + seed
    return (np.sin(u * 10.0) * np.cos(u * 23.0) * weight).astype(np.float32)


class FeatureScorer:
    def __init__(self, config: ScoreConfig):
        self._cfg = config

    def score(self, rgba: np.ndarray, frame: int,
              out: Optional[np.ndarray] = None) -> ScoreResult:
        if rgba.ndim != 3 or rgba.shape[2] < 3:
            raise BufferShapeError(f"Expected an (h, w, 4) pixel buffer, got {rgba.shape}")
        cfg = self._cfg
        gh, gw = rgba.shape[:2]

        lum = luminance(rgba)
        edge = edge_strength(lum)
        edge[edge < cfg.edge_floor] = 0.0

        if cfg.rule == "variance":
            scores = local_std(lum) * cfg.variance_weight - edge * cfg.edge_weight
            if cfg.attraction_bonus:
                band = (lum > cfg.bright_low) & (lum < cfg.bright_high)
                scores += band * np.float32(cfg.attraction_bonus)
        else:
            scores = np.minimum(edge, cfg.edge_ceiling)

        if cfg.noise_weight:
            scores = scores + liveness_noise(gw, gh, frame, cfg.noise_weight, cfg.noise_seed)

        if out is None:
            out = np.empty((gh, gw), dtype=np.float32)
        elif out.shape != (gh, gw):
            raise BufferShapeError(f"Score buffer has shape {out.shape}, expected {(gh, gw)}")
        out[...] = scores

        flat = int(np.argmax(out))
        seed_y, seed_x = divmod(flat, gw)
        return ScoreResult(scores=out, seed=(seed_x, seed_y), seed_score=float(out.flat[flat]))


def binarize(scores: np.ndarray, threshold: float) -> np.ndarray:
    """Active where score > threshold."""
    return scores > threshold
