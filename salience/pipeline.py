"""
Per-frame detection cycle.

  sample -> score -> binarize -> close -> label -> select -> track

Everything that must survive between frames (frame counter, grid buffers,
track state, last result) is kept in a ``DetectorState`` that the caller
owns and passes into each call. ``SalienceDetector`` bundles one config with
one state for the common single-camera case.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
from loguru import logger

from salience.config import SalienceConfig, get_profile
from salience.errors import BufferShapeError
from salience.grid import FrameBuffers, FrameSampler, Grid, check_rgba, ensure_buffers
from salience.labeling import Blob, label_components
from salience.morphology import close
from salience.scoring import FeatureScorer, binarize
from salience.selection import filter_blobs, grow_from_seed, pick_largest
from salience.tracker import SCANNING, TemporalTracker, TrackResult, TrackState


@dataclass
class DetectorState:
    frame: int = 0
    grid: Optional[Grid] = None
    buffers: Optional[FrameBuffers] = None
    track: TrackState = field(default_factory=TrackState)
    last_result: TrackResult = field(default_factory=lambda: TrackResult(SCANNING))


@dataclass
class FrameAnalysis:
    """Everything computed for one frame; arrays are private copies."""

    grid: Grid
    frame: int
    scores: np.ndarray
    seed: Tuple[int, int]
    seed_score: float
    active: np.ndarray
    cleaned: np.ndarray
    blobs: List[Blob]
    candidates: List[Blob]
    winner: Optional[Blob]
    result: TrackResult


def analyze_frame(rgba: np.ndarray, config: SalienceConfig, state: DetectorState) -> FrameAnalysis:
    """Run one full cycle on an already-sampled (gh, gw, 4) RGBA grid."""
    if rgba.ndim != 3 or rgba.shape[0] == 0 or rgba.shape[1] == 0:
        raise BufferShapeError(f"Cannot analyse pixel buffer of shape {rgba.shape}")
    grid = Grid(int(rgba.shape[1]), int(rgba.shape[0]))
    check_rgba(rgba, grid)

    if state.grid != grid:
        if state.grid is not None:
            logger.info(f"Analysis grid changed {state.grid.width}x{state.grid.height} "
                        f"-> {grid.width}x{grid.height}")
        state.grid = grid
    state.buffers = ensure_buffers(state.buffers, grid)
    state.frame += 1

    scored = FeatureScorer(config.score).score(rgba, state.frame, out=state.buffers.scores)

    if config.blob.strategy == "seed_flood":
        active = binarize(scored.scores, config.blob.cluster_threshold)
        cleaned = active.copy()
        grown = grow_from_seed(scored.scores, scored.seed, scored.seed_score,
                               config.blob, visited=state.buffers.visited)
        blobs = [grown] if grown is not None else []
    else:
        active = binarize(scored.scores, config.score.threshold)
        if config.morphology.enabled and config.morphology.iterations > 0:
            cleaned = close(active, config.morphology.iterations)
        else:
            cleaned = active.copy()
        blobs = label_components(cleaned, scored.scores, visited=state.buffers.visited)

    candidates = filter_blobs(blobs, grid, config.blob)
    winner = pick_largest(candidates)
    result = TemporalTracker(config.track).update(state.track, winner, grid)
    state.last_result = result

    return FrameAnalysis(
        grid=grid,
        frame=state.frame,
        scores=scored.scores.copy(),
        seed=scored.seed,
        seed_score=scored.seed_score,
        active=active,
        cleaned=cleaned,
        blobs=blobs,
        candidates=candidates,
        winner=winner,
        result=result,
    )


def analyze(source, config: SalienceConfig, state: DetectorState) -> Optional[FrameAnalysis]:
    """Sample ``source`` and analyse it; None when the source is not ready."""
    sampled = FrameSampler(config.grid).sample(source)
    if sampled is None:
        return None
    _, rgba = sampled
    return analyze_frame(rgba, config, state)


def not_ready_result(config: SalienceConfig, state: DetectorState) -> TrackResult:
    """Output for a tick whose source had no frame; the state is left alone."""
    logger.debug("Source not ready, frame skipped")
    if config.track.hold_on_not_ready:
        return state.last_result
    return TrackResult(SCANNING)


def detect(source, config: SalienceConfig, state: DetectorState) -> TrackResult:
    analysis = analyze(source, config, state)
    if analysis is None:
        return not_ready_result(config, state)
    return analysis.result


class SalienceDetector:
    """One config + one state: the usual single-camera setup."""

    def __init__(self, config: Optional[SalienceConfig] = None, profile: str = "edge"):
        self.config = (config if config is not None else get_profile(profile)).validate()
        self.state = DetectorState()

    def detect(self, source) -> TrackResult:
        return detect(source, self.config, self.state)

    def analyze(self, source) -> Optional[FrameAnalysis]:
        return analyze(source, self.config, self.state)

    def process(self, rgba: np.ndarray) -> TrackResult:
        return analyze_frame(rgba, self.config, self.state).result

    def reset(self) -> None:
        self.state = DetectorState()
