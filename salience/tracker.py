"""
Temporal tracker: SCANNING / LOCKED state machine.

  SCANNING -> LOCKED    first winner; the box snaps to it, new identity.
  LOCKED   -> LOCKED    box eases toward each winner by factor t; when the
                        winner centroid jumps more than ``renewal_distance``
                        from the previous winner centroid, a new identity
                        takes the same slot.
  LOCKED   -> SCANNING  the first frame without a winner; no grace period.

The tracker itself only holds configuration. Everything that survives from
one frame to the next lives in a ``TrackState`` passed in by the caller.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from loguru import logger

from salience.config import TrackConfig
from salience.grid import Grid
from salience.labeling import Blob


SCANNING = "SCANNING"
LOCKED = "LOCKED"

Box = Tuple[float, float, float, float]  # x, y, w, h (normalized)


def format_identity(counter: int) -> str:
    return f"Object_{counter:02d}"


def box_center(box: Box) -> Tuple[float, float]:
    x, y, w, h = box
    return (x + w / 2.0, y + h / 2.0)


def _distance(a: Tuple[float, float], b: Tuple[float, float]) -> float:
    return math.hypot(a[0] - b[0], a[1] - b[1])


@dataclass
class TrackResult:
    state: str
    x: Optional[float] = None
    y: Optional[float] = None
    w: Optional[float] = None
    h: Optional[float] = None
    id: Optional[str] = None
    score: Optional[float] = None

    @property
    def locked(self) -> bool:
        return self.state == LOCKED

    @property
    def box(self) -> Optional[Box]:
        if not self.locked:
            return None
        return (self.x, self.y, self.w, self.h)

    def to_dict(self) -> Dict[str, Any]:
        if not self.locked:
            return {"state": SCANNING}
        out: Dict[str, Any] = {
            "state": LOCKED,
            "x": self.x, "y": self.y, "w": self.w, "h": self.h,
            "id": self.id,
        }
        if self.score is not None:
            out["score"] = self.score
        return out


@dataclass
class TrackState:
    status: str = SCANNING
    rect: Optional[Box] = None
    identity: int = 0                                  # monotonic
    last_centroid: Optional[Tuple[float, float]] = None
    boredom: int = 0

    @property
    def label(self) -> str:
        return format_identity(self.identity)

    def drop_region(self) -> None:
        self.status = SCANNING
        self.rect = None
        self.last_centroid = None
        self.boredom = 0


class TemporalTracker:
    def __init__(self, config: TrackConfig):
        self._cfg = config

    def update(self, state: TrackState, winner: Optional[Blob], grid: Grid) -> TrackResult:
        if winner is None:
            return self.update_box(state, None)
        box = grid.normalize_box(winner.min_x, winner.min_y, winner.max_x, winner.max_y)
        centroid = ((winner.centroid[0] + 0.5) / grid.width,
                    (winner.centroid[1] + 0.5) / grid.height)
        return self.update_box(state, box, centroid, winner.score)

    def update_box(
        self,
        state: TrackState,
        target: Optional[Box],
        centroid: Optional[Tuple[float, float]] = None,
        score: Optional[float] = None,
    ) -> TrackResult:
        """Advance ``state`` by one frame given the winner's normalized box."""
        cfg = self._cfg

        if target is None:
            if state.status == LOCKED:
                logger.debug(f"{state.label} lost, back to scanning")
            state.drop_region()
            return TrackResult(SCANNING)

        if centroid is None:
            centroid = box_center(target)

        if state.status != LOCKED or state.rect is None:
            state.status = LOCKED
            state.rect = tuple(target)
            state.identity += 1
            state.boredom = 0
            logger.debug(f"Locked {state.label} at {_fmt_box(target)}")
        else:
            t = cfg.smoothing
            state.rect = tuple(s + (g - s) * t for s, g in zip(state.rect, target))

            step = (None if state.last_centroid is None
                    else _distance(state.last_centroid, centroid))
            if step is not None and step > cfg.renewal_distance:
                self._renew(state, "jump")
            elif cfg.boredom_frames > 0:
                moved = step is None or step >= cfg.boredom_epsilon
                state.boredom = 0 if moved else state.boredom + 1
                if state.boredom >= cfg.boredom_frames:
                    self._renew(state, "boredom")

        state.last_centroid = centroid
        x, y, w, h = state.rect
        return TrackResult(LOCKED, x, y, w, h, id=state.label, score=score)

    @staticmethod
    def _renew(state: TrackState, reason: str) -> None:
        old = state.label
        state.identity += 1
        state.boredom = 0
        logger.debug(f"Identity renewed ({reason}): {old} -> {state.label}")


def _fmt_box(box: Box) -> str:
    return "(" + ", ".join(f"{v:.3f}" for v in box) + ")"
