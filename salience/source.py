"""
Video sources consumed by the pipeline.

A source exposes a ready flag, its native frame size and a way to render the
current frame into an RGBA buffer of any size. Acquisition itself (device
choice, permissions) is left to OpenCV.
"""

from typing import Optional, Protocol, Union, runtime_checkable

import cv2
import numpy as np
from loguru import logger


@runtime_checkable
class VideoSource(Protocol):
    """What the frame sampler needs from a video source."""

    @property
    def ready(self) -> bool:  # pragma: no cover - interface
        ...

    @property
    def width(self) -> int:  # pragma: no cover - interface
        ...

    @property
    def height(self) -> int:  # pragma: no cover - interface
        ...

    def sample(self, width: int, height: int) -> np.ndarray:  # pragma: no cover - interface
        """Current frame resampled to (height, width, 4) uint8 RGBA."""
        ...


_TO_RGBA = {
    "bgr": cv2.COLOR_BGR2RGBA,
    "rgb": cv2.COLOR_RGB2RGBA,
    "gray": cv2.COLOR_GRAY2RGBA,
}


def resample_rgba(frame: np.ndarray, width: int, height: int, color: str = "bgr") -> np.ndarray:
    """Area-resample ``frame`` to ``width x height`` and convert to RGBA."""
    if frame.shape[1] != width or frame.shape[0] != height:
        frame = cv2.resize(frame, (width, height), interpolation=cv2.INTER_AREA)
    if color == "rgba":
        return np.ascontiguousarray(frame, dtype=np.uint8)
    if frame.ndim == 2:
        color = "gray"
    return cv2.cvtColor(frame, _TO_RGBA[color])


class ArraySource:
    """A still frame held in memory (tests, tuner, single images)."""

    def __init__(self, frame: Optional[np.ndarray] = None, color: str = "bgr"):
        if color not in _TO_RGBA and color != "rgba":
            raise ValueError(f"Unknown color order: {color}")
        self.color = color
        self.frame = frame

    @property
    def ready(self) -> bool:
        return self.frame is not None and self.frame.size > 0

    @property
    def width(self) -> int:
        return 0 if self.frame is None else int(self.frame.shape[1])

    @property
    def height(self) -> int:
        return 0 if self.frame is None else int(self.frame.shape[0])

    def sample(self, width: int, height: int) -> np.ndarray:
        return resample_rgba(self.frame, width, height, self.color)


class CaptureSource:
    """``cv2.VideoCapture`` wrapper; call ``read()`` once per tick."""

    def __init__(self, target: Union[str, int]):
        self._target = target
        self._cap = cv2.VideoCapture(target)
        self._frame: Optional[np.ndarray] = None
        if not self._cap.isOpened():
            logger.warning(f"Cannot open video source: {target}")

    @property
    def opened(self) -> bool:
        return self._cap.isOpened()

    @property
    def frame(self) -> Optional[np.ndarray]:
        """Last BGR frame at native resolution."""
        return self._frame

    @property
    def fps(self) -> float:
        return self._cap.get(cv2.CAP_PROP_FPS) or 25.0

    @property
    def frame_count(self) -> int:
        return int(self._cap.get(cv2.CAP_PROP_FRAME_COUNT))

    @property
    def ready(self) -> bool:
        return self._frame is not None

    @property
    def width(self) -> int:
        if self._frame is not None:
            return int(self._frame.shape[1])
        return int(self._cap.get(cv2.CAP_PROP_FRAME_WIDTH))

    @property
    def height(self) -> int:
        if self._frame is not None:
            return int(self._frame.shape[0])
        return int(self._cap.get(cv2.CAP_PROP_FRAME_HEIGHT))

    def read(self) -> bool:
        ret, frame = self._cap.read()
        self._frame = frame if ret else None
        return ret

    def sample(self, width: int, height: int) -> np.ndarray:
        return resample_rgba(self._frame, width, height, "bgr")

    def release(self) -> None:
        self._cap.release()

    def __enter__(self) -> "CaptureSource":
        return self

    def __exit__(self, *exc) -> None:
        self.release()
