"""
salience

Grid-based visual salience tracker: scores a coarse analysis grid for
"interesting" cells, extracts the best connected region and follows it as a
single smoothed, identity-labelled box.
"""

from salience.config import SalienceConfig, get_profile, load_config
from salience.errors import BufferShapeError, ConfigError, SalienceError
from salience.pipeline import DetectorState, FrameAnalysis, SalienceDetector, analyze_frame, detect
from salience.tracker import LOCKED, SCANNING, TrackResult, TrackState

__all__ = [
    "SalienceConfig", "get_profile", "load_config",
    "SalienceError", "ConfigError", "BufferShapeError",
    "DetectorState", "FrameAnalysis", "SalienceDetector", "analyze_frame", "detect",
    "LOCKED", "SCANNING", "TrackResult", "TrackState",
]

__version__ = "1.0.0"
