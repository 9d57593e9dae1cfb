"""
Configuration for the salience tracker.

Every tunable lives in a small dataclass section; ``SalienceConfig`` composes
them. Three built-in profiles cover the scoring/clustering variants:

  edge      Gradient-seeking score, cell-size grid, morphology + labeling.
  variance  Edge-aversive variance score, otherwise like ``edge``.
  classic   Fixed 32-cell grid, variance score with brightness attraction
            and liveness noise, flood fill grown from the best seed cell,
            no aspect filter, snap-to-target smoothing.

Profile file format (JSON, hand-editable)
-----------------------------------------
  {
    "profile": "edge",
    "grid":  {"cell_size": 24},
    "blob":  {"min_cluster_size": 6, "use_aspect_filter": false},
    "track": {"smoothing": 0.2}
  }
Sections not present keep the base profile's values.
"""

import copy
import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

from loguru import logger

from salience.errors import ConfigError


GRID_MODES = ("cell", "fixed_width")
SCORE_RULES = ("edge", "variance")
CLUSTER_STRATEGIES = ("components", "seed_flood")


@dataclass
class GridConfig:
    mode: str = "cell"
    cell_size: int = 32        # source pixels per grid cell ("cell" mode)
    width_cells: int = 32      # grid width ("fixed_width" mode)


@dataclass
class ScoreConfig:
    rule: str = "edge"
    threshold: float = 30.0    # binarization cutoff
    edge_floor: float = 0.0    # edge strength below this counts as zero
    edge_ceiling: float = 255.0
    variance_weight: float = 1.0
    edge_weight: float = 2.0
    attraction_bonus: float = 0.0
    bright_low: float = 20.0
    bright_high: float = 230.0
    noise_weight: float = 0.0
    noise_seed: float = 0.0


@dataclass
class MorphologyConfig:
    enabled: bool = True
    iterations: int = 1


@dataclass
class BlobConfig:
    strategy: str = "components"
    min_cluster_size: int = 10
    min_cluster_fraction: Optional[float] = None
    max_cluster_fraction: float = 0.4
    use_aspect_filter: bool = True
    min_aspect: float = 0.2
    max_aspect: float = 5.0
    # seed_flood only
    lock_threshold: float = 40.0
    cluster_threshold: float = 30.0


@dataclass
class TrackConfig:
    smoothing: float = 0.1
    renewal_distance: float = 0.25   # normalized units
    boredom_frames: int = 0          # 0 disables
    boredom_epsilon: float = 0.01
    hold_on_not_ready: bool = False


_SECTIONS = {
    "grid": GridConfig,
    "score": ScoreConfig,
    "morphology": MorphologyConfig,
    "blob": BlobConfig,
    "track": TrackConfig,
}


@dataclass
class SalienceConfig:
    grid: GridConfig = field(default_factory=GridConfig)
    score: ScoreConfig = field(default_factory=ScoreConfig)
    morphology: MorphologyConfig = field(default_factory=MorphologyConfig)
    blob: BlobConfig = field(default_factory=BlobConfig)
    track: TrackConfig = field(default_factory=TrackConfig)

    def validate(self) -> "SalienceConfig":
        """Raise ConfigError on the first out-of-range value; return self."""
        g, s, m, b, t = self.grid, self.score, self.morphology, self.blob, self.track
        if g.mode not in GRID_MODES:
            raise ConfigError(f"Unknown grid mode: {g.mode!r}")
        if g.cell_size < 1 or g.width_cells < 1:
            raise ConfigError("Grid cell_size and width_cells must be >= 1")
        if s.rule not in SCORE_RULES:
            raise ConfigError(f"Unknown score rule: {s.rule!r}")
        if s.edge_ceiling < s.edge_floor:
            raise ConfigError("edge_ceiling must be >= edge_floor")
        if m.iterations < 0:
            raise ConfigError("Morphology iterations must be >= 0")
        if b.strategy not in CLUSTER_STRATEGIES:
            raise ConfigError(f"Unknown cluster strategy: {b.strategy!r}")
        if b.min_cluster_size < 1:
            raise ConfigError("min_cluster_size must be >= 1")
        if b.min_cluster_fraction is not None and not 0.0 < b.min_cluster_fraction <= 1.0:
            raise ConfigError("min_cluster_fraction must be in (0, 1]")
        if not 0.0 < b.max_cluster_fraction <= 1.0:
            raise ConfigError("max_cluster_fraction must be in (0, 1]")
        if b.min_aspect <= 0.0 or b.min_aspect > b.max_aspect:
            raise ConfigError("Aspect bounds must satisfy 0 < min_aspect <= max_aspect")
        if not 0.0 < t.smoothing <= 1.0:
            raise ConfigError(f"Smoothing factor must be in (0, 1], got {t.smoothing}")
        if t.renewal_distance < 0.0:
            raise ConfigError("renewal_distance must be >= 0")
        if t.boredom_frames < 0 or t.boredom_epsilon < 0.0:
            raise ConfigError("Boredom parameters must be >= 0")
        return self

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------

PROFILES: Dict[str, SalienceConfig] = {
    "edge": SalienceConfig(),
    "variance": SalienceConfig(
        score=ScoreConfig(rule="variance", threshold=4.0, edge_floor=30.0,
                          variance_weight=1.0, edge_weight=2.0),
    ),
    "classic": SalienceConfig(
        grid=GridConfig(mode="fixed_width", width_cells=32),
        score=ScoreConfig(rule="variance", edge_floor=30.0, variance_weight=0.0,
                          edge_weight=2.0, attraction_bonus=10.0, noise_weight=15.0),
        blob=BlobConfig(strategy="seed_flood", min_cluster_size=1,
                        max_cluster_fraction=0.5, use_aspect_filter=False,
                        lock_threshold=20.0, cluster_threshold=15.0),
        track=TrackConfig(smoothing=1.0),
    ),
}


def get_profile(name: str = "edge") -> SalienceConfig:
    """Return a fresh copy of a built-in profile."""
    try:
        return copy.deepcopy(PROFILES[name])
    except KeyError:
        raise ConfigError(
            f"Unknown profile: {name!r} (choose from {', '.join(sorted(PROFILES))})"
        ) from None


def apply_overrides(config: SalienceConfig, overrides: Dict[str, Any]) -> SalienceConfig:
    """Overlay ``{"section": {"field": value}}`` onto a copy of ``config``."""
    merged = copy.deepcopy(config)
    for section_name, values in overrides.items():
        if section_name not in _SECTIONS:
            raise ConfigError(f"Unknown config section: {section_name!r}")
        if not isinstance(values, dict):
            raise ConfigError(f"Section {section_name!r} must be an object")
        section = getattr(merged, section_name)
        known = {f.name for f in fields(section)}
        for key, value in values.items():
            if key not in known:
                raise ConfigError(f"Unknown field {section_name}.{key}")
            setattr(section, key, value)
    return merged.validate()


def load_config(path: Union[str, Path]) -> SalienceConfig:
    """Load a JSON profile file. Returns the validated config."""
    p = Path(path)
    if not p.is_file():
        raise ConfigError(f"Config file not found: {p}")
    try:
        with open(p) as f:
            data = json.load(f)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in {p}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {p} must contain a JSON object")

    data = dict(data)
    base = get_profile(data.pop("profile", "edge"))
    config = apply_overrides(base, data)
    logger.info(f"Loaded config from {p}")
    return config


def save_config(config: SalienceConfig, path: Union[str, Path]) -> None:
    with open(path, "w") as f:
        json.dump(config.to_dict(), f, indent=2)
