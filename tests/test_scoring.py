import numpy as np
import pytest

from salience.config import ScoreConfig
from salience.errors import BufferShapeError
from salience.scoring import (
    FeatureScorer,
    binarize,
    edge_strength,
    liveness_noise,
    local_std,
    luminance,
)


def test_luminance_is_channel_mean():
    rgba = np.array([[[30, 60, 90, 255]]], dtype=np.uint8)
    assert luminance(rgba)[0, 0] == pytest.approx(60.0)


def test_edge_strength_averages_available_neighbours():
    lum = np.array([[0, 10], [20, 0]], dtype=np.float32)
    edge = edge_strength(lum)
    assert edge[0, 0] == pytest.approx(15.0)   # right 10, down 20
    assert edge[0, 1] == pytest.approx(10.0)   # down only
    assert edge[1, 0] == pytest.approx(20.0)   # right only
    assert edge[1, 1] == 0.0                   # no neighbours


def test_edge_strength_single_cell_grid():
    assert edge_strength(np.array([[42.0]], dtype=np.float32))[0, 0] == 0.0


def test_local_std_flat_region_is_zero():
    lum = np.full((4, 5), 77.0, dtype=np.float32)
    assert np.allclose(local_std(lum), 0.0)


def test_local_std_three_samples():
    lum = np.array([[0, 30], [60, 0]], dtype=np.float32)
    # cell (0, 0) sees 0, 30 and 60
    assert local_std(lum)[0, 0] == pytest.approx(np.std([0.0, 30.0, 60.0]), rel=1e-5)


def test_edge_rule_clamps_at_ceiling(gray_rgba):
    rgba = gray_rgba([[0, 200, 0]])
    res = FeatureScorer(ScoreConfig(rule="edge", edge_ceiling=50.0)).score(rgba, frame=1)
    assert res.scores[0, 0] == pytest.approx(50.0)
    assert res.scores[0, 2] == 0.0


def test_edge_floor_drops_weak_steps(gray_rgba):
    rgba = gray_rgba([[0, 10, 100]])
    res = FeatureScorer(ScoreConfig(rule="edge", edge_floor=20.0)).score(rgba, frame=1)
    assert res.scores[0, 0] == 0.0
    assert res.scores[0, 1] == pytest.approx(90.0)


def test_variance_rule_attraction_band(gray_rgba):
    cfg = ScoreConfig(rule="variance", attraction_bonus=10.0, bright_low=20.0, bright_high=230.0)
    inside = FeatureScorer(cfg).score(gray_rgba(np.full((3, 3), 128)), frame=1)
    outside = FeatureScorer(cfg).score(gray_rgba(np.full((3, 3), 250)), frame=1)
    assert np.allclose(inside.scores, 10.0)
    assert np.allclose(outside.scores, 0.0)


def test_variance_rule_penalises_edges(gray_rgba):
    cfg = ScoreConfig(rule="variance", variance_weight=1.0, edge_weight=2.0, edge_floor=0.0)
    res = FeatureScorer(cfg).score(gray_rgba([[0, 90]]), frame=1)
    # std of {0, 90} is 45, edge 90 -> 45 - 180
    assert res.scores[0, 0] == pytest.approx(-135.0, rel=1e-5)


def test_noise_is_deterministic_per_frame_and_seed():
    a = liveness_noise(6, 4, frame=3, weight=15.0)
    b = liveness_noise(6, 4, frame=3, weight=15.0)
    c = liveness_noise(6, 4, frame=4, weight=15.0)
    d = liveness_noise(6, 4, frame=3, weight=15.0, seed=1.7)
    assert np.array_equal(a, b)
    assert not np.array_equal(a, c)
    assert not np.array_equal(a, d)
    assert np.abs(a).max() <= 15.0 + 1e-5


def test_noise_changes_scores_but_not_between_identical_calls(gray_rgba):
    rgba = gray_rgba(np.full((4, 4), 100))
    scorer = FeatureScorer(ScoreConfig(noise_weight=5.0))
    first = scorer.score(rgba, frame=7).scores.copy()
    second = scorer.score(rgba, frame=7).scores.copy()
    assert np.array_equal(first, second)
    assert np.abs(first).max() > 0.0


def test_seed_is_first_maximum_in_raster_order(gray_rgba):
    g = np.zeros((3, 4), dtype=np.uint8)
    g[1, 3] = 200   # (3, 0) and (3, 1) both see a lone 200 step
    res = FeatureScorer(ScoreConfig()).score(gray_rgba(g), frame=1)
    assert res.seed == (3, 0)
    assert res.seed_score == pytest.approx(200.0)
    assert res.scores[1, 3] == pytest.approx(200.0)
    assert res.scores[1, 2] == pytest.approx(100.0)


def test_scores_written_into_supplied_buffer(gray_rgba):
    out = np.full((2, 3), -1.0, dtype=np.float32)
    res = FeatureScorer(ScoreConfig()).score(gray_rgba(np.zeros((2, 3))), frame=1, out=out)
    assert res.scores is out
    assert np.all(out == 0.0)


def test_mismatched_score_buffer_raises(gray_rgba):
    with pytest.raises(BufferShapeError):
        FeatureScorer(ScoreConfig()).score(gray_rgba(np.zeros((2, 3))), frame=1,
                                           out=np.zeros((3, 2), dtype=np.float32))


def test_binarize_is_strict():
    scores = np.array([[29.9, 30.0, 30.1]], dtype=np.float32)
    assert binarize(scores, 30.0).tolist() == [[False, False, True]]


def test_binarize_monotone_in_threshold():
    scores = np.random.default_rng(0).normal(20.0, 15.0, size=(24, 32)).astype(np.float32)
    counts = [int(binarize(scores, t).sum()) for t in np.linspace(-30, 70, 41)]
    assert all(a >= b for a, b in zip(counts, counts[1:]))
