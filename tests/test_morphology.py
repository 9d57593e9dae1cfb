import numpy as np
import pytest

from salience.labeling import label_components
from salience.morphology import close, dilate, erode, remove_isolated


def _mask(h, w, cells):
    m = np.zeros((h, w), dtype=bool)
    for x, y in cells:
        m[y, x] = True
    return m


def test_dilate_single_cell_gives_cross():
    out = dilate(_mask(5, 5, [(2, 2)]))
    expected = _mask(5, 5, [(2, 2), (1, 2), (3, 2), (2, 1), (2, 3)])
    assert np.array_equal(out, expected)


def test_erode_clears_border_cells():
    out = erode(np.ones((5, 5), dtype=bool))
    assert out[1:4, 1:4].all()
    assert out.sum() == 9


def test_erode_tiny_grid_is_empty():
    assert not erode(np.ones((2, 6), dtype=bool)).any()


def test_close_removes_isolated_cell():
    assert not close(_mask(7, 7, [(3, 3)])).any()


def test_close_keeps_solid_block():
    m = np.zeros((7, 7), dtype=bool)
    m[2:5, 2:5] = True
    assert np.array_equal(close(m), m)


def test_close_does_not_touch_input():
    m = _mask(7, 7, [(3, 3)])
    before = m.copy()
    close(m)
    assert np.array_equal(m, before)


def test_close_bridges_one_cell_gap():
    m = np.zeros((7, 9), dtype=bool)
    m[2:5, 1:4] = True
    m[2:5, 5:8] = True
    assert len(label_components(m)) == 2

    closed = close(m)
    assert closed[3, 4]
    assert len(label_components(closed)) == 1


def test_remove_isolated_keeps_pairs():
    m = _mask(5, 5, [(1, 1), (2, 1), (4, 4)])
    out = remove_isolated(m)
    assert out[1, 1] and out[1, 2]
    assert not out[4, 4]


def _cross_rule(m, combine):
    """Cell plus 4 neighbours, cells outside the grid inactive."""
    p = np.pad(m, 1, constant_values=False)
    parts = [p[1:-1, 1:-1], p[:-2, 1:-1], p[2:, 1:-1], p[1:-1, :-2], p[1:-1, 2:]]
    return combine.reduce(np.stack(parts), axis=0)


@pytest.mark.parametrize("seed", [0, 1, 2])
def test_dilate_and_erode_follow_cross_rule(seed):
    m = np.random.default_rng(seed).random((9, 13)) > 0.4
    assert np.array_equal(dilate(m), _cross_rule(m, np.logical_or))
    assert np.array_equal(erode(m), _cross_rule(m, np.logical_and))


def test_erode_clears_full_border_row_and_column():
    out = erode(np.ones((4, 6), dtype=bool))
    assert not out[0].any() and not out[-1].any()
    assert not out[:, 0].any() and not out[:, -1].any()
    assert out[1:3, 1:5].all()
