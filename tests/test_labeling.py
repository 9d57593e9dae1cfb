import numpy as np
import pytest

from salience.errors import BufferShapeError
from salience.labeling import label_components
from salience.morphology import close


def test_known_rectangle():
    mask = np.zeros((6, 8), dtype=bool)     # gh=6, gw=8
    mask[2:4, 2:5] = True
    blobs = label_components(mask)
    assert len(blobs) == 1
    b = blobs[0]
    assert (b.min_x, b.max_x, b.min_y, b.max_y, b.cell_count) == (2, 4, 2, 3, 6)
    assert b.centroid == pytest.approx((3.0, 2.5))


def test_diagonal_cells_are_separate_blobs():
    mask = np.zeros((3, 3), dtype=bool)
    mask[0, 0] = mask[1, 1] = mask[2, 2] = True
    assert len(label_components(mask)) == 3


def test_blobs_come_out_in_raster_order():
    mask = np.zeros((5, 5), dtype=bool)
    mask[3, 0] = True
    mask[0, 4] = True
    mask[1, 2] = True
    firsts = [(b.min_y, b.min_x) for b in label_components(mask)]
    assert firsts == [(0, 4), (1, 2), (3, 0)]


@pytest.mark.parametrize("seed", [0, 1, 2, 3])
def test_partition_and_invariants_on_random_masks(seed):
    raw = np.random.default_rng(seed).random((18, 24)) > 0.55
    for mask in (raw, close(raw)):
        blobs = label_components(mask)
        assert sum(b.cell_count for b in blobs) == int(mask.sum())
        for b in blobs:
            assert 0 <= b.min_x <= b.max_x < 24
            assert 0 <= b.min_y <= b.max_y < 18
            assert 1 <= b.cell_count <= b.bbox_area
            assert b.min_x <= b.centroid[0] <= b.max_x
            assert b.min_y <= b.centroid[1] <= b.max_y


def test_mean_score_of_members():
    mask = np.zeros((2, 3), dtype=bool)
    mask[0, :2] = True
    scores = np.array([[10.0, 30.0, 99.0], [99.0, 99.0, 99.0]], dtype=np.float32)
    (blob,) = label_components(mask, scores)
    assert blob.score == pytest.approx(20.0)


def test_reuses_and_clears_visited_bitmap():
    mask = np.ones((4, 4), dtype=bool)
    visited = np.ones(16, dtype=np.uint8)
    assert label_components(mask, visited=visited)[0].cell_count == 16


def test_visited_size_mismatch_raises():
    with pytest.raises(BufferShapeError):
        label_components(np.ones((4, 4), dtype=bool), visited=np.zeros(10, dtype=np.uint8))


def test_large_grid_without_recursion_limit():
    blobs = label_components(np.ones((250, 250), dtype=bool))
    assert len(blobs) == 1
    assert blobs[0].cell_count == 250 * 250
