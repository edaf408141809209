import numpy as np
import pytest

from board import Board
from ntuple_network import PATTERNS, feature_index, feature_indices, value, value_of_indices
from weight_table import WeightStore, TABLE_SIZE


def sample_board():
    grid = np.zeros((4, 4), dtype=np.int32)
    grid[0] = [1, 2, 3, 4]
    return Board(grid)


def test_radix_15_index():
    b = sample_board()
    assert feature_index(b, [0, 1, 2, 3]) == 3375 * 1 + 225 * 2 + 15 * 3 + 4
    assert feature_index(b, [3, 2, 1, 0]) == 3375 * 4 + 225 * 3 + 15 * 2 + 1


def test_indices_follow_pattern_order():
    indices = feature_indices(sample_board())
    assert indices.tolist() == [3874, 0, 0, 0, 3375, 6750, 10125, 13500]


def test_indices_stay_in_table_range():
    rng = np.random.RandomState(0)
    for _ in range(50):
        b = Board(rng.randint(0, 15, size=(4, 4)))
        indices = feature_indices(b)
        assert len(indices) == len(PATTERNS) == 8
        assert all(0 <= idx < TABLE_SIZE for idx in indices)

    assert feature_indices(Board(np.full((4, 4), 14))).tolist() == [TABLE_SIZE - 1] * 8


def test_out_of_range_rank_is_rejected():
    b = sample_board()
    b[7] = 15
    with pytest.raises(ValueError):
        feature_indices(b)
    # patterns that do not read the bad cell are unaffected
    assert feature_index(b, [0, 1, 2, 3]) == 3874


def test_value_is_sum_of_table_entries():
    weights = WeightStore.init_tables()
    b = sample_board()
    weights.set(0, 3874, 1.5)
    weights.set(4, 3375, -0.5)
    assert value(weights, b) == pytest.approx(1.0)

    weights.add(5, 6750, 2.0)
    assert value(weights, b) == pytest.approx(3.0)
    assert value_of_indices(weights, feature_indices(b)) == value(weights, b)


def test_unrelated_entries_do_not_change_value():
    weights = WeightStore.init_tables()
    b = sample_board()
    weights.set(0, 3875, 10.0)
    assert value(weights, b) == 0.0
