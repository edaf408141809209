"""N-tuple feature extraction and value estimation over a WeightStore."""

from typing import Sequence

import numpy as np

from board import Board, MAX_RANK
from weight_table import WeightStore

# Fixed 4-cell patterns over row-major positions; pattern k reads table k.
PATTERNS = np.array([
    # rows
    [0, 1, 2, 3],
    [4, 5, 6, 7],
    [8, 9, 10, 11],
    [12, 13, 14, 15],
    # columns
    [0, 4, 8, 12],
    [1, 5, 9, 13],
    [2, 6, 10, 14],
    [3, 7, 11, 15],
], dtype=np.int64)

RADIX = 15
# Big-endian radix-15 place values: 3375, 225, 15, 1
PLACE_VALUES = RADIX ** np.arange(3, -1, -1, dtype=np.int64)


def _pattern_ranks(board: Board, patterns: np.ndarray) -> np.ndarray:
    ranks = board.ranks()[patterns]
    if ranks.min() < 0 or ranks.max() > MAX_RANK:
        raise ValueError(
            f"Tile rank out of range [0, {MAX_RANK}] in pattern cells: {ranks.tolist()}"
        )
    return ranks.astype(np.int64)


def feature_index(board: Board, pattern: Sequence[int]) -> int:
    """Radix-15 index of the ranks at the 4 pattern positions, in [0, 15^4)."""
    ranks = _pattern_ranks(board, np.asarray(pattern, dtype=np.int64))
    return int(ranks @ PLACE_VALUES)


def feature_indices(board: Board) -> np.ndarray:
    """Index into each of the 8 tables, in pattern order."""
    return _pattern_ranks(board, PATTERNS) @ PLACE_VALUES


def value_of_indices(weights: WeightStore, indices: Sequence[int]) -> float:
    """Sum of the table entries addressed by precomputed indices."""
    return float(sum(float(weights[k][idx]) for k, idx in enumerate(indices)))


def value(weights: WeightStore, board: Board) -> float:
    """Estimated value of a board: sum of one entry per table."""
    return value_of_indices(weights, feature_indices(board))
