"""
Threes-style 2048 board
This module holds the 4x4 rank grid and the one-step slide/merge rule used by
the learning agent and the Gymnasium environment.

Cells store tile ranks, not displayed values:
- 0 is empty, 1 and 2 are the basic tiles, 3 is the first mergeable tile
- rank r >= 3 displays as 3 * 2^(r-3) (3, 6, 12, ..., 6144 at rank 14)
"""

import logging
from typing import Tuple

import numpy as np

logger = logging.getLogger(__name__)

# Directions: 0=up, 1=right, 2=down, 3=left
UP, RIGHT, DOWN, LEFT = 0, 1, 2, 3
DIRECTION_NAMES = ["UP", "RIGHT", "DOWN", "LEFT"]

# Reward returned by slide/place when nothing could be done
ILLEGAL = -1

NUM_CELLS = 16
MAX_RANK = 14


def tile_value(rank: int) -> int:
    """Displayed value of a tile rank (0 for an empty cell)."""
    if rank <= 3:
        return int(rank)
    return 3 * 2 ** (int(rank) - 3)


class Board:
    """
    4x4 grid of tile ranks.

    Positions are row-major: position p is row p // 4, column p % 4.
    slide() mutates the grid and returns the merge reward, or ILLEGAL if the
    move changes nothing.
    """

    def __init__(self, grid=None):
        if grid is None:
            self.grid: np.ndarray = np.zeros((4, 4), dtype=np.int32)
        else:
            self.grid = np.array(grid, dtype=np.int32).reshape(4, 4)

    def __getitem__(self, pos: int) -> int:
        return int(self.grid.flat[pos])

    def __setitem__(self, pos: int, rank: int) -> None:
        self.grid.flat[pos] = rank

    def __eq__(self, other) -> bool:
        return isinstance(other, Board) and np.array_equal(self.grid, other.grid)

    def copy(self) -> "Board":
        return Board(self.grid.copy())

    def ranks(self) -> np.ndarray:
        """Flat view of the 16 ranks in position order."""
        return self.grid.reshape(-1)

    def slide(self, direction: int) -> int:
        """
        Slide every line one step toward the given direction.

        Args:
            direction: 0=up, 1=right, 2=down, 3=left

        Returns:
            Reward (sum of merged tile values), or ILLEGAL if the grid is unchanged
        """
        if direction not in (UP, RIGHT, DOWN, LEFT):
            raise ValueError(f"Invalid direction: {direction}")

        # Rotate so the move becomes a slide to the left, then rotate back
        turns = (direction + 1) % 4
        rotated = np.rot90(self.grid, turns).copy()
        reward = 0
        for i in range(4):
            rotated[i], line_reward = self._slide_line(rotated[i])
            reward += line_reward
        moved = np.rot90(rotated, -turns)

        if np.array_equal(moved, self.grid):
            return ILLEGAL
        self.grid = np.ascontiguousarray(moved)
        return reward

    def place(self, pos: int, rank: int) -> int:
        """Put a tile on an empty cell; ILLEGAL if the cell is taken or out of range."""
        if not 0 <= pos < NUM_CELLS or rank <= 0:
            return ILLEGAL
        if self[pos] != 0:
            return ILLEGAL
        self[pos] = rank
        return 0

    @staticmethod
    def _can_merge(head: int, tile: int) -> bool:
        if head + tile == 3 and head != tile:
            return True
        return head == tile and head >= 3

    def _slide_line(self, line: np.ndarray) -> Tuple[np.ndarray, int]:
        """
        Move a line one step toward index 0.

        The first gap or mergeable pair from the leading edge absorbs the move;
        every tile behind it shifts by one cell. At most one merge per line.
        """
        for i in range(1, 4):
            head, tile = int(line[i - 1]), int(line[i])
            if head == 0:
                if not line[i:].any():
                    break
                new_rank, reward = tile, 0
            elif tile != 0 and self._can_merge(head, tile):
                new_rank = 3 if head != tile else head + 1
                reward = tile_value(new_rank)
            else:
                continue

            out = line.copy()
            out[i - 1] = new_rank
            out[i:3] = line[i + 1:]
            out[3] = 0
            return out, reward

        return line.copy(), 0

    def has_legal_move(self) -> bool:
        """Check if any direction changes the grid."""
        for direction in range(4):
            if self.copy().slide(direction) != ILLEGAL:
                return True
        return False

    def max_tile(self) -> int:
        return tile_value(int(self.grid.max()))

    def __str__(self) -> str:
        lines = ["+" + "-" * 24 + "+"]
        for i in range(4):
            row_str = ""
            for j in range(4):
                rank = int(self.grid[i, j])
                tile = "." if rank == 0 else str(tile_value(rank))
                row_str += f"{tile:>6}"
            lines.append("|" + row_str + "|")
        lines.append("+" + "-" * 24 + "+")
        return "\n".join(lines)
