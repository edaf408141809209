"""
Actions exchanged between the agents and the board.

The same no-op action is used for "pass" and for "episode end"; callers tell them
apart from the game state.
"""

from dataclasses import dataclass
from typing import Optional

from board import Board, ILLEGAL, DIRECTION_NAMES


@dataclass(frozen=True)
class Action:
    kind: str = "noop"
    direction: Optional[int] = None
    position: Optional[int] = None
    tile: Optional[int] = None

    @classmethod
    def slide(cls, direction: int) -> "Action":
        return cls(kind="slide", direction=direction)

    @classmethod
    def place(cls, position: int, tile: int) -> "Action":
        return cls(kind="place", position=position, tile=tile)

    @property
    def is_noop(self) -> bool:
        return self.kind == "noop"

    def apply(self, board: Board) -> int:
        """Apply to the board in place; returns the reward or ILLEGAL."""
        if self.kind == "slide":
            return board.slide(self.direction)
        if self.kind == "place":
            return board.place(self.position, self.tile)
        return ILLEGAL

    def __str__(self) -> str:
        if self.kind == "slide":
            return f"#{DIRECTION_NAMES[self.direction]}"
        if self.kind == "place":
            return f"{self.position}+{self.tile}"
        return "??"
