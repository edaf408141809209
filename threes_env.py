"""
Threes-style 2048 as a Gymnasium Environment
The board dynamics come from board.Board; new tiles are placed by the
TileSpawner environment agent, biased by the direction of the last move.
"""

import logging
from typing import Optional, Tuple, Dict, Any

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from agent import TileSpawner
from board import Board, ILLEGAL, MAX_RANK, DIRECTION_NAMES

logger = logging.getLogger(__name__)

INITIAL_TILES = 9


class ThreesEnv(gym.Env):
    """
    Threes-style 2048 Environment compatible with Gymnasium API.

    - Actions: 0=up, 1=right, 2=down, 3=left
    - Observation: 4x4 grid of tile ranks
    - Reward: sum of merged tile values in each step
    - Episode termination: when no more moves are possible
    """

    metadata = {"render_modes": ["human"], "render_fps": 4}

    def __init__(self, render_mode: Optional[str] = None, seed: Optional[int] = None,
                 spawner: Optional[TileSpawner] = None):
        """
        Initialize the environment.

        Args:
            render_mode: Optional render mode ('human' or None)
            seed: Random seed for the tile spawner (ignored if spawner is given)
            spawner: Environment agent placing the tiles
        """
        super().__init__()

        self.render_mode = render_mode
        if spawner is None:
            spawner = TileSpawner("" if seed is None else f"seed={seed}")
        self.spawner = spawner

        self.board = Board()
        self.score: int = 0
        self.moves_made: int = 0

        self.action_space = spaces.Discrete(4)
        self.observation_space = spaces.Box(
            low=0,
            high=MAX_RANK,
            shape=(4, 4),
            dtype=np.int32
        )

    def _initialize_game(self) -> None:
        """Start from an empty board and let the spawner place the opening tiles."""
        self.board = Board()
        self.score = 0
        self.moves_made = 0

        for _ in range(INITIAL_TILES):
            self._spawn_tile(None)

    def _spawn_tile(self, last_direction: Optional[int]) -> bool:
        action = self.spawner.take_action(self.board, last_direction)
        if action.is_noop:
            return False
        return action.apply(self.board) != ILLEGAL

    def _info(self, grid_changed: bool = False) -> Dict[str, Any]:
        return {
            "score": self.score,
            "moves": self.moves_made,
            "grid_changed": grid_changed,
            "game_over": not self.board.has_legal_move(),
            "max_tile": self.board.max_tile(),
        }

    def step(self, action: int) -> Tuple[np.ndarray, float, bool, bool, Dict[str, Any]]:
        """
        Execute one player move followed by the environment's tile placement.

        Args:
            action: 0=up, 1=right, 2=down, 3=left

        Returns:
            observation, reward, terminated, truncated, info
        """
        if not isinstance(action, (int, np.integer)):
            raise ValueError(f"Invalid action type: {type(action)}")

        if action < 0 or action >= self.action_space.n:
            raise ValueError(f"Invalid action: {action}")

        reward = self.board.slide(int(action))
        grid_changed = reward != ILLEGAL

        if grid_changed:
            self.score += reward
            self.moves_made += 1
            self._spawn_tile(int(action))
        else:
            reward = 0
            logger.debug(f"Illegal move {DIRECTION_NAMES[action]}")

        info = self._info(grid_changed)
        return self.board.grid.copy(), float(reward), info["game_over"], False, info

    def reset(self, seed: Optional[int] = None, options: Optional[Dict] = None) -> Tuple[np.ndarray, Dict[str, Any]]:
        """
        Reset the environment to a fresh opening position.

        Args:
            seed: Reseeds the spawner (random state and tile bag) when given
            options: Unused

        Returns:
            Tuple of (observation, info)
        """
        super().reset(seed=seed)
        if seed is not None:
            self.spawner.seed(seed)

        self._initialize_game()
        return self.board.grid.copy(), self._info()

    def render(self) -> Optional[str]:
        if self.render_mode == "human":
            output = self._render_string()
            print(output)
            return output

        return None

    def _render_string(self) -> str:
        lines = ["\nThrees State:"]
        lines.append(f"Score: {self.score} | Moves: {self.moves_made}")
        lines.append(str(self.board))
        return "\n".join(lines)
