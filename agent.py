"""
Agents for the Threes-style 2048 game

- Player: greedy one-step lookahead over an n-tuple value function, learning
  with a TD(0) backward pass over each finished episode.
- TileSpawner: the environment side, placing a tile after every player move.

Both are configured from free-form "key=value" tokens, parsed once into an
AgentConfig. make_agent() picks the agent from the configured role.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import numpy as np

from action import Action
from board import Board, ILLEGAL, DIRECTION_NAMES
from ntuple_network import feature_indices, value_of_indices
from weight_table import WeightStore

logger = logging.getLogger(__name__)

DEFAULT_ALPHA = 0.1 / 32


@dataclass
class AgentConfig:
    """Typed view of the key=value agent arguments."""
    name: str = "unknown"
    role: str = "unknown"
    init: Optional[str] = None
    load: Optional[str] = None
    save: Optional[str] = None
    alpha: float = DEFAULT_ALPHA
    seed: Optional[int] = None
    extras: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_args(cls, args: str = "") -> "AgentConfig":
        """
        Parse tokens such as "name=td role=player init alpha=0.003 seed=7".

        A token without '=' uses the token itself as both key and value. Later
        tokens override earlier ones; unknown keys end up in `extras`.
        """
        meta: Dict[str, str] = {}
        for pair in args.split():
            key, sep, value = pair.partition("=")
            meta[key] = value if sep else pair

        config = cls()
        for key, value in meta.items():
            if key == "alpha":
                config.alpha = float(value)
            elif key == "seed":
                config.seed = int(float(value))
            elif key in ("name", "role", "init", "load", "save"):
                setattr(config, key, value)
            else:
                config.extras[key] = value
        return config


@dataclass
class MoveOutcome:
    """Result of trying one direction on a scratch copy of the board."""
    direction: int
    legal: bool
    reward: int = 0
    after: Optional[Board] = None
    indices: Optional[np.ndarray] = None
    value: float = 0.0

    @property
    def score(self) -> float:
        return self.reward + self.value


@dataclass
class TrajectoryRecord:
    """Feature indices of one after-state and the net reward of the move that produced it."""
    indices: np.ndarray
    reward: float


class Trajectory:
    """After-states visited by the player during the current episode, oldest first."""

    def __init__(self):
        self.records: List[TrajectoryRecord] = []

    def append(self, indices: np.ndarray, reward: float) -> None:
        self.records.append(TrajectoryRecord(indices=indices, reward=reward))

    def clear(self) -> None:
        self.records = []

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self):
        return iter(self.records)


def td_backward_update(weights: WeightStore, records: List[TrajectoryRecord],
                       alpha: float = DEFAULT_ALPHA) -> None:
    """
    TD(0) update over a finished episode, walking from the last after-state back.

    The last after-state is terminal: its entries are zeroed. Every earlier
    after-state s_k is moved toward r_{k+1} + V(s_{k+1}), where s_{k+1} has
    already been updated in the previous step.
    """
    n = len(records)
    for j in range(n):
        k = n - 1 - j
        older = records[k]
        if j == 0:
            for i, idx in enumerate(older.indices):
                weights.set(i, idx, 0.0)
            continue

        newer = records[k + 1]
        v_newer = value_of_indices(weights, newer.indices)
        v_older = value_of_indices(weights, older.indices)
        delta = v_newer - v_older + newer.reward
        for i, idx in enumerate(older.indices):
            weights.add(i, idx, alpha * delta)

        logger.debug(f"TD step {j}: V(newer)={v_newer:.4f} V(older)={v_older:.4f} delta={delta:.4f}")


class Player:
    """
    Learning player: greedy afterstate lookahead with TD(0) episode updates.

    Arguments (key=value): init, load, save, alpha, name.
    """

    def __init__(self, args: str = "", weights: Optional[WeightStore] = None):
        self.config = AgentConfig.from_args("name=player role=player " + args)
        self.alpha = self.config.alpha

        if weights is None:
            if self.config.init is not None:
                weights = WeightStore.init_tables()
            if self.config.load is not None:
                weights = WeightStore.load(self.config.load)
        if weights is None:
            raise ValueError("Player needs weight tables: pass init=..., load=... or weights")
        self.weights: WeightStore = weights

        self.trajectory = Trajectory()
        self.episodes_learned = 0

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def role(self) -> str:
        return self.config.role

    def evaluate_move(self, before: Board, direction: int) -> MoveOutcome:
        """Try one direction on a copy of `before` and value the resulting after-state."""
        after = before.copy()
        reward = after.slide(direction)
        if reward == ILLEGAL:
            return MoveOutcome(direction=direction, legal=False)

        indices = feature_indices(after)
        return MoveOutcome(
            direction=direction,
            legal=True,
            reward=reward,
            after=after,
            indices=indices,
            value=value_of_indices(self.weights, indices),
        )

    def take_action(self, before: Board) -> Action:
        """
        Pick the direction maximizing reward + V(after-state).

        Directions are tried in order 0..3 and ties keep the earlier one.
        With no legal move the episode is over: learn from it and return a no-op.
        """
        best: Optional[MoveOutcome] = None
        for direction in range(4):
            outcome = self.evaluate_move(before, direction)
            if not outcome.legal:
                continue
            if best is None or outcome.score > best.score:
                best = outcome

        if best is None:
            self.learn_episode()
            return Action()

        self.trajectory.append(best.indices, best.score - best.value)
        logger.debug(
            f"{DIRECTION_NAMES[best.direction]}: reward={best.reward} value={best.value:.4f}"
        )
        return Action.slide(best.direction)

    def learn_episode(self) -> None:
        """Run the backward TD pass over the recorded trajectory, then drop it."""
        moves = len(self.trajectory)
        td_backward_update(self.weights, self.trajectory.records, self.alpha)
        self.trajectory.clear()
        self.episodes_learned += 1
        logger.debug(f"Learned episode {self.episodes_learned} ({moves} moves, alpha={self.alpha})")

    def save_weights(self, path: Optional[str] = None) -> None:
        path = path or self.config.save
        if path is None:
            return
        self.weights.save(path)

    def close(self) -> None:
        """Save weights if save=... was configured."""
        self.save_weights()


class TileBag:
    """Shuffled bag of basic tiles {1, 2, 3}, refilled when empty."""

    TILES = (1, 2, 3)

    def __init__(self, rng: np.random.RandomState):
        self.rng = rng
        self.tiles: List[int] = []

    def draw(self) -> int:
        if not self.tiles:
            self.tiles = list(self.TILES)
            self.rng.shuffle(self.tiles)
        return self.tiles.pop()

    def reset(self) -> None:
        self.tiles = []

    def __len__(self) -> int:
        return len(self.tiles)


class TileSpawner:
    """
    Environment agent: places the next tile after a player move.

    New tiles enter on the edge opposite the last move; before any move every
    cell is a candidate.
    """

    SPAWN_CELLS = {
        None: list(range(16)),
        0: [12, 13, 14, 15],   # up -> bottom row
        1: [0, 4, 8, 12],      # right -> left column
        2: [0, 1, 2, 3],       # down -> top row
        3: [3, 7, 11, 15],     # left -> right column
    }

    def __init__(self, args: str = ""):
        self.config = AgentConfig.from_args("name=random role=environment " + args)
        self.rng = np.random.RandomState(self.config.seed)
        self.bag = TileBag(self.rng)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def role(self) -> str:
        return self.config.role

    def seed(self, seed: int) -> None:
        """Restart the random state and drop the tiles left in the bag."""
        self.rng.seed(seed)
        self.bag.reset()

    def take_action(self, after: Board, last_direction: Optional[int] = None) -> Action:
        space = list(self.SPAWN_CELLS[last_direction])
        self.rng.shuffle(space)
        for pos in space:
            if after[pos] != 0:
                continue
            tile = self.bag.draw()
            logger.debug(f"Spawn tile {tile} at {pos}")
            return Action.place(pos, tile)
        return Action()


def make_agent(args: str = "", weights: Optional[WeightStore] = None):
    """Build the agent selected by role=... (player or environment)."""
    role = AgentConfig.from_args(args).role
    if role == "player":
        return Player(args, weights=weights)
    if role == "environment":
        return TileSpawner(args)
    raise ValueError(f"Unknown agent role: {role}")
