import numpy as np
import pytest

from agent import TileSpawner
from board import Board, LEFT, UP
from threes_env import ThreesEnv, INITIAL_TILES


def test_reset_places_opening_tiles():
    env = ThreesEnv(seed=0)
    obs, info = env.reset()
    assert obs.shape == (4, 4)
    assert np.count_nonzero(obs) == INITIAL_TILES
    assert set(np.unique(obs)) <= {0, 1, 2, 3}
    assert info["score"] == 0
    assert info["moves"] == 0


def test_invalid_actions_raise():
    env = ThreesEnv(seed=0)
    env.reset()
    with pytest.raises(ValueError):
        env.step(4)
    with pytest.raises(ValueError):
        env.step("left")


def test_legal_step_spawns_on_opposite_edge():
    env = ThreesEnv(spawner=TileSpawner("seed=2"))
    env.reset()
    env.board = Board([[0, 3, 0, 0],
                       [0, 0, 0, 0],
                       [0, 0, 0, 0],
                       [0, 0, 0, 0]])

    obs, reward, terminated, truncated, info = env.step(LEFT)
    assert reward == 0.0
    assert info["grid_changed"]
    assert info["moves"] == 1
    assert not terminated and not truncated
    assert obs[0, 0] == 3
    assert np.count_nonzero(obs) == 2
    assert np.count_nonzero(obs[:, 3]) == 1


def test_merge_reward_is_added_to_score():
    env = ThreesEnv(seed=2)
    env.reset()
    env.board = Board([[1, 2, 0, 0],
                       [0, 0, 0, 0],
                       [0, 0, 0, 0],
                       [0, 0, 0, 0]])
    _, reward, _, _, info = env.step(LEFT)
    assert reward == 3.0
    assert info["score"] == 3


def test_illegal_step_changes_nothing():
    env = ThreesEnv(seed=0)
    env.reset()
    env.board = Board([[3, 0, 0, 0],
                       [0, 0, 0, 0],
                       [0, 0, 0, 0],
                       [0, 0, 0, 0]])
    obs, reward, _, _, info = env.step(UP)
    assert reward == 0.0
    assert not info["grid_changed"]
    assert info["moves"] == 0
    assert np.count_nonzero(obs) == 1


def test_render_string():
    env = ThreesEnv(render_mode="human", seed=0)
    env.reset()
    assert "Score: 0" in env.render()


def test_reset_with_same_seed_repeats_opening():
    env = ThreesEnv()
    first, _ = env.reset(seed=123)
    for action in (0, 1, 2, 3, 0):
        env.step(action)
    second, info = env.reset(seed=123)

    assert np.array_equal(first, second)
    assert info["moves"] == 0
    assert np.array_equal(first, ThreesEnv(seed=123).reset()[0])
