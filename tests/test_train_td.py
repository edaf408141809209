import json
import os

from agent import Player, TileSpawner
from resume_training import checkpoint_episode, list_checkpoints
from threes_env import ThreesEnv
from train_td import TDTrainer, build_player_args, checkpoint_path, main, play_episode
from weight_table import WeightStore


def make_trainer(seed=0):
    env = ThreesEnv(spawner=TileSpawner(f"seed={seed}"))
    return TDTrainer(Player("init"), env)


def test_play_episode_learns_at_the_end():
    env = ThreesEnv(spawner=TileSpawner("seed=0"))
    player = Player("init")
    stats = play_episode(env, player)

    assert stats["moves"] > 0
    assert stats["max_tile"] >= 3
    assert not env.board.has_legal_move()
    assert len(player.trajectory) == 0
    assert player.episodes_learned == 1


def test_trainer_history_and_block_summary():
    trainer = make_trainer()
    trainer.train(num_episodes=4, block=2)

    assert trainer.episodes == 4
    assert len(trainer.training_history['episode_scores']) == 4

    summary = trainer.block_summary(2)
    assert summary['episodes'] == 4
    rates = [rate for _, rate in sorted(summary['tile_reach'].items())]
    assert rates[0] == 1.0
    assert rates == sorted(rates, reverse=True)


def test_checkpoints_during_training(tmp_path):
    trainer = make_trainer(seed=1)
    save = str(tmp_path / "ntuple.bin")
    trainer.train(num_episodes=2, block=10, save_freq=1, save_path=save)

    assert os.path.exists(str(tmp_path / "ntuple_ep1.bin"))
    assert os.path.exists(str(tmp_path / "ntuple_ep2.bin"))
    assert [checkpoint_episode(p) for p in list_checkpoints(str(tmp_path))] == [1, 2]


def test_stats_and_plot_files(tmp_path):
    trainer = make_trainer()
    trainer.train(num_episodes=2, block=2)

    stats_path = str(tmp_path / "stats.json")
    trainer.save_stats(stats_path)
    with open(stats_path) as f:
        stats = json.load(f)
    assert stats['episodes'] == 2
    assert stats['max_score'] >= stats['avg_score']

    plot_path = str(tmp_path / "curves.png")
    trainer.plot_training_curves(plot_path)
    assert os.path.exists(plot_path)


def test_player_args_from_cli_options():
    assert build_player_args() == "name=td role=player init"
    assert build_player_args(alpha=0.01, load="w.bin", save="out.bin") == \
        "name=td role=player load=w.bin alpha=0.01 save=out.bin"
    assert checkpoint_path("weights/ntuple.bin", 500) == "weights/ntuple_ep500.bin"


def test_main_writes_weights(tmp_path):
    save = str(tmp_path / "weights" / "ntuple.bin")
    trainer = main(episodes=2, block=1, seed=0, save=save,
                   log_dir=str(tmp_path / "logs"), plot=None,
                   stats=str(tmp_path / "stats.json"))

    assert trainer.episodes == 2
    loaded = WeightStore.load(save)
    assert len(loaded) == 8
    assert loaded.tables[0].size == 50625

    resumed = main(episodes=1, block=1, seed=1, load=save, save=None,
                   log_dir=str(tmp_path / "logs"), plot=None, stats=None, start_episode=2)
    assert resumed.episodes == 3
