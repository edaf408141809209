"""
Training script for Threes-style 2048 using an n-tuple network and TD(0)
The player learns online: every finished episode is replayed backward once to
update the weight tables.
"""

import json
import logging
import os
import sys
import time
from datetime import datetime
from typing import Any, Dict, Optional

import matplotlib.pyplot as plt
import numpy as np
from tqdm import tqdm

from agent import Player, make_agent
from threes_env import ThreesEnv


def setup_logging(log_dir: str = "logs") -> logging.Logger:
    """
    Setup logging to both console and file.

    Args:
        log_dir: Directory to store log files

    Returns:
        Configured logger
    """
    os.makedirs(log_dir, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(log_dir, f"training_{timestamp}.log")

    logger = logging.getLogger("train_td")
    logger.setLevel(logging.INFO)
    logger.handlers.clear()

    file_handler = logging.FileHandler(log_file)
    file_handler.setLevel(logging.INFO)
    file_handler.setFormatter(logging.Formatter('%(asctime)s | %(message)s', datefmt='%Y-%m-%d %H:%M:%S'))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(logging.Formatter('%(message)s'))

    logger.addHandler(file_handler)
    logger.addHandler(console_handler)

    logger.info(f"Logging to: {log_file}")

    return logger


# Global logger (initialized in main)
logger: Optional[logging.Logger] = None


def log(message: str):
    """Log a message to both console and file."""
    if logger:
        logger.info(message)
    else:
        print(message)


def play_episode(env: ThreesEnv, player: Player) -> Dict[str, Any]:
    """
    Play one game until the player has no legal move.

    The player's final no-op is what triggers its TD update, so the loop runs on
    the player's decisions rather than on the env's terminated flag.
    """
    t0 = time.time()
    _, info = env.reset()

    while True:
        action = player.take_action(env.board)
        if action.is_noop:
            break
        _, _, _, _, info = env.step(action.direction)

    return {
        "score": info["score"],
        "moves": info["moves"],
        "max_tile": env.board.max_tile(),
        "duration": time.time() - t0,
    }


def checkpoint_path(save_path: str, episode: int) -> str:
    root, ext = os.path.splitext(save_path)
    return f"{root}_ep{episode}{ext}"


class TDTrainer:
    """
    Trainer running TD(0) episodes and keeping block statistics.
    """

    def __init__(self, player: Player, env: ThreesEnv, start_episode: int = 0):
        self.player = player
        self.env = env
        self.episodes = start_episode
        self.training_history = {
            'episode_scores': [],
            'episode_lengths': [],
            'max_tiles': [],
            'durations': [],
        }

    def train(self, num_episodes: int, block: int = 1000, save_freq: int = 0,
              save_path: Optional[str] = None) -> None:
        """
        Train for a number of episodes, summarizing every `block` episodes.

        Args:
            num_episodes: Number of episodes to play
            block: Episodes per statistics summary
            save_freq: Episodes between weight checkpoints (0 disables)
            save_path: Base weight file; checkpoints get an _ep<N> suffix
        """
        log(f"\nStarting training for {num_episodes} episodes...")
        log(f"  - Alpha: {self.player.alpha}")
        log(f"  - Weight tables: {len(self.player.weights)} x {self.player.weights[0].size}")

        for _ in tqdm(range(num_episodes), desc="Training"):
            self.play_episode()

            if self.episodes % block == 0:
                self.summarize_block(block)

            if save_freq and save_path and self.episodes % save_freq == 0:
                self.player.save_weights(checkpoint_path(save_path, self.episodes))

        log("\nTraining complete!")
        log(f"Best score: {max(self.training_history['episode_scores'], default=0)}")

    def play_episode(self) -> Dict[str, Any]:
        stats = play_episode(self.env, self.player)
        self.training_history['episode_scores'].append(stats['score'])
        self.training_history['episode_lengths'].append(stats['moves'])
        self.training_history['max_tiles'].append(stats['max_tile'])
        self.training_history['durations'].append(stats['duration'])
        self.episodes += 1
        return stats

    def block_summary(self, block: int) -> Dict[str, Any]:
        """Average/max score and cumulative max-tile reach rates over the last block."""
        scores = self.training_history['episode_scores'][-block:]
        tiles = self.training_history['max_tiles'][-block:]
        moves = self.training_history['episode_lengths'][-block:]
        durations = self.training_history['durations'][-block:]

        reach = {}
        for tile in sorted(set(tiles), reverse=True):
            reach[int(tile)] = float(np.mean(np.array(tiles) >= tile))

        total_time = sum(durations)
        return {
            'episodes': self.episodes,
            'avg_score': float(np.mean(scores)),
            'max_score': int(np.max(scores)),
            'avg_moves': float(np.mean(moves)),
            'ops_per_sec': float(sum(moves) / total_time) if total_time > 0 else 0.0,
            'tile_reach': dict(sorted(reach.items())),
        }

    def summarize_block(self, block: int) -> None:
        summary = self.block_summary(block)
        log(f"\n{summary['episodes']}\tavg = {summary['avg_score']:.0f}, "
            f"max = {summary['max_score']}, ops = {summary['ops_per_sec']:.0f}")
        for tile, rate in sorted(summary['tile_reach'].items()):
            log(f"\t{tile}\t{rate * 100:.1f}%")

    def save_stats(self, path: str) -> None:
        os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
        scores = self.training_history['episode_scores']
        stats = {
            'episodes': self.episodes,
            'avg_score': float(np.mean(scores)) if scores else 0.0,
            'max_score': int(np.max(scores)) if scores else 0,
            'max_tile': int(np.max(self.training_history['max_tiles'])) if scores else 0,
            'alpha': self.player.alpha,
        }
        with open(path, 'w') as f:
            json.dump(stats, f, indent=2)
        log(f"Statistics saved to {path}")

    def plot_training_curves(self, save_path: str = "plots/td_training_curves.png") -> None:
        """Plot score and max tile curves."""
        os.makedirs(os.path.dirname(save_path) or ".", exist_ok=True)

        fig, axes = plt.subplots(1, 2, figsize=(12, 5))
        window = 100

        def moving_average(data, window):
            if len(data) < window:
                return data
            return np.convolve(data, np.ones(window)/window, mode='valid')

        axes[0].plot(moving_average(self.training_history['episode_scores'], window))
        axes[0].set_title('Episode Score')
        axes[0].set_xlabel('Episode')
        axes[0].set_ylabel('Score')
        axes[0].grid(True)

        axes[1].plot(moving_average(self.training_history['max_tiles'], window))
        axes[1].set_title('Max Tile')
        axes[1].set_xlabel('Episode')
        axes[1].set_ylabel('Max Tile Value')
        axes[1].grid(True)

        plt.tight_layout()
        plt.savefig(save_path, dpi=150)
        log(f"Training curves saved to {save_path}")
        plt.close(fig)


def build_player_args(alpha: Optional[float] = None, load: Optional[str] = None,
                      save: Optional[str] = None) -> str:
    """Translate CLI options into the player's key=value argument string."""
    args = ["name=td", "role=player"]
    args.append(f"load={load}" if load else "init")
    if alpha is not None:
        args.append(f"alpha={alpha}")
    if save:
        args.append(f"save={save}")
    return " ".join(args)


def main(episodes: int = 1000, block: int = 1000, alpha: Optional[float] = None,
         seed: Optional[int] = None, load: Optional[str] = None,
         save: Optional[str] = "weights/ntuple.bin", log_dir: str = "logs",
         plot: Optional[str] = "plots/td_training_curves.png",
         stats: Optional[str] = "weights/final_stats.json", save_freq: int = 0,
         start_episode: int = 0) -> TDTrainer:
    """
    Main training function.

    Starts from zero weight tables, or resumes from `load` when given.
    """
    global logger
    logger = setup_logging(log_dir)

    if save:
        os.makedirs(os.path.dirname(save) or ".", exist_ok=True)

    player = make_agent(build_player_args(alpha, load, save))
    spawner = make_agent("name=random role=environment" + (f" seed={seed}" if seed is not None else ""))
    env = ThreesEnv(spawner=spawner)

    trainer = TDTrainer(player, env, start_episode=start_episode)
    trainer.train(num_episodes=episodes, block=block, save_freq=save_freq, save_path=save)

    player.close()
    if save:
        log(f"Weights saved to {save}")
    if stats:
        trainer.save_stats(stats)
    if plot:
        trainer.plot_training_curves(plot)
    return trainer


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description='Train Threes n-tuple TD(0) agent')
    parser.add_argument('--episodes', type=int, default=1000,
                        help='Number of episodes to train (default: 1000)')
    parser.add_argument('--block', type=int, default=1000,
                        help='Episodes per statistics block (default: 1000)')
    parser.add_argument('--alpha', type=float, default=None,
                        help='Learning rate (default: 0.1/32)')
    parser.add_argument('--seed', type=int, default=None,
                        help='Seed for the tile spawner')
    parser.add_argument('--load', type=str, default=None,
                        help='Weight file to resume from (e.g., weights/ntuple_ep1000.bin)')
    parser.add_argument('--save', type=str, default='weights/ntuple.bin',
                        help='Weight file to write at the end')
    parser.add_argument('--save-freq', type=int, default=0,
                        help='Episodes between weight checkpoints (default: off)')
    parser.add_argument('--log-dir', type=str, default='logs')
    parser.add_argument('--plot', type=str, default='plots/td_training_curves.png')
    parser.add_argument('--stats', type=str, default='weights/final_stats.json')

    args = parser.parse_args()

    main(episodes=args.episodes, block=args.block, alpha=args.alpha, seed=args.seed,
         load=args.load, save=args.save, log_dir=args.log_dir, plot=args.plot,
         stats=args.stats, save_freq=args.save_freq)
