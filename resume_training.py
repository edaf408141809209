"""
Resume training from a saved weight checkpoint
This is a convenience script to quickly resume training
"""

import os
import glob
import re

from train_td import main

CHECKPOINT_PATTERN = 'ntuple_ep*.bin'


def checkpoint_episode(path):
    match = re.search(r'_ep(\d+)\.bin$', path)
    return int(match.group(1)) if match else 0


def list_checkpoints(weights_dir='weights'):
    """Checkpoint files sorted by episode number."""
    checkpoints = glob.glob(os.path.join(weights_dir, CHECKPOINT_PATTERN))
    return sorted(checkpoints, key=checkpoint_episode)


def find_latest_checkpoint(weights_dir='weights'):
    """Find the latest checkpoint file."""
    checkpoints = list_checkpoints(weights_dir)

    if not checkpoints:
        print(f"No checkpoints found in {weights_dir}/")
        return None

    return checkpoints[-1]


def resume_training(checkpoint_path=None, episodes=1000, save_freq=1000, weights_dir='weights'):
    """
    Resume training from a checkpoint.

    Args:
        checkpoint_path: Path to specific checkpoint, or None to use latest
        episodes: Number of additional episodes
        save_freq: Episodes between new checkpoints
    """
    save = os.path.join(weights_dir, 'ntuple.bin')

    if checkpoint_path is None:
        checkpoint_path = find_latest_checkpoint(weights_dir)

        if checkpoint_path is None:
            print("No checkpoint found. Starting fresh training...")
            return main(episodes=episodes, save=save, save_freq=save_freq)

    if not os.path.exists(checkpoint_path):
        print(f"Error: Checkpoint not found at {checkpoint_path}")
        print("Available checkpoints:")
        for cp in list_checkpoints(weights_dir):
            print(f"  - {cp}")
        return None

    print(f"\nResuming training from: {checkpoint_path}")
    return main(episodes=episodes, load=checkpoint_path, save=save, save_freq=save_freq,
                start_episode=checkpoint_episode(checkpoint_path))


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description='Resume Threes TD(0) Training')
    parser.add_argument('--checkpoint', type=str, default=None,
                        help='Path to specific checkpoint (default: use latest)')
    parser.add_argument('--episodes', type=int, default=1000,
                        help='Number of additional episodes (default: 1000)')
    parser.add_argument('--save-freq', type=int, default=1000,
                        help='Episodes between checkpoints (default: 1000)')
    parser.add_argument('--list', action='store_true',
                        help='List available checkpoints')

    args = parser.parse_args()

    if args.list:
        print("\nAvailable checkpoints:")
        checkpoints = list_checkpoints()
        if checkpoints:
            for cp in checkpoints:
                size_mb = os.path.getsize(cp) / (1024 * 1024)
                print(f"  - {cp} ({size_mb:.2f} MB)")
        else:
            print("  No checkpoints found in weights/")
    else:
        resume_training(args.checkpoint, episodes=args.episodes, save_freq=args.save_freq)
