from __future__ import annotations

import argparse
import logging

import gymnasium as gym

import tris3d.env  # noqa: F401  ensure registration
from tris3d.logging_config import setup_logging


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser()
    p.add_argument("--model", type=str, required=True)
    p.add_argument("--episodes", type=int, default=5)
    p.add_argument("--max_steps", type=int, default=5000)
    return p


def main() -> None:
    args = build_parser().parse_args()
    setup_logging()
    from stable_baselines3 import PPO

    env = gym.make("Tris3D-6x6x12-v0")
    model = PPO.load(args.model, device="auto")

    scores = []
    for episode in range(args.episodes):
        obs, info = env.reset()
        for _ in range(args.max_steps):
            action, _ = model.predict(obs, deterministic=True)
            obs, reward, terminated, truncated, info = env.step(int(action))
            if terminated or truncated:
                break
        scores.append(info["score"])
        logger.info(f"Episode {episode + 1}: score {info['score']}, level {info['level']}, "
                    f"layers {info['lines_cleared']}")
    env.close()
    if scores:
        logger.info(f"Mean score over {len(scores)} episodes: {sum(scores) / len(scores):.1f}")


if __name__ == "__main__":  # pragma: no cover
    main()
