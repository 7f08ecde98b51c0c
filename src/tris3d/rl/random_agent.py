from __future__ import annotations

import argparse
import logging

import gymnasium as gym

import tris3d.env  # noqa: F401  ensure registration
from tris3d.logging_config import setup_logging


logger = logging.getLogger(__name__)


def run_random(steps: int = 500, seed: int | None = None) -> float:
    env = gym.make("Tris3D-6x6x12-v0")
    obs, info = env.reset(seed=seed)
    env.action_space.seed(seed)
    total_reward = 0.0
    episodes = 0
    for _ in range(steps):
        action = env.action_space.sample()
        obs, reward, terminated, truncated, info = env.step(action)
        total_reward += float(reward)
        if terminated or truncated:
            episodes += 1
            logger.info(f"Episode {episodes} ended: score {info['score']}, layers {info['lines_cleared']}")
            obs, info = env.reset()
    env.close()
    logger.info(f"Random agent total reward: {total_reward:.2f}")
    return total_reward


def main() -> None:
    p = argparse.ArgumentParser()
    p.add_argument("--steps", type=int, default=500)
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--log_level", type=str, default="info")
    args = p.parse_args()
    setup_logging(args.log_level)
    run_random(args.steps, args.seed)


if __name__ == "__main__":  # pragma: no cover
    main()
