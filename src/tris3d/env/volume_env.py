from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from tris3d.game import Action, BoardSize, GameConfig, Tris3DGame


class VolumeDropEnv(gym.Env):
    """Single-agent environment over ``Tris3DGame``.

    One step applies an ``Action`` and then one gravity step, so a piece that
    is never hard-dropped still lands eventually. Reward is the engine score
    delta plus optional per-step and terminal penalties.
    """

    metadata = {"render_modes": ["rgb_array"], "render_fps": 30}

    def __init__(self, config: Optional[GameConfig] = None, render_mode: Optional[str] = None,
                 max_episode_steps: int = 5000,
                 step_penalty: float = 0.0,
                 terminal_penalty: float = 0.0) -> None:
        super().__init__()
        self.config = config or GameConfig(board_size=BoardSize(width=6, depth=6, height=12))
        self.game = Tris3DGame(self.config)
        self.render_mode = render_mode
        self.max_episode_steps = int(max_episode_steps)
        self.step_penalty = float(step_penalty)
        self.terminal_penalty = float(terminal_penalty)

        size = self.game.board_size
        n_shapes = len(self.config.shapes)
        k = self.config.queue_length

        self.observation_space = spaces.Dict(
            {
                "grid": spaces.Box(low=0, high=1, shape=size.shape, dtype=np.int8),
                "piece": spaces.Box(low=0, high=1, shape=size.shape, dtype=np.int8),
                "queue": spaces.Box(low=0, high=n_shapes - 1, shape=(k,), dtype=np.int8),
            }
        )
        self.action_space = spaces.Discrete(len(Action))

        self._steps = 0

    def _shape_index(self, piece) -> int:
        return self.config.shapes.index(piece.shape)

    def _get_obs(self) -> Dict[str, Any]:
        size = self.game.board_size
        piece = np.zeros(size.shape, dtype=np.int8)
        if self.game.active_piece is not None:
            for x, y, z in self.game.active_piece.absolute_cells():
                if size.contains(x, y, z):
                    piece[y, z, x] = 1
        queue = np.array([self._shape_index(p) for p in self.game.queue], dtype=np.int8)
        return {
            "grid": self.game.grid.occupancy(),
            "piece": piece,
            "queue": queue,
        }

    def _get_info(self) -> Dict[str, Any]:
        return {
            "score": self.game.score,
            "level": self.game.level,
            "lines_cleared": self.game.lines_cleared,
            "steps": self._steps,
        }

    def reset(self, *, seed: Optional[int] = None, options: Optional[dict] = None) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        super().reset(seed=seed)
        if seed is not None:
            self.game.rng.seed(seed)
        self.game.reset_game()
        self._steps = 0
        return self._get_obs(), self._get_info()

    def step(self, action: int):
        before = self.game.score
        applied = self.game.apply_action(Action(int(action)))
        if not self.game.game_over and Action(int(action)) != Action.HARD_DROP:
            self.game.soft_drop()
        self._steps += 1

        reward = float(self.game.score - before) + self.step_penalty
        terminated = bool(self.game.game_over)
        truncated = self._steps >= self.max_episode_steps
        if terminated:
            reward += self.terminal_penalty

        info = self._get_info()
        info["applied"] = applied
        return self._get_obs(), reward, terminated, truncated, info

    def render(self) -> Optional[np.ndarray]:
        if self.render_mode != "rgb_array":
            return None
        # Top-down height map, brighter means taller
        heights = self.game.grid.column_heights()
        depth, width = heights.shape
        cell = 12
        img = np.zeros((depth * cell, width * cell, 3), dtype=np.uint8)
        scale = 255.0 / max(1, self.game.board_size.height)
        for z in range(depth):
            for x in range(width):
                h = int(heights[z, x])
                color = (30, 30, 36) if h == 0 else (40, int(60 + h * scale * 0.75), 120)
                img[z * cell : (z + 1) * cell, x * cell : (x + 1) * cell, :] = color
        return img

    def close(self) -> None:
        self.game.destroy()
