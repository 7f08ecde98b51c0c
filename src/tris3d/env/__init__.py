"""Gymnasium environments for Tris3D."""

from __future__ import annotations

from gymnasium.envs.registration import register

from .volume_env import VolumeDropEnv

# Register the default 6x6x12 volume environment
register(
    id="Tris3D-6x6x12-v0",
    entry_point="tris3d.env.volume_env:VolumeDropEnv",
)

__all__ = ["VolumeDropEnv"]
