"""Game module for Tris3D.

Exports the simulation engine and supporting classes:
- VolumeGrid: 3D occupancy grid, layer detection and compaction
- Piece / Shape: shape catalog, quarter-turn rotation and wall kicks
- ScoringRules: scoring, leveling and gravity timing
- Scheduler: cooperative timers advanced by the host loop
- Tris3DGame: state machine, command API and snapshot broadcasting
"""

from .grid import BoardLimits, BoardSize, VolumeGrid
from .pieces import SHAPES, KICK_OFFSETS, Axis, Piece, PieceKind, Shape, resolve_rotation, rotate_cell
from .rules import ScoringRules
from .timers import Scheduler, TimerHandle
from .input import Direction, camera_relative_offset, lookup_key
from .persistence import JsonFileStore, MemoryStore, Progress
from .core import Action, GameConfig, GameSnapshot, StereoSettings, Tris3DGame

__all__ = [
    "BoardLimits",
    "BoardSize",
    "VolumeGrid",
    "SHAPES",
    "KICK_OFFSETS",
    "Axis",
    "Piece",
    "PieceKind",
    "Shape",
    "resolve_rotation",
    "rotate_cell",
    "ScoringRules",
    "Scheduler",
    "TimerHandle",
    "Direction",
    "camera_relative_offset",
    "lookup_key",
    "JsonFileStore",
    "MemoryStore",
    "Progress",
    "Action",
    "GameConfig",
    "GameSnapshot",
    "StereoSettings",
    "Tris3DGame",
]
