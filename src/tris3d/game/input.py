from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import math
from typing import Dict, Optional, Tuple

from .pieces import Axis


class Direction(Enum):
    LEFT = "left"
    RIGHT = "right"
    UP = "up"
    DOWN = "down"


class Control(Enum):
    DROP = "drop"
    PAUSE = "pause"


@dataclass(frozen=True)
class KeyBinding:
    direction: Optional[Direction] = None
    axis: Optional[Axis] = None
    control: Optional[Control] = None


DEFAULT_KEYMAP: Dict[str, KeyBinding] = {
    "arrowleft": KeyBinding(direction=Direction.LEFT),
    "arrowright": KeyBinding(direction=Direction.RIGHT),
    "arrowup": KeyBinding(direction=Direction.UP),
    "arrowdown": KeyBinding(direction=Direction.DOWN),
    "q": KeyBinding(axis=Axis.X),
    "e": KeyBinding(axis=Axis.X),
    "a": KeyBinding(axis=Axis.Y),
    "d": KeyBinding(axis=Axis.Y),
    "w": KeyBinding(axis=Axis.Z),
    "s": KeyBinding(axis=Axis.Z),
    " ": KeyBinding(control=Control.DROP),
    "space": KeyBinding(control=Control.DROP),
    "p": KeyBinding(control=Control.PAUSE),
}


def lookup_key(key: str, keymap: Optional[Dict[str, KeyBinding]] = None) -> Optional[KeyBinding]:
    if not isinstance(key, str):
        return None
    keymap = DEFAULT_KEYMAP if keymap is None else keymap
    if key == " ":
        return keymap.get(key)
    return keymap.get(key.strip().lower())


PlanarOffset = Tuple[int, int]


def forward_axis(theta: float) -> PlanarOffset:
    """Board (dx, dz) the camera looks along, snapped to a cardinal direction.

    The camera orbits at (sin theta, cos theta) around the board, so it looks
    along theta + pi. theta = 0 faces -z.
    """
    angle = theta + math.pi
    fx, fz = math.sin(angle), math.cos(angle)
    if abs(fx) > abs(fz):
        return (1 if fx > 0 else -1, 0)
    return (0, 1 if fz > 0 else -1)


def camera_relative_offset(direction: Direction, theta: float) -> Tuple[int, int, int]:
    fx, fz = forward_axis(theta)
    # clockwise quarter turn seen from above
    rx, rz = -fz, fx
    planar = {
        Direction.UP: (fx, fz),
        Direction.DOWN: (-fx, -fz),
        Direction.RIGHT: (rx, rz),
        Direction.LEFT: (-rx, -rz),
    }[direction]
    return (planar[0], 0, planar[1])
