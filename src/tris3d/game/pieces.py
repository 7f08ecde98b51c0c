from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from itertools import product
import logging
from typing import TYPE_CHECKING, List, Optional, Tuple

from .grid import BoardSize, Coordinate

if TYPE_CHECKING:
    from .grid import VolumeGrid


logger = logging.getLogger(__name__)


class PieceKind(Enum):
    NORMAL = "normal"
    BOMB = "bomb"  # removes blocks under it instead of merging


class Axis(str, Enum):
    X = "x"
    Y = "y"
    Z = "z"


Cells = Tuple[Coordinate, ...]


@dataclass(frozen=True)
class Shape:
    """Static catalog entry; ``cells`` are offsets from the piece origin."""
    name: str
    color: str
    cells: Cells
    kind: PieceKind = PieceKind.NORMAL
    weight: float = 1.0

    @property
    def is_bomb(self) -> bool:
        return self.kind is PieceKind.BOMB


SHAPES: Tuple[Shape, ...] = (
    # Four-cube classics
    Shape("I", "#38bdf8", ((0, 0, 0), (1, 0, 0), (-1, 0, 0), (-2, 0, 0))),
    Shape("L", "#f472b6", ((0, 0, 0), (1, 0, 0), (0, 0, 1), (0, 0, -1))),
    Shape("T", "#c084fc", ((0, 0, 0), (1, 0, 0), (-1, 0, 0), (0, 0, 1))),
    Shape("S", "#34d399", ((0, 0, 0), (1, 0, 0), (0, 0, 1), (-1, 0, 1))),
    Shape("Edge", "#f97316", ((0, 0, 0), (1, 0, 0), (-1, 0, 0), (-1, 0, 1))),
    Shape("Skew", "#fb7185", ((0, 0, 0), (1, 0, 0), (0, 0, 1), (1, 0, -1))),
    Shape("Cube", "#facc15", (
        (0, 0, 0), (1, 0, 0), (0, 0, 1), (1, 0, 1),
        (0, 1, 0), (1, 1, 0), (0, 1, 1), (1, 1, 1),
    )),
    # Tri-cube variations
    Shape("Tri-Line", "#60a5fa", ((0, 0, 0), (1, 0, 0), (-1, 0, 0))),
    Shape("Tri-Corner", "#a3e635", ((0, 0, 0), (1, 0, 0), (0, 0, 1))),
    Shape("Tri-Step", "#fbbf24", ((0, 0, 0), (1, 0, 0), (1, 0, 1))),
    # Duo cubes
    Shape("Domino", "#f472b6", ((0, 0, 0), (1, 0, 0))),
    Shape("Pillar", "#67e8f9", ((0, 0, 0), (0, 0, 1))),
    Shape("Mono", "#a5b4fc", ((0, 0, 0),)),
    # Utility
    Shape("Bomb", "#f43f5e", ((0, 0, 0),), kind=PieceKind.BOMB, weight=0.2),
)


def rotate_cell(cell: Coordinate, axis: Axis) -> Coordinate:
    """Quarter turn of a single offset about a board axis."""
    x, y, z = cell
    axis = Axis(axis)
    if axis is Axis.X:
        return (x, -z, y)
    if axis is Axis.Y:
        return (z, y, -x)
    return (-y, x, z)


def rotate_cells(cells: Cells, axis: Axis) -> Cells:
    return tuple(rotate_cell(c, axis) for c in cells)


@dataclass(frozen=True)
class Piece:
    shape: Shape
    cells: Cells
    position: Coordinate = (0, 0, 0)

    @staticmethod
    def spawn(shape: Shape, size: BoardSize) -> "Piece":
        """Center on the footprint with the topmost offset on the top layer."""
        highest = max(0, max(y for _, y, _ in shape.cells))
        position = (size.width // 2, size.height - 1 - highest, size.depth // 2)
        return Piece(shape, tuple(shape.cells), position)

    @property
    def name(self) -> str:
        return self.shape.name

    @property
    def color(self) -> str:
        return self.shape.color

    @property
    def kind(self) -> PieceKind:
        return self.shape.kind

    def absolute_cells(self, offset: Coordinate = (0, 0, 0)) -> List[Coordinate]:
        px, py, pz = self.position
        ox, oy, oz = offset
        return [(px + cx + ox, py + cy + oy, pz + cz + oz) for cx, cy, cz in self.cells]

    def moved(self, offset: Coordinate) -> "Piece":
        px, py, pz = self.position
        ox, oy, oz = offset
        return replace(self, position=(px + ox, py + oy, pz + oz))

    def rotated(self, axis: Axis) -> "Piece":
        return replace(self, cells=rotate_cells(self.cells, axis))


_KICK_STEPS = (0, 1, -1, 2, -2)


def _build_kick_table() -> Tuple[Coordinate, ...]:
    offsets = [o for o in product(_KICK_STEPS, repeat=3) if o != (0, 0, 0)]
    # stable sort keeps generation order for remaining ties
    offsets.sort(key=lambda o: (abs(o[0]) + abs(o[1]) + abs(o[2]), abs(o[1]), abs(o[0]), abs(o[2])))
    return tuple(offsets)


KICK_OFFSETS: Tuple[Coordinate, ...] = _build_kick_table()


def resolve_rotation(grid: "VolumeGrid", piece: Piece, axis: Axis) -> Optional[Piece]:
    """Rotate ``piece`` and apply the first kick that fits, or None if none does."""
    rotated = piece.rotated(axis)
    if grid.can_place(rotated):
        return rotated
    for offset in KICK_OFFSETS:
        if grid.can_place(rotated, offset):
            logger.debug("Rotation of %s about %s kicked by %s", piece.name, axis.value, offset)
            return rotated.moved(offset)
    return None
