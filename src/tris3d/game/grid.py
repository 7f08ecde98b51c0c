from __future__ import annotations

from dataclasses import dataclass
import math
from typing import TYPE_CHECKING, Iterable, List, Optional, Sequence, Tuple

import numpy as np

if TYPE_CHECKING:
    from .pieces import Piece


Coordinate = Tuple[int, int, int]


@dataclass(frozen=True)
class BoardLimits:
    minimum: int = 6
    maximum: int = 14

    def clamp(self, value: float) -> Optional[int]:
        """Clamp a requested footprint into range; None for non-finite input."""
        try:
            value = float(value)
        except (TypeError, ValueError):
            return None
        if not math.isfinite(value):
            return None
        return int(max(self.minimum, min(self.maximum, round(value))))


@dataclass(frozen=True)
class BoardSize:
    width: int = 10
    depth: int = 10
    height: int = 20

    def with_footprint(self, footprint: int) -> "BoardSize":
        return BoardSize(width=footprint, depth=footprint, height=self.height)

    @property
    def shape(self) -> Tuple[int, int, int]:
        # numpy layout is [y, z, x]
        return (self.height, self.depth, self.width)

    def contains(self, x: int, y: int, z: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height and 0 <= z < self.depth


class VolumeGrid:
    """Discrete 3D occupancy volume indexed ``[y][z][x]``.

    Cells hold 0 when empty and otherwise a 1-based index into ``palette``,
    which stores the occupant colour. Instances are never modified once built:
    ``merge``, ``collapse`` and ``remove_cells`` all return new grids, so a
    snapshot holding an older grid keeps seeing the old contents.
    """

    def __init__(self, size: BoardSize, cells: Optional[np.ndarray] = None,
                 palette: Tuple[str, ...] = ()) -> None:
        self.size = size
        if cells is None:
            cells = np.zeros(size.shape, dtype=np.int16)
        if cells.shape != size.shape:
            raise ValueError(f"cells shape {cells.shape} does not match board {size.shape}")
        cells.flags.writeable = False
        self.cells = cells
        self.palette = tuple(palette)

    @classmethod
    def empty(cls, size: BoardSize) -> "VolumeGrid":
        return cls(size)

    @property
    def width(self) -> int:
        return self.size.width

    @property
    def depth(self) -> int:
        return self.size.depth

    @property
    def height(self) -> int:
        return self.size.height

    def is_inside(self, x: int, y: int, z: int) -> bool:
        return self.size.contains(x, y, z)

    def is_occupied(self, x: int, y: int, z: int) -> bool:
        return self.is_inside(x, y, z) and self.cells[y, z, x] != 0

    def color_at(self, x: int, y: int, z: int) -> Optional[str]:
        if not self.is_occupied(x, y, z):
            return None
        return self.palette[int(self.cells[y, z, x]) - 1]

    def can_place(self, piece: "Piece", offset: Coordinate = (0, 0, 0)) -> bool:
        """True when every cell of ``piece`` shifted by ``offset`` is inside and empty."""
        return self.can_place_cells(piece.absolute_cells(offset))

    def can_place_cells(self, cells: Iterable[Coordinate]) -> bool:
        coords = np.asarray(list(cells), dtype=np.int64).reshape(-1, 3)
        if coords.size == 0:
            return True
        xs, ys, zs = coords[:, 0], coords[:, 1], coords[:, 2]
        inside = (
            (xs >= 0) & (xs < self.width)
            & (ys >= 0) & (ys < self.height)
            & (zs >= 0) & (zs < self.depth)
        )
        if not bool(np.all(inside)):
            return False
        return not bool(np.any(self.cells[ys, zs, xs]))

    def _color_code(self, color: str) -> Tuple[int, Tuple[str, ...]]:
        if color in self.palette:
            return self.palette.index(color) + 1, self.palette
        palette = self.palette + (color,)
        return len(palette), palette

    def merge(self, piece: "Piece") -> "VolumeGrid":
        """Return a new grid with the piece's cells set to its colour.

        Out-of-bounds cells are skipped.
        """
        code, palette = self._color_code(piece.color)
        cells = self.cells.copy()
        for x, y, z in piece.absolute_cells():
            if self.is_inside(x, y, z):
                cells[y, z, x] = code
        return VolumeGrid(self.size, cells, palette)

    def remove_cells(self, coords: Iterable[Coordinate]) -> "VolumeGrid":
        cells = self.cells.copy()
        for x, y, z in coords:
            if self.is_inside(x, y, z):
                cells[y, z, x] = 0
        return VolumeGrid(self.size, cells, self.palette)

    def find_full_layers(self) -> List[int]:
        full = np.flatnonzero(np.all(self.cells != 0, axis=(1, 2)))
        return [int(y) for y in full]

    def collapse(self, cleared: Sequence[int]) -> "VolumeGrid":
        """Drop the cleared layers, shift higher layers down and refill at the top."""
        cleared = sorted({int(y) for y in cleared if 0 <= int(y) < self.height})
        if not cleared:
            return self
        kept = np.delete(self.cells, cleared, axis=0)
        fresh = np.zeros((len(cleared), self.depth, self.width), dtype=self.cells.dtype)
        # y grows upward, so new empty layers go on the end
        cells = np.concatenate((kept, fresh), axis=0)
        return VolumeGrid(self.size, cells, self.palette)

    def occupied_count(self) -> int:
        return int(np.count_nonzero(self.cells))

    def occupancy(self) -> np.ndarray:
        return (self.cells != 0).astype(np.int8)

    def column_heights(self) -> np.ndarray:
        """Height of the highest occupant for every (z, x) column, 0 when empty."""
        filled = self.cells != 0
        any_filled = filled.any(axis=0)
        top = self.height - np.argmax(filled[::-1], axis=0)
        return np.where(any_filled, top, 0)

    def to_nested(self) -> List[List[List[Optional[dict]]]]:
        return [
            [
                [
                    {"color": self.palette[int(v) - 1]} if v else None
                    for v in row
                ]
                for row in layer
            ]
            for layer in self.cells
        ]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VolumeGrid):
            return NotImplemented
        if self.size != other.size:
            return False
        if self is other:
            return True
        return self.to_nested() == other.to_nested()

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        s = self.size
        return f"VolumeGrid({s.width}x{s.depth}x{s.height}, occupied={self.occupied_count()})"
