import numpy as np
import pytest

from tris3d.game import (
    KICK_OFFSETS,
    SHAPES,
    Axis,
    BoardSize,
    Piece,
    PieceKind,
    VolumeGrid,
    resolve_rotation,
    rotate_cell,
)


SIZE = BoardSize(width=6, depth=6, height=12)


def shape_named(name):
    return next(s for s in SHAPES if s.name == name)


def test_rotate_cell_quarter_turns():
    assert rotate_cell((1, 2, 3), Axis.X) == (1, -3, 2)
    assert rotate_cell((1, 2, 3), Axis.Y) == (3, 2, -1)
    assert rotate_cell((1, 2, 3), Axis.Z) == (-2, 1, 3)
    assert rotate_cell((1, 2, 3), "z") == (-2, 1, 3)


@pytest.mark.parametrize("shape", SHAPES, ids=lambda s: s.name)
@pytest.mark.parametrize("axis", list(Axis))
def test_four_rotations_restore_offsets(shape, axis):
    piece = Piece.spawn(shape, SIZE)
    rotated = piece
    for _ in range(4):
        rotated = rotated.rotated(axis)
    assert rotated.cells == piece.cells
    assert rotated.position == piece.position


def test_rotation_returns_a_new_piece():
    piece = Piece.spawn(shape_named("L"), SIZE)
    turned = piece.rotated(Axis.Y)
    assert turned is not piece
    assert piece.cells == shape_named("L").cells


def test_spawn_puts_top_offset_on_top_layer():
    size = BoardSize(10, 10, 20)
    piece = Piece.spawn(shape_named("Cube"), size)
    assert piece.position == (5, 18, 5)
    assert max(y for _, y, _ in piece.absolute_cells()) == size.height - 1


def test_catalog_has_one_weighted_bomb():
    bombs = [s for s in SHAPES if s.kind is PieceKind.BOMB]
    assert len(bombs) == 1
    assert bombs[0].weight == pytest.approx(0.2)
    assert all(s.weight == 1.0 for s in SHAPES if s.kind is PieceKind.NORMAL)


def test_kick_table_order():
    assert len(KICK_OFFSETS) == 124
    assert (0, 0, 0) not in KICK_OFFSETS
    assert all(max(abs(c) for c in o) <= 2 for o in KICK_OFFSETS)
    keys = [(abs(x) + abs(y) + abs(z), abs(y), abs(x), abs(z)) for x, y, z in KICK_OFFSETS]
    assert keys == sorted(keys)
    assert KICK_OFFSETS[:6] == (
        (0, 0, 1), (0, 0, -1), (1, 0, 0), (-1, 0, 0), (0, 1, 0), (0, -1, 0),
    )


def test_rotation_kicks_off_the_wall():
    bar = shape_named("I")
    piece = Piece(bar, bar.cells, (3, 0, 0))
    grid = VolumeGrid.empty(SIZE)
    assert not grid.can_place(piece.rotated(Axis.Y))
    kicked = resolve_rotation(grid, piece, Axis.Y)
    assert kicked is not None
    assert kicked.position == (3, 0, 1)
    assert grid.can_place(kicked)


def test_rotation_in_place_when_it_fits():
    bar = shape_named("I")
    piece = Piece(bar, bar.cells, (3, 5, 3))
    turned = resolve_rotation(VolumeGrid.empty(SIZE), piece, Axis.Z)
    assert turned.position == piece.position
    assert turned.cells == piece.rotated(Axis.Z).cells


def test_rotation_rejected_when_no_kick_fits():
    bar = shape_named("I")
    piece = Piece(bar, bar.cells, (3, 5, 3))
    cells = np.ones(SIZE.shape, dtype=np.int16)
    for x, y, z in piece.absolute_cells():
        cells[y, z, x] = 0
    grid = VolumeGrid(SIZE, cells, ("#ffffff",))
    assert grid.can_place(piece)
    assert resolve_rotation(grid, piece, Axis.Y) is None
