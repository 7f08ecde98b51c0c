import numpy as np
import pytest

from tris3d.game import SHAPES, BoardLimits, BoardSize, Piece, VolumeGrid


SIZE = BoardSize(width=6, depth=6, height=12)


def seeded(size, filled):
    cells = np.zeros(size.shape, dtype=np.int16)
    for x, y, z in filled:
        cells[y, z, x] = 1
    return VolumeGrid(size, cells, ("#ffffff",))


def full_layer(size, y):
    return [(x, y, z) for x in range(size.width) for z in range(size.depth)]


def test_empty_grid_matches_board_size():
    grid = VolumeGrid.empty(SIZE)
    assert grid.cells.shape == (12, 6, 6)
    assert grid.occupied_count() == 0
    assert grid.find_full_layers() == []


def test_cells_are_read_only():
    grid = VolumeGrid.empty(SIZE)
    with pytest.raises(ValueError):
        grid.cells[0, 0, 0] = 1


@pytest.mark.parametrize("shape", SHAPES, ids=lambda s: s.name)
def test_can_place_rejects_out_of_bounds_on_every_axis(shape):
    grid = VolumeGrid.empty(SIZE)
    piece = Piece.spawn(shape, SIZE)
    assert grid.can_place(piece)
    for offset in [(SIZE.width, 0, 0), (-SIZE.width, 0, 0),
                   (0, 1, 0), (0, -SIZE.height, 0),
                   (0, 0, SIZE.depth), (0, 0, -SIZE.depth)]:
        assert not grid.can_place(piece, offset), offset


@pytest.mark.parametrize("shape", SHAPES, ids=lambda s: s.name)
def test_can_place_rejects_overlap(shape):
    piece = Piece.spawn(shape, SIZE)
    grid = VolumeGrid.empty(SIZE).merge(piece)
    assert not grid.can_place(piece)
    # a single occupied cell under any piece cell is enough
    x, y, z = piece.absolute_cells()[0]
    grid = seeded(SIZE, [(x, y - 3, z)])
    assert not grid.can_place(piece, (0, -3, 0))


def test_merge_returns_new_grid_and_skips_out_of_bounds():
    domino = next(s for s in SHAPES if s.name == "Domino")
    piece = Piece(domino, domino.cells, (-1, 0, 0))
    grid = VolumeGrid.empty(SIZE)
    merged = grid.merge(piece)
    assert grid.occupied_count() == 0
    assert merged.occupied_count() == 1
    assert merged.color_at(0, 0, 0) == domino.color
    assert merged.to_nested()[0][0][0] == {"color": domino.color}
    assert merged.to_nested()[0][0][1] is None


def test_find_full_layers_is_sorted():
    filled = full_layer(SIZE, 4) + full_layer(SIZE, 1) + [(0, 2, 0)]
    grid = seeded(SIZE, filled)
    assert grid.find_full_layers() == [1, 4]


def test_collapse_with_nothing_cleared_is_identity():
    grid = seeded(SIZE, [(1, 0, 1), (2, 3, 4)])
    assert grid.collapse([]) == grid


def test_collapse_shifts_layers_down_and_refills_top():
    filled = full_layer(SIZE, 0) + full_layer(SIZE, 1) + [(1, 2, 1), (4, 4, 2)]
    grid = seeded(SIZE, filled)
    before = grid.occupied_count()
    collapsed = grid.collapse(grid.find_full_layers())
    assert collapsed.occupied_count() == before - 2 * SIZE.width * SIZE.depth
    assert collapsed.is_occupied(1, 0, 1)
    assert collapsed.is_occupied(4, 2, 2)
    assert not collapsed.is_occupied(4, 4, 2)
    assert collapsed.cells.shape == grid.cells.shape
    assert not collapsed.cells[-2:].any()


def test_remove_cells():
    grid = seeded(SIZE, [(1, 0, 1), (2, 0, 2)])
    removed = grid.remove_cells([(1, 0, 1), (9, 9, 9)])
    assert removed.occupied_count() == 1
    assert grid.occupied_count() == 2


def test_column_heights():
    grid = seeded(SIZE, [(1, 0, 2), (1, 3, 2), (5, 0, 5)])
    heights = grid.column_heights()
    assert heights[2, 1] == 4
    assert heights[5, 5] == 1
    assert heights[0, 0] == 0


def test_board_limits_clamp():
    limits = BoardLimits()
    assert limits.clamp(3) == 6
    assert limits.clamp(20) == 14
    assert limits.clamp(9.4) == 9
    assert limits.clamp(float("nan")) is None
    assert limits.clamp(float("inf")) is None
    assert limits.clamp("wide") is None
