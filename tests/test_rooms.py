import pytest

from labgrid.catalog import CellKind
from labgrid.errors import NotFoundError
from labgrid.placement import place
from labgrid.rooms import join, room_by_key, split


def test_split_sizes(grid):
    sala1, sala2 = split(grid)
    assert (sala1.key, sala1.name, sala1.rows, sala1.cols) == ("sala1", "Sala 1", 10, 12)
    assert (sala2.key, sala2.name, sala2.rows, sala2.cols) == ("sala2", "Sala 2", 10, 11)
    assert all(cell.kind != CellKind.WALL for room in (sala1, sala2) for _, _, cell in room.iter_cells())


def test_second_room_is_reindexed(grid):
    g = place(0, 13, CellKind.DESK_3X5, grid)
    g = place(9, 23, CellKind.WORKSTATION, g)
    _, sala2 = split(g)
    assert sala2.cell(0, 0).is_head and sala2.cell(0, 0).kind == CellKind.DESK_3X5
    assert sala2.cell(9, 10).kind == CellKind.WORKSTATION
    assert sala2.cell(0, 11) is None
    assert sala2.seats() == [(9, 10)]


def test_split_shares_cells(grid):
    g = place(4, 4, CellKind.DESK_2X2, grid)
    sala1, _ = split(g)
    assert sala1.cell(4, 4) is g.cell(4, 4)


def test_join_reproduces_grid(grid):
    g = place(0, 0, CellKind.RECEPTION, grid)
    g = place(2, 15, CellKind.DESK_2X2, g)
    assert join(*split(g)) == g


def test_room_by_key(grid):
    rooms = split(grid)
    assert room_by_key(rooms, "sala2") is rooms[1]
    with pytest.raises(NotFoundError):
        room_by_key(rooms, "sala3")
