import pytest

from labgrid.catalog import CellKind, Footprint
from labgrid.grid import EMPTY_CELL, create_empty
from labgrid.placement import (
    CELLS_OCCUPIED, CROSSES_WALL, OUT_OF_BOUNDS, DragPainter, GroupIdFactory,
    apply_tool, check_placement, erase, place,
)


def group_cells(grid, group_id):
    return [(r, c, cell) for r, c, cell in grid.iter_cells() if cell.group_id == group_id]


def test_workstation_at_origin(grid):
    out = place(0, 0, CellKind.WORKSTATION, grid)
    cell = out.cell(0, 0)
    assert cell.kind == CellKind.WORKSTATION
    assert cell.group_id
    assert (cell.width, cell.height, cell.is_head) == (1, 1, True)


def test_long_desk_right_of_wall(grid):
    out = place(0, 13, CellKind.DESK_3X5, grid)
    group_id = out.cell(0, 13).group_id
    members = group_cells(out, group_id)
    assert len(members) == 15
    assert {r for r, _, _ in members} == {0, 1, 2}
    assert {c for _, c, _ in members} == {13, 14, 15, 16, 17}
    heads = [(r, c) for r, c, cell in members if cell.is_head]
    assert heads == [(0, 13)]
    assert all(cell.width == 5 and cell.height == 3 for _, _, cell in members)


def test_desk_touching_wall_is_rejected(grid):
    assert place(0, 11, CellKind.DESK_2X2, grid) is grid
    assert check_placement(0, 11, Footprint(2, 2), grid) == CROSSES_WALL


def test_desk_flush_against_wall_fits(grid):
    out = place(0, 10, CellKind.DESK_2X2, grid)
    assert len(group_cells(out, out.cell(0, 10).group_id)) == 4
    assert out.cell(0, 12).kind == CellKind.WALL


@pytest.mark.parametrize("row,col,kind", [
    (4, 0, CellKind.RECEPTION),    # 7 rows tall from row 4 runs off the bottom
    (0, 20, CellKind.DESK_3X5),    # 5 wide from column 20 runs off the right
    (-1, 0, CellKind.WORKSTATION),
    (0, 24, CellKind.WORKSTATION),
    (9, 23, CellKind.DESK_2X2),
])
def test_out_of_bounds_is_noop(grid, row, col, kind):
    assert place(row, col, kind, grid) is grid


def test_reception_fits_from_row_three(grid):
    out = place(3, 0, CellKind.RECEPTION, grid)
    assert [out.cell(r, 0).kind for r in range(3, 10)] == [CellKind.RECEPTION] * 7
    assert check_placement(4, 0, Footprint(1, 7), grid) == OUT_OF_BOUNDS


def test_overlap_is_rejected(grid):
    with_desk = place(0, 0, CellKind.DESK_2X2, grid)
    assert place(1, 1, CellKind.WORKSTATION, with_desk) is with_desk
    assert check_placement(1, 1, Footprint(1, 1), with_desk) == CELLS_OCCUPIED


def test_wall_and_unknown_kinds_are_noop(grid):
    assert place(0, 0, CellKind.WALL, grid) is grid
    assert place(0, 0, "sofa", grid) is grid


def test_place_does_not_touch_input(grid):
    place(2, 2, CellKind.DESK_3X5, grid)
    assert all(cell.is_empty for r, c, cell in grid.iter_cells() if c != 12)


def test_each_placement_gets_its_own_group(grid):
    out = place(0, 0, CellKind.WORKSTATION, grid)
    out = place(0, 1, CellKind.WORKSTATION, out)
    assert out.cell(0, 0).group_id != out.cell(0, 1).group_id


def test_group_ids_are_deterministic(grid):
    ids = GroupIdFactory()
    out = place(0, 0, CellKind.WORKSTATION, grid, ids=ids)
    out = place(5, 5, CellKind.DESK_2X2, out, ids=ids)
    assert out.cell(0, 0).group_id == "pc-1"
    assert out.cell(5, 5).group_id == "desk2-2"


def test_group_id_factory_skips_ids_in_use():
    ids = GroupIdFactory()
    assert ids.next_id(CellKind.WORKSTATION, {"pc-1", "pc-2"}) == "pc-3"


def test_erase_member_removes_whole_group(grid):
    out = place(0, 13, CellKind.DESK_3X5, grid)
    out = place(5, 0, CellKind.WORKSTATION, out)
    cleared = erase(2, 17, out)
    assert all(cleared.cell(r, c) == EMPTY_CELL for r in range(3) for c in range(13, 18))
    assert cleared.cell(5, 0).kind == CellKind.WORKSTATION


def test_erase_empty_and_wall_are_noop(grid):
    assert erase(0, 0, grid) is grid
    assert erase(0, 12, grid) is grid
    assert erase(30, 30, grid) is grid


def test_empty_tool_erases(grid):
    out = place(4, 4, CellKind.DESK_2X2, grid)
    assert place(5, 5, CellKind.EMPTY, out) == grid


def test_apply_tool_ignores_wall_column(grid):
    assert apply_tool(3, 12, CellKind.WORKSTATION, grid) is grid
    assert apply_tool(3, 12, CellKind.EMPTY, grid) is grid


def test_drag_paints_each_new_cell():
    painter = DragPainter(CellKind.WORKSTATION)
    g = create_empty()
    g = painter.down(0, 0, g)
    for col in range(1, 14):           # sweeps across the wall
        g = painter.enter(0, col, g)
    painter.up()
    g = painter.enter(1, 0, g)         # no longer dragging
    assert g.stats()["pcs"] == 12 + 1  # 0–11 and 13; the wall is skipped
    assert g.cell(0, 12).kind == CellKind.WALL
    assert g.cell(1, 0).is_empty


def test_drag_skips_blocked_cells(grid):
    painter = DragPainter(CellKind.DESK_2X2)
    g = painter.down(0, 0, grid)
    g = painter.enter(0, 1, g)         # overlaps the desk just placed
    g = painter.enter(0, 2, g)
    painter.leave()
    assert g.stats()["desks"] == 2
    assert not painter.dragging
