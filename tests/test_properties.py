import pytest

hypothesis = pytest.importorskip("hypothesis")
from hypothesis import given, settings, strategies as st

from labgrid.catalog import CellKind, footprint_of
from labgrid.grid import Cell, create_empty
from labgrid.normalize import reconcile
from labgrid.placement import check_placement, erase, place
from labgrid.rooms import join, split

FIXTURES = [CellKind.WORKSTATION, CellKind.DESK_2X2, CellKind.DESK_3X5, CellKind.RECEPTION]

rows = st.integers(min_value=-2, max_value=11)
cols = st.integers(min_value=-2, max_value=25)
kinds = st.sampled_from(FIXTURES)


@st.composite
def layouts(draw):
    g = create_empty()
    for row, col, kind in draw(st.lists(st.tuples(rows, cols, kinds), max_size=25)):
        g = place(row, col, kind, g)
    return g


@given(layouts(), rows, cols, kinds)
@settings(max_examples=200, deadline=None)
def test_place_is_all_or_nothing(grid, row, col, kind):
    fp = footprint_of(kind)
    out = place(row, col, kind, grid)
    if check_placement(row, col, fp, grid) is not None:
        assert out == grid
        return
    (new_id,) = out.group_ids() - grid.group_ids()
    members = [(r, c, cell) for r, c, cell in out.iter_cells() if cell.group_id == new_id]
    assert len(members) == fp.area
    assert all((cell.width, cell.height) == (fp.width, fp.height) for _, _, cell in members)
    assert [(r, c) for r, c, cell in members if cell.is_head] == [(row, col)]
    assert all(c != grid.wall_col for _, c, _ in members)


@given(layouts())
@settings(max_examples=100, deadline=None)
def test_every_group_is_a_headed_rectangle(grid):
    for group_id in grid.group_ids():
        coords = grid.group_members(group_id)
        top, left = min(r for r, _ in coords), min(c for _, c in coords)
        head = grid.cell(top, left)
        assert head.is_head
        assert len(coords) == head.width * head.height
        assert sum(grid.cell(r, c).is_head for r, c in coords) == 1
        assert all(grid.cell(r, c).kind == head.kind for r, c in coords)
    assert all(row[grid.wall_col].kind == CellKind.WALL for row in grid.cells)


@given(layouts(), st.data())
@settings(max_examples=100, deadline=None)
def test_erase_member_clears_group(grid, data):
    occupied = [(r, c) for r, c, cell in grid.iter_cells() if cell.group_id]
    if not occupied:
        return
    r, c = data.draw(st.sampled_from(occupied))
    group_id = grid.cell(r, c).group_id
    out = erase(r, c, grid)
    assert group_id not in out.group_ids()
    assert out.group_ids() == grid.group_ids() - {group_id}


@given(layouts(), st.data())
@settings(max_examples=100, deadline=None)
def test_reconcile_ignores_head_flags_and_is_idempotent(grid, data):
    # scramble every fixture's head flag and size, keeping membership
    updates = {}
    for r, c, cell in grid.iter_cells():
        if cell.group_id:
            updates[(r, c)] = Cell(cell.kind, cell.group_id,
                                   width=data.draw(st.none() | st.integers(0, 9)),
                                   height=data.draw(st.none() | st.integers(0, 9)),
                                   is_head=data.draw(st.booleans()))
    scrambled = grid.replace_cells(updates)
    fixed = reconcile(scrambled)
    assert fixed == grid
    assert reconcile(fixed) == fixed


@given(layouts())
@settings(max_examples=50, deadline=None)
def test_split_then_join(grid):
    assert join(*split(grid)) == grid
