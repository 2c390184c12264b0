"""
Placement Engine
================
Place and erase multi-cell fixtures on a Grid.

Rules for placing a fixture with its top-left corner at (row, col):
  - the kind must have a footprint (EMPTY means "erase", WALL is never placed)
  - the whole rectangle must lie inside the grid
  - the rectangle's column range must not contain the wall column
  - every covered cell must be EMPTY

A rejected edit is not an error: the input grid comes back unchanged, so a
drag that sweeps over blocked cells just skips them. Accepted edits return a
new Grid; the input is never modified.
"""

from __future__ import annotations
import logging
from typing import Optional, Set

import numpy as np

from labgrid.catalog import CellKind, Footprint, footprint_of
from labgrid.grid import Cell, EMPTY_CELL, Grid

logger = logging.getLogger(__name__)

# Rejection reasons reported by check_placement()
UNKNOWN_KIND   = "unknown_kind"
OUT_OF_BOUNDS  = "out_of_bounds"
CROSSES_WALL   = "crosses_wall"
CELLS_OCCUPIED = "occupied"


class GroupIdFactory:
    """Monotonic fixture ids ('pc-1', 'desk2-2', ...), skipping ids already on the grid."""

    def __init__(self):
        self._counter = 0

    def next_id(self, kind: CellKind, taken: Set[str]) -> str:
        while True:
            self._counter += 1
            group_id = f"{kind.value}-{self._counter}"
            if group_id not in taken:
                return group_id


_default_ids = GroupIdFactory()


def _coerce_kind(kind) -> Optional[CellKind]:
    try:
        return CellKind(kind)
    except ValueError:
        return None


def check_placement(row: int, col: int, footprint: Footprint, grid: Grid) -> Optional[str]:
    """Return why a fixture cannot go at (row, col), or None if it fits."""
    w, h = footprint.width, footprint.height
    if row < 0 or col < 0 or row + h > grid.rows or col + w > grid.cols:
        return OUT_OF_BOUNDS
    # inclusive column range [col, col + w - 1] must not contain the wall
    if col <= grid.wall_col <= col + w - 1:
        return CROSSES_WALL
    window = grid.kind_codes()[row:row + h, col:col + w]
    if not np.all(window == CellKind.EMPTY.value):
        return CELLS_OCCUPIED
    return None


def place(row: int, col: int, kind, grid: Grid,
          ids: Optional[GroupIdFactory] = None) -> Grid:
    """Stamp a fixture with its head at (row, col). Returns `grid` itself when rejected."""
    kind = _coerce_kind(kind)
    if kind is None:
        return grid
    if kind == CellKind.EMPTY:
        return erase(row, col, grid)

    fp = footprint_of(kind)
    if fp is None:
        return grid
    reason = check_placement(row, col, fp, grid)
    if reason is not None:
        logger.debug("place %s at (%d, %d) rejected: %s", kind.value, row, col, reason)
        return grid

    group_id = (ids or _default_ids).next_id(kind, grid.group_ids())
    updates = {}
    for i in range(fp.height):
        for j in range(fp.width):
            updates[(row + i, col + j)] = Cell(
                kind=kind,
                group_id=group_id,
                width=fp.width,
                height=fp.height,
                is_head=(i == 0 and j == 0),
            )
    return grid.replace_cells(updates)


def erase(row: int, col: int, grid: Grid) -> Grid:
    """Clear the fixture covering (row, col), or just that cell if it has no group."""
    if not grid.in_bounds(row, col) or col == grid.wall_col:
        return grid
    target = grid.cell(row, col)
    if target.group_id:
        members = grid.group_members(target.group_id)
        return grid.replace_cells({rc: EMPTY_CELL for rc in members if rc[1] != grid.wall_col})
    if target.is_empty:
        return grid
    return grid.replace_cells({(row, col): EMPTY_CELL})


def apply_tool(row: int, col: int, tool, grid: Grid,
               ids: Optional[GroupIdFactory] = None) -> Grid:
    """One palette click: the wall column ignores every tool."""
    if col == grid.wall_col:
        return grid
    return place(row, col, tool, grid, ids=ids)


class DragPainter:
    """
    Pointer state for drag-painting: down() applies the tool and starts a
    drag, enter() re-applies it on each new cell while dragging, up()/leave()
    end the drag. Every application is validated on its own.
    """

    def __init__(self, tool=CellKind.WORKSTATION, ids: Optional[GroupIdFactory] = None):
        self.tool = CellKind(tool)
        self.dragging = False
        self._ids = ids

    def set_tool(self, tool):
        self.tool = CellKind(tool)

    def down(self, row: int, col: int, grid: Grid) -> Grid:
        self.dragging = True
        return apply_tool(row, col, self.tool, grid, ids=self._ids)

    def enter(self, row: int, col: int, grid: Grid) -> Grid:
        if not self.dragging:
            return grid
        return apply_tool(row, col, self.tool, grid, ids=self._ids)

    def up(self):
        self.dragging = False

    leave = up
