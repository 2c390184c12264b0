"""
Grid Model
==========
The canonical lab floor: a fixed rows × cols matrix of cells shared by both
rooms, with one column permanently set to WALL as the divider.

Default geometry (matches the stored layouts the browser client writes):
  - 10 rows × 24 columns
  - wall at column 12 → Sala 1 = columns 0–11, Sala 2 = columns 13–23

Cells are immutable and grids are copy-on-write: every edit builds a new
Grid, so a caller holding the previous one never sees a half-applied change.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Set, Tuple

import numpy as np

from labgrid.catalog import CellKind, DESK_KINDS

# ── Grid geometry ─────────────────────────────────────────────────────────────
GRID_ROWS = 10
GRID_COLS = 24
WALL_COL = 12

Coord = Tuple[int, int]   # (row, col)


def _dimension(value) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except OverflowError as exc:
        raise ValueError(f"cell size {value!r} is not a finite number") from exc


@dataclass(frozen=True)
class Cell:
    kind: CellKind = CellKind.EMPTY
    group_id: Optional[str] = None   # shared by every cell of one placed fixture
    width: Optional[int] = None
    height: Optional[int] = None
    is_head: bool = False            # top-left cell of the fixture

    @property
    def is_empty(self) -> bool:
        return self.kind == CellKind.EMPTY

    @property
    def is_seat(self) -> bool:
        return self.kind == CellKind.WORKSTATION

    def to_dict(self) -> dict:
        return {
            "type": self.kind.value,
            "stamp": self.group_id,
            "w": self.width,
            "h": self.height,
            "head": self.is_head,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Cell":
        """Build a cell from its wire form. Raises ValueError/TypeError on bad input."""
        if not isinstance(data, dict):
            raise TypeError(f"cell must be an object, got {type(data).__name__}")
        w, h = data.get("w"), data.get("h")
        stamp = data.get("stamp")
        return cls(
            kind=CellKind(data.get("type", CellKind.EMPTY.value)),
            group_id=str(stamp) if stamp else None,
            width=_dimension(w),
            height=_dimension(h),
            is_head=bool(data.get("head", False)),
        )


EMPTY_CELL = Cell()
WALL_CELL = Cell(kind=CellKind.WALL)


def kind_matrix(cells: Sequence[Sequence[Cell]]) -> np.ndarray:
    """rows × cols array of kind codes ('empty', 'pc', ...)."""
    n_cols = len(cells[0]) if cells else 0
    codes = np.empty((len(cells), n_cols), dtype="U9")
    for r, row in enumerate(cells):
        for c, cell in enumerate(row):
            codes[r, c] = cell.kind.value
    return codes


@dataclass(frozen=True)
class Grid:
    cells: Tuple[Tuple[Cell, ...], ...]
    wall_col: int = WALL_COL

    @property
    def rows(self) -> int:
        return len(self.cells)

    @property
    def cols(self) -> int:
        return len(self.cells[0]) if self.cells else 0

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def cell(self, row: int, col: int) -> Cell:
        return self.cells[row][col]

    def iter_cells(self) -> Iterator[Tuple[int, int, Cell]]:
        for r, row in enumerate(self.cells):
            for c, cell in enumerate(row):
                yield r, c, cell

    def group_ids(self) -> Set[str]:
        return {cell.group_id for _, _, cell in self.iter_cells() if cell.group_id}

    def group_members(self, group_id: str) -> List[Coord]:
        return [(r, c) for r, c, cell in self.iter_cells() if cell.group_id == group_id]

    def replace_cells(self, updates: Dict[Coord, Cell]) -> "Grid":
        """New grid with the given cells swapped in; rows without updates are shared."""
        if not updates:
            return self
        by_row: Dict[int, Dict[int, Cell]] = {}
        for (r, c), cell in updates.items():
            by_row.setdefault(r, {})[c] = cell
        new_rows = []
        for r, row in enumerate(self.cells):
            patch = by_row.get(r)
            if patch is None:
                new_rows.append(row)
            else:
                new_rows.append(tuple(patch.get(c, cell) for c, cell in enumerate(row)))
        return Grid(cells=tuple(new_rows), wall_col=self.wall_col)

    def kind_codes(self) -> np.ndarray:
        return kind_matrix(self.cells)

    def stats(self) -> Dict[str, int]:
        """Fixture counts by head cell: workstations and desk-like blocks."""
        codes = self.kind_codes()
        heads = np.array([[cell.is_head for cell in row] for row in self.cells], dtype=bool)
        if heads.size == 0:
            return {"pcs": 0, "desks": 0}
        desk_mask = np.isin(codes, [k.value for k in DESK_KINDS])
        return {
            "pcs": int(np.count_nonzero(heads & (codes == CellKind.WORKSTATION.value))),
            "desks": int(np.count_nonzero(heads & desk_mask)),
        }

    def to_dict(self) -> dict:
        return {
            "cells": [[cell.to_dict() for cell in row] for row in self.cells],
            "rows": self.rows,
            "cols": self.cols,
            "wallCol": self.wall_col,
        }

    def to_snapshot(self, save_version: bool = False) -> dict:
        """Payload handed to the save collaborator."""
        return {
            "grid": [[cell.to_dict() for cell in row] for row in self.cells],
            "rows": self.rows,
            "cols": self.cols,
            "wallCol": self.wall_col,
            "saveVersion": save_version,
        }


def create_empty(rows: int = GRID_ROWS, cols: int = GRID_COLS, wall_col: int = WALL_COL) -> Grid:
    """All cells EMPTY except the wall column."""
    if rows <= 0 or cols <= 0:
        raise ValueError(f"Grid must be at least 1×1, got {rows}×{cols}")
    if not 0 <= wall_col < cols:
        raise ValueError(f"Wall column {wall_col} out of range 0–{cols - 1}")
    row = tuple(WALL_CELL if c == wall_col else EMPTY_CELL for c in range(cols))
    return Grid(cells=tuple(row for _ in range(rows)), wall_col=wall_col)


def grid_from_rows(rows: Sequence[Sequence[Cell]], wall_col: int = WALL_COL) -> Grid:
    return Grid(cells=tuple(tuple(row) for row in rows), wall_col=wall_col)
