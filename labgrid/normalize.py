"""
Normalizer
==========
Boundary between untrusted grid snapshots and the engine.

A stored layout only reliably says which cells belong to which fixture
(the shared group id). Everything derived from that membership (width,
height, the head flag, even the kind of stray members) is recomputed here
from the member coordinates, whatever the snapshot claimed.

Groups that cannot describe one rectangular fixture are dropped back to
EMPTY: members not filling their bounding box (wall cells never count as
members, so a group reaching across the wall always falls here), a box
whose size is not the footprint of the group's kind, or no member
carrying a fixture kind.
"""

from __future__ import annotations
import logging
from collections import defaultdict
from typing import Dict, List, Optional

from labgrid.catalog import footprint_of, is_fixture
from labgrid.grid import (
    Cell, Coord, EMPTY_CELL, GRID_COLS, GRID_ROWS, Grid, WALL_CELL, WALL_COL,
    create_empty, grid_from_rows,
)

logger = logging.getLogger(__name__)


class SnapshotError(ValueError):
    """A raw grid snapshot that cannot be used at all."""


def reconcile(grid: Grid) -> Grid:
    """Rebuild width/height/kind/head for every group from actual membership."""
    members: Dict[str, List[Coord]] = defaultdict(list)
    for r, c, cell in grid.iter_cells():
        if c != grid.wall_col and cell.group_id:
            members[cell.group_id].append((r, c))

    new_rows = [
        [WALL_CELL if c == grid.wall_col else EMPTY_CELL for c in range(grid.cols)]
        for _ in range(grid.rows)
    ]

    for group_id, coords in members.items():
        top = min(r for r, _ in coords)
        bottom = max(r for r, _ in coords)
        left = min(c for _, c in coords)
        right = max(c for _, c in coords)
        width, height = right - left + 1, bottom - top + 1

        kind = next((grid.cell(r, c).kind for r, c in coords if is_fixture(grid.cell(r, c).kind)), None)
        if kind is None:
            logger.warning("Dropping group %s: no member has a fixture kind", group_id)
            continue
        if len(coords) != width * height:
            logger.warning("Dropping group %s: %d cells do not fill a %dx%d box",
                           group_id, len(coords), width, height)
            continue
        footprint = footprint_of(kind)
        if (width, height) != (footprint.width, footprint.height):
            logger.warning("Dropping group %s: %dx%d box is not a %s (%dx%d)",
                           group_id, width, height, kind.value, footprint.width, footprint.height)
            continue

        for r, c in coords:
            new_rows[r][c] = Cell(
                kind=kind,
                group_id=group_id,
                width=width,
                height=height,
                is_head=(r == top and c == left),
            )

    return grid_from_rows(new_rows, wall_col=grid.wall_col)


def _cell_matrix(raw: dict):
    """Load responses carry `cells`, saved payloads and archived versions carry `grid`."""
    if "cells" in raw:
        return raw["cells"]
    return raw.get("grid")


def parse_snapshot(raw, rows: int = GRID_ROWS, cols: int = GRID_COLS,
                   wall_col: int = WALL_COL) -> Grid:
    """
    Turn a raw snapshot into a Grid of the expected geometry.
    Raises SnapshotError for anything that does not match; cell metadata is
    taken verbatim and still needs reconcile().
    """
    if not isinstance(raw, dict):
        raise SnapshotError(f"snapshot must be an object, got {type(raw).__name__}")
    if isinstance(raw.get("grid"), dict) and "cells" not in raw:
        raw = {**raw["grid"], **{k: v for k, v in raw.items() if k != "grid"}}

    declared = {"rows": rows, "cols": cols, "wallCol": wall_col}
    for key, expected in declared.items():
        if key in raw and raw[key] != expected:
            raise SnapshotError(f"{key}={raw[key]!r} does not match expected {expected}")

    matrix = _cell_matrix(raw)
    if not isinstance(matrix, list) or len(matrix) != rows:
        raise SnapshotError(f"expected {rows} rows of cells")
    parsed = []
    for r, row in enumerate(matrix):
        if not isinstance(row, list) or len(row) != cols:
            raise SnapshotError(f"row {r} does not have {cols} cells")
        try:
            parsed.append([Cell.from_dict(cell) for cell in row])
        except (TypeError, ValueError, OverflowError) as exc:
            raise SnapshotError(f"bad cell in row {r}: {exc}") from exc
    return grid_from_rows(parsed, wall_col=wall_col)


def ingest(raw: Optional[dict], rows: int = GRID_ROWS, cols: int = GRID_COLS,
           wall_col: int = WALL_COL) -> Grid:
    """Canonical grid from an external snapshot; malformed or absent → empty grid."""
    if raw is None:
        return create_empty(rows, cols, wall_col)
    try:
        grid = parse_snapshot(raw, rows, cols, wall_col)
    except SnapshotError as exc:
        logger.warning("Discarding malformed grid snapshot: %s", exc)
        return create_empty(rows, cols, wall_col)
    return reconcile(grid)
