"""
Room Partitioner
================
Derives the two lab rooms from the shared grid.

  Sala 1 = columns [0, wall_col)
  Sala 2 = columns (wall_col, cols), re-indexed from 0

The slice shares the grid's cells untouched; fixtures never straddle the
wall, so no fixture is cut in half by the split.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from labgrid.errors import NotFoundError
from labgrid.grid import Cell, Coord, Grid, WALL_CELL, kind_matrix
from labgrid.catalog import CellKind

ROOM_KEYS = ("sala1", "sala2")
ROOM_NAMES = {"sala1": "Sala 1", "sala2": "Sala 2"}


@dataclass(frozen=True)
class Room:
    key: str
    name: str
    layout: Tuple[Tuple[Cell, ...], ...]

    @property
    def rows(self) -> int:
        return len(self.layout)

    @property
    def cols(self) -> int:
        return len(self.layout[0]) if self.layout else 0

    def cell(self, row: int, col: int) -> Optional[Cell]:
        if 0 <= row < self.rows and 0 <= col < self.cols:
            return self.layout[row][col]
        return None

    def iter_cells(self) -> Iterator[Tuple[int, int, Cell]]:
        for r, row in enumerate(self.layout):
            for c, cell in enumerate(row):
                yield r, c, cell

    def seats(self) -> List[Coord]:
        codes = kind_matrix(self.layout)
        return [(int(r), int(c)) for r, c in zip(*(codes == CellKind.WORKSTATION.value).nonzero())]

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "name": self.name,
            "rows": self.rows,
            "cols": self.cols,
            "layout": [[cell.to_dict() for cell in row] for row in self.layout],
        }


@dataclass
class RoomStatus:
    """Operator switch for a whole room: disabled rooms show who booked them."""
    disabled: bool = False
    reserved_by: Optional[str] = None

    def to_dict(self) -> dict:
        return {"disabled": self.disabled, "reservedBy": self.reserved_by}


def split(grid: Grid) -> List[Room]:
    left = tuple(row[:grid.wall_col] for row in grid.cells)
    right = tuple(row[grid.wall_col + 1:] for row in grid.cells)
    return [
        Room(key=ROOM_KEYS[0], name=ROOM_NAMES[ROOM_KEYS[0]], layout=left),
        Room(key=ROOM_KEYS[1], name=ROOM_NAMES[ROOM_KEYS[1]], layout=right),
    ]


def join(room_a: Room, room_b: Room) -> Grid:
    """Inverse of split(): both layouts side by side with a wall column between."""
    if room_a.rows != room_b.rows:
        raise ValueError(f"Room heights differ: {room_a.rows} vs {room_b.rows}")
    rows = tuple(a + (WALL_CELL,) + b for a, b in zip(room_a.layout, room_b.layout))
    return Grid(cells=rows, wall_col=room_a.cols)


def room_by_key(rooms: Sequence[Room], key: str) -> Room:
    for room in rooms:
        if room.key == key:
            return room
    raise NotFoundError(f"Unknown room '{key}'")
