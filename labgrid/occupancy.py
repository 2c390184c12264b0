"""
Occupancy Merger
================
Combines a room layout with the reservations reported by the backend and the
browsing user's selection into a status per seat.

  occupied  – the seat appears in the occupied list (pending or active)
  selected  – the seat is the current selection
  free      – anything else

Only WORKSTATION cells are seats. Each user may select one seat across
*both* rooms; picking a new one replaces the old. SelectionBoard keeps
those per-user selections apart.
"""

from __future__ import annotations
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional, Set

from labgrid.grid import Coord
from labgrid.rooms import Room, RoomStatus

logger = logging.getLogger(__name__)


class SeatStatus(str, Enum):
    FREE     = "free"
    SELECTED = "selected"
    OCCUPIED = "occupied"


class OccupancyStatus(str, Enum):
    PENDING = "pending"   # requested, waiting for the desk to validate the code
    ACTIVE  = "active"    # validated, user is at the workstation


@dataclass(frozen=True)
class OccupiedSeat:
    room_key: str
    row: int
    col: int
    status: OccupancyStatus = OccupancyStatus.PENDING

    def to_dict(self) -> dict:
        return {
            "roomKey": self.room_key,
            "row": self.row,
            "col": self.col,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "OccupiedSeat":
        """Accepts the camelCase shape and the backend's snake_case one."""
        return cls(
            room_key=data.get("roomKey", data.get("room_key")),
            row=int(data.get("row", data.get("seat_row"))),
            col=int(data.get("col", data.get("seat_col"))),
            status=OccupancyStatus(data.get("status", OccupancyStatus.PENDING.value)),
        )


@dataclass(frozen=True)
class SeatRef:
    room_key: str
    row: int
    col: int

    @property
    def seat_id(self) -> str:
        return f"{self.row}-{self.col}"

    def to_dict(self) -> dict:
        return {"roomKey": self.room_key, "row": self.row, "col": self.col, "seatId": self.seat_id}


def occupied_coords(occupied_seats: Iterable[OccupiedSeat], room_key: str) -> Set[Coord]:
    return {(s.row, s.col) for s in occupied_seats if s.room_key == room_key}


class SeatSelection:
    """The single seat a user has picked, across all rooms."""

    def __init__(self):
        self.current: Optional[SeatRef] = None

    def is_selected(self, room_key: str, row: int, col: int) -> bool:
        return self.current == SeatRef(room_key, row, col)

    def can_select(self, room: Room, row: int, col: int,
                   occupied_seats: Iterable[OccupiedSeat],
                   status: Optional[RoomStatus] = None) -> bool:
        cell = room.cell(row, col)
        if cell is None or not cell.is_seat:
            return False
        if status is not None and status.disabled:
            return False
        return (row, col) not in occupied_coords(occupied_seats, room.key)

    def select(self, room: Room, row: int, col: int,
               occupied_seats: Iterable[OccupiedSeat],
               status: Optional[RoomStatus] = None) -> bool:
        """Make (room, row, col) the only selection. False = rejected, nothing changed."""
        occupied_seats = list(occupied_seats)
        if not self.can_select(room, row, col, occupied_seats, status):
            logger.debug("select %s %d-%d rejected", room.key, row, col)
            return False
        self.current = SeatRef(room.key, row, col)
        return True

    def toggle(self, room: Room, row: int, col: int,
               occupied_seats: Iterable[OccupiedSeat],
               status: Optional[RoomStatus] = None) -> bool:
        """Click behaviour: clicking the selected seat again deselects it."""
        occupied_seats = list(occupied_seats)
        if not self.can_select(room, row, col, occupied_seats, status):
            return False
        if self.is_selected(room.key, row, col):
            self.current = None
            return True
        return self.select(room, row, col, occupied_seats, status)

    def clear(self, room_key: Optional[str] = None):
        if room_key is None or (self.current and self.current.room_key == room_key):
            self.current = None

    def to_dict(self) -> dict:
        return {"selected": self.current.to_dict() if self.current else None}


class SelectionBoard:
    """Each browsing user's own SeatSelection, keyed by lowercased email."""

    def __init__(self):
        self._by_user: Dict[str, SeatSelection] = {}

    @staticmethod
    def _key(user_email: Optional[str]) -> str:
        return (user_email or "").strip().lower()

    def for_user(self, user_email: Optional[str]) -> SeatSelection:
        key = self._key(user_email)
        if not key:
            raise ValueError("Missing 'userEmail'")
        return self._by_user.setdefault(key, SeatSelection())

    def peek(self, user_email: Optional[str]) -> SeatSelection:
        """Read-only view: an unknown or missing user gets an empty selection."""
        return self._by_user.get(self._key(user_email)) or SeatSelection()

    def clear_room(self, room_key: str):
        for selection in self._by_user.values():
            selection.clear(room_key)

    def drop_seat(self, room_key: str, row: int, col: int):
        """Forget a seat everywhere once it has been reserved."""
        for selection in self._by_user.values():
            if selection.is_selected(room_key, row, col):
                selection.clear()


def seat_status(room: Room, occupied_seats: Iterable[OccupiedSeat],
                selection: Optional[SeatSelection] = None) -> Dict[Coord, SeatStatus]:
    taken = occupied_coords(occupied_seats, room.key)
    out: Dict[Coord, SeatStatus] = {}
    for r, c, cell in room.iter_cells():
        if not cell.is_seat:
            continue
        if (r, c) in taken:
            out[(r, c)] = SeatStatus.OCCUPIED
        elif selection is not None and selection.is_selected(room.key, r, c):
            out[(r, c)] = SeatStatus.SELECTED
        else:
            out[(r, c)] = SeatStatus.FREE
    return out


def room_counts(room: Room, occupied_seats: Iterable[OccupiedSeat],
                selection: Optional[SeatSelection] = None) -> Dict[str, int]:
    statuses = list(seat_status(room, occupied_seats, selection).values())
    total = len(statuses)
    occupied = statuses.count(SeatStatus.OCCUPIED)
    return {
        "totalSeats": total,
        "occupied": occupied,
        "available": max(total - occupied, 0),
        "selectedCount": statuses.count(SeatStatus.SELECTED),
    }


def room_view(room: Room, status: Optional[RoomStatus],
              occupied_seats: Iterable[OccupiedSeat],
              selection: Optional[SeatSelection] = None) -> dict:
    """Everything the browsing page needs to draw one room."""
    occupied_seats = list(occupied_seats)
    status = status or RoomStatus()
    seats = seat_status(room, occupied_seats, selection)
    view = room.to_dict()
    view.update({
        "disabled": status.disabled,
        "reservedBy": status.reserved_by,
        "seats": [
            {"row": r, "col": c, "seatId": f"{r}-{c}", "status": s.value}
            for (r, c), s in sorted(seats.items())
        ],
        "counts": room_counts(room, occupied_seats, selection),
    })
    return view
