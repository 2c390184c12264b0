"""
Reservation Book
================
Tracks seat reservations and produces the occupied-seat list the Occupancy
Merger consumes.

Lifecycle of a reservation:
  pending   – created from the user's selected seat; seat shows as occupied
  active    – front desk checked the user's code; user is at the workstation
  released  – workstation handed back; seat is free again

One open (pending or active) reservation per seat and per user.
"""

from __future__ import annotations
import logging
import secrets
import string
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from labgrid.errors import NotFoundError
from labgrid.occupancy import OccupancyStatus, OccupiedSeat
from labgrid.rooms import Room, RoomStatus

logger = logging.getLogger(__name__)

CODE_LENGTH = 6
CODE_ALPHABET = string.ascii_uppercase + string.digits


class ReservationError(ValueError):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _random_code() -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


@dataclass
class Reservation:
    reservation_id: str
    room_key: str
    room_name: str
    seat_row: int
    seat_col: int
    code: str
    user_email: str
    user_name: Optional[str] = None
    status: OccupancyStatus = OccupancyStatus.PENDING
    requested_at: Optional[datetime] = None
    released_at: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.released_at is None

    def to_occupied(self) -> OccupiedSeat:
        return OccupiedSeat(self.room_key, self.seat_row, self.seat_col, self.status)

    def to_dict(self) -> dict:
        return {
            "id": self.reservation_id,
            "status": "released" if not self.is_open else self.status.value,
            "code": self.code,
            "seatRow": self.seat_row,
            "seatCol": self.seat_col,
            "requestedAt": self.requested_at.isoformat() if self.requested_at else None,
            "releasedAt": self.released_at.isoformat() if self.released_at else None,
            "roomKey": self.room_key,
            "roomName": self.room_name,
            "userName": self.user_name,
            "userEmail": self.user_email,
        }


class ReservationBook:
    def __init__(self, clock: Callable[[], datetime] = _utcnow,
                 code_factory: Callable[[], str] = _random_code):
        self._clock = clock
        self._code_factory = code_factory
        self._reservations: Dict[str, Reservation] = {}
        self._lock = threading.Lock()

    def _open(self) -> List[Reservation]:
        return [r for r in self._reservations.values() if r.is_open]

    def create(self, room: Room, row: int, col: int, user_email: str,
               user_name: Optional[str] = None,
               room_status: Optional[RoomStatus] = None) -> Reservation:
        cell = room.cell(row, col)
        if cell is None or not cell.is_seat:
            raise ReservationError(f"{room.name} F{row + 1}-E{col + 1} is not a workstation")
        if room_status is not None and room_status.disabled:
            raise ReservationError(f"{room.name} is not available")
        user_email = (user_email or "").strip().lower()
        if not user_email:
            raise ReservationError("A user email is required")

        with self._lock:
            for other in self._open():
                if (other.room_key, other.seat_row, other.seat_col) == (room.key, row, col):
                    raise ReservationError(f"{room.name} F{row + 1}-E{col + 1} is already taken")
                if other.user_email == user_email:
                    raise ReservationError("Only one workstation can be reserved per user")
            reservation = Reservation(
                reservation_id=uuid.uuid4().hex,
                room_key=room.key,
                room_name=room.name,
                seat_row=row,
                seat_col=col,
                code=self._code_factory(),
                user_email=user_email,
                user_name=user_name,
                requested_at=self._clock(),
            )
            self._reservations[reservation.reservation_id] = reservation
        logger.info("Reservation %s created for %s %d-%d", reservation.reservation_id, room.key, row, col)
        return reservation

    def get(self, reservation_id: str) -> Reservation:
        if reservation_id not in self._reservations:
            raise NotFoundError(f"Unknown reservation '{reservation_id}'")
        return self._reservations[reservation_id]

    def validate(self, reservation_id: str, code: str) -> Reservation:
        """Front desk check-in: the user's code turns a pending reservation active."""
        with self._lock:
            reservation = self.get(reservation_id)
            if not reservation.is_open:
                raise ReservationError("Reservation was already released")
            if reservation.status == OccupancyStatus.ACTIVE:
                raise ReservationError("Reservation is already active")
            if (code or "").strip().upper() != reservation.code:
                raise ReservationError("Code does not match")
            reservation.status = OccupancyStatus.ACTIVE
        logger.info("Reservation %s validated", reservation_id)
        return reservation

    def release(self, reservation_id: str) -> Reservation:
        with self._lock:
            reservation = self.get(reservation_id)
            if not reservation.is_open:
                raise ReservationError("Reservation was already released")
            reservation.released_at = self._clock()
        logger.info("Reservation %s released", reservation_id)
        return reservation

    def occupied_seats(self) -> List[OccupiedSeat]:
        with self._lock:
            return [r.to_occupied() for r in self._open()]

    def requests(self) -> List[Reservation]:
        """Open reservations, oldest first: the front desk's queue."""
        with self._lock:
            return sorted(self._open(), key=lambda r: r.requested_at)

    def for_user(self, user_email: str) -> List[Reservation]:
        user_email = (user_email or "").strip().lower()
        with self._lock:
            mine = [r for r in self._reservations.values() if r.user_email == user_email]
        return sorted(mine, key=lambda r: r.requested_at, reverse=True)
