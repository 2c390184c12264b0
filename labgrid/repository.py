"""
In-memory stand-ins for the storage collaborators: the current layout with its
version archive, and the per-room status board.
"""

from __future__ import annotations
import copy
import threading
import uuid
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from labgrid.errors import NotFoundError
from labgrid.rooms import ROOM_KEYS, RoomStatus

MAX_VERSIONS = 50


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LayoutRepository:
    """Last write wins; saveVersion=True also archives a timestamped copy."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow, max_versions: int = MAX_VERSIONS):
        self._clock = clock
        self._max_versions = max_versions
        self._current: Optional[dict] = None
        self._versions: "OrderedDict[str, dict]" = OrderedDict()
        self._lock = threading.Lock()

    def load(self) -> Optional[dict]:
        with self._lock:
            if self._current is None:
                return None
            return copy.deepcopy(self._current)

    def save(self, payload: dict) -> dict:
        snapshot = {
            "cells": copy.deepcopy(payload["grid"]),
            "rows": payload["rows"],
            "cols": payload["cols"],
            "wallCol": payload["wallCol"],
        }
        with self._lock:
            self._current = snapshot
            if not payload.get("saveVersion"):
                return {"message": "Tablero guardado."}
            version_id = uuid.uuid4().hex
            self._versions[version_id] = {
                "id": version_id,
                "savedAt": self._clock().isoformat(),
                "snapshot": copy.deepcopy(snapshot),
            }
            while len(self._versions) > self._max_versions:
                self._versions.popitem(last=False)
            return {"message": "Tablero guardado.", "version": version_id}

    def list_versions(self) -> List[dict]:
        """Newest first, without the snapshots."""
        with self._lock:
            return [{"id": v["id"], "savedAt": v["savedAt"]} for v in reversed(self._versions.values())]

    def get_version(self, version_id: str) -> dict:
        with self._lock:
            if version_id not in self._versions:
                raise NotFoundError(f"Unknown layout version '{version_id}'")
            return copy.deepcopy(self._versions[version_id]["snapshot"])


class RoomStatusBoard:
    def __init__(self, keys=ROOM_KEYS):
        self._status: Dict[str, RoomStatus] = {key: RoomStatus() for key in keys}

    def get(self, key: str) -> RoomStatus:
        if key not in self._status:
            raise NotFoundError(f"Unknown room '{key}'")
        return self._status[key]

    def update(self, key: str, disabled: bool, reserved_by: Optional[str] = None) -> RoomStatus:
        # the holder's name only means something while the room is blocked
        status = self.get(key)
        status.disabled = bool(disabled)
        status.reserved_by = ((reserved_by or "").strip() or None) if disabled else None
        return status

    def to_dict(self) -> Dict[str, dict]:
        return {key: status.to_dict() for key, status in self._status.items()}
