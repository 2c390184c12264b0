"""
Footprint Catalog
=================
Static table of the fixtures an operator can drop onto the lab grid.

Every fixture kind occupies a fixed rectangle of cells (width × height,
counted in grid columns × grid rows). The two structural kinds, EMPTY and
WALL, have no footprint and can never be placed.

Wire values are the short codes used by the browser client and by stored
layouts ('pc', 'desk2', ...), so a CellKind round-trips through JSON as-is.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional


class CellKind(str, Enum):
    EMPTY       = "empty"
    WORKSTATION = "pc"
    DESK_2X2    = "desk2"
    DESK_3X5    = "desk3x5"
    RECEPTION   = "reception"
    WALL        = "wall"


@dataclass(frozen=True)
class Footprint:
    width: int    # columns
    height: int   # rows

    @property
    def area(self) -> int:
        return self.width * self.height

    def to_dict(self) -> dict:
        return {"width": self.width, "height": self.height}


# ── Footprints ────────────────────────────────────────────────────────────────
# Desk3x5 is 5 columns wide and 3 rows tall; reception is a 1-wide, 7-tall counter.
FOOTPRINTS: Dict[CellKind, Footprint] = {
    CellKind.WORKSTATION: Footprint(1, 1),
    CellKind.DESK_2X2:    Footprint(2, 2),
    CellKind.DESK_3X5:    Footprint(5, 3),
    CellKind.RECEPTION:   Footprint(1, 7),
}

DESK_KINDS = (CellKind.DESK_2X2, CellKind.DESK_3X5, CellKind.RECEPTION)


def footprint_of(kind: CellKind) -> Optional[Footprint]:
    """Footprint for a fixture kind, None for EMPTY and WALL."""
    return FOOTPRINTS.get(CellKind(kind))


def is_fixture(kind: CellKind) -> bool:
    return footprint_of(kind) is not None


# ── Editor palette ────────────────────────────────────────────────────────────
# Order matches the tool bar; the EMPTY entry is the eraser.
PALETTE: List[dict] = [
    {"key": CellKind.WORKSTATION, "label": "Computador", "color": "#2563eb", "size": "1x1", "icon": "pc"},
    {"key": CellKind.DESK_2X2,    "label": "Mesa",       "color": "#10b981", "size": "2x2", "icon": "desk2"},
    {"key": CellKind.DESK_3X5,    "label": "Mesa larga", "color": "#0ea5e9", "size": "3x5", "icon": "desk3x5"},
    {"key": CellKind.RECEPTION,   "label": "Recepción",  "color": "#f59e0b", "size": "1x7", "icon": "reception"},
    {"key": CellKind.EMPTY,       "label": "Borrar",     "color": "#9ca3af", "size": "",    "icon": "erase"},
]


def palette_to_dict() -> List[dict]:
    out = []
    for entry in PALETTE:
        fp = footprint_of(entry["key"])
        out.append({
            **entry,
            "key": entry["key"].value,
            "footprint": fp.to_dict() if fp else None,
        })
    return out
