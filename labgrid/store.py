"""
Grid Store
==========
One editor session's canonical grid.

Storage is injected: `load()` returns a raw snapshot (or None) and `save()`
accepts the save payload. Every snapshot that comes in from outside is passed
through the Normalizer before the session uses it. Edits go through the
Placement Engine and schedule a debounced autosave; loads and restores do not.
"""

from __future__ import annotations
import logging
import threading
from datetime import datetime, timezone
from typing import Callable, List, Optional

from labgrid.autosave import AUTOSAVE_DELAY_S, DebouncedSaver
from labgrid.catalog import CellKind
from labgrid.grid import GRID_COLS, GRID_ROWS, WALL_COL, Grid, create_empty
from labgrid.normalize import ingest, parse_snapshot, reconcile
from labgrid.placement import DragPainter, GroupIdFactory, apply_tool
from labgrid.rooms import Room, split

logger = logging.getLogger(__name__)


class GridStore:
    def __init__(self,
                 load: Optional[Callable[[], Optional[dict]]] = None,
                 save: Optional[Callable[[dict], object]] = None,
                 rows: int = GRID_ROWS,
                 cols: int = GRID_COLS,
                 wall_col: int = WALL_COL,
                 autosave_delay_s: float = AUTOSAVE_DELAY_S,
                 timer_factory: Callable = threading.Timer):
        self.rows, self.cols, self.wall_col = rows, cols, wall_col
        self._load = load
        self._save = save
        self._lock = threading.RLock()
        self.ids = GroupIdFactory()
        self.painter = DragPainter(ids=self.ids)
        self.grid: Grid = create_empty(rows, cols, wall_col)
        self.last_saved_at: Optional[datetime] = None
        self.saver = DebouncedSaver(lambda g: self._push(g, save_version=False),
                                    delay_s=autosave_delay_s, timer_factory=timer_factory)

    # ── Installing grids ──────────────────────────────────────────────────

    def _commit(self, grid: Grid, programmatic: bool = False) -> bool:
        """Swap in `grid`. Programmatic swaps consume the autosave trigger they cause."""
        with self._lock:
            changed = grid != self.grid
            self.grid = grid
            if programmatic:
                self.saver.skip_next()
            if changed or programmatic:
                self.saver.trigger(grid)
            return changed

    def install(self, raw: Optional[dict], strict: bool = False) -> Grid:
        """
        Normalize an external snapshot and make it current without autosaving it.
        A malformed snapshot installs an empty grid, or raises SnapshotError
        when `strict` (client uploads that should be refused, not wiped).
        """
        if strict:
            grid = reconcile(parse_snapshot(raw, self.rows, self.cols, self.wall_col))
        else:
            grid = ingest(raw, self.rows, self.cols, self.wall_col)
        self._commit(grid, programmatic=True)
        return grid

    def load(self) -> Grid:
        raw = self._load() if self._load is not None else None
        grid = self.install(raw)
        logger.info("Loaded grid: %s", grid.stats())
        return grid

    def restore(self, raw: Optional[dict]) -> Grid:
        """Install an archived version and write it back as the current layout."""
        grid = self.install(raw)
        self.save(save_version=False)
        return grid

    def reset(self) -> bool:
        return self._commit(create_empty(self.rows, self.cols, self.wall_col))

    # ── Edits ─────────────────────────────────────────────────────────────

    def apply(self, row: int, col: int, tool) -> bool:
        """Apply a palette tool at one cell. Returns True if the grid changed."""
        with self._lock:
            return self._commit(apply_tool(row, col, tool, self.grid, ids=self.ids))

    def set_tool(self, tool):
        self.painter.set_tool(tool)

    def pointer_down(self, row: int, col: int, tool: Optional[CellKind] = None) -> bool:
        with self._lock:
            if tool is not None:
                self.painter.set_tool(tool)
            return self._commit(self.painter.down(row, col, self.grid))

    def pointer_enter(self, row: int, col: int) -> bool:
        with self._lock:
            return self._commit(self.painter.enter(row, col, self.grid))

    def pointer_up(self):
        self.painter.up()

    # ── Persistence ───────────────────────────────────────────────────────

    def _push(self, grid: Grid, save_version: bool):
        if self._save is None:
            return None
        result = self._save(grid.to_snapshot(save_version=save_version))
        self.last_saved_at = datetime.now(timezone.utc)
        logger.info("Saved grid (version=%s)", save_version)
        return result

    def save(self, save_version: bool = False):
        """Save the current grid right away, dropping any pending autosave."""
        with self._lock:
            self.saver.cancel()
            return self._push(self.grid, save_version)

    # ── Derived views ─────────────────────────────────────────────────────

    def rooms(self) -> List[Room]:
        return split(self.grid)

    def to_dict(self) -> dict:
        return {
            "grid": self.grid.to_dict(),
            "stats": self.grid.stats(),
            "tool": self.painter.tool.value,
            "dragging": self.painter.dragging,
            "autosavePending": self.saver.pending,
            "lastSavedAt": self.last_saved_at.isoformat() if self.last_saved_at else None,
        }
