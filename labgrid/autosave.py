"""
Debounced autosave: every edit restarts a quiet-period timer and only the
latest grid is saved when it fires. A programmatic load calls skip_next() so
installing a freshly loaded grid does not bounce straight back to storage.
"""

from __future__ import annotations
import logging
import threading
from typing import Callable, Optional

from labgrid.grid import Grid

logger = logging.getLogger(__name__)

AUTOSAVE_DELAY_S = 0.9


class DebouncedSaver:
    def __init__(self, save: Callable[[Grid], None], delay_s: float = AUTOSAVE_DELAY_S,
                 timer_factory: Callable[..., threading.Timer] = threading.Timer):
        self._save = save
        self.delay_s = delay_s
        self._timer_factory = timer_factory
        self._timer = None
        self._pending: Optional[Grid] = None
        self._skip_next = False
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        return self._pending is not None

    def skip_next(self):
        self._skip_next = True

    def trigger(self, grid: Grid) -> bool:
        """
        Schedule a save of `grid`, replacing any pending one. Returns False
        when the skip flag swallowed it; the older pending save is still dropped.
        """
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if self._skip_next:
                self._skip_next = False
                self._pending = None
                return False
            self._pending = grid
            self._timer = self._timer_factory(self.delay_s, self._fire)
            self._timer.daemon = True
            self._timer.start()
            return True

    def _fire(self):
        with self._lock:
            grid, self._pending, self._timer = self._pending, None, None
        if grid is None:
            return
        try:
            self._save(grid)
        except Exception:
            logger.exception("Autosave failed")

    def flush(self):
        """Run the pending save now instead of waiting for the timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
        self._fire()

    def cancel(self):
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None
