import os
import sys

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from labgrid.grid import create_empty


class FakeTimer:
    """Stands in for threading.Timer: never fires on its own, tests call fire()."""

    instances = []

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.daemon = False
        self.started = False
        self.cancelled = False
        FakeTimer.instances.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function()


@pytest.fixture
def fake_timer():
    FakeTimer.instances = []
    yield FakeTimer
    FakeTimer.instances = []


@pytest.fixture
def grid():
    return create_empty(10, 24, 12)
