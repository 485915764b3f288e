"""
Shared fakes for the engine tests.
"""

import pytest

from orbvis.capture import CaptureSource
from orbvis.config import VisualizerConfig


class FakeCaptureSource(CaptureSource):
    """Records lifecycle calls; tests push batches with `feed()`."""

    def __init__(self, fail_start=False, fail_stop=False):
        super().__init__()
        self.calls = []
        self.fail_start = fail_start
        self.fail_stop = fail_stop
        self.running = False

    def start(self):
        self.calls.append("start")
        if self.fail_start:
            raise RuntimeError("no output device available")
        self.running = True

    def stop(self):
        self.calls.append("stop")
        self.running = False
        if self.fail_stop:
            raise RuntimeError("stream already closed")

    def is_running(self):
        return self.running

    def feed(self, batch):
        self._emit(batch)


class RecordingSurface:
    """Render surface that remembers what was drawn in the last frame."""

    def __init__(self):
        self.lines = []
        self.frames = []
        self.clears = 0

    def clear(self):
        self.clears += 1
        self.lines = []

    def draw_line(self, start, end, width, rgba):
        self.lines.append(("line", start, end, width, rgba, None))

    def draw_gradient_line(self, start, end, width, rgba, gradient):
        self.lines.append(("gradient", start, end, width, rgba, gradient))

    def present(self):
        self.frames.append(list(self.lines))


@pytest.fixture
def config():
    # Long intervals keep the background tasks out of the way; tests tick by hand
    return VisualizerConfig(
        update_rate_ms=60_000,
        trim_interval_ms=60_000,
        render_interval_ms=60_000,
        settle_delay_ms=0,
    )


@pytest.fixture
def source():
    return FakeCaptureSource()


@pytest.fixture
def surface():
    return RecordingSurface()


@pytest.fixture
def make_source():
    return FakeCaptureSource
