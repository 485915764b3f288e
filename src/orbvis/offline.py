import logging

import numpy as np

from orbvis.errors import AnalysisCycleFailed, InsufficientData
from orbvis.pipeline import SpectrumPipeline
from orbvis.sample_buffer import SampleBuffer
from orbvis.surface import OpenCVSurface
from orbvis.visualiser_renderer import VisualiserRenderer

logger = logging.getLogger(__name__)


class OfflineVisualiser:
    """
    Replays decoded audio through the live pipeline on a simulated clock.

    Every analysis and maintenance tick that would have fired by time `t`
    runs, in order, before the frame for `t` is drawn, so an exported video
    looks like the live visualiser did at that moment.
    """

    def __init__(self, config, samples, surface=None):
        self.config = config
        self.samples = np.asarray(samples, dtype=np.float32)
        self.buffer = SampleBuffer(config.ingestion_cap)
        self.pipeline = SpectrumPipeline(config)
        self.surface = surface if surface is not None else OpenCVSurface(config.canvas_size)
        self.renderer = VisualiserRenderer(config, self.surface)

        self._fed = 0  # Samples pushed so far
        self._analysis_ticks = 0
        self._trim_ticks = 0

    @property
    def duration(self):
        return len(self.samples) / self.config.sample_rate

    def advance_to(self, t):
        """Run every tick due up to and including time `t` (seconds)."""
        cfg = self.config
        now_ms = t * 1000

        # Tick times are count * interval so long renders don't drift
        while True:
            analysis_ms = self._analysis_ticks * cfg.update_rate_ms
            trim_ms = (self._trim_ticks + 1) * cfg.trim_interval_ms
            if min(analysis_ms, trim_ms) > now_ms:
                break

            if trim_ms <= analysis_ms:
                self._feed_until(trim_ms)
                self.buffer.trim_to(cfg.working_cap)
                self._trim_ticks += 1
                continue

            self._feed_until(analysis_ms)
            try:
                self.pipeline.process(self.buffer.peek_last(cfg.fft_size))
            except InsufficientData:
                pass
            except AnalysisCycleFailed:
                logger.exception(f"[!] Analysis failed at {analysis_ms / 1000:.3f}s")
            self._analysis_ticks += 1

        self._feed_until(now_ms)

    def frame_at(self, t):
        """Advance to `t` and return the rendered BGR frame."""
        self.advance_to(t)
        self.renderer.draw(self.pipeline.latest)
        return self.surface.latest_frame()

    def _feed_until(self, ms):
        target = min(len(self.samples), int(ms * self.config.sample_rate / 1000 + 1e-6))
        if target > self._fed:
            self.buffer.push(self.samples[self._fed:target])
            self._fed = target
