"""
Per-session analysis state: everything one analysis cycle reads or writes
between ticks lives on a SpectrumPipeline instance.
"""

import threading
from dataclasses import dataclass

import numpy as np

from orbvis.audio_analyser import SpectralAnalyser
from orbvis.bar_mapper import map_to_bars
from orbvis.errors import AnalysisCycleFailed
from orbvis.smoothing import scale, smooth

TWO_PI = 2 * np.pi


def bar_angles(bar_count, angle_start, angle_total, clockwise=True):
    """
    Angle of every bar in radians, normalised into [0, 2*pi).

    Counter-clockwise layouts walk the same positions in reverse, so bar 0
    lands where the last bar would sit clockwise.
    """
    index = np.arange(bar_count)
    raw_index = index if clockwise else (bar_count - 1 - index)
    angles = angle_start + (angle_total / bar_count) * raw_index
    return np.mod(angles, TWO_PI)


@dataclass(frozen=True)
class BarSet:
    """Final bar intensities (0-255) and the angle each bar is drawn at."""

    values: np.ndarray
    angles: np.ndarray

    def __len__(self):
        return len(self.values)


class SpectrumPipeline:
    """
    Runs analyse -> map -> smooth -> scale and keeps the results.

    The latest BarSet is read by the render loop while the analysis tick
    replaces it, so both sides go through a lock.
    """

    def __init__(self, config):
        self.config = config
        self.analyser = SpectralAnalyser(config)
        self.angles = bar_angles(
            config.bar_count, config.angle_start, config.angle_total, config.clockwise
        )
        self.angles.setflags(write=False)
        self._previous = None  # Smoothed values from the last cycle
        self._latest = None
        self._lock = threading.Lock()
        self.cycles = 0

    @property
    def latest(self):
        """The newest BarSet, or None if no cycle has completed yet."""
        with self._lock:
            return self._latest

    @property
    def previous(self):
        with self._lock:
            return self._previous

    def process(self, frame):
        """
        Run one full analysis cycle on `frame` and publish the result.

        Any failure is raised as AnalysisCycleFailed and leaves the previously
        published bars in place.
        """
        cfg = self.config
        try:
            spectrum = self.analyser.analyse(frame)
            raw = map_to_bars(
                spectrum,
                cfg.bar_count,
                cfg.freq_min,
                cfg.freq_max,
                cfg.sample_rate,
                cfg.band_scale,
            )
            smoothed = smooth(raw, self.previous, cfg.smoothing)
            final = scale(smoothed, cfg.sensitivity)
        except Exception as e:
            raise AnalysisCycleFailed(f"Analysis cycle {self.cycles + 1} failed: {e}") from e

        bar_set = BarSet(values=final, angles=self.angles)
        with self._lock:
            self._previous = smoothed
            self._latest = bar_set
            self.cycles += 1
        return bar_set

    def reset(self):
        with self._lock:
            self._previous = None
            self._latest = None
            self.cycles = 0
