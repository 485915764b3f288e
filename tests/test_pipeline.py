"""
Tests for the per-session analysis pipeline and bar angles
"""

import math

import numpy as np
import pytest

from orbvis.config import VisualizerConfig
from orbvis.errors import AnalysisCycleFailed
from orbvis.pipeline import SpectrumPipeline, bar_angles


def tone(freq, size=2048, sample_rate=48000, amplitude=0.05):
    t = np.arange(size) / sample_rate
    return (amplitude * np.sin(2 * np.pi * freq * t)).astype(np.float32)


def test_bar_angles_clockwise():
    angles = bar_angles(4, 0.0, 2 * math.pi, clockwise=True)
    np.testing.assert_allclose(angles, [0, math.pi / 2, math.pi, 3 * math.pi / 2])


def test_bar_angles_counter_clockwise_reverses():
    cw = bar_angles(5, 0.3, 2 * math.pi, clockwise=True)
    ccw = bar_angles(5, 0.3, 2 * math.pi, clockwise=False)
    np.testing.assert_allclose(ccw, cw[::-1])


def test_bar_angles_are_normalised():
    angles = bar_angles(113, -math.pi / 2, 2 * math.pi)
    assert (angles >= 0).all()
    assert (angles < 2 * math.pi).all()
    assert angles[0] == pytest.approx(3 * math.pi / 2)


def test_process_publishes_bar_set():
    config = VisualizerConfig(bar_count=32)
    pipeline = SpectrumPipeline(config)
    assert pipeline.latest is None

    bar_set = pipeline.process(tone(1000))

    assert pipeline.latest is bar_set
    assert len(bar_set) == 32
    assert bar_set.values.dtype == np.uint8
    np.testing.assert_allclose(bar_set.angles, pipeline.angles)
    assert pipeline.cycles == 1


def test_full_smoothing_freezes_bars():
    config = VisualizerConfig(bar_count=32, smoothing=1.0)
    pipeline = SpectrumPipeline(config)

    first = pipeline.process(tone(1000)).values.copy()
    second = pipeline.process(tone(6000)).values

    np.testing.assert_array_equal(first, second)


def test_failed_cycle_keeps_previous_result():
    pipeline = SpectrumPipeline(VisualizerConfig(bar_count=16))
    good = pipeline.process(tone(500))

    with pytest.raises(AnalysisCycleFailed):
        pipeline.process(np.zeros(100, dtype=np.float32))

    assert pipeline.latest is good
    assert pipeline.cycles == 1


def test_reset_forgets_history():
    pipeline = SpectrumPipeline(VisualizerConfig(bar_count=16, smoothing=0.5))
    pipeline.process(tone(500))
    pipeline.reset()

    assert pipeline.latest is None
    assert pipeline.previous is None
    assert pipeline.cycles == 0


@pytest.mark.parametrize("sensitivity", [0, 64, 500])
def test_every_stage_stays_in_byte_range(sensitivity):
    config = VisualizerConfig(bar_count=64, sensitivity=sensitivity, pre_amp_gain=10, smoothing=0.3)
    pipeline = SpectrumPipeline(config)
    rng = np.random.default_rng(11)

    for _ in range(5):
        bar_set = pipeline.process(rng.uniform(-1, 1, 2048).astype(np.float32))
        for values in (bar_set.values, pipeline.previous):
            assert values.dtype == np.uint8
            assert values.min() >= 0 and values.max() <= 255
