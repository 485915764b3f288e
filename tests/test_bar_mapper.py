"""
Tests for mapping the magnitude spectrum onto bars
"""

import numpy as np
import pytest

from orbvis.audio_analyser import analyse
from orbvis.bar_mapper import band_edges, bin_ranges, map_to_bars


def test_linear_band_edges():
    edges = band_edges(4, 100, 500)
    np.testing.assert_allclose(edges, [100, 200, 300, 400, 500])


def test_log_band_edges():
    edges = band_edges(3, 10, 10000, scale="log")
    np.testing.assert_allclose(edges, [10, 100, 1000, 10000])


def test_unknown_scale():
    with pytest.raises(ValueError):
        band_edges(4, 100, 500, scale="mel")


def test_bin_ranges_use_floor_and_ceil():
    # 8 bins across 0-800Hz -> 100Hz per bin
    ranges = bin_ranges(8, 2, 150, 450, sample_rate=1600)
    assert ranges == [(1, 3), (3, 5)]


def test_bars_average_their_bins():
    spectrum = np.array([0, 10, 20, 30, 40, 50, 60, 70], dtype=np.uint8)
    bars = map_to_bars(spectrum, 2, 100, 500, sample_rate=1600)
    # Bar 0 covers bins 1-2, bar 1 covers bins 3-4
    np.testing.assert_array_equal(bars, [15, 35])


def test_band_above_nyquist_reads_zero():
    spectrum = np.full(8, 200, dtype=np.uint8)
    bars = map_to_bars(spectrum, 2, 400, 1600, sample_rate=1600)
    # Nyquist is 800Hz: the upper band has no bins at all
    assert bars[0] == 200
    assert bars[1] == 0


def test_output_stays_in_byte_range():
    spectrum = np.full(1024, 255, dtype=np.uint8)
    bars = map_to_bars(spectrum, 113, 60, 11000, 48000)
    assert bars.dtype == np.uint8
    assert (bars == 255).all()


@pytest.mark.parametrize("bar_index", [3, 10, 25])
def test_tone_lands_in_its_bar(bar_index):
    """A pure sine lights up the bar whose sub-band contains it"""
    sample_rate = 48000
    fft_size = 2048
    bar_count = 32
    freq_min, freq_max = 60, 11000

    band_width = (freq_max - freq_min) / bar_count
    freq = freq_min + band_width * (bar_index + 0.5)
    t = np.arange(fft_size) / sample_rate
    frame = 0.05 * np.sin(2 * np.pi * freq * t)

    bars = map_to_bars(analyse(frame), bar_count, freq_min, freq_max, sample_rate).astype(int)

    others = np.delete(bars, bar_index)
    beaten = np.count_nonzero(bars[bar_index] > others)
    assert beaten >= 0.9 * len(others)
