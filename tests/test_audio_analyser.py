"""
Tests for the Hann window and magnitude spectrum
"""

import numpy as np
import pytest

from orbvis.audio_analyser import SpectralAnalyser, analyse, hann_window
from orbvis.config import VisualizerConfig


@pytest.mark.parametrize("size", [64, 1024, 2048])
def test_hann_window_edges(size):
    window = hann_window(size)
    assert window[0] == pytest.approx(0.0, abs=1e-12)
    assert window[-1] == pytest.approx(0.0, abs=1e-12)
    # Even sizes have no single centre sample; both middle ones are ~1
    assert window[size // 2] == pytest.approx(1.0, abs=1e-3)
    assert window[size // 2 - 1] == pytest.approx(1.0, abs=1e-3)


def test_hann_window_matches_numpy():
    np.testing.assert_allclose(hann_window(512), np.hanning(512))


def test_hann_window_is_read_only():
    with pytest.raises(ValueError):
        hann_window(16)[0] = 1.0


def test_spectrum_length_and_range():
    rng = np.random.default_rng(1)
    spectrum = analyse(rng.uniform(-1, 1, 2048), pre_amp_gain=4.0)

    assert len(spectrum) == 1024
    assert spectrum.dtype == np.uint8
    assert spectrum.min() >= 0
    assert spectrum.max() <= 255


def test_silence_is_zero():
    assert not analyse(np.zeros(1024)).any()


def test_sine_peaks_at_its_bin():
    sample_rate = 48000
    size = 2048
    bin_width = sample_rate / size
    freq = 40 * bin_width
    t = np.arange(size) / sample_rate
    frame = 0.001 * np.sin(2 * np.pi * freq * t)

    spectrum = analyse(frame)
    assert int(np.argmax(spectrum)) == 40


def test_gain_scales_magnitude():
    t = np.arange(1024) / 48000
    frame = 0.0005 * np.sin(2 * np.pi * 3000 * t)

    quiet = analyse(frame, pre_amp_gain=1.0).astype(int)
    loud = analyse(frame, pre_amp_gain=2.0).astype(int)
    assert loud.max() > quiet.max()


def test_zero_magnitude_gain_silences_everything():
    frame = np.sin(np.linspace(0, 100, 256))
    assert not analyse(frame, magnitude_gain=0).any()


def test_spectral_analyser_checks_frame_length():
    analyser = SpectralAnalyser(VisualizerConfig(fft_size=1024))
    assert len(analyser.analyse(np.zeros(1024))) == 512
    with pytest.raises(ValueError):
        analyser.analyse(np.zeros(512))
