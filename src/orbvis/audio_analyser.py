import functools

import numpy as np

from orbvis.constants import MAGNITUDE_GAIN


@functools.lru_cache(maxsize=8)
def hann_window(size):
    """
    Symmetric Hann window: w[i] = 0.5 * (1 - cos(2*pi*i / (size - 1))).

    ~0 at both ends and ~1 in the middle, which suppresses spectral leakage
    from the frame boundaries. Cached per size and returned read-only.
    """
    i = np.arange(size, dtype=np.float64)
    window = 0.5 * (1 - np.cos(2 * np.pi * i / (size - 1)))
    window.setflags(write=False)
    return window


def analyse(frame, pre_amp_gain=1.0, magnitude_gain=MAGNITUDE_GAIN):
    """
    Turn one frame of samples into a byte-range magnitude spectrum.

    Returns len(frame) // 2 uint8 bins, covering 0Hz up to Nyquist.
    """
    frame = np.asarray(frame, dtype=np.float64)
    size = len(frame)

    # 1. Taper the frame edges
    windowed = frame * hann_window(size)

    # 2. Forward complex FFT, keep the Nyquist-limited half (input is real)
    phasors = np.fft.fft(windowed)[: size // 2]

    # 3. Magnitude per bin
    magnitudes = np.abs(phasors)

    # 4. Fixed gain, clamp to a byte
    scaled = np.rint(magnitudes * magnitude_gain * pre_amp_gain)
    return np.clip(scaled, 0, 255).astype(np.uint8)


class SpectralAnalyser:
    """
    Applies the session's window size and gains to analysis frames.
    """

    def __init__(self, config):
        self.fft_size = config.fft_size
        self.pre_amp_gain = config.pre_amp_gain
        self.magnitude_gain = config.magnitude_gain
        # Warm the window cache so the first tick doesn't pay for it
        hann_window(self.fft_size)

    def analyse(self, frame):
        if len(frame) != self.fft_size:
            raise ValueError(f"Frame has {len(frame)} samples, expected {self.fft_size}")
        return analyse(frame, self.pre_amp_gain, self.magnitude_gain)
