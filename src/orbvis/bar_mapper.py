import math

import numpy as np


def band_edges(bar_count, freq_min, freq_max, scale="linear"):
    """
    Return the bar_count + 1 frequency edges of the sub-bands, in Hz.

    "linear" splits [freq_min, freq_max] evenly. "log" spaces the edges
    geometrically, f = freq_min * (freq_max / freq_min) ** (i / bar_count),
    which gives the bass more bars.
    """
    steps = np.arange(bar_count + 1) / bar_count
    if scale == "linear":
        return freq_min + (freq_max - freq_min) * steps
    if scale == "log":
        return freq_min * (freq_max / freq_min) ** steps
    raise ValueError(f"Unknown band scale: {scale}")


def bin_ranges(bin_count, bar_count, freq_min, freq_max, sample_rate, scale="linear"):
    """
    Map each bar to a half-open [start, end) range of spectrum bins.

    Both ends are clamped into [0, bin_count], so a band above Nyquist ends up
    with an empty range.
    """
    edges = band_edges(bar_count, freq_min, freq_max, scale)
    bin_width = (sample_rate / 2) / bin_count

    ranges = []
    for i in range(bar_count):
        start = math.floor(edges[i] / bin_width)
        end = math.ceil(edges[i + 1] / bin_width)
        start = min(max(start, 0), bin_count)
        end = min(max(end, 0), bin_count)
        ranges.append((start, end))
    return ranges


def map_to_bars(spectrum, bar_count, freq_min, freq_max, sample_rate, scale="linear"):
    """
    Average the magnitude spectrum into `bar_count` sub-band values.

    A bar whose sub-band covers no bins reads 0.
    """
    spectrum = np.asarray(spectrum)
    bars = np.zeros(bar_count, dtype=np.uint8)
    ranges = bin_ranges(len(spectrum), bar_count, freq_min, freq_max, sample_rate, scale)
    for i, (start, end) in enumerate(ranges):
        if end > start:
            bars[i] = int(np.rint(spectrum[start:end].mean()))
    return bars
