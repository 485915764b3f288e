import numpy as np

from orbvis.constants import UNITY_SENSITIVITY


def smooth(current, previous, smoothing):
    """
    Blend this cycle's bars with the previous cycle's (exponential moving average).

    smoothed = current * (1 - smoothing) + previous * smoothing

    With no previous values or smoothing == 0 the current values pass through
    unchanged; smoothing == 1 freezes the bars at the previous values.
    """
    current = np.asarray(current, dtype=np.uint8)
    if previous is None or smoothing == 0:
        return current.copy()

    previous = np.asarray(previous, dtype=np.uint8)
    if previous.shape != current.shape:
        raise ValueError(f"Bar count changed from {len(previous)} to {len(current)}")

    blended = current * (1 - smoothing) + previous * smoothing
    return np.clip(np.rint(blended), 0, 255).astype(np.uint8)


def scale(smoothed, sensitivity):
    """Apply the final linear gain (sensitivity 64 is unity), clamped to a byte."""
    gained = np.asarray(smoothed, dtype=np.float64) * (sensitivity / UNITY_SENSITIVITY)
    return np.clip(np.rint(gained), 0, 255).astype(np.uint8)
