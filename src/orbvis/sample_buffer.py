import logging
import threading

import numpy as np

from orbvis.constants import INGESTION_CAP
from orbvis.errors import InsufficientData, MalformedBatch

logger = logging.getLogger(__name__)


def validate_batch(batch):
    """
    Check an incoming capture batch and return it as a 1-D float32 array.

    Raises MalformedBatch for anything that isn't a non-empty, flat sequence
    of finite numbers.
    """
    if batch is None or isinstance(batch, (str, bytes, bytearray, dict)):
        raise MalformedBatch(f"expected a sequence of numbers, got {type(batch).__name__}")

    try:
        array = np.asarray(batch)
    except (TypeError, ValueError) as e:
        raise MalformedBatch(f"could not read batch: {e}") from e

    if array.ndim != 1:
        raise MalformedBatch(f"expected a flat sequence, got {array.ndim} dimensions")
    if array.size == 0:
        raise MalformedBatch("empty batch")
    if not (np.issubdtype(array.dtype, np.integer) or np.issubdtype(array.dtype, np.floating)):
        raise MalformedBatch(f"non-numeric samples ({array.dtype})")

    samples = array.astype(np.float32)
    if not np.all(np.isfinite(samples)):
        raise MalformedBatch("batch contains non-finite samples")
    return samples


class SampleBuffer:
    """
    Bounded FIFO of the most recent mono samples.

    Backed by a fixed numpy ring so pushes cost O(batch) and memory never
    grows past `capacity`. All methods are safe to call from the capture
    callback thread and the periodic task threads at the same time.
    """

    def __init__(self, capacity=INGESTION_CAP):
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._data = np.zeros(capacity, dtype=np.float32)
        self._write_idx = 0  # Next slot to write
        self._count = 0
        self._lock = threading.Lock()

    @property
    def capacity(self):
        return len(self._data)

    def __len__(self):
        return self._count

    def push(self, samples):
        """Append samples, evicting the oldest ones past capacity."""
        samples = np.asarray(samples, dtype=np.float32).ravel()
        capacity = len(self._data)
        with self._lock:
            if len(samples) >= capacity:
                # Only the newest `capacity` samples can survive
                self._data[:] = samples[-capacity:]
                self._write_idx = 0
                self._count = capacity
                return

            end = self._write_idx + len(samples)
            if end <= capacity:
                self._data[self._write_idx:end] = samples
            else:
                split = capacity - self._write_idx
                self._data[self._write_idx:] = samples[:split]
                self._data[: end - capacity] = samples[split:]
            self._write_idx = end % capacity
            self._count = min(capacity, self._count + len(samples))

    def peek_last(self, n):
        """
        Return a copy of the newest `n` samples, oldest first.

        The buffer is left untouched. Raises InsufficientData when fewer than
        `n` samples are buffered.
        """
        with self._lock:
            if n > self._count:
                raise InsufficientData(self._count, n)
            start = (self._write_idx - n) % len(self._data)
            if start + n <= len(self._data):
                return self._data[start:start + n].copy()
            return np.concatenate((self._data[start:], self._data[: self._write_idx]))

    def trim_to(self, cap):
        """Drop the oldest samples until at most `cap` remain."""
        with self._lock:
            if self._count > cap:
                dropped = self._count - cap
                self._count = max(0, cap)
                logger.debug(f"Trimmed {dropped} samples from buffer")

    def clear(self):
        with self._lock:
            self._write_idx = 0
            self._count = 0
