"""
Tests for capture sources and down-mixing
"""

import time

import numpy as np

from orbvis import capture
from orbvis.capture import CaptureSource, FileCaptureSource, SoundDeviceCaptureSource, to_mono


def test_mono_float_passes_through():
    block = np.array([0.1, -0.2, 0.3], dtype=np.float32)
    np.testing.assert_allclose(to_mono(block), block)


def test_stereo_is_averaged():
    block = np.array([[1.0, 0.0], [0.5, -0.5], [-1.0, -1.0]], dtype=np.float32)
    np.testing.assert_allclose(to_mono(block), [0.5, 0.0, -1.0])


def test_int16_is_normalised():
    block = np.array([[-32768, -32768], [16384, 16384]], dtype=np.int16)
    np.testing.assert_allclose(to_mono(block), [-1.0, 0.5])


def test_uint16_is_centred():
    block = np.array([32768, 0, 49152], dtype=np.uint16)
    np.testing.assert_allclose(to_mono(block), [0.0, -1.0, 0.5])


def test_listener_errors_do_not_escape():
    source = CaptureSource()
    received = []

    def broken(batch):
        raise RuntimeError("listener bug")

    source.subscribe(broken)
    source.subscribe(received.append)
    source._emit([1.0])

    assert received == [[1.0]]


def test_unsubscribe():
    source = CaptureSource()
    received = []
    source.subscribe(received.append)
    source.subscribe(received.append)  # Subscribing twice is a no-op
    source._emit([1.0])
    source.unsubscribe(received.append)
    source._emit([2.0])

    assert received == [[1.0]]


def test_file_source_streams_blocks(monkeypatch):
    samples = np.arange(4000, dtype=np.float32) / 4000
    monkeypatch.setattr(capture, "load_audio", lambda path: (samples, 40000))

    source = FileCaptureSource("song.wav", block_size=1000)
    received = []
    source.subscribe(received.append)
    source.start()

    deadline = time.monotonic() + 2.0
    while source.is_running() and time.monotonic() < deadline:
        time.sleep(0.01)
    source.stop()

    assert source.sample_rate == 40000
    assert [len(block) for block in received] == [1000] * 4
    np.testing.assert_array_equal(np.concatenate(received), samples)


def test_file_source_restart_and_stop(monkeypatch):
    samples = np.zeros(48000 * 10, dtype=np.float32)
    monkeypatch.setattr(capture, "load_audio", lambda path: (samples, 48000))

    source = FileCaptureSource("long.wav", block_size=480, loop=True)
    source.start()
    source.start()  # Restart while running
    assert source.is_running()

    source.stop()
    assert not source.is_running()


def test_sounddevice_callback_downmixes():
    """The PortAudio callback delivers mono batches; no device needed"""
    source = SoundDeviceCaptureSource(48000)
    received = []
    source.subscribe(received.append)

    source._callback(np.array([[0.2, 0.4], [1.0, 0.0]], dtype=np.float32), 2, None, 0)

    assert len(received) == 1
    np.testing.assert_allclose(received[0], [0.3, 0.5])
