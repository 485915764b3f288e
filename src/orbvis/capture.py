"""
Audio capture sources.

A capture source pushes batches of mono float samples to its subscribers at
whatever rate the audio arrives, and exposes start()/stop(). Calling start()
on a running source restarts it.
"""

import logging
import threading
import time

import librosa
import numpy as np

from orbvis.constants import CAPTURE_BLOCK_SIZE

logger = logging.getLogger(__name__)


def to_mono(block):
    """
    Down-mix a block of audio to mono float32 in [-1, 1].

    Accepts (frames,) or (frames, channels) arrays. int16 is scaled by
    1/32768 and uint16 is re-centred on 32768 before averaging channels.
    """
    block = np.asarray(block)
    if block.dtype == np.int16:
        block = block.astype(np.float32) / 32768.0
    elif block.dtype == np.uint16:
        block = (block.astype(np.float32) - 32768.0) / 32768.0
    else:
        block = block.astype(np.float32, copy=False)

    if block.ndim == 1:
        return block
    if block.shape[1] == 0:
        return np.zeros(0, dtype=np.float32)
    return block.mean(axis=1, dtype=np.float32)


def load_audio(path):
    """Decode an audio file to mono float32 at its native sample rate."""
    logger.info(f"[+] Loading audio: {path}...")
    samples, sample_rate = librosa.load(path, sr=None, mono=True)
    return samples.astype(np.float32, copy=False), int(sample_rate)


class CaptureSource:
    """
    Base class handling the push subscription.

    Subclasses implement start() and stop() and call `_emit(batch)` from
    whatever thread the audio arrives on.
    """

    def __init__(self):
        self._listeners = []
        self._listeners_lock = threading.Lock()

    def subscribe(self, callback):
        with self._listeners_lock:
            if callback not in self._listeners:
                self._listeners.append(callback)

    def unsubscribe(self, callback):
        with self._listeners_lock:
            if callback in self._listeners:
                self._listeners.remove(callback)

    def _emit(self, batch):
        with self._listeners_lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(batch)
            except Exception:
                # Never let a subscriber kill the audio thread
                logger.exception("[!] Capture listener failed")

    def start(self):
        raise NotImplementedError

    def stop(self):
        raise NotImplementedError

    def is_running(self):
        raise NotImplementedError


class SoundDeviceCaptureSource(CaptureSource):
    """
    Live capture from an input (or loopback) device through PortAudio.

    Multi-channel input is down-mixed to mono in the audio callback.
    """

    def __init__(self, sample_rate, device=None, channels=None, block_size=CAPTURE_BLOCK_SIZE):
        super().__init__()
        self.sample_rate = sample_rate
        self.device = device
        self.channels = channels
        self.block_size = block_size
        self._stream = None
        self._lock = threading.Lock()

    def start(self):
        # PortAudio is loaded lazily so the rest of the package works without it
        import sounddevice as sd

        with self._lock:
            if self._stream is not None:
                logger.info("[+] Capture already running, restarting")
                self._close_stream()

            channels = self.channels
            if channels is None:
                info = sd.query_devices(self.device, "input")
                channels = max(1, min(2, int(info["max_input_channels"])))

            stream = sd.InputStream(
                samplerate=self.sample_rate,
                blocksize=self.block_size,
                device=self.device,
                channels=channels,
                dtype="float32",
                callback=self._callback,
            )
            stream.start()
            self._stream = stream
            logger.info(
                f"[+] Capturing from {self.device if self.device is not None else 'default device'} "
                f"({channels}ch @ {self.sample_rate}Hz)"
            )

    def stop(self):
        with self._lock:
            self._close_stream()

    def is_running(self):
        return self._stream is not None

    def _close_stream(self):
        stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.stop()
        finally:
            stream.close()
        logger.info("[+] Capture stopped")

    def _callback(self, indata, frames, time_info, status):
        if status:
            logger.debug(f"Capture status: {status}")
        samples = to_mono(indata)
        if len(samples):
            self._emit(samples)

    @staticmethod
    def list_devices():
        import sounddevice as sd

        return sd.query_devices()


class FileCaptureSource(CaptureSource):
    """
    Plays an audio file into the engine at real-time pace.

    Decoding happens on the first start(); the file keeps its native sample
    rate, available as `sample_rate` afterwards (or via `load()`).
    """

    def __init__(self, path, block_size=CAPTURE_BLOCK_SIZE, loop=False):
        super().__init__()
        self.path = path
        self.block_size = block_size
        self.loop = loop
        self.samples = None
        self.sample_rate = None
        self._stop_event = threading.Event()
        self._thread = None
        self._lock = threading.Lock()

    def load(self):
        if self.samples is None:
            self.samples, self.sample_rate = load_audio(self.path)
        return self.samples, self.sample_rate

    def start(self):
        with self._lock:
            if self._thread is not None:
                logger.info("[+] Playback already running, restarting")
                self._join()
            self.load()
            self._stop_event.clear()
            self._thread = threading.Thread(target=self._run, name="file-capture", daemon=True)
            self._thread.start()

    def stop(self):
        with self._lock:
            self._join()

    def is_running(self):
        return self._thread is not None and self._thread.is_alive()

    def _join(self):
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)

    def _run(self):
        if len(self.samples) == 0:
            logger.warning(f"[!] {self.path} contains no audio")
            return
        block_duration = self.block_size / self.sample_rate
        position = 0
        next_deadline = time.perf_counter()
        while not self._stop_event.is_set():
            if position >= len(self.samples):
                if not self.loop:
                    logger.info(f"[+] Finished playing {self.path}")
                    break
                position = 0

            self._emit(self.samples[position:position + self.block_size])
            position += self.block_size

            next_deadline += block_duration
            self._stop_event.wait(max(0.0, next_deadline - time.perf_counter()))
