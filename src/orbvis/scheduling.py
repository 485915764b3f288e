import logging
import threading
import time

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Calls `callback` every `interval` seconds on a daemon thread.

    Deadlines advance by a fixed step so the rate doesn't drift with callback
    time; if the callback overruns, missed deadlines are skipped rather than
    replayed in a burst.
    """

    def __init__(self, name, interval, callback):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.interval = interval
        self.callback = callback
        self._stop_event = threading.Event()
        self._thread = None

    def start(self):
        if self.is_running():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()
        logger.debug(f"Started {self.name} every {self.interval * 1000:.1f}ms")

    def stop(self, timeout=1.0):
        """Stop the task and wait for an in-flight callback to finish."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            if thread.is_alive():
                logger.warning(f"[!] {self.name} did not stop within {timeout}s")
        self._thread = None

    def is_running(self):
        return self._thread is not None and self._thread.is_alive()

    def _run(self):
        # First call after one interval, like a timer
        next_deadline = time.perf_counter() + self.interval
        while not self._stop_event.wait(max(0.0, next_deadline - time.perf_counter())):
            try:
                self.callback()
            except Exception:
                logger.exception(f"[!] {self.name} callback failed")

            next_deadline += self.interval
            now = time.perf_counter()
            if next_deadline < now:
                # Overran, skip the deadlines we already missed
                missed = int((now - next_deadline) / self.interval) + 1
                next_deadline += missed * self.interval
