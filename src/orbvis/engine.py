import enum
import logging
import threading
import time

from orbvis.constants import BATCH_LOG_INTERVAL
from orbvis.errors import (
    AnalysisCycleFailed,
    CaptureStartFailed,
    CaptureStopFailed,
    InsufficientData,
    MalformedBatch,
)
from orbvis.pipeline import SpectrumPipeline
from orbvis.sample_buffer import SampleBuffer, validate_batch
from orbvis.scheduling import PeriodicTask
from orbvis.visualiser_renderer import VisualiserRenderer

logger = logging.getLogger(__name__)


class CaptureState(enum.Enum):
    STOPPED = "stopped"
    STARTING = "starting"
    ACTIVE = "active"


class VisualizerEngine:
    """
    Owns one visualiser session: capture lifecycle, sample buffer, analysis
    state and the periodic tasks that drive them.

    Three activities run independently while capture is active:
    - capture batches arrive on the source's thread via `on_samples`
    - the analysis tick runs every `update_rate_ms`
    - the maintenance tick trims the buffer every `trim_interval_ms`
    plus the render loop every `render_interval_ms` when a surface is given.
    The buffer and the latest BarSet are lock-protected, so none of these
    need to be serialised against each other.

    Example:
        engine = VisualizerEngine(config, source, surface)
        engine.enable()
        ...
        engine.disable()
    """

    def __init__(self, config, source, surface=None, on_frame=None):
        self.config = config
        self.source = source
        self.surface = surface
        self.on_frame = on_frame
        self.buffer = SampleBuffer(config.ingestion_cap)
        self.pipeline = SpectrumPipeline(config)
        self.renderer = VisualiserRenderer(config, surface) if surface is not None else None

        self._state = CaptureState.STOPPED
        self._lifecycle_lock = threading.RLock()
        self._batches_received = 0
        self._batches_dropped = 0

        self._analysis_task = PeriodicTask(
            "analysis-tick", config.update_rate_ms / 1000, self.analysis_tick
        )
        self._maintenance_task = PeriodicTask(
            "maintenance-tick", config.trim_interval_ms / 1000, self.maintenance_tick
        )
        self._render_task = None
        if self.renderer is not None:
            self._render_task = PeriodicTask(
                "render-tick", config.render_interval_ms / 1000, self.render_tick
            )

        source.subscribe(self.on_samples)

    @property
    def state(self):
        return self._state

    @property
    def latest_bars(self):
        """Newest BarSet, or None while nothing has been analysed this session."""
        return self.pipeline.latest

    # --- Lifecycle ---

    def enable(self):
        """
        Start (or restart) capture and the periodic tasks.

        A running session is always stopped first, so at most one capture
        session exists. Returns True once capture is active; on failure the
        render loop keeps showing the idle pattern and False is returned.
        """
        with self._lifecycle_lock:
            if self._state in (CaptureState.ACTIVE, CaptureState.STARTING):
                logger.info("[+] Stopping existing capture before restart...")
                self._stop_tasks(include_render=False)
                self._release_source()
                time.sleep(self.config.settle_delay_ms / 1000)

            # Fresh session state
            self.buffer.clear()
            self.pipeline.reset()

            self._state = CaptureState.STARTING
            self._start_render_loop()
            try:
                self._start_source()
            except CaptureStartFailed:
                logger.exception("[!] Failed to start audio capture, showing idle pattern")
                self._state = CaptureState.STOPPED
                return False

            self._state = CaptureState.ACTIVE
            self._analysis_task.start()
            self._maintenance_task.start()
            logger.info("[+] Audio capture started")
            return True

    def disable(self):
        """Stop every periodic task and the capture source. Safe to repeat."""
        with self._lifecycle_lock:
            was_capturing = self._state != CaptureState.STOPPED
            self._state = CaptureState.STOPPED
            self._stop_tasks(include_render=True)
            if was_capturing:
                self._release_source()
                logger.info("[+] Audio capture stopped")

    def _start_source(self):
        try:
            self.source.start()
        except Exception as e:
            raise CaptureStartFailed(f"Capture source failed to start: {e}") from e

    def _stop_source(self):
        try:
            self.source.stop()
        except Exception as e:
            raise CaptureStopFailed(f"Capture source failed to stop: {e}") from e

    def _release_source(self):
        """Best effort stop: a failure is logged, never raised."""
        try:
            self._stop_source()
        except CaptureStopFailed as e:
            logger.warning(f"[!] {e}")

    def _start_render_loop(self):
        if self._render_task is not None:
            self._render_task.start()

    def _stop_tasks(self, include_render):
        self._analysis_task.stop()
        self._maintenance_task.stop()
        if include_render and self._render_task is not None:
            self._render_task.stop()

    # --- Activities ---

    def on_samples(self, batch):
        """Ingest one capture batch. Malformed batches are logged and dropped."""
        if self._state is not CaptureState.ACTIVE:
            return

        try:
            samples = validate_batch(batch)
        except MalformedBatch as e:
            self._batches_dropped += 1
            logger.warning(f"[!] Dropping malformed audio batch: {e}")
            return

        self.buffer.push(samples)
        self._batches_received += 1
        if self._batches_received == 1 or self._batches_received % BATCH_LOG_INTERVAL == 0:
            logger.debug(
                f"Received {self._batches_received} audio batches, {len(samples)} samples, "
                f"buffer size: {len(self.buffer)}"
            )

    def analysis_tick(self):
        """
        Run one analysis cycle on the newest fft_size samples.

        Returns True if new bars were published. A starved buffer or a failed
        cycle leaves the previous bars untouched.
        """
        try:
            frame = self.buffer.peek_last(self.config.fft_size)
        except InsufficientData:
            return False

        try:
            self.pipeline.process(frame)
        except AnalysisCycleFailed:
            logger.exception("[!] Error processing audio")
            return False
        return True

    def maintenance_tick(self):
        self.buffer.trim_to(self.config.working_cap)

    def render_tick(self):
        if self.renderer is None:
            return
        self.renderer.draw(self.latest_bars)
        if self.on_frame is not None:
            self.on_frame(self.surface)

    # --- Context manager ---

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disable()
        return False
