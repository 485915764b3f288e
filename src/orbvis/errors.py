"""
Error taxonomy for the visualiser engine.

None of these are fatal. The engine catches everything it raises internally,
logs it, and degrades to showing the idle pattern or the last good bar values.
"""


class VisualizerError(Exception):
    """Base class for all orbvis errors."""


class ConfigError(VisualizerError, ValueError):
    """A configuration value is out of range or unknown."""


class InsufficientData(VisualizerError):
    """The sample buffer holds fewer samples than requested.

    Callers treat this as "skip this cycle", not as a failure.
    """

    def __init__(self, available, requested):
        super().__init__(f"need {requested} samples, have {available}")
        self.available = available
        self.requested = requested


class MalformedBatch(VisualizerError):
    """An incoming capture batch is empty or not a sequence of numbers."""


class CaptureStartFailed(VisualizerError):
    pass


class CaptureStopFailed(VisualizerError):
    pass


class AnalysisCycleFailed(VisualizerError):
    """An unexpected exception escaped one analysis cycle."""
