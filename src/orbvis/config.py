import dataclasses
import json
import logging
import math
import re
from dataclasses import dataclass

from orbvis.constants import (
    BAND_SCALES,
    DEFAULT_ANGLE_START,
    DEFAULT_ANGLE_TOTAL,
    DEFAULT_BAR_COUNT,
    DEFAULT_BAR_WIDTH,
    DEFAULT_COLORS,
    DEFAULT_FFT_SIZE,
    DEFAULT_FREQ_MAX,
    DEFAULT_FREQ_MIN,
    DEFAULT_MAX_BAR_LENGTH,
    DEFAULT_MIN_BAR_LENGTH,
    DEFAULT_PADDING,
    DEFAULT_RADIUS,
    DEFAULT_RENDER_INTERVAL_MS,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_SENSITIVITY,
    DEFAULT_SETTLE_DELAY_MS,
    DEFAULT_TRIM_INTERVAL_MS,
    DEFAULT_UPDATE_RATE_MS,
    INGESTION_CAP,
    MAGNITUDE_GAIN,
    WORKING_CAP,
)
from orbvis.errors import ConfigError

logger = logging.getLogger(__name__)

# Option names used by the host application that don't follow the
# plain camelCase -> snake_case conversion.
_ALIASES = {
    "updateRate": "update_rate_ms",
    "color": "colors",
}


def _snake_case(name):
    return re.sub(r"(?<=[a-z0-9])([A-Z])", r"_\1", name).lower()


@dataclass(frozen=True)
class VisualizerConfig:
    """
    Immutable settings for one visualiser session.

    Changing any value means starting a new session: build a new config with
    `replace()` and hand it to a new engine.
    """

    bar_count: int = DEFAULT_BAR_COUNT
    bar_width: int = DEFAULT_BAR_WIDTH
    radius: float = DEFAULT_RADIUS
    radius_y: float = DEFAULT_RADIUS
    min_bar_length: float = DEFAULT_MIN_BAR_LENGTH
    max_bar_length: float = DEFAULT_MAX_BAR_LENGTH
    colors: tuple = DEFAULT_COLORS
    smoothing: float = 0.0
    pre_amp_gain: float = 1.0
    magnitude_gain: float = MAGNITUDE_GAIN
    angle_total: float = DEFAULT_ANGLE_TOTAL
    angle_start: float = DEFAULT_ANGLE_START
    clockwise: bool = True
    fft_size: int = DEFAULT_FFT_SIZE
    freq_min: float = DEFAULT_FREQ_MIN
    freq_max: float = DEFAULT_FREQ_MAX
    sensitivity: float = DEFAULT_SENSITIVITY
    update_rate_ms: float = DEFAULT_UPDATE_RATE_MS
    sample_rate: int = DEFAULT_SAMPLE_RATE
    gradient_enabled: bool = False
    band_scale: str = "linear"
    ingestion_cap: int = INGESTION_CAP
    working_cap: int = WORKING_CAP
    trim_interval_ms: float = DEFAULT_TRIM_INTERVAL_MS
    render_interval_ms: float = DEFAULT_RENDER_INTERVAL_MS
    settle_delay_ms: float = DEFAULT_SETTLE_DELAY_MS
    padding: int = DEFAULT_PADDING

    def __post_init__(self):
        # Normalise colours so lists from JSON compare and hash like tuples
        try:
            object.__setattr__(self, "colors", tuple(int(c) for c in self.colors))
        except (TypeError, ValueError) as e:
            raise ConfigError(f"colors: must be [r, g, b, a] (got {self.colors!r})") from e
        self._validate()

    def _validate(self):
        def require(condition, field, message):
            if not condition:
                raise ConfigError(f"{field}: {message} (got {getattr(self, field)!r})")

        require(self.bar_count > 0, "bar_count", "must be positive")
        require(self.bar_width > 0, "bar_width", "must be positive")
        require(self.radius >= 0, "radius", "must not be negative")
        require(self.radius_y >= 0, "radius_y", "must not be negative")
        require(self.min_bar_length >= 0, "min_bar_length", "must not be negative")
        require(
            self.max_bar_length >= self.min_bar_length,
            "max_bar_length",
            "must be at least min_bar_length",
        )
        require(len(self.colors) == 4, "colors", "must be [r, g, b, a]")
        require(all(0 <= c <= 255 for c in self.colors), "colors", "components must be 0-255")
        require(0.0 <= self.smoothing <= 1.0, "smoothing", "must be within [0, 1]")
        require(self.pre_amp_gain >= 0, "pre_amp_gain", "must not be negative")
        require(self.magnitude_gain >= 0, "magnitude_gain", "must not be negative")
        require(
            self.fft_size >= 2 and self.fft_size & (self.fft_size - 1) == 0,
            "fft_size",
            "must be a power of two",
        )
        require(self.freq_min >= 0, "freq_min", "must not be negative")
        require(self.freq_max > self.freq_min, "freq_max", "must exceed freq_min")
        require(self.sensitivity >= 0, "sensitivity", "must not be negative")
        require(self.update_rate_ms > 0, "update_rate_ms", "must be positive")
        require(self.sample_rate > 0, "sample_rate", "must be positive")
        require(self.band_scale in BAND_SCALES, "band_scale", f"must be one of {BAND_SCALES}")
        require(
            self.band_scale != "log" or self.freq_min > 0,
            "freq_min",
            "must be positive for a log band scale",
        )
        require(self.working_cap >= self.fft_size, "working_cap", "must hold one fft frame")
        require(
            self.ingestion_cap >= self.working_cap,
            "ingestion_cap",
            "must be at least working_cap",
        )
        require(self.trim_interval_ms > 0, "trim_interval_ms", "must be positive")
        require(self.render_interval_ms > 0, "render_interval_ms", "must be positive")
        require(self.settle_delay_ms >= 0, "settle_delay_ms", "must not be negative")
        require(self.padding >= 0, "padding", "must not be negative")

        if self.freq_max > self.nyquist:
            logger.warning(
                f"[!] freq_max {self.freq_max}Hz is above Nyquist ({self.nyquist}Hz); "
                "bars past Nyquist will stay at zero"
            )

    @property
    def nyquist(self):
        return self.sample_rate / 2

    @property
    def canvas_size(self):
        """Side length of the square render surface in pixels."""
        total_radius = max(self.radius, self.radius_y) + self.max_bar_length
        return int(math.ceil(total_radius * 2 + self.padding))

    def replace(self, **changes):
        return dataclasses.replace(self, **changes)

    @classmethod
    def from_dict(cls, options):
        """
        Build a config from a mapping of option names.

        Accepts the Python field names as well as the host application's
        camelCase spelling (`barCount`, `updateRateMs`, `radiusY`, ...).
        """
        known = {f.name for f in dataclasses.fields(cls)}
        kwargs = {}
        for key, value in options.items():
            name = _ALIASES.get(key, _snake_case(key))
            if name not in known:
                raise ConfigError(f"Unknown option: {key}")
            kwargs[name] = value
        try:
            return cls(**kwargs)
        except TypeError as e:
            raise ConfigError(str(e)) from e

    @classmethod
    def from_file(cls, path):
        """Load a config from a JSON object on disk."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                options = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Could not read config {path}: {e}") from e
        if not isinstance(options, dict):
            raise ConfigError(f"Config {path} must contain a JSON object")
        return cls.from_dict(options)
