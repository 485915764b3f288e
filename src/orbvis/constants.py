import math

# --- Configuration Defaults ---
DEFAULT_BAR_COUNT = 113
DEFAULT_BAR_WIDTH = 4
DEFAULT_RADIUS = 76
DEFAULT_MIN_BAR_LENGTH = 7
DEFAULT_MAX_BAR_LENGTH = 76
DEFAULT_COLORS = (255, 255, 255, 255)  # RGBA
DEFAULT_ANGLE_TOTAL = 2 * math.pi  # Full circle
DEFAULT_ANGLE_START = -math.pi / 2
DEFAULT_PADDING = 20

# Analysis settings
DEFAULT_FFT_SIZE = 2048
DEFAULT_SAMPLE_RATE = 48000
DEFAULT_FREQ_MIN = 60
DEFAULT_FREQ_MAX = 11000
DEFAULT_SENSITIVITY = 64  # 64 = unity gain
UNITY_SENSITIVITY = 64
MAGNITUDE_GAIN = 25.0  # Empirical, puts typical program audio mid-range
BAND_SCALES = ("linear", "log")

# Timing (milliseconds)
DEFAULT_UPDATE_RATE_MS = 16
DEFAULT_RENDER_INTERVAL_MS = 16
DEFAULT_TRIM_INTERVAL_MS = 1000
DEFAULT_SETTLE_DELAY_MS = 100

# Buffer caps (samples)
INGESTION_CAP = 96000  # ~2s at 48kHz
WORKING_CAP = 16384

# Gradient "distance zone" settings
GRADIENT_SOLID_FRACTION = 0.2
GRADIENT_END_ALPHA = 0.05
GRADIENT_PIECE_LENGTH = 2  # pixels per piecewise gradient segment

# Capture settings
CAPTURE_BLOCK_SIZE = 1024
BATCH_LOG_INTERVAL = 100  # Log every Nth incoming batch at DEBUG
