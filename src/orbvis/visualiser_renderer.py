import numpy as np

from orbvis.constants import GRADIENT_END_ALPHA, GRADIENT_SOLID_FRACTION
from orbvis.pipeline import bar_angles

# (position along the gradient vector, alpha multiplier)
DEFAULT_GRADIENT_STOPS = (
    (0.0, 1.0),
    (GRADIENT_SOLID_FRACTION, 1.0),
    (1.0, GRADIENT_END_ALPHA),
)


class LinearGradient:
    """
    Alpha ramp along a fixed vector from `start` to `end`.

    Points are projected onto the vector, so the alpha at a pixel depends only
    on where it sits in space.
    """

    def __init__(self, start, end, stops=DEFAULT_GRADIENT_STOPS):
        self.start = np.asarray(start, dtype=np.float64)
        self.end = np.asarray(end, dtype=np.float64)
        self.stops = tuple(stops)
        self._positions = np.array([p for p, _ in self.stops])
        self._alphas = np.array([a for _, a in self.stops])

    def position_of(self, point):
        """Fraction (0-1) of the way along the gradient vector."""
        direction = self.end - self.start
        length_sq = float(direction @ direction)
        if length_sq == 0:
            return 0.0
        t = float((np.asarray(point, dtype=np.float64) - self.start) @ direction) / length_sq
        return min(1.0, max(0.0, t))

    def alpha_at(self, point):
        return float(np.interp(self.position_of(point), self._positions, self._alphas))


def bar_segments(config, bar_set, center):
    """
    Compute where every bar is drawn.

    Returns three (bar_count, 2) arrays: the base point on the ellipse, the
    end point of the bar, and the gradient end point, which always sits
    max_bar_length from the base no matter how long the bar currently is.
    With no bar_set every bar is drawn at min_bar_length (idle pattern).
    """
    if bar_set is None:
        angles = bar_angles(
            config.bar_count, config.angle_start, config.angle_total, config.clockwise
        )
        lengths = np.full(config.bar_count, float(config.min_bar_length))
    else:
        angles = bar_set.angles
        normalized = np.asarray(bar_set.values, dtype=np.float64) / 255
        lengths = config.min_bar_length + normalized * (config.max_bar_length - config.min_bar_length)

    direction = np.column_stack((np.cos(angles), np.sin(angles)))
    base = np.column_stack(
        (center[0] + config.radius * direction[:, 0], center[1] + config.radius_y * direction[:, 1])
    )
    end = base + lengths[:, None] * direction
    gradient_end = base + config.max_bar_length * direction
    return base, end, gradient_end


class VisualiserRenderer:
    """
    Paints radial bars around the anchor circle onto a render surface.

    Colours are RGBA as configured; the surface decides how to store them.
    """

    def __init__(self, config, surface):
        self.config = config
        self.surface = surface
        size = config.canvas_size
        self.center = (size / 2, size / 2)
        self.frames_drawn = 0

    def draw(self, bar_set):
        """Draw one frame: the given bars, or the idle pattern when None."""
        cfg = self.config
        self.surface.clear()

        base, end, gradient_end = bar_segments(cfg, bar_set, self.center)
        for i in range(len(base)):
            start_point = tuple(base[i])
            end_point = tuple(end[i])
            if cfg.gradient_enabled:
                gradient = LinearGradient(start_point, tuple(gradient_end[i]))
                self.surface.draw_gradient_line(
                    start_point, end_point, cfg.bar_width, cfg.colors, gradient
                )
            else:
                self.surface.draw_line(start_point, end_point, cfg.bar_width, cfg.colors)

        self.surface.present()
        self.frames_drawn += 1
