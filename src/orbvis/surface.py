import math
import threading

import cv2
import numpy as np

from orbvis.constants import GRADIENT_PIECE_LENGTH


def _pixel(point):
    return (int(round(point[0])), int(round(point[1])))


class OpenCVSurface:
    """
    Square numpy canvas drawn with OpenCV.

    Lines go onto a colour layer and an alpha layer; present() composites
    them over the background into a BGR frame that other threads can pick up
    with latest_frame().
    """

    def __init__(self, size, background=(5, 5, 10)):
        self.size = size
        self.background = np.array(background, dtype=np.float32)  # BGR
        self._color = np.zeros((size, size, 3), dtype=np.uint8)
        self._alpha = np.zeros((size, size), dtype=np.uint8)
        self._frame = None
        self._frame_lock = threading.Lock()

    def clear(self):
        self._color[:] = 0
        self._alpha[:] = 0

    def draw_line(self, start, end, width, rgba):
        self._stroke(_pixel(start), _pixel(end), width, rgba, rgba[3])

    def draw_gradient_line(self, start, end, width, rgba, gradient):
        """
        Draw a line whose alpha follows `gradient`.

        OpenCV can't stroke gradients, so the line is cut into short pieces
        and each one is drawn with the gradient's alpha at its midpoint.
        """
        start = np.asarray(start, dtype=np.float64)
        end = np.asarray(end, dtype=np.float64)
        length = float(np.hypot(*(end - start)))
        pieces = max(1, int(math.ceil(length / GRADIENT_PIECE_LENGTH)))

        for k in range(pieces):
            a = start + (end - start) * (k / pieces)
            b = start + (end - start) * ((k + 1) / pieces)
            alpha = rgba[3] * gradient.alpha_at((a + b) / 2)
            self._stroke(_pixel(a), _pixel(b), width, rgba, alpha)

    def _stroke(self, p0, p1, width, rgba, alpha):
        r, g, b = rgba[:3]
        # Colour layer a little wider than the anti-aliased alpha edge
        cv2.line(self._color, p0, p1, (int(b), int(g), int(r)), width + 2, cv2.LINE_8)
        cv2.line(self._alpha, p0, p1, int(round(alpha)), width, cv2.LINE_AA)

    def present(self):
        alpha = self._alpha[..., None].astype(np.float32) / 255
        frame = self.background * (1 - alpha) + self._color.astype(np.float32) * alpha
        frame = np.clip(frame, 0, 255).astype(np.uint8)
        with self._frame_lock:
            self._frame = frame

    def latest_frame(self):
        """Copy of the last presented BGR frame, or None before the first one."""
        with self._frame_lock:
            return None if self._frame is None else self._frame.copy()
