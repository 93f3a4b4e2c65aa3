"""Viewport transform — pointer pixels to map space and back.

Convention:
    - Map space is the unscaled pixel grid of the map image, (0, 0) top-left
    - ``origin`` is the top-left of the map surface in viewport pixels
    - ``pan`` is in unscaled surface pixels; it shifts the surface by pan * zoom
    - map = (viewport - origin - pan * zoom) / zoom
"""

import math
from dataclasses import dataclass

MIN_ZOOM = 0.5
MAX_ZOOM = 3.0
ZOOM_STEP = 1.2


def clamp_zoom(zoom: float) -> float:
    return max(MIN_ZOOM, min(MAX_ZOOM, zoom))


@dataclass
class Viewport:
    """Zoom/pan state of the rendering surface."""

    zoom: float = 1.0
    pan_x: float = 0.0
    pan_y: float = 0.0
    origin_x: float = 0.0
    origin_y: float = 0.0

    def __post_init__(self):
        if not (math.isfinite(self.zoom) and self.zoom > 0):
            raise ValueError(f"Zoom must be a positive finite number, got {self.zoom}")

    @property
    def effective_origin(self) -> tuple[float, float]:
        """Viewport position of map-space (0, 0)."""
        return (
            self.origin_x + self.pan_x * self.zoom,
            self.origin_y + self.pan_y * self.zoom,
        )

    def to_map_space(self, viewport_x: float, viewport_y: float) -> tuple[float, float]:
        ox, oy = self.effective_origin
        return (viewport_x - ox) / self.zoom, (viewport_y - oy) / self.zoom

    def to_viewport(self, map_x: float, map_y: float) -> tuple[float, float]:
        ox, oy = self.effective_origin
        return map_x * self.zoom + ox, map_y * self.zoom + oy

    def zoom_in(self) -> float:
        self.zoom = clamp_zoom(self.zoom * ZOOM_STEP)
        return self.zoom

    def zoom_out(self) -> float:
        self.zoom = clamp_zoom(self.zoom / ZOOM_STEP)
        return self.zoom

    def pan_by(self, dx: float, dy: float):
        self.pan_x += dx
        self.pan_y += dy

    def reset(self):
        """Back to 1:1 with no pan; the surface origin is unchanged."""
        self.zoom = 1.0
        self.pan_x = 0.0
        self.pan_y = 0.0
