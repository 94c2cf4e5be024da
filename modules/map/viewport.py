"""
Проекция географических координат на холст карты

Простая равнопромежуточная проекция вокруг центра с масштабом в
пикселях на градус; для городских масштабов искажения несущественны.
"""

import math
from typing import Optional, Tuple

from modules.obras.models import GeoPoint

MIN_ZOOM = 50.0
MAX_ZOOM = 200000.0
DEFAULT_ZOOM = 2000.0


class Viewport:
    """Видимая область карты"""

    def __init__(self, center: GeoPoint, width: int, height: int, zoom: float = DEFAULT_ZOOM):
        self.center = center
        self.width = width
        self.height = height
        self.zoom = zoom  # пикселей на градус долготы

    def _lat_scale(self) -> float:
        # Сжатие по долготе на широте центра
        return max(math.cos(math.radians(self.center.lat)), 0.01)

    def to_screen(self, point: GeoPoint) -> Tuple[float, float]:
        x = self.width / 2 + (point.lng - self.center.lng) * self.zoom * self._lat_scale()
        y = self.height / 2 - (point.lat - self.center.lat) * self.zoom
        return x, y

    def to_geo(self, x: float, y: float) -> GeoPoint:
        lng = self.center.lng + (x - self.width / 2) / (self.zoom * self._lat_scale())
        lat = self.center.lat - (y - self.height / 2) / self.zoom
        return GeoPoint(lat=lat, lng=lng)

    def pan(self, dx: float, dy: float) -> None:
        """Сдвиг карты на (dx, dy) пикселей"""
        self.center = self.to_geo(self.width / 2 - dx, self.height / 2 - dy)

    def zoom_by(self, factor: float) -> None:
        self.zoom = min(max(self.zoom * factor, MIN_ZOOM), MAX_ZOOM)

    def fly_to(self, point: GeoPoint, zoom: Optional[float] = None) -> None:
        self.center = point
        if zoom is not None:
            self.zoom_by(zoom / self.zoom)

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height
