"""
Маршрут визитов дня: ломаная по объектам в исходном порядке
"""

from typing import Iterable, List, Tuple

from modules.obras.models import Lead

LatLng = Tuple[float, float]


def build_route(leads: Iterable[Lead]) -> List[LatLng]:
    """Точки маршрута в порядке объектов (без оптимизации)"""
    return [(lead.lat, lead.lng) for lead in leads]


class RouteState:
    """Показанный на карте маршрут"""

    def __init__(self):
        self.polyline: List[LatLng] = []

    @property
    def is_visible(self) -> bool:
        return bool(self.polyline)

    def show(self, leads: Iterable[Lead]) -> List[LatLng]:
        self.polyline = build_route(leads)
        return self.polyline

    def clear(self) -> None:
        self.polyline = []
