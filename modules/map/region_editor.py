"""
Редактор регионов на карте

Два состояния: IDLE (нажатие на карту открывает форму нового объекта)
и DRAWING (нажатие добавляет вершину полигона). Сохранение полигона
меньше чем из 3 точек отбрасывает его.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from loguru import logger

from core.exceptions import ValidationError
from modules.obras.models import GeoPoint, Region

# Цвета регионов по порядку создания
REGION_PALETTE = ["blue", "green", "purple", "orange", "red", "yellow"]

MIN_REGION_POINTS = 3


class EditorState(Enum):
    IDLE = "idle"
    DRAWING = "drawing"


class TapAction(Enum):
    OPEN_LEAD_FORM = "open_lead_form"
    VERTEX_ADDED = "vertex_added"


@dataclass(frozen=True)
class TapOutcome:
    """Результат нажатия на карту"""
    action: TapAction
    point: GeoPoint


def palette_color(existing_region_count: int) -> str:
    return REGION_PALETTE[existing_region_count % len(REGION_PALETTE)]


class RegionEditor:
    """Машина состояний рисования региона"""

    def __init__(self):
        self.state = EditorState.IDLE
        self._points: List[GeoPoint] = []

    @property
    def is_drawing(self) -> bool:
        return self.state == EditorState.DRAWING

    @property
    def points(self) -> List[GeoPoint]:
        """Вершины рисуемого полигона (копия)"""
        return list(self._points)

    def start_drawing(self) -> None:
        if self.is_drawing:
            raise ValidationError("Já existe uma região sendo desenhada.")
        self.state = EditorState.DRAWING
        self._points = []
        logger.debug("Начато рисование региона")

    def handle_tap(self, point: GeoPoint) -> TapOutcome:
        if self.is_drawing:
            self._points.append(point)
            return TapOutcome(TapAction.VERTEX_ADDED, point)
        return TapOutcome(TapAction.OPEN_LEAD_FORM, point)

    def save(self, existing_region_count: int) -> Optional[Region]:
        """
        Завершение рисования

        Args:
            existing_region_count: Количество уже сохраненных регионов (для выбора цвета)

        Returns:
            Новый регион (без ID) или None, если точек меньше трех
        """
        points = self._points
        self.state = EditorState.IDLE
        self._points = []
        if len(points) < MIN_REGION_POINTS:
            logger.info(f"Регион из {len(points)} точек отброшен")
            return None
        return Region(id=None, points=points, color=palette_color(existing_region_count))

    def cancel(self) -> None:
        self.state = EditorState.IDLE
        self._points = []
