"""
Сервис регионов: сохранение нарисованных полигонов, удаление с
подтверждением и видимость слоя регионов на карте
"""

from typing import Callable, List, Optional

from loguru import logger

from modules.map.region_editor import RegionEditor
from modules.map.region_repository import RegionRepository
from modules.obras.models import GeoPoint, Region

ConfirmCallback = Callable[[Region], bool]


class RegionService:
    """Регионы текущего пользователя в памяти и в хранилище"""

    def __init__(self, repository: RegionRepository, user_id: str):
        self.repository = repository
        self.user_id = user_id
        self.regions: List[Region] = []
        self.visible = True

    def load(self) -> List[Region]:
        self.regions = self.repository.list_regions(self.user_id)
        return self.regions

    def draft_region(self, editor: RegionEditor) -> Optional[Region]:
        """Полигон из редактора с цветом по числу регионов (None, если отброшен)"""
        return editor.save(len(self.regions))

    def store_region(self, region: Region) -> Region:
        """
        Запись региона в хранилище; список в памяти не меняется

        Raises:
            GatewayError: Ошибка записи
        """
        self.repository.add_region(self.user_id, region)
        return region

    def remember_region(self, region: Region) -> None:
        self.regions.append(region)

    def finish_drawing(self, editor: RegionEditor) -> Optional[Region]:
        """
        Сохранение рисуемого полигона

        Returns:
            Сохраненный регион или None, если полигон отброшен

        Raises:
            GatewayError: Ошибка записи (регион не добавляется в список)
        """
        region = self.draft_region(editor)
        if region is None:
            return None
        self.remember_region(self.store_region(region))
        return region

    def confirm_delete(self, region_id: str, confirm: ConfirmCallback) -> Optional[Region]:
        """Регион, удаление которого подтвердил пользователь (иначе None)"""
        region = next((r for r in self.regions if r.id == region_id), None)
        if region is None:
            logger.warning(f"Регион {region_id} не найден")
            return None
        if not confirm(region):
            logger.debug(f"Удаление региона {region_id} отменено")
            return None
        return region

    def remove_region(self, region_id: str) -> str:
        """
        Удаление региона из хранилища; список в памяти не меняется

        Raises:
            GatewayError: Ошибка удаления
        """
        self.repository.delete_region(self.user_id, region_id)
        return region_id

    def forget_region(self, region_id: str) -> None:
        self.regions = [r for r in self.regions if r.id != region_id]

    def delete_region(self, region_id: str, confirm: ConfirmCallback) -> bool:
        """
        Удаление региона после подтверждения пользователем

        Returns:
            True, если регион удален
        """
        if self.confirm_delete(region_id, confirm) is None:
            return False
        self.forget_region(self.remove_region(region_id))
        return True

    def region_at(self, point: GeoPoint) -> Optional[Region]:
        """Последний (верхний) регион, содержащий точку"""
        for region in reversed(self.regions):
            if point_in_polygon(point, region.points):
                return region
        return None

    def toggle_visibility(self) -> bool:
        self.visible = not self.visible
        return self.visible


def point_in_polygon(point: GeoPoint, polygon: List[GeoPoint]) -> bool:
    """Проверка попадания точки в полигон (метод луча)"""
    inside = False
    j = len(polygon) - 1
    for i, vertex in enumerate(polygon):
        other = polygon[j]
        if (vertex.lat > point.lat) != (other.lat > point.lat):
            crossing = (other.lng - vertex.lng) * (point.lat - vertex.lat) / (other.lat - vertex.lat) + vertex.lng
            if point.lng < crossing:
                inside = not inside
        j = i
    return inside
