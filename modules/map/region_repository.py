"""
Репозиторий регионов пользователя
"""

from typing import List

from loguru import logger

from core.document_store import COLLECTION_REGIONS, DocumentStore
from modules.obras.models import Region


class RegionRepository:
    """Чтение, создание и удаление регионов"""

    def __init__(self, store: DocumentStore):
        self.store = store

    def list_regions(self, user_id: str) -> List[Region]:
        documents = self.store.list_all(user_id, COLLECTION_REGIONS)
        regions = []
        for document in documents:
            try:
                regions.append(Region.from_document(document))
            except (AttributeError, KeyError, TypeError, ValueError, IndexError) as e:
                logger.error(f"Ошибка при преобразовании документа в Region: {e}, id={document.get('id')}")
        return regions

    def add_region(self, user_id: str, region: Region) -> str:
        region.id = self.store.add(user_id, COLLECTION_REGIONS, region.to_document())
        logger.info(f"Регион {region.id} создан ({len(region.points)} точек, {region.color})")
        return region.id

    def delete_region(self, user_id: str, region_id: str) -> None:
        self.store.delete(user_id, COLLECTION_REGIONS, region_id)
        logger.info(f"Регион {region_id} удален")
