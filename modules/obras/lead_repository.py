"""
Репозиторий объектов (obras) пользователя
"""

from typing import Iterable, List, Optional

from loguru import logger

from core.document_store import COLLECTION_OBRAS, DocumentStore
from core.exceptions import GatewayError
from modules.obras.models import Lead


class LeadRepository:
    """Чтение и запись объектов через хранилище документов"""

    def __init__(self, store: DocumentStore):
        self.store = store

    def list_leads(self, user_id: str) -> List[Lead]:
        """
        Получение всех объектов пользователя

        Документы, которые не удалось разобрать, пропускаются с записью в лог.
        """
        documents = self.store.list_all(user_id, COLLECTION_OBRAS)
        leads = []
        for document in documents:
            try:
                leads.append(Lead.from_document(document))
            except (AttributeError, KeyError, TypeError, ValueError) as e:
                logger.error(f"Ошибка при преобразовании документа в Lead: {e}, id={document.get('id')}",
                             exc_info=True)
        logger.info(f"Загружено объектов: {len(leads)} из {len(documents)} для user_id={user_id}")
        return leads

    def get_lead(self, user_id: str, lead_id: str) -> Optional[Lead]:
        document = self.store.get_one(user_id, COLLECTION_OBRAS, lead_id)
        return Lead.from_document(document) if document else None

    def add_lead(self, lead: Lead) -> str:
        """Создание объекта; идентификатор выдает хранилище"""
        lead_id = self.store.add(lead.user_id, COLLECTION_OBRAS, lead.to_document())
        lead.id = lead_id
        logger.info(f"Объект '{lead.name}' создан с ID={lead_id}")
        return lead_id

    def new_lead_id(self) -> str:
        """ID для объекта, который будет записан позже (через save_lead)"""
        return self.store.new_id()

    def save_lead(self, lead: Lead) -> None:
        """Запись объекта целиком (последняя запись побеждает)"""
        if not lead.id:
            raise GatewayError("Нельзя сохранить объект без идентификатора")
        self.store.set(lead.user_id, COLLECTION_OBRAS, lead.id, lead.to_document())
        logger.debug(f"Объект {lead.id} сохранен")

    def save_many_atomically(self, user_id: str, leads: Iterable[Lead]) -> int:
        """
        Запись нескольких объектов одной транзакцией

        Returns:
            Количество записанных объектов
        """
        batch = self.store.batch(user_id)
        count = 0
        for lead in leads:
            batch.set(COLLECTION_OBRAS, lead.id, lead.to_document())
            count += 1
        batch.commit()
        return count
