"""
Репозиторий целей (metas) по месяцам
"""

from typing import List

from loguru import logger

from core.document_store import COLLECTION_METAS, DocumentStore
from modules.obras.models import Goals


class GoalsRepository:
    """Цели пользователя: один документ на месяц (ID = YYYY-MM)"""

    def __init__(self, store: DocumentStore):
        self.store = store

    def get_or_create(self, user_id: str, month: str) -> Goals:
        """
        Цели месяца; при отсутствии создаются с нулевыми значениями

        Raises:
            GatewayError: Ошибка хранилища
        """
        document = self.store.get_one(user_id, COLLECTION_METAS, month)
        if document is not None:
            return Goals.from_document(document)

        goals = Goals(month=month)
        self.store.set(user_id, COLLECTION_METAS, month, goals.to_document())
        logger.info(f"Созданы цели по умолчанию на {month} для user_id={user_id}")
        return goals

    def save(self, user_id: str, goals: Goals) -> None:
        self.store.set(user_id, COLLECTION_METAS, goals.month, goals.to_document())
        logger.info(f"Цели на {goals.month} сохранены")

    def list_months(self, user_id: str) -> List[str]:
        """Месяцы, для которых есть цели (от новых к старым)"""
        documents = self.store.list_all(user_id, COLLECTION_METAS)
        return sorted((str(d["id"]) for d in documents if d.get("id")), reverse=True)
