"""
Хранилище документов ObraMap

Коллекции JSON-документов, разделенные по пользователям
(users/{user_id}/{collection}/{doc_id}). Запись по принципу
"последний записавший побеждает", атомарна только пакетная запись.
"""

import json
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from loguru import logger
from psycopg2.extras import Json

from core.database import DatabaseManager
from core.exceptions import GatewayError

COLLECTION_OBRAS = "obras"
COLLECTION_REGIONS = "regions"
COLLECTION_METAS = "metas"
COLLECTION_PROFILE = "profile"

UPSERT_QUERY = """
    INSERT INTO documents (user_id, collection, doc_id, data)
    VALUES (%s, %s, %s, %s)
    ON CONFLICT (user_id, collection, doc_id)
    DO UPDATE SET data = EXCLUDED.data, updated_at = CURRENT_TIMESTAMP
"""

MERGE_QUERY = """
    UPDATE documents
    SET data = data || %s, updated_at = CURRENT_TIMESTAMP
    WHERE user_id = %s AND collection = %s AND doc_id = %s
"""

DELETE_QUERY = """
    DELETE FROM documents
    WHERE user_id = %s AND collection = %s AND doc_id = %s
"""


def _json_serializer(obj: Any) -> str:
    """Сериализатор для JSON, обрабатывающий даты и datetime"""
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    raise TypeError(f"Type {type(obj)} not serializable")


def _as_json(data: Dict[str, Any]) -> Json:
    return Json(data, dumps=lambda value: json.dumps(value, default=_json_serializer))


def _without_id(data: Dict[str, Any]) -> Dict[str, Any]:
    """Идентификатор хранится в ключе документа, а не в его теле"""
    return {k: v for k, v in data.items() if k != "id"}


@dataclass
class BatchOperation:
    """Отложенная операция пакетной записи"""
    kind: str  # set | update | delete
    collection: str
    doc_id: str
    data: Optional[Dict[str, Any]] = None


class WriteBatch:
    """
    Пакетная запись: все операции фиксируются вместе или не фиксируются вовсе
    """

    def __init__(self, db_manager: DatabaseManager, user_id: str):
        self.db_manager = db_manager
        self.user_id = user_id
        self.operations: List[BatchOperation] = []
        self._committed = False

    def set(self, collection: str, doc_id: str, data: Dict[str, Any]) -> 'WriteBatch':
        self.operations.append(BatchOperation("set", collection, doc_id, _without_id(data)))
        return self

    def update(self, collection: str, doc_id: str, data: Dict[str, Any]) -> 'WriteBatch':
        self.operations.append(BatchOperation("update", collection, doc_id, _without_id(data)))
        return self

    def delete(self, collection: str, doc_id: str) -> 'WriteBatch':
        self.operations.append(BatchOperation("delete", collection, doc_id))
        return self

    def commit(self) -> None:
        """
        Фиксация пакета одной транзакцией

        Raises:
            GatewayError: Если пакет уже зафиксирован или транзакция не прошла
        """
        if self._committed:
            raise GatewayError("Пакет записи уже зафиксирован")
        if not self.operations:
            self._committed = True
            return

        with self.db_manager.transaction() as cursor:
            for op in self.operations:
                if op.kind == "set":
                    cursor.execute(UPSERT_QUERY, (self.user_id, op.collection, op.doc_id, _as_json(op.data)))
                elif op.kind == "update":
                    cursor.execute(MERGE_QUERY, (_as_json(op.data), self.user_id, op.collection, op.doc_id))
                else:
                    cursor.execute(DELETE_QUERY, (self.user_id, op.collection, op.doc_id))
        self._committed = True
        logger.info(f"Пакет из {len(self.operations)} операций зафиксирован для user_id={self.user_id}")


class DocumentStore:
    """CRUD над коллекциями документов пользователя"""

    def __init__(self, db_manager: DatabaseManager):
        self.db_manager = db_manager

    def list_all(self, user_id: str, collection: str) -> List[Dict[str, Any]]:
        """Все документы коллекции (с полем id)"""
        rows = self.db_manager.execute_query(
            """
            SELECT doc_id, data
            FROM documents
            WHERE user_id = %s AND collection = %s
            ORDER BY created_at, doc_id
            """,
            (user_id, collection)
        )
        documents = []
        for row in rows:
            data = self._parse_data(row.get("data"))
            data["id"] = row["doc_id"]
            documents.append(data)
        logger.debug(f"Коллекция {collection} пользователя {user_id}: {len(documents)} документов")
        return documents

    def get_one(self, user_id: str, collection: str, doc_id: str) -> Optional[Dict[str, Any]]:
        rows = self.db_manager.execute_query(
            """
            SELECT doc_id, data
            FROM documents
            WHERE user_id = %s AND collection = %s AND doc_id = %s
            """,
            (user_id, collection, doc_id)
        )
        if not rows:
            return None
        data = self._parse_data(rows[0].get("data"))
        data["id"] = rows[0]["doc_id"]
        return data

    def set(self, user_id: str, collection: str, doc_id: str, data: Dict[str, Any]) -> None:
        """Запись документа целиком (upsert)"""
        self.db_manager.execute_update(UPSERT_QUERY, (user_id, collection, doc_id, _as_json(_without_id(data))))

    @staticmethod
    def new_id() -> str:
        """Идентификатор нового документа"""
        return uuid.uuid4().hex

    def add(self, user_id: str, collection: str, data: Dict[str, Any]) -> str:
        """Создание документа с идентификатором, сгенерированным хранилищем"""
        doc_id = self.new_id()
        self.set(user_id, collection, doc_id, data)
        logger.info(f"Создан документ {collection}/{doc_id} для user_id={user_id}")
        return doc_id

    def delete(self, user_id: str, collection: str, doc_id: str) -> None:
        self.db_manager.execute_update(DELETE_QUERY, (user_id, collection, doc_id))

    def batch(self, user_id: str) -> WriteBatch:
        return WriteBatch(self.db_manager, user_id)

    @staticmethod
    def _parse_data(value: Any) -> Dict[str, Any]:
        """Парсинг data из БД (может быть строкой JSON или уже словарем)"""
        if not value:
            return {}
        if isinstance(value, dict):
            return dict(value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
            except (json.JSONDecodeError, TypeError):
                logger.warning(f"Не удалось распарсить документ как JSON: {value[:100]}")
                return {}
            return parsed if isinstance(parsed, dict) else {}
        return {}
