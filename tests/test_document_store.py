"""
Тесты для хранилища документов
"""

from unittest.mock import MagicMock, Mock

import pytest

from core.document_store import (
    COLLECTION_OBRAS, DELETE_QUERY, DocumentStore, MERGE_QUERY, UPSERT_QUERY, WriteBatch,
)
from core.exceptions import DatabaseQueryError, GatewayError


class TestDocumentStore:
    """Тесты для CRUD над документами"""

    @pytest.fixture
    def mock_db_manager(self):
        """Мок менеджера БД"""
        db = Mock()
        db.execute_query = Mock(return_value=[])
        db.execute_update = Mock()
        return db

    @pytest.fixture
    def store(self, mock_db_manager):
        return DocumentStore(mock_db_manager)

    def test_list_all_adds_id(self, store, mock_db_manager):
        """Документы коллекции получают поле id"""
        mock_db_manager.execute_query.return_value = [
            {"doc_id": "a1", "data": {"nome": "Obra A"}},
            {"doc_id": "b2", "data": '{"nome": "Obra B"}'},
        ]

        documents = store.list_all("u1", COLLECTION_OBRAS)

        assert documents == [{"nome": "Obra A", "id": "a1"}, {"nome": "Obra B", "id": "b2"}]
        args = mock_db_manager.execute_query.call_args[0]
        assert args[1] == ("u1", COLLECTION_OBRAS)

    def test_get_one_missing(self, store):
        """Отсутствующий документ дает None"""
        assert store.get_one("u1", COLLECTION_OBRAS, "x") is None

    def test_broken_json_becomes_empty_document(self, store, mock_db_manager):
        """Нечитаемый JSON превращается в пустой документ"""
        mock_db_manager.execute_query.return_value = [{"doc_id": "a1", "data": "{quebrado"}]

        assert store.get_one("u1", COLLECTION_OBRAS, "a1") == {"id": "a1"}

    def test_add_returns_generated_id(self, store, mock_db_manager):
        """Создание документа возвращает сгенерированный ID"""
        doc_id = store.add("u1", COLLECTION_OBRAS, {"nome": "Obra"})

        assert doc_id
        args = mock_db_manager.execute_update.call_args[0]
        assert args[0] == UPSERT_QUERY
        assert args[1][:3] == ("u1", COLLECTION_OBRAS, doc_id)

    def test_set_strips_id_from_body(self, store, mock_db_manager):
        """Поле id не записывается в тело документа"""
        store.set("u1", COLLECTION_OBRAS, "a1", {"id": "a1", "nome": "Obra"})

        payload = mock_db_manager.execute_update.call_args[0][1][3]
        assert payload.adapted == {"nome": "Obra"}

    def test_delete(self, store, mock_db_manager):
        """Удаление документа по ключу"""
        store.delete("u1", COLLECTION_OBRAS, "a1")

        mock_db_manager.execute_update.assert_called_once_with(DELETE_QUERY, ("u1", COLLECTION_OBRAS, "a1"))

    def test_errors_propagate(self, store, mock_db_manager):
        """Ошибки БД передаются вызывающему коду"""
        mock_db_manager.execute_query.side_effect = DatabaseQueryError("falha")

        with pytest.raises(GatewayError):
            store.list_all("u1", COLLECTION_OBRAS)


class TestWriteBatch:
    """Тесты для пакетной записи"""

    @pytest.fixture
    def cursor(self):
        return Mock()

    @pytest.fixture
    def mock_db_manager(self, cursor):
        db = MagicMock()
        db.transaction.return_value.__enter__.return_value = cursor
        return db

    def test_commit_runs_all_operations_in_one_transaction(self, mock_db_manager, cursor):
        """Все операции пакета выполняются в одной транзакции"""
        batch = WriteBatch(mock_db_manager, "u1")
        batch.set("obras", "a", {"nome": "A"}).update("metas", "2024-03", {"visitas": 3}).delete("regions", "r")

        batch.commit()

        mock_db_manager.transaction.assert_called_once()
        queries = [call[0][0] for call in cursor.execute.call_args_list]
        assert queries == [UPSERT_QUERY, MERGE_QUERY, DELETE_QUERY]

    def test_commit_twice_fails(self, mock_db_manager):
        """Повторная фиксация пакета запрещена"""
        batch = WriteBatch(mock_db_manager, "u1").delete("obras", "a")
        batch.commit()

        with pytest.raises(GatewayError):
            batch.commit()

    def test_empty_batch_does_not_touch_database(self, mock_db_manager):
        """Пустой пакет не обращается к БД"""
        WriteBatch(mock_db_manager, "u1").commit()

        mock_db_manager.transaction.assert_not_called()

    def test_failed_transaction_propagates(self, mock_db_manager, cursor):
        """Ошибка транзакции передается, пакет не помечается зафиксированным"""
        cursor.execute.side_effect = [None, DatabaseQueryError("falha")]
        mock_db_manager.transaction.return_value.__exit__.return_value = False
        batch = WriteBatch(mock_db_manager, "u1").set("obras", "a", {}).set("obras", "b", {})

        with pytest.raises(DatabaseQueryError):
            batch.commit()
