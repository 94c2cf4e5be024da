"""
Тесты для менеджера базы данных: транзакции и общее подключение
"""

import threading
import time

import psycopg2
import pytest

from config.settings import DatabaseConfig
from core.database import DatabaseManager
from core.document_store import COLLECTION_OBRAS, COLLECTION_REGIONS, DocumentStore
from core.exceptions import DatabaseQueryError


class FakeCursor:
    """Курсор, записывающий ID документа из параметров запроса"""

    rowcount = 1

    def __init__(self, connection):
        self.connection = connection

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def execute(self, query, params=None):
        doc_id = params[2]
        if doc_id == "quebrado":
            raise psycopg2.DatabaseError("falha no documento")
        self.connection.pending.append(doc_id)
        if self.connection.on_execute is not None:
            self.connection.on_execute(doc_id)

    def fetchall(self):
        return []


class FakeConnection:
    """Подключение с учетом незафиксированных и зафиксированных записей"""

    closed = False

    def __init__(self):
        self.pending = []
        self.committed = []
        self.on_execute = None

    def cursor(self, cursor_factory=None):
        return FakeCursor(self)

    def commit(self):
        self.committed.extend(self.pending)
        self.pending = []

    def rollback(self):
        self.pending = []


class TestDatabaseManager:
    """Тесты для транзакций на общем подключении"""

    @pytest.fixture
    def connection(self):
        return FakeConnection()

    @pytest.fixture
    def db_manager(self, connection):
        """Менеджер с подставленным подключением (Singleton сбрасывается)"""
        DatabaseManager._instance = None
        manager = DatabaseManager(DatabaseConfig())
        manager._connection = connection
        yield manager
        DatabaseManager._instance = None

    def test_transaction_commits_all(self, db_manager, connection):
        """Все операции транзакции фиксируются вместе"""
        with db_manager.transaction() as cursor:
            cursor.execute("INSERT", ("u1", COLLECTION_OBRAS, "lead-1"))
            cursor.execute("INSERT", ("u1", COLLECTION_OBRAS, "lead-2"))

        assert connection.committed == ["lead-1", "lead-2"]

    def test_failed_transaction_rolls_back(self, db_manager, connection):
        """Ошибка в середине транзакции откатывает и предыдущие операции"""
        with pytest.raises(DatabaseQueryError):
            with db_manager.transaction() as cursor:
                cursor.execute("INSERT", ("u1", COLLECTION_OBRAS, "lead-1"))
                cursor.execute("INSERT", ("u1", COLLECTION_OBRAS, "quebrado"))

        assert connection.committed == []

    def test_write_from_other_thread_waits_for_batch(self, db_manager, connection):
        """Запись из другого потока не фиксирует половину пакета"""
        store = DocumentStore(db_manager)
        batch_started = threading.Event()
        writer_started = threading.Event()

        def pause_after_first_operation(doc_id):
            if doc_id == "lead-1":
                batch_started.set()
                writer_started.wait(1)
                time.sleep(0.2)

        def write_region():
            batch_started.wait(1)
            writer_started.set()
            store.set("u1", COLLECTION_REGIONS, "r1", {"cor": "#3B82F6"})

        connection.on_execute = pause_after_first_operation
        writer = threading.Thread(target=write_region)
        writer.start()

        batch = store.batch("u1")
        batch.set(COLLECTION_OBRAS, "lead-1", {"nome": "Obra 1"})
        batch.set(COLLECTION_OBRAS, "quebrado", {"nome": "Obra 2"})
        with pytest.raises(DatabaseQueryError):
            batch.commit()
        writer.join(2)

        assert not writer.is_alive()
        assert connection.committed == ["r1"]

    def test_lock_is_reentrant(self, db_manager, connection):
        """Запрос внутри транзакции того же потока не блокируется"""
        with db_manager.transaction() as cursor:
            cursor.execute("INSERT", ("u1", COLLECTION_OBRAS, "lead-1"))
            db_manager.execute_update("INSERT", ("u1", COLLECTION_REGIONS, "r1"))

        assert connection.committed == ["lead-1", "r1"]
