"""
Менеджер базы данных ObraMap

Единое подключение к PostgreSQL, в котором лежат документы пользователей
и учетные записи. Использует Singleton паттерн.

Подключение одно на все потоки (UI и QThread); запросы и транзакции
выполняются под общей блокировкой.
"""

import threading
from contextlib import contextmanager
from typing import Optional, List, Dict, Any, Tuple, Iterator

import psycopg2
from psycopg2 import errorcodes
from psycopg2.extras import RealDictCursor
from loguru import logger

from config.settings import DatabaseConfig
from core.exceptions import DatabaseConnectionError, DatabaseQueryError, PermissionDeniedError


def translate_error(error: psycopg2.Error, context: str) -> Exception:
    """Преобразование ошибки psycopg2 в исключение приложения"""
    if getattr(error, "pgcode", None) == errorcodes.INSUFFICIENT_PRIVILEGE:
        return PermissionDeniedError(f"Доступ запрещен при {context}: {error}")
    if isinstance(error, (psycopg2.OperationalError, psycopg2.InterfaceError)):
        return DatabaseConnectionError(f"Потеря соединения при {context}: {error}")
    return DatabaseQueryError(f"Ошибка при {context}: {error}")


class DatabaseManager:
    """
    Менеджер базы данных obramap (Singleton)

    Управляет подключением и выполнением запросов.
    """

    _instance: Optional['DatabaseManager'] = None
    _connection: Optional[psycopg2.extensions.connection] = None

    def __new__(cls, config: Optional[DatabaseConfig] = None):
        """
        Реализация Singleton паттерна

        Args:
            config: Конфигурация базы данных (используется только при первом создании)
        """
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._config = config
            cls._instance._connection = None
            cls._instance._lock = threading.RLock()
        return cls._instance

    def connect(self) -> None:
        """
        Установка подключения к базе данных

        Raises:
            DatabaseConnectionError: Если не удалось подключиться
        """
        if self._connection and not self._connection.closed:
            logger.debug("Подключение к БД obramap уже установлено")
            return

        if not self._config:
            raise DatabaseConnectionError("Конфигурация БД obramap не задана")

        try:
            self._connection = psycopg2.connect(
                host=self._config.host,
                database=self._config.database,
                user=self._config.user,
                password=self._config.password,
                port=self._config.port,
                cursor_factory=RealDictCursor
            )
            self._connection.autocommit = False
            logger.info(f"Успешное подключение к БД obramap: {self._config.database}")
        except psycopg2.OperationalError as e:
            error_msg = f"Ошибка подключения к БД {self._config.database}: {e}"
            logger.error(error_msg)
            raise DatabaseConnectionError(error_msg) from e

    def disconnect(self) -> None:
        """Закрытие подключения к базе данных"""
        with self._lock:
            if self._connection and not self._connection.closed:
                self._connection.close()
                logger.info("Подключение к БД obramap закрыто")
                self._connection = None

    def is_connected(self) -> bool:
        """Проверка наличия активного подключения"""
        return self._connection is not None and not self._connection.closed

    def _require_connection(self):
        if not self.is_connected():
            raise DatabaseConnectionError("Нет подключения к БД obramap")
        return self._connection

    def execute_query(
        self,
        query: str,
        params: Optional[Tuple] = None
    ) -> List[Dict[str, Any]]:
        """
        Выполнение SELECT запроса (или запроса с RETURNING)

        Args:
            query: SQL запрос
            params: Параметры запроса

        Returns:
            Список результатов запроса в виде словарей

        Raises:
            DatabaseQueryError: Если произошла ошибка при выполнении запроса
        """
        with self._lock:
            connection = self._require_connection()
            try:
                with connection.cursor(cursor_factory=RealDictCursor) as cursor:
                    cursor.execute(query, params)
                    result = cursor.fetchall()
                connection.commit()
            except psycopg2.Error as e:
                connection.rollback()
                error = translate_error(e, "выполнении запроса")
                logger.error(str(error))
                raise error from e
        logger.debug(f"Выполнен запрос к obramap, возвращено {len(result)} строк")
        return [dict(row) for row in result]

    def execute_update(
        self,
        query: str,
        params: Optional[Tuple] = None
    ) -> int:
        """
        Выполнение INSERT/UPDATE/DELETE запроса

        Returns:
            Количество затронутых строк
        """
        with self._lock:
            connection = self._require_connection()
            try:
                with connection.cursor() as cursor:
                    cursor.execute(query, params)
                    affected_rows = cursor.rowcount
                connection.commit()
            except psycopg2.Error as e:
                connection.rollback()
                error = translate_error(e, "выполнении UPDATE запроса")
                logger.error(str(error))
                raise error from e
        logger.debug(f"Выполнен UPDATE запрос, затронуто строк: {affected_rows}")
        return affected_rows

    @contextmanager
    def transaction(self) -> Iterator[Any]:
        """
        Транзакция: все операции внутри блока фиксируются вместе или откатываются

        Блокировка держится до commit или rollback: запросы других потоков
        ждут окончания транзакции.

        Yields:
            Курсор, через который выполняются операции транзакции
        """
        with self._lock:
            connection = self._require_connection()
            try:
                with connection.cursor() as cursor:
                    yield cursor
                connection.commit()
            except psycopg2.Error as e:
                connection.rollback()
                error = translate_error(e, "фиксации транзакции")
                logger.error(str(error))
                raise error from e
            except Exception:
                connection.rollback()
                raise

    @classmethod
    def get_instance(cls) -> Optional['DatabaseManager']:
        """Получение экземпляра Singleton"""
        return cls._instance
