"""
Создание таблиц ObraMap в PostgreSQL
"""

from loguru import logger

from core.database import DatabaseManager

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS documents (
        user_id     TEXT NOT NULL,
        collection  TEXT NOT NULL,
        doc_id      TEXT NOT NULL,
        data        JSONB NOT NULL DEFAULT '{}'::jsonb,
        created_at  TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at  TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        PRIMARY KEY (user_id, collection, doc_id)
    )
    """,
    """
    CREATE INDEX IF NOT EXISTS idx_documents_user_collection
        ON documents (user_id, collection)
    """,
    """
    CREATE TABLE IF NOT EXISTS auth_accounts (
        uid             TEXT PRIMARY KEY,
        email           TEXT NOT NULL UNIQUE,
        display_name    TEXT NOT NULL DEFAULT '',
        password_hash   TEXT NOT NULL,
        email_verified  BOOLEAN NOT NULL DEFAULT FALSE,
        disabled        BOOLEAN NOT NULL DEFAULT FALSE,
        created_at      TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at      TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
    """,
]


def ensure_schema(db_manager: DatabaseManager) -> None:
    """Создание недостающих таблиц (идемпотентно)"""
    with db_manager.transaction() as cursor:
        for statement in SCHEMA_STATEMENTS:
            cursor.execute(statement)
    logger.info("Схема БД obramap проверена")
