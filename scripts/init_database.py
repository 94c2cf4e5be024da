"""
Скрипт для создания таблиц ObraMap в базе данных
"""

import sys
from pathlib import Path

# Добавляем корневую директорию проекта в путь
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from loguru import logger

from config.settings import config
from core.database import DatabaseManager
from core.exceptions import GatewayError
from core.schema import ensure_schema


def init_database() -> bool:
    """Создает таблицы documents и auth_accounts, если их нет"""
    db_manager = DatabaseManager(config.database)
    try:
        db_manager.connect()
        ensure_schema(db_manager)
        tables = db_manager.execute_query(
            """
            SELECT table_name FROM information_schema.tables
            WHERE table_schema = 'public' AND table_name IN ('documents', 'auth_accounts')
            """
        )
        logger.info(f"Таблицы на месте: {', '.join(row['table_name'] for row in tables)}")
        return True
    except GatewayError as e:
        logger.error(f"Ошибка при создании схемы: {e}")
        return False
    finally:
        db_manager.disconnect()


if __name__ == "__main__":
    sys.exit(0 if init_database() else 1)
