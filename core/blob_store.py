"""
Файловое хранилище фото объектов и вложений КП

Файлы раскладываются по каталогам users/{user_id}/obras/{lead_id}/.
Ссылка на файл (reference) — относительный путь внутри корня хранилища.
"""

import re
import uuid
from pathlib import Path

from loguru import logger

from core.exceptions import BlobStorageError, ValidationError

_UNSAFE_CHARS = re.compile(r"[^\w.\-]+", re.UNICODE)


def sanitize_filename(filename: str) -> str:
    """Очистка имени файла от небезопасных символов"""
    name = Path(filename or "").name
    cleaned = _UNSAFE_CHARS.sub("_", name).strip("._")
    return cleaned or "arquivo"


class BlobStore:
    """Загрузка, выдача ссылок и удаление файлов"""

    def __init__(self, root_dir: Path):
        self.root_dir = Path(root_dir)

    @staticmethod
    def build_path(user_id: str, lead_id: str, filename: str, folder: str = "fotos") -> str:
        """
        Путь файла в хранилище с уникальным префиксом

        Args:
            user_id: Владелец файла
            lead_id: Объект, к которому относится файл
            filename: Исходное имя файла
            folder: Подкаталог (fotos, propostas)
        """
        unique_name = f"{uuid.uuid4().hex[:12]}_{sanitize_filename(filename)}"
        return f"users/{user_id}/obras/{lead_id}/{folder}/{unique_name}"

    def _resolve(self, reference: str) -> Path:
        """Абсолютный путь по ссылке; выход за пределы корня запрещен"""
        if not reference:
            raise ValidationError("Пустая ссылка на файл")
        root = self.root_dir.resolve()
        target = (root / reference).resolve()
        if root != target and root not in target.parents:
            raise ValidationError(f"Недопустимый путь в хранилище: {reference}")
        return target

    def upload(self, path: str, data: bytes) -> str:
        """
        Сохранение файла

        Returns:
            Долговременная ссылка на файл
        """
        target = self._resolve(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as e:
            logger.error(f"Ошибка записи файла {path}: {e}")
            raise BlobStorageError(f"Не удалось сохранить файл {path}: {e}") from e
        logger.info(f"Файл загружен в хранилище: {path} ({len(data)} байт)")
        return path

    def get_download_url(self, reference: str) -> str:
        target = self._resolve(reference)
        if not target.exists():
            raise BlobStorageError(f"Файл не найден: {reference}")
        return target.as_uri()

    def delete(self, reference: str) -> None:
        target = self._resolve(reference)
        try:
            target.unlink()
            logger.info(f"Файл удален из хранилища: {reference}")
        except FileNotFoundError:
            logger.warning(f"Файл для удаления не найден: {reference}")
        except OSError as e:
            raise BlobStorageError(f"Не удалось удалить файл {reference}: {e}") from e
