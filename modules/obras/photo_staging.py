"""
Отложенная загрузка фото и вложений

Пока форма объекта открыта, новые файлы только накапливаются локально
(с превью), а удаленные — помечаются. Хранилище файлов затрагивается
лишь при сохранении объекта; отмена редактирования ничего не загружает
и не удаляет.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List

from loguru import logger

from core.blob_store import BlobStore
from core.exceptions import BlobStorageError
from modules.obras.models import Photo


@dataclass
class PendingFile:
    """Локальный файл, ожидающий загрузки"""
    source_path: Path
    preview: Any = None  # локальное превью (например, QPixmap)


@dataclass
class StagedAttachments:
    """Набор файлов формы: уже сохраненные плюс ожидающие загрузки"""
    persisted: List[Photo] = field(default_factory=list)
    folder: str = "fotos"
    pending: List[PendingFile] = field(default_factory=list)
    removed: List[Photo] = field(default_factory=list)
    _uploaded: List[Photo] = field(default_factory=list, repr=False)

    @property
    def has_changes(self) -> bool:
        return bool(self.pending or self.removed)

    def stage(self, source_path: Path, preview: Any = None) -> PendingFile:
        pending = PendingFile(Path(source_path), preview)
        self.pending.append(pending)
        return pending

    def discard(self, pending: PendingFile) -> None:
        if pending in self.pending:
            self.pending.remove(pending)

    def remove_persisted(self, photo: Photo) -> None:
        if photo in self.persisted:
            self.persisted.remove(photo)
            self.removed.append(photo)

    def resolve(self, blob_store: BlobStore, user_id: str, lead_id: str) -> List[Photo]:
        """
        Загрузка ожидающих файлов

        Returns:
            Итоговый список ссылок (сохраненные + только что загруженные)

        Raises:
            BlobStorageError: Загрузка не удалась (уже загруженные файлы этого вызова удаляются)
        """
        self._uploaded = []
        try:
            for pending in self.pending:
                try:
                    data = pending.source_path.read_bytes()
                except OSError as e:
                    raise BlobStorageError(f"Не удалось прочитать файл {pending.source_path}: {e}") from e
                path = blob_store.build_path(user_id, lead_id, pending.source_path.name, self.folder)
                reference = blob_store.upload(path, data)
                self._uploaded.append(Photo(url=blob_store.get_download_url(reference), ref_path=reference))
        except BlobStorageError:
            self.rollback(blob_store)
            raise
        return list(self.persisted) + list(self._uploaded)

    def commit(self, blob_store: BlobStore) -> None:
        """Удаление помеченных файлов после успешного сохранения объекта"""
        for photo in self.removed:
            try:
                blob_store.delete(photo.ref_path)
            except BlobStorageError as e:
                logger.warning(f"Не удалось удалить файл {photo.ref_path}: {e}")
        self.persisted = list(self.persisted) + list(self._uploaded)
        self.pending = []
        self.removed = []
        self._uploaded = []

    def rollback(self, blob_store: BlobStore) -> None:
        """Удаление файлов, загруженных для несохранившегося объекта"""
        for photo in self._uploaded:
            try:
                blob_store.delete(photo.ref_path)
            except BlobStorageError as e:
                logger.warning(f"Не удалось откатить загрузку {photo.ref_path}: {e}")
        self._uploaded = []
