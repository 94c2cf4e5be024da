"""
Тесты для отложенной загрузки фото
"""

from unittest.mock import Mock

import pytest

from core.blob_store import BlobStore, sanitize_filename
from core.exceptions import BlobStorageError, ValidationError
from modules.obras.models import Photo
from modules.obras.photo_staging import StagedAttachments


class TestBlobStore:
    """Тесты для файлового хранилища"""

    def test_upload_and_delete(self, tmp_path):
        """Загрузка и удаление файла"""
        store = BlobStore(tmp_path)
        path = store.build_path("u1", "lead1", "foto 1.jpg")

        reference = store.upload(path, b"jpeg")

        assert reference.startswith("users/u1/obras/lead1/fotos/")
        assert reference.endswith("foto_1.jpg")
        assert store.get_download_url(reference).startswith("file://")
        store.delete(reference)
        assert not (tmp_path / reference).exists()

    def test_path_outside_root_is_rejected(self, tmp_path):
        """Путь вне корня хранилища отклоняется"""
        with pytest.raises(ValidationError):
            BlobStore(tmp_path).upload("../fora.txt", b"x")

    def test_missing_file_has_no_url(self, tmp_path):
        """Для отсутствующего файла нет ссылки"""
        with pytest.raises(BlobStorageError):
            BlobStore(tmp_path).get_download_url("users/u1/nada.jpg")

    def test_sanitize_filename(self):
        """Очистка имени файла"""
        assert sanitize_filename("../../etc/passwd") == "passwd"
        assert sanitize_filename("") == "arquivo"


class TestStagedAttachments:
    """Тесты для набора файлов формы"""

    @pytest.fixture
    def store(self, tmp_path):
        return BlobStore(tmp_path / "storage")

    @pytest.fixture
    def source(self, tmp_path):
        path = tmp_path / "obra.jpg"
        path.write_bytes(b"foto")
        return path

    def test_cancel_touches_nothing(self):
        """Отмена редактирования не трогает хранилище"""
        blob_store = Mock()
        staged = StagedAttachments()
        staged.stage("obra.jpg")
        staged.remove_persisted(Photo("url", "ref"))

        assert staged.has_changes
        blob_store.upload.assert_not_called()
        blob_store.delete.assert_not_called()

    def test_resolve_uploads_pending(self, store, source):
        """Новые файлы загружаются при сохранении"""
        existing = Photo("file:///x", "users/u1/obras/l1/fotos/old.jpg")
        staged = StagedAttachments(persisted=[existing])
        staged.stage(source)

        photos = staged.resolve(store, "u1", "l1")

        assert photos[0] == existing
        assert len(photos) == 2
        assert (store.root_dir / photos[1].ref_path).read_bytes() == b"foto"

    def test_commit_deletes_removed(self, source):
        """Удаленные фото стираются после записи объекта"""
        blob_store = Mock()
        blob_store.build_path = BlobStore.build_path
        blob_store.upload.side_effect = lambda path, data: path
        blob_store.get_download_url.side_effect = lambda ref: f"file:///{ref}"
        removed = Photo("file:///r", "users/u1/obras/l1/fotos/r.jpg")
        staged = StagedAttachments(persisted=[removed])
        staged.remove_persisted(removed)
        staged.stage(source)

        staged.resolve(blob_store, "u1", "l1")
        staged.commit(blob_store)

        blob_store.delete.assert_called_once_with(removed.ref_path)
        assert not staged.has_changes
        assert len(staged.persisted) == 1

    def test_failed_upload_rolls_back_earlier_uploads(self, source, tmp_path):
        """Ошибка загрузки удаляет уже загруженные файлы"""
        blob_store = Mock()
        blob_store.build_path = BlobStore.build_path
        blob_store.upload.side_effect = ["users/u1/obras/l1/fotos/a.jpg", BlobStorageError("cheio")]
        blob_store.get_download_url.return_value = "file:///a"
        staged = StagedAttachments()
        staged.stage(source)
        staged.stage(source)

        with pytest.raises(BlobStorageError):
            staged.resolve(blob_store, "u1", "l1")

        blob_store.delete.assert_called_once_with("users/u1/obras/l1/fotos/a.jpg")
        assert len(staged.pending) == 2

    def test_unreadable_file(self, store, tmp_path):
        """Нечитаемый файл дает ошибку хранилища"""
        staged = StagedAttachments()
        staged.stage(tmp_path / "nao_existe.jpg")

        with pytest.raises(BlobStorageError):
            staged.resolve(store, "u1", "l1")
