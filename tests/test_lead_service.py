"""
Тесты для сервиса объектов
"""

from datetime import date, datetime, timedelta, timezone
from unittest.mock import Mock

import pytest

from core.exceptions import BlobStorageError, DatabaseQueryError, ValidationError
from modules.obras.lead_service import (
    LeadService, filter_leads, navigation_url, pending_tasks, visits_due_on,
)
from modules.obras.models import (
    ConstructionPhase, Lead, LeadStage, Partner, Photo, Proposal, Task, TaskStatus, TaskType,
)
from modules.obras.photo_staging import StagedAttachments

NOW = datetime(2024, 3, 15, 14, 0, tzinfo=timezone.utc)


def make_lead(lead_id="l1", **kwargs):
    defaults = dict(id=lead_id, user_id="u1", name="Residencial Aurora", builder="Construtora X",
                    lat=-19.9, lng=-43.9)
    defaults.update(kwargs)
    return Lead(**defaults)


def make_task(task_id, due, task_type=TaskType.VISIT, status=TaskStatus.PENDING):
    return Task(id=task_id, lead_id="l1", title=task_id, due=due, type=task_type, status=status)


class TestLeadQueries:
    """Тесты для выборок по объектам"""

    def test_filter_leads(self):
        """Фильтр по этапу и фазе"""
        leads = [
            make_lead("a", stage=LeadStage.LEAD, phase=ConstructionPhase.FOUNDATION),
            make_lead("b", stage=LeadStage.CLOSED, phase=ConstructionPhase.FOUNDATION),
            make_lead("c", stage=LeadStage.LEAD, phase=ConstructionPhase.FINISHING),
        ]

        assert [l.id for l in filter_leads(leads)] == ["a", "b", "c"]
        assert [l.id for l in filter_leads(leads, stage=LeadStage.LEAD)] == ["a", "c"]
        assert [l.id for l in filter_leads(leads, LeadStage.LEAD, ConstructionPhase.FINISHING)] == ["c"]

    def test_visits_due_on_keeps_collection_order(self):
        """Визиты дня в порядке списка объектов"""
        today = date(2024, 3, 15)
        leads = [
            make_lead("b", tasks=[make_task("v1", NOW)]),
            make_lead("a", tasks=[make_task("v2", NOW - timedelta(hours=2))]),
            make_lead("c", tasks=[make_task("v3", NOW + timedelta(days=1))]),
            make_lead("d", tasks=[make_task("call", NOW, TaskType.CALL)]),
            make_lead("e", tasks=[make_task("done", NOW, status=TaskStatus.DONE)]),
        ]

        due = visits_due_on(leads, today, tz=timezone.utc)

        assert [lead.id for lead in due] == ["b", "a"]

    def test_visits_due_on_uses_local_day(self):
        """День визита определяется в локальном часовом поясе"""
        late_evening_utc = datetime(2024, 3, 16, 1, 0, tzinfo=timezone.utc)
        leads = [make_lead("a", tasks=[make_task("v", late_evening_utc)])]
        brasilia = timezone(timedelta(hours=-3))

        assert [l.id for l in visits_due_on(leads, date(2024, 3, 15), tz=brasilia)] == ["a"]
        assert visits_due_on(leads, date(2024, 3, 16), tz=brasilia) == []

    def test_lead_with_two_visits_listed_once(self):
        """Объект с двумя визитами за день попадает в маршрут один раз"""
        leads = [make_lead("a", tasks=[make_task("v1", NOW), make_task("v2", NOW)])]

        assert len(visits_due_on(leads, date(2024, 3, 15), tz=timezone.utc)) == 1

    def test_pending_tasks_sorted_by_due(self):
        """Незавершенные задачи по сроку"""
        leads = [
            make_lead("a", tasks=[make_task("late", NOW + timedelta(days=2)),
                                  make_task("done", NOW, status=TaskStatus.DONE)]),
            make_lead("b", tasks=[make_task("early", NOW)]),
        ]

        rows = pending_tasks(leads)

        assert [(lead.id, task.id) for lead, task in rows] == [("b", "early"), ("a", "late")]

    def test_navigation_url(self):
        """Ссылка на маршрут в Google Maps"""
        assert navigation_url(make_lead()) == (
            "https://www.google.com/maps/dir/?api=1&destination=-19.9,-43.9"
        )


class TestLeadEditing:
    """Тесты для изменения объекта"""

    def test_new_lead_at(self):
        """Черновик объекта в точке карты"""
        lead = LeadService.new_lead_at("u1", -19.9, -43.9, today=date(2024, 3, 15))

        assert lead.id is None
        assert lead.stage == LeadStage.LEAD
        assert lead.registration_date == date(2024, 3, 15)
        assert (lead.lat, lead.lng) == (-19.9, -43.9)

    @pytest.mark.parametrize("changes", [
        {"name": "  "},
        {"builder": ""},
        {"lat": 95.0},
        {"lng": -181.0},
    ])
    def test_validate_rejects(self, changes):
        """Проверка обязательных полей объекта"""
        with pytest.raises(ValidationError):
            LeadService.validate(make_lead(**changes))

    def test_mutations_touch_last_updated(self):
        """Изменения объекта обновляют last_updated"""
        lead = make_lead()

        LeadService.set_stage(lead, LeadStage.NEGOTIATION, now=NOW)
        assert lead.stage == LeadStage.NEGOTIATION
        assert lead.last_updated == NOW

        later = NOW + timedelta(hours=1)
        contact = LeadService.add_contact(lead, "Maria", phone="31 99999-0000", now=later)
        assert lead.contacts == [contact]
        assert lead.last_updated == later

    def test_add_task_naive_due_is_utc(self):
        """Срок задачи без часового пояса считается UTC"""
        lead = make_lead()

        task = LeadService.add_task(lead, "Visitar", datetime(2024, 3, 20, 10, 0), TaskType.VISIT, now=NOW)

        assert task.due.tzinfo == timezone.utc
        assert task.lead_id == "l1"
        assert task.status == TaskStatus.PENDING

    def test_complete_and_remove_task(self):
        """Завершение и удаление задачи"""
        lead = make_lead(tasks=[make_task("t1", NOW)])

        assert LeadService.complete_task(lead, "t1", now=NOW)
        assert lead.tasks[0].status == TaskStatus.DONE
        assert not LeadService.complete_task(lead, "nao-existe")
        assert LeadService.remove_task(lead, "t1")
        assert lead.tasks == []

    def test_remove_missing_contact_does_not_touch(self):
        """Удаление несуществующего контакта не меняет объект"""
        lead = make_lead(last_updated=NOW)

        assert not LeadService.remove_contact(lead, "x", now=NOW + timedelta(days=1))
        assert lead.last_updated == NOW

    def test_add_proposal_checks_catalog(self):
        """Продукты предложения проверяются по каталогу бренда"""
        lead = make_lead()

        proposal = LeadService.add_proposal(lead, Partner.ROCA, ["Porcelanato"], 2500.0, date(2024, 3, 1))
        assert lead.proposals == [proposal]

        with pytest.raises(ValidationError):
            LeadService.add_proposal(lead, Partner.DM2, ["Porcelanato"], 100.0, date(2024, 3, 1))
        with pytest.raises(ValidationError):
            LeadService.add_proposal(lead, Partner.ROCA, [], 100.0, date(2024, 3, 1))
        with pytest.raises(ValidationError):
            LeadService.add_proposal(lead, Partner.ROCA, ["Porcelanato"], -1.0, date(2024, 3, 1))


class TestSaveLead:
    """Тесты для сохранения объекта"""

    @pytest.fixture
    def mock_repo(self):
        repo = Mock()

        def add_lead(lead):
            lead.id = "novo"
            return "novo"

        repo.add_lead = Mock(side_effect=add_lead)
        repo.new_lead_id = Mock(return_value="novo")
        repo.save_lead = Mock()
        return repo

    @pytest.fixture
    def mock_blob_store(self):
        return Mock()

    @pytest.fixture
    def service(self, mock_repo, mock_blob_store):
        return LeadService(mock_repo, mock_blob_store)

    def test_new_lead_without_photos_written_once(self, service, mock_repo):
        """Новый объект без фото записывается одной операцией"""
        lead = make_lead(lead_id=None)

        saved = service.save_lead(lead, now=NOW)

        assert saved.id == "novo"
        assert saved.last_updated == NOW
        mock_repo.add_lead.assert_called_once()
        mock_repo.save_lead.assert_not_called()

    def test_existing_lead_saved(self, service, mock_repo):
        """Существующий объект записывается целиком"""
        lead = make_lead()

        service.save_lead(lead, StagedAttachments(), now=NOW)

        mock_repo.save_lead.assert_called_once_with(lead)

    def test_invalid_lead_not_written(self, service, mock_repo):
        """Невалидный объект не записывается"""
        with pytest.raises(ValidationError):
            service.save_lead(make_lead(name=""))

        mock_repo.add_lead.assert_not_called()
        mock_repo.save_lead.assert_not_called()

    def test_photos_resolved_and_committed(self, service, mock_repo, mock_blob_store):
        """Фото загружаются, удаленные файлы чистятся после записи"""
        uploaded = Photo("file:///novo.jpg", "users/u1/obras/l1/fotos/novo.jpg")
        photos = Mock(spec=StagedAttachments)
        photos.has_changes = True
        photos.resolve.return_value = [uploaded]
        lead = make_lead()

        service.save_lead(lead, photos, now=NOW)

        photos.resolve.assert_called_once_with(mock_blob_store, "u1", "l1")
        assert lead.photos == [uploaded]
        photos.commit.assert_called_once_with(mock_blob_store)
        photos.rollback.assert_not_called()

    def test_failed_write_rolls_back_uploads(self, service, mock_repo, mock_blob_store):
        """Ошибка записи удаляет загруженные фото"""
        old = Photo("file:///old.jpg", "old")
        photos = Mock(spec=StagedAttachments)
        photos.has_changes = True
        photos.resolve.return_value = [old, Photo("file:///novo.jpg", "novo")]
        mock_repo.save_lead.side_effect = DatabaseQueryError("falha")
        lead = make_lead(photos=[old])

        with pytest.raises(DatabaseQueryError):
            service.save_lead(lead, photos, now=NOW)

        assert lead.photos == [old]
        photos.rollback.assert_called_once_with(mock_blob_store)
        photos.commit.assert_not_called()

    def test_upload_failure_propagates(self, service, mock_repo):
        """Ошибка загрузки фото прерывает сохранение"""
        photos = Mock(spec=StagedAttachments)
        photos.has_changes = True
        photos.resolve.side_effect = BlobStorageError("cheio")

        with pytest.raises(BlobStorageError):
            service.save_lead(make_lead(), photos)

        mock_repo.save_lead.assert_not_called()

    def test_new_lead_with_photos_written_once(self, service, mock_repo, mock_blob_store):
        """Новый объект с фото получает ID до загрузки и записывается одной операцией"""
        uploaded = Photo("file:///novo.jpg", "users/u1/obras/novo/fotos/novo.jpg")
        photos = Mock(spec=StagedAttachments)
        photos.has_changes = True
        photos.resolve.return_value = [uploaded]
        lead = make_lead(lead_id=None)

        saved = service.save_lead(lead, photos, now=NOW)

        assert saved.id == "novo"
        photos.resolve.assert_called_once_with(mock_blob_store, "u1", "novo")
        mock_repo.save_lead.assert_called_once_with(lead)
        mock_repo.add_lead.assert_not_called()
        assert lead.photos == [uploaded]

    def test_new_lead_upload_failure_writes_nothing(self, service, mock_repo):
        """Ошибка загрузки фото нового объекта не оставляет документа в хранилище"""
        photos = Mock(spec=StagedAttachments)
        photos.has_changes = True
        photos.resolve.side_effect = BlobStorageError("cheio")
        lead = make_lead(lead_id=None)

        with pytest.raises(BlobStorageError):
            service.save_lead(lead, photos, now=NOW)

        mock_repo.add_lead.assert_not_called()
        mock_repo.save_lead.assert_not_called()
        assert lead.id is None
        assert lead.photos == []

    def test_new_lead_failed_write_rolls_back(self, service, mock_repo, mock_blob_store):
        """Ошибка записи нового объекта удаляет загрузки и сбрасывает ID"""
        photos = Mock(spec=StagedAttachments)
        photos.has_changes = True
        photos.resolve.return_value = [Photo("file:///novo.jpg", "novo")]
        mock_repo.save_lead.side_effect = DatabaseQueryError("falha")
        lead = make_lead(lead_id=None)

        with pytest.raises(DatabaseQueryError):
            service.save_lead(lead, photos, now=NOW)

        assert lead.id is None
        assert lead.photos == []
        photos.rollback.assert_called_once_with(mock_blob_store)

    def test_attach_requires_saved_lead(self, service):
        """Вложение к предложению требует сохраненного объекта"""
        proposal = Proposal(id="p", partner=Partner.ROCA, products=["Porcelanato"], value=1.0,
                            date=date(2024, 3, 1))

        with pytest.raises(ValidationError):
            service.attach_to_proposal(make_lead(lead_id=None), proposal, StagedAttachments(folder="propostas"))

    def test_attach_replaces_previous_attachment(self, service, mock_repo, mock_blob_store):
        """Новое вложение заменяет предыдущее"""
        previous = Photo("file:///a.pdf", "a.pdf")
        new = Photo("file:///b.pdf", "b.pdf")
        proposal = Proposal(id="p", partner=Partner.ROCA, products=["Porcelanato"], value=1.0,
                            date=date(2024, 3, 1), attachment=previous)
        lead = make_lead(proposals=[proposal])
        attachment = StagedAttachments(persisted=[previous], folder="propostas")
        attachment.resolve = Mock(return_value=[new])
        attachment.commit = Mock()

        service.attach_to_proposal(lead, proposal, attachment)

        assert proposal.attachment == new
        assert attachment.removed == [previous]
        mock_repo.save_lead.assert_called_once_with(lead)
        attachment.commit.assert_called_once_with(mock_blob_store)
