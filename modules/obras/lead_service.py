"""
Сервис работы с объектами (obras)

Создание черновика объекта по точке на карте, изменение контактов, задач
и КП с обновлением отметки lastUpdated, сохранение с отложенной загрузкой
фото, выборки для карты и маршрута визитов.
"""

import uuid
from datetime import date, datetime, timezone, tzinfo
from typing import Iterable, List, Optional, Tuple

from loguru import logger

from core.blob_store import BlobStore
from core.exceptions import ValidationError
from modules.obras.lead_repository import LeadRepository
from modules.obras.models import (
    ConstructionPhase, Contact, Lead, LeadStage, PARTNER_PRODUCTS, Partner,
    Proposal, Task, TaskStatus, TaskType,
)
from modules.obras.photo_staging import StagedAttachments

GOOGLE_MAPS_DIRECTIONS_URL = "https://www.google.com/maps/dir/?api=1&destination={lat},{lng}"


def touch(lead: Lead, now: Optional[datetime] = None) -> None:
    lead.touch(now)


def filter_leads(
    leads: Iterable[Lead],
    stage: Optional[LeadStage] = None,
    phase: Optional[ConstructionPhase] = None
) -> List[Lead]:
    """Фильтр объектов по этапу и фазе (None — без фильтра)"""
    return [
        lead for lead in leads
        if (stage is None or lead.stage == stage) and (phase is None or lead.phase == phase)
    ]


def visits_due_on(leads: Iterable[Lead], day: date, tz: Optional[tzinfo] = None) -> List[Lead]:
    """
    Объекты с незавершенным визитом на указанный день

    Порядок сохраняется таким, как в исходной коллекции.
    """
    result = []
    for lead in leads:
        for task in lead.tasks:
            if task.type != TaskType.VISIT or task.status != TaskStatus.PENDING:
                continue
            if task.due.astimezone(tz).date() == day:
                result.append(lead)
                break
    return result


def pending_tasks(leads: Iterable[Lead]) -> List[Tuple[Lead, Task]]:
    """Незавершенные задачи всех объектов по возрастанию срока"""
    items = [(lead, task) for lead in leads for task in lead.tasks if task.status == TaskStatus.PENDING]
    items.sort(key=lambda item: item[1].due)
    return items


def navigation_url(lead: Lead) -> str:
    """Ссылка на построение маршрута до объекта в Google Maps"""
    return GOOGLE_MAPS_DIRECTIONS_URL.format(lat=lead.lat, lng=lead.lng)


class LeadService:
    """Операции над объектами пользователя"""

    def __init__(self, lead_repo: LeadRepository, blob_store: BlobStore):
        self.lead_repo = lead_repo
        self.blob_store = blob_store

    @staticmethod
    def new_lead_at(user_id: str, lat: float, lng: float, today: Optional[date] = None) -> Lead:
        """Черновик объекта в точке карты (еще не сохранен)"""
        return Lead(
            id=None,
            user_id=user_id,
            name="",
            builder="",
            lat=lat,
            lng=lng,
            stage=LeadStage.LEAD,
            registration_date=today or date.today(),
        )

    @staticmethod
    def validate(lead: Lead) -> None:
        if not lead.name.strip():
            raise ValidationError("O nome da obra é obrigatório.")
        if not lead.builder.strip():
            raise ValidationError("O nome da construtora é obrigatório.")
        if not (-90.0 <= lead.lat <= 90.0) or not (-180.0 <= lead.lng <= 180.0):
            raise ValidationError("Coordenadas da obra inválidas.")

    def save_lead(
        self,
        lead: Lead,
        photos: Optional[StagedAttachments] = None,
        now: Optional[datetime] = None
    ) -> Lead:
        """
        Сохранение объекта

        Новые фото загружаются только здесь, до записи документа; при ошибке
        записи объекта загруженные файлы удаляются. Новый объект с фото
        получает ID заранее и записывается одной операцией.

        Raises:
            ValidationError: Не заполнены обязательные поля
            GatewayError: Ошибка хранилища
        """
        self.validate(lead)
        touch(lead, now)
        created = lead.id is None

        if photos is None or not photos.has_changes:
            if created:
                self.lead_repo.add_lead(lead)
            else:
                self.lead_repo.save_lead(lead)
            return lead

        if created:
            lead.id = self.lead_repo.new_lead_id()
        previous = lead.photos
        try:
            lead.photos = photos.resolve(self.blob_store, lead.user_id, lead.id)
        except Exception:
            if created:
                lead.id = None
            raise
        try:
            self.lead_repo.save_lead(lead)
        except Exception:
            lead.photos = previous
            if created:
                lead.id = None
            photos.rollback(self.blob_store)
            raise
        photos.commit(self.blob_store)
        logger.info(f"Объект {lead.id} сохранен с {len(lead.photos)} фото")
        return lead

    # ---------- Этап ----------

    @staticmethod
    def set_stage(lead: Lead, stage: LeadStage, now: Optional[datetime] = None) -> None:
        if lead.stage != stage:
            logger.debug(f"Объект {lead.id}: этап {lead.stage.value} -> {stage.value}")
            lead.stage = stage
        touch(lead, now)

    # ---------- Контакты ----------

    @staticmethod
    def add_contact(
        lead: Lead, name: str, phone: str = "", email: str = "", role: str = "",
        now: Optional[datetime] = None
    ) -> Contact:
        if not name.strip():
            raise ValidationError("O nome do contato é obrigatório.")
        contact = Contact(id=uuid.uuid4().hex, name=name.strip(), phone=phone, email=email, role=role)
        lead.contacts.append(contact)
        touch(lead, now)
        return contact

    @staticmethod
    def remove_contact(lead: Lead, contact_id: str, now: Optional[datetime] = None) -> bool:
        before = len(lead.contacts)
        lead.contacts = [c for c in lead.contacts if c.id != contact_id]
        removed = len(lead.contacts) != before
        if removed:
            touch(lead, now)
        return removed

    # ---------- Задачи ----------

    @staticmethod
    def add_task(
        lead: Lead, title: str, due: datetime, task_type: TaskType, description: str = "",
        now: Optional[datetime] = None
    ) -> Task:
        if not title.strip():
            raise ValidationError("O título da tarefa é obrigatório.")
        task = Task(
            id=uuid.uuid4().hex,
            lead_id=lead.id or "",
            title=title.strip(),
            description=description,
            due=due if due.tzinfo else due.replace(tzinfo=timezone.utc),
            type=task_type,
        )
        lead.tasks.append(task)
        touch(lead, now)
        return task

    @staticmethod
    def remove_task(lead: Lead, task_id: str, now: Optional[datetime] = None) -> bool:
        before = len(lead.tasks)
        lead.tasks = [t for t in lead.tasks if t.id != task_id]
        removed = len(lead.tasks) != before
        if removed:
            touch(lead, now)
        return removed

    @staticmethod
    def complete_task(lead: Lead, task_id: str, now: Optional[datetime] = None) -> bool:
        for task in lead.tasks:
            if task.id == task_id:
                task.status = TaskStatus.DONE
                touch(lead, now)
                return True
        return False

    # ---------- Коммерческие предложения ----------

    @staticmethod
    def add_proposal(
        lead: Lead, partner: Partner, products: List[str], value: float, proposal_date: date,
        now: Optional[datetime] = None
    ) -> Proposal:
        if not products:
            raise ValidationError("Selecione ao menos um produto.")
        unknown = [p for p in products if p not in PARTNER_PRODUCTS[partner]]
        if unknown:
            raise ValidationError(f"Produto(s) não pertencem a {partner.value}: {', '.join(unknown)}")
        if value < 0:
            raise ValidationError("O valor da proposta não pode ser negativo.")
        proposal = Proposal(
            id=uuid.uuid4().hex,
            partner=partner,
            products=list(products),
            value=float(value),
            date=proposal_date,
        )
        lead.proposals.append(proposal)
        touch(lead, now)
        return proposal

    def attach_to_proposal(
        self, lead: Lead, proposal: Proposal, attachment: StagedAttachments
    ) -> None:
        """
        Загрузка вложения КП (после сохранения объекта, когда известен его ID)

        Предыдущее вложение заменяется.
        """
        if lead.id is None:
            raise ValidationError("Salve a obra antes de anexar arquivos à proposta.")
        if proposal.attachment and proposal.attachment not in attachment.removed:
            attachment.remove_persisted(proposal.attachment)
        resolved = attachment.resolve(self.blob_store, lead.user_id, lead.id)
        previous = proposal.attachment
        proposal.attachment = resolved[-1] if resolved else None
        touch(lead)
        try:
            self.lead_repo.save_lead(lead)
        except Exception:
            proposal.attachment = previous
            attachment.rollback(self.blob_store)
            raise
        attachment.commit(self.blob_store)

    @staticmethod
    def remove_proposal(lead: Lead, proposal_id: str, now: Optional[datetime] = None) -> bool:
        before = len(lead.proposals)
        lead.proposals = [p for p in lead.proposals if p.id != proposal_id]
        removed = len(lead.proposals) != before
        if removed:
            touch(lead, now)
        return removed
