"""
Автоматическая инактивация устаревших объектов

При каждой загрузке данных пользователя объекты на неконечных этапах,
не обновлявшиеся дольше 90 дней, переводятся в этап "Inativo" с задачей
на проверку. Все изменения записываются одним пакетом; список в памяти
меняется только после успешной фиксации пакета.
"""

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from loguru import logger

from modules.obras.lead_repository import LeadRepository
from modules.obras.models import Lead, LeadStage, Task, TaskStatus, TaskType

AGING_THRESHOLD = timedelta(days=90)

AUDIT_TASK_TITLE = "Lead inativado automaticamente"


@dataclass
class AgingResult:
    """Итог прохода по объектам"""
    aged_ids: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.aged_ids)

    @property
    def notice(self) -> Optional[str]:
        """Разовое уведомление для пользователя (None, если ничего не изменилось)"""
        if not self.aged_ids:
            return None
        if self.count == 1:
            return "1 obra sem atualização há mais de 90 dias foi marcada como Inativa."
        return f"{self.count} obras sem atualização há mais de 90 dias foram marcadas como Inativas."


def is_aging_candidate(lead: Lead) -> bool:
    """Объект участвует в проверке: этап не конечный и есть дата обновления"""
    return not lead.stage.is_terminal and lead.last_updated is not None


def has_aged_out(lead: Lead, now: datetime) -> bool:
    if not is_aging_candidate(lead):
        return False
    return now - lead.last_updated > AGING_THRESHOLD


def build_audit_task(lead: Lead, now: datetime) -> Task:
    """Задача-напоминание, добавляемая к инактивированному объекту"""
    last_seen = lead.last_updated.strftime("%d/%m/%Y") if lead.last_updated else "-"
    return Task(
        id=uuid.uuid4().hex,
        lead_id=lead.id or "",
        title=AUDIT_TASK_TITLE,
        description=(
            f"Obra inativada automaticamente: sem atualização desde {last_seen} "
            f"(mais de {AGING_THRESHOLD.days} dias). Entre em contato para verificar o andamento."
        ),
        due=now,
        type=TaskType.CALL,
        status=TaskStatus.PENDING,
    )


class LeadAgingService:
    """Проход по объектам пользователя с инактивацией устаревших"""

    def __init__(self, lead_repo: LeadRepository):
        self.lead_repo = lead_repo

    def find_aged(self, leads: List[Lead], now: datetime) -> List[int]:
        """Индексы объектов, подлежащих инактивации"""
        return [index for index, lead in enumerate(leads) if has_aged_out(lead, now)]

    def sweep(self, user_id: str, leads: List[Lead], now: Optional[datetime] = None) -> AgingResult:
        """
        Инактивация устаревших объектов

        Args:
            user_id: Владелец объектов
            leads: Список объектов в памяти (обновляется на месте после успешной записи)
            now: Текущий момент (UTC)

        Returns:
            Результат прохода с идентификаторами инактивированных объектов

        Raises:
            GatewayError: Пакетная запись не прошла; список в памяти не изменен
        """
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        aged_indexes = self.find_aged(leads, now)
        if not aged_indexes:
            logger.debug(f"Устаревших объектов нет (user_id={user_id}, всего {len(leads)})")
            return AgingResult()

        updated = {}
        for index in aged_indexes:
            lead = copy.deepcopy(leads[index])
            lead.tasks.append(build_audit_task(lead, now))
            lead.stage = LeadStage.INACTIVE
            lead.last_updated = now
            updated[index] = lead

        logger.info(f"Инактивация {len(updated)} объектов пользователя {user_id}")
        try:
            self.lead_repo.save_many_atomically(user_id, updated.values())
        except Exception as e:
            logger.error(f"Пакетная инактивация не записана, данные не изменены: {e}")
            raise

        for index, lead in updated.items():
            leads[index] = lead
        return AgingResult(aged_ids=[lead.id for lead in updated.values()])
