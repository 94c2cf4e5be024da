"""
Расчет показателей панели

Чистая функция от (объекты, цели месяца, выбранный месяц): суммы
закрытых сделок и выполненных визитов/звонков фильтруются по месяцу,
распределение по этапам и КП по брендам считаются по всей коллекции.
Переключение режима отображения меняет только форматирование.
"""

from dataclasses import dataclass, field
from datetime import date, tzinfo
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional

from loguru import logger

from modules.dashboard.formatters import format_count, format_currency, format_percent
from modules.obras.models import (
    Goals, Lead, LeadStage, Partner, TaskStatus, TaskType, month_key,
)


class DisplayMode(Enum):
    ABSOLUTE = "absolute"
    PERCENT = "percent"


class FigureUnit(Enum):
    CURRENCY = "currency"
    COUNT = "count"


@dataclass(frozen=True)
class GoalFigure:
    """Показатель в паре с целью"""
    total: float
    target: float
    unit: FigureUnit = FigureUnit.COUNT

    @property
    def attainment(self) -> float:
        """Доля выполнения цели без ограничения (0, если цель не задана)"""
        if self.target <= 0:
            return 0.0
        return self.total / self.target

    @property
    def progress(self) -> float:
        """Доля для индикатора выполнения, в пределах [0, 1]"""
        return min(max(self.attainment, 0.0), 1.0)

    @property
    def percent(self) -> float:
        return self.attainment * 100


@dataclass(frozen=True)
class PartnerProposals:
    count: int = 0
    value: float = 0.0


@dataclass
class DashboardView:
    """Готовые для отображения показатели за месяц"""
    month: str
    closed_value: GoalFigure
    visits: GoalFigure
    calls: GoalFigure
    stage_distribution: Dict[LeadStage, int] = field(default_factory=dict)
    proposals_by_partner: Dict[Partner, PartnerProposals] = field(default_factory=dict)
    closed_value_by_partner: Dict[Partner, GoalFigure] = field(default_factory=dict)

    @property
    def total_leads(self) -> int:
        return sum(self.stage_distribution.values())


def _in_month(value: Optional[date], month: str) -> bool:
    return value is not None and month_key(value) == month


def closed_leads_in_month(leads: Iterable[Lead], month: str) -> List[Lead]:
    """Закрытые объекты с датой регистрации в месяце"""
    return [
        lead for lead in leads
        if lead.stage == LeadStage.CLOSED and _in_month(lead.registration_date, month)
    ]


def count_done_tasks(leads: Iterable[Lead], task_type: TaskType, month: str,
                     tz: Optional[tzinfo] = None) -> int:
    """Выполненные задачи типа task_type со сроком в месяце (по всем объектам)"""
    return sum(
        1
        for lead in leads
        for task in lead.tasks
        if task.type == task_type
        and task.status == TaskStatus.DONE
        and _in_month(task.due.astimezone(tz).date(), month)
    )


def stage_distribution(leads: Iterable[Lead]) -> Dict[LeadStage, int]:
    """Количество объектов на каждом этапе (все этапы, включая нулевые)"""
    counts = {stage: 0 for stage in LeadStage}
    for lead in leads:
        counts[lead.stage] += 1
    return counts


def proposals_by_partner(leads: Iterable[Lead]) -> Dict[Partner, PartnerProposals]:
    totals = {partner: PartnerProposals() for partner in Partner}
    for lead in leads:
        for proposal in lead.proposals:
            current = totals[proposal.partner]
            totals[proposal.partner] = PartnerProposals(current.count + 1, current.value + proposal.value)
    return totals


def aggregate(leads: List[Lead], goals: Goals, month: str, tz: Optional[tzinfo] = None) -> DashboardView:
    """
    Расчет показателей панели за месяц

    Args:
        leads: Все объекты пользователя
        goals: Цели выбранного месяца
        month: Ключ месяца YYYY-MM
        tz: Часовой пояс для отнесения сроков задач к месяцу (по умолчанию локальный)

    Returns:
        Модель представления панели
    """
    closed = closed_leads_in_month(leads, month)

    closed_by_partner = {partner: 0.0 for partner in Partner}
    for lead in closed:
        for proposal in lead.proposals:
            closed_by_partner[proposal.partner] += proposal.value

    view = DashboardView(
        month=month,
        closed_value=GoalFigure(
            total=sum(p.value for lead in closed for p in lead.proposals),
            target=goals.total_sales,
            unit=FigureUnit.CURRENCY,
        ),
        visits=GoalFigure(count_done_tasks(leads, TaskType.VISIT, month, tz), goals.visits),
        calls=GoalFigure(count_done_tasks(leads, TaskType.CALL, month, tz), goals.calls),
        stage_distribution=stage_distribution(leads),
        proposals_by_partner=proposals_by_partner(leads),
        closed_value_by_partner={
            partner: GoalFigure(value, goals.partner_target(partner), FigureUnit.CURRENCY)
            for partner, value in closed_by_partner.items()
        },
    )
    logger.debug(
        f"Показатели {month}: закрыто {view.closed_value.total:.2f}, "
        f"визитов {view.visits.total:.0f}, звонков {view.calls.total:.0f}"
    )
    return view


_UNIT_FORMATTERS: Dict[FigureUnit, Callable[[float], str]] = {
    FigureUnit.CURRENCY: format_currency,
    FigureUnit.COUNT: lambda value: format_count(int(round(value))),
}


def render_value(value: float, unit: FigureUnit) -> str:
    return _UNIT_FORMATTERS[unit](value)


def render_figure(figure: GoalFigure, mode: DisplayMode) -> str:
    """Строка показателя в выбранном режиме (итоги не меняются)"""
    if mode == DisplayMode.PERCENT:
        return format_percent(figure.attainment)
    return render_value(figure.total, figure.unit)


def render_target(figure: GoalFigure) -> str:
    return render_value(figure.target, figure.unit)
