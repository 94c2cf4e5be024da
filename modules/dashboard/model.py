"""
Состояние панели показателей: выбранный месяц и режим отображения
"""

from datetime import date
from typing import List, Optional

from modules.dashboard.aggregation import DashboardView, DisplayMode, aggregate
from modules.dashboard.goals_repository import GoalsRepository
from modules.obras.models import Goals, Lead, month_key


class DashboardModel:
    """
    Модель панели

    Список объектов не копируется: после сохранения объекта или прохода
    инактивации достаточно вызвать refresh().
    """

    def __init__(self, goals_repo: GoalsRepository, user_id: str, leads: List[Lead],
                 today: Optional[date] = None):
        self.goals_repo = goals_repo
        self.user_id = user_id
        self.leads = leads
        self.mode = DisplayMode.ABSOLUTE
        self.month = month_key(today or date.today())
        self.goals: Optional[Goals] = None
        self.view: Optional[DashboardView] = None

    def available_months(self) -> List[str]:
        """Месяцы с целями плюс текущий выбранный"""
        months = set(self.goals_repo.list_months(self.user_id))
        months.add(self.month)
        return sorted(months, reverse=True)

    def select_month(self, month: str) -> DashboardView:
        """
        Смена месяца: цели загружаются (или создаются), показатели пересчитываются

        Raises:
            GatewayError: Не удалось получить цели; выбранный месяц не меняется
        """
        return self.apply_month(month, self.load_month_goals(month))

    def load_month_goals(self, month: str) -> Goals:
        """Цели месяца из хранилища; состояние модели не меняется"""
        return self.goals_repo.get_or_create(self.user_id, month)

    def apply_month(self, month: str, goals: Goals) -> DashboardView:
        self.month = month
        self.goals = goals
        return self.refresh()

    def update_goals(self, goals: Goals) -> DashboardView:
        return self.apply_goals(self.store_goals(goals))

    def store_goals(self, goals: Goals) -> Goals:
        """Запись целей; состояние модели не меняется"""
        self.goals_repo.save(self.user_id, goals)
        return goals

    def apply_goals(self, goals: Goals) -> DashboardView:
        if goals.month == self.month:
            self.goals = goals
        return self.refresh()

    def refresh(self) -> DashboardView:
        if self.goals is None:
            self.goals = self.goals_repo.get_or_create(self.user_id, self.month)
        self.view = aggregate(self.leads, self.goals, self.month)
        return self.view

    def toggle_mode(self) -> DisplayMode:
        """Переключение абсолютные значения / процент цели (без пересчета)"""
        self.mode = DisplayMode.PERCENT if self.mode == DisplayMode.ABSOLUTE else DisplayMode.ABSOLUTE
        return self.mode
