"""
Загрузка данных пользователя после входа

При первом входе подтвержденного пользователя профиль и цели текущего
месяца создаются одним пакетом. Затем загружаются объекты, регионы и
цели, и выполняется проход автоматической инактивации.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import List, Optional

from loguru import logger

from core.auth_provider import AuthProvider, AuthSession
from core.document_store import COLLECTION_METAS, COLLECTION_PROFILE, DocumentStore
from core.exceptions import GatewayError, ProfileSetupError
from modules.auth.messages import user_message
from modules.dashboard.goals_repository import GoalsRepository
from modules.map.region_repository import RegionRepository
from modules.obras.aging_service import AgingResult, LeadAgingService
from modules.obras.lead_repository import LeadRepository
from modules.obras.models import Goals, Lead, Region, User, month_key

DEFAULT_DISPLAY_NAME = "Usuário"


@dataclass
class UserData:
    """Все данные пользователя, загруженные при входе"""
    user: User
    leads: List[Lead]
    regions: List[Region]
    goals: Goals
    aging: AgingResult = field(default_factory=AgingResult)
    notices: List[str] = field(default_factory=list)


class SessionLoader:
    """Первичная настройка пользователя и загрузка его данных"""

    def __init__(
        self,
        store: DocumentStore,
        auth_provider: AuthProvider,
        lead_repo: LeadRepository,
        region_repo: RegionRepository,
        goals_repo: GoalsRepository,
        aging_service: LeadAgingService,
    ):
        self.store = store
        self.auth_provider = auth_provider
        self.lead_repo = lead_repo
        self.region_repo = region_repo
        self.goals_repo = goals_repo
        self.aging_service = aging_service

    def ensure_profile(self, session: AuthSession, today: Optional[date] = None) -> User:
        """
        Профиль пользователя; при первом входе создается вместе с целями месяца

        Raises:
            ProfileSetupError: Профиль не создан; пользователь разлогинен
        """
        document = self.store.get_one(session.uid, COLLECTION_PROFILE, session.uid)
        if document is not None:
            return User.from_document(document)

        logger.info(f"Первый вход пользователя {session.uid}, создание профиля")
        user = User(
            id=session.uid,
            full_name=session.display_name or DEFAULT_DISPLAY_NAME,
            email=session.email,
        )
        month = month_key(today or date.today())
        try:
            (
                self.store.batch(session.uid)
                .set(COLLECTION_PROFILE, session.uid, user.to_document())
                .set(COLLECTION_METAS, month, Goals(month=month).to_document())
                .commit()
            )
        except GatewayError as e:
            logger.error(f"Не удалось создать профиль пользователя {session.uid}: {e}", exc_info=True)
            self.auth_provider.sign_out()
            raise ProfileSetupError(f"Профиль пользователя {session.uid} не создан: {e}") from e
        return user

    def load(self, session: AuthSession, now: Optional[datetime] = None) -> UserData:
        """
        Загрузка всех данных пользователя

        Ошибка прохода инактивации не прерывает загрузку: объекты остаются
        как есть, а пользователь получает уведомление.

        Raises:
            GatewayError: Не удалось создать профиль или прочитать данные
        """
        now = now or datetime.now(timezone.utc)
        today = now.astimezone().date()
        user = self.ensure_profile(session, today)

        leads = self.lead_repo.list_leads(session.uid)
        regions = self.region_repo.list_regions(session.uid)
        goals = self.goals_repo.get_or_create(session.uid, month_key(today))
        data = UserData(user=user, leads=leads, regions=regions, goals=goals)

        try:
            data.aging = self.aging_service.sweep(session.uid, leads, now)
        except GatewayError as e:
            data.notices.append(user_message(e))
        else:
            if data.aging.notice:
                data.notices.append(data.aging.notice)

        logger.info(
            f"Данные пользователя {session.uid} загружены: объектов {len(leads)}, "
            f"регионов {len(regions)}, инактивировано {data.aging.count}"
        )
        return data
