"""
Тесты для загрузки данных пользователя и геолокации
"""

from datetime import datetime, timezone
from unittest.mock import MagicMock, Mock

import pytest
import requests

from config.settings import MapConfig
from core.auth_provider import AuthSession
from core.document_store import COLLECTION_METAS, COLLECTION_PROFILE
from core.exceptions import (
    DatabaseQueryError, GeolocationError, PermissionDeniedError, ProfileSetupError,
)
from modules.auth.messages import PERMISSION_MESSAGE, PROFILE_SETUP_MESSAGE, user_message
from modules.map.geolocation import GeolocationService
from modules.obras.aging_service import AgingResult
from modules.obras.models import Goals, User
from services.session_loader import DEFAULT_DISPLAY_NAME, SessionLoader

SESSION = AuthSession(uid="u1", email="ana@example.com", display_name="Ana")
NOW = datetime(2024, 3, 15, 15, 0, tzinfo=timezone.utc)


class TestSessionLoader:
    """Тесты для первичной настройки и загрузки"""

    @pytest.fixture
    def batch(self):
        batch = MagicMock()
        batch.set.return_value = batch
        return batch

    @pytest.fixture
    def mock_store(self, batch):
        store = Mock()
        store.get_one = Mock(return_value={"id": "u1", "nomeCompleto": "Ana", "email": "ana@example.com"})
        store.batch = Mock(return_value=batch)
        return store

    @pytest.fixture
    def deps(self, mock_store):
        auth_provider = Mock()
        lead_repo = Mock()
        lead_repo.list_leads = Mock(return_value=[])
        region_repo = Mock()
        region_repo.list_regions = Mock(return_value=[])
        goals_repo = Mock()
        goals_repo.get_or_create = Mock(side_effect=lambda uid, month: Goals(month=month))
        aging_service = Mock()
        aging_service.sweep = Mock(return_value=AgingResult())
        return auth_provider, lead_repo, region_repo, goals_repo, aging_service

    @pytest.fixture
    def loader(self, mock_store, deps):
        return SessionLoader(mock_store, *deps)

    def test_existing_profile_not_recreated(self, loader, mock_store):
        """Существующий профиль не создается повторно"""
        user = loader.ensure_profile(SESSION)

        assert user == User(id="u1", full_name="Ana", email="ana@example.com")
        mock_store.batch.assert_not_called()
        mock_store.get_one.assert_called_once_with("u1", COLLECTION_PROFILE, "u1")

    def test_first_login_creates_profile_and_goals_in_one_batch(self, loader, mock_store, batch):
        """Первый вход создает профиль и цели одним пакетом"""
        mock_store.get_one.return_value = None

        user = loader.ensure_profile(AuthSession("u1", "ana@example.com", ""), NOW.date())

        assert user.full_name == DEFAULT_DISPLAY_NAME
        collections = [call[0][0] for call in batch.set.call_args_list]
        assert collections == [COLLECTION_PROFILE, COLLECTION_METAS]
        assert batch.set.call_args_list[1][0][1] == "2024-03"
        batch.commit.assert_called_once()

    def test_profile_failure_signs_out(self, loader, mock_store, batch, deps):
        """Ошибка создания профиля завершает сессию"""
        auth_provider = deps[0]
        mock_store.get_one.return_value = None
        batch.commit.side_effect = PermissionDeniedError("negado")

        with pytest.raises(ProfileSetupError) as exc_info:
            loader.load(SESSION, NOW)

        auth_provider.sign_out.assert_called_once()
        assert user_message(exc_info.value) == PROFILE_SETUP_MESSAGE

    def test_load_runs_sweep_and_collects_notice(self, loader, deps):
        """Загрузка выполняет инактивацию и собирает уведомление"""
        _, lead_repo, _, goals_repo, aging_service = deps
        aging_service.sweep.return_value = AgingResult(aged_ids=["a", "b"])

        data = loader.load(SESSION, NOW)

        aging_service.sweep.assert_called_once_with("u1", lead_repo.list_leads.return_value, NOW)
        assert data.aging.count == 2
        assert data.notices == [AgingResult(aged_ids=["a", "b"]).notice]
        assert data.goals.month == goals_repo.get_or_create.call_args[0][1]

    def test_sweep_failure_does_not_abort_load(self, loader, deps):
        """Ошибка инактивации не прерывает загрузку"""
        deps[4].sweep.side_effect = PermissionDeniedError("negado")

        data = loader.load(SESSION, NOW)

        assert data.aging.count == 0
        assert data.notices == [PERMISSION_MESSAGE]

    def test_read_failure_propagates(self, loader, deps):
        """Ошибка чтения передается вызывающему коду"""
        deps[1].list_leads.side_effect = DatabaseQueryError("falha")

        with pytest.raises(DatabaseQueryError):
            loader.load(SESSION, NOW)


class TestGeolocationService:
    """Тесты для клиента геолокации"""

    @pytest.fixture
    def map_config(self):
        return MapConfig(default_lat=-19.9, default_lng=-43.9,
                         geolocation_url="http://geo.test/json", geolocation_timeout=3)

    @staticmethod
    def response(payload):
        response = Mock()
        response.text = "json"
        response.json = Mock(return_value=payload)
        response.raise_for_status = Mock()
        return response

    def test_current_position(self, map_config):
        """Координаты из ответа сервиса"""
        session = Mock()
        session.get = Mock(return_value=self.response({"status": "success", "lat": -23.5, "lon": -46.6}))

        assert GeolocationService(map_config, session).current_position() == (-23.5, -46.6)
        session.get.assert_called_once_with("http://geo.test/json", timeout=3)

    def test_alternative_keys(self, map_config):
        """Альтернативные имена полей координат"""
        session = Mock()
        session.get = Mock(return_value=self.response({"latitude": "1.5", "longitude": "2.5"}))

        assert GeolocationService(map_config, session).current_position() == (1.5, 2.5)

    @pytest.mark.parametrize("payload", [
        {"status": "fail", "message": "private range"},
        {"lat": -23.5},
        {"lat": "x", "lon": "y"},
    ])
    def test_bad_payload(self, map_config, payload):
        """Ответ без координат дает ошибку геолокации"""
        session = Mock()
        session.get = Mock(return_value=self.response(payload))

        with pytest.raises(GeolocationError):
            GeolocationService(map_config, session).current_position()

    def test_initial_position_falls_back_to_default(self, map_config):
        """При ошибке используется позиция по умолчанию"""
        session = Mock()
        session.get = Mock(side_effect=requests.ConnectionError("offline"))
        service = GeolocationService(map_config, session)

        assert service.initial_position() == (-19.9, -43.9)
        with pytest.raises(GeolocationError):
            service.recenter()

    def test_invalid_json(self, map_config):
        """Невалидный JSON дает ошибку геолокации"""
        session = Mock()
        response = self.response({})
        response.json.side_effect = ValueError("not json")
        session.get = Mock(return_value=response)

        with pytest.raises(GeolocationError):
            GeolocationService(map_config, session).current_position()

    @pytest.mark.parametrize("payload", [
        [-23.5, -46.6],
        "Belo Horizonte",
        42,
    ])
    def test_payload_that_is_not_an_object(self, map_config, payload):
        """Ответ-список или скаляр дает ошибку геолокации"""
        session = Mock()
        session.get = Mock(return_value=self.response(payload))
        service = GeolocationService(map_config, session)

        with pytest.raises(GeolocationError):
            service.current_position()
        assert service.initial_position() == (-19.9, -43.9)
