"""
Определение текущего положения пользователя

Положение берется из HTTP-сервиса геолокации по IP. При старте карты
ошибка заменяется позицией по умолчанию из конфигурации; при ручном
"центрировать" ошибка отдается вызывающему коду.
"""

from typing import Optional, Tuple

import requests
from loguru import logger

from config.settings import MapConfig
from core.exceptions import GeolocationError

LatLng = Tuple[float, float]


class GeolocationService:
    """Клиент сервиса геолокации"""

    def __init__(self, map_config: MapConfig, session: Optional[requests.Session] = None):
        self.map_config = map_config
        self.session = session or requests.Session()

    def current_position(self) -> LatLng:
        """
        Запрос текущей позиции

        Raises:
            GeolocationError: Сервис недоступен или ответ без координат
        """
        try:
            response = self.session.get(
                self.map_config.geolocation_url,
                timeout=self.map_config.geolocation_timeout,
            )
            response.raise_for_status()
            data = response.json() if response.text else {}
        except requests.RequestException as error:
            raise GeolocationError(f"Serviço de localização indisponível: {error}") from error
        except ValueError as error:
            raise GeolocationError("Resposta inválida do serviço de localização.") from error

        if not isinstance(data, dict):
            raise GeolocationError("Resposta inválida do serviço de localização.")
        # ip-api.com: {"status": "success", "lat": ..., "lon": ...}
        if data.get("status") == "fail":
            raise GeolocationError(f"Localização não determinada: {data.get('message', '')}")
        lat = data.get("lat", data.get("latitude"))
        lng = data.get("lon", data.get("lng", data.get("longitude")))
        if lat is None or lng is None:
            raise GeolocationError("Resposta do serviço de localização sem coordenadas.")
        try:
            return float(lat), float(lng)
        except (TypeError, ValueError) as error:
            raise GeolocationError("Coordenadas inválidas no serviço de localização.") from error

    def initial_position(self) -> LatLng:
        """Позиция для начального центра карты (с запасным значением)"""
        try:
            position = self.current_position()
            logger.info(f"Текущее положение: {position}")
            return position
        except GeolocationError as error:
            logger.warning(f"Геолокация недоступна, используется позиция по умолчанию: {error}")
            return self.map_config.default_position

    def recenter(self) -> LatLng:
        """
        Повторное определение положения по запросу пользователя

        Raises:
            GeolocationError: Показывается пользователю как уведомление
        """
        return self.current_position()
