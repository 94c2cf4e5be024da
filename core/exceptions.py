"""
Иерархия исключений ObraMap

- ошибки аутентификации (AuthError) восстанавливаются в форме входа;
- ошибки шлюза (GatewayError) ловятся в месте вызова и превращаются в сообщение;
- ошибки валидации (ValidationError) не доходят до бэкенда.
"""

from typing import Optional


class ObraMapError(Exception):
    """Базовое исключение приложения"""


class AuthError(ObraMapError):
    """Ошибка провайдера аутентификации с машинным кодом"""

    def __init__(self, code: str, message: Optional[str] = None):
        super().__init__(message or code)
        self.code = code


class GatewayError(ObraMapError):
    """Сбой удаленного хранилища (документы, файлы)"""


class PermissionDeniedError(GatewayError):
    """Хранилище отказало в доступе"""


class NetworkError(GatewayError):
    """Временная сетевая ошибка"""


class DatabaseConnectionError(NetworkError):
    """Не удалось подключиться к базе данных"""


class DatabaseQueryError(GatewayError):
    """Ошибка выполнения запроса"""


class BlobStorageError(GatewayError):
    """Ошибка файлового хранилища"""


class ProfileSetupError(GatewayError):
    """Не удалось создать профиль при первом входе"""


class ValidationError(ObraMapError):
    """Ошибка проверки данных до обращения к бэкенду"""


class GeolocationError(ObraMapError):
    """Не удалось определить текущее положение"""


class ConfigurationError(ObraMapError):
    """Обязательный параметр конфигурации не задан"""
