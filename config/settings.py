"""
Настройки приложения ObraMap

Все параметры читаются из переменных окружения (файл .env подхватывается
автоматически через python-dotenv).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent

load_dotenv(PROJECT_ROOT / ".env")


def _env_int(name: str, default: int) -> int:
    """Чтение целого числа из окружения с откатом на значение по умолчанию"""
    try:
        return int(str(os.getenv(name, default)).strip())
    except (TypeError, ValueError):
        return default


def _env_float(name: str, default: float) -> float:
    try:
        return float(str(os.getenv(name, default)).strip())
    except (TypeError, ValueError):
        return default


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass
class DatabaseConfig:
    """Подключение к PostgreSQL (хранилище документов и учетных записей)"""
    host: str = field(default_factory=lambda: os.getenv("OBRAMAP_DB_HOST", "localhost"))
    port: int = field(default_factory=lambda: _env_int("OBRAMAP_DB_PORT", 5432))
    database: str = field(default_factory=lambda: os.getenv("OBRAMAP_DB_NAME", "obramap"))
    user: str = field(default_factory=lambda: os.getenv("OBRAMAP_DB_USER", "postgres"))
    password: str = field(default_factory=lambda: os.getenv("OBRAMAP_DB_PASSWORD", ""))


@dataclass
class StorageConfig:
    """Файловое хранилище фото и вложений"""
    root_dir: Path = field(
        default_factory=lambda: Path(os.getenv("OBRAMAP_STORAGE_DIR", str(PROJECT_ROOT / "storage")))
    )


@dataclass
class AuthConfig:
    """Параметры провайдера аутентификации"""
    # Обязателен, значения по умолчанию нет
    token_secret: str = field(default_factory=lambda: os.getenv("OBRAMAP_TOKEN_SECRET", ""))
    verification_ttl_hours: int = field(default_factory=lambda: _env_int("OBRAMAP_VERIFY_TTL_HOURS", 48))
    reset_ttl_minutes: int = field(default_factory=lambda: _env_int("OBRAMAP_RESET_TTL_MIN", 30))
    min_password_length: int = 6


@dataclass
class SmtpConfig:
    """Почтовый сервер для писем подтверждения и сброса пароля"""
    host: str = field(default_factory=lambda: os.getenv("SMTP_HOST", ""))
    port: int = field(default_factory=lambda: _env_int("SMTP_PORT", 587))
    user: str = field(default_factory=lambda: os.getenv("SMTP_USER", ""))
    password: str = field(default_factory=lambda: os.getenv("SMTP_PASS", ""))
    sender: str = field(default_factory=lambda: os.getenv("MAIL_FROM", "no-reply@obramap.app"))

    @property
    def is_configured(self) -> bool:
        return bool(self.host and self.user and self.password)


@dataclass
class MapConfig:
    """Параметры карты и геолокации"""
    # Белу-Оризонти, точка по умолчанию при отказе геолокации
    default_lat: float = field(default_factory=lambda: _env_float("OBRAMAP_DEFAULT_LAT", -19.9245))
    default_lng: float = field(default_factory=lambda: _env_float("OBRAMAP_DEFAULT_LNG", -43.9352))
    geolocation_url: str = field(
        default_factory=lambda: os.getenv("OBRAMAP_GEOLOCATION_URL", "http://ip-api.com/json/")
    )
    geolocation_timeout: int = field(default_factory=lambda: _env_int("OBRAMAP_GEOLOCATION_TIMEOUT", 5))

    @property
    def default_position(self) -> Tuple[float, float]:
        return self.default_lat, self.default_lng


@dataclass
class UIConfig:
    """Настройки интерфейса"""
    font_family: str = field(default_factory=lambda: os.getenv("UI_FONT_FAMILY", "Arial"))
    font_size: int = field(default_factory=lambda: _env_int("UI_FONT_SIZE", 14))


@dataclass
class LoggingConfig:
    level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_dir: Path = field(default_factory=lambda: Path(os.getenv("LOG_DIR", str(PROJECT_ROOT / "logs"))))
    debug: bool = field(default_factory=lambda: _env_bool("OBRAMAP_DEBUG"))


@dataclass
class Config:
    """Корневая конфигурация приложения"""
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    smtp: SmtpConfig = field(default_factory=SmtpConfig)
    map: MapConfig = field(default_factory=MapConfig)
    ui: UIConfig = field(default_factory=UIConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


config = Config()
