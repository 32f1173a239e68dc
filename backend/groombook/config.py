"""
Конфигурация приложения
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from pathlib import Path
from typing import Optional


class Settings(BaseSettings):
    """Настройки приложения"""

    # Database
    DATABASE_URL: str

    # Security
    SECRET_KEY: str = "local-development-secret-key-change-in-production"

    # Admin Panel
    ADMIN_PASSWORD: str = "groom2024"

    # Telegram для персонала магазина (новые записи, отмены)
    TELEGRAM_BOT_TOKEN: Optional[str] = None
    TELEGRAM_STAFF_CHAT_ID: Optional[str] = None

    # Booking Settings
    SHOP_UTC_OFFSET_HOURS: int = 9  # все магазины работают в одном смещении (KST)
    SLOT_INTERVAL_MINUTES: int = 30
    DEFAULT_SERVICE_DURATION_MINUTES: int = 60
    DEPOSIT_WINDOW_HOURS: int = 2
    BOOKING_DAYS_AHEAD: int = 30

    # CORS для страницы записи
    SITE_URL: str = "http://localhost:8000"

    # Development
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    class Config:
        # Путь к .env относительно корня проекта
        env_file = Path(__file__).resolve().parent.parent.parent / ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Получить настройки приложения (с кешированием)"""
    return Settings()
