from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Telegram
    telegram_bot_token: str = Field(...)
    admin_user_id: Optional[int] = Field(default=None)

    # Database
    database_url: str = Field(default='sqlite+aiosqlite:///./data/ghostbuster.db')

    # Retention policy defaults for newly seen chats
    default_window_days: int = Field(default=60, ge=7, le=365)
    default_grace_days: int = Field(default=7, ge=0)

    # Daily sweep
    sweep_hour: int = Field(default=9, ge=0, le=23)
    sweep_minute: int = Field(default=0, ge=0, le=59)
    sweep_timezone: str = Field(default='Europe/Warsaw')
    sweep_concurrency: int = Field(default=4, ge=1)
    gateway_timeout_seconds: float = Field(default=15.0, gt=0)

    # Logging
    log_level: str = Field(default='INFO')

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=False,
        extra='ignore',
    )


@lru_cache
def get_settings() -> Settings:
    """Settings instance shared by the whole process"""
    return Settings()
