"""Конфигурация приложения."""

from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass
class PageConfig:
    """Конфигурация страницы Streamlit."""

    title: str
    icon: str
    layout: str = "centered"
    initial_sidebar_state: str = "collapsed"


class Settings(BaseSettings):
    """Настройки приложения с валидацией через Pydantic"""

    # API настройки
    api_url: str = "http://localhost:8080/api"
    api_timeout: int = 30

    # Время жизни токенов (секунды)
    access_token_max_age: int = 3600
    refresh_token_max_age: int = 604800

    # Долговременное хранилище черновика регистрации
    storage_dir: str = ".auth_portal"

    # Таймеры UI (секунды)
    success_redirect_delay: float = 1.5
    error_alert_seconds: float = 5.0
    short_alert_seconds: float = 3.0
    resend_cooldown_seconds: int = 60

    # Регистрация
    min_age_years: int = 13
    draft_max_age: int = 604800

    # Логирование
    log_level: str = "INFO"
    json_logs: bool = False
    log_file: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="AUTH_PORTAL_",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache()
def get_settings() -> Settings:
    """Возвращает синглтон настроек"""
    return Settings()


# Конфигурации страниц
PAGE_CONFIGS = {
    "main": PageConfig(title="Auth Portal", icon="🔐"),
    "login": PageConfig(title="Login - Auth Portal", icon="🔑"),
    "register": PageConfig(title="Register - Auth Portal", icon="📝"),
    "forgot_password": PageConfig(title="Forgot password - Auth Portal", icon="✉️"),
    "reset_password": PageConfig(title="Reset password - Auth Portal", icon="🔁"),
    "activate_account": PageConfig(title="Activate account - Auth Portal", icon="✅"),
    "unlock_account": PageConfig(title="Unlock account - Auth Portal", icon="🔓"),
    "dashboard": PageConfig(
        title="Dashboard - Auth Portal",
        icon="🏠",
        layout="wide",
        initial_sidebar_state="expanded",
    ),
}
