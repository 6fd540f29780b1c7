"""Связка сессии, API клиента и форм со Streamlit session state."""

import logging
from datetime import date
from typing import Any, Dict, Optional

import streamlit as st
import streamlit.components.v1 as components

from auth_portal.api_client import APIClient
from auth_portal.config import get_settings
from auth_portal.constants import (
    MSG_AUTH_REQUIRED,
    PAGE_LOGIN,
    SESSION_ALERTS,
    SESSION_API_CLIENT,
    SESSION_DRAFTS_PURGED,
    SESSION_MANAGER,
    SESSION_NAVIGATE_TO,
    SESSION_PENDING_EMAIL,
    SESSION_REGISTRATION,
    SESSION_SCHEDULER,
    SESSION_TOKEN_STORAGE,
    SESSION_USER_INFO,
    STORAGE_ACCESS_TOKEN_KEY,
    STORAGE_REFRESH_TOKEN_KEY,
)
from auth_portal.core.alerts import AlertController
from auth_portal.core.exceptions import RefreshError
from auth_portal.core.registration import FormStatus, RegistrationController, resolve_client_id
from auth_portal.core.session import SessionManager
from auth_portal.core.storage import CookieStorage, JsonFileStorage, TokenStore
from auth_portal.core.timers import TaskScheduler

logger = logging.getLogger(__name__)


def init_session_state() -> None:
    """Инициализация session state с значениями по умолчанию."""
    defaults: Dict[str, Any] = {
        SESSION_USER_INFO: None,
        SESSION_NAVIGATE_TO: None,
        SESSION_PENDING_EMAIL: None,
    }

    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


# ==================== Навигация ====================

def navigate_to(page: str) -> None:
    """
    Запросить переход на страницу.

    Переход выполняет ``consume_navigation`` в основном потоке скрипта,
    поэтому его можно запрашивать из колбэков таймеров и SessionManager.
    """
    logger.debug(f"Navigation requested: {page}")
    st.session_state[SESSION_NAVIGATE_TO] = page


def consume_navigation() -> None:
    """Выполнить запрошенный переход, если он есть"""
    page = st.session_state.get(SESSION_NAVIGATE_TO)
    if page:
        st.session_state[SESSION_NAVIGATE_TO] = None
        st.switch_page(page)


def _on_logout() -> None:
    st.session_state[SESSION_USER_INFO] = None
    navigate_to(PAGE_LOGIN)


# ==================== Объекты сессии браузера ====================

def get_scheduler() -> TaskScheduler:
    """Планировщик отложенных задач текущей сессии браузера"""
    if SESSION_SCHEDULER not in st.session_state:
        st.session_state[SESSION_SCHEDULER] = TaskScheduler()
    return st.session_state[SESSION_SCHEDULER]


def get_alerts(page: str) -> AlertController:
    """
    Алерты страницы. Таймер скрытия у каждой страницы свой.

    Args:
        page: Имя страницы (ключ в PAGE_CONFIGS)
    """
    alerts = st.session_state.setdefault(SESSION_ALERTS, {})
    if page not in alerts:
        alerts[page] = AlertController(get_scheduler(), task_name=f"alert-dismiss:{page}")
    return alerts[page]


def get_session_manager() -> SessionManager:
    """
    SessionManager текущей сессии браузера.

    Токены хранятся в session state и в cookies браузера, поэтому
    переживают перезагрузку страницы: access token до ``access_token_max_age``,
    refresh token до ``refresh_token_max_age``.
    """
    if SESSION_MANAGER not in st.session_state:
        settings = get_settings()
        token_store = TokenStore(
            CookieStorage(
                st.session_state,
                SESSION_TOKEN_STORAGE,
                cookies=st.context.cookies,
                keys=(STORAGE_ACCESS_TOKEN_KEY, STORAGE_REFRESH_TOKEN_KEY),
            ),
            access_max_age=settings.access_token_max_age,
            refresh_max_age=settings.refresh_token_max_age,
        )
        st.session_state[SESSION_MANAGER] = SessionManager(
            token_store,
            base_url=settings.api_url,
            timeout=settings.api_timeout,
            on_logout=_on_logout,
        )
        logger.info("[SESSION] Session manager created")
    return st.session_state[SESSION_MANAGER]


def sync_token_cookies() -> None:
    """Привести cookies браузера к сохранённым токенам (на каждом прогоне страницы)"""
    storage = get_session_manager().token_store.storage
    components.html(storage.cookie_script(), height=0)


def get_api_client() -> APIClient:
    """
    Получить API клиент текущей сессии браузера.

    Returns:
        Настроенный API клиент
    """
    if SESSION_API_CLIENT not in st.session_state:
        st.session_state[SESSION_API_CLIENT] = APIClient(get_session_manager())
    return st.session_state[SESSION_API_CLIENT]


def check_authentication() -> bool:
    """
    Проверка авторизации пользователя.

    Если после перезагрузки остался только refresh token, сессия
    восстанавливается его обновлением.

    Returns:
        True если access token сохранён
    """
    manager = get_session_manager()
    if manager.is_authenticated():
        return True
    if not manager.token_store.refresh_token:
        return False
    try:
        manager.refresh()
    except RefreshError as e:
        logger.info(f"[SESSION] Stored refresh token rejected: {e.message}")
        return False
    return True


def require_authentication() -> None:
    """Требует авторизацию, иначе перенаправляет на страницу входа."""
    if check_authentication():
        return
    logger.info(MSG_AUTH_REQUIRED)
    st.switch_page(PAGE_LOGIN)


def logout() -> None:
    """Выход из системы (сервер уведомляется по возможности)."""
    get_api_client().logout()


# ==================== Регистрация ====================

def get_client_id() -> str:
    """
    Идентификатор черновика регистрации.

    Постоянен в пределах сессии браузера и дублируется в query string
    страницы, поэтому черновик переживает и переходы, и перезагрузку.
    """
    return resolve_client_id(st.session_state, st.query_params)


def get_registration_controller() -> RegistrationController:
    """Контроллер формы регистрации, восстановленный из хранилища черновиков"""
    client_id = get_client_id()
    if SESSION_REGISTRATION not in st.session_state:
        settings = get_settings()
        if not st.session_state.get(SESSION_DRAFTS_PURGED):
            JsonFileStorage.purge_expired(settings.storage_dir)
            st.session_state[SESSION_DRAFTS_PURGED] = True
        st.session_state[SESSION_REGISTRATION] = RegistrationController(
            storage=JsonFileStorage(settings.storage_dir, client_id),
            api_client=get_api_client(),
            scheduler=get_scheduler(),
            on_success=lambda: navigate_to(PAGE_LOGIN),
            today=date.today,
            min_age=settings.min_age_years,
            redirect_delay=settings.success_redirect_delay,
            error_alert_seconds=settings.error_alert_seconds,
            draft_max_age=settings.draft_max_age,
        )
    return st.session_state[SESSION_REGISTRATION]


def dispose_finished_registration() -> None:
    """
    Снять контроллер регистрации после успешной отправки.

    Незавершённая форма остаётся в session state вместе с черновиком.
    """
    controller: Optional[RegistrationController] = st.session_state.get(SESSION_REGISTRATION)
    if controller is not None and controller.status is FormStatus.SUCCESS:
        del st.session_state[SESSION_REGISTRATION]
        controller.dispose()
