"""Общие компоненты для Streamlit приложения."""

import logging
from typing import Callable, Dict, Optional

import streamlit as st

from auth_portal.config import PAGE_CONFIGS, get_settings
from auth_portal.constants import STEP_TITLES
from auth_portal.core.alerts import AlertController
from auth_portal.core.auth import consume_navigation, get_scheduler, init_session_state, sync_token_cookies
from auth_portal.core.logging_config import setup_logging
from auth_portal.styles import SIDEBAR_HIDE_STYLE, STEP_PROGRESS_STYLE, get_step_progress_html

logger = logging.getLogger(__name__)

# Период опроса планировщика, секунды
SCHEDULER_TICK_SECONDS = 0.5


@st.cache_resource
def _configure_logging() -> bool:
    settings = get_settings()
    setup_logging(level=settings.log_level, json_logs=settings.json_logs, log_file=settings.log_file)
    return True


def setup_page(name: str, hide_sidebar: bool = True) -> None:
    """
    Общая подготовка страницы: конфиг, логирование, session state,
    отложенный переход.

    Args:
        name: Ключ в PAGE_CONFIGS
        hide_sidebar: Скрыть навигацию (страницы без авторизации)
    """
    page_config = PAGE_CONFIGS[name]
    st.set_page_config(
        page_title=page_config.title,
        page_icon=page_config.icon,
        layout=page_config.layout,
        initial_sidebar_state=page_config.initial_sidebar_state,
    )
    _configure_logging()
    init_session_state()
    sync_token_cookies()
    consume_navigation()
    if hide_sidebar:
        st.markdown(SIDEBAR_HIDE_STYLE, unsafe_allow_html=True)


@st.fragment(run_every=SCHEDULER_TICK_SECONDS)
def run_scheduler() -> None:
    """Выполняет созревшие отложенные задачи и перерисовывает страницу"""
    fired = get_scheduler().run_pending()
    if fired:
        logger.debug(f"[TIMERS] Fired: {fired}")
        st.rerun()


def render_alerts(alerts: AlertController) -> None:
    """Отображает success и error алерты страницы."""
    if alerts.success:
        st.success(f"**{alerts.success.title}** {alerts.success.message}")
    if alerts.error:
        st.error(f"**{alerts.error.title}** {alerts.error.message}")


def render_field_error(errors: Dict[str, str], name: str) -> None:
    """Сообщение об ошибке под полем формы"""
    message = errors.get(name)
    if message:
        st.caption(f":red[{message}]")


def render_step_progress(current_step: int) -> None:
    """Индикатор шагов регистрации."""
    st.markdown(STEP_PROGRESS_STYLE, unsafe_allow_html=True)
    st.markdown(get_step_progress_html(current_step, STEP_TITLES), unsafe_allow_html=True)


def render_resend_button(
    label: str,
    task_name: str,
    on_click: Callable[[], bool],
    key: str,
    cooldown: Optional[int] = None,
) -> None:
    """
    Кнопка "отправить код ещё раз" с кулдауном.

    Кулдаун запускается только если ``on_click`` вернул True.

    Args:
        label: Текст кнопки
        task_name: Имя задачи кулдауна в планировщике
        on_click: Отправка кода
        key: Ключ виджета
        cooldown: Длительность кулдауна, секунды
    """
    scheduler = get_scheduler()
    remaining = scheduler.remaining(task_name)
    if remaining is not None:
        st.button(f"{label} ({int(remaining) + 1}s)", disabled=True, key=key, width="stretch")
        return

    if st.button(label, key=key, width="stretch"):
        if on_click():
            seconds = cooldown if cooldown is not None else get_settings().resend_cooldown_seconds
            scheduler.schedule(task_name, seconds, lambda: None)
            st.rerun()
