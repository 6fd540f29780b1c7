"""Страница входа."""

import logging

import streamlit as st

from auth_portal.components import render_alerts, render_field_error, run_scheduler, setup_page
from auth_portal.config import get_settings
from auth_portal.constants import (
    MSG_LOGIN_SUCCESS,
    PAGE_ACTIVATE_ACCOUNT,
    PAGE_DASHBOARD,
    PAGE_FORGOT_PASSWORD,
    PAGE_REGISTER,
    PAGE_UNLOCK_ACCOUNT,
    SESSION_PENDING_EMAIL,
    SESSION_USER_INFO,
    TASK_REDIRECT,
)
from auth_portal.core.auth import (
    check_authentication,
    dispose_finished_registration,
    get_alerts,
    get_api_client,
    get_scheduler,
    navigate_to,
)
from auth_portal.core.error_handlers import get_error_message
from auth_portal.core.exceptions import AuthError, AuthErrorKind
from auth_portal.schemas import LoginForm, collect_field_errors

logger = logging.getLogger(__name__)

setup_page("login")
dispose_finished_registration()

settings = get_settings()
scheduler = get_scheduler()
alerts = get_alerts("login")
api_client = get_api_client()

# Уже авторизован и редирект не запланирован
if check_authentication() and not scheduler.is_scheduled(TASK_REDIRECT):
    st.switch_page(PAGE_DASHBOARD)

st.markdown("## Sign in")
st.caption("Welcome back! Please enter your details.")

alert_slot = st.container()

field_errors = {}
with st.form(key="login_form"):
    email = st.text_input("Email", placeholder="you@example.com")
    password = st.text_input("Password", type="password", placeholder="Enter your password")
    submitted = st.form_submit_button("Sign in", width="stretch", type="primary")

if submitted:
    field_errors = collect_field_errors(LoginForm, {"email": email, "password": password})
    if not field_errors:
        try:
            with st.spinner("Signing in..."):
                session = api_client.login(email.strip(), password)
        except AuthError as e:
            alerts.show_error("Login failed", get_error_message(e), seconds=settings.error_alert_seconds)
            st.session_state[SESSION_PENDING_EMAIL] = email.strip()
            st.session_state["login_error_kind"] = e.kind
        else:
            st.session_state[SESSION_USER_INFO] = session.user_info
            st.session_state["login_error_kind"] = None
            alerts.show_success("Success", session.message or MSG_LOGIN_SUCCESS)
            scheduler.schedule(
                TASK_REDIRECT,
                settings.success_redirect_delay,
                lambda: navigate_to(PAGE_DASHBOARD),
            )
        st.rerun()

render_field_error(field_errors, "email")
render_field_error(field_errors, "password")

# Подсказки по типу последней ошибки
error_kind = st.session_state.get("login_error_kind")
if error_kind is AuthErrorKind.NOT_ACTIVATED:
    if st.button("Activate your account", key="to_activate"):
        st.switch_page(PAGE_ACTIVATE_ACCOUNT)
elif error_kind is AuthErrorKind.ACCOUNT_LOCKED:
    if st.button("Unlock your account", key="to_unlock"):
        st.switch_page(PAGE_UNLOCK_ACCOUNT)

col1, col2 = st.columns(2)
with col1:
    if st.button("Forgot password?", key="to_forgot"):
        st.switch_page(PAGE_FORGOT_PASSWORD)
with col2:
    if st.button("Create an account", key="to_register"):
        st.switch_page(PAGE_REGISTER)

with alert_slot:
    render_alerts(alerts)

run_scheduler()
