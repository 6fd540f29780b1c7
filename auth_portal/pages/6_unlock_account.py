"""Страница разблокировки аккаунта: запрос кода и его проверка."""

import streamlit as st

from auth_portal.components import render_alerts, render_field_error, run_scheduler, setup_page
from auth_portal.config import get_settings
from auth_portal.constants import PAGE_LOGIN, SESSION_PENDING_EMAIL, TASK_REDIRECT
from auth_portal.core.auth import get_alerts, get_api_client, get_scheduler, navigate_to
from auth_portal.core.error_handlers import get_error_message
from auth_portal.core.exceptions import AuthError
from auth_portal.schemas import CodeForm, EmailForm, collect_field_errors

setup_page("unlock_account")

settings = get_settings()
alerts = get_alerts("unlock_account")
api_client = get_api_client()

st.markdown("## Unlock your account")
st.caption("Your account was locked after too many failed sign-in attempts.")

alert_slot = st.container()

request_tab, verify_tab = st.tabs(["1. Request code", "2. Enter code"])

with request_tab:
    request_errors = {}
    with st.form(key="request_unlock_form"):
        email = st.text_input("Email", value=st.session_state.get(SESSION_PENDING_EMAIL) or "")
        requested = st.form_submit_button("Send unlock code", width="stretch", type="primary")

    if requested:
        request_errors = collect_field_errors(EmailForm, {"email": email})
        if not request_errors:
            try:
                result = api_client.request_unlock(email.strip())
            except AuthError as e:
                alerts.show_error("Error", get_error_message(e), seconds=settings.short_alert_seconds)
            else:
                st.session_state[SESSION_PENDING_EMAIL] = email.strip()
                alerts.show_success("Code sent", result.get("message") or "Check your email for the unlock code.")
    render_field_error(request_errors, "email")

with verify_tab:
    verify_errors = {}
    with st.form(key="verify_unlock_form"):
        code = st.text_input("Unlock code", max_chars=6)
        verified = st.form_submit_button("Unlock", width="stretch", type="primary")

    if verified:
        verify_errors = collect_field_errors(CodeForm, {"code": code})
        if not verify_errors:
            try:
                result = api_client.verify_unlock_code(code.strip())
            except AuthError as e:
                alerts.show_error("Error", get_error_message(e), seconds=settings.short_alert_seconds)
            else:
                alerts.show_success("Success", result.get("message") or "Your account has been unlocked.")
                get_scheduler().schedule(
                    TASK_REDIRECT,
                    settings.success_redirect_delay,
                    lambda: navigate_to(PAGE_LOGIN),
                )
    render_field_error(verify_errors, "code")

if st.button("Back to sign in", key="to_login"):
    st.switch_page(PAGE_LOGIN)

with alert_slot:
    render_alerts(alerts)

run_scheduler()
