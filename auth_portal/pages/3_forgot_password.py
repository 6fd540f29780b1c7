"""Страница "забыли пароль": отправка кода сброса на email."""

import streamlit as st

from auth_portal.components import render_alerts, render_field_error, run_scheduler, setup_page
from auth_portal.config import get_settings
from auth_portal.constants import (
    MSG_RESET_EMAIL_SENT,
    PAGE_LOGIN,
    PAGE_RESET_PASSWORD,
    SESSION_PENDING_EMAIL,
    TASK_REDIRECT,
)
from auth_portal.core.auth import get_alerts, get_api_client, get_scheduler, navigate_to
from auth_portal.core.error_handlers import get_error_message
from auth_portal.core.exceptions import AuthError
from auth_portal.schemas import EmailForm, collect_field_errors

setup_page("forgot_password")

settings = get_settings()
alerts = get_alerts("forgot_password")
api_client = get_api_client()

st.markdown("## Forgot password")
st.caption("Enter your email and we will send you a reset code.")

alert_slot = st.container()

field_errors = {}
with st.form(key="forgot_password_form"):
    email = st.text_input("Email", value=st.session_state.get(SESSION_PENDING_EMAIL) or "")
    submitted = st.form_submit_button("Send reset code", width="stretch", type="primary")

if submitted:
    field_errors = collect_field_errors(EmailForm, {"email": email})
    if not field_errors:
        try:
            with st.spinner("Sending..."):
                result = api_client.forgot_password(email.strip())
        except AuthError as e:
            alerts.show_error("Error", get_error_message(e), seconds=settings.short_alert_seconds)
        else:
            st.session_state[SESSION_PENDING_EMAIL] = email.strip()
            alerts.show_success("Success", result.get("message") or MSG_RESET_EMAIL_SENT)
            get_scheduler().schedule(
                TASK_REDIRECT,
                settings.success_redirect_delay,
                lambda: navigate_to(PAGE_RESET_PASSWORD),
            )
        st.rerun()

render_field_error(field_errors, "email")

if st.button("Back to sign in", key="to_login"):
    st.switch_page(PAGE_LOGIN)

with alert_slot:
    render_alerts(alerts)

run_scheduler()
