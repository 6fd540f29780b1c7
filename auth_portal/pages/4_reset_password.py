"""Страница сброса пароля по коду из письма."""

import streamlit as st

from auth_portal.components import (
    render_alerts,
    render_field_error,
    render_resend_button,
    run_scheduler,
    setup_page,
)
from auth_portal.config import get_settings
from auth_portal.constants import (
    MSG_CODE_RESENT,
    MSG_EMAIL_NOT_FOUND,
    MSG_PASSWORD_RESET,
    PAGE_FORGOT_PASSWORD,
    PAGE_LOGIN,
    SESSION_PENDING_EMAIL,
    TASK_REDIRECT,
    TASK_RESEND_COOLDOWN,
)
from auth_portal.core.auth import get_alerts, get_api_client, get_scheduler, navigate_to
from auth_portal.core.error_handlers import field_errors_from, get_error_message
from auth_portal.core.exceptions import AuthError
from auth_portal.schemas import ResetPasswordForm, collect_field_errors

setup_page("reset_password")

settings = get_settings()
alerts = get_alerts("reset_password")
api_client = get_api_client()
pending_email = st.session_state.get(SESSION_PENDING_EMAIL)

st.markdown("## Reset password")
if pending_email:
    st.caption(f"Enter the 6-digit code sent to **{pending_email}** and choose a new password.")

alert_slot = st.container()


def resend_code() -> bool:
    if not pending_email:
        alerts.show_error("Error", MSG_EMAIL_NOT_FOUND, seconds=settings.short_alert_seconds)
        return False
    try:
        api_client.forgot_password(pending_email)
    except AuthError as e:
        alerts.show_error("Error", get_error_message(e), seconds=settings.short_alert_seconds)
        return False
    alerts.show_success("Code sent", MSG_CODE_RESENT)
    return True


field_errors = {}
with st.form(key="reset_password_form"):
    reset_code = st.text_input("Reset code", max_chars=6)
    password = st.text_input("New password", type="password")
    confirm_password = st.text_input("Confirm new password", type="password")
    submitted = st.form_submit_button("Reset password", width="stretch", type="primary")

if submitted:
    data = {"reset_code": reset_code, "password": password, "confirm_password": confirm_password}
    field_errors = collect_field_errors(ResetPasswordForm, data)
    if not field_errors:
        try:
            with st.spinner("Resetting..."):
                result = api_client.reset_password(reset_code.strip(), password, confirm_password)
        except AuthError as e:
            field_errors = field_errors_from(e)
            alerts.show_error("Error", get_error_message(e), seconds=settings.short_alert_seconds)
        else:
            st.session_state[SESSION_PENDING_EMAIL] = None
            alerts.show_success("Success", result.get("message") or MSG_PASSWORD_RESET)
            get_scheduler().schedule(
                TASK_REDIRECT,
                settings.success_redirect_delay,
                lambda: navigate_to(PAGE_LOGIN),
            )
            st.rerun()

for name in ("reset_code", "password", "confirm_password"):
    render_field_error(field_errors, name)

render_resend_button("Resend code", TASK_RESEND_COOLDOWN, resend_code, key="resend_reset_code")

if st.button("Use a different email", key="to_forgot"):
    st.switch_page(PAGE_FORGOT_PASSWORD)

with alert_slot:
    render_alerts(alerts)

run_scheduler()
