"""Страница активации аккаунта по коду из письма."""

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
    MSG_ACTIVATION_SUCCESS,
    MSG_CODE_RESENT,
    PAGE_DASHBOARD,
    PAGE_LOGIN,
    QUERY_EMAIL,
    SESSION_PENDING_EMAIL,
    TASK_REDIRECT,
    TASK_RESEND_COOLDOWN,
)
from auth_portal.core.auth import get_alerts, get_api_client, get_scheduler, navigate_to
from auth_portal.core.error_handlers import get_error_message
from auth_portal.core.exceptions import AuthError
from auth_portal.schemas import CodeForm, EmailForm, collect_field_errors

setup_page("activate_account")

settings = get_settings()
alerts = get_alerts("activate_account")
api_client = get_api_client()

st.markdown("## Activate your account")
st.caption("Enter the 6-digit activation code we sent to your email.")

alert_slot = st.container()

field_errors = {}
with st.form(key="activate_account_form"):
    activation_code = st.text_input("Activation code", max_chars=6)
    submitted = st.form_submit_button("Activate", width="stretch", type="primary")

if submitted:
    field_errors = collect_field_errors(CodeForm, {"code": activation_code})
    if not field_errors:
        try:
            with st.spinner("Activating..."):
                result = api_client.activate_account(activation_code.strip())
        except AuthError as e:
            alerts.show_error("Activation failed", get_error_message(e), seconds=settings.short_alert_seconds)
        else:
            # С токенами в ответе пользователь уже вошёл
            target = PAGE_DASHBOARD if result.get("access_token") else PAGE_LOGIN
            alerts.show_success("Success", result.get("message") or MSG_ACTIVATION_SUCCESS)
            get_scheduler().schedule(
                TASK_REDIRECT,
                settings.success_redirect_delay,
                lambda: navigate_to(target),
            )

render_field_error(field_errors, "code")

st.markdown("---")
st.markdown("Didn't get the code?")
resend_email = st.text_input(
    "Email",
    value=st.session_state.get(SESSION_PENDING_EMAIL) or st.query_params.get(QUERY_EMAIL, ""),
    key="activation_email",
)


def resend_code() -> bool:
    errors = collect_field_errors(EmailForm, {"email": resend_email})
    if errors:
        alerts.show_error("Error", errors["email"], seconds=settings.short_alert_seconds)
        return False
    try:
        api_client.resend_activation_code(resend_email.strip())
    except AuthError as e:
        alerts.show_error("Error", get_error_message(e), seconds=settings.short_alert_seconds)
        return False
    st.session_state[SESSION_PENDING_EMAIL] = resend_email.strip()
    alerts.show_success("Code sent", MSG_CODE_RESENT)
    return True


render_resend_button("Resend activation code", TASK_RESEND_COOLDOWN, resend_code, key="resend_activation")

if st.button("Back to sign in", key="to_login"):
    st.switch_page(PAGE_LOGIN)

with alert_slot:
    render_alerts(alerts)

run_scheduler()
