"""Личный кабинет: профиль, смена пароля и email, выход."""

import logging
from typing import Any, Callable, Dict, Optional

import streamlit as st

from auth_portal.components import render_alerts, render_field_error, run_scheduler, setup_page
from auth_portal.config import get_settings
from auth_portal.constants import SESSION_USER_INFO
from auth_portal.core.auth import (
    consume_navigation,
    get_alerts,
    get_api_client,
    get_session_manager,
    logout,
    require_authentication,
)
from auth_portal.core.error_handlers import field_errors_from, get_error_message
from auth_portal.core.exceptions import AuthError, RefreshError
from auth_portal.schemas import (
    ChangePasswordForm,
    CodeForm,
    EmailChangeForm,
    UpdateProfileForm,
    collect_field_errors,
    validate_form,
)

logger = logging.getLogger(__name__)

setup_page("dashboard", hide_sidebar=False)
require_authentication()

settings = get_settings()
alerts = get_alerts("dashboard")
api_client = get_api_client()
session_manager = get_session_manager()


def call_api(action: Callable[[], Dict[str, Any]], title: str) -> Optional[Dict[str, Any]]:
    """
    Вызов API с алертом об ошибке.

    RefreshError завершает сессию: SessionManager уже запросил переход на вход.
    """
    try:
        return action()
    except RefreshError as e:
        logger.warning(f"Session ended: {e}")
        consume_navigation()
        return None
    except AuthError as e:
        alerts.show_error(title, get_error_message(e), seconds=settings.error_alert_seconds)
        return None


def load_user() -> Dict[str, Any]:
    if st.session_state.get(SESSION_USER_INFO) is None:
        user = call_api(api_client.get_current_user, "Could not load profile")
        st.session_state[SESSION_USER_INFO] = user or session_manager.get_user_info() or {}
    return st.session_state[SESSION_USER_INFO]


user = load_user()

with st.sidebar:
    st.markdown(f"**{user.get('fullName') or user.get('name') or user.get('email') or user.get('sub', '')}**")
    st.caption(user.get("email", ""))
    if st.button("Sign out", width="stretch"):
        logout()
        consume_navigation()

st.markdown("## Dashboard")
alert_slot = st.container()

profile_tab, security_tab, email_tab, session_tab = st.tabs(["Profile", "Password", "Email", "Session"])

with profile_tab:
    profile_errors: Dict[str, str] = {}
    with st.form(key="profile_form"):
        name = st.text_input("Name", value=user.get("name", ""))
        last_name = st.text_input("Last name", value=user.get("lastName", ""))
        phone_number = st.text_input("Phone number", value=user.get("phoneNumber") or "")
        saved = st.form_submit_button("Save changes", type="primary")

    if saved:
        data = {"name": name, "last_name": last_name, "phone_number": phone_number}
        profile_errors = collect_field_errors(UpdateProfileForm, data)
        if not profile_errors:
            form = validate_form(UpdateProfileForm, data)
            result = call_api(lambda: api_client.update_profile(form.to_payload()), "Profile update failed")
            if result is not None:
                st.session_state[SESSION_USER_INFO] = None
                alerts.show_success("Saved", result.get("message") or "Profile updated.")
    for field in ("name", "last_name", "phone_number"):
        render_field_error(profile_errors, field)

with security_tab:
    password_errors: Dict[str, str] = {}
    with st.form(key="change_password_form", clear_on_submit=True):
        current_password = st.text_input("Current password", type="password")
        new_password = st.text_input("New password", type="password")
        confirm_password = st.text_input("Confirm new password", type="password")
        changed = st.form_submit_button("Change password", type="primary")

    if changed:
        data = {
            "current_password": current_password,
            "new_password": new_password,
            "confirm_password": confirm_password,
        }
        password_errors = collect_field_errors(ChangePasswordForm, data)
        if not password_errors:
            try:
                result = api_client.change_password(current_password, new_password, confirm_password)
            except RefreshError:
                consume_navigation()
            except AuthError as e:
                password_errors = field_errors_from(e)
                alerts.show_error("Password change failed", get_error_message(e), seconds=settings.error_alert_seconds)
            else:
                alerts.show_success("Done", result.get("message") or "Password changed.")
    for field in ("current_password", "new_password", "confirm_password"):
        render_field_error(password_errors, field)

with email_tab:
    email_errors: Dict[str, str] = {}
    with st.form(key="request_email_change_form"):
        new_email = st.text_input("New email")
        new_email_confirmation = st.text_input("Confirm new email")
        email_password = st.text_input("Current password", type="password")
        requested = st.form_submit_button("Send verification code")

    if requested:
        data = {
            "new_email": new_email,
            "new_email_confirmation": new_email_confirmation,
            "current_password": email_password,
        }
        email_errors = collect_field_errors(EmailChangeForm, data)
        if not email_errors:
            result = call_api(
                lambda: api_client.request_email_change(
                    new_email.strip(), new_email_confirmation.strip(), email_password
                ),
                "Email change failed",
            )
            if result is not None:
                alerts.show_success("Code sent", result.get("message") or "Check your new email for the code.")
    for field in ("new_email", "new_email_confirmation", "current_password"):
        render_field_error(email_errors, field)

    verify_errors: Dict[str, str] = {}
    with st.form(key="verify_email_change_form"):
        verification_code = st.text_input("Verification code", max_chars=6)
        verified = st.form_submit_button("Confirm email change", type="primary")

    if verified:
        verify_errors = collect_field_errors(CodeForm, {"code": verification_code})
        if not verify_errors:
            result = call_api(
                lambda: api_client.verify_email_change(verification_code.strip()),
                "Verification failed",
            )
            if result is not None:
                st.session_state[SESSION_USER_INFO] = None
                alerts.show_success("Done", result.get("message") or "Email changed.")
    render_field_error(verify_errors, "code")

with session_tab:
    st.caption(f"Token state: {session_manager.state.value}")
    if st.button("Validate token"):
        validation = api_client.validate_token()
        if validation.get("valid"):
            st.success(f"Token is valid (expires in {validation.get('expires_in', '?')} s)")
        else:
            st.warning(validation.get("message") or "Token is not valid")
    if st.button("Refresh token"):
        call_api(lambda: {"access_token": api_client.refresh_token()}, "Refresh failed")
    claims = session_manager.get_user_info()
    if claims:
        st.json(claims)

with alert_slot:
    render_alerts(alerts)

run_scheduler()
