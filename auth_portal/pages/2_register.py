"""Страница регистрации: три шага с сохранением черновика."""

import logging
from datetime import date

import streamlit as st

from auth_portal.components import (
    render_alerts,
    render_field_error,
    render_step_progress,
    run_scheduler,
    setup_page,
)
from auth_portal.constants import (
    FIRST_STEP,
    PAGE_LOGIN,
    STEP_CONTACT,
    STEP_FIELDS,
    STEP_PERSONAL_INFO,
    STEP_SECURITY,
    STEP_TITLES,
)
from auth_portal.core.auth import get_registration_controller
from auth_portal.core.registration import FIELD_STEPS, FormStatus

logger = logging.getLogger(__name__)

setup_page("register")

controller = get_registration_controller()


def field_key(name: str) -> str:
    return f"register_{name}"


def sync_field(name: str) -> None:
    """on_change виджета: значение уходит в контроллер (и в хранилище)"""
    controller.set_field(name, st.session_state[field_key(name)])


def seed_widgets(step: int) -> None:
    # Виджеты невидимых шагов Streamlit удаляет, значения берём из черновика
    for name in STEP_FIELDS[step]:
        if field_key(name) not in st.session_state:
            st.session_state[field_key(name)] = controller.get_field(name)


def clear_widgets() -> None:
    for name in FIELD_STEPS:
        st.session_state.pop(field_key(name), None)


step = controller.current_step
seed_widgets(step)

st.markdown("## Create an account")
render_step_progress(step)
render_alerts(controller.alerts)

title, subtitle = STEP_TITLES[step]
st.markdown(f"#### {title}")
st.caption(subtitle)

errors = controller.errors

if step == STEP_PERSONAL_INFO:
    st.text_input(
        "ID number",
        key=field_key("id_number"),
        on_change=sync_field,
        args=("id_number",),
        max_chars=15,
    )
    render_field_error(errors, "id_number")
    col1, col2 = st.columns(2)
    with col1:
        st.text_input("Name", key=field_key("name"), on_change=sync_field, args=("name",))
        render_field_error(errors, "name")
    with col2:
        st.text_input("Last name", key=field_key("last_name"), on_change=sync_field, args=("last_name",))
        render_field_error(errors, "last_name")
    st.date_input(
        "Date of birth (optional)",
        key=field_key("date_of_birth"),
        on_change=sync_field,
        args=("date_of_birth",),
        min_value=date(1900, 1, 1),
        max_value=date.today(),
        format="YYYY-MM-DD",
    )
    render_field_error(errors, "date_of_birth")

elif step == STEP_CONTACT:
    st.text_input(
        "Email",
        key=field_key("email"),
        on_change=sync_field,
        args=("email",),
        placeholder="you@example.com",
    )
    render_field_error(errors, "email")
    st.text_input(
        "Phone number (optional)",
        key=field_key("phone_number"),
        on_change=sync_field,
        args=("phone_number",),
        placeholder="+1234567890",
    )
    render_field_error(errors, "phone_number")

elif step == STEP_SECURITY:
    st.text_input(
        "Password",
        type="password",
        key=field_key("password"),
        on_change=sync_field,
        args=("password",),
    )
    render_field_error(errors, "password")
    st.text_input(
        "Confirm password",
        type="password",
        key=field_key("confirm_password"),
        on_change=sync_field,
        args=("confirm_password",),
    )
    render_field_error(errors, "confirm_password")
    st.checkbox(
        "I accept the terms and conditions",
        key=field_key("terms_accepted"),
        on_change=sync_field,
        args=("terms_accepted",),
    )
    render_field_error(errors, "terms_accepted")

submitting = controller.status is FormStatus.SUBMITTING
col_back, col_next = st.columns(2)
with col_back:
    if st.button("Back", disabled=step == FIRST_STEP or submitting, width="stretch"):
        controller.retreat()
        st.rerun()
with col_next:
    if controller.is_final_step:
        if st.button("Create account", type="primary", disabled=submitting, width="stretch"):
            with st.spinner("Creating your account..."):
                created = controller.submit()
            if created:
                clear_widgets()
            st.rerun()
    elif st.button("Next", type="primary", width="stretch"):
        controller.advance()
        st.rerun()

if st.button("Already have an account? Sign in", key="to_login"):
    st.switch_page(PAGE_LOGIN)

run_scheduler()
