"""Главная страница - навигация и маршрутизация."""

import streamlit as st

from auth_portal.components import setup_page
from auth_portal.constants import PAGE_DASHBOARD, PAGE_LOGIN
from auth_portal.core.auth import check_authentication

setup_page("main")

# Проверка авторизации и перенаправление
if not check_authentication():
    st.switch_page(PAGE_LOGIN)
else:
    st.switch_page(PAGE_DASHBOARD)
