"""Веб-клиент сервиса аутентификации: вход, регистрация, восстановление доступа."""

__version__ = "0.1.0"
