"""Модуль core: сессия и токены, хранилища, таймеры, ошибки.

Форма регистрации: auth_portal.core.registration.
"""

from auth_portal.core.alerts import Alert, AlertController
from auth_portal.core.error_handlers import field_errors_from, get_error_message
from auth_portal.core.exceptions import (
    AuthenticationError,
    AuthError,
    AuthErrorKind,
    AuthorizationError,
    FieldConflictError,
    LockedError,
    NetworkError,
    NotFoundError,
    RefreshError,
    ServerError,
    ValidationError,
    error_from_response,
)
from auth_portal.core.session import (
    PendingRequestQueue,
    Session,
    SessionManager,
    TokenState,
    handle_response,
)
from auth_portal.core.storage import (
    CookieStorage,
    JsonFileStorage,
    KeyValueStorage,
    MemoryStorage,
    SessionStateStorage,
    TokenStore,
)
from auth_portal.core.timers import ScheduledTask, TaskScheduler

__all__ = [
    # alerts
    "Alert",
    "AlertController",
    # error handlers
    "field_errors_from",
    "get_error_message",
    # exceptions
    "AuthError",
    "AuthErrorKind",
    "AuthenticationError",
    "AuthorizationError",
    "FieldConflictError",
    "LockedError",
    "NetworkError",
    "NotFoundError",
    "RefreshError",
    "ServerError",
    "ValidationError",
    "error_from_response",
    # session
    "PendingRequestQueue",
    "Session",
    "SessionManager",
    "TokenState",
    "handle_response",
    # storage
    "CookieStorage",
    "JsonFileStorage",
    "KeyValueStorage",
    "MemoryStorage",
    "SessionStateStorage",
    "TokenStore",
    # timers
    "ScheduledTask",
    "TaskScheduler",
]
