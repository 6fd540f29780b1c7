"""
Исключения клиента аутентификации
"""

from enum import Enum
from typing import Any, Dict, Optional

from auth_portal.constants import (
    HTTP_BAD_REQUEST,
    HTTP_CONFLICT,
    HTTP_FORBIDDEN,
    HTTP_INTERNAL_SERVER_ERROR,
    HTTP_LOCKED,
    HTTP_NOT_FOUND,
    HTTP_UNAUTHORIZED,
    MSG_DEFAULT_ERROR,
)


class AuthErrorKind(str, Enum):
    """Категория ошибки, которую видит UI"""

    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"
    ACCOUNT_LOCKED = "ACCOUNT_LOCKED"
    NOT_ACTIVATED = "NOT_ACTIVATED"
    SERVER = "SERVER"
    NETWORK = "NETWORK"
    VALIDATION = "VALIDATION"
    FIELD_CONFLICT = "FIELD_CONFLICT"
    REFRESH = "REFRESH"
    UNKNOWN = "UNKNOWN"


class AuthError(Exception):
    """Базовое исключение клиента с поддержкой HTTP статус кодов"""

    status_code: Optional[int] = None
    error_code: str = "AUTH_ERROR"
    kind: AuthErrorKind = AuthErrorKind.UNKNOWN

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.details = details or {}
        if status_code:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Сериализация исключения в словарь"""
        return {
            "error": self.error_code,
            "kind": self.kind.value,
            "status": self.status_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(AuthError):
    """Локальная ошибка валидации формы, до сети не доходит"""

    error_code = "VALIDATION_ERROR"
    kind = AuthErrorKind.VALIDATION

    def __init__(self, field_errors: Dict[str, str], message: str = "Invalid form data"):
        super().__init__(message=message, details={"errors": field_errors})
        self.field_errors = field_errors


class FieldConflictError(AuthError):
    """400 с ошибками по полям (дубликат email / ID и т.п.)"""

    status_code = HTTP_BAD_REQUEST
    error_code = "FIELD_CONFLICT"
    kind = AuthErrorKind.FIELD_CONFLICT

    @property
    def field_errors(self) -> Dict[str, str]:
        errors = self.details.get("errors") or {}
        return {str(field): str(msg) for field, msg in errors.items()}


class AuthenticationError(AuthError):
    """Неверные учетные данные"""

    status_code = HTTP_UNAUTHORIZED
    error_code = "INVALID_CREDENTIALS"
    kind = AuthErrorKind.INVALID_CREDENTIALS


class AuthorizationError(AuthError):
    """Аккаунт не активирован"""

    status_code = HTTP_FORBIDDEN
    error_code = "NOT_ACTIVATED"
    kind = AuthErrorKind.NOT_ACTIVATED


class NotFoundError(AuthError):
    """Аккаунт не найден"""

    status_code = HTTP_NOT_FOUND
    error_code = "ACCOUNT_NOT_FOUND"
    kind = AuthErrorKind.ACCOUNT_NOT_FOUND


class LockedError(AuthError):
    """Аккаунт временно заблокирован"""

    status_code = HTTP_LOCKED
    error_code = "ACCOUNT_LOCKED"
    kind = AuthErrorKind.ACCOUNT_LOCKED


class ServerError(AuthError):
    """Ошибка на стороне сервера (5xx)"""

    status_code = HTTP_INTERNAL_SERVER_ERROR
    error_code = "SERVER_ERROR"
    kind = AuthErrorKind.SERVER


class NetworkError(AuthError):
    """Ответ от сервера не получен"""

    error_code = "NETWORK_ERROR"
    kind = AuthErrorKind.NETWORK


class RefreshError(AuthError):
    """Не удалось обновить access token. Сессия завершается."""

    status_code = HTTP_UNAUTHORIZED
    error_code = "REFRESH_FAILED"
    kind = AuthErrorKind.REFRESH


_STATUS_ERRORS = {
    HTTP_BAD_REQUEST: FieldConflictError,
    HTTP_CONFLICT: FieldConflictError,
    HTTP_UNAUTHORIZED: AuthenticationError,
    HTTP_FORBIDDEN: AuthorizationError,
    HTTP_NOT_FOUND: NotFoundError,
    HTTP_LOCKED: LockedError,
}


def error_from_response(status_code: int, payload: Optional[Dict[str, Any]] = None) -> AuthError:
    """
    Построить исключение по HTTP ответу с ошибкой.

    Args:
        status_code: HTTP статус ответа
        payload: Тело ответа (``{"message": ..., "errors": {...}}``), если есть

    Returns:
        Экземпляр подходящего подкласса AuthError
    """
    payload = payload if isinstance(payload, dict) else {}
    message = payload.get("message") or ""
    details: Dict[str, Any] = {}
    if isinstance(payload.get("errors"), dict):
        details["errors"] = payload["errors"]

    if status_code >= HTTP_INTERNAL_SERVER_ERROR:
        error_cls = ServerError
    else:
        error_cls = _STATUS_ERRORS.get(status_code, AuthError)

    error = error_cls(message or MSG_DEFAULT_ERROR, details=details, status_code=status_code)
    # Пустое сообщение бэкенда не должно перекрывать текст по статусу
    error.details["backend_message"] = message or None
    return error
