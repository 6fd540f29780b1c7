"""
Выбор текста ошибки для пользователя и привязка серверных ошибок к полям
"""

import logging
from typing import Dict, Optional

from auth_portal.constants import ERROR_MESSAGES, MSG_DEFAULT_ERROR
from auth_portal.core.exceptions import AuthError, FieldConflictError, ValidationError

logger = logging.getLogger(__name__)

# camelCase имена полей бэкенда -> имена полей форм
SERVER_FIELD_NAMES: Dict[str, str] = {
    "idNumber": "id_number",
    "lastName": "last_name",
    "dateOfBirth": "date_of_birth",
    "phoneNumber": "phone_number",
    "confirmPassword": "confirm_password",
    "termsAccepted": "terms_accepted",
    "resetCode": "reset_code",
    "activationCode": "activation_code",
    "currentPassword": "current_password",
    "newPassword": "new_password",
    "newEmail": "new_email",
    "newEmailConfirmation": "new_email_confirmation",
    "verificationCode": "verification_code",
}


def _backend_message(error: AuthError) -> Optional[str]:
    if "backend_message" in error.details:
        return error.details["backend_message"]
    return error.message or None


def get_error_message(error: BaseException) -> str:
    """
    Текст ошибки для алерта.

    Сообщение бэкенда имеет приоритет (в том числе для 401/403/423),
    иначе используется текст по статус коду.

    Args:
        error: Исключение из APIClient / SessionManager

    Returns:
        Сообщение для пользователя
    """
    if isinstance(error, AuthError):
        message = _backend_message(error)
        if message:
            return message
        if error.status_code is not None:
            return ERROR_MESSAGES.get(error.status_code, MSG_DEFAULT_ERROR)
        return MSG_DEFAULT_ERROR

    logger.error(f"Unexpected error type {type(error).__name__}: {error}")
    return str(error) or MSG_DEFAULT_ERROR


def field_errors_from(error: BaseException) -> Dict[str, str]:
    """
    Ошибки по полям из локальной валидации или 400 ответа.

    Returns:
        ``{field: message}`` с именами полей форм
    """
    if isinstance(error, (FieldConflictError, ValidationError)):
        return {
            SERVER_FIELD_NAMES.get(field, field): message
            for field, message in error.field_errors.items()
        }
    return {}
