"""Централизованный API клиент для взаимодействия с сервисом аутентификации."""

import logging
from typing import Any, Dict, Optional

from auth_portal.constants import (
    ENDPOINT_AUTH_ACTIVATE,
    ENDPOINT_AUTH_CHANGE_PASSWORD,
    ENDPOINT_AUTH_FORGOT_PASSWORD,
    ENDPOINT_AUTH_LOGIN_GOOGLE,
    ENDPOINT_AUTH_ME,
    ENDPOINT_AUTH_REGISTER,
    ENDPOINT_AUTH_REQUEST_EMAIL_CHANGE,
    ENDPOINT_AUTH_REQUEST_UNLOCK,
    ENDPOINT_AUTH_RESEND_ACTIVATION,
    ENDPOINT_AUTH_RESET_PASSWORD,
    ENDPOINT_AUTH_UPDATE_PROFILE,
    ENDPOINT_AUTH_VALIDATE_TOKEN,
    ENDPOINT_AUTH_VERIFY_EMAIL_CHANGE,
    ENDPOINT_AUTH_VERIFY_UNLOCK,
    MSG_NO_TOKEN,
    MSG_TOKEN_VALIDATION_FAILED,
)
from auth_portal.core.exceptions import AuthError
from auth_portal.core.session import Session, SessionManager, handle_response

logger = logging.getLogger(__name__)


class APIClient:
    """
    Клиент для взаимодействия с API аутентификации.

    Все запросы идут через SessionManager: он прикладывает токен
    и обновляет его по 401 для защищённых эндпоинтов.
    Методы возвращают JSON ответа или бросают подкласс AuthError.
    """

    def __init__(self, session_manager: SessionManager) -> None:
        """
        Инициализация API клиента.

        Args:
            session_manager: Сессия текущего пользователя (токены, транспорт)
        """
        self.session_manager = session_manager

    def _public(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = self.session_manager.request(method, path, body)
        return handle_response(response)

    def _protected(self, method: str, path: str, body: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        response = self.session_manager.authenticated_request(method, path, body)
        return handle_response(response)

    # ==================== Регистрация и активация ====================

    def register(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Регистрация нового пользователя.

        Args:
            user_data: Тело запроса в camelCase (RegisterUserRequest.to_payload())

        Returns:
            ``{"message": ...}``
        """
        try:
            return self._public("POST", ENDPOINT_AUTH_REGISTER, user_data)
        except AuthError as e:
            logger.error(f"Registration failed: {e}")
            raise

    def activate_account(self, activation_code: str) -> Dict[str, Any]:
        """
        Активация аккаунта по коду из письма.

        Если в ответе есть токены, сессия начинается сразу.
        """
        try:
            data = self._public("POST", ENDPOINT_AUTH_ACTIVATE, {"activationCode": activation_code})
        except AuthError as e:
            logger.error(f"Account activation failed: {e}")
            raise
        self.session_manager.start_session_from(data)
        return data

    def resend_activation_code(self, email: str) -> Dict[str, Any]:
        try:
            return self._public("POST", ENDPOINT_AUTH_RESEND_ACTIVATION, {"email": email})
        except AuthError as e:
            logger.error(f"Resend activation code failed: {e}")
            raise

    # ==================== Вход и выход ====================

    def login(self, email: str, password: str) -> Session:
        """
        Вход пользователя.

        Args:
            email: Email пользователя
            password: Пароль

        Returns:
            Активная сессия (токены сохранены)
        """
        try:
            return self.session_manager.login(email, password)
        except AuthError as e:
            logger.error(f"Login failed: {e}")
            raise

    def login_with_google(self, id_token: str) -> Session:
        """
        Вход через Google по ID токену.

        Raises:
            AuthError: Сервер отклонил токен или ответ без access token
        """
        try:
            data = self._public("POST", ENDPOINT_AUTH_LOGIN_GOOGLE, {"idToken": id_token})
        except AuthError as e:
            logger.error(f"Google login failed: {e}")
            raise
        session = self.session_manager.start_session_from(data)
        if session is None:
            raise AuthError("Google login response did not contain an access token")
        return session

    def logout(self) -> None:
        self.session_manager.logout()

    # ==================== Блокировка и пароль ====================

    def request_unlock(self, email: str) -> Dict[str, Any]:
        try:
            return self._public("POST", ENDPOINT_AUTH_REQUEST_UNLOCK, {"email": email})
        except AuthError as e:
            logger.error(f"Unlock request failed: {e}")
            raise

    def verify_unlock_code(self, code: str) -> Dict[str, Any]:
        try:
            return self._public("POST", ENDPOINT_AUTH_VERIFY_UNLOCK, {"code": code})
        except AuthError as e:
            logger.error(f"Unlock code verification failed: {e}")
            raise

    def forgot_password(self, email: str) -> Dict[str, Any]:
        try:
            return self._public("POST", ENDPOINT_AUTH_FORGOT_PASSWORD, {"email": email})
        except AuthError as e:
            logger.error(f"Forgot password request failed: {e}")
            raise

    def reset_password(self, reset_code: str, password: str, confirm_password: str) -> Dict[str, Any]:
        body = {"resetCode": reset_code, "password": password, "confirmPassword": confirm_password}
        try:
            return self._public("POST", ENDPOINT_AUTH_RESET_PASSWORD, body)
        except AuthError as e:
            logger.error(f"Password reset failed: {e}")
            raise

    def change_password(self, current_password: str, new_password: str, confirm_password: str) -> Dict[str, Any]:
        body = {
            "currentPassword": current_password,
            "newPassword": new_password,
            "confirmPassword": confirm_password,
        }
        try:
            return self._protected("PUT", ENDPOINT_AUTH_CHANGE_PASSWORD, body)
        except AuthError as e:
            logger.error(f"Password change failed: {e}")
            raise

    # ==================== Профиль ====================

    def request_email_change(
        self,
        new_email: str,
        new_email_confirmation: str,
        current_password: str,
    ) -> Dict[str, Any]:
        body = {
            "newEmail": new_email,
            "newEmailConfirmation": new_email_confirmation,
            "currentPassword": current_password,
        }
        try:
            return self._protected("POST", ENDPOINT_AUTH_REQUEST_EMAIL_CHANGE, body)
        except AuthError as e:
            logger.error(f"Email change request failed: {e}")
            raise

    def verify_email_change(self, verification_code: str) -> Dict[str, Any]:
        """
        Подтверждение смены email.

        Сервер выдаёт новый access token (в нём новый email), он сохраняется.
        """
        try:
            data = self._protected(
                "POST",
                ENDPOINT_AUTH_VERIFY_EMAIL_CHANGE,
                {"verificationCode": verification_code},
            )
        except AuthError as e:
            logger.error(f"Email change verification failed: {e}")
            raise
        if data.get("access_token"):
            self.session_manager.token_store.set_access_token(data["access_token"])
        return data

    def update_profile(self, profile_data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Обновление профиля.

        Args:
            profile_data: Изменённые поля в camelCase (UpdateProfileForm.to_payload())
        """
        try:
            return self._protected("PUT", ENDPOINT_AUTH_UPDATE_PROFILE, profile_data)
        except AuthError as e:
            logger.error(f"Profile update failed: {e}")
            raise

    def get_current_user(self) -> Dict[str, Any]:
        """Данные текущего пользователя"""
        try:
            return self._protected("GET", ENDPOINT_AUTH_ME)
        except AuthError as e:
            logger.error(f"Get current user failed: {e}")
            raise

    # ==================== Токены ====================

    def validate_token(self) -> Dict[str, Any]:
        """
        Проверка access token на сервере.

        Никогда не бросает исключение и не запускает обновление токена.

        Returns:
            ``{"valid": bool, ...}``
        """
        if not self.session_manager.access_token:
            return {"valid": False, "message": MSG_NO_TOKEN}
        try:
            return self._public("POST", ENDPOINT_AUTH_VALIDATE_TOKEN)
        except AuthError as e:
            logger.warning(f"Token validation failed: {e}")
            return {"valid": False, "message": MSG_TOKEN_VALIDATION_FAILED}

    def refresh_token(self) -> str:
        """Обновить access token (одно обновление на все параллельные запросы)"""
        return self.session_manager.refresh()
