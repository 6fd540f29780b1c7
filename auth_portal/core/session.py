"""
Жизненный цикл сессии: хранение токенов, Bearer-заголовок, обновление
access token по 401 и очередь запросов на время обновления.

Состояния токена::

    LOGGED_OUT -> VALID -> EXPIRED -> REFRESHING -> VALID | LOGGED_OUT

Одновременно выполняется не больше одного обновления. Запросы, получившие
401 во время обновления, ждут в очереди и повторяются с новым токеном
в порядке поступления.
"""

import logging
import threading
from collections import deque
from concurrent.futures import Future
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Deque, Dict, Iterator, List, Optional, Tuple

import jwt
import requests

from auth_portal.constants import (
    ENDPOINT_AUTH_LOGIN,
    ENDPOINT_AUTH_LOGOUT,
    ENDPOINT_AUTH_REFRESH_TOKEN,
    HTTP_UNAUTHORIZED,
    MSG_NETWORK_ERROR,
    MSG_NO_REFRESH_TOKEN,
    MSG_REFRESH_FAILED,
    MSG_SESSION_ENDED,
)
from auth_portal.core.exceptions import (
    AuthError,
    NetworkError,
    RefreshError,
    error_from_response,
)
from auth_portal.core.storage import TokenStore

logger = logging.getLogger(__name__)


class TokenState(str, Enum):
    """Состояние access token с точки зрения клиента"""

    LOGGED_OUT = "logged_out"
    VALID = "valid"
    EXPIRED = "expired"
    REFRESHING = "refreshing"


_ALLOWED_TRANSITIONS = {
    TokenState.LOGGED_OUT: {TokenState.LOGGED_OUT, TokenState.VALID, TokenState.EXPIRED},
    TokenState.VALID: {TokenState.VALID, TokenState.EXPIRED, TokenState.LOGGED_OUT},
    TokenState.EXPIRED: {TokenState.EXPIRED, TokenState.REFRESHING, TokenState.VALID, TokenState.LOGGED_OUT},
    TokenState.REFRESHING: {TokenState.VALID, TokenState.LOGGED_OUT},
}


@dataclass
class Session:
    """Активная сессия после входа"""

    access_token: str
    refresh_token: Optional[str] = None
    user_info: Optional[Dict[str, Any]] = None
    message: Optional[str] = None


class PendingRequestQueue:
    """
    Очередь отложенных запросов на время обновления токена.

    Каждый элемент - Future: ``set_result(token)`` продолжает запрос,
    ``set_exception(error)`` отклоняет его.
    """

    def __init__(self) -> None:
        self._waiters: Deque[Future] = deque()

    def __len__(self) -> int:
        return len(self._waiters)

    def enqueue(self) -> Future:
        waiter: Future = Future()
        self._waiters.append(waiter)
        return waiter

    def _drain(self) -> List[Future]:
        waiters = list(self._waiters)
        self._waiters.clear()
        return waiters

    def resolve_all(self, token: str) -> int:
        waiters = self._drain()
        for waiter in waiters:
            waiter.set_result(token)
        return len(waiters)

    def reject_all(self, error: BaseException) -> int:
        waiters = self._drain()
        for waiter in waiters:
            waiter.set_exception(error)
        return len(waiters)


def handle_response(response: requests.Response) -> Dict[str, Any]:
    """
    Обработка ответа от сервера.

    Args:
        response: Ответ от сервера

    Returns:
        JSON данные (пустой словарь для ответа без тела)

    Raises:
        AuthError: Подкласс по статус коду, если ответ с ошибкой
    """
    try:
        payload = response.json() if response.content else {}
    except ValueError:
        logger.warning(f"Failed to parse JSON response with status {response.status_code}")
        payload = {}

    if 200 <= response.status_code < 300:
        return payload if isinstance(payload, dict) else {"data": payload}

    logger.error(
        f"API request failed with status {response.status_code}: "
        f"{response.text[:200]}"
    )
    raise error_from_response(response.status_code, payload if isinstance(payload, dict) else None)


class SessionManager:
    """
    Владелец токенов и HTTP транспорта.

    Создаётся явно (в UI - один экземпляр на сессию браузера) и передаётся
    всем, кто делает запросы к API.

    Args:
        token_store: Хранилище токенов
        base_url: Базовый URL API
        timeout: Таймаут запросов в секундах
        http: requests.Session (или совместимый объект) для отправки запросов
        on_logout: Вызывается после завершения сессии (переход на страницу входа)
    """

    def __init__(
        self,
        token_store: TokenStore,
        base_url: str,
        timeout: int = 30,
        http: Optional[requests.Session] = None,
        on_logout: Optional[Callable[[], None]] = None,
    ) -> None:
        self.token_store = token_store
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = http or requests.Session()
        self.on_logout = on_logout

        self._lock = threading.RLock()
        self._queue = PendingRequestQueue()
        self._state = TokenState.VALID if token_store.access_token else TokenState.LOGGED_OUT

    # ------------------------------------------------------------------
    # Состояние
    # ------------------------------------------------------------------

    @property
    def state(self) -> TokenState:
        with self._lock:
            return self._state

    @property
    def access_token(self) -> Optional[str]:
        return self.token_store.access_token

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._queue)

    def is_authenticated(self) -> bool:
        """Есть ли сохранённый access token (срок не проверяется заранее)"""
        return self.access_token is not None

    def _transition(self, new_state: TokenState) -> None:
        if new_state not in _ALLOWED_TRANSITIONS[self._state]:
            raise RuntimeError(f"Illegal token state transition {self._state.value} -> {new_state.value}")
        if new_state is not self._state:
            logger.debug(f"[SESSION] {self._state.value} -> {new_state.value}")
        self._state = new_state

    # ------------------------------------------------------------------
    # Транспорт
    # ------------------------------------------------------------------

    def _send(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            return self.http.request(
                method,
                f"{self.base_url}{path}",
                json=body,
                params=params,
                headers=headers,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"[SESSION] {method} {path} failed: {e}")
            raise NetworkError(MSG_NETWORK_ERROR, details={"reason": str(e)}) from e

    def request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        """
        Запрос к публичному эндпоинту.

        Токен прикладывается, если он есть, но 401 не запускает обновление:
        для /auth/login это просто неверные учетные данные.
        """
        return self._send(method, path, body, token=self.access_token, params=params)

    def authenticated_request(
        self,
        method: str,
        path: str,
        body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> requests.Response:
        """
        Запрос с Bearer токеном и прозрачным обновлением при 401.

        Запрос повторяется не больше одного раза: повторный 401
        возвращается вызывающему как есть.

        Raises:
            NetworkError: Ответ не получен (обновление не запускается)
            RefreshError: Обновить токен не удалось, сессия завершена
        """
        sent_token = self.access_token
        response = self._send(method, path, body, token=sent_token, params=params)
        if response.status_code != HTTP_UNAUTHORIZED:
            return response

        logger.info(f"[SESSION] 401 on {method} {path}, access token expired")
        token = self._wait_for_fresh_token(stale_token=sent_token)
        return self._send(method, path, body, token=token, params=params)

    # ------------------------------------------------------------------
    # Обновление токена
    # ------------------------------------------------------------------

    def refresh(self) -> str:
        """Обновить access token (с учётом уже идущего обновления)"""
        return self._wait_for_fresh_token()

    def _wait_for_fresh_token(self, stale_token: Optional[str] = None) -> str:
        """
        Новый access token: ожидание идущего обновления или запуск своего.

        Args:
            stale_token: Токен, с которым запрос получил 401. Если сохранённый
                токен с тех пор сменился, обновление уже прошло и повторять
                его не нужно.
        """
        with self._lock:
            current = self.access_token
            if self._state is TokenState.REFRESHING:
                waiter = self._queue.enqueue()
                logger.info(f"[REFRESH] Refresh in progress, request queued (position {len(self._queue)})")
            elif stale_token is not None and current is not None and current != stale_token:
                logger.info("[REFRESH] Token already refreshed, retrying with the current token")
                return current
            else:
                waiter = None
                self._transition(TokenState.EXPIRED)
                self._transition(TokenState.REFRESHING)

        if waiter is not None:
            return waiter.result()

        with self._refresh_cycle():
            return self._refresh_and_release()

    @contextmanager
    def _refresh_cycle(self) -> Iterator[None]:
        """Флаг REFRESHING снимается на любом пути выхода."""
        try:
            yield
        finally:
            aborted = False
            with self._lock:
                if self._state is TokenState.REFRESHING:
                    aborted = True
                    abandoned = self._queue.reject_all(RefreshError(MSG_REFRESH_FAILED))
                    logger.error(f"[REFRESH] Refresh aborted, {abandoned} queued requests rejected")
                    self.token_store.clear()
                    self._transition(TokenState.LOGGED_OUT)
            if aborted:
                self._notify_logout()

    def _refresh_and_release(self) -> str:
        try:
            access_token, refresh_token = self._call_refresh_endpoint()
        except RefreshError as e:
            self._fail_refresh(e)
            raise
        except AuthError as e:
            error = RefreshError(e.message, details=e.details)
            self._fail_refresh(error)
            raise error from e

        with self._lock:
            # Пока шёл запрос обновления, сессию могли завершить или начать заново
            if self._state is not TokenState.REFRESHING:
                logger.warning("[REFRESH] Session changed during refresh, refreshed token discarded")
                current = self.access_token
                if self._state is TokenState.VALID and current:
                    return current
                raise RefreshError(MSG_SESSION_ENDED)
            self.token_store.set_access_token(access_token)
            if refresh_token:
                self.token_store.set_refresh_token(refresh_token)
            self._transition(TokenState.VALID)
            released = self._queue.resolve_all(access_token)
        logger.info(f"[REFRESH] Access token refreshed, {released} queued requests released")
        return access_token

    def _fail_refresh(self, error: RefreshError) -> None:
        with self._lock:
            if self._state is not TokenState.REFRESHING:
                logger.warning(f"[REFRESH] Refresh failed after session ended: {error.message}")
                return
            rejected = self._queue.reject_all(error)
            self.token_store.clear()
            self._transition(TokenState.LOGGED_OUT)
        logger.warning(f"[REFRESH] Refresh failed ({error.message}), {rejected} queued requests rejected")
        self._notify_logout()

    def _call_refresh_endpoint(self) -> Tuple[str, Optional[str]]:
        refresh_token = self.token_store.refresh_token
        if not refresh_token:
            raise RefreshError(MSG_NO_REFRESH_TOKEN)

        logger.info("[REFRESH] Requesting new access token")
        response = self._send("POST", ENDPOINT_AUTH_REFRESH_TOKEN, {"refreshToken": refresh_token})
        payload = handle_response(response)

        access_token = payload.get("access_token")
        if not access_token:
            raise RefreshError(payload.get("message") or MSG_REFRESH_FAILED)
        return access_token, payload.get("refresh_token")

    # ------------------------------------------------------------------
    # Вход и выход
    # ------------------------------------------------------------------

    def start_session(self, access_token: str, refresh_token: Optional[str] = None) -> None:
        """Сохранить токены новой сессии"""
        with self._lock:
            self.token_store.set_access_token(access_token)
            if refresh_token:
                self.token_store.set_refresh_token(refresh_token)
            if self._state is TokenState.REFRESHING:
                self._queue.resolve_all(access_token)
            self._transition(TokenState.VALID)
        logger.info("[SESSION] Session started")

    def start_session_from(self, payload: Dict[str, Any]) -> Optional[Session]:
        """Начать сессию из ответа login/activate, если в нём есть токены"""
        access_token = payload.get("access_token")
        if not access_token:
            return None
        self.start_session(access_token, payload.get("refresh_token"))
        return Session(
            access_token=access_token,
            refresh_token=payload.get("refresh_token"),
            user_info=payload.get("user_info"),
            message=payload.get("message"),
        )

    def login(self, email: str, password: str) -> Session:
        """
        Вход по email и паролю.

        Raises:
            AuthenticationError: 401, неверные учетные данные
            NotFoundError: 404, аккаунт не найден
            AuthorizationError: 403, аккаунт не активирован
            LockedError: 423, аккаунт заблокирован
            ServerError: 5xx
            NetworkError: Ответ не получен
        """
        response = self.request("POST", ENDPOINT_AUTH_LOGIN, {"email": email, "password": password})
        payload = handle_response(response)
        session = self.start_session_from(payload)
        if session is None:
            raise AuthError("Login response did not contain an access token", status_code=response.status_code)
        logger.info("User logged in")
        return session

    def clear_session(self) -> None:
        """Удалить токены локально (запросы, ждущие обновления, отклоняются)"""
        with self._lock:
            if self._state is TokenState.REFRESHING:
                rejected = self._queue.reject_all(RefreshError(MSG_SESSION_ENDED))
                logger.info(f"[SESSION] Session cleared during refresh, {rejected} queued requests rejected")
            self.token_store.clear()
            self._transition(TokenState.LOGGED_OUT)

    def logout(self) -> None:
        """
        Выход: сервер уведомляется по возможности, локальная сессия
        очищается всегда.
        """
        token = self.access_token
        try:
            if token:
                response = self._send("POST", ENDPOINT_AUTH_LOGOUT, token=token)
                if response.status_code >= 400:
                    logger.warning(f"[SESSION] Logout returned status {response.status_code}")
        except NetworkError as e:
            logger.warning(f"[SESSION] Error during logout: {e}")
        finally:
            self.clear_session()
            logger.info("User logged out")
            self._notify_logout()

    def _notify_logout(self) -> None:
        if self.on_logout is not None:
            self.on_logout()

    # ------------------------------------------------------------------
    # Утилиты
    # ------------------------------------------------------------------

    def get_user_info(self) -> Optional[Dict[str, Any]]:
        """
        Payload JWT access token без проверки подписи.

        Returns:
            Claims токена или None, если токена нет или он не JWT
        """
        token = self.access_token
        if not token:
            return None
        try:
            return jwt.decode(token, options={"verify_signature": False})
        except jwt.PyJWTError as e:
            logger.warning(f"JWT decode error: {e}")
            return None
