"""
Общие фикстуры: поддельный HTTP транспорт, часы, SessionManager, APIClient
"""

import json
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

import jwt
import pytest

from auth_portal.api_client import APIClient
from auth_portal.core.session import SessionManager
from auth_portal.core.storage import MemoryStorage, TokenStore
from auth_portal.core.timers import TaskScheduler

BASE_URL = "http://api.test/api"


# ==================== Helpers ====================

class FakeResponse:
    """Минимальный аналог requests.Response"""

    def __init__(self, status_code: int = 200, payload: Optional[Any] = None) -> None:
        self.status_code = status_code
        self._payload = payload
        self.content = b"" if payload is None else json.dumps(payload).encode()
        self.text = self.content.decode()

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


@dataclass
class Call:
    """Запрос, дошедший до транспорта"""

    method: str
    path: str
    body: Optional[Dict[str, Any]]
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def token(self) -> Optional[str]:
        auth = self.headers.get("Authorization")
        return auth[len("Bearer "):] if auth else None


Handler = Union[FakeResponse, Exception, Callable[[Call], Union[FakeResponse, Exception]]]


class FakeHTTP:
    """
    Поддельный requests.Session: ответы задаются по (method, path).

    Обработчик - готовый FakeResponse, исключение или функция от Call.
    """

    def __init__(self, base_url: str = BASE_URL) -> None:
        self.base_url = base_url
        self.routes: Dict[tuple, Handler] = {}
        self.calls: List[Call] = []
        self._lock = threading.Lock()

    def route(self, method: str, path: str, handler: Handler) -> None:
        self.routes[(method, path)] = handler

    def request(self, method, url, json=None, params=None, headers=None, timeout=None):
        path = url[len(self.base_url):]
        call = Call(method=method, path=path, body=json, headers=dict(headers or {}))
        with self._lock:
            self.calls.append(call)

        handler = self.routes.get((method, path))
        if handler is None:
            return FakeResponse(404, {"message": f"No route for {method} {path}"})
        result = handler(call) if callable(handler) else handler
        if isinstance(result, Exception):
            raise result
        return result

    def calls_to(self, path: str) -> List[Call]:
        with self._lock:
            return [call for call in self.calls if call.path == path]


class FakeClock:
    """Ручные часы для планировщика и хранилищ"""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_jwt(claims: Dict[str, Any]) -> str:
    """JWT, подписанный тестовым ключом (клиент подпись не проверяет)"""
    return jwt.encode(claims, "test-secret-key-for-jwt-signing!", algorithm="HS256")


def wait_until(predicate: Callable[[], bool], timeout: float = 5.0) -> bool:
    """Ждать выполнения условия (для тестов с потоками)"""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.005)
    return predicate()


# ==================== Fixtures ====================

@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_http():
    return FakeHTTP()


@pytest.fixture
def token_store():
    return TokenStore(MemoryStorage())


@pytest.fixture
def logout_calls():
    """Сюда on_logout записывает вызовы"""
    return []


@pytest.fixture
def session_manager(fake_http, token_store, logout_calls):
    return SessionManager(
        token_store,
        base_url=BASE_URL,
        timeout=5,
        http=fake_http,
        on_logout=lambda: logout_calls.append(True),
    )


@pytest.fixture
def logged_in(session_manager):
    """Сессия с просроченным на сервере access token и рабочим refresh token"""
    session_manager.start_session("old-access", "refresh-1")
    return session_manager


@pytest.fixture
def api_client(session_manager):
    return APIClient(session_manager)


@pytest.fixture
def scheduler(clock):
    return TaskScheduler(clock=clock)
