"""Хранилища ключ-значение для токенов и черновика регистрации."""

import json
import logging
import re
import threading
import time
from abc import ABC, abstractmethod
from email.utils import formatdate
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Mapping, MutableMapping, Optional
from urllib.parse import quote, unquote

from auth_portal.constants import STORAGE_ACCESS_TOKEN_KEY, STORAGE_REFRESH_TOKEN_KEY

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class KeyValueStorage(ABC):
    """
    Абстрактное хранилище строковых значений.

    Значение можно сохранить с ``max_age`` (секунды): после истечения срока
    ``get`` возвращает None, как браузер для просроченной cookie.
    """

    def __init__(self, clock: Clock = time.time) -> None:
        self._clock = clock

    @abstractmethod
    def _read(self) -> Dict[str, Dict[str, Any]]:
        """Прочитать все записи вида ``{key: {"value": ..., "expires_at": ...}}``"""

    @abstractmethod
    def _write(self, entries: Dict[str, Dict[str, Any]]) -> None:
        """Записать все записи"""

    def get(self, key: str) -> Optional[str]:
        entry = self._read().get(key)
        if entry is None:
            return None
        expires_at = entry.get("expires_at")
        if expires_at is not None and expires_at <= self._clock():
            self.remove(key)
            return None
        return entry.get("value")

    def set(self, key: str, value: str, max_age: Optional[float] = None) -> None:
        entries = self._read()
        expires_at = self._clock() + max_age if max_age is not None else None
        entries[key] = {"value": value, "expires_at": expires_at}
        self._write(entries)

    def remove(self, key: str) -> None:
        entries = self._read()
        if entries.pop(key, None) is not None:
            self._write(entries)


class MemoryStorage(KeyValueStorage):
    """Хранилище в памяти процесса (тесты, одна сессия)."""

    def __init__(self, clock: Clock = time.time) -> None:
        super().__init__(clock)
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return dict(self._entries)

    def _write(self, entries: Dict[str, Dict[str, Any]]) -> None:
        with self._lock:
            self._entries = dict(entries)


class SessionStateStorage(KeyValueStorage):
    """
    Хранилище поверх ``st.session_state`` (живёт, пока открыта вкладка).

    Args:
        state: Объект session state (или любой MutableMapping)
        namespace: Ключ, под которым лежат записи
    """

    def __init__(
        self,
        state: MutableMapping[str, Any],
        namespace: str,
        clock: Clock = time.time,
    ) -> None:
        super().__init__(clock)
        self._state = state
        self._namespace = namespace

    def _read(self) -> Dict[str, Dict[str, Any]]:
        return dict(self._state.get(self._namespace) or {})

    def _write(self, entries: Dict[str, Dict[str, Any]]) -> None:
        self._state[self._namespace] = entries


class CookieStorage(SessionStateStorage):
    """
    Токены в session state с зеркалом в cookies браузера.

    Streamlit отдаёт cookies только на чтение и только из запроса,
    открывшего сессию (``st.context.cookies``). Поэтому значения живут
    в session state, при первом создании заполняются из cookies,
    а ``cookie_script()`` строит JS, который приводит cookies вкладки
    к текущему состоянию. Скрипт идемпотентен: его можно вставлять
    на каждом прогоне страницы.

    Args:
        state: Объект session state
        namespace: Ключ, под которым лежат записи
        cookies: Cookies запроса, открывшего сессию
        keys: Имена cookies, которыми управляет хранилище
    """

    def __init__(
        self,
        state: MutableMapping[str, Any],
        namespace: str,
        cookies: Mapping[str, str],
        keys: Iterable[str],
        clock: Clock = time.time,
    ) -> None:
        super().__init__(state, namespace, clock)
        self.keys = tuple(keys)
        if namespace not in state:
            # Срок жизни уже выставлен браузером, здесь он неизвестен
            state[namespace] = {
                key: {"value": unquote(cookies[key]), "expires_at": None}
                for key in self.keys
                if cookies.get(key)
            }
            if state[namespace]:
                logger.info(f"[STORAGE] Restored from cookies: {sorted(state[namespace])}")

    def cookie_script(self) -> str:
        entries = self._read()
        statements = []
        for key in self.keys:
            entry = entries.get(key)
            if entry is None:
                statements.append(self._cookie_statement(key, "", "max-age=0"))
            elif entry.get("expires_at") is not None:
                expires = formatdate(entry["expires_at"], usegmt=True)
                statements.append(self._cookie_statement(key, entry["value"], f"expires={expires}"))
        return "<script>\n" + "\n".join(statements) + "\n</script>"

    @staticmethod
    def _cookie_statement(key: str, value: str, lifetime: str) -> str:
        cookie = f"{key}={quote(value, safe='')}; {lifetime}; path=/; SameSite=Strict"
        return f"window.parent.document.cookie = {json.dumps(cookie)};"


class JsonFileStorage(KeyValueStorage):
    """
    Долговременное хранилище: один JSON-документ на клиента.

    Переживает перезагрузку страницы и перезапуск сервера.

    Args:
        directory: Каталог для файлов
        namespace: Идентификатор клиента (имя файла)
    """

    _SAFE_NAME = re.compile(r"[^A-Za-z0-9_-]")

    def __init__(self, directory: str, namespace: str, clock: Clock = time.time) -> None:
        super().__init__(clock)
        safe_name = self._SAFE_NAME.sub("_", namespace) or "default"
        self.path = Path(directory) / f"{safe_name}.json"
        self._lock = threading.Lock()

    def _read(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            if not self.path.exists():
                return {}
            try:
                data = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as e:
                logger.warning(f"[STORAGE] Failed to read {self.path}: {e}")
                return {}
            return data if isinstance(data, dict) else {}

    def _write(self, entries: Dict[str, Dict[str, Any]]) -> None:
        with self._lock:
            if not entries:
                self.path.unlink(missing_ok=True)
                return
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = self.path.with_suffix(".tmp")
            tmp_path.write_text(json.dumps(entries, ensure_ascii=False), encoding="utf-8")
            tmp_path.replace(self.path)

    @classmethod
    def purge_expired(cls, directory: str, clock: Clock = time.time) -> int:
        """
        Удалить просроченные записи из всех JSON-файлов каталога.

        Файл без живых записей удаляется целиком.

        Returns:
            Количество удалённых файлов
        """
        root = Path(directory)
        if not root.is_dir():
            return 0

        now = clock()
        removed = 0
        for path in root.glob("*.json"):
            storage = cls(directory, path.stem, clock=clock)
            entries = storage._read()
            alive = {
                key: entry
                for key, entry in entries.items()
                if isinstance(entry, dict) and (entry.get("expires_at") is None or entry["expires_at"] > now)
            }
            if alive == entries:
                continue
            storage._write(alive)
            if not alive:
                removed += 1
        if removed:
            logger.info(f"[STORAGE] Removed {removed} expired files from {directory}")
        return removed


class TokenStore:
    """
    Access и refresh токены поверх произвольного KeyValueStorage.

    Access token живёт ``access_max_age`` секунд, refresh token дольше
    (по умолчанию 7 дней).
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        access_max_age: int = 3600,
        refresh_max_age: int = 604800,
    ) -> None:
        self.storage = storage
        self.access_max_age = access_max_age
        self.refresh_max_age = refresh_max_age

    @property
    def access_token(self) -> Optional[str]:
        return self.storage.get(STORAGE_ACCESS_TOKEN_KEY)

    @property
    def refresh_token(self) -> Optional[str]:
        return self.storage.get(STORAGE_REFRESH_TOKEN_KEY)

    def set_access_token(self, token: str) -> None:
        self.storage.set(STORAGE_ACCESS_TOKEN_KEY, token, max_age=self.access_max_age)
        logger.debug(f"[STORAGE] Access token saved, length: {len(token)}")

    def set_refresh_token(self, token: str) -> None:
        self.storage.set(STORAGE_REFRESH_TOKEN_KEY, token, max_age=self.refresh_max_age)
        logger.debug(f"[STORAGE] Refresh token saved, length: {len(token)}")

    def clear(self) -> None:
        self.storage.remove(STORAGE_ACCESS_TOKEN_KEY)
        self.storage.remove(STORAGE_REFRESH_TOKEN_KEY)
        logger.info("[STORAGE] Tokens removed")
