"""
Тесты хранилищ: срок жизни записей, JSON файл, session state, токены
"""

import pytest

from auth_portal.constants import STORAGE_ACCESS_TOKEN_KEY, STORAGE_REFRESH_TOKEN_KEY
from auth_portal.core.storage import CookieStorage, JsonFileStorage, MemoryStorage, SessionStateStorage, TokenStore


def test_memory_storage_roundtrip():
    storage = MemoryStorage()

    storage.set("key", "value")
    assert storage.get("key") == "value"

    storage.remove("key")
    assert storage.get("key") is None


def test_value_expires_after_max_age(clock):
    storage = MemoryStorage(clock=clock)
    storage.set("key", "value", max_age=10)

    clock.advance(9)
    assert storage.get("key") == "value"

    clock.advance(1)
    assert storage.get("key") is None


def test_remove_missing_key_is_noop():
    MemoryStorage().remove("missing")


def test_json_file_storage_survives_new_instance(tmp_path):
    JsonFileStorage(str(tmp_path), "client-1").set("draft", '{"email": "john.doe@test.com"}')

    reopened = JsonFileStorage(str(tmp_path), "client-1")

    assert reopened.get("draft") == '{"email": "john.doe@test.com"}'


def test_json_file_storage_namespaces_are_isolated(tmp_path):
    JsonFileStorage(str(tmp_path), "client-1").set("draft", "one")

    assert JsonFileStorage(str(tmp_path), "client-2").get("draft") is None


def test_json_file_storage_sanitizes_namespace(tmp_path):
    storage = JsonFileStorage(str(tmp_path), "../../etc/passwd")

    assert storage.path.parent == tmp_path
    assert storage.path.name == "______etc_passwd.json"


def test_json_file_storage_corrupted_file(tmp_path):
    storage = JsonFileStorage(str(tmp_path), "client-1")
    storage.path.write_text("{broken", encoding="utf-8")

    assert storage.get("draft") is None

    storage.set("draft", "fresh")
    assert storage.get("draft") == "fresh"


def test_session_state_storage_uses_namespace():
    state = {}
    storage = SessionStateStorage(state, "tokens")

    storage.set("token", "abc")

    assert state["tokens"]["token"]["value"] == "abc"
    assert storage.get("token") == "abc"


@pytest.fixture
def memory(clock):
    return MemoryStorage(clock=clock)


def test_token_store_uses_fixed_keys(memory):
    store = TokenStore(memory)

    store.set_access_token("access")
    store.set_refresh_token("refresh")

    assert memory.get(STORAGE_ACCESS_TOKEN_KEY) == "access"
    assert memory.get(STORAGE_REFRESH_TOKEN_KEY) == "refresh"


def test_token_store_lifetimes(memory, clock):
    store = TokenStore(memory, access_max_age=3600, refresh_max_age=604800)
    store.set_access_token("access")
    store.set_refresh_token("refresh")

    clock.advance(3600)

    assert store.access_token is None
    assert store.refresh_token == "refresh"

    clock.advance(604800)
    assert store.refresh_token is None


def test_token_store_clear(memory):
    store = TokenStore(memory)
    store.set_access_token("access")
    store.set_refresh_token("refresh")

    store.clear()

    assert store.access_token is None
    assert store.refresh_token is None


# ==================== Cookies ====================

TOKEN_KEYS = (STORAGE_ACCESS_TOKEN_KEY, STORAGE_REFRESH_TOKEN_KEY)


def test_cookie_storage_seeded_from_request_cookies():
    """Перезагрузка: токены берутся из cookies нового запроса"""
    state = {}
    storage = CookieStorage(state, "tokens", cookies={"refreshToken": "refresh-1", "other": "x"}, keys=TOKEN_KEYS)

    store = TokenStore(storage)

    assert store.refresh_token == "refresh-1"
    assert store.access_token is None
    assert "other" not in state["tokens"]


def test_cookie_storage_not_reseeded_within_session():
    state = {}
    CookieStorage(state, "tokens", cookies={"token": "old"}, keys=TOKEN_KEYS).remove("token")

    again = CookieStorage(state, "tokens", cookies={"token": "old"}, keys=TOKEN_KEYS)

    assert again.get("token") is None


def test_cookie_script_sets_cookies_with_absolute_expiry(clock):
    storage = CookieStorage({}, "tokens", cookies={}, keys=TOKEN_KEYS, clock=clock)
    store = TokenStore(storage, access_max_age=3600, refresh_max_age=604800)

    store.set_access_token("header.payload.sig")
    script = storage.cookie_script()

    assert script.startswith("<script>")
    assert "token=header.payload.sig; expires=Thu, 01 Jan 1970 01:16:40 GMT; path=/" in script
    # refresh token не сохранён: cookie удаляется
    assert "refreshToken=; max-age=0" in script


def test_cookie_script_skips_seeded_values():
    """Срок жизни cookie из запроса неизвестен, её не перезаписываем"""
    storage = CookieStorage({}, "tokens", cookies={"refreshToken": "refresh-1"}, keys=TOKEN_KEYS)

    script = storage.cookie_script()

    assert "refreshToken" not in script
    assert "token=; max-age=0" in script


def test_cookie_script_escapes_values():
    storage = CookieStorage({}, "tokens", cookies={}, keys=TOKEN_KEYS)

    storage.set("token", '</script><script>alert(1)"', max_age=60)

    assert "</script><script>" not in storage.cookie_script()[len("<script>"):-len("</script>")]


def test_cleared_tokens_remove_cookies():
    storage = CookieStorage({}, "tokens", cookies={"token": "a", "refreshToken": "b"}, keys=TOKEN_KEYS)

    TokenStore(storage).clear()
    script = storage.cookie_script()

    assert "token=; max-age=0" in script
    assert "refreshToken=; max-age=0" in script


# ==================== Просроченные файлы ====================

def test_json_file_removed_when_empty(tmp_path):
    storage = JsonFileStorage(str(tmp_path), "client-1")
    storage.set("draft", "data")

    storage.remove("draft")

    assert not storage.path.exists()


def test_json_file_expired_entry_deletes_file(tmp_path, clock):
    storage = JsonFileStorage(str(tmp_path), "client-1", clock=clock)
    storage.set("draft", "data", max_age=60)

    clock.advance(60)

    assert storage.get("draft") is None
    assert not storage.path.exists()


def test_purge_expired_drafts(tmp_path, clock):
    abandoned = JsonFileStorage(str(tmp_path), "abandoned", clock=clock)
    abandoned.set("draft", "old", max_age=10)
    active = JsonFileStorage(str(tmp_path), "active", clock=clock)
    active.set("draft", "fresh", max_age=100)
    active.set("step", "2", max_age=10)

    clock.advance(50)
    removed = JsonFileStorage.purge_expired(str(tmp_path), clock=clock)

    assert removed == 1
    assert not abandoned.path.exists()
    assert active.get("draft") == "fresh"
    assert active.get("step") is None


def test_purge_expired_missing_directory(tmp_path):
    assert JsonFileStorage.purge_expired(str(tmp_path / "missing")) == 0
