"""
Тесты контроллера регистрации

Проверяем:
1. Навигацию по шагам без потери данных
2. Восстановление черновика после перезагрузки (пароли не сохраняются)
3. Маршрутизацию ошибок сервера на шаг с проблемным полем
4. Успешную регистрацию: очистка черновика и отложенный редирект
5. Игнорирование повреждённого хранилища
6. Срок жизни черновика и постоянный идентификатор клиента
"""

import json
from datetime import date

import pytest

from auth_portal.constants import (
    QUERY_CLIENT_ID,
    STEP_CONTACT,
    STEP_PERSONAL_INFO,
    STEP_SECURITY,
    STORAGE_REGISTER_DATA_KEY,
    STORAGE_REGISTER_STEP_KEY,
    TASK_REDIRECT,
)
from auth_portal.core.exceptions import NetworkError, error_from_response
from auth_portal.core.registration import FormStatus, RegistrationController, RegistrationDraft, resolve_client_id
from auth_portal.core.storage import JsonFileStorage, MemoryStorage

TODAY = date(2026, 10, 19)


class FakeRegisterClient:
    """Подменяет APIClient.register"""

    def __init__(self, error=None, response=None):
        self.error = error
        self.response = response if response is not None else {"message": "User registered successfully"}
        self.payloads = []

    def register(self, payload):
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error
        return self.response


# ==================== Fixtures ====================

@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def client():
    return FakeRegisterClient()


@pytest.fixture
def redirects():
    return []


@pytest.fixture
def make_controller(storage, client, scheduler, redirects):
    def factory(api_client=None):
        return RegistrationController(
            storage=storage,
            api_client=api_client or client,
            scheduler=scheduler,
            on_success=lambda: redirects.append("login"),
            today=lambda: TODAY,
        )

    return factory


@pytest.fixture
def controller(make_controller):
    return make_controller()


def fill_personal_info(controller):
    controller.set_field("id_number", "123456789")
    controller.set_field("name", "John")
    controller.set_field("last_name", "Doe")


def fill_contact(controller):
    controller.set_field("email", "john.doe@test.com")


def fill_security(controller):
    controller.set_field("password", "Password1!")
    controller.set_field("confirm_password", "Password1!")
    controller.set_field("terms_accepted", True)


def go_to_final_step(controller):
    fill_personal_info(controller)
    assert controller.advance()
    fill_contact(controller)
    assert controller.advance()
    fill_security(controller)


# ==================== Навигация ====================

def test_starts_empty_on_first_step(controller):
    assert controller.current_step == STEP_PERSONAL_INFO
    assert controller.draft == RegistrationDraft()
    assert controller.status is FormStatus.EDITING


def test_advance_blocked_by_invalid_step(controller):
    assert not controller.advance()

    assert controller.current_step == STEP_PERSONAL_INFO
    assert set(controller.errors) == {"id_number", "name", "last_name"}


def test_later_steps_not_validated_early(controller):
    fill_personal_info(controller)

    assert controller.validate_step(STEP_PERSONAL_INFO)
    assert controller.errors == {}


def test_values_survive_forward_and_back(controller):
    fill_personal_info(controller)
    controller.advance()
    fill_contact(controller)
    controller.advance()
    assert controller.current_step == STEP_SECURITY

    controller.retreat()
    controller.retreat()

    assert controller.current_step == STEP_PERSONAL_INFO
    assert controller.draft.id_number == "123456789"
    assert controller.draft.name == "John"
    assert controller.draft.last_name == "Doe"
    assert controller.draft.email == "john.doe@test.com"


def test_retreat_floors_at_first_step(controller):
    controller.retreat()

    assert controller.current_step == STEP_PERSONAL_INFO


def test_unknown_field_rejected(controller):
    with pytest.raises(ValueError):
        controller.set_field("nickname", "johnny")


# ==================== Хранилище ====================

def test_reload_restores_step_and_fields(controller, make_controller):
    go_to_final_step(controller)

    reloaded = make_controller()

    assert reloaded.current_step == STEP_SECURITY
    assert reloaded.draft.email == "john.doe@test.com"
    assert reloaded.draft.id_number == "123456789"
    assert reloaded.draft.terms_accepted is True
    assert reloaded.draft.password == ""
    assert reloaded.draft.confirm_password == ""


def test_passwords_never_stored(controller, storage):
    go_to_final_step(controller)

    stored = storage.get(STORAGE_REGISTER_DATA_KEY)

    assert "Password1!" not in stored
    assert "password" not in json.loads(stored)


def test_date_of_birth_restored(controller, make_controller):
    controller.set_field("date_of_birth", date(1990, 5, 17))

    assert make_controller().draft.date_of_birth == date(1990, 5, 17)


@pytest.mark.parametrize(
    "stored_data, stored_step",
    [
        ("{not json", "2"),
        (json.dumps(["a", "list"]), "abc"),
        (json.dumps({"idNumber": 12345}), "7"),
        (json.dumps({"dateOfBirth": "17/05/1990"}), "0"),
    ],
)
def test_malformed_storage_ignored(storage, make_controller, stored_data, stored_step):
    storage.set(STORAGE_REGISTER_DATA_KEY, stored_data)
    storage.set(STORAGE_REGISTER_STEP_KEY, stored_step)

    controller = make_controller()

    assert controller.draft == RegistrationDraft()
    assert controller.current_step == (STEP_CONTACT if stored_step == "2" else STEP_PERSONAL_INFO)


# ==================== Отправка ====================

def test_submit_only_from_final_step(controller, client):
    fill_personal_info(controller)

    assert not controller.submit()
    assert client.payloads == []


def test_successful_submit(controller, client, storage, scheduler, clock, redirects):
    go_to_final_step(controller)

    assert controller.submit()

    assert client.payloads[0]["idNumber"] == "123456789"
    assert client.payloads[0]["email"] == "john.doe@test.com"
    assert storage.get(STORAGE_REGISTER_DATA_KEY) is None
    assert storage.get(STORAGE_REGISTER_STEP_KEY) is None
    assert controller.draft == RegistrationDraft()
    assert controller.current_step == STEP_PERSONAL_INFO
    assert controller.status is FormStatus.SUCCESS
    assert controller.alerts.success is not None

    # Редирект только после задержки
    clock.advance(1.0)
    scheduler.run_pending()
    assert redirects == []
    clock.advance(0.5)
    scheduler.run_pending()
    assert redirects == ["login"]


def test_dispose_cancels_redirect(controller, scheduler, clock, redirects):
    go_to_final_step(controller)
    controller.submit()

    controller.dispose()
    clock.advance(10)
    scheduler.run_pending()

    assert redirects == []
    assert not scheduler.is_scheduled(TASK_REDIRECT)


def test_duplicate_email_routes_to_contact_step(make_controller):
    client = FakeRegisterClient(error=error_from_response(400, {"message": "Email already registered"}))
    controller = make_controller(client)
    go_to_final_step(controller)

    assert not controller.submit()

    assert controller.current_step == STEP_CONTACT
    assert controller.draft.email == "john.doe@test.com"
    assert controller.errors["email"] == "Email already registered"
    assert controller.status is FormStatus.ERROR
    assert controller.alerts.error.message == "Email already registered"


def test_duplicate_id_routes_to_personal_info_step(make_controller):
    client = FakeRegisterClient(error=error_from_response(400, {"message": "ID number already registered"}))
    controller = make_controller(client)
    go_to_final_step(controller)

    assert not controller.submit()

    assert controller.current_step == STEP_PERSONAL_INFO
    assert controller.draft.id_number == "123456789"
    assert controller.draft.password == "Password1!"


def test_server_error_stays_on_final_step(make_controller):
    client = FakeRegisterClient(error=error_from_response(500, {"message": "Internal server error"}))
    controller = make_controller(client)
    go_to_final_step(controller)

    assert not controller.submit()

    assert controller.current_step == STEP_SECURITY
    assert controller.alerts.error.message == "Internal server error"


def test_network_error_stays_on_final_step(make_controller):
    controller = make_controller(FakeRegisterClient(error=NetworkError("Network error")))
    go_to_final_step(controller)

    assert not controller.submit()

    assert controller.current_step == STEP_SECURITY


def test_server_field_errors_route_to_earliest_step(make_controller):
    error = error_from_response(
        400,
        {"message": "Validation failed", "errors": {"phoneNumber": "Invalid phone", "password": "Too weak"}},
    )
    controller = make_controller(FakeRegisterClient(error=error))
    go_to_final_step(controller)

    controller.submit()

    assert controller.current_step == STEP_CONTACT
    assert controller.errors["phone_number"] == "Invalid phone"
    assert controller.errors["password"] == "Too weak"


def test_server_error_cleared_by_edit(make_controller):
    client = FakeRegisterClient(error=error_from_response(400, {"message": "Email already registered"}))
    controller = make_controller(client)
    go_to_final_step(controller)
    controller.submit()

    controller.set_field("email", "john.new@test.com")

    assert "email" not in controller.errors
    assert controller.status is FormStatus.EDITING


def test_error_alert_auto_dismissed(make_controller, scheduler, clock):
    controller = make_controller(FakeRegisterClient(error=error_from_response(500, {})))
    go_to_final_step(controller)
    controller.submit()

    clock.advance(5)
    scheduler.run_pending()

    assert controller.alerts.error is None


def test_stale_age_sends_back_to_first_step(make_controller):
    controller = make_controller()
    controller.set_field("date_of_birth", date(2013, 10, 19))
    go_to_final_step(controller)
    # Дата рождения изменена уже после прохождения шага 1
    controller.set_field("date_of_birth", TODAY)

    assert not controller.submit()

    assert controller.current_step == STEP_PERSONAL_INFO
    assert controller.errors["date_of_birth"] == "Date of birth must be in the past."


# ==================== Срок жизни черновика ====================

def test_draft_expires_after_max_age(client, scheduler, clock):
    storage = MemoryStorage(clock=clock)
    controller = RegistrationController(storage, client, scheduler, today=lambda: TODAY, draft_max_age=3600)
    fill_personal_info(controller)
    assert controller.advance()

    clock.advance(3599)
    assert RegistrationController(storage, client, scheduler, today=lambda: TODAY).draft.name == "John"

    clock.advance(1)
    expired = RegistrationController(storage, client, scheduler, today=lambda: TODAY)
    assert expired.draft == RegistrationDraft()
    assert expired.current_step == STEP_PERSONAL_INFO
    assert storage.get(STORAGE_REGISTER_DATA_KEY) is None


def test_edit_extends_draft_lifetime(client, scheduler, clock):
    storage = MemoryStorage(clock=clock)
    controller = RegistrationController(storage, client, scheduler, today=lambda: TODAY, draft_max_age=3600)
    controller.set_field("name", "John")

    clock.advance(3000)
    controller.set_field("last_name", "Doe")
    clock.advance(3000)

    restored = RegistrationController(storage, client, scheduler, today=lambda: TODAY)
    assert restored.draft.name == "John"
    assert restored.draft.last_name == "Doe"


# ==================== Идентификатор клиента ====================

def test_draft_survives_leaving_the_page(tmp_path, client, scheduler):
    """Уход на другую страницу сбрасывает query string, но не черновик"""
    session_state = {}
    client_id = resolve_client_id(session_state, {})
    controller = RegistrationController(JsonFileStorage(str(tmp_path), client_id), client, scheduler, today=lambda: TODAY)
    fill_personal_info(controller)
    assert controller.advance()
    fill_contact(controller)

    # Возврат на регистрацию со страницы входа, query string пуст
    returned_query = {}
    same_id = resolve_client_id(session_state, returned_query)
    rebuilt = RegistrationController(JsonFileStorage(str(tmp_path), same_id), client, scheduler, today=lambda: TODAY)

    assert same_id == client_id
    assert returned_query == {QUERY_CLIENT_ID: client_id}
    assert rebuilt.current_step == STEP_CONTACT
    assert rebuilt.draft.email == "john.doe@test.com"
    assert rebuilt.draft.id_number == "123456789"


def test_client_id_restored_from_query_after_reload():
    """Перезагрузка сбрасывает session state, id берётся из query string"""
    fresh_state = {}

    client_id = resolve_client_id(fresh_state, {QUERY_CLIENT_ID: "abc123"}, new_id=lambda: "unused")

    assert client_id == "abc123"
    assert list(fresh_state.values()) == ["abc123"]


def test_client_id_issued_once():
    issued = iter(["first", "second"])
    state = {}
    query = {}

    assert resolve_client_id(state, query, new_id=lambda: next(issued)) == "first"
    assert resolve_client_id(state, {}, new_id=lambda: next(issued)) == "first"
    assert query == {QUERY_CLIENT_ID: "first"}
