"""
Контроллер многошаговой формы регистрации.

Шаги::

    1 PersonalInfo -> 2 Contact -> 3 Security -> Submitting -> Success | Error

Черновик сохраняется в долговременное хранилище при каждом изменении
(без паролей) и восстанавливается при создании контроллера. Ошибка
регистрации возвращает форму на шаг, которому принадлежит проблемное поле.
"""

import json
import logging
import uuid
from dataclasses import asdict, dataclass
from datetime import date
from enum import Enum
from typing import Any, Callable, Dict, Iterable, MutableMapping, Optional

from auth_portal.constants import (
    DRAFT_MAX_AGE_SECONDS,
    FINAL_STEP,
    FIRST_STEP,
    MIN_REGISTRATION_AGE,
    MSG_REGISTER_SUCCESS,
    QUERY_CLIENT_ID,
    SESSION_CLIENT_ID,
    STEP_CONTACT,
    STEP_FIELDS,
    STEP_PERSONAL_INFO,
    STEP_SECURITY,
    STORAGE_REGISTER_DATA_KEY,
    STORAGE_REGISTER_STEP_KEY,
    TASK_REDIRECT,
)
from auth_portal.core.alerts import AlertController
from auth_portal.core.error_handlers import field_errors_from, get_error_message
from auth_portal.core.exceptions import AuthError, ValidationError
from auth_portal.core.storage import KeyValueStorage
from auth_portal.core.timers import TaskScheduler
from auth_portal.schemas import (
    ContactStep,
    PersonalInfoStep,
    RegisterUserRequest,
    SecurityStep,
    collect_field_errors,
    validate_form,
)

logger = logging.getLogger(__name__)

STEP_MODELS = {
    STEP_PERSONAL_INFO: PersonalInfoStep,
    STEP_CONTACT: ContactStep,
    STEP_SECURITY: SecurityStep,
}

FIELD_STEPS: Dict[str, int] = {
    field_name: step for step, names in STEP_FIELDS.items() for field_name in names
}


class FormStatus(str, Enum):
    """Статус формы регистрации"""

    EDITING = "editing"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    ERROR = "error"


@dataclass
class RegistrationDraft:
    """Незавершённые данные регистрации"""

    id_number: str = ""
    name: str = ""
    last_name: str = ""
    date_of_birth: Optional[date] = None
    email: str = ""
    phone_number: str = ""
    password: str = ""
    confirm_password: str = ""
    terms_accepted: bool = False

    def as_form_data(self) -> Dict[str, Any]:
        return asdict(self)

    def to_storage(self) -> Dict[str, Any]:
        """camelCase документ для хранилища, пароли исключены"""
        return {
            "idNumber": self.id_number,
            "name": self.name,
            "lastName": self.last_name,
            "dateOfBirth": self.date_of_birth.isoformat() if self.date_of_birth else None,
            "email": self.email,
            "phoneNumber": self.phone_number,
            "termsAccepted": self.terms_accepted,
        }

    @classmethod
    def from_storage(cls, data: Any) -> "RegistrationDraft":
        """
        Восстановить черновик из хранилища.

        Raises:
            TypeError: Документ не словарь или поле неверного типа
            ValueError: Некорректная дата рождения
        """
        if not isinstance(data, dict):
            raise TypeError(f"Stored draft must be an object, got {type(data).__name__}")

        def text(key: str) -> str:
            value = data.get(key) or ""
            if not isinstance(value, str):
                raise TypeError(f"Stored field '{key}' must be a string")
            return value

        raw_date = text("dateOfBirth")
        terms_accepted = data.get("termsAccepted", False)
        if not isinstance(terms_accepted, bool):
            raise TypeError("Stored field 'termsAccepted' must be a boolean")

        return cls(
            id_number=text("idNumber"),
            name=text("name"),
            last_name=text("lastName"),
            date_of_birth=date.fromisoformat(raw_date[:10]) if raw_date else None,
            email=text("email"),
            phone_number=text("phoneNumber"),
            terms_accepted=terms_accepted,
        )


class RegistrationController:
    """
    Состояние формы регистрации: текущий шаг, черновик, ошибки полей.

    Не зависит от Streamlit: страница только читает состояние и вызывает
    ``set_field`` / ``advance`` / ``retreat`` / ``submit``.

    Args:
        storage: Долговременное хранилище черновика
        api_client: Клиент с методом ``register(payload)``
        scheduler: Планировщик для скрытия алерта и редиректа
        on_success: Переход на страницу входа после успешной регистрации
        today: Источник "сегодня" для проверки возраста
        min_age: Минимальный возраст
        redirect_delay: Задержка перед редиректом, секунды
        error_alert_seconds: Время показа ошибки, секунды
        draft_max_age: Срок хранения черновика с последнего изменения, секунды
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        api_client: Any,
        scheduler: TaskScheduler,
        on_success: Optional[Callable[[], None]] = None,
        today: Callable[[], date] = date.today,
        min_age: int = MIN_REGISTRATION_AGE,
        redirect_delay: float = 1.5,
        error_alert_seconds: float = 5.0,
        draft_max_age: float = DRAFT_MAX_AGE_SECONDS,
    ) -> None:
        self.storage = storage
        self.api_client = api_client
        self.scheduler = scheduler
        self.alerts = AlertController(scheduler)
        self.on_success = on_success
        self.today = today
        self.min_age = min_age
        self.redirect_delay = redirect_delay
        self.error_alert_seconds = error_alert_seconds
        self.draft_max_age = draft_max_age

        self.draft = RegistrationDraft()
        self.current_step = FIRST_STEP
        self.errors: Dict[str, str] = {}
        self.status = FormStatus.EDITING

        self._restore()

    # ------------------------------------------------------------------
    # Поля и шаги
    # ------------------------------------------------------------------

    @property
    def is_final_step(self) -> bool:
        return self.current_step == FINAL_STEP

    def get_field(self, name: str) -> Any:
        return getattr(self.draft, name)

    def set_field(self, name: str, value: Any) -> None:
        """
        Изменить поле черновика и сохранить его.

        Поле, у которого уже показана ошибка (локальная или серверная),
        валидируется заново, чтобы ошибка исчезла после исправления.
        """
        if name not in FIELD_STEPS:
            raise ValueError(f"Unknown registration field: {name}")
        if getattr(self.draft, name) == value:
            return

        setattr(self.draft, name, value)
        if self.status is FormStatus.ERROR:
            self.status = FormStatus.EDITING

        stale = [name] if name in self.errors else []
        if name == "password" and "confirm_password" in self.errors:
            stale.append("confirm_password")
        if stale:
            self._revalidate(stale)

        self._persist()

    def _revalidate(self, names: Iterable[str]) -> None:
        for name in names:
            step = FIELD_STEPS[name]
            errors = collect_field_errors(
                STEP_MODELS[step],
                self.draft.as_form_data(),
                fields=[name],
                today=self.today(),
                min_age=self.min_age,
            )
            if name in errors:
                self.errors[name] = errors[name]
            else:
                self.errors.pop(name, None)

    def validate_step(self, step: int) -> bool:
        """
        Проверить только поля шага ``step``.

        Returns:
            True если шаг валиден. Иначе ошибки полей записаны в ``errors``,
            текущий шаг не меняется.
        """
        if step not in STEP_MODELS:
            raise ValueError(f"Unknown registration step: {step}")

        step_fields = STEP_FIELDS[step]
        errors = collect_field_errors(
            STEP_MODELS[step],
            self.draft.as_form_data(),
            fields=step_fields,
            today=self.today(),
            min_age=self.min_age,
        )
        for name in step_fields:
            self.errors.pop(name, None)
        self.errors.update(errors)

        if errors:
            logger.debug(f"[REGISTER] Step {step} invalid: {sorted(errors)}")
        return not errors

    def advance(self) -> bool:
        if not self.validate_step(self.current_step):
            return False
        self.current_step = min(self.current_step + 1, FINAL_STEP)
        self._persist()
        return True

    def retreat(self) -> None:
        self.current_step = max(self.current_step - 1, FIRST_STEP)
        self._persist()

    def reset(self) -> None:
        """Пустая форма на первом шаге (хранилище не трогается)"""
        self.draft = RegistrationDraft()
        self.current_step = FIRST_STEP
        self.errors = {}
        self.status = FormStatus.EDITING

    # ------------------------------------------------------------------
    # Отправка
    # ------------------------------------------------------------------

    def submit(self) -> bool:
        """
        Отправить регистрацию (только с последнего шага).

        Returns:
            True если аккаунт создан
        """
        if not self.is_final_step:
            logger.warning(f"[REGISTER] Submit ignored on step {self.current_step}")
            return False
        if self.status is FormStatus.SUBMITTING:
            logger.warning("[REGISTER] Submit ignored, already submitting")
            return False
        if not self.validate_step(STEP_SECURITY):
            return False

        try:
            request = validate_form(
                RegisterUserRequest,
                self.draft.as_form_data(),
                today=self.today(),
                min_age=self.min_age,
            )
        except ValidationError as e:
            # Данные ранних шагов могли устареть (например, дата рождения)
            self.errors.update(e.field_errors)
            self._go_to_step(self._earliest_step(e.field_errors) or self.current_step)
            return False

        self.status = FormStatus.SUBMITTING
        logger.info("[REGISTER] Submitting registration")
        try:
            response = self.api_client.register(request.to_payload())
        except AuthError as e:
            self._handle_submit_error(e)
            return False

        self._complete(response or {})
        return True

    def _complete(self, response: Dict[str, Any]) -> None:
        self.storage.remove(STORAGE_REGISTER_DATA_KEY)
        self.storage.remove(STORAGE_REGISTER_STEP_KEY)
        self.reset()
        self.status = FormStatus.SUCCESS
        self.alerts.show_success("Registration successful!", MSG_REGISTER_SUCCESS)
        self.scheduler.schedule(TASK_REDIRECT, self.redirect_delay, self._redirect)
        logger.info(f"[REGISTER] Registration completed: {response.get('message', '')}")

    def _redirect(self) -> None:
        if self.on_success is not None:
            self.on_success()

    def _handle_submit_error(self, error: AuthError) -> None:
        message = get_error_message(error)
        server_errors = field_errors_from(error)

        candidates = []
        owning = self._earliest_step(server_errors)
        if owning is not None:
            candidates.append(owning)

        lowered = message.lower()
        if "email" in lowered:
            candidates.append(STEP_CONTACT)
            server_errors.setdefault("email", message)
        elif "id number" in lowered:
            candidates.append(STEP_PERSONAL_INFO)
            server_errors.setdefault("id_number", message)

        self.errors.update(server_errors)
        self.status = FormStatus.ERROR
        self._go_to_step(min(candidates) if candidates else self.current_step)
        self.alerts.show_error("Registration failed", message, seconds=self.error_alert_seconds)
        logger.warning(f"[REGISTER] Registration failed ({error.kind.value}): {message}")

    def _earliest_step(self, field_errors: Dict[str, str]) -> Optional[int]:
        steps = [FIELD_STEPS[name] for name in field_errors if name in FIELD_STEPS]
        return min(steps) if steps else None

    def _go_to_step(self, step: int) -> None:
        if step != self.current_step:
            logger.info(f"[REGISTER] Returning to step {step}")
        self.current_step = step
        self._persist()

    # ------------------------------------------------------------------
    # Хранилище
    # ------------------------------------------------------------------

    def _persist(self) -> None:
        try:
            self.storage.set(
                STORAGE_REGISTER_DATA_KEY,
                json.dumps(self.draft.to_storage()),
                max_age=self.draft_max_age,
            )
            self.storage.set(STORAGE_REGISTER_STEP_KEY, str(self.current_step), max_age=self.draft_max_age)
        except OSError as e:
            logger.error(f"[REGISTER] Failed to persist draft: {e}")

    def _restore(self) -> None:
        raw_draft = self.storage.get(STORAGE_REGISTER_DATA_KEY)
        if raw_draft:
            try:
                self.draft = RegistrationDraft.from_storage(json.loads(raw_draft))
            except (TypeError, ValueError) as e:
                logger.warning(f"[REGISTER] Ignoring malformed stored draft: {e}")

        raw_step = self.storage.get(STORAGE_REGISTER_STEP_KEY)
        if raw_step:
            try:
                step = int(raw_step)
            except (TypeError, ValueError):
                step = None
            if step in STEP_MODELS:
                self.current_step = step
            else:
                logger.warning(f"[REGISTER] Ignoring malformed stored step: {raw_step!r}")

    def dispose(self) -> None:
        """Отменить таймеры формы (уход со страницы)"""
        self.scheduler.cancel(TASK_REDIRECT)
        self.alerts.clear()


def resolve_client_id(
    state: MutableMapping[str, Any],
    query_params: MutableMapping[str, Any],
    new_id: Callable[[], str] = lambda: uuid.uuid4().hex,
) -> str:
    """
    Идентификатор, под которым хранится черновик регистрации.

    Берётся из session state (переходы между страницами сбрасывают query
    string), затем из query string (перезагрузка страницы сбрасывает
    session state). Новый выдаётся, только если его нет ни там, ни там.
    Результат записывается в оба места.
    """
    client_id = state.get(SESSION_CLIENT_ID) or query_params.get(QUERY_CLIENT_ID)
    if not client_id:
        client_id = new_id()
        logger.info(f"[REGISTER] New client id issued: {client_id}")
    state[SESSION_CLIENT_ID] = client_id
    if query_params.get(QUERY_CLIENT_ID) != client_id:
        query_params[QUERY_CLIENT_ID] = client_id
    return client_id
