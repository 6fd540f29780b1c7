"""
Схемы валидации форм (логин, регистрация по шагам, восстановление пароля)
"""

import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, Optional, Type, TypeVar

from pydantic import (
    AliasGenerator,
    BaseModel,
    ConfigDict,
    ValidationInfo,
    field_validator,
)
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from auth_portal.constants import (
    CODE_LENGTH,
    MAX_EMAIL_LENGTH,
    MAX_ID_NUMBER_LENGTH,
    MAX_NAME_LENGTH,
    MAX_PASSWORD_LENGTH,
    MIN_ID_NUMBER_LENGTH,
    MIN_NAME_LENGTH,
    MIN_PASSWORD_LENGTH,
    MIN_REGISTRATION_AGE,
    PASSWORD_SPECIAL_CHARACTERS,
)
from auth_portal.core.exceptions import ValidationError

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
ID_NUMBER_PATTERN = re.compile(r"^[0-9A-Za-z-]+$")
NAME_PATTERN = re.compile(r"^[a-zA-ZáéíóúÁÉÍÓÚñÑ\s]+$")
PHONE_PATTERN = re.compile(r"^[+]?[0-9]{10,15}$")
CODE_PATTERN = re.compile(rf"^[0-9]{{{CODE_LENGTH}}}$")
SPECIAL_PATTERN = re.compile(f"[{re.escape(PASSWORD_SPECIAL_CHARACTERS)}]")

ModelT = TypeVar("ModelT", bound=BaseModel)


# ==================== Правила ====================

def calculate_age(born: date, today: date) -> int:
    """Полных лет на дату ``today`` (разница годов минус ещё не наступивший день рождения)"""
    age = today.year - born.year
    if (today.month, today.day) < (born.month, born.day):
        age -= 1
    return age


def check_email(value: str) -> str:
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Please enter a valid email address.")
    if len(value) > MAX_EMAIL_LENGTH:
        raise ValueError(f"Email must not exceed {MAX_EMAIL_LENGTH} characters.")
    return value


def check_password_strength(value: str) -> str:
    """
    Валидация надёжности пароля.

    Требования:
    - От MIN_PASSWORD_LENGTH до MAX_PASSWORD_LENGTH символов
    - Минимум одна заглавная и одна строчная буква
    - Минимум одна цифра
    - Минимум один спецсимвол из PASSWORD_SPECIAL_CHARACTERS
    """
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if len(value) > MAX_PASSWORD_LENGTH:
        raise ValueError(f"Password must not exceed {MAX_PASSWORD_LENGTH} characters.")
    if not re.search(r"[A-Z]", value):
        raise ValueError("Password must contain at least one uppercase letter.")
    if not re.search(r"[a-z]", value):
        raise ValueError("Password must contain at least one lowercase letter.")
    if not re.search(r"[0-9]", value):
        raise ValueError("Password must contain at least one number.")
    if not SPECIAL_PATTERN.search(value):
        raise ValueError(
            f"Password must contain at least one special character ({PASSWORD_SPECIAL_CHARACTERS})."
        )
    return value


def check_person_name(value: str, label: str) -> str:
    if len(value) < MIN_NAME_LENGTH:
        raise ValueError(f"{label} must be at least {MIN_NAME_LENGTH} characters.")
    if len(value) > MAX_NAME_LENGTH:
        raise ValueError(f"{label} must not exceed {MAX_NAME_LENGTH} characters.")
    if not NAME_PATTERN.match(value):
        raise ValueError(f"{label} must contain only letters and spaces.")
    return value


def check_code(value: str) -> str:
    if not CODE_PATTERN.match(value):
        raise ValueError(f"Code must be exactly {CODE_LENGTH} digits.")
    return value


def check_phone_number(value: Optional[str]) -> str:
    if not value:
        return ""
    if not PHONE_PATTERN.match(value):
        raise ValueError("Phone number must be 10-15 digits, optionally starting with +.")
    return value


def _matches(value: str, info: ValidationInfo, other: str, message: str) -> str:
    # Сравниваем только если поле-оригинал само прошло валидацию
    if other in info.data and value != info.data[other]:
        raise ValueError(message)
    return value


class FormModel(BaseModel):
    """Базовая модель формы: snake_case в Python, camelCase в JSON для бэкенда"""

    model_config = ConfigDict(
        alias_generator=AliasGenerator(serialization_alias=to_camel),
        extra="ignore",
        validate_default=True,
    )


# ==================== Регистрация ====================

class PersonalInfoStep(FormModel):
    """Шаг 1: ID, имя, фамилия, дата рождения (необязательна)"""

    id_number: str = ""
    name: str = ""
    last_name: str = ""
    date_of_birth: Optional[date] = None

    @field_validator("id_number")
    @classmethod
    def validate_id_number(cls, v: str) -> str:
        if len(v) < MIN_ID_NUMBER_LENGTH:
            raise ValueError(f"ID number must be at least {MIN_ID_NUMBER_LENGTH} characters.")
        if len(v) > MAX_ID_NUMBER_LENGTH:
            raise ValueError(f"ID number must not exceed {MAX_ID_NUMBER_LENGTH} characters.")
        if not ID_NUMBER_PATTERN.match(v):
            raise ValueError("ID number must contain only letters, numbers, and hyphens.")
        return v

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return check_person_name(v, "Name")

    @field_validator("last_name")
    @classmethod
    def validate_last_name(cls, v: str) -> str:
        return check_person_name(v, "Last name")

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def coerce_date_of_birth(cls, v: Any) -> Any:
        if v in ("", None):
            return None
        if isinstance(v, datetime):
            return v.date()
        if isinstance(v, str) and "T" in v:
            return v.split("T", 1)[0]
        return v

    @field_validator("date_of_birth")
    @classmethod
    def validate_date_of_birth(cls, v: Optional[date], info: ValidationInfo) -> Optional[date]:
        """
        Дата рождения строго в прошлом и возраст не меньше минимального.

        ``today`` и ``min_age`` берутся из контекста валидации.
        """
        if v is None:
            return v
        context = info.context or {}
        today = context.get("today") or date.today()
        min_age = context.get("min_age", MIN_REGISTRATION_AGE)
        if v >= today:
            raise ValueError("Date of birth must be in the past.")
        if calculate_age(v, today) < min_age:
            raise ValueError(f"You must be at least {min_age} years old.")
        return v


class ContactStep(FormModel):
    """Шаг 2: email и телефон (необязателен)"""

    email: str = ""
    phone_number: Optional[str] = ""

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return check_email(v.strip())

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, v: Optional[str]) -> str:
        return check_phone_number(v)


class SecurityStep(FormModel):
    """Шаг 3: пароль, подтверждение, согласие с условиями"""

    password: str = ""
    confirm_password: str = ""
    terms_accepted: bool = False

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)

    @field_validator("confirm_password")
    @classmethod
    def validate_confirm_password(cls, v: str, info: ValidationInfo) -> str:
        return _matches(v, info, "password", "Passwords don't match")

    @field_validator("terms_accepted")
    @classmethod
    def validate_terms_accepted(cls, v: bool) -> bool:
        if v is not True:
            raise ValueError("You must accept the terms and conditions.")
        return v


class RegisterUserRequest(SecurityStep, ContactStep, PersonalInfoStep):
    """Итоговые данные регистрации (все три шага)"""

    def to_payload(self) -> Dict[str, Any]:
        """Тело POST /auth/register: camelCase, dateOfBirth как yyyy-MM-dd"""
        payload = self.model_dump(
            mode="json",
            by_alias=True,
            exclude={"confirm_password"},
            exclude_none=True,
        )
        if not payload.get("phoneNumber"):
            payload.pop("phoneNumber", None)
        return payload


# ==================== Прочие формы ====================

class LoginForm(FormModel):
    """Форма входа"""

    email: str = ""
    password: str = ""

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return check_email(v.strip())

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Password is required.")
        return v


class EmailForm(FormModel):
    """Один email: забыли пароль, повторная отправка кода, разблокировка"""

    email: str = ""

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return check_email(v.strip())


class CodeForm(FormModel):
    """Шестизначный код из письма"""

    code: str = ""

    @field_validator("code")
    @classmethod
    def validate_code(cls, v: str) -> str:
        return check_code(v.strip())


class ResetPasswordForm(FormModel):
    """Сброс пароля по коду"""

    reset_code: str = ""
    password: str = ""
    confirm_password: str = ""

    @field_validator("reset_code")
    @classmethod
    def validate_reset_code(cls, v: str) -> str:
        return check_code(v.strip())

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        return check_password_strength(v)

    @field_validator("confirm_password")
    @classmethod
    def validate_confirm_password(cls, v: str, info: ValidationInfo) -> str:
        return _matches(v, info, "password", "Passwords don't match")


class ChangePasswordForm(FormModel):
    """Смена пароля авторизованным пользователем"""

    current_password: str = ""
    new_password: str = ""
    confirm_password: str = ""

    @field_validator("current_password")
    @classmethod
    def validate_current_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Current password is required.")
        return v

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        return check_password_strength(v)

    @field_validator("confirm_password")
    @classmethod
    def validate_confirm_password(cls, v: str, info: ValidationInfo) -> str:
        return _matches(v, info, "new_password", "Passwords don't match")


class EmailChangeForm(FormModel):
    """Запрос на смену email"""

    new_email: str = ""
    new_email_confirmation: str = ""
    current_password: str = ""

    @field_validator("new_email")
    @classmethod
    def validate_new_email(cls, v: str) -> str:
        return check_email(v.strip())

    @field_validator("new_email_confirmation")
    @classmethod
    def validate_new_email_confirmation(cls, v: str, info: ValidationInfo) -> str:
        return _matches(v.strip(), info, "new_email", "Emails don't match")

    @field_validator("current_password")
    @classmethod
    def validate_current_password(cls, v: str) -> str:
        if not v:
            raise ValueError("Current password is required.")
        return v


class UpdateProfileForm(FormModel):
    """Обновление профиля: передаются только заполненные поля"""

    name: Optional[str] = None
    last_name: Optional[str] = None
    phone_number: Optional[str] = None

    @field_validator("name", "last_name", mode="before")
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        return v or None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> Optional[str]:
        return check_person_name(v, "Name") if v is not None else v

    @field_validator("last_name")
    @classmethod
    def validate_last_name(cls, v: Optional[str]) -> Optional[str]:
        return check_person_name(v, "Last name") if v is not None else v

    @field_validator("phone_number")
    @classmethod
    def validate_phone_number(cls, v: Optional[str]) -> Optional[str]:
        return check_phone_number(v) or None

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ==================== Хелперы ====================

def _error_message(error: Dict[str, Any]) -> str:
    if error.get("type") == "value_error" and "error" in error.get("ctx", {}):
        return str(error["ctx"]["error"])
    return str(error.get("msg", "Invalid value"))


def _context(today: Optional[date], min_age: int) -> Dict[str, Any]:
    return {"today": today or date.today(), "min_age": min_age}


def collect_field_errors(
    model: Type[BaseModel],
    data: Dict[str, Any],
    fields: Optional[Iterable[str]] = None,
    today: Optional[date] = None,
    min_age: int = MIN_REGISTRATION_AGE,
) -> Dict[str, str]:
    """
    Прогнать данные через схему и собрать сообщения по полям.

    Args:
        model: Класс схемы
        data: Значения полей
        fields: Учитывать только эти поля (None - все)
        today: "Сегодня" для проверки даты рождения
        min_age: Минимальный возраст

    Returns:
        ``{field: message}``, пустой словарь если всё ок
    """
    try:
        model.model_validate(data, context=_context(today, min_age))
    except PydanticValidationError as e:
        allowed = set(fields) if fields is not None else None
        errors: Dict[str, str] = {}
        for error in e.errors():
            field = str(error["loc"][0]) if error["loc"] else "__all__"
            if allowed is not None and field not in allowed:
                continue
            errors.setdefault(field, _error_message(error))
        return errors
    return {}


def validate_form(
    model: Type[ModelT],
    data: Dict[str, Any],
    today: Optional[date] = None,
    min_age: int = MIN_REGISTRATION_AGE,
) -> ModelT:
    """
    Провалидировать форму целиком.

    Raises:
        ValidationError: С ``field_errors`` по каждому невалидному полю
    """
    try:
        return model.model_validate(data, context=_context(today, min_age))
    except PydanticValidationError as e:
        errors: Dict[str, str] = {}
        for error in e.errors():
            field = str(error["loc"][0]) if error["loc"] else "__all__"
            errors.setdefault(field, _error_message(error))
        raise ValidationError(errors) from e
