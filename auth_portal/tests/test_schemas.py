"""
Тесты схем форм: граничные значения пароля и возраста, шаги регистрации
"""

from datetime import date

import pytest

from auth_portal.core.exceptions import ValidationError
from auth_portal.schemas import (
    ChangePasswordForm,
    CodeForm,
    ContactStep,
    EmailChangeForm,
    LoginForm,
    PersonalInfoStep,
    RegisterUserRequest,
    ResetPasswordForm,
    SecurityStep,
    UpdateProfileForm,
    calculate_age,
    collect_field_errors,
    validate_form,
)

TODAY = date(2026, 10, 19)

VALID_REGISTRATION = {
    "id_number": "123456789",
    "name": "John",
    "last_name": "Doe",
    "date_of_birth": date(1990, 5, 17),
    "email": "john.doe@test.com",
    "phone_number": "+1234567890",
    "password": "Password1!",
    "confirm_password": "Password1!",
    "terms_accepted": True,
}


# ==================== Пароль ====================

def test_password_of_seven_characters_fails():
    errors = collect_field_errors(SecurityStep, {"password": "Abcde1!"}, fields=["password"])

    assert errors == {"password": "Password must be at least 8 characters."}


def test_password_of_eight_characters_passes():
    errors = collect_field_errors(SecurityStep, {"password": "Abcdef1!"}, fields=["password"])

    assert errors == {}


@pytest.mark.parametrize(
    "password, message",
    [
        ("abcdefg1!", "Password must contain at least one uppercase letter."),
        ("ABCDEFG1!", "Password must contain at least one lowercase letter."),
        ("Abcdefgh!", "Password must contain at least one number."),
        ("Abcdefgh1", "Password must contain at least one special character (@#$%^&+=!)."),
        ("A1!" + "a" * 98, "Password must not exceed 100 characters."),
    ],
)
def test_password_complexity(password, message):
    errors = collect_field_errors(SecurityStep, {"password": password}, fields=["password"])

    assert errors["password"] == message


def test_confirm_password_mismatch():
    data = {"password": "Password1!", "confirm_password": "Password2!", "terms_accepted": True}

    errors = collect_field_errors(SecurityStep, data)

    assert errors == {"confirm_password": "Passwords don't match"}


def test_terms_must_be_accepted():
    data = {"password": "Password1!", "confirm_password": "Password1!", "terms_accepted": False}

    errors = collect_field_errors(SecurityStep, data)

    assert errors == {"terms_accepted": "You must accept the terms and conditions."}


# ==================== Дата рождения ====================

def test_exactly_thirteen_years_passes():
    data = {"date_of_birth": date(2013, 10, 19)}

    errors = collect_field_errors(PersonalInfoStep, data, fields=["date_of_birth"], today=TODAY)

    assert errors == {}


def test_one_day_short_of_thirteen_fails():
    data = {"date_of_birth": date(2013, 10, 20)}

    errors = collect_field_errors(PersonalInfoStep, data, fields=["date_of_birth"], today=TODAY)

    assert errors == {"date_of_birth": "You must be at least 13 years old."}


def test_date_of_birth_must_be_in_the_past():
    errors = collect_field_errors(PersonalInfoStep, {"date_of_birth": TODAY}, fields=["date_of_birth"], today=TODAY)

    assert errors == {"date_of_birth": "Date of birth must be in the past."}


def test_date_of_birth_is_optional():
    errors = collect_field_errors(PersonalInfoStep, {"date_of_birth": ""}, fields=["date_of_birth"], today=TODAY)

    assert errors == {}


def test_calculate_age_before_birthday():
    assert calculate_age(date(2000, 12, 31), date(2026, 12, 30)) == 25
    assert calculate_age(date(2000, 12, 31), date(2026, 12, 31)) == 26


# ==================== Шаги регистрации ====================

def test_personal_info_messages():
    data = {"id_number": "1", "name": "J", "last_name": "Doe3"}

    errors = collect_field_errors(PersonalInfoStep, data, today=TODAY)

    assert errors == {
        "id_number": "ID number must be at least 2 characters.",
        "name": "Name must be at least 2 characters.",
        "last_name": "Last name must contain only letters and spaces.",
    }


def test_accented_names_allowed():
    data = {"id_number": "AB-123", "name": "José", "last_name": "Muñoz Díaz"}

    assert collect_field_errors(PersonalInfoStep, data, today=TODAY) == {}


def test_contact_phone_optional_but_checked():
    assert collect_field_errors(ContactStep, {"email": "john.doe@test.com", "phone_number": ""}) == {}

    errors = collect_field_errors(ContactStep, {"email": "john.doe@test.com", "phone_number": "12-34"})
    assert list(errors) == ["phone_number"]


def test_invalid_email():
    errors = collect_field_errors(ContactStep, {"email": "john.doe@"})

    assert errors == {"email": "Please enter a valid email address."}


def test_fields_filter_limits_errors():
    errors = collect_field_errors(PersonalInfoStep, {}, fields=["name"], today=TODAY)

    assert list(errors) == ["name"]


def test_register_payload_is_camel_case():
    request = validate_form(RegisterUserRequest, VALID_REGISTRATION, today=TODAY)

    assert request.to_payload() == {
        "idNumber": "123456789",
        "name": "John",
        "lastName": "Doe",
        "dateOfBirth": "1990-05-17",
        "email": "john.doe@test.com",
        "phoneNumber": "+1234567890",
        "password": "Password1!",
        "termsAccepted": True,
    }


def test_register_payload_omits_empty_optionals():
    data = dict(VALID_REGISTRATION, date_of_birth=None, phone_number="")

    payload = validate_form(RegisterUserRequest, data, today=TODAY).to_payload()

    assert "dateOfBirth" not in payload
    assert "phoneNumber" not in payload
    assert "confirmPassword" not in payload


def test_validate_form_raises_with_field_errors():
    data = dict(VALID_REGISTRATION, email="bad", confirm_password="Other1!x")

    with pytest.raises(ValidationError) as exc_info:
        validate_form(RegisterUserRequest, data, today=TODAY)

    assert set(exc_info.value.field_errors) == {"email", "confirm_password"}


# ==================== Прочие формы ====================

def test_login_requires_password():
    errors = collect_field_errors(LoginForm, {"email": "john.doe@test.com", "password": ""})

    assert errors == {"password": "Password is required."}


def test_code_must_have_six_digits():
    assert collect_field_errors(CodeForm, {"code": "123456"}) == {}
    assert collect_field_errors(CodeForm, {"code": "12345a"}) == {"code": "Code must be exactly 6 digits."}


def test_reset_password_form():
    data = {"reset_code": "654321", "password": "Password1!", "confirm_password": "Password1?"}

    errors = collect_field_errors(ResetPasswordForm, data)

    assert errors == {"confirm_password": "Passwords don't match"}


def test_change_password_form():
    data = {"current_password": "", "new_password": "Password1!", "confirm_password": "Password1!"}

    errors = collect_field_errors(ChangePasswordForm, data)

    assert errors == {"current_password": "Current password is required."}


def test_email_change_confirmation():
    data = {
        "new_email": "new@test.com",
        "new_email_confirmation": "other@test.com",
        "current_password": "Password1!",
    }

    errors = collect_field_errors(EmailChangeForm, data)

    assert errors == {"new_email_confirmation": "Emails don't match"}


def test_update_profile_sends_only_filled_fields():
    form = validate_form(UpdateProfileForm, {"name": "Jane", "last_name": "", "phone_number": ""})

    assert form.to_payload() == {"name": "Jane"}
