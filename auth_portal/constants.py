"""Константы приложения."""

from typing import Final

# ===== HTTP STATUS CODES =====
HTTP_OK: Final[int] = 200
HTTP_CREATED: Final[int] = 201
HTTP_NO_CONTENT: Final[int] = 204
HTTP_BAD_REQUEST: Final[int] = 400
HTTP_UNAUTHORIZED: Final[int] = 401
HTTP_FORBIDDEN: Final[int] = 403
HTTP_NOT_FOUND: Final[int] = 404
HTTP_CONFLICT: Final[int] = 409
HTTP_LOCKED: Final[int] = 423
HTTP_INTERNAL_SERVER_ERROR: Final[int] = 500
HTTP_SERVICE_UNAVAILABLE: Final[int] = 503

# ===== API ENDPOINTS =====
AUTH_BASE_PATH: Final[str] = "/auth"
ENDPOINT_AUTH_REGISTER: Final[str] = f"{AUTH_BASE_PATH}/register"
ENDPOINT_AUTH_ACTIVATE: Final[str] = f"{AUTH_BASE_PATH}/activate-account"
ENDPOINT_AUTH_RESEND_ACTIVATION: Final[str] = f"{AUTH_BASE_PATH}/resend-activation-code"
ENDPOINT_AUTH_LOGIN: Final[str] = f"{AUTH_BASE_PATH}/login"
ENDPOINT_AUTH_LOGIN_GOOGLE: Final[str] = f"{AUTH_BASE_PATH}/login/google"
ENDPOINT_AUTH_LOGOUT: Final[str] = f"{AUTH_BASE_PATH}/logout"
ENDPOINT_AUTH_REQUEST_UNLOCK: Final[str] = f"{AUTH_BASE_PATH}/request-unlock"
ENDPOINT_AUTH_VERIFY_UNLOCK: Final[str] = f"{AUTH_BASE_PATH}/verify-unlock-code"
ENDPOINT_AUTH_FORGOT_PASSWORD: Final[str] = f"{AUTH_BASE_PATH}/forgot-password"
ENDPOINT_AUTH_RESET_PASSWORD: Final[str] = f"{AUTH_BASE_PATH}/reset-password"
ENDPOINT_AUTH_CHANGE_PASSWORD: Final[str] = f"{AUTH_BASE_PATH}/change-password"
ENDPOINT_AUTH_REQUEST_EMAIL_CHANGE: Final[str] = f"{AUTH_BASE_PATH}/request-email-change"
ENDPOINT_AUTH_VERIFY_EMAIL_CHANGE: Final[str] = f"{AUTH_BASE_PATH}/verify-email-change"
ENDPOINT_AUTH_UPDATE_PROFILE: Final[str] = f"{AUTH_BASE_PATH}/update-profile"
ENDPOINT_AUTH_ME: Final[str] = f"{AUTH_BASE_PATH}/me"
ENDPOINT_AUTH_VALIDATE_TOKEN: Final[str] = f"{AUTH_BASE_PATH}/validate-token"
ENDPOINT_AUTH_REFRESH_TOKEN: Final[str] = f"{AUTH_BASE_PATH}/refresh-token"

# ===== TOKEN STORAGE KEYS =====
STORAGE_ACCESS_TOKEN_KEY: Final[str] = "token"
STORAGE_REFRESH_TOKEN_KEY: Final[str] = "refreshToken"

# ===== REGISTRATION DRAFT STORAGE KEYS =====
STORAGE_REGISTER_DATA_KEY: Final[str] = "register-form-data"
STORAGE_REGISTER_STEP_KEY: Final[str] = "register-current-step"

# ===== SESSION STATE KEYS =====
SESSION_MANAGER: Final[str] = "session_manager"
SESSION_API_CLIENT: Final[str] = "api_client"
SESSION_USER_INFO: Final[str] = "user_info"
SESSION_SCHEDULER: Final[str] = "scheduler"
SESSION_ALERTS: Final[str] = "alerts"
SESSION_REGISTRATION: Final[str] = "registration"
SESSION_NAVIGATE_TO: Final[str] = "navigate_to"
SESSION_TOKEN_STORAGE: Final[str] = "token_storage"
SESSION_PENDING_EMAIL: Final[str] = "pending_email"
SESSION_CLIENT_ID: Final[str] = "client_id"
SESSION_DRAFTS_PURGED: Final[str] = "drafts_purged"

# ===== QUERY PARAMS =====
QUERY_CLIENT_ID: Final[str] = "cid"
QUERY_EMAIL: Final[str] = "email"

# ===== PAGES =====
PAGE_LOGIN: Final[str] = "pages/1_login.py"
PAGE_REGISTER: Final[str] = "pages/2_register.py"
PAGE_FORGOT_PASSWORD: Final[str] = "pages/3_forgot_password.py"
PAGE_RESET_PASSWORD: Final[str] = "pages/4_reset_password.py"
PAGE_ACTIVATE_ACCOUNT: Final[str] = "pages/5_activate_account.py"
PAGE_UNLOCK_ACCOUNT: Final[str] = "pages/6_unlock_account.py"
PAGE_DASHBOARD: Final[str] = "pages/7_dashboard.py"

# ===== REGISTRATION STEPS =====
STEP_PERSONAL_INFO: Final[int] = 1
STEP_CONTACT: Final[int] = 2
STEP_SECURITY: Final[int] = 3
FIRST_STEP: Final[int] = STEP_PERSONAL_INFO
FINAL_STEP: Final[int] = STEP_SECURITY

STEP_TITLES: Final[dict] = {
    STEP_PERSONAL_INFO: ("Personal Info", "Basic information"),
    STEP_CONTACT: ("Contact", "Email and phone"),
    STEP_SECURITY: ("Security", "Password and terms"),
}

STEP_FIELDS: Final[dict] = {
    STEP_PERSONAL_INFO: ("id_number", "name", "last_name", "date_of_birth"),
    STEP_CONTACT: ("email", "phone_number"),
    STEP_SECURITY: ("password", "confirm_password", "terms_accepted"),
}

# ===== VALIDATION =====
MIN_ID_NUMBER_LENGTH: Final[int] = 2
MAX_ID_NUMBER_LENGTH: Final[int] = 15
MIN_NAME_LENGTH: Final[int] = 2
MAX_NAME_LENGTH: Final[int] = 50
MAX_EMAIL_LENGTH: Final[int] = 100
MIN_PASSWORD_LENGTH: Final[int] = 8
MAX_PASSWORD_LENGTH: Final[int] = 100
PASSWORD_SPECIAL_CHARACTERS: Final[str] = "@#$%^&+=!"
MIN_REGISTRATION_AGE: Final[int] = 13
DRAFT_MAX_AGE_SECONDS: Final[int] = 7 * 24 * 3600
CODE_LENGTH: Final[int] = 6

# ===== TIMERS =====
TASK_REDIRECT: Final[str] = "redirect"
TASK_ALERT_DISMISS: Final[str] = "alert-dismiss"
TASK_RESEND_COOLDOWN: Final[str] = "resend-cooldown"

# ===== UI MESSAGES =====
MSG_LOGIN_SUCCESS: Final[str] = "Login successful! Redirecting..."
MSG_GOOGLE_LOGIN_SUCCESS: Final[str] = "Google login successful! Redirecting..."
MSG_REGISTER_SUCCESS: Final[str] = "Please check your email to activate your account."
MSG_ACTIVATION_SUCCESS: Final[str] = "Account activated successfully!"
MSG_RESET_EMAIL_SENT: Final[str] = "Password reset email sent successfully!"
MSG_PASSWORD_RESET: Final[str] = "Password reset successfully!"
MSG_CODE_RESENT: Final[str] = "A new code has been sent to your email."
MSG_EMAIL_NOT_FOUND: Final[str] = "Email not found. Please restart the process."
MSG_AUTH_REQUIRED: Final[str] = "Please sign in to continue."
MSG_NO_REFRESH_TOKEN: Final[str] = "No refresh token available"
MSG_REFRESH_FAILED: Final[str] = "Session expired. Please sign in again."
MSG_SESSION_ENDED: Final[str] = "You have been signed out."
MSG_NETWORK_ERROR: Final[str] = "Network error. Please check your connection and try again."
MSG_NO_TOKEN: Final[str] = "No token found"
MSG_TOKEN_VALIDATION_FAILED: Final[str] = "Token validation failed"

ERROR_MESSAGES: Final[dict] = {
    HTTP_BAD_REQUEST: "Please check the entered data.",
    HTTP_UNAUTHORIZED: "Incorrect email or password.",
    HTTP_FORBIDDEN: "Your account is not activated.",
    HTTP_LOCKED: "Your account is temporarily locked. Please try again later.",
    HTTP_INTERNAL_SERVER_ERROR: "A server error occurred. Please try again later.",
    HTTP_SERVICE_UNAVAILABLE: "Service temporarily unavailable. Please try again later.",
}
MSG_DEFAULT_ERROR: Final[str] = "An unexpected error occurred"
