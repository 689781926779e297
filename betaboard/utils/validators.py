import re
from typing import NamedTuple

from betaboard.models.tester import DEVICE_TYPES, DEVICE_IOS, DEVICE_ANDROID, EXPERIENCE_LEVELS
from betaboard.models.feedback import FEEDBACK_TYPES

# Simple, pragmatic patterns
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_IOS_DOMAINS = ("@icloud.com", "@me.com", "@mac.com")
_ANDROID_DOMAINS = ("@gmail.com",)

COMMENT_MIN_LENGTH = 10


class ValidationResult(NamedTuple):
    is_valid: bool
    message: str = ""


_OK = ValidationResult(True, "")


def clean_str(val: str | None, max_len: int = 255) -> str | None:
    """
    Collapse whitespace, trim, enforce max length. Returns None if empty after cleaning.
    """
    if val is None:
        return None
    s = re.sub(r"\s+", " ", str(val)).strip()
    if not s:
        return None
    return s[:max_len]


def validate_required(value: str | None, field_name: str) -> ValidationResult:
    if not (value or "").strip():
        return ValidationResult(False, f"{field_name} is required")
    return _OK


def validate_min_length(value: str | None, min_length: int, field_name: str) -> ValidationResult:
    if len(value or "") < min_length:
        return ValidationResult(False, f"{field_name} must be at least {min_length} characters long")
    return _OK


def validate_email(value: str | None) -> ValidationResult:
    if not (value or "").strip():
        return ValidationResult(False, "Email address is required")
    if not _EMAIL_RE.match(value):
        return ValidationResult(False, "Please enter a valid email address")
    return _OK


def validate_email_for_platform(value: str | None, device_type: str | None) -> ValidationResult:
    """Email check plus the store account rule: iCloud for iOS, Gmail for Android."""
    result = validate_email(value)
    if not result.is_valid:
        return result

    lower = value.lower()
    if device_type == DEVICE_IOS and not lower.endswith(_IOS_DOMAINS):
        return ValidationResult(
            False,
            "For iOS devices, please use an iCloud email address (@icloud.com, @me.com, or @mac.com)",
        )
    if device_type == DEVICE_ANDROID and not lower.endswith(_ANDROID_DOMAINS):
        return ValidationResult(False, "For Android devices, please use a Gmail email address (@gmail.com)")
    return _OK


def _choice(value: str | None, choices, field_name: str) -> ValidationResult:
    result = validate_required(value, field_name)
    if result.is_valid and value not in choices:
        return ValidationResult(False, f"{field_name} is not a valid choice")
    return result


def validate_registration(data: dict, require_platform_email: bool = False) -> dict:
    """Return {field: message} for every invalid field of the beta sign-up form."""
    device_type = (data.get("device_type") or "").strip()
    email = (data.get("email") or "").strip()

    checks = {
        "full_name": validate_required(data.get("full_name"), "Full name"),
        "email": (
            validate_email_for_platform(email, device_type)
            if require_platform_email
            else validate_email(email)
        ),
        "device_type": _choice(device_type, DEVICE_TYPES, "Device platform"),
        "device_model": validate_required(data.get("device_model"), "Device model"),
        "experience_level": _choice(
            (data.get("experience_level") or "").strip(), EXPERIENCE_LEVELS, "Experience level"
        ),
    }
    return {field: r.message for field, r in checks.items() if not r.is_valid}


def validate_feedback(data: dict) -> dict:
    """Return {field: message} for every invalid field of the feedback form."""
    is_anonymous = bool(data.get("is_anonymous"))
    comment = (data.get("comment") or "").strip()
    email = (data.get("email") or "").strip()

    comment_check = validate_required(comment, "Comment")
    if comment_check.is_valid and len(comment) < COMMENT_MIN_LENGTH:
        comment_check = ValidationResult(False, f"Comment must be at least {COMMENT_MIN_LENGTH} characters long")

    if not is_anonymous and not email:
        email_check = ValidationResult(False, "Email is required for non-anonymous feedback")
    elif email:
        email_check = validate_email(email)
    else:
        email_check = _OK

    checks = {
        "device_type": _choice((data.get("device_type") or "").strip(), DEVICE_TYPES, "Device platform"),
        "device_model": validate_required(data.get("device_model"), "Device model"),
        "feedback_type": _choice((data.get("feedback_type") or "").strip(), FEEDBACK_TYPES, "Feedback type"),
        "comment": comment_check,
        "email": email_check,
    }
    return {field: r.message for field, r in checks.items() if not r.is_valid}


def parse_bool(value) -> bool:
    """HTML checkboxes post "on"; JSON posts real booleans."""
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in ("1", "true", "on", "yes")
