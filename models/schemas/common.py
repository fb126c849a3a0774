import re

from marshmallow import ValidationError

_PASSWORD_RE = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)")

PASSWORD_MIN = 6
PASSWORD_MAX = 100


def validate_password_strength(value: str) -> None:
    if len(value) < PASSWORD_MIN:
        raise ValidationError(f"Password must be at least {PASSWORD_MIN} characters long.")
    if len(value) > PASSWORD_MAX:
        raise ValidationError(f"Password must be less than {PASSWORD_MAX} characters.")
    if not _PASSWORD_RE.match(value):
        raise ValidationError(
            "Password must contain at least one lowercase letter, one uppercase letter, and one number."
        )


def norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def norm_text(v):
    return v.strip() if isinstance(v, str) else v
