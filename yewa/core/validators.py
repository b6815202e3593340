import re

SA_PHONE_RE = re.compile(r"^(?:\+27|0)[1-9]\d{8}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class ValidationError(ValueError):
    """One or more submitted fields are invalid. `errors` maps field → message."""

    def __init__(self, errors: dict):
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email or ""))


def is_valid_sa_phone(phone: str) -> bool:
    """South African number: 0812345678 or +27812345678, spaces ignored."""
    return bool(SA_PHONE_RE.match(re.sub(r"\s", "", phone or "")))


def require_positive_number(v, name: str = "value") -> float:
    try:
        num = float(v)
    except (TypeError, ValueError):
        raise ValidationError({name: f"{name} must be a number"})
    if num <= 0:
        raise ValidationError({name: f"{name} must be > 0"})
    return num
