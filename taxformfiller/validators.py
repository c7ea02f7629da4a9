"""Type-specific validation of free-text answers collected in the guided dialogue."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Callable, Dict, Optional, Sequence

from .models import CHOICE_FIELD_TYPES, FieldDescriptor, FieldType

_YES_TOKENS = {
    "en": frozenset({"yes", "y", "yeah", "yep", "true", "1", "x"}),
    "es": frozenset({"sí", "si", "s", "vale", "true", "1", "x"}),
}
_NO_TOKENS = {
    "en": frozenset({"no", "n", "nope", "false", "0"}),
    "es": frozenset({"no", "n", "false", "0"}),
}

_ISO_DATE = re.compile(r"^(\d{4})([-/])(\d{2})\2(\d{2})$")
_DMY_DATE = re.compile(r"^(\d{2})([-/])(\d{2})\2(\d{4})$")
_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$")
_NUMBER = re.compile(r"^[+-]?\d+(?:[.,]\d+)?$")


@dataclass(frozen=True)
class ValidationResult:
    is_valid: bool
    formatted_value: str = ""
    error_key: Optional[str] = None

    @classmethod
    def ok(cls, value: str) -> "ValidationResult":
        return cls(is_valid=True, formatted_value=value)

    @classmethod
    def fail(cls, error_key: str) -> "ValidationResult":
        return cls(is_valid=False, error_key=error_key)


def validate_text(answer: str, language: str = "en") -> ValidationResult:
    if not answer:
        return ValidationResult.fail("dialogue.error.text")
    return ValidationResult.ok(answer)


def validate_checkbox(answer: str, language: str = "en") -> ValidationResult:
    token = answer.lower().rstrip(".!")
    if token in _YES_TOKENS.get(language, _YES_TOKENS["en"]):
        return ValidationResult.ok("true")
    if token in _NO_TOKENS.get(language, _NO_TOKENS["en"]):
        return ValidationResult.ok("false")
    return ValidationResult.fail("dialogue.error.checkbox")


def _is_calendar_date(year: str, month: str, day: str) -> bool:
    try:
        date(int(year), int(month), int(day))
    except ValueError:
        return False
    return True


def validate_date(answer: str, language: str = "en") -> ValidationResult:
    """Accept ``YYYY-MM-DD`` or ``DD-MM-YYYY`` (``/`` allowed) naming a real day."""

    iso = _ISO_DATE.match(answer)
    if iso and _is_calendar_date(iso.group(1), iso.group(3), iso.group(4)):
        return ValidationResult.ok(answer)
    dmy = _DMY_DATE.match(answer)
    if dmy and _is_calendar_date(dmy.group(4), dmy.group(3), dmy.group(1)):
        return ValidationResult.ok(answer)
    return ValidationResult.fail("dialogue.error.date")


def validate_email(answer: str, language: str = "en") -> ValidationResult:
    if _EMAIL.match(answer):
        return ValidationResult.ok(answer)
    return ValidationResult.fail("dialogue.error.email")


def validate_number(answer: str, language: str = "en") -> ValidationResult:
    if _NUMBER.match(answer):
        return ValidationResult.ok(answer)
    return ValidationResult.fail("dialogue.error.number")


def validate_choice(answer: str, options: Sequence[str]) -> ValidationResult:
    """Match an option case-insensitively or by its 1-based position."""

    lowered = answer.lower()
    for option in options:
        if option.lower() == lowered:
            return ValidationResult.ok(option)
    if answer.isdigit() and 1 <= int(answer) <= len(options):
        return ValidationResult.ok(options[int(answer) - 1])
    return ValidationResult.fail("dialogue.error.choice")


_VALIDATORS: Dict[FieldType, Callable[[str, str], ValidationResult]] = {
    FieldType.TEXT: validate_text,
    FieldType.NUMBER: validate_number,
    FieldType.DATE: validate_date,
    FieldType.EMAIL: validate_email,
    FieldType.CHECKBOX: validate_checkbox,
}


def validate_answer(descriptor: FieldDescriptor, answer: str, language: str = "en") -> ValidationResult:
    """Validate ``answer`` for ``descriptor`` and return the value to commit."""

    cleaned = (answer or "").strip()
    if descriptor.field_type in CHOICE_FIELD_TYPES:
        if not descriptor.options:
            return validate_text(cleaned, language)
        return validate_choice(cleaned, descriptor.options)
    validator = _VALIDATORS.get(descriptor.field_type, validate_text)
    return validator(cleaned, language)


__all__ = [
    "ValidationResult",
    "validate_answer",
    "validate_checkbox",
    "validate_choice",
    "validate_date",
    "validate_email",
    "validate_number",
    "validate_text",
]
