"""Data models for TaxFormFiller."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional, Tuple


class TaxFormFillerError(Exception):
    """Base exception for recoverable TaxFormFiller failures."""
    pass


class FieldType(str, Enum):
    """Interaction type used for prompting and validation."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    EMAIL = "email"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DROPDOWN = "dropdown"
    MULTI_SELECT = "multiSelect"


class WidgetKind(str, Enum):
    """Structural kind of the underlying AcroForm field, resolved once at extraction."""

    TEXT = "text"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DROPDOWN = "dropdown"
    LIST = "list"


class CanonicalKey(str, Enum):
    """Semantic identifiers shared across differently named tax forms."""

    FULL_NAME = "fullName"
    NATIONAL_ID = "nationalId"
    BIRTH_DATE = "birthDate"
    EMAIL = "email"
    INCOME = "income"
    TAX_RESIDENCE = "taxResidence"


# Interaction type implied by each structural kind when nothing overrides it.
DEFAULT_FIELD_TYPES: Dict[WidgetKind, FieldType] = {
    WidgetKind.TEXT: FieldType.TEXT,
    WidgetKind.CHECKBOX: FieldType.CHECKBOX,
    WidgetKind.RADIO: FieldType.RADIO,
    WidgetKind.DROPDOWN: FieldType.DROPDOWN,
    WidgetKind.LIST: FieldType.MULTI_SELECT,
}

CHOICE_FIELD_TYPES = frozenset({FieldType.RADIO, FieldType.DROPDOWN, FieldType.MULTI_SELECT})

FieldValues = Dict[str, str]


@dataclass(frozen=True)
class BilingualLabel:
    en: str
    es: str

    def for_language(self, language: str) -> str:
        if language == "es":
            return self.es or self.en
        return self.en or self.es


@dataclass(frozen=True)
class FieldDescriptor:
    """One fillable field of a PDF form."""

    name: str
    field_type: FieldType
    kind: WidgetKind
    label: BilingualLabel
    required: bool = False
    options: Tuple[str, ...] = ()
    canonical_key: Optional[CanonicalKey] = None
    index: int = 0
    page: int = 0


@dataclass(frozen=True)
class ExtractionResult:
    """Field catalog and pre-existing values recovered from a PDF."""

    fields: Tuple[FieldDescriptor, ...] = ()
    extracted_data: FieldValues = field(default_factory=dict)
    parse_error: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.fields

    def get_field(self, name: str) -> Optional[FieldDescriptor]:
        for descriptor in self.fields:
            if descriptor.name == name:
                return descriptor
        return None


__all__ = [
    "BilingualLabel",
    "CHOICE_FIELD_TYPES",
    "CanonicalKey",
    "DEFAULT_FIELD_TYPES",
    "ExtractionResult",
    "FieldDescriptor",
    "FieldType",
    "FieldValues",
    "TaxFormFillerError",
    "WidgetKind",
]
