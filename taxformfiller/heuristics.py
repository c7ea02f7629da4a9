"""Naming heuristics that turn raw AcroForm field names into labels and canonical keys.

Everything here is a pure function of the raw name, so the same name always
maps to the same label, requiredness guess and canonical key.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, FrozenSet, Optional, Sequence, Tuple

from .models import BilingualLabel, CanonicalKey
from .utils import split_words

_FLAG_TRUE = frozenset({"yes", "y", "si", "sí", "s", "true", "1", "on", "x"})
_FLAG_FALSE = frozenset({"no", "n", "false", "0", "off"})

# Longest phrases first so "date of birth" wins over "date".
_SPANISH_PHRASES: Tuple[Tuple[str, str], ...] = (
    ("date of birth", "fecha de nacimiento"),
    ("birth date", "fecha de nacimiento"),
    ("full name", "nombre completo"),
    ("first name", "nombre"),
    ("last name", "apellidos"),
    ("tax residence", "residencia fiscal"),
    ("tax resident", "residente fiscal"),
    ("tax id", "NIF"),
    ("annual income", "ingresos anuales"),
    ("phone number", "número de teléfono"),
    ("postal code", "código postal"),
    ("zip code", "código postal"),
)
_SPANISH_WORDS = {
    "name": "nombre",
    "surname": "apellidos",
    "address": "dirección",
    "city": "ciudad",
    "country": "país",
    "province": "provincia",
    "email": "correo electrónico",
    "mail": "correo",
    "phone": "teléfono",
    "income": "ingresos",
    "salary": "salario",
    "date": "fecha",
    "birth": "nacimiento",
    "year": "año",
    "amount": "importe",
    "total": "total",
    "tax": "impuesto",
    "resident": "residente",
    "residence": "residencia",
    "signature": "firma",
    "spouse": "cónyuge",
    "children": "hijos",
    "optional": "opcional",
    "number": "número",
    "yes": "sí",
}


def readable_label(raw_name: str) -> str:
    """Turn ``taxResident_2`` style identifiers into ``Tax Resident 2``."""

    words = split_words(raw_name)
    if not words:
        return raw_name.strip()
    label = " ".join(words)
    return label[0].upper() + label[1:]


def spanish_label(english_label: str) -> str:
    """Best-effort Spanish rendering of a derived English label."""

    text = english_label.lower()
    for phrase, replacement in _SPANISH_PHRASES:
        text = re.sub(rf"\b{re.escape(phrase)}\b", replacement, text)
    words = [_SPANISH_WORDS.get(word, word) for word in text.split()]
    translated = " ".join(words)
    if not translated:
        return english_label
    return translated[0].upper() + translated[1:]


def derive_label(raw_name: str) -> BilingualLabel:
    english = readable_label(raw_name)
    return BilingualLabel(en=english, es=spanish_label(english))


def infer_required(raw_name: str) -> bool:
    """Guess requiredness from the name alone.

    This is a placeholder policy: short names count as required unless they
    say "optional". Form configuration overrides it whenever it exists.
    """
    lowered = raw_name.lower()
    if "optional" in lowered or "opcional" in lowered:
        return False
    if "required" in lowered or "*" in raw_name:
        return True
    return len(raw_name) < 15


def normalize_flag(value: Optional[str]) -> Optional[str]:
    """Map yes/no style answers to ``"true"``/``"false"``; ``None`` if unrecognised."""

    if value is None:
        return None
    token = value.strip().lower().rstrip(".")
    if token in _FLAG_TRUE:
        return "true"
    if token in _FLAG_FALSE:
        return "false"
    return None


@dataclass(frozen=True)
class CanonicalRule:
    """One row of the canonical-key rule table."""

    key: CanonicalKey
    substrings: FrozenSet[str] = frozenset()
    tokens: FrozenSet[str] = frozenset()
    predicate: Optional[Callable[[str, Sequence[str]], bool]] = None

    def matches(self, raw_name: str) -> bool:
        lowered = raw_name.lower()
        tokens = [word.lower() for word in split_words(raw_name)]
        if any(part in lowered for part in self.substrings):
            return True
        if any(token in self.tokens for token in tokens):
            return True
        if self.predicate is not None:
            return self.predicate(lowered, tokens)
        return False


def _is_full_name(lowered: str, tokens: Sequence[str]) -> bool:
    if lowered in {"name", "nombre"}:
        return True
    has_name = "name" in lowered or "nombre" in lowered
    return has_name and any(marker in lowered for marker in ("full", "complete", "completo"))


# Order matters: the first matching rule wins.
CANONICAL_RULES: Tuple[CanonicalRule, ...] = (
    CanonicalRule(CanonicalKey.FULL_NAME, predicate=_is_full_name),
    CanonicalRule(
        CanonicalKey.NATIONAL_ID,
        substrings=frozenset({"dni", "nie", "nif"}),
        tokens=frozenset({"id"}),
    ),
    CanonicalRule(
        CanonicalKey.BIRTH_DATE,
        substrings=frozenset({"birth", "nacimiento", "fecha"}),
        tokens=frozenset({"dob"}),
    ),
    CanonicalRule(
        CanonicalKey.EMAIL,
        substrings=frozenset({"email", "e-mail", "correo"}),
        tokens=frozenset({"mail"}),
    ),
    CanonicalRule(
        CanonicalKey.INCOME,
        substrings=frozenset({"income", "salary", "ingres", "salario"}),
    ),
    CanonicalRule(
        CanonicalKey.TAX_RESIDENCE,
        substrings=frozenset({"resident", "residen", "fiscal", "tax"}),
    ),
)


def classify_canonical_key(
    raw_name: str,
    rules: Sequence[CanonicalRule] = CANONICAL_RULES,
) -> Optional[CanonicalKey]:
    for rule in rules:
        if rule.matches(raw_name):
            return rule.key
    return None


def normalize_canonical_value(key: CanonicalKey, value: str) -> Optional[str]:
    """Prepare a raw field value for storage under a canonical key."""

    if key == CanonicalKey.TAX_RESIDENCE:
        return normalize_flag(value)
    cleaned = value.strip()
    return cleaned or None


__all__ = [
    "CANONICAL_RULES",
    "CanonicalRule",
    "classify_canonical_key",
    "derive_label",
    "infer_required",
    "normalize_canonical_value",
    "normalize_flag",
    "readable_label",
    "spanish_label",
]
