import pytest

from taxformfiller.heuristics import (
    classify_canonical_key,
    derive_label,
    infer_required,
    normalize_canonical_value,
    normalize_flag,
    readable_label,
)
from taxformfiller.models import CanonicalKey
from taxformfiller.utils import split_words


def test_split_words_handles_camel_case_digits_and_separators():
    assert split_words("taxResident_2") == ["tax", "Resident", "2"]
    assert split_words("HTMLField") == ["HTML", "Field"]
    assert split_words("") == []


def test_readable_label_capitalises_first_word():
    assert readable_label("fullName") == "Full Name"
    assert readable_label("annual_income") == "Annual income"


def test_derive_label_translates_known_phrases():
    label = derive_label("fullName")
    assert label.en == "Full Name"
    assert label.es == "Nombre completo"

    assert derive_label("date_of_birth").es == "Fecha de nacimiento"
    assert derive_label("email").es == "Correo electrónico"


def test_derive_label_is_deterministic():
    assert derive_label("taxResidence") == derive_label("taxResidence")


@pytest.mark.parametrize(
    "raw_name, expected",
    [
        ("dni", True),
        ("notesOptional", False),
        ("campoOpcional", False),
        ("aVeryLongFieldNameWithoutHints", False),
        ("aVeryLongFieldName*", True),
        ("requiredSpouseIncomeDetails", True),
    ],
)
def test_infer_required(raw_name, expected):
    assert infer_required(raw_name) is expected


@pytest.mark.parametrize(
    "raw_name, expected",
    [
        ("fullName", CanonicalKey.FULL_NAME),
        ("nombreCompleto", CanonicalKey.FULL_NAME),
        ("name", CanonicalKey.FULL_NAME),
        ("dni", CanonicalKey.NATIONAL_ID),
        ("nifContribuyente", CanonicalKey.NATIONAL_ID),
        ("taxpayer_id", CanonicalKey.NATIONAL_ID),
        ("birthDate", CanonicalKey.BIRTH_DATE),
        ("fechaNacimiento", CanonicalKey.BIRTH_DATE),
        ("contact_email", CanonicalKey.EMAIL),
        ("correo", CanonicalKey.EMAIL),
        ("annualIncome", CanonicalKey.INCOME),
        ("salarioBruto", CanonicalKey.INCOME),
        ("taxResidence", CanonicalKey.TAX_RESIDENCE),
        ("residenteFiscal", CanonicalKey.TAX_RESIDENCE),
        ("maritalStatus", None),
        ("companyName", None),
    ],
)
def test_classify_canonical_key(raw_name, expected):
    assert classify_canonical_key(raw_name) == expected


def test_id_only_matches_as_a_whole_word():
    # "resident" contains the letters "id" but is not an identifier field.
    assert classify_canonical_key("resident") == CanonicalKey.TAX_RESIDENCE
    assert classify_canonical_key("validity") is None


@pytest.mark.parametrize(
    "value, expected",
    [("Yes", "true"), ("sí", "true"), ("X", "true"), ("on", "true"), ("No", "false"), ("Off", "false"), ("maybe", None)],
)
def test_normalize_flag(value, expected):
    assert normalize_flag(value) == expected


def test_normalize_canonical_value():
    assert normalize_canonical_value(CanonicalKey.TAX_RESIDENCE, "Yes") == "true"
    assert normalize_canonical_value(CanonicalKey.FULL_NAME, "  Ana  ") == "Ana"
    assert normalize_canonical_value(CanonicalKey.EMAIL, "   ") is None
