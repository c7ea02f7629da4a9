from taxformfiller.dialogue import DialogueMode
from taxformfiller.forms import parse_form_config
from taxformfiller.pipeline import (
    autofill_from_upload,
    autofill_review_rows,
    collect_answers,
    fill_parsed_form,
    parse_pdf,
)
from taxformfiller.parser import extract_fields


def test_autofill_maps_values_across_differently_named_forms(blank_form_pdf, filled_source_pdf):
    target = extract_fields(blank_form_pdf).fields

    result = autofill_from_upload(target, filled_source_pdf)

    assert result.parse_error is None
    assert result.values == {
        "fullName": "Ana García López",
        "dni": "12345678Z",
        "birthDate": "1985-04-12",
        "taxResidence": "true",
    }
    assert result.missing_required == ("email", "maritalStatus")
    assert result.source_field_count == 4


def test_autofill_reports_unreadable_upload(blank_form_pdf):
    result = autofill_from_upload(extract_fields(blank_form_pdf).fields, b"garbage")

    assert result.parse_error
    assert result.values == {}


def test_autofill_from_pdf_without_fields(blank_form_pdf, no_field_pdf):
    result = autofill_from_upload(extract_fields(blank_form_pdf).fields, no_field_pdf)

    assert result.no_fields_found
    assert result.values == {}


def test_parse_pdf_without_widgets_ignores_configured_fields(no_field_pdf):
    config = parse_form_config(
        {"id": "x", "name": "X", "fields": {"fullName": {"required": True}, "income": {"type": "number"}}}
    )
    parsed = parse_pdf(no_field_pdf, config)

    assert parsed.fields == ()
    assert parsed.config is config


def test_review_rows_list_extracted_values_then_missing_fields(blank_form_pdf, filled_source_pdf):
    target = extract_fields(blank_form_pdf).fields
    result = autofill_from_upload(target, filled_source_pdf)

    rows = autofill_review_rows(target, result)

    assert [(row.field.name, row.value, row.missing) for row in rows] == [
        ("fullName", "Ana García López", False),
        ("dni", "12345678Z", False),
        ("birthDate", "1985-04-12", False),
        ("taxResidence", "true", False),
        ("email", "", True),
        ("maritalStatus", "", True),
    ]


def test_review_rows_for_complete_upload_have_nothing_missing(blank_form_pdf):
    target = extract_fields(blank_form_pdf).fields
    source = fill_parsed_form(
        parse_pdf(blank_form_pdf),
        {"fullName": "Ana", "dni": "12345678Z", "birthDate": "1985-04-12", "email": "ana@example.com"},
    )

    rows = autofill_review_rows(target, autofill_from_upload(target, source))

    assert not any(row.missing for row in rows)
    assert {row.field.name for row in rows} >= {"fullName", "email", "maritalStatus"}


def test_fill_parsed_form_uses_catalog(blank_form_pdf):
    parsed = parse_pdf(blank_form_pdf)
    filled = fill_parsed_form(parsed, {"email": "ana@example.com"})

    assert extract_fields(filled).extracted_data["email"] == "ana@example.com"


def test_collect_answers_initialises_then_advances(blank_form_pdf):
    parsed = parse_pdf(blank_form_pdf)

    state = collect_answers(parsed)
    assert state.mode == DialogueMode.AWAITING_LANGUAGE_CHOICE

    state = collect_answers(parsed, existing_state=state, user_input="English")
    assert state.mode == DialogueMode.COLLECTING_FIELD
    assert state.get_current_field().name == "fullName"
