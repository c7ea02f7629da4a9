import pytest
from conftest import FakeClock

from taxformfiller.dialogue import DialogueMode
from taxformfiller.filler import FillError, fill_pdf
from taxformfiller.forms import parse_form_config
from taxformfiller.parser import extract_fields
from taxformfiller.session import FormSession


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def session(blank_form_pdf, clock):
    form = FormSession.from_pdf(blank_form_pdf, timer_factory=clock)
    yield form
    form.close()


def test_preview_starts_as_original(session, blank_form_pdf):
    assert session.preview_bytes == blank_form_pdf
    assert session.rendered_generation == 0


def test_value_changes_are_debounced_into_one_render(blank_form_pdf, clock):
    calls = []

    def counting_filler(pdf_bytes, fields, values, **kwargs):
        calls.append(dict(values))
        return fill_pdf(pdf_bytes, fields, values, **kwargs)

    session = FormSession.from_pdf(blank_form_pdf, timer_factory=clock, filler=counting_filler)
    session.set_value("fullName", "A")
    session.set_value("fullName", "An")
    session.set_value("fullName", "Ana")
    for timer in clock.timers:
        timer.fire()

    assert calls == [{"fullName": "Ana"}]
    assert session.rendered_generation == 3
    assert extract_fields(session.preview_bytes).extracted_data["fullName"] == "Ana"
    assert session.original_bytes == blank_form_pdf


def test_flush_preview_renders_pending_values(session):
    session.update_values({"email": "ana@example.com", "taxResidence": "true"})
    assert session.flush_preview()

    data = extract_fields(session.preview_bytes).extracted_data
    assert data["email"] == "ana@example.com"
    assert data["taxResidence"] == "true"


def test_superseded_render_is_discarded(blank_form_pdf, clock):
    holder = {}

    def filler(pdf_bytes, fields, values, **kwargs):
        if values.get("fullName") == "Old":
            # A newer change arrives while this render is in flight.
            holder["session"].set_value("fullName", "New")
        return fill_pdf(pdf_bytes, fields, values, **kwargs)

    session = FormSession.from_pdf(blank_form_pdf, timer_factory=clock, filler=filler)
    holder["session"] = session
    session.set_value("fullName", "Old")
    session.flush_preview()

    assert session.preview_bytes == blank_form_pdf
    assert session.rendered_generation == 0

    session.flush_preview()
    assert session.rendered_generation == 2
    assert extract_fields(session.preview_bytes).extracted_data["fullName"] == "New"


def test_failed_render_keeps_previous_preview(blank_form_pdf, clock):
    state = {"fail": False}

    def filler(pdf_bytes, fields, values, **kwargs):
        if state["fail"]:
            raise FillError("disk full")
        return fill_pdf(pdf_bytes, fields, values, **kwargs)

    session = FormSession.from_pdf(blank_form_pdf, timer_factory=clock, filler=filler)
    session.set_value("fullName", "Ana")
    session.flush_preview()
    good_preview = session.preview_bytes

    state["fail"] = True
    session.set_value("fullName", "Ana María")
    session.flush_preview()

    assert session.preview_bytes == good_preview
    assert session.last_error
    assert session.values["fullName"] == "Ana María"

    state["fail"] = False
    session.request_preview()
    session.flush_preview()
    assert session.last_error is None
    assert extract_fields(session.preview_bytes).extracted_data["fullName"] == "Ana María"


def test_download_is_flattened_and_preview_is_not(session):
    session.set_value("fullName", "Ana")
    session.flush_preview()

    assert extract_fields(session.download_bytes()).fields == ()
    assert len(extract_fields(session.preview_bytes).fields) == len(session.fields)


def test_dialogue_commits_update_values_and_preview(session):
    session.start_dialogue()
    session.submit_answer("English")
    effects = session.submit_answer("Ana García")

    assert effects.committed == ("fullName", "Ana García")
    assert session.values["fullName"] == "Ana García"
    session.flush_preview()
    assert extract_fields(session.preview_bytes).extracted_data["fullName"] == "Ana García"


def test_dialogue_skips_values_already_in_the_pdf(blank_form_pdf, clock):
    config = parse_form_config(
        {
            "id": "demo",
            "name": "Demo",
            "fields": {
                "fullName": {"required": True},
                "maritalStatus": {"required": True},
            },
        }
    )
    session = FormSession.from_pdf(blank_form_pdf, config, timer_factory=clock)
    state = session.start_dialogue("en")
    assert state.mode == DialogueMode.AWAITING_LANGUAGE_CHOICE
    session.submit_answer("English")

    # maritalStatus already holds "Single" in the PDF.
    assert session.dialogue.pending == ("fullName",)
    assert session.form_name == "Demo"


def test_missing_required_reflects_known_values(session):
    assert "fullName" in session.missing_required()
    session.set_value("fullName", "Ana")
    assert "fullName" not in session.missing_required()
    assert "maritalStatus" not in session.missing_required()


def test_pdf_without_widgets_has_nothing_to_ask_or_fill(no_field_pdf, clock):
    config = parse_form_config({"id": "x", "name": "X", "fields": {"fullName": {"required": True}}})
    session = FormSession.from_pdf(no_field_pdf, config, timer_factory=clock)

    assert session.fields == ()
    assert session.missing_required() == ()
    assert session.start_dialogue("en").is_complete
    session.submit_answer("English")
    effects = session.submit_answer("Ana Garcia")
    assert effects.committed is None
    assert session.values == {}


def test_upload_is_applied_once(session):
    assert session.apply_upload("return.pdf:1024", {"fullName": "Ana", "email": ""})
    assert session.values == {"fullName": "Ana"}
    assert session.has_applied_upload("return.pdf:1024")

    session.set_value("fullName", "Ana María")
    assert not session.apply_upload("return.pdf:1024", {"fullName": "Ana"})
    assert session.values["fullName"] == "Ana María"

    assert session.apply_upload("other.pdf:2048", {"dni": "12345678Z"})
    assert session.values == {"fullName": "Ana María", "dni": "12345678Z"}


def test_download_is_rebuilt_only_when_values_change(blank_form_pdf, clock):
    flattened = []

    def counting_filler(pdf_bytes, fields, values, **kwargs):
        if kwargs.get("flatten"):
            flattened.append(dict(values))
        return fill_pdf(pdf_bytes, fields, values, **kwargs)

    session = FormSession.from_pdf(blank_form_pdf, timer_factory=clock, filler=counting_filler)
    session.set_value("fullName", "Ana")

    first = session.download_bytes()
    assert session.download_bytes() is first
    assert flattened == [{"fullName": "Ana"}]

    session.set_value("email", "ana@example.com")
    session.download_bytes()
    assert flattened == [{"fullName": "Ana"}, {"fullName": "Ana", "email": "ana@example.com"}]
