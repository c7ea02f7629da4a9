"""Shared fixtures: small AcroForm PDFs built on the fly with PyMuPDF."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence, Tuple

import fitz
import pytest

from taxformfiller.models import BilingualLabel, FieldDescriptor, FieldType, WidgetKind

MARITAL_OPTIONS = ["Single", "Married", "Widowed"]


def _add_text(page: fitz.Page, name: str, rect: fitz.Rect, value: str = "") -> None:
    widget = fitz.Widget()
    widget.field_type = fitz.PDF_WIDGET_TYPE_TEXT
    widget.field_name = name
    widget.rect = rect
    widget.field_value = value
    page.add_widget(widget)


def _add_checkbox(page: fitz.Page, name: str, rect: fitz.Rect, checked: bool = False) -> None:
    widget = fitz.Widget()
    widget.field_type = fitz.PDF_WIDGET_TYPE_CHECKBOX
    widget.field_name = name
    widget.rect = rect
    widget.field_value = checked
    page.add_widget(widget)


def _add_combobox(page: fitz.Page, name: str, rect: fitz.Rect, options: Sequence[str], value: str) -> None:
    widget = fitz.Widget()
    widget.field_type = fitz.PDF_WIDGET_TYPE_COMBOBOX
    widget.field_name = name
    widget.rect = rect
    widget.choice_values = list(options)
    widget.field_value = value
    page.add_widget(widget)


def build_pdf(
    text_fields: Iterable[Tuple[str, str]] = (),
    checkboxes: Iterable[Tuple[str, bool]] = (),
    comboboxes: Iterable[Tuple[str, Sequence[str], str]] = (),
) -> bytes:
    """Create a one page PDF with the given widgets laid out top to bottom."""

    doc = fitz.open()
    page = doc.new_page()
    top = 40
    for name, value in text_fields:
        _add_text(page, name, fitz.Rect(50, top, 300, top + 20), value)
        top += 30
    for name, checked in checkboxes:
        _add_checkbox(page, name, fitz.Rect(50, top, 66, top + 16), checked)
        top += 30
    for name, options, value in comboboxes:
        _add_combobox(page, name, fitz.Rect(50, top, 300, top + 20), options, value)
        top += 30
    data = doc.tobytes()
    doc.close()
    return data


def widget_states(pdf_bytes: bytes) -> dict:
    """Return ``{field_name: field_value}`` for every widget in the document."""

    states = {}
    with fitz.open(stream=pdf_bytes, filetype="pdf") as doc:
        for page in doc:
            for widget in page.widgets():
                states[widget.field_name] = widget.field_value
    return states


@pytest.fixture
def blank_form_pdf() -> bytes:
    return build_pdf(
        text_fields=[("fullName", ""), ("dni", ""), ("birthDate", ""), ("email", ""), ("optionalNotes", "")],
        checkboxes=[("taxResidence", False)],
        comboboxes=[("maritalStatus", MARITAL_OPTIONS, "Single")],
    )


@pytest.fixture
def filled_source_pdf() -> bytes:
    """A differently named form that already carries the user's data."""

    return build_pdf(
        text_fields=[
            ("nombreCompleto", "Ana García López"),
            ("nifContribuyente", "12345678Z"),
            ("fechaNacimiento", "1985-04-12"),
        ],
        checkboxes=[("residenteFiscal", True)],
    )


@pytest.fixture
def no_field_pdf() -> bytes:
    doc = fitz.open()
    page = doc.new_page()
    page.insert_text((72, 72), "This form has no fillable fields.")
    data = doc.tobytes()
    doc.close()
    return data


FILING_OPTIONS = ["Single", "Married"]
COUNTRY_OPTIONS = ["Spain", "Portugal", "France"]


def _appearance(content: bytes) -> bytes:
    return b"<< /Type /XObject /Subtype /Form /BBox [0 0 12 12] /Length %d >>\nstream\n%s\nendstream" % (
        len(content),
        content,
    )


def build_radio_pdf() -> bytes:
    """One page with the radio group ``filingStatus`` (Single, Married), nothing selected.

    ``fitz.Widget`` cannot share a parent field between buttons, so the objects
    are written out directly.
    """

    dot = b"0 g 2 2 8 8 re f"
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R /AcroForm << /Fields [4 0 R] >> >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] /Annots [5 0 R 6 0 R] >>",
        b"<< /FT /Btn /Ff 49152 /T (filingStatus) /V /Off /Kids [5 0 R 6 0 R] >>",
        b"<< /Type /Annot /Subtype /Widget /Parent 4 0 R /P 3 0 R /Rect [50 700 62 712] /AS /Off "
        b"/AP << /N << /Single 7 0 R /Off 8 0 R >> >> >>",
        b"<< /Type /Annot /Subtype /Widget /Parent 4 0 R /P 3 0 R /Rect [50 670 62 682] /AS /Off "
        b"/AP << /N << /Married 9 0 R /Off 8 0 R >> >> >>",
        _appearance(dot),
        _appearance(b""),
        _appearance(dot),
    ]
    out = bytearray(b"%PDF-1.7\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += b"%d 0 obj\n%s\nendobj\n" % (number, body)
    xref_offset = len(out)
    out += b"xref\n0 %d\n0000000000 65535 f \n" % (len(objects) + 1)
    for offset in offsets:
        out += b"%010d 00000 n \n" % offset
    out += b"trailer\n<< /Size %d /Root 1 0 R >>\nstartxref\n%d\n%%%%EOF\n" % (len(objects) + 1, xref_offset)
    return bytes(out)


def build_choice_pdf(country: str = "Spain") -> bytes:
    """The radio group page plus a ``country`` list box."""

    doc = fitz.open(stream=build_radio_pdf(), filetype="pdf")
    widget = fitz.Widget()
    widget.field_type = fitz.PDF_WIDGET_TYPE_LISTBOX
    widget.field_name = "country"
    widget.rect = fitz.Rect(50, 100, 200, 160)
    widget.choice_values = list(COUNTRY_OPTIONS)
    widget.field_value = country
    doc[0].add_widget(widget)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def choice_form_pdf() -> bytes:
    return build_choice_pdf()


def make_field(
    name: str,
    field_type: FieldType = FieldType.TEXT,
    *,
    required: bool = True,
    options: Tuple[str, ...] = (),
    en: Optional[str] = None,
    es: Optional[str] = None,
    index: int = 0,
) -> FieldDescriptor:
    kinds = {
        FieldType.CHECKBOX: WidgetKind.CHECKBOX,
        FieldType.RADIO: WidgetKind.RADIO,
        FieldType.DROPDOWN: WidgetKind.DROPDOWN,
        FieldType.MULTI_SELECT: WidgetKind.LIST,
    }
    return FieldDescriptor(
        name=name,
        field_type=field_type,
        kind=kinds.get(field_type, WidgetKind.TEXT),
        label=BilingualLabel(en=en or name, es=es or en or name),
        required=required,
        options=options,
        index=index,
    )


class FakeTimer:
    """Timer stand-in that only fires when a test says so."""

    def __init__(self, interval, callback):
        self.interval = interval
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.callback()


class FakeClock:
    """Timer factory recording every timer it hands out."""

    def __init__(self):
        self.timers = []

    def __call__(self, interval, callback):
        timer = FakeTimer(interval, callback)
        self.timers.append(timer)
        return timer
