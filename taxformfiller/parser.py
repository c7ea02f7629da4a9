"""Field Model Extractor: recover the AcroForm field catalog from PDF bytes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import fitz

from .forms import FormConfig, apply_form_config
from .heuristics import (
    classify_canonical_key,
    derive_label,
    infer_required,
    normalize_canonical_value,
)
from .models import (
    DEFAULT_FIELD_TYPES,
    ExtractionResult,
    FieldDescriptor,
    FieldValues,
    WidgetKind,
)
from .utils import configure_logger

logger = configure_logger(__name__)

_OFF_STATES = frozenset({"", "off", "false", "no"})

_WIDGET_KIND_MAP: Dict[int, WidgetKind] = {}
_WIDGET_KIND_PAIRS = {
    "PDF_WIDGET_TYPE_TEXT": WidgetKind.TEXT,
    "PDF_WIDGET_TYPE_CHECKBOX": WidgetKind.CHECKBOX,
    "PDF_WIDGET_TYPE_RADIOBUTTON": WidgetKind.RADIO,
    "PDF_WIDGET_TYPE_COMBOBOX": WidgetKind.DROPDOWN,
    "PDF_WIDGET_TYPE_LISTBOX": WidgetKind.LIST,
}
for attr_name, widget_kind in _WIDGET_KIND_PAIRS.items():
    value = getattr(fitz, attr_name, None)
    if isinstance(value, int):
        _WIDGET_KIND_MAP[value] = widget_kind

# Push buttons and signatures carry no fillable value.
_SKIPPED_WIDGET_TYPES = frozenset(
    value
    for value in (
        getattr(fitz, "PDF_WIDGET_TYPE_BUTTON", None),
        getattr(fitz, "PDF_WIDGET_TYPE_SIGNATURE", None),
    )
    if isinstance(value, int)
)


@dataclass
class _RawField:
    name: str
    kind: WidgetKind
    page: int
    value: str = ""
    options: List[str] = field(default_factory=list)


def _normalize_field_name(name: Any) -> Optional[str]:
    if isinstance(name, str):
        cleaned = name.strip()
        return cleaned or None
    return None


def map_widget_kind(widget: fitz.Widget) -> Optional[WidgetKind]:
    """Resolve the structural kind of a widget, or ``None`` for skipped widgets."""

    widget_type = getattr(widget, "field_type", None)
    if widget_type in _SKIPPED_WIDGET_TYPES:
        return None
    if isinstance(widget_type, int):
        return _WIDGET_KIND_MAP.get(widget_type, WidgetKind.TEXT)
    return WidgetKind.TEXT


def is_checked(raw_value: Any) -> bool:
    if isinstance(raw_value, bool):
        return raw_value
    if raw_value is None:
        return False
    return str(raw_value).strip().lower() not in _OFF_STATES


def _widget_on_state(widget: fitz.Widget) -> Optional[str]:
    try:
        state = widget.on_state()
    except Exception as exc:
        logger.debug("No on-state for widget '%s': %s", widget.field_name, exc)
        return None
    if isinstance(state, str) and state.strip():
        return state.strip()
    return None


def _choice_options(widget: fitz.Widget) -> List[str]:
    options: List[str] = []
    for choice in getattr(widget, "choice_values", None) or []:
        # Choices may be plain strings or (export, display) pairs.
        if isinstance(choice, (list, tuple)):
            choice = choice[0] if choice else ""
        text = str(choice).strip()
        if text and text not in options:
            options.append(text)
    return options


def _choice_value(raw_value: Any) -> str:
    if raw_value is None:
        return ""
    if isinstance(raw_value, (list, tuple)):
        return ", ".join(str(item).strip() for item in raw_value if str(item).strip())
    return str(raw_value).strip()


def _absorb_widget(collected: Dict[str, _RawField], widget: fitz.Widget, page_index: int) -> None:
    kind = map_widget_kind(widget)
    name = _normalize_field_name(getattr(widget, "field_name", None))
    if kind is None or name is None:
        return

    raw_value = getattr(widget, "field_value", None)
    existing = collected.get(name)

    if kind == WidgetKind.RADIO:
        entry = existing or _RawField(name=name, kind=kind, page=page_index)
        on_state = _widget_on_state(widget)
        if on_state and on_state not in entry.options:
            entry.options.append(on_state)
        if not entry.value and is_checked(raw_value):
            entry.value = on_state if raw_value is True else str(raw_value).strip()
        collected[name] = entry
        return

    if existing is not None:
        # Extra widgets of an already known field only repeat its value.
        return

    entry = _RawField(name=name, kind=kind, page=page_index)
    if kind == WidgetKind.CHECKBOX:
        entry.value = "true" if is_checked(raw_value) else "false"
    elif kind in {WidgetKind.DROPDOWN, WidgetKind.LIST}:
        entry.options = _choice_options(widget)
        entry.value = _choice_value(raw_value)
    else:
        entry.value = "" if raw_value is None else str(raw_value)
    collected[name] = entry


def _collect_raw_fields(doc: fitz.Document) -> List[_RawField]:
    collected: Dict[str, _RawField] = {}
    for page_index in range(doc.page_count):
        page = doc[page_index]
        try:
            widgets = list(page.widgets())
        except Exception as exc:
            logger.warning("Could not read widgets on page %d: %s", page_index, exc)
            continue
        for widget in widgets:
            _absorb_widget(collected, widget, page_index)
    # dicts preserve insertion order, which is document order here
    return list(collected.values())


def _build_descriptor(raw: _RawField, index: int) -> FieldDescriptor:
    return FieldDescriptor(
        name=raw.name,
        field_type=DEFAULT_FIELD_TYPES[raw.kind],
        kind=raw.kind,
        label=derive_label(raw.name),
        required=infer_required(raw.name),
        options=tuple(raw.options) if raw.kind != WidgetKind.CHECKBOX else (),
        canonical_key=classify_canonical_key(raw.name),
        index=index,
        page=raw.page,
    )


def aggregate_canonical_values(
    fields: Tuple[FieldDescriptor, ...],
    raw_values: FieldValues,
) -> FieldValues:
    """Return raw values plus canonical-key entries, first non-empty field winning."""

    aggregated: FieldValues = dict(raw_values)
    for descriptor in fields:
        key = descriptor.canonical_key
        if key is None or key.value in aggregated:
            continue
        value = raw_values.get(descriptor.name)
        if not value:
            continue
        normalized = normalize_canonical_value(key, value)
        if normalized is not None:
            aggregated[key.value] = normalized
    return aggregated


def extract_fields(pdf_bytes: bytes, config: Optional[FormConfig] = None) -> ExtractionResult:
    """Enumerate the fillable fields of a PDF and any values already entered.

    Parameters
    ----------
    pdf_bytes:
        Raw PDF content. It is only read, never modified.
    config:
        Optional ``FormConfig`` whose per-field labels, types and required
        flags replace the heuristic guesses.

    Returns
    -------
    ExtractionResult
        Empty collections when the PDF has no fillable fields. When the bytes
        cannot be opened as a PDF the collections are empty and
        ``parse_error`` describes the failure.
    """

    if not pdf_bytes:
        logger.warning("Extraction requested for an empty buffer")
        return ExtractionResult(parse_error="The document is empty.")

    try:
        doc = fitz.open(stream=bytes(pdf_bytes), filetype="pdf")
    except Exception as exc:
        logger.warning("Could not parse PDF: %s", exc)
        return ExtractionResult(parse_error=f"Could not read the document as a PDF: {exc}")

    try:
        if not doc.is_pdf or doc.page_count == 0:
            logger.warning("Document opened but has no PDF pages")
            return ExtractionResult(parse_error="The document has no pages.")
        raw_fields = _collect_raw_fields(doc)
    finally:
        doc.close()

    fields = tuple(_build_descriptor(raw, index) for index, raw in enumerate(raw_fields))
    if config is not None:
        fields = apply_form_config(fields, config)

    raw_values: FieldValues = {raw.name: raw.value for raw in raw_fields if raw.value}
    extracted = aggregate_canonical_values(fields, raw_values)
    logger.info("Extracted %d fields (%d with values)", len(fields), len(raw_values))
    for descriptor in fields:
        logger.debug(
            "Field #%d name='%s' kind=%s canonical=%s required=%s",
            descriptor.index,
            descriptor.name,
            descriptor.kind.value,
            descriptor.canonical_key.value if descriptor.canonical_key else None,
            descriptor.required,
        )
    return ExtractionResult(fields=fields, extracted_data=extracted)


__all__ = ["aggregate_canonical_values", "extract_fields", "is_checked", "map_widget_kind"]
