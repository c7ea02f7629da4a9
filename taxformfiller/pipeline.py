"""High level orchestration helpers for the three input modes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, NamedTuple, Optional, Sequence, Tuple

from .dialogue import DialogueState, advance, required_fields_lacking_value, start_dialogue
from .filler import fill_pdf
from .forms import FormConfig
from .models import ExtractionResult, FieldDescriptor, FieldValues
from .parser import extract_fields
from .utils import configure_logger

logger = configure_logger(__name__)


@dataclass
class ParsedForm:
    pdf_bytes: bytes
    extraction: ExtractionResult
    config: Optional[FormConfig] = None

    @property
    def fields(self) -> Tuple[FieldDescriptor, ...]:
        return self.extraction.fields


@dataclass(frozen=True)
class AutofillResult:
    """Values recovered from an uploaded, already filled PDF."""

    values: FieldValues = field(default_factory=dict)
    missing_required: Tuple[str, ...] = ()
    parse_error: Optional[str] = None
    source_field_count: int = 0

    @property
    def no_fields_found(self) -> bool:
        return self.parse_error is None and self.source_field_count == 0


def parse_pdf(pdf_bytes: bytes, config: Optional[FormConfig] = None) -> ParsedForm:
    """Extract the catalog of ``pdf_bytes`` with ``config`` overlaid.

    Configuration only annotates widgets the PDF really has. A PDF without
    fillable fields yields an empty catalog even when its configuration lists
    fields, because values for those fields could never be written.
    """

    extraction = extract_fields(pdf_bytes, config)
    if extraction.is_empty and config is not None and config.fields:
        logger.warning(
            "Form '%s' configures %d field(s) but its PDF has no fillable fields",
            config.id,
            len(config.fields),
        )
    return ParsedForm(pdf_bytes=pdf_bytes, extraction=extraction, config=config)


def fill_parsed_form(parsed_form: ParsedForm, values: Mapping[str, str], flatten: bool = False) -> bytes:
    return fill_pdf(parsed_form.pdf_bytes, parsed_form.fields, values, flatten=flatten)


def find_missing_required(fields: Sequence[FieldDescriptor], values: Mapping[str, str]) -> Tuple[str, ...]:
    return required_fields_lacking_value(fields, values)


def map_extracted_values(
    target_fields: Sequence[FieldDescriptor],
    extracted: Mapping[str, str],
) -> FieldValues:
    """Project values from another PDF onto the target catalog by raw name, then canonical key."""

    mapped: FieldValues = {}
    for descriptor in target_fields:
        value = extracted.get(descriptor.name)
        if not value and descriptor.canonical_key is not None:
            value = extracted.get(descriptor.canonical_key.value)
        if value:
            mapped[descriptor.name] = value
    return mapped


def autofill_from_upload(target_fields: Sequence[FieldDescriptor], uploaded_pdf: bytes) -> AutofillResult:
    """Read an uploaded PDF and return the values that fit the target form."""

    extraction = extract_fields(uploaded_pdf)
    if extraction.parse_error is not None:
        return AutofillResult(parse_error=extraction.parse_error)

    values = map_extracted_values(target_fields, extraction.extracted_data)
    missing = find_missing_required(target_fields, values)
    logger.info(
        "Autofill mapped %d value(s) from %d uploaded field(s); %d required missing",
        len(values),
        len(extraction.fields),
        len(missing),
    )
    return AutofillResult(
        values=values,
        missing_required=missing,
        source_field_count=len(extraction.fields),
    )


class ReviewRow(NamedTuple):
    field: FieldDescriptor
    value: str
    missing: bool


def autofill_review_rows(
    target_fields: Sequence[FieldDescriptor],
    result: AutofillResult,
) -> Tuple[ReviewRow, ...]:
    """Rows to confirm before applying an upload.

    Every extracted value is listed for editing, followed by the required
    fields the upload did not provide, in catalog order within each group.
    """

    extracted = [ReviewRow(d, result.values[d.name], False) for d in target_fields if d.name in result.values]
    missing = set(result.missing_required)
    lacking = [ReviewRow(d, "", True) for d in target_fields if d.name in missing]
    return tuple(extracted + lacking)


def collect_answers(
    parsed_form: ParsedForm,
    *,
    existing_state: Optional[DialogueState] = None,
    existing_values: Optional[Mapping[str, str]] = None,
    user_input: Optional[str] = None,
    language: Optional[str] = None,
) -> DialogueState:
    """Advance or initialise a guided dialogue for ``parsed_form``.

    Callers pass the current state and optional user input, and receive the
    updated state.
    """

    state = existing_state
    if state is None:
        known = dict(parsed_form.extraction.extracted_data)
        known.update(existing_values or {})
        form_name = parsed_form.config.name if parsed_form.config else ""
        state = start_dialogue(parsed_form.fields, known, language=language, form_name=form_name)
    if not user_input:
        return state
    return advance(state, user_input).state


__all__ = [
    "AutofillResult",
    "ParsedForm",
    "ReviewRow",
    "autofill_from_upload",
    "autofill_review_rows",
    "collect_answers",
    "fill_parsed_form",
    "find_missing_required",
    "map_extracted_values",
    "parse_pdf",
]
