"""Form Filler / Renderer: write collected values back into the PDF's AcroForm fields."""

from __future__ import annotations

from typing import Dict, Mapping, Optional, Sequence

import fitz

from .models import FieldDescriptor, TaxFormFillerError, WidgetKind
from .utils import configure_logger

logger = configure_logger(__name__)


class FillError(TaxFormFillerError):
    """Raised when a filled document cannot be produced."""
    pass


def _normalize_field_name(name: Optional[str]) -> Optional[str]:
    if isinstance(name, str):
        cleaned = name.strip()
        return cleaned or None
    return None


def resolve_assignments(
    fields: Sequence[FieldDescriptor],
    values: Mapping[str, str],
) -> Dict[str, str]:
    """Map each value onto a raw field name.

    Keys naming a field directly win. Remaining keys are tried as canonical
    keys and land on the first field carrying that key. Anything else is
    skipped, since value sets routinely hold entries another form owns.
    """

    by_name = {descriptor.name: descriptor for descriptor in fields}
    assignments: Dict[str, str] = {}
    for key, value in values.items():
        if key in by_name and value is not None:
            assignments[key] = str(value)

    for key, value in values.items():
        if key in by_name or value is None:
            continue
        target = next(
            (d for d in fields if d.canonical_key is not None and d.canonical_key.value == key),
            None,
        )
        if target is None:
            logger.debug("No field named or keyed '%s' in this form; skipping", key)
            continue
        if target.name in assignments:
            logger.debug("Field '%s' already set by name; ignoring canonical '%s'", target.name, key)
            continue
        assignments[target.name] = str(value)
    return assignments


def _checkbox_on_state(widget: fitz.Widget) -> str:
    try:
        state = widget.on_state()
    except Exception:
        state = None
    if isinstance(state, str) and state.strip():
        return state
    return "Yes"


def _apply_value_to_widget(widget: fitz.Widget, descriptor: FieldDescriptor, value: str) -> bool:
    kind = descriptor.kind
    if kind == WidgetKind.CHECKBOX:
        checked = value == "true"
        widget.field_value = _checkbox_on_state(widget) if checked else "Off"
        widget.update()
        logger.debug("Checkbox '%s' checked=%s", descriptor.name, checked)
        return True

    if kind == WidgetKind.RADIO:
        if value not in descriptor.options:
            logger.debug("Radio '%s' has no option '%s'; leaving unchanged", descriptor.name, value)
            return False
        if _checkbox_on_state(widget) != value:
            return False
        widget.field_value = True
        widget.update()
        logger.debug("Radio '%s' selected '%s'", descriptor.name, value)
        return True

    if kind in {WidgetKind.DROPDOWN, WidgetKind.LIST}:
        # List boxes take a single selection, like dropdowns.
        if value not in descriptor.options:
            logger.debug("Choice '%s' has no option '%s'; leaving unchanged", descriptor.name, value)
            return False
        widget.field_value = value
        widget.update()
        logger.debug("Choice '%s' selected '%s'", descriptor.name, value)
        return True

    widget.field_value = value
    widget.update()
    logger.debug("Text '%s' set to '%s'", descriptor.name, value)
    return True


def fill_pdf(
    pdf_bytes: bytes,
    fields: Sequence[FieldDescriptor],
    values: Mapping[str, str],
    *,
    flatten: bool = False,
) -> bytes:
    """Return a new PDF buffer with ``values`` written into the form.

    Parameters
    ----------
    pdf_bytes:
        The original document. It is never modified.
    fields:
        Field catalog produced by ``extract_fields`` for this document.
    values:
        Mapping of raw field names or canonical keys to string values.
    flatten:
        Bake the filled widgets into page content. Only use this for the
        copy handed out for download or print; flattened fields cannot be
        filled again.

    Raises
    ------
    FillError
        If the document cannot be opened or serialised.
    """

    assignments = resolve_assignments(fields, values)
    by_name = {descriptor.name: descriptor for descriptor in fields}
    logger.info("Starting fill: %d values for %d catalog fields", len(assignments), len(fields))

    try:
        doc = fitz.open(stream=bytes(pdf_bytes), filetype="pdf")
    except Exception as exc:
        raise FillError(f"Could not open the document for filling: {exc}") from exc

    try:
        filled = set()
        for page in doc:
            for widget in page.widgets():
                name = _normalize_field_name(getattr(widget, "field_name", None))
                if name is None or name not in assignments:
                    continue
                try:
                    if _apply_value_to_widget(widget, by_name[name], assignments[name]):
                        filled.add(name)
                except Exception as exc:
                    logger.warning("Could not update field '%s': %s", name, exc)

        if flatten:
            doc.bake(annots=False, widgets=True)
            logger.info("Flattened form widgets into page content")

        output = doc.tobytes(garbage=4, deflate=True, no_new_id=True)
    except Exception as exc:
        logger.exception("Serialising the filled document failed")
        raise FillError(f"Could not serialise the filled document: {exc}") from exc
    finally:
        doc.close()

    logger.info("Fill complete: %d fields written, %d bytes", len(filled), len(output))
    return output


__all__ = ["FillError", "fill_pdf", "resolve_assignments"]
