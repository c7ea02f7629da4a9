"""Form configuration: labels, types and required flags supplied per tax form."""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from .models import (
    DEFAULT_FIELD_TYPES,
    BilingualLabel,
    FieldDescriptor,
    FieldType,
    TaxFormFillerError,
    WidgetKind,
)
from .utils import configure_logger

logger = configure_logger(__name__)

# Interaction types a plain text widget may be configured with.
_TEXT_COMPATIBLE = frozenset({FieldType.TEXT, FieldType.NUMBER, FieldType.DATE, FieldType.EMAIL})


class FormConfigError(TaxFormFillerError):
    """Raised when a form configuration file cannot be read."""
    pass


@dataclass(frozen=True)
class FieldConfig:
    name: str
    label: Optional[BilingualLabel] = None
    field_type: Optional[FieldType] = None
    required: bool = False
    options: Tuple[str, ...] = ()
    placeholder: Optional[BilingualLabel] = None


@dataclass(frozen=True)
class FormConfig:
    """Metadata describing one tax form offered to users."""

    id: str
    name: str
    description: str = ""
    year: Optional[int] = None
    pdf_path: Optional[Path] = None
    ai_prompt: str = ""
    fields: Tuple[FieldConfig, ...] = ()

    def get_field(self, name: str) -> Optional[FieldConfig]:
        for field_config in self.fields:
            if field_config.name == name:
                return field_config
        return None

    def placeholder_for(self, name: str, language: str) -> str:
        field_config = self.get_field(name)
        if field_config is None or field_config.placeholder is None:
            return ""
        return field_config.placeholder.for_language(language)

    @property
    def assistant_instructions(self) -> str:
        if self.ai_prompt:
            return self.ai_prompt
        return (
            f"You are a Spanish tax advisor helping a user fill out {self.name}. "
            "Ask one question at a time to collect the necessary data."
        )


def _parse_label(raw: Any) -> Optional[BilingualLabel]:
    if raw is None:
        return None
    if isinstance(raw, str):
        return BilingualLabel(en=raw, es=raw)
    if isinstance(raw, Mapping):
        english = str(raw.get("en") or raw.get("es") or "")
        spanish = str(raw.get("es") or raw.get("en") or "")
        if english or spanish:
            return BilingualLabel(en=english, es=spanish)
    return None


def _parse_field_type(raw: Any, field_name: str) -> Optional[FieldType]:
    if raw is None:
        return None
    value = str(raw).strip()
    if value == "list":
        return FieldType.MULTI_SELECT
    try:
        return FieldType(value)
    except ValueError:
        logger.warning("Unknown field type '%s' for field '%s'; ignoring", value, field_name)
        return None


def _parse_field(name: str, raw: Mapping[str, Any]) -> FieldConfig:
    return FieldConfig(
        name=str(raw.get("name") or name),
        label=_parse_label(raw.get("label")),
        field_type=_parse_field_type(raw.get("type"), name),
        required=bool(raw.get("required", False)),
        options=tuple(str(option) for option in raw.get("options") or ()),
        placeholder=_parse_label(raw.get("placeholder")),
    )


def parse_form_config(payload: Mapping[str, Any], base_dir: Optional[Path] = None) -> FormConfig:
    """Build a ``FormConfig`` from its JSON representation."""

    if "id" not in payload or "name" not in payload:
        raise FormConfigError("Form configuration requires 'id' and 'name'")

    raw_fields = payload.get("fields") or payload.get("formFields") or {}
    fields: List[FieldConfig] = []
    if isinstance(raw_fields, Mapping):
        for name, raw in raw_fields.items():
            fields.append(_parse_field(str(name), raw or {}))
    elif isinstance(raw_fields, list):
        for raw in raw_fields:
            if not isinstance(raw, Mapping) or not raw.get("name"):
                raise FormConfigError("Every listed field needs a 'name'")
            fields.append(_parse_field(str(raw["name"]), raw))
    else:
        raise FormConfigError("'fields' must be an object or a list")

    pdf_value = payload.get("pdf") or payload.get("pdfPath")
    pdf_path: Optional[Path] = None
    if pdf_value:
        pdf_path = Path(str(pdf_value))
        if base_dir is not None and not pdf_path.is_absolute():
            pdf_path = base_dir / pdf_path

    year = payload.get("year")
    return FormConfig(
        id=str(payload["id"]),
        name=str(payload["name"]),
        description=str(payload.get("description", "")),
        year=int(year) if year is not None else None,
        pdf_path=pdf_path,
        ai_prompt=str(payload.get("aiPrompt") or payload.get("ai_prompt") or ""),
        fields=tuple(fields),
    )


def load_form_config(path: Path) -> FormConfig:
    path = Path(path)
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise FormConfigError(f"Could not read form configuration {path}: {exc}") from exc
    if not isinstance(payload, Mapping):
        raise FormConfigError(f"Form configuration {path} must be a JSON object")
    return parse_form_config(payload, base_dir=path.parent)


def apply_form_config(
    fields: Iterable[FieldDescriptor],
    config: FormConfig,
) -> Tuple[FieldDescriptor, ...]:
    """Overlay configured labels, types, options and required flags on extracted fields.

    Once a form has configuration it is authoritative: fields it does not list
    are treated as optional instead of falling back to the name heuristic.
    """

    merged: List[FieldDescriptor] = []
    for descriptor in fields:
        field_config = config.get_field(descriptor.name)
        if field_config is None:
            merged.append(replace(descriptor, required=False))
            continue

        field_type = descriptor.field_type
        if field_config.field_type is not None:
            if descriptor.kind == WidgetKind.TEXT and field_config.field_type in _TEXT_COMPATIBLE:
                field_type = field_config.field_type
            elif field_config.field_type == DEFAULT_FIELD_TYPES[descriptor.kind]:
                field_type = field_config.field_type
            else:
                logger.warning(
                    "Configured type '%s' does not fit %s field '%s'; keeping '%s'",
                    field_config.field_type.value,
                    descriptor.kind.value,
                    descriptor.name,
                    field_type.value,
                )

        merged.append(
            replace(
                descriptor,
                field_type=field_type,
                label=field_config.label or descriptor.label,
                required=field_config.required,
                options=descriptor.options or field_config.options,
            )
        )
    return tuple(merged)


@dataclass
class FormRegistry:
    """Directory of ``*.json`` form configurations and the PDFs they reference."""

    directory: Path
    _cache: Dict[str, FormConfig] = field(default_factory=dict, init=False, repr=False)

    def list_forms(self) -> List[FormConfig]:
        directory = Path(self.directory)
        if not directory.is_dir():
            logger.info("Forms directory %s does not exist", directory)
            return []
        forms: List[FormConfig] = []
        for path in sorted(directory.glob("*.json")):
            try:
                config = load_form_config(path)
            except FormConfigError as exc:
                logger.warning("Skipping form configuration %s: %s", path.name, exc)
                continue
            self._cache[config.id] = config
            forms.append(config)
        return forms

    def get(self, form_id: str) -> Optional[FormConfig]:
        if form_id not in self._cache:
            self.list_forms()
        return self._cache.get(form_id)

    def load_pdf(self, config: FormConfig) -> Optional[bytes]:
        if config.pdf_path is None:
            return None
        try:
            return Path(config.pdf_path).read_bytes()
        except OSError as exc:
            raise FormConfigError(f"Could not read PDF for form '{config.id}': {exc}") from exc


__all__ = [
    "FieldConfig",
    "FormConfig",
    "FormConfigError",
    "FormRegistry",
    "apply_form_config",
    "load_form_config",
    "parse_form_config",
]
