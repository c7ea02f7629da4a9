"""TaxFormFiller package."""

from .dialogue import (
	DialogueEffects,
	DialogueMode,
	DialogueState,
	advance,
	get_conversation_summary,
	get_next_question,
	reset_dialogue,
	start_dialogue,
)
from .filler import FillError, fill_pdf
from .forms import FormConfig, FormConfigError, FormRegistry, apply_form_config, load_form_config
from .heuristics import classify_canonical_key, derive_label
from .models import (
	BilingualLabel,
	CanonicalKey,
	ExtractionResult,
	FieldDescriptor,
	FieldType,
	TaxFormFillerError,
	WidgetKind,
)
from .parser import extract_fields
from .pipeline import AutofillResult, ParsedForm, autofill_from_upload, fill_parsed_form, parse_pdf
from .scheduler import Debouncer
from .session import FormSession
from .storage import SecureStorage, StorageError

__all__ = [
	"AutofillResult",
	"BilingualLabel",
	"CanonicalKey",
	"Debouncer",
	"DialogueEffects",
	"DialogueMode",
	"DialogueState",
	"ExtractionResult",
	"FieldDescriptor",
	"FieldType",
	"FillError",
	"FormConfig",
	"FormConfigError",
	"FormRegistry",
	"FormSession",
	"ParsedForm",
	"SecureStorage",
	"StorageError",
	"TaxFormFillerError",
	"WidgetKind",
	"advance",
	"apply_form_config",
	"autofill_from_upload",
	"classify_canonical_key",
	"derive_label",
	"extract_fields",
	"fill_parsed_form",
	"fill_pdf",
	"get_conversation_summary",
	"get_next_question",
	"load_form_config",
	"parse_pdf",
	"reset_dialogue",
	"start_dialogue",
]
