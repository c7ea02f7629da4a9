"""Per-form editing session: value set, guided dialogue and rate-limited live preview."""

from __future__ import annotations

import threading
from typing import Callable, Dict, Mapping, Optional, Sequence, Set, Tuple

from .dialogue import DialogueEffects, DialogueState, advance, required_fields_lacking_value, start_dialogue
from .filler import FillError, fill_pdf
from .forms import FormConfig
from .i18n import DEFAULT_LANGUAGE, translate
from .models import ExtractionResult, FieldDescriptor, FieldValues
from .pipeline import parse_pdf
from .scheduler import Debouncer, TimerFactory
from .utils import configure_logger

logger = configure_logger(__name__)

DEFAULT_PREVIEW_INTERVAL = 0.3

Filler = Callable[..., bytes]


class FormSession:
    """Own one loaded PDF and everything derived from it.

    The original buffer is never modified. Every value change schedules a
    re-render through a debouncer; renders run one at a time and a render that
    has been superseded by a newer request is discarded when it finishes.
    """

    def __init__(
        self,
        pdf_bytes: bytes,
        extraction: ExtractionResult,
        *,
        form_config: Optional[FormConfig] = None,
        preview_interval: float = DEFAULT_PREVIEW_INTERVAL,
        timer_factory: Optional[TimerFactory] = None,
        filler: Filler = fill_pdf,
    ) -> None:
        self._original = bytes(pdf_bytes)
        self.extraction = extraction
        self.form_config = form_config
        self.values: FieldValues = {}
        self.dialogue: Optional[DialogueState] = None
        self.last_error: Optional[str] = None
        self._filler = filler
        self._preview = self._original
        self._state_lock = threading.Lock()
        self._render_lock = threading.Lock()
        self._requested_generation = 0
        self._rendered_generation = 0
        self._download_key: Optional[Tuple[Tuple[str, str], ...]] = None
        self._download: Optional[bytes] = None
        self._applied_uploads: Set[str] = set()
        if timer_factory is None:
            self._debouncer = Debouncer(self._render, preview_interval)
        else:
            self._debouncer = Debouncer(self._render, preview_interval, timer_factory)

    @classmethod
    def from_pdf(cls, pdf_bytes: bytes, form_config: Optional[FormConfig] = None, **kwargs) -> "FormSession":
        parsed = parse_pdf(pdf_bytes, form_config)
        return cls(pdf_bytes, parsed.extraction, form_config=form_config, **kwargs)

    @property
    def fields(self) -> Tuple[FieldDescriptor, ...]:
        return self.extraction.fields

    @property
    def original_bytes(self) -> bytes:
        return self._original

    @property
    def preview_bytes(self) -> bytes:
        with self._state_lock:
            return self._preview

    @property
    def rendered_generation(self) -> int:
        with self._state_lock:
            return self._rendered_generation

    @property
    def language(self) -> str:
        if self.dialogue is not None:
            return self.dialogue.language
        return DEFAULT_LANGUAGE

    @property
    def form_name(self) -> str:
        if self.form_config is not None:
            return self.form_config.name
        return ""

    def known_values(self) -> FieldValues:
        """Values already present in the PDF overlaid with everything entered since."""

        merged = dict(self.extraction.extracted_data)
        merged.update(self.values)
        return merged

    def missing_required(self) -> Sequence[str]:
        return required_fields_lacking_value(self.fields, self.known_values())

    def set_value(self, name: str, value: str) -> None:
        self.values[name] = value
        self.request_preview()

    def update_values(self, values: Mapping[str, str]) -> None:
        if not values:
            return
        self.values.update({key: str(value) for key, value in values.items()})
        self.request_preview()

    def request_preview(self) -> int:
        with self._state_lock:
            self._requested_generation += 1
            generation = self._requested_generation
        self._debouncer.submit(generation, dict(self.values))
        return generation

    def flush_preview(self) -> bool:
        """Render any pending preview immediately."""

        return self._debouncer.flush()

    def _render(self, generation: int, values: Dict[str, str]) -> None:
        with self._render_lock:
            try:
                rendered = self._filler(self._original, self.fields, values)
            except FillError as exc:
                logger.warning("Preview render %d failed: %s", generation, exc)
                with self._state_lock:
                    self.last_error = translate("preview.updateFailed", self.language)
                return
            with self._state_lock:
                if generation < self._requested_generation:
                    logger.debug("Discarding superseded preview render %d", generation)
                    return
                self._preview = rendered
                self._rendered_generation = generation
                self.last_error = None
            logger.info("Preview render %d applied (%d bytes)", generation, len(rendered))

    def apply_upload(self, upload_key: str, values: Mapping[str, str]) -> bool:
        """Merge reviewed values from an uploaded PDF, once per ``upload_key``.

        Returns False when that upload was already applied, so re-submitting
        the same file cannot overwrite values entered or loaded since.
        """

        if upload_key in self._applied_uploads:
            logger.debug("Upload '%s' already applied; ignoring", upload_key)
            return False
        self._applied_uploads.add(upload_key)
        self.update_values({name: value for name, value in values.items() if value})
        logger.info("Applied %d value(s) from upload '%s'", len(values), upload_key)
        return True

    def has_applied_upload(self, upload_key: str) -> bool:
        return upload_key in self._applied_uploads

    def download_bytes(self) -> bytes:
        """Produce the flattened copy for download. The preview copy stays editable.

        The copy is rebuilt only when the value set changed since the last call.
        """

        key = tuple(sorted(self.values.items()))
        if self._download is not None and key == self._download_key:
            return self._download
        self._download = self._filler(self._original, self.fields, dict(self.values), flatten=True)
        self._download_key = key
        return self._download

    def start_dialogue(self, language: Optional[str] = None) -> DialogueState:
        self.dialogue = start_dialogue(
            self.fields,
            existing_values=self.known_values(),
            language=language,
            form_name=self.form_name,
        )
        return self.dialogue

    def submit_answer(self, user_input: str) -> DialogueEffects:
        """Feed one chat message to the dialogue and refresh the preview on commits."""

        dialogue = self.dialogue or self.start_dialogue()
        step = advance(dialogue, user_input)
        self.dialogue = step.state
        if step.effects.committed is not None:
            name, value = step.effects.committed
            self.set_value(name, value)
        return step.effects

    def close(self) -> None:
        self._debouncer.cancel()


__all__ = ["DEFAULT_PREVIEW_INTERVAL", "FormSession"]
