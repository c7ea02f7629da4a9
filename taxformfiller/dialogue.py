"""Guided Dialogue Controller: collect missing required fields one question at a time.

Transitions are pure functions ``(state, user_input) -> DialogueStep`` so the
whole flow can be driven and tested without a UI. The transcript stored on the
state is presentation only; ``collected`` is what the rest of the system trusts.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Tuple

from .i18n import DEFAULT_LANGUAGE, detect_language, normalize_language, translate
from .models import CHOICE_FIELD_TYPES, FieldDescriptor, FieldType, FieldValues
from .utils import configure_logger
from .validators import validate_answer

logger = configure_logger(__name__)

Message = Dict[str, str]


class DialogueMode(str, Enum):
    AWAITING_LANGUAGE_CHOICE = "awaitingLanguageChoice"
    COLLECTING_FIELD = "collectingField"
    COMPLETE = "complete"


@dataclass(frozen=True)
class DialogueState:
    """Immutable snapshot of a guided form-filling session."""

    fields: Tuple[FieldDescriptor, ...]
    mode: DialogueMode = DialogueMode.AWAITING_LANGUAGE_CHOICE
    current_field_index: int = 0
    collected: FieldValues = field(default_factory=dict)
    prefilled: FieldValues = field(default_factory=dict)
    language: str = DEFAULT_LANGUAGE
    pending: Tuple[str, ...] = ()
    transcript: Tuple[Message, ...] = ()
    form_name: str = ""

    @property
    def is_complete(self) -> bool:
        return self.mode == DialogueMode.COMPLETE

    def get_field(self, name: str) -> Optional[FieldDescriptor]:
        for descriptor in self.fields:
            if descriptor.name == name:
                return descriptor
        return None

    def get_current_field(self) -> Optional[FieldDescriptor]:
        """Return the field currently awaiting an answer."""

        if self.mode != DialogueMode.COLLECTING_FIELD:
            return None
        if 0 <= self.current_field_index < len(self.pending):
            return self.get_field(self.pending[self.current_field_index])
        return None

    def is_field_answered(self, name: str) -> bool:
        return bool(self.collected.get(name) or self.prefilled.get(name))

    def merged_values(self) -> FieldValues:
        merged = dict(self.prefilled)
        merged.update(self.collected)
        return merged

    def get_progress(self) -> Tuple[int, int]:
        """Return ``(answered, total)`` over the fields this dialogue asks about."""

        answered = sum(1 for name in self.pending if self.is_field_answered(name))
        return answered, len(self.pending)


@dataclass(frozen=True)
class DialogueEffects:
    """What a transition produced besides the new state."""

    messages: Tuple[Message, ...] = ()
    committed: Optional[Tuple[str, str]] = None
    completed: bool = False
    error_key: Optional[str] = None


class DialogueStep(NamedTuple):
    state: DialogueState
    effects: DialogueEffects


def _message(role: str, content: str) -> Message:
    return {"role": role, "content": content}


def required_fields_lacking_value(
    fields: Iterable[FieldDescriptor],
    values: Mapping[str, str],
) -> Tuple[str, ...]:
    return tuple(d.name for d in fields if d.required and not values.get(d.name))


def _question_key(descriptor: FieldDescriptor) -> str:
    if descriptor.field_type in CHOICE_FIELD_TYPES and descriptor.options:
        return "dialogue.ask.choice"
    if descriptor.field_type in {FieldType.NUMBER, FieldType.DATE, FieldType.EMAIL, FieldType.CHECKBOX}:
        return f"dialogue.ask.{descriptor.field_type.value}"
    return "dialogue.ask.text"


def get_next_question(state: DialogueState) -> str:
    """Render the prompt for the current field, or the completion message when done."""

    if state.mode == DialogueMode.AWAITING_LANGUAGE_CHOICE:
        return _language_prompt(state.form_name, state.language)
    descriptor = state.get_current_field()
    if descriptor is None:
        return translate("dialogue.complete", state.language)
    return translate(
        _question_key(descriptor),
        state.language,
        position=state.current_field_index + 1,
        total=len(state.pending),
        label=descriptor.label.for_language(state.language),
        options=", ".join(descriptor.options),
    )


def _language_prompt(form_name: str, language: str) -> str:
    ordered = [language] + [lang for lang in ("en", "es") if lang != language]
    parts: List[str] = []
    for lang in ordered:
        greeting = translate("dialogue.greeting", lang, form_name=form_name or "this form")
        parts.append(f"{greeting} {translate('dialogue.chooseLanguage', lang)}")
    return "\n\n".join(parts)


def _language_retry(language: str) -> str:
    ordered = [language] + [lang for lang in ("en", "es") if lang != language]
    return "\n\n".join(translate("dialogue.languageRetry", lang) for lang in ordered)


def _next_unanswered_index(state: DialogueState, start: int) -> Optional[int]:
    for index in range(start, len(state.pending)):
        if not state.is_field_answered(state.pending[index]):
            return index
    return None


def start_dialogue(
    fields: Iterable[FieldDescriptor],
    existing_values: Optional[Mapping[str, str]] = None,
    language: Optional[str] = None,
    form_name: str = "",
) -> DialogueState:
    """Create the initial state: a bilingual greeting asking for a language.

    When nothing required is missing the dialogue is complete straight away
    instead of waiting for a field that will never be asked.
    """

    catalog = tuple(fields)
    prefilled = {k: v for k, v in (existing_values or {}).items() if v}
    lang = normalize_language(language)
    missing = required_fields_lacking_value(catalog, prefilled)
    if not missing:
        logger.info("No required fields missing for '%s'; dialogue complete", form_name)
        return DialogueState(
            fields=catalog,
            mode=DialogueMode.COMPLETE,
            prefilled=prefilled,
            language=lang,
            transcript=(_message("assistant", translate("dialogue.nothingToAsk", lang)),),
            form_name=form_name,
        )

    return DialogueState(
        fields=catalog,
        prefilled=prefilled,
        language=lang,
        transcript=(_message("assistant", _language_prompt(form_name, lang)),),
        form_name=form_name,
    )


def _choose_language(state: DialogueState, user_input: str) -> DialogueStep:
    user_message = _message("user", user_input)
    language = detect_language(user_input)
    if language is None:
        reply = _message("assistant", _language_retry(state.language))
        new_state = replace(state, transcript=state.transcript + (user_message, reply))
        return DialogueStep(new_state, DialogueEffects(messages=(user_message, reply)))

    pending = required_fields_lacking_value(state.fields, state.merged_values())
    if not pending:
        reply = _message("assistant", translate("dialogue.nothingToAsk", language))
        new_state = replace(
            state,
            mode=DialogueMode.COMPLETE,
            language=language,
            transcript=state.transcript + (user_message, reply),
        )
        return DialogueStep(new_state, DialogueEffects(messages=(user_message, reply), completed=True))

    collecting = replace(
        state,
        mode=DialogueMode.COLLECTING_FIELD,
        language=language,
        pending=pending,
        current_field_index=0,
    )
    intro = translate("dialogue.intro", language, count=len(pending))
    reply = _message("assistant", f"{intro}\n\n{get_next_question(collecting)}")
    new_state = replace(collecting, transcript=state.transcript + (user_message, reply))
    logger.info("Dialogue language '%s'; %d field(s) to collect", language, len(pending))
    return DialogueStep(new_state, DialogueEffects(messages=(user_message, reply)))


def _collect_answer(state: DialogueState, user_input: str) -> DialogueStep:
    descriptor = state.get_current_field()
    user_message = _message("user", user_input)
    if descriptor is None:
        # Index ran past the pending list; nothing left to ask.
        reply = _message("assistant", translate("dialogue.complete", state.language))
        new_state = replace(state, mode=DialogueMode.COMPLETE, transcript=state.transcript + (user_message, reply))
        return DialogueStep(new_state, DialogueEffects(messages=(user_message, reply), completed=True))

    result = validate_answer(descriptor, user_input, state.language)
    if not result.is_valid:
        logger.debug("Rejected answer for '%s' (%s)", descriptor.name, result.error_key)
        reply = _message(
            "assistant",
            translate(
                "dialogue.retry",
                state.language,
                error=translate(result.error_key or "dialogue.error.text", state.language),
                question=get_next_question(state),
            ),
        )
        new_state = replace(state, transcript=state.transcript + (user_message, reply))
        return DialogueStep(
            new_state,
            DialogueEffects(messages=(user_message, reply), error_key=result.error_key),
        )

    collected = dict(state.collected)
    collected[descriptor.name] = result.formatted_value
    committed = replace(state, collected=collected)
    next_index = _next_unanswered_index(committed, state.current_field_index + 1)
    effects_commit = (descriptor.name, result.formatted_value)
    logger.info("Committed value for '%s'", descriptor.name)

    if next_index is None:
        reply = _message("assistant", translate("dialogue.complete", state.language))
        new_state = replace(
            committed,
            mode=DialogueMode.COMPLETE,
            current_field_index=len(state.pending),
            transcript=state.transcript + (user_message, reply),
        )
        return DialogueStep(
            new_state,
            DialogueEffects(messages=(user_message, reply), committed=effects_commit, completed=True),
        )

    advanced = replace(committed, current_field_index=next_index)
    reply = _message("assistant", get_next_question(advanced))
    new_state = replace(advanced, transcript=state.transcript + (user_message, reply))
    return DialogueStep(new_state, DialogueEffects(messages=(user_message, reply), committed=effects_commit))


def advance(state: DialogueState, user_input: str) -> DialogueStep:
    """Apply one user message to the dialogue.

    Args:
        state: Current dialogue state.
        user_input: Raw text typed by the user.

    Returns:
        The new state and the effects of the transition. A completed
        dialogue ignores further input and returns the state unchanged.
    """

    if state.mode == DialogueMode.COMPLETE:
        return DialogueStep(state, DialogueEffects())
    cleaned = (user_input or "").strip()
    if state.mode == DialogueMode.AWAITING_LANGUAGE_CHOICE:
        return _choose_language(state, cleaned)
    return _collect_answer(state, cleaned)


def reset_dialogue(state: DialogueState) -> DialogueState:
    """Start over with the same catalog and prefilled values, dropping collected answers."""

    return start_dialogue(state.fields, state.prefilled, state.language, state.form_name)


def get_conversation_summary(state: DialogueState) -> str:
    """Markdown list of every required field and its current value."""

    values = state.merged_values()
    lines = [f"**{translate('dialogue.summaryTitle', state.language)}:**\n"]
    not_provided = translate("dialogue.notProvided", state.language)
    for descriptor in state.fields:
        if not descriptor.required and descriptor.name not in values:
            continue
        label = descriptor.label.for_language(state.language)
        lines.append(f"- **{label}**: {values.get(descriptor.name, not_provided)}")
    return "\n".join(lines)


__all__ = [
    "DialogueEffects",
    "DialogueMode",
    "DialogueState",
    "DialogueStep",
    "advance",
    "get_conversation_summary",
    "get_next_question",
    "required_fields_lacking_value",
    "reset_dialogue",
    "start_dialogue",
]
