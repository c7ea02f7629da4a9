"""Streamlit UI for TaxFormFiller."""

from __future__ import annotations

import base64
import logging
from pathlib import Path
from typing import Dict, List, Optional

import streamlit as st
from dotenv import load_dotenv

from taxformfiller.config import Settings
from taxformfiller.dialogue import get_conversation_summary
from taxformfiller.filler import FillError
from taxformfiller.forms import FormConfig, FormConfigError, FormRegistry
from taxformfiller.i18n import translate
from taxformfiller.llm import configure_gemini, phrase_with_gemini
from taxformfiller.models import CHOICE_FIELD_TYPES, FieldDescriptor, FieldType
from taxformfiller.pipeline import autofill_from_upload, autofill_review_rows
from taxformfiller.session import FormSession
from taxformfiller.storage import SecureStorage, StorageError

load_dotenv()

logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

SETTINGS = Settings.from_env(load_env_file=False)
REGISTRY = FormRegistry(SETTINGS.forms_dir)
_NO_SELECTION = "-"
_MODES = {
    "assistant": "💬 Assistant",
    "manual": "📝 Manual",
    "upload": "📤 Upload filled PDF",
}


def _init_session_state() -> None:
    defaults = {
        "form_session": None,
        "form_key": None,
        "chat_log": [],
        "input_mode": "assistant",
        "language": SETTINGS.default_language,
        "storage_password": None,
        "stored_data": {},
        "use_gemini": SETTINGS.assistant_enabled,
        "autofill_key": None,
        "autofill_result": None,
    }
    for key, value in defaults.items():
        if key not in st.session_state:
            st.session_state[key] = value


def _current_session() -> Optional[FormSession]:
    return st.session_state.form_session


def _open_session(form_key: str, pdf_bytes: bytes, config: Optional[FormConfig]) -> None:
    """Replace the active session when a different form or PDF is chosen."""

    if st.session_state.form_key == form_key and st.session_state.form_session is not None:
        return
    previous = _current_session()
    if previous is not None:
        previous.close()
    session = FormSession.from_pdf(pdf_bytes, config, preview_interval=SETTINGS.preview_interval)
    st.session_state.form_session = session
    st.session_state.form_key = form_key
    st.session_state.chat_log = []
    parse_error = session.extraction.parse_error
    if parse_error:
        logging.warning("Could not parse %s: %s", form_key, parse_error)


def _phrase(message: str, session: FormSession) -> str:
    if not st.session_state.use_gemini:
        return message
    config = session.form_config
    instructions = config.assistant_instructions if config else "You help users fill out tax forms."
    return phrase_with_gemini(
        message,
        instructions,
        session.language,
        model_name=SETTINGS.gemini_model,
        temperature=SETTINGS.temperature,
        max_output_tokens=SETTINGS.max_output_tokens,
    )


def _append_chat(messages, session: FormSession) -> None:
    log: List[Dict[str, str]] = st.session_state.chat_log
    for message in messages:
        content = message["content"]
        if message["role"] == "assistant":
            content = _phrase(content, session)
        log.append({"role": message["role"], "content": content})


def _render_pdf_preview(session: FormSession) -> None:
    session.flush_preview()
    language = session.language
    if session.last_error:
        st.warning(session.last_error, icon="⚠️")

    preview_bytes = session.preview_bytes
    if not preview_bytes:
        st.info(translate("preview.noPreview", language))
        return

    st.caption(f"Preview #{session.rendered_generation} ({len(preview_bytes):,} bytes)")
    encoded = base64.b64encode(preview_bytes).decode("utf-8")
    st.markdown(
        f'<iframe src="data:application/pdf;base64,{encoded}" width="100%" height="800" '
        'style="border:none;"></iframe>',
        unsafe_allow_html=True,
    )

    try:
        download = session.download_bytes()
    except FillError as exc:
        logging.error("Could not build the download copy: %s", exc)
        st.error(translate("preview.updateFailed", language))
        return
    stem = Path(st.session_state.form_key or "form").stem
    st.download_button(
        translate("preview.download", language),
        data=download,
        file_name=f"{stem}_filled.pdf",
        mime="application/pdf",
    )


def _suggested_value(descriptor: FieldDescriptor, language: str) -> str:
    storage: Optional[SecureStorage] = st.session_state.get("_secure_storage_instance")
    stored = st.session_state.stored_data
    if not storage or not stored:
        return ""
    if descriptor.name in stored:
        return stored[descriptor.name]
    suggestion = storage.get_suggestion(descriptor.label.for_language(language), stored)
    return suggestion or ""


def _placeholder(session: FormSession, descriptor: FieldDescriptor, language: str) -> str:
    config = session.form_config
    if config is not None:
        configured = config.placeholder_for(descriptor.name, language)
        if configured:
            return configured
    if descriptor.field_type == FieldType.DATE:
        return "YYYY-MM-DD"
    return ""


def _render_field_input(
    descriptor: FieldDescriptor,
    current: str,
    language: str,
    placeholder: str = "",
    key_prefix: str = "field",
) -> str:
    label = descriptor.label.for_language(language)
    if descriptor.required:
        label = f"{label} *"
    key = f"{key_prefix}_{descriptor.index}_{descriptor.name}"

    if descriptor.field_type == FieldType.CHECKBOX:
        checked = st.checkbox(label, value=current == "true", key=key)
        return "true" if checked else "false"

    if descriptor.field_type in CHOICE_FIELD_TYPES and descriptor.options:
        choices = [_NO_SELECTION] + list(descriptor.options)
        index = choices.index(current) if current in choices else 0
        selected = st.selectbox(label, choices, index=index, key=key)
        return "" if selected == _NO_SELECTION else selected

    result = st.text_input(label, value=current, placeholder=placeholder, key=key)
    return (result or "").strip()


def _render_manual_editor(session: FormSession) -> None:
    language = session.language
    known = session.known_values()
    with st.form("manual_editor"):
        entered: Dict[str, str] = {}
        for descriptor in session.fields:
            current = known.get(descriptor.name) or _suggested_value(descriptor, language)
            entered[descriptor.name] = _render_field_input(
                descriptor, current, language, _placeholder(session, descriptor, language)
            )
        submitted = st.form_submit_button("Update preview")

    if submitted:
        changed = {name: value for name, value in entered.items() if value != known.get(name, "")}
        session.update_values(changed)
        missing = session.missing_required()
        if missing:
            labels = [
                session.extraction.get_field(name).label.for_language(language) for name in missing
            ]
            st.warning(f"Required: {', '.join(labels)}")


def _render_chat_interface(session: FormSession) -> None:
    if session.dialogue is None:
        session.start_dialogue(st.session_state.language)
        _append_chat(session.dialogue.transcript, session)

    state = session.dialogue
    if not state.is_complete:
        user_message = st.chat_input("Type your response")
        if user_message:
            effects = session.submit_answer(user_message)
            _append_chat(effects.messages, session)
            state = session.dialogue

    for message in st.session_state.chat_log:
        with st.chat_message("user" if message["role"] == "user" else "assistant"):
            st.markdown(message["content"])

    if state.pending:
        answered, total = state.get_progress()
        st.progress(answered / total if total else 1.0, text=f"{answered}/{total}")

    if state.is_complete:
        st.success(translate("dialogue.complete", state.language))
        st.markdown(get_conversation_summary(state))


def _render_upload_autofill(session: FormSession) -> None:
    language = session.language
    uploaded = st.file_uploader("Filled PDF", type=["pdf"], key="autofill_upload")
    if not uploaded:
        return
    if not uploaded.name.lower().endswith(".pdf"):
        st.error(translate("upload.pdfOnly", language))
        return

    upload_key = f"{uploaded.name}:{uploaded.size}"
    if session.has_applied_upload(upload_key):
        st.success(translate("upload.applied", language, filename=uploaded.name))
        return

    # Extraction runs once per file; reruns reuse the stored result.
    if st.session_state.get("autofill_key") != upload_key:
        st.session_state.autofill_key = upload_key
        st.session_state.autofill_result = autofill_from_upload(session.fields, uploaded.getvalue())
    result = st.session_state.autofill_result

    if result.parse_error:
        st.error(translate("upload.parseError", language))
        return
    if result.no_fields_found or not result.values:
        st.info(translate("upload.noFields", language))
        return

    if result.missing_required:
        st.warning(translate("upload.dataPartiallyExtracted", language, count=len(result.missing_required)))
        labels = [
            session.extraction.get_field(name).label.for_language(language) for name in result.missing_required
        ]
        st.markdown(translate("upload.missingTitle", language, fields=", ".join(labels)))
    else:
        st.success(translate("upload.dataExtracted", language))

    st.caption(translate("upload.reviewTitle", language))
    with st.form("upload_review"):
        reviewed: Dict[str, str] = {}
        for row in autofill_review_rows(session.fields, result):
            reviewed[row.field.name] = _render_field_input(
                row.field,
                row.value,
                language,
                _placeholder(session, row.field, language),
                key_prefix="review",
            )
        confirmed = st.form_submit_button(translate("upload.confirm", language))

    if confirmed and session.apply_upload(upload_key, reviewed):
        st.session_state.autofill_key = None
        st.session_state.autofill_result = None
        st.rerun()


def _render_storage_sidebar(session: Optional[FormSession]) -> None:
    st.header("🔐 Secure Storage")
    st.markdown("Encrypt and save your progress for later.")

    password = st.text_input(
        "Storage Password",
        type="password",
        value=st.session_state.storage_password or "",
        help="Set a password to encrypt/decrypt your stored data",
    )
    if not password:
        return

    if password != st.session_state.storage_password or "_secure_storage_instance" not in st.session_state:
        st.session_state.storage_password = password
        try:
            st.session_state._secure_storage_instance = SecureStorage(SETTINGS.storage_dir)
        except (OSError, StorageError) as exc:
            st.error(f"Storage error: {exc}")
            return

    storage: SecureStorage = st.session_state._secure_storage_instance
    language = session.language if session else st.session_state.language
    form_id = st.session_state.form_key
    if session is None or not form_id:
        return

    col_save, col_load = st.columns(2)
    if col_save.button("💾 Save"):
        try:
            storage.save_progress(form_id, session.values, password, form_name=session.form_name)
            st.success(translate("form.progressSaved", language))
        except StorageError as exc:
            logging.error("Saving progress failed: %s", exc)
            st.error(translate("form.saveError", language))
    if col_load.button("📂 Load"):
        try:
            loaded = storage.load_progress(form_id, password)
        except StorageError as exc:
            st.error(str(exc))
        else:
            st.session_state.stored_data = loaded
            session.update_values(loaded)
            st.success(translate("form.progressLoaded", language, count=len(loaded)))

    if storage.has_stored_data() and st.button("🗑️ Clear Storage"):
        storage.delete_all_data()
        st.session_state.stored_data = {}
        st.session_state.storage_password = None
        del st.session_state._secure_storage_instance
        st.rerun()


def _select_form() -> None:
    forms = REGISTRY.list_forms()
    options = {config.id: config for config in forms}
    labels = ["Upload my own PDF"] + [f"{config.name} ({config.year})" if config.year else config.name for config in forms]
    ids = [None] + list(options)
    choice = st.selectbox("Tax form", range(len(labels)), format_func=lambda i: labels[i])
    config = options.get(ids[choice]) if ids[choice] else None

    pdf_bytes: Optional[bytes] = None
    form_key: Optional[str] = None
    if config is not None:
        if config.description:
            st.caption(config.description)
        try:
            pdf_bytes = REGISTRY.load_pdf(config)
        except FormConfigError as exc:
            logging.warning("%s", exc)
        form_key = config.id

    if pdf_bytes is None:
        uploaded_pdf = st.file_uploader("Upload PDF form", type=["pdf"], accept_multiple_files=False)
        if not uploaded_pdf:
            st.info("Upload a PDF form to begin.")
            return
        pdf_bytes = uploaded_pdf.getvalue()
        form_key = f"{form_key}:{uploaded_pdf.name}" if form_key else uploaded_pdf.name

    _open_session(form_key, pdf_bytes, config)


def main() -> None:
    st.set_page_config(page_title="TaxFormFiller", page_icon="🧾", layout="wide")
    _init_session_state()

    if SETTINGS.assistant_enabled:
        try:
            configure_gemini(SETTINGS.google_api_key)
        except ValueError:
            st.session_state.use_gemini = False

    st.title("TaxFormFiller")
    st.write("Pick a tax form, answer a few questions and download the filled PDF.")
    _select_form()
    session = _current_session()

    with st.sidebar:
        st.session_state.language = st.radio(
            "Language / Idioma",
            ["en", "es"],
            index=0 if st.session_state.language == "en" else 1,
            format_func=lambda code: "English" if code == "en" else "Español",
        )
        if SETTINGS.assistant_enabled:
            st.session_state.use_gemini = st.toggle("Reword questions with Gemini", value=st.session_state.use_gemini)
        _render_storage_sidebar(session)

    if session is None:
        return
    if session.extraction.parse_error:
        st.error(translate("upload.parseError", st.session_state.language))
        return
    if not session.fields:
        st.info(translate("upload.noFields", st.session_state.language))
        return

    st.session_state.input_mode = st.radio(
        "Input mode",
        list(_MODES),
        index=list(_MODES).index(st.session_state.input_mode),
        format_func=_MODES.get,
        horizontal=True,
    )

    left, right = st.columns([1, 1])
    with left:
        if st.session_state.input_mode == "assistant":
            _render_chat_interface(session)
        elif st.session_state.input_mode == "manual":
            _render_manual_editor(session)
        else:
            _render_upload_autofill(session)
    with right:
        _render_pdf_preview(session)


if __name__ == "__main__":
    main()
