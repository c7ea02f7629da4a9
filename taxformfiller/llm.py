"""Optional Gemini phrasing for the guided dialogue.

The dialogue controller decides what to ask and validates every answer on its
own. Gemini is only used to reword the controller's messages in the voice of
the form's assistant instructions, and any failure falls back to the original
text.
"""

from __future__ import annotations

import os
from typing import Optional

import google.generativeai as genai

from .utils import configure_logger

logger = configure_logger(__name__)

_LANGUAGE_NAMES = {"en": "English", "es": "Spanish"}


def configure_gemini(api_key: Optional[str] = None) -> None:
    """Configure Google Gemini API with the provided or environment API key.

    Raises:
        ValueError: If no API key is found.
    """
    key = api_key or os.getenv("GOOGLE_API_KEY")
    if not key:
        raise ValueError(
            "Google API key not found. Set GOOGLE_API_KEY environment variable "
            "or pass api_key parameter."
        )
    genai.configure(api_key=key)


def _normalise_model_name(raw_name: str) -> str:
    if not raw_name:
        return "models/gemini-2.0-flash-lite"
    slug = raw_name.strip().lower().replace(" ", "-")
    if not slug.startswith("models/"):
        slug = f"models/{slug}"
    return slug


def _build_prompt(message: str, instructions: str, language: str) -> str:
    language_name = _LANGUAGE_NAMES.get(language, "English")
    return f"""{instructions}

Rewrite the assistant message below so it sounds friendly and natural.
Rules:
- Reply in {language_name}.
- Keep every question, option, number, date format and field name exactly as given.
- Do not add new questions or ask for anything else.
- Return only the rewritten message.

Assistant message:
{message}
"""


def phrase_with_gemini(
    message: str,
    instructions: str,
    language: str = "en",
    *,
    model_name: str = "gemini-2.0-flash-lite",
    temperature: float = 0.2,
    max_output_tokens: int = 256,
) -> str:
    """Return ``message`` reworded by Gemini, or unchanged if Gemini gives nothing usable."""

    try:
        model = genai.GenerativeModel(
            _normalise_model_name(model_name),
            generation_config={
                "temperature": temperature,
                "max_output_tokens": max_output_tokens,
            },
        )
        response = model.generate_content(_build_prompt(message, instructions, language))
    except Exception as exc:
        logger.warning("[Gemini] Phrasing request failed: %s", exc)
        return message

    candidate = next((c for c in (response.candidates or []) if c.content.parts), None)
    if candidate is None:
        logger.warning("[Gemini] No candidate parts returned; keeping original message")
        return message

    finish_reason = getattr(candidate, "finish_reason", None)
    # STOP is encoded as integer 1 in the current API; None/0/1 are acceptable.
    if finish_reason not in (None, 0, 1):
        logger.warning("[Gemini] Candidate not finished cleanly (reason=%s)", finish_reason)
        return message

    text = "".join(part.text for part in candidate.content.parts if getattr(part, "text", "")).strip()
    if not text:
        return message
    logger.debug("[Gemini] Rephrased message: %s", text)
    return text


__all__ = ["configure_gemini", "phrase_with_gemini"]
