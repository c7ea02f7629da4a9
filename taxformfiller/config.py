"""Runtime settings read from the environment (and ``.env`` via python-dotenv)."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from .i18n import normalize_language


def _int_setting(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    forms_dir: Path = Path("forms")
    storage_dir: Path = Path.home() / ".taxformfiller"
    preview_interval_ms: int = 300
    default_language: str = "en"
    google_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash-lite"
    temperature: float = 0.2
    max_output_tokens: int = 256

    @property
    def preview_interval(self) -> float:
        return self.preview_interval_ms / 1000.0

    @property
    def assistant_enabled(self) -> bool:
        return bool(self.google_api_key)

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, load_env_file: bool = True) -> "Settings":
        if env is None:
            if load_env_file:
                load_dotenv()
            env = os.environ
        try:
            temperature = float(env.get("TEMPERATURE", "0.2"))
        except ValueError:
            temperature = 0.2
        storage_dir = env.get("TAXFORMFILLER_STORAGE_DIR")
        return cls(
            forms_dir=Path(env.get("TAXFORMFILLER_FORMS_DIR", "forms")),
            storage_dir=Path(storage_dir).expanduser() if storage_dir else Path.home() / ".taxformfiller",
            preview_interval_ms=max(0, _int_setting(env, "TAXFORMFILLER_PREVIEW_INTERVAL_MS", 300)),
            default_language=normalize_language(env.get("TAXFORMFILLER_DEFAULT_LANGUAGE", "en")),
            google_api_key=env.get("GOOGLE_API_KEY") or None,
            gemini_model=env.get("GEMINI_MODEL", "gemini-2.0-flash-lite"),
            temperature=temperature,
            max_output_tokens=_int_setting(env, "MAX_OUTPUT_TOKENS", 256),
        )


__all__ = ["Settings"]
