"""Encrypted local storage for saved form progress."""

from __future__ import annotations

import base64
import json
import re
import secrets
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from rapidfuzz import fuzz

from .models import FieldValues, TaxFormFillerError
from .utils import configure_logger

logger = configure_logger(__name__)

DEFAULT_STORAGE_DIR = Path.home() / ".taxformfiller"
SALT_FILENAME = "salt.key"
DATA_FILENAME = "progress.enc"

# Fuzzy matching threshold (0-100)
FUZZY_THRESHOLD = 70
KDF_ITERATIONS = 480000

_CONFLICT_WORDS = frozenset({
    "first", "last", "middle", "maiden",
    "spouse", "partner", "child", "children", "father", "mother",
    "primer", "segundo", "conyuge", "cónyuge", "hijo", "hija",
})


class StorageError(TaxFormFillerError):
    """Base exception for storage-related errors."""
    pass


class SecureStorage:
    """Password-encrypted store of value sets, one entry per form id."""

    def __init__(self, storage_dir: Optional[Path] = None, iterations: int = KDF_ITERATIONS):
        self.storage_dir = Path(storage_dir) if storage_dir is not None else DEFAULT_STORAGE_DIR
        self.salt_file = self.storage_dir / SALT_FILENAME
        self.data_file = self.storage_dir / DATA_FILENAME
        self._iterations = iterations
        self.storage_dir.mkdir(parents=True, exist_ok=True)
        self._ensure_salt()

    def _ensure_salt(self) -> None:
        if not self.salt_file.exists():
            self.salt_file.write_bytes(secrets.token_bytes(32))
            logger.info("Created new salt file")

    def _get_fernet(self, password: str) -> Fernet:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=self.salt_file.read_bytes(),
            iterations=self._iterations,
        )
        key = kdf.derive(password.encode())
        return Fernet(base64.urlsafe_b64encode(key))

    def _read_all(self, password: str) -> Dict[str, Any]:
        if not self.data_file.exists():
            return {}
        try:
            decrypted = self._get_fernet(password).decrypt(self.data_file.read_bytes())
        except InvalidToken as exc:
            raise StorageError("Invalid password or corrupted data") from exc
        try:
            data = json.loads(decrypted.decode())
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise StorageError(f"Stored data is unreadable: {exc}") from exc
        if not isinstance(data, dict):
            raise StorageError("Stored data has an unexpected layout")
        return data

    def _write_all(self, data: Dict[str, Any], password: str) -> None:
        encrypted = self._get_fernet(password).encrypt(json.dumps(data, indent=2).encode())
        try:
            self.data_file.write_bytes(encrypted)
        except OSError as exc:
            raise StorageError(f"Failed to save data: {exc}") from exc

    def save_progress(self, form_id: str, values: FieldValues, password: str, form_name: str = "") -> None:
        """Store the value set for ``form_id``, replacing any earlier save.

        Raises:
            StorageError: If existing data cannot be decrypted or the write fails.
        """
        data = self._read_all(password)
        data[form_id] = {
            "formId": form_id,
            "formName": form_name,
            "values": dict(values),
            "lastUpdated": datetime.now(timezone.utc).isoformat(),
        }
        self._write_all(data, password)
        logger.info("Saved %d value(s) for form '%s'", len(values), form_id)

    def load_progress(self, form_id: str, password: str) -> FieldValues:
        entry = self._read_all(password).get(form_id)
        if not entry:
            return {}
        values = {str(k): str(v) for k, v in (entry.get("values") or {}).items()}
        logger.info("Loaded %d value(s) for form '%s'", len(values), form_id)
        return values

    def list_saved_forms(self, password: str) -> Dict[str, str]:
        """Return ``{form_id: last_updated}`` for every saved form."""

        return {form_id: str(entry.get("lastUpdated", "")) for form_id, entry in self._read_all(password).items()}

    def delete_progress(self, form_id: str, password: str) -> bool:
        data = self._read_all(password)
        if form_id not in data:
            return False
        del data[form_id]
        self._write_all(data, password)
        logger.info("Deleted saved progress for form '%s'", form_id)
        return True

    def get_suggestion(self, field_label: str, stored_data: FieldValues) -> Optional[str]:
        """Suggest a stored value for a field using exact, then fuzzy label matching."""

        if not stored_data:
            return None
        if field_label in stored_data:
            return stored_data[field_label]

        query = field_label.lower()
        query_words = set(re.sub(r"['\-_]", " ", query).split())
        best_match: Optional[str] = None
        best_score = 0.0
        for stored_label, stored_value in stored_data.items():
            candidate = stored_label.lower()
            score = (fuzz.token_set_ratio(query, candidate) + fuzz.token_sort_ratio(query, candidate)) / 2
            # "Spouse name" must not pick up "First name" just because both say "name".
            query_conflicts = query_words & _CONFLICT_WORDS
            stored_conflicts = set(re.sub(r"['\-_]", " ", candidate).split()) & _CONFLICT_WORDS
            if query_conflicts and stored_conflicts and query_conflicts.isdisjoint(stored_conflicts):
                score *= 0.2
            if score > best_score:
                best_score = score
                best_match = stored_value

        if best_score >= FUZZY_THRESHOLD:
            logger.debug("Fuzzy match for '%s' (score: %.1f)", field_label, best_score)
            return best_match
        logger.debug("No match found for '%s' (best score: %.1f)", field_label, best_score)
        return None

    def delete_all_data(self) -> None:
        """Delete all stored data and salt. This is irreversible."""
        try:
            self.data_file.unlink(missing_ok=True)
            self.salt_file.unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Failed to delete data: {exc}") from exc
        logger.info("Deleted stored progress and salt")
        self._ensure_salt()

    def has_stored_data(self) -> bool:
        return self.data_file.exists()


__all__ = ["SecureStorage", "StorageError"]
