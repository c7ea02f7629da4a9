"""Localized strings for the assistant and the UI, looked up by dotted key."""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

DEFAULT_LANGUAGE = "en"
SUPPORTED_LANGUAGES = ("en", "es")

_LANGUAGE_ALIASES = {
    "en": "en",
    "eng": "en",
    "english": "en",
    "ingles": "en",
    "inglés": "en",
    "es": "es",
    "esp": "es",
    "spanish": "es",
    "espanol": "es",
    "español": "es",
    "castellano": "es",
}

TRANSLATIONS: Dict[str, Dict[str, Any]] = {
    "en": {
        "dialogue": {
            "greeting": "Hello! I'll help you fill out {form_name}.",
            "chooseLanguage": "Which language do you prefer? Reply 'English' or 'Español'.",
            "languageRetry": "Sorry, I didn't catch that. Please reply 'English' or 'Español'.",
            "intro": "Great, we'll continue in English. I need {count} answer(s) from you.",
            "ask": {
                "text": "({position}/{total}) What should I enter for '{label}'?",
                "number": "({position}/{total}) What amount goes in '{label}'? Use digits, e.g. 32000.50.",
                "date": "({position}/{total}) What date goes in '{label}'? Use YYYY-MM-DD or DD-MM-YYYY.",
                "email": "({position}/{total}) What email address goes in '{label}'?",
                "checkbox": "({position}/{total}) Does '{label}' apply to you? (Yes/No)",
                "choice": "({position}/{total}) Which option applies for '{label}'? Options: {options}.",
            },
            "error": {
                "text": "The answer cannot be empty.",
                "number": "That doesn't look like a number.",
                "date": "That isn't a valid date.",
                "email": "That doesn't look like an email address.",
                "checkbox": "Please answer yes or no.",
                "choice": "Please pick one of the listed options.",
            },
            "retry": "{error} {question}",
            "complete": (
                "Perfect! I've collected all the information. "
                "The preview is up to date and the form is ready to download."
            ),
            "nothingToAsk": "This form has no required fields left to fill. It is ready to download.",
            "summaryTitle": "Collected information",
            "notProvided": "Not provided",
        },
        "upload": {
            "pdfOnly": "Only PDF files are supported.",
            "parseError": "The file could not be read as a PDF. Please upload it again.",
            "noFields": "No fillable fields were found. Try entering the values manually.",
            "dataExtracted": "All data extracted from the PDF.",
            "dataPartiallyExtracted": "Some data was extracted; {count} required field(s) are still missing.",
            "reviewTitle": "Check the extracted values before applying them.",
            "missingTitle": "Still missing: {fields}",
            "confirm": "Apply to form",
            "applied": "Values from {filename} were applied.",
        },
        "preview": {
            "updateFailed": "The preview could not be updated. Your answers are safe; please try again.",
            "noPreview": "No preview available yet.",
            "download": "Download filled PDF",
        },
        "form": {
            "progressSaved": "Progress saved.",
            "progressLoaded": "Loaded {count} saved value(s).",
            "saveError": "Your progress could not be saved.",
            "notFound": "Form not found.",
        },
    },
    "es": {
        "dialogue": {
            "greeting": "¡Hola! Te ayudaré a completar {form_name}.",
            "chooseLanguage": "¿En qué idioma prefieres continuar? Responde 'English' o 'Español'.",
            "languageRetry": "Perdona, no te he entendido. Responde 'English' o 'Español'.",
            "intro": "Perfecto, seguimos en español. Necesito {count} respuesta(s).",
            "ask": {
                "text": "({position}/{total}) ¿Qué debo escribir en '{label}'?",
                "number": "({position}/{total}) ¿Qué importe va en '{label}'? Usa cifras, p. ej. 32000,50.",
                "date": "({position}/{total}) ¿Qué fecha va en '{label}'? Usa DD-MM-AAAA o AAAA-MM-DD.",
                "email": "({position}/{total}) ¿Qué correo electrónico va en '{label}'?",
                "checkbox": "({position}/{total}) ¿Se aplica '{label}' en tu caso? (Sí/No)",
                "choice": "({position}/{total}) ¿Qué opción corresponde a '{label}'? Opciones: {options}.",
            },
            "error": {
                "text": "La respuesta no puede estar vacía.",
                "number": "Eso no parece un número.",
                "date": "Esa fecha no es válida.",
                "email": "Eso no parece un correo electrónico.",
                "checkbox": "Responde sí o no, por favor.",
                "choice": "Elige una de las opciones indicadas.",
            },
            "retry": "{error} {question}",
            "complete": (
                "¡Perfecto! Ya tengo toda la información. "
                "La vista previa está actualizada y puedes descargar el formulario."
            ),
            "nothingToAsk": "Este formulario no tiene campos obligatorios pendientes. Ya puedes descargarlo.",
            "summaryTitle": "Información recopilada",
            "notProvided": "Sin respuesta",
        },
        "upload": {
            "pdfOnly": "Solo se admiten archivos PDF.",
            "parseError": "No se ha podido leer el archivo como PDF. Vuelve a subirlo.",
            "noFields": "No se encontraron campos rellenables. Prueba a introducir los datos manualmente.",
            "dataExtracted": "Se han extraído todos los datos del PDF.",
            "dataPartiallyExtracted": "Se extrajeron algunos datos; faltan {count} campo(s) obligatorio(s).",
            "reviewTitle": "Revisa los datos extraídos antes de aplicarlos.",
            "missingTitle": "Aún faltan: {fields}",
            "confirm": "Aplicar al formulario",
            "applied": "Se aplicaron los datos de {filename}.",
        },
        "preview": {
            "updateFailed": "No se pudo actualizar la vista previa. Tus respuestas se conservan; inténtalo de nuevo.",
            "noPreview": "Todavía no hay vista previa.",
            "download": "Descargar PDF relleno",
        },
        "form": {
            "progressSaved": "Progreso guardado.",
            "progressLoaded": "Se cargaron {count} valor(es) guardado(s).",
            "saveError": "No se pudo guardar tu progreso.",
            "notFound": "Formulario no encontrado.",
        },
    },
}


def _lookup(catalog: Mapping[str, Any], key: str) -> Optional[str]:
    node: Any = catalog
    for part in key.split("."):
        if not isinstance(node, Mapping) or part not in node:
            return None
        node = node[part]
    return node if isinstance(node, str) else None


def translate(key: str, language: str = DEFAULT_LANGUAGE, **params: Any) -> str:
    """Resolve ``key`` for ``language``, falling back to English and then to the key."""

    template = _lookup(TRANSLATIONS.get(language, {}), key)
    if template is None:
        template = _lookup(TRANSLATIONS[DEFAULT_LANGUAGE], key)
    if template is None:
        return key
    if not params:
        return template
    try:
        return template.format(**params)
    except (KeyError, IndexError):
        return template


def detect_language(text: str) -> Optional[str]:
    """Return ``"en"`` or ``"es"`` when the text names a language, else ``None``."""

    token = (text or "").strip().lower().strip(".!¡¿?")
    return _LANGUAGE_ALIASES.get(token)


def normalize_language(language: Optional[str]) -> str:
    if language in SUPPORTED_LANGUAGES:
        return language
    return DEFAULT_LANGUAGE


__all__ = [
    "DEFAULT_LANGUAGE",
    "SUPPORTED_LANGUAGES",
    "TRANSLATIONS",
    "detect_language",
    "normalize_language",
    "translate",
]
