import pytest

from taxformfiller.i18n import TRANSLATIONS, detect_language, normalize_language, translate


def _keys(node, prefix=""):
    keys = set()
    for name, value in node.items():
        path = f"{prefix}{name}"
        if isinstance(value, dict):
            keys |= _keys(value, f"{path}.")
        else:
            keys.add(path)
    return keys


def test_both_languages_define_the_same_keys():
    assert _keys(TRANSLATIONS["en"]) == _keys(TRANSLATIONS["es"])


def test_translate_formats_parameters():
    assert translate("form.progressLoaded", "en", count=3) == "Loaded 3 saved value(s)."
    assert translate("form.progressLoaded", "es", count=3) == "Se cargaron 3 valor(es) guardado(s)."


def test_translate_falls_back_to_english_then_key():
    assert translate("preview.download", "fr") == "Download filled PDF"
    assert translate("no.such.key", "es") == "no.such.key"


def test_translate_survives_missing_parameters():
    assert "{count}" in translate("form.progressLoaded", "en")


@pytest.mark.parametrize(
    "text, expected",
    [("English", "en"), ("inglés", "en"), ("Español", "es"), ("espanol!", "es"), ("castellano", "es"), ("Deutsch", None)],
)
def test_detect_language(text, expected):
    assert detect_language(text) == expected


def test_normalize_language():
    assert normalize_language("es") == "es"
    assert normalize_language("fr") == "en"
    assert normalize_language(None) == "en"
