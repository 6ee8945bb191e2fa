import json

from localisation import (
    LOCALISATION_DIR,
    available_languages,
    language_display_name,
    next_language,
    orbit_label,
    resolve_language,
    shape_label,
    tr,
)
from shape_geometry import ShapeKind
from spirotrace_math import OrbitMode


def test_languages():
    assert available_languages() == ["en", "zh"]
    assert next_language("en") == "zh"
    assert next_language("zh") == "en"
    assert resolve_language("zh-CN") == "zh"
    assert resolve_language("xx") == "en"


def test_locales_define_the_same_keys():
    en = json.loads((LOCALISATION_DIR / "en" / "strings.json").read_text(encoding="utf-8"))
    zh = json.loads((LOCALISATION_DIR / "zh" / "strings.json").read_text(encoding="utf-8"))
    for section in ("strings", "shape_labels", "orbit_labels"):
        assert set(en[section]) == set(zh[section])


def test_labels_and_fallback():
    assert tr("en", "clear") == "Clear Canvas"
    assert tr("en", "no_such_key") == "no_such_key"
    assert tr("xx", "app_title") == tr("en", "app_title")
    assert shape_label(ShapeKind.STADIUM, "en") == shape_label("STADIUM", "en")
    assert orbit_label(OrbitMode.INNER, "zh") != orbit_label(OrbitMode.INNER, "en")
    assert language_display_name("zh") != language_display_name("en")
