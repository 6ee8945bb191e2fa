import json
import logging
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Union

LOCALISATION_DIR = Path(__file__).resolve().parent / "localisation"
DEFAULT_LANGUAGE = "en"
_SECTIONS = ("strings", "shape_labels", "orbit_labels")
_LOGGER = logging.getLogger(__name__)


def normalize_language(lang: str) -> str:
    return (lang or "").strip().lower().replace("-", "_")


def _language_candidates(lang: str) -> List[str]:
    """``zh_tw`` -> ``["zh_tw", "zh", "en"]``."""
    cleaned = normalize_language(lang)
    candidates = []
    if cleaned:
        candidates.append(cleaned)
        base = cleaned.split("_", 1)[0]
        if base != cleaned:
            candidates.append(base)
    if DEFAULT_LANGUAGE not in candidates:
        candidates.append(DEFAULT_LANGUAGE)
    return candidates


@lru_cache(maxsize=None)
def _load_locale_file(language: str) -> Dict[str, Any]:
    path = LOCALISATION_DIR / language / "strings.json"
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


@lru_cache(maxsize=None)
def _merged_localisation(lang: str) -> Dict[str, Dict[str, str]]:
    merged: Dict[str, Dict[str, str]] = {section: {} for section in _SECTIONS}
    for code in reversed(_language_candidates(lang)):
        data = _load_locale_file(code)
        for section in _SECTIONS:
            merged[section].update(data.get(section, {}))
    _warn_missing_strings(lang)
    return merged


def tr(lang: str, key: str) -> str:
    return _merged_localisation(lang)["strings"].get(key, key)


def _enum_key(value: Union[str, Enum]) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def shape_label(shape: Union[str, Enum], lang: str) -> str:
    key = _enum_key(shape)
    return _merged_localisation(lang)["shape_labels"].get(key, key)


def orbit_label(mode: Union[str, Enum], lang: str) -> str:
    key = _enum_key(mode)
    return _merged_localisation(lang)["orbit_labels"].get(key, key)


def available_languages() -> List[str]:
    if not LOCALISATION_DIR.exists():
        return [DEFAULT_LANGUAGE]
    codes = [
        entry.name
        for entry in LOCALISATION_DIR.iterdir()
        if entry.is_dir() and (entry / "strings.json").exists()
    ]
    return sorted(codes) or [DEFAULT_LANGUAGE]


def resolve_language(lang: str) -> str:
    for code in _language_candidates(lang):
        if (LOCALISATION_DIR / code / "strings.json").exists():
            return code
    return DEFAULT_LANGUAGE


def next_language(lang: str) -> str:
    """Language the toolbar switch moves to from ``lang``."""
    codes = available_languages()
    current = resolve_language(lang)
    if current not in codes:
        return codes[0]
    return codes[(codes.index(current) + 1) % len(codes)]


def language_display_name(lang: str) -> str:
    for code in _language_candidates(lang)[:-1] or [DEFAULT_LANGUAGE]:
        name = _load_locale_file(code).get("strings", {}).get("language_name")
        if name:
            return name
    return normalize_language(lang) or DEFAULT_LANGUAGE


@lru_cache(maxsize=None)
def _missing_string_keys(lang: str) -> List[str]:
    normalized = normalize_language(lang)
    if not normalized or normalized == DEFAULT_LANGUAGE:
        return []
    en_strings = _load_locale_file(DEFAULT_LANGUAGE).get("strings", {})
    locale_strings = _load_locale_file(normalized).get("strings", {})
    if not en_strings or not locale_strings:
        return []
    return sorted(set(en_strings) - set(locale_strings))


def _warn_missing_strings(lang: str) -> None:
    missing = _missing_string_keys(lang)
    if missing:
        _LOGGER.warning(
            "Missing localisation strings for %s: %s",
            normalize_language(lang),
            ", ".join(missing),
        )
