"""
Normalization of WHO ICD-API JSON-LD fields.

The API is loose about field shapes: a text field may be a plain string or an
object carrying a localized value under ``@value``, list items may be strings
or objects with a ``label``, and references may be a single URI or a list.
Everything here degrades to *some* string instead of raising.
"""

import json
from dataclasses import dataclass
from typing import Any

LOCALIZED_VALUE_KEY = "@value"


@dataclass(frozen=True)
class PlainText:
    text: str


@dataclass(frozen=True)
class LocalizedWrapper:
    value: Any


@dataclass(frozen=True)
class Unknown:
    raw: Any


LocalizedField = PlainText | LocalizedWrapper | Unknown


def classify(value: Any) -> LocalizedField:
    """Classify a raw API field into one of the known shapes"""
    if isinstance(value, str):
        return PlainText(value)
    if isinstance(value, dict) and value.get(LOCALIZED_VALUE_KEY) is not None:
        return LocalizedWrapper(value[LOCALIZED_VALUE_KEY])
    return Unknown(value)


def _serialize(value: Any) -> str:
    try:
        return json.dumps(value, ensure_ascii=False, sort_keys=True)
    except (TypeError, ValueError):
        return str(value)


def coerce_text(value: Any) -> str:
    """
    Turn any API field into display text.

    - ``"Walking"`` -> ``"Walking"``
    - ``{"@language": "en", "@value": "Walking"}`` -> ``"Walking"``
    - ``{"@language": "en"}`` -> its JSON serialization
    - ``None`` -> ``""``
    """
    match classify(value):
        case PlainText(text):
            return text
        case LocalizedWrapper(inner):
            return inner if isinstance(inner, str) else _serialize(inner)
        case Unknown(raw):
            if raw is None:
                return ""
            if isinstance(raw, (dict, list)):
                return _serialize(raw)
            return str(raw)


def optional_text(value: Any) -> str | None:
    """Like :func:`coerce_text` but keeps absent or empty fields as ``None``"""
    if value is None:
        return None
    text = coerce_text(value)
    return text or None


def label_text(item: Any) -> str:
    """Text of an inclusion/exclusion item (``{"label": {...}}`` or a string)"""
    if isinstance(item, dict):
        if item.get("label") is not None:
            return coerce_text(item["label"])
        return _serialize(item)
    return coerce_text(item)


def text_list(value: Any) -> tuple[str, ...] | None:
    """Normalize a list field; a lone value is treated as a one-item list"""
    if value is None:
        return None
    if not isinstance(value, list):
        value = [value]
    return tuple(label_text(item) for item in value)


def first_reference(value: Any) -> str | None:
    """A single-valued reference that may come as a string or a list"""
    if isinstance(value, list):
        return coerce_text(value[0]) if value else None
    if value is None:
        return None
    return coerce_text(value)


def reference_list(value: Any) -> tuple[str, ...] | None:
    """A multi-valued reference that may come as a string or a list"""
    if value is None:
        return None
    if isinstance(value, list):
        return tuple(coerce_text(v) for v in value)
    return (coerce_text(value),)
