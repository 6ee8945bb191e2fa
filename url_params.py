"""Compact query-string encoding of drawing parameters for shareable links."""

from __future__ import annotations

import logging
import math
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

from colors import hex_without_marker, normalize_color_string
from shape_geometry import ShapeKind
from spirotrace_math import OrbitMode, SpiroParams, in_bounds

_LOGGER = logging.getLogger(__name__)

# query key -> SpiroParams field
_NUMERIC_KEYS = {
    "R": "fixed_scale",
    "r": "moving_radius",
    "d": "pen_offset",
    "s": "speed",
    "w": "stroke_width",
    "e": "elongation",
}


def format_number(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def serialize_params(params: SpiroParams) -> str:
    pairs = [
        ("R", format_number(params.fixed_scale)),
        ("r", format_number(params.moving_radius)),
        ("d", format_number(params.pen_offset)),
        ("c", hex_without_marker(params.color)),
        ("s", format_number(params.speed)),
        ("m", OrbitMode(params.orbit_mode).value),
        ("sh", ShapeKind(params.shape).value),
        ("w", format_number(params.stroke_width)),
        ("e", format_number(params.elongation)),
    ]
    if params.reverse_rotation:
        pairs.append(("rv", "1"))
    return urlencode(pairs)


def _parse_number(raw: str) -> Optional[float]:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(value):
        return None
    return value


def _parse_enum(enum_cls: Callable[[str], Any], raw: str):
    try:
        return enum_cls(raw)
    except ValueError:
        return None


def parse_params(query: str) -> Dict[str, Any]:
    """
    Decode a query string (or a full URL) into SpiroParams field values.

    Only fields that are present and valid are returned; anything missing,
    unparseable, non-finite, out of range or out of enum is dropped so the
    caller keeps its defaults.
    """
    if "?" in query:
        query = urlsplit(query).query
    values = {k: v[-1] for k, v in parse_qs(query, keep_blank_values=True).items() if v}
    result: Dict[str, Any] = {}
    dropped = []

    for key, field in _NUMERIC_KEYS.items():
        if key not in values:
            continue
        value = _parse_number(values[key])
        if value is None or not in_bounds(field, value):
            dropped.append(key)
            continue
        result[field] = value

    if "c" in values:
        color = normalize_color_string(values["c"])
        if color is None:
            dropped.append("c")
        else:
            result["color"] = color

    if "m" in values:
        mode = _parse_enum(OrbitMode, values["m"])
        if mode is None:
            dropped.append("m")
        else:
            result["orbit_mode"] = mode

    if "sh" in values:
        shape = _parse_enum(ShapeKind, values["sh"])
        if shape is None:
            dropped.append("sh")
        else:
            result["shape"] = shape

    if "rv" in values:
        result["reverse_rotation"] = values["rv"].strip().lower() in ("1", "true", "yes")

    if dropped:
        _LOGGER.warning("Dropped malformed URL parameters: %s", ", ".join(dropped))
    return result


def params_from_query(query: str, base: Optional[SpiroParams] = None) -> SpiroParams:
    return (base or SpiroParams()).with_changes(**parse_params(query))


def build_share_url(base_url: str, params: SpiroParams) -> str:
    parts = urlsplit(base_url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, serialize_params(params), ""))
