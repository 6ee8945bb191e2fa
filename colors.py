from __future__ import annotations

import colorsys
from functools import lru_cache
import re
from typing import Dict, Optional

from matplotlib import colors as mcolors

HEX_RE = re.compile(r"#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})")
HSL_RE = re.compile(
    r"\(\s*([+-]?\d*\.?\d+)\s*,\s*([+-]?\d*\.?\d+)\s*,\s*([+-]?\d*\.?\d+)\s*\)"
)

PALETTE = (
    "#ff0000",
    "#00ff00",
    "#0000ff",
    "#ffff00",
    "#ff00ff",
    "#00ffff",
    "#ffffff",
    "#000000",
)


def normalize_color_name(name: str) -> str:
    return re.sub(r"\s+", "", name.strip().lower())


@lru_cache(maxsize=None)
def named_colors() -> Dict[str, str]:
    """
    Matplotlib named colours, first definition wins:
        BASE_COLORS -> CSS4_COLORS -> TABLEAU_COLORS -> XKCD_COLORS
    XKCD names are also reachable without their ``xkcd:`` prefix.
    """
    name_to_hex: Dict[str, str] = {}

    def add_source(d):
        for name, value in d.items():
            if name.startswith("xkcd:"):
                candidates = [name[5:], name]
            else:
                candidates = [name]
            for cand in candidates:
                key = normalize_color_name(cand)
                if key not in name_to_hex:
                    name_to_hex[key] = mcolors.to_hex(value, keep_alpha=False)

    add_source(mcolors.BASE_COLORS)
    add_source(mcolors.CSS4_COLORS)
    add_source(mcolors.TABLEAU_COLORS)
    add_source(mcolors.XKCD_COLORS)
    return name_to_hex


def normalize_color_string(s: Optional[str]) -> Optional[str]:
    """
    Renvoie la couleur sous la forme ``#rrggbb`` ou None si elle est invalide.

    Accepte :
      - hex, avec ou sans ``#`` (``#rgb``, ``#rrggbb``, ``rrggbb``)
      - HSL ``(H, S, L)``, H en degrés, S et L dans [0, 1]
      - un nom de couleur matplotlib (CSS4, XKCD, Tableau...)
    """
    if not isinstance(s, str):
        return None
    s = s.strip()
    if not s:
        return None

    if HEX_RE.fullmatch(s):
        digits = s.lstrip("#")
        if len(digits) == 3:
            digits = "".join(c * 2 for c in digits)
        return "#" + digits.lower()
    if s.startswith("#"):
        return None

    m = HSL_RE.fullmatch(s)
    if m:
        h = float(m.group(1)) % 360.0
        sat = max(0.0, min(1.0, float(m.group(2))))
        lum = max(0.0, min(1.0, float(m.group(3))))
        r_f, g_f, b_f = colorsys.hls_to_rgb(h / 360.0, lum, sat)
        return mcolors.to_hex((r_f, g_f, b_f), keep_alpha=False)

    return named_colors().get(normalize_color_name(s))


def is_valid_color_string(s: Optional[str]) -> bool:
    return normalize_color_string(s) is not None


def hex_without_marker(color: str) -> str:
    """``#00ffff`` -> ``00ffff``, used in shareable links."""
    normalized = normalize_color_string(color)
    return (normalized or color).lstrip("#")
