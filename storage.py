from __future__ import annotations

from dataclasses import dataclass
import json
import logging
import os
import time
from typing import Any, Dict, List, Optional

from PySide6.QtCore import QStandardPaths

from colors import normalize_color_string
from shape_geometry import ShapeKind
from spirotrace_math import OrbitMode, SpiroParams, in_bounds

_LOGGER = logging.getLogger(__name__)

CONFIG_FILE_NAME = "spirotrace_config.json"
PRESETS_FILE_NAME = "spirotrace_presets.json"
STATE_VERSION = 1

_NUMERIC_FIELDS = (
    "fixed_scale",
    "moving_radius",
    "pen_offset",
    "speed",
    "stroke_width",
    "elongation",
)


def config_dir() -> str:
    base_dir = QStandardPaths.writableLocation(QStandardPaths.AppConfigLocation)
    if not base_dir:
        base_dir = os.path.expanduser("~")
    try:
        os.makedirs(base_dir, exist_ok=True)
    except OSError as exc:
        _LOGGER.warning("Cannot create config directory %s: %s", base_dir, exc)
    return base_dir


def config_file_path() -> str:
    return os.path.join(config_dir(), CONFIG_FILE_NAME)


def presets_file_path() -> str:
    return os.path.join(config_dir(), PRESETS_FILE_NAME)


def params_to_dict(params: SpiroParams, *, include_speed: bool = True) -> Dict[str, Any]:
    data = {
        "fixed_scale": params.fixed_scale,
        "moving_radius": params.moving_radius,
        "pen_offset": params.pen_offset,
        "color": params.color,
        "speed": params.speed,
        "orbit_mode": OrbitMode(params.orbit_mode).value,
        "shape": ShapeKind(params.shape).value,
        "stroke_width": params.stroke_width,
        "elongation": params.elongation,
        "reverse_rotation": bool(params.reverse_rotation),
    }
    if not include_speed:
        del data["speed"]
    return data


def params_from_dict(data: Any, base: Optional[SpiroParams] = None) -> SpiroParams:
    """
    Relit des paramètres sauvegardés. Les champs absents ou invalides
    gardent la valeur de ``base`` ; rien n'est levé.
    """
    base = base or SpiroParams()
    if not isinstance(data, dict):
        return base
    changes: Dict[str, Any] = {}
    dropped: List[str] = []

    for field in _NUMERIC_FIELDS:
        if field not in data:
            continue
        value = data[field]
        if not in_bounds(field, value):
            dropped.append(field)
            continue
        changes[field] = float(value)

    if "color" in data:
        color = normalize_color_string(data["color"])
        if color is None:
            dropped.append("color")
        else:
            changes["color"] = color

    for field, enum_cls in (("orbit_mode", OrbitMode), ("shape", ShapeKind)):
        if field not in data:
            continue
        try:
            changes[field] = enum_cls(data[field])
        except ValueError:
            dropped.append(field)

    if "reverse_rotation" in data:
        if isinstance(data["reverse_rotation"], bool):
            changes["reverse_rotation"] = data["reverse_rotation"]
        else:
            dropped.append("reverse_rotation")

    if dropped:
        _LOGGER.warning("Ignoring invalid saved fields: %s", ", ".join(dropped))
    return base.with_changes(**changes)


def _read_json(path: str) -> Any:
    if not os.path.exists(path):
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as exc:
        _LOGGER.warning("Cannot read %s: %s", path, exc)
        return None


def _write_json(path: str, data: Any) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2, ensure_ascii=False)


@dataclass(frozen=True)
class PatternPreset:
    id: str
    name: str
    params: SpiroParams
    created_at: int  # ms since epoch

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "params": params_to_dict(self.params, include_speed=False),
            "created_at": self.created_at,
        }


class PresetStore:
    """Named parameter snapshots, newest first, kept in a JSON file.

    Speed is not part of a snapshot.
    """

    def __init__(self, path: Optional[str] = None) -> None:
        self.path = path or presets_file_path()

    def load(self) -> List[PatternPreset]:
        data = _read_json(self.path)
        if data is None:
            return []
        if not isinstance(data, list):
            _LOGGER.warning("Preset file %s is not a list, ignoring it", self.path)
            return []
        presets: List[PatternPreset] = []
        for entry in data:
            if not isinstance(entry, dict) or not isinstance(entry.get("id"), str):
                _LOGGER.warning("Skipping malformed preset entry: %r", entry)
                continue
            created = entry.get("created_at")
            presets.append(
                PatternPreset(
                    id=entry["id"],
                    name=str(entry.get("name") or entry["id"]),
                    params=params_from_dict(entry.get("params")),
                    created_at=created if isinstance(created, int) else 0,
                )
            )
        return presets

    def _store(self, presets: List[PatternPreset]) -> None:
        _write_json(self.path, [p.to_dict() for p in presets])

    def save(self, name: str, params: SpiroParams, *, now: Optional[float] = None) -> List[PatternPreset]:
        now = time.time() if now is None else now
        presets = self.load()
        created_at = int(now * 1000)
        preset_id = str(created_at)
        existing = {p.id for p in presets}
        suffix = 1
        while preset_id in existing:
            preset_id = f"{created_at}-{suffix}"
            suffix += 1
        name = name.strip() or "Pattern " + time.strftime("%H:%M:%S", time.localtime(now))
        preset = PatternPreset(
            id=preset_id,
            name=name,
            params=params.with_changes(speed=SpiroParams().speed),
            created_at=created_at,
        )
        updated = [preset] + presets
        self._store(updated)
        return updated

    def delete(self, preset_id: str) -> List[PatternPreset]:
        updated = [p for p in self.load() if p.id != preset_id]
        self._store(updated)
        return updated


def load_app_state(path: Optional[str] = None) -> Dict[str, Any]:
    data = _read_json(path or config_file_path())
    if not isinstance(data, dict):
        return {}
    return data


def save_app_state(data: Dict[str, Any], path: Optional[str] = None) -> None:
    payload = dict(data)
    payload.setdefault("version", STATE_VERSION)
    _write_json(path or config_file_path(), payload)
