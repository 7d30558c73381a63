#config.py
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

_TRUE = {"true", "yes", "on", "1"}
_FALSE = {"false", "no", "off", "0"}


def _as_bool(v) -> bool:
    # JSON true/false, or the usual spellings when a string slipped in
    if isinstance(v, bool):
        return v
    if isinstance(v, str) and v.strip().lower() in _TRUE | _FALSE:
        return v.strip().lower() in _TRUE
    if isinstance(v, int) and v in (0, 1):
        return bool(v)
    raise ValueError(f"Expected a boolean, got {v!r}")


CONFIG_FIELDS = [
    ("log_path", Path, lambda: Path("logs/stickpose.log")),
    ("persistence_path", Path, lambda: Path("stickpose_viewer_persistence.json")),

    # posing
    ("drag_sensitivity", float, 0.01),          # radians per pixel
    ("export_filename", str, "stick-figure-pose.json"),

    # view
    ("fov_deg", float, 75.0),
    ("show_grid", _as_bool, True),
]


@dataclass(frozen=True)
class AppConfig:
    log_path: Path
    persistence_path: Path
    drag_sensitivity: float
    export_filename: str
    fov_deg: float
    show_grid: bool


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Missing file -> all defaults. Unknown keys are ignored."""
    raw = {}
    if config_path is not None and config_path.exists():
        raw = json.loads(config_path.read_text(encoding="utf-8"))
        if not isinstance(raw, dict):
            raise ValueError(f"Config must be a JSON object: {config_path}")

    values = {}
    for entry in CONFIG_FIELDS:
        key = entry[0]
        cast = entry[1]
        default = entry[2] if len(entry) > 2 else None

        if key in raw:
            value = raw[key]
        else:
            value = default() if callable(default) else default

        if value is not None and cast is not None:
            value = cast(value)

        values[key] = value

    return AppConfig(**values)
