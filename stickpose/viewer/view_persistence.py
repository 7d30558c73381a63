# stickpose/viewer/view_persistence.py
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

CAMERA_KEY = "camera"
VIEW_FLAGS_KEY = "view_flags"


@dataclass
class ViewerPersist:
    path: Path
    data: Dict[str, Any]

    @staticmethod
    def load(path: Path) -> "ViewerPersist":
        if path.exists():
            try:
                obj = json.loads(path.read_text(encoding="utf-8"))
                if isinstance(obj, dict):
                    return ViewerPersist(path=path, data=obj)
                logger.warning("ignoring viewer persistence %s: not a JSON object", path)
            except (OSError, ValueError) as e:
                logger.warning("ignoring unreadable viewer persistence %s: %r", path, e)
        return ViewerPersist(path=path, data={})

    def save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(self.data, indent=2), encoding="utf-8")

    def get_camera(self) -> Optional[Dict[str, Any]]:
        v = self.data.get(CAMERA_KEY)
        return v if isinstance(v, dict) else None

    def set_camera(self, cam_state: Dict[str, Any]) -> None:
        self.data[CAMERA_KEY] = cam_state

    def get_flag(self, name: str, default: bool) -> bool:
        flags = self.data.get(VIEW_FLAGS_KEY)
        if isinstance(flags, dict) and isinstance(flags.get(name), bool):
            return flags[name]
        return default

    def set_flag(self, name: str, value: bool) -> None:
        flags = self.data.get(VIEW_FLAGS_KEY)
        if not isinstance(flags, dict):
            flags = {}
            self.data[VIEW_FLAGS_KEY] = flags
        flags[name] = bool(value)
