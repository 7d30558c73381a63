# stickpose/viewer/pose_codec.py
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .skeleton import Skeleton
from .types import PoseData

logger = logging.getLogger(__name__)

EXPORT_FILENAME = "stick-figure-pose.json"
AXES = ("x", "y", "z")


class PoseFormatError(ValueError):
    """Pose text that cannot be parsed as JSON. Never applied."""


@dataclass(frozen=True)
class RotationPatch:
    # degrees; None leaves that axis at its current value
    x: Optional[float] = None
    y: Optional[float] = None
    z: Optional[float] = None


INITIAL_POSE_DATA: PoseData = {
    "torso": {"x": 0, "y": 0, "z": 0},
    "neck": {"x": 0, "y": 0, "z": 0},
    "leftShoulder": {"x": 0, "y": 0, "z": 0},
    "leftElbow": {"x": 0, "y": 0, "z": 0},
    "rightShoulder": {"x": 0, "y": 0, "z": 0},
    "rightElbow": {"x": 0, "y": 0, "z": 0},
    "leftHip": {"x": 0, "y": 0, "z": 0},
    "leftKnee": {"x": 0, "y": 0, "z": 0},
    "rightHip": {"x": 0, "y": 0, "z": 0},
    "rightKnee": {"x": 0, "y": 0, "z": 0},
}


def round_half_up(v: float) -> int:
    return int(math.floor(v + 0.5))


def export_pose(skeleton: Skeleton) -> PoseData:
    """Interactive joints in skeleton order, radians -> whole degrees."""
    out: PoseData = {}
    for j in skeleton.interactive_joints:
        rx, ry, rz = j.rotation
        out[j.name] = {
            "x": round_half_up(math.degrees(rx)),
            "y": round_half_up(math.degrees(ry)),
            "z": round_half_up(math.degrees(rz)),
        }
    return out


def _axis_value(v: Any) -> Optional[float]:
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return None
    try:
        f = float(v)
    except OverflowError:
        return None
    if not math.isfinite(f):
        return None
    return f


def decode_pose(obj: Any) -> Dict[str, RotationPatch]:
    """
    Permissive decode of parsed JSON. Nothing here raises:
      - non-object top level -> empty
      - entry that is not an object -> skipped
      - axis that is not a finite number -> left unset
    Joint names are not checked; unknown ones are dropped by the skeleton.
    """
    if not isinstance(obj, dict):
        logger.debug("pose payload is %s, not an object; nothing to apply", type(obj).__name__)
        return {}

    out: Dict[str, RotationPatch] = {}
    for name, rec in obj.items():
        if not isinstance(rec, dict):
            logger.debug("skipping %r: value is %s", name, type(rec).__name__)
            continue
        out[str(name)] = RotationPatch(
            x=_axis_value(rec.get("x")),
            y=_axis_value(rec.get("y")),
            z=_axis_value(rec.get("z")),
        )
    return out


def import_pose(skeleton: Skeleton, data: Any) -> int:
    """
    Merge pose data into the skeleton; joints absent from `data` keep their rotation.
    Returns the number of joints updated. Caller recomputes FK afterwards.
    """
    applied = 0
    ignored = []
    for name, patch in decode_pose(data).items():
        current = skeleton.rotation_deg(name) or (0.0, 0.0, 0.0)
        euler = (
            current[0] if patch.x is None else patch.x,
            current[1] if patch.y is None else patch.y,
            current[2] if patch.z is None else patch.z,
        )
        if skeleton.apply_rotation(name, euler):
            applied += 1
        else:
            ignored.append(name)

    if ignored:
        logger.debug("ignored pose keys: %s", ", ".join(sorted(ignored)))
    logger.info("imported pose: %d joint(s) updated", applied)
    return applied


# ---------------------------
# JSON text / files
# ---------------------------

def dumps_pose(pose: PoseData) -> str:
    return json.dumps(pose, indent=2)


def parse_pose_text(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as e:
        raise PoseFormatError(f"Invalid pose JSON: {e.msg} (line {e.lineno}, column {e.colno})") from e


def read_pose_file(path: Union[str, Path]) -> Any:
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise PoseFormatError(f"Could not read {path.name}: {e}") from e
    return parse_pose_text(text)


def write_pose_file(path: Union[str, Path], pose: PoseData) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(dumps_pose(pose), encoding="utf-8")
    logger.info("exported pose to %s", path)
    return path
