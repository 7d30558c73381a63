from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional


Vec3 = tuple[float, float, float]
Quat = tuple[float, float, float, float]  # (x,y,z,w)
Mat4 = list[list[float]]  # 4x4 row-major
Euler = tuple[float, float, float]  # XYZ order

# External pose interchange: {"torso": {"x": 0, "y": 15, "z": 0}, ...} in degrees
Vector3Data = Dict[str, float]
PoseData = Dict[str, Vector3Data]


@dataclass(frozen=True)
class JointDef:
    name: str
    parent: Optional[str]
    offset: Vec3
    interactive: bool = False
    radius: float = 0.0  # hit / draw sphere; 0 -> no sphere


@dataclass(frozen=True)
class WorldPose:
    # indexed by joint index in the skeleton arena
    world_mats: list[Mat4]
    world_pos: list[Vec3]


@dataclass(frozen=True)
class SegmentTransform:
    position: Vec3
    rotation: Quat
    length: float
