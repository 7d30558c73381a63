# stickpose/viewer/segments.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from .skeleton import BONES, Skeleton
from .types import Quat, SegmentTransform, Vec3, WorldPose

# Unit cylinder long axis before orientation
SEGMENT_UP: Vec3 = (0.0, 1.0, 0.0)


@dataclass
class LimbSegment:
    parent: int
    child: int
    position: Vec3 = (0.0, 0.0, 0.0)
    rotation: Quat = (0.0, 0.0, 0.0, 1.0)
    length: float = 0.0

    def transform(self) -> SegmentTransform:
        return SegmentTransform(position=self.position, rotation=self.rotation, length=self.length)


def quat_from_unit_vectors(u: Vec3, v: Vec3) -> Quat:
    """Shortest-arc rotation taking unit vector u onto unit vector v, (x,y,z,w)."""
    ux, uy, uz = u
    vx, vy, vz = v
    r = ux * vx + uy * vy + uz * vz + 1.0

    if r < 1e-8:
        # opposite vectors: any perpendicular axis works
        if abs(ux) > abs(uz):
            q = (-uy, ux, 0.0, 0.0)
        else:
            q = (0.0, -uz, uy, 0.0)
    else:
        q = (uy * vz - uz * vy, uz * vx - ux * vz, ux * vy - uy * vx, r)

    x, y, z, w = q
    n = math.sqrt(x * x + y * y + z * z + w * w) or 1.0
    return (x / n, y / n, z / n, w / n)


def quat_xyzw_to_axis_angle(q: Quat) -> Tuple[Vec3, float]:
    # Returns (axis, angle_deg) for glRotatef
    x, y, z, w = q
    w = max(-1.0, min(1.0, w))
    angle = 2.0 * math.acos(w)
    s = math.sqrt(max(0.0, 1.0 - w * w))
    if s < 1e-8:
        return ((0.0, 1.0, 0.0), 0.0)
    return ((x / s, y / s, z / s), math.degrees(angle))


def build_segments(skeleton: Skeleton, bones: Iterable[Tuple[str, str]] = BONES) -> List[LimbSegment]:
    segments: List[LimbSegment] = []
    for parent_name, child_name in bones:
        pi = skeleton.index_of(parent_name)
        ci = skeleton.index_of(child_name)
        if pi is None or ci is None:
            raise KeyError(f"Bone references unknown joint: {parent_name} -> {child_name}")
        segments.append(LimbSegment(parent=pi, child=ci))
    return segments


def update_segment(seg: LimbSegment, start: Vec3, end: Vec3) -> None:
    sx, sy, sz = start
    ex, ey, ez = end
    dx, dy, dz = ex - sx, ey - sy, ez - sz
    len_sq = dx * dx + dy * dy + dz * dz

    seg.position = ((sx + ex) * 0.5, (sy + ey) * 0.5, (sz + ez) * 0.5)
    seg.length = math.sqrt(len_sq)

    # coincident endpoints: keep the last valid orientation
    if len_sq > 0.0:
        inv = 1.0 / seg.length
        seg.rotation = quat_from_unit_vectors(SEGMENT_UP, (dx * inv, dy * inv, dz * inv))


def update_segments(segments: List[LimbSegment], pose: WorldPose) -> None:
    """Run after every FK pass, including the first."""
    for seg in segments:
        update_segment(seg, pose.world_pos[seg.parent], pose.world_pos[seg.child])
