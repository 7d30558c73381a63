# stickpose/viewer/picking.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, List, Optional

from .pose_codec import export_pose
from .skeleton import Joint, Skeleton
from .types import PoseData, Vec3, WorldPose

logger = logging.getLogger(__name__)

DRAG_SENSITIVITY = 0.01  # radians per pixel


@dataclass(frozen=True)
class Ray:
    origin: Vec3
    direction: Vec3  # unit length


@dataclass(frozen=True)
class Hit:
    joint: int
    distance: float
    point: Vec3


def intersect_sphere(ray: Ray, center: Vec3, radius: float) -> Optional[float]:
    """Distance along the ray to the first sphere surface in front of the origin."""
    ox, oy, oz = ray.origin
    dx, dy, dz = ray.direction
    lx, ly, lz = center[0] - ox, center[1] - oy, center[2] - oz

    tca = lx * dx + ly * dy + lz * dz
    d2 = (lx * lx + ly * ly + lz * lz) - tca * tca
    r2 = radius * radius
    if d2 > r2:
        return None

    thc = math.sqrt(r2 - d2)
    t0 = tca - thc
    t1 = tca + thc
    if t0 >= 0.0:
        return t0
    if t1 >= 0.0:
        # origin inside the sphere
        return t1
    return None


def intersect_joints(ray: Ray, joints: List[Joint], pose: WorldPose) -> List[Hit]:
    hits: List[Hit] = []
    for j in joints:
        if j.radius <= 0.0:
            continue
        t = intersect_sphere(ray, pose.world_pos[j.index], j.radius)
        if t is None:
            continue
        ox, oy, oz = ray.origin
        dx, dy, dz = ray.direction
        hits.append(Hit(joint=j.index, distance=t, point=(ox + dx * t, oy + dy * t, oz + dz * t)))
    hits.sort(key=lambda h: h.distance)
    return hits


def pick_joint(skeleton: Skeleton, pose: WorldPose, ray: Ray) -> Optional[Hit]:
    """Nearest hit among interactive joints only."""
    hits = intersect_joints(ray, skeleton.interactive_joints, pose)
    return hits[0] if hits else None


class DragController:
    """
    Idle <-> Dragging(joint).

      pointer_down: pick nearest interactive joint; on hit lock the camera and drag
      pointer_move: yaw += dx * sensitivity, pitch += dy * sensitivity, then export
      pointer_up:   release the joint, unlock the camera

    `set_orbit_enabled` is how the camera is locked; `on_pose_changed` receives the
    exported pose after every drag step.
    """

    def __init__(
        self,
        skeleton: Skeleton,
        *,
        sensitivity: float = DRAG_SENSITIVITY,
        set_orbit_enabled: Optional[Callable[[bool], None]] = None,
        on_pose_changed: Optional[Callable[[PoseData], None]] = None,
        export: Optional[Callable[[Skeleton], PoseData]] = None,
    ) -> None:
        self.skeleton = skeleton
        self.sensitivity = float(sensitivity)
        self._set_orbit_enabled = set_orbit_enabled
        self._on_pose_changed = on_pose_changed
        self._export = export if export is not None else export_pose
        self._selected: Optional[int] = None

    @property
    def dragging(self) -> bool:
        return self._selected is not None

    @property
    def selected(self) -> Optional[Joint]:
        return None if self._selected is None else self.skeleton.joints[self._selected]

    def pointer_down(self, ray: Ray, pose: WorldPose) -> bool:
        if self._selected is not None:
            return True

        hit = pick_joint(self.skeleton, pose, ray)
        if hit is None:
            return False

        self._selected = hit.joint
        logger.debug("drag begin: %s (t=%.3f)", self.skeleton.joints[hit.joint].name, hit.distance)
        if self._set_orbit_enabled is not None:
            self._set_orbit_enabled(False)
        return True

    def pointer_move(self, dx: float, dy: float) -> None:
        if self._selected is None:
            return

        j = self.skeleton.joints[self._selected]
        j.rotation[1] += float(dx) * self.sensitivity  # yaw, local vertical axis
        j.rotation[0] += float(dy) * self.sensitivity  # pitch, local horizontal axis

        if self._on_pose_changed is not None:
            self._on_pose_changed(self._export(self.skeleton))

    def pointer_up(self) -> None:
        if self._selected is None:
            return
        logger.debug("drag end: %s", self.skeleton.joints[self._selected].name)
        self._selected = None
        if self._set_orbit_enabled is not None:
            self._set_orbit_enabled(True)
