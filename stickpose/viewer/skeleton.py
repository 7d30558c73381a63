# stickpose/viewer/skeleton.py
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .types import Euler, JointDef, Vec3

logger = logging.getLogger(__name__)


HIPS = "hips"
TORSO = "torso"
NECK = "neck"
HEAD = "head"
LEFT_SHOULDER = "leftShoulder"
LEFT_ELBOW = "leftElbow"
LEFT_HAND = "leftHand"
RIGHT_SHOULDER = "rightShoulder"
RIGHT_ELBOW = "rightElbow"
RIGHT_HAND = "rightHand"
LEFT_HIP = "leftHip"
LEFT_KNEE = "leftKnee"
LEFT_FOOT = "leftFoot"
RIGHT_HIP = "rightHip"
RIGHT_KNEE = "rightKnee"
RIGHT_FOOT = "rightFoot"


# Parents always precede children. Interactive joints appear in export order.
JOINT_DEFS: tuple[JointDef, ...] = (
    JointDef(HIPS, None, (0.0, 1.0, 0.0)),
    JointDef(TORSO, HIPS, (0.0, 0.5, 0.0), interactive=True, radius=0.1),
    JointDef(NECK, TORSO, (0.0, 0.5, 0.0), interactive=True, radius=0.08),
    JointDef(HEAD, NECK, (0.0, 0.2, 0.0), radius=0.2),
    JointDef(LEFT_SHOULDER, TORSO, (0.3, 0.0, 0.0), interactive=True, radius=0.1),
    JointDef(LEFT_ELBOW, LEFT_SHOULDER, (0.0, -0.5, 0.0), interactive=True, radius=0.1),
    JointDef(LEFT_HAND, LEFT_ELBOW, (0.0, -0.4, 0.0), radius=0.08),
    JointDef(RIGHT_SHOULDER, TORSO, (-0.3, 0.0, 0.0), interactive=True, radius=0.1),
    JointDef(RIGHT_ELBOW, RIGHT_SHOULDER, (0.0, -0.5, 0.0), interactive=True, radius=0.1),
    JointDef(RIGHT_HAND, RIGHT_ELBOW, (0.0, -0.4, 0.0), radius=0.08),
    JointDef(LEFT_HIP, HIPS, (0.15, 0.0, 0.0), interactive=True, radius=0.1),
    JointDef(LEFT_KNEE, LEFT_HIP, (0.0, -0.6, 0.0), interactive=True, radius=0.1),
    JointDef(LEFT_FOOT, LEFT_KNEE, (0.0, -0.5, 0.0), radius=0.08),
    JointDef(RIGHT_HIP, HIPS, (-0.15, 0.0, 0.0), interactive=True, radius=0.1),
    JointDef(RIGHT_KNEE, RIGHT_HIP, (0.0, -0.6, 0.0), interactive=True, radius=0.1),
    JointDef(RIGHT_FOOT, RIGHT_KNEE, (0.0, -0.5, 0.0), radius=0.08),
)

# (parent, child) pairs drawn as limb segments
BONES: tuple[tuple[str, str], ...] = (
    (HIPS, TORSO),
    (TORSO, NECK),
    (NECK, HEAD),
    (TORSO, LEFT_SHOULDER),
    (LEFT_SHOULDER, LEFT_ELBOW),
    (LEFT_ELBOW, LEFT_HAND),
    (TORSO, RIGHT_SHOULDER),
    (RIGHT_SHOULDER, RIGHT_ELBOW),
    (RIGHT_ELBOW, RIGHT_HAND),
    (HIPS, LEFT_HIP),
    (LEFT_HIP, LEFT_KNEE),
    (LEFT_KNEE, LEFT_FOOT),
    (HIPS, RIGHT_HIP),
    (RIGHT_HIP, RIGHT_KNEE),
    (RIGHT_KNEE, RIGHT_FOOT),
)


@dataclass
class Joint:
    index: int
    name: str
    parent: Optional[int]
    offset: Vec3
    interactive: bool
    radius: float
    children: List[int] = field(default_factory=list)
    # local XYZ euler, radians
    rotation: List[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])


class Skeleton:
    """
    Arena of joint records. Each joint holds the index of its parent and the
    indices of its children; `joint_by_name` and `interactive_joints` are index
    views computed once at construction and never edited afterwards.

    Only local rotations mutate. Offsets and topology are fixed.
    """

    def __init__(self, defs: Sequence[JointDef]) -> None:
        self.joints: List[Joint] = []
        index_by_name: Dict[str, int] = {}

        for d in defs:
            if d.name in index_by_name:
                raise ValueError(f"Duplicate joint name: {d.name}")
            parent_idx: Optional[int] = None
            if d.parent is not None:
                if d.parent not in index_by_name:
                    raise ValueError(f"Joint {d.name!r} declared before its parent {d.parent!r}")
                parent_idx = index_by_name[d.parent]

            idx = len(self.joints)
            self.joints.append(
                Joint(
                    index=idx,
                    name=d.name,
                    parent=parent_idx,
                    offset=(float(d.offset[0]), float(d.offset[1]), float(d.offset[2])),
                    interactive=bool(d.interactive),
                    radius=float(d.radius),
                )
            )
            index_by_name[d.name] = idx
            if parent_idx is not None:
                self.joints[parent_idx].children.append(idx)

        roots = [j.index for j in self.joints if j.parent is None]
        if len(roots) != 1:
            raise ValueError(f"Skeleton needs exactly one root, got {len(roots)}")

        self._index_by_name = index_by_name
        self._root = roots[0]
        self._interactive = tuple(j.index for j in self.joints if j.interactive)

    # ---- views ----
    @property
    def root(self) -> Joint:
        return self.joints[self._root]

    @property
    def interactive_joints(self) -> List[Joint]:
        return [self.joints[i] for i in self._interactive]

    @property
    def joint_by_name(self) -> Dict[str, Joint]:
        return {name: self.joints[i] for name, i in self._index_by_name.items()}

    def __len__(self) -> int:
        return len(self.joints)

    def index_of(self, name: str) -> Optional[int]:
        return self._index_by_name.get(name)

    def get(self, name: str) -> Optional[Joint]:
        idx = self._index_by_name.get(name)
        return None if idx is None else self.joints[idx]

    def is_interactive(self, name: str) -> bool:
        j = self.get(name)
        return j is not None and j.interactive

    # ---- rotation ----
    def rotation_deg(self, name: str) -> Optional[Euler]:
        j = self.get(name)
        if j is None:
            return None
        rx, ry, rz = j.rotation
        return (math.degrees(rx), math.degrees(ry), math.degrees(rz))

    def apply_rotation(self, name: str, euler_deg: Euler) -> bool:
        """
        Set the local rotation of an interactive joint from degrees.
        Unknown and non-interactive names are ignored; returns whether anything was set.
        """
        j = self.get(name)
        if j is None or not j.interactive:
            logger.debug("apply_rotation ignored for %r", name)
            return False
        x, y, z = euler_deg
        j.rotation[0] = math.radians(float(x))
        j.rotation[1] = math.radians(float(y))
        j.rotation[2] = math.radians(float(z))
        return True


def build_skeleton() -> Skeleton:
    """Fresh figure in rest pose. Every call returns a new, independent arena."""
    return Skeleton(JOINT_DEFS)
