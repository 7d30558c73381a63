# stickpose/viewer/figure.py
from __future__ import annotations

from typing import Any, List, Optional

from .evaluator import evaluate_pose
from .pose_codec import export_pose, import_pose
from .segments import LimbSegment, build_segments, update_segments
from .skeleton import Skeleton, build_skeleton
from .types import PoseData, WorldPose


class Figure:
    """
    One posable figure: skeleton arena, its limb segments and the last world pose.

    `recompute()` runs FK then segment derivation unconditionally; the renderer
    calls it every frame and the host calls it right after an import.
    """

    def __init__(self, skeleton: Optional[Skeleton] = None) -> None:
        self.skeleton = skeleton if skeleton is not None else build_skeleton()
        self.segments: List[LimbSegment] = build_segments(self.skeleton)
        self.pose: WorldPose = self.recompute()

    def recompute(self) -> WorldPose:
        pose = evaluate_pose(self.skeleton)
        update_segments(self.segments, pose)
        self.pose = pose
        return pose

    def export_pose(self) -> PoseData:
        return export_pose(self.skeleton)

    def import_pose(self, data: Any) -> int:
        n = import_pose(self.skeleton, data)
        self.recompute()
        return n
