"""
Skeleton arena: fixed topology, fixed offsets, rotation-only mutation.
"""

import math

import pytest

from stickpose.viewer.skeleton import (
    BONES,
    JOINT_DEFS,
    Skeleton,
    build_skeleton,
)
from stickpose.viewer.types import JointDef


INTERACTIVE_ORDER = [
    "torso",
    "neck",
    "leftShoulder",
    "leftElbow",
    "rightShoulder",
    "rightElbow",
    "leftHip",
    "leftKnee",
    "rightHip",
    "rightKnee",
]

LEAVES = ["head", "leftHand", "rightHand", "leftFoot", "rightFoot"]


def test_build_skeleton_shape():
    skel = build_skeleton()

    assert len(skel) == 16
    assert skel.root.name == "hips"
    assert skel.root.parent is None
    assert [j.name for j in skel.interactive_joints] == INTERACTIVE_ORDER
    assert set(skel.joint_by_name) == {d.name for d in JOINT_DEFS}


def test_leaf_joints_are_not_interactive():
    skel = build_skeleton()
    for name in LEAVES + ["hips"]:
        j = skel.get(name)
        assert j is not None
        assert not j.interactive
        assert not skel.is_interactive(name)
    for name in LEAVES:
        assert skel.get(name).children == []


def test_parent_child_links_are_consistent():
    skel = build_skeleton()
    for j in skel.joints:
        if j.parent is None:
            continue
        assert j.index in skel.joints[j.parent].children
        # arena order: parent first
        assert j.parent < j.index

    assert [skel.joints[c].name for c in skel.get("torso").children] == ["neck", "leftShoulder", "rightShoulder"]
    assert [skel.joints[c].name for c in skel.get("hips").children] == ["torso", "leftHip", "rightHip"]


def test_offsets_and_rest_rotation():
    skel = build_skeleton()
    assert skel.get("hips").offset == (0.0, 1.0, 0.0)
    assert skel.get("leftShoulder").offset == (0.3, 0.0, 0.0)
    assert skel.get("rightShoulder").offset == (-0.3, 0.0, 0.0)
    assert skel.get("leftKnee").offset == (0.0, -0.6, 0.0)
    for j in skel.joints:
        assert j.rotation == [0.0, 0.0, 0.0]


def test_bones_reference_parent_child_pairs():
    skel = build_skeleton()
    assert len(BONES) == 15
    for parent, child in BONES:
        c = skel.get(child)
        assert c is not None
        assert skel.joints[c.parent].name == parent


def test_rebuild_returns_independent_tree():
    a = build_skeleton()
    a.apply_rotation("torso", (10, 20, 30))

    b = build_skeleton()
    assert b.get("torso").rotation == [0.0, 0.0, 0.0]
    assert a.get("torso") is not b.get("torso")
    assert len(b.interactive_joints) == 10


def test_apply_rotation_converts_degrees():
    skel = build_skeleton()
    assert skel.apply_rotation("leftElbow", (90, -45, 180)) is True

    rx, ry, rz = skel.get("leftElbow").rotation
    assert rx == pytest.approx(math.pi / 2)
    assert ry == pytest.approx(-math.pi / 4)
    assert rz == pytest.approx(math.pi)

    assert skel.rotation_deg("leftElbow") == pytest.approx((90.0, -45.0, 180.0))


@pytest.mark.parametrize("name", ["madeUpJoint", "head", "hips", "leftHand", ""])
def test_apply_rotation_ignores_unknown_and_leaf(name):
    skel = build_skeleton()
    before = [list(j.rotation) for j in skel.joints]

    assert skel.apply_rotation(name, (1, 2, 3)) is False
    assert [list(j.rotation) for j in skel.joints] == before


def test_invalid_definitions_rejected():
    with pytest.raises(ValueError):
        Skeleton([JointDef("a", None, (0, 0, 0)), JointDef("a", None, (0, 0, 0))])
    with pytest.raises(ValueError):
        Skeleton([JointDef("child", "root", (0, 0, 0)), JointDef("root", None, (0, 0, 0))])
    with pytest.raises(ValueError):
        Skeleton([JointDef("a", None, (0, 0, 0)), JointDef("b", None, (0, 0, 0))])
