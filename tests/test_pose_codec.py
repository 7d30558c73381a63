"""
Pose JSON: degrees on the wire, radians in the skeleton.
"""

import json
import math

import pytest

from stickpose.viewer.pose_codec import (
    EXPORT_FILENAME,
    INITIAL_POSE_DATA,
    PoseFormatError,
    RotationPatch,
    decode_pose,
    dumps_pose,
    export_pose,
    import_pose,
    parse_pose_text,
    read_pose_file,
    round_half_up,
    write_pose_file,
)
from stickpose.viewer.skeleton import build_skeleton


@pytest.fixture
def skel():
    return build_skeleton()


def _snapshot(skel):
    return [list(j.rotation) for j in skel.joints]


def test_export_rest_pose_matches_initial_data(skel):
    out = export_pose(skel)
    assert out == INITIAL_POSE_DATA
    assert list(out) == [j.name for j in skel.interactive_joints]
    for rec in out.values():
        assert all(type(v) is int for v in rec.values())


def test_export_import_round_trip(skel):
    pose = {
        "torso": {"x": 10, "y": -20, "z": 30},
        "neck": {"x": 0, "y": 45, "z": 0},
        "leftShoulder": {"x": -90, "y": 0, "z": 120},
        "leftElbow": {"x": 400, "y": -725, "z": 1},
        "rightShoulder": {"x": 5, "y": 6, "z": 7},
        "rightElbow": {"x": -1, "y": -1, "z": -1},
        "leftHip": {"x": 180, "y": -180, "z": 0},
        "leftKnee": {"x": 33, "y": 0, "z": 0},
        "rightHip": {"x": 0, "y": 0, "z": 89},
        "rightKnee": {"x": 15, "y": 25, "z": 35},
    }
    assert import_pose(skel, pose) == 10
    assert export_pose(skel) == pose

    other = build_skeleton()
    import_pose(other, export_pose(skel))
    assert export_pose(other) == pose


def test_partial_import_merges(skel):
    import_pose(skel, {"leftElbow": {"x": 10, "y": 20, "z": 30}})
    assert import_pose(skel, {"torso": {"x": 5, "y": 0, "z": 0}}) == 1

    out = export_pose(skel)
    assert out["leftElbow"] == {"x": 10, "y": 20, "z": 30}
    assert out["torso"] == {"x": 5, "y": 0, "z": 0}
    assert out["neck"] == {"x": 0, "y": 0, "z": 0}


def test_missing_axis_keeps_current_value(skel):
    import_pose(skel, {"neck": {"x": 10, "y": 20, "z": 30}})
    import_pose(skel, {"neck": {"y": -5}})
    assert export_pose(skel)["neck"] == {"x": 10, "y": -5, "z": 30}


def test_unknown_and_leaf_keys_ignored(skel):
    before = _snapshot(skel)
    n = import_pose(skel, {"tail": {"x": 1, "y": 2, "z": 3}, "head": {"x": 4, "y": 5, "z": 6}})
    assert n == 0
    assert _snapshot(skel) == before


def test_fractional_and_out_of_range_degrees(skel):
    import_pose(skel, {"neck": {"x": 12.6, "y": -400, "z": 0.4}})
    assert skel.rotation_deg("neck") == pytest.approx((12.6, -400.0, 0.4))
    assert export_pose(skel)["neck"] == {"x": 13, "y": -400, "z": 0}


@pytest.mark.parametrize(
    "value, expected",
    [(0.5, 1), (-0.5, 0), (2.5, 3), (-2.5, -2), (1.49, 1), (-1.51, -2), (57.29577951308232, 57)],
)
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected


@pytest.mark.parametrize("payload", [[], "pose", 42, None, True])
def test_non_object_payload_applies_nothing(skel, payload):
    assert decode_pose(payload) == {}
    assert import_pose(skel, payload) == 0


def test_bad_entries_and_axes_are_skipped(skel):
    import_pose(skel, {"torso": {"x": 1, "y": 2, "z": 3}})
    data = {
        "neck": "up",
        "torso": {"x": "10", "y": True, "z": None},
        "leftKnee": {"x": float("nan"), "y": float("inf"), "z": 7},
    }
    assert decode_pose(data)["torso"] == RotationPatch()
    assert "neck" not in decode_pose(data)

    import_pose(skel, data)
    out = export_pose(skel)
    assert out["torso"] == {"x": 1, "y": 2, "z": 3}
    assert out["neck"] == {"x": 0, "y": 0, "z": 0}
    assert out["leftKnee"] == {"x": 0, "y": 0, "z": 7}


def test_huge_integer_axis_is_skipped():
    assert decode_pose({"neck": {"x": 10 ** 400}})["neck"].x is None


def test_parse_rejects_malformed_text():
    with pytest.raises(PoseFormatError) as ei:
        parse_pose_text('{"torso": {"x": 1,')
    assert isinstance(ei.value.__cause__, json.JSONDecodeError)
    assert isinstance(ei.value, ValueError)


def test_parse_accepts_nan_literal(skel):
    data = parse_pose_text('{"torso": {"x": NaN, "y": 3, "z": 0}}')
    assert math.isnan(data["torso"]["x"])
    import_pose(skel, data)
    assert export_pose(skel)["torso"] == {"x": 0, "y": 3, "z": 0}


def test_dumps_uses_two_space_indent():
    text = dumps_pose({"torso": {"x": 1, "y": 2, "z": 3}})
    assert text == json.dumps({"torso": {"x": 1, "y": 2, "z": 3}}, indent=2)
    assert '\n    "x": 1' in text


def test_write_and_read_file(tmp_path, skel):
    import_pose(skel, {"rightHip": {"x": 0, "y": 0, "z": 45}})
    pose = export_pose(skel)

    out = write_pose_file(tmp_path / "sub" / EXPORT_FILENAME, pose)
    assert out.name == "stick-figure-pose.json"
    assert out.read_text(encoding="utf-8") == dumps_pose(pose)
    assert read_pose_file(out) == pose


def test_read_file_errors(tmp_path):
    with pytest.raises(PoseFormatError):
        read_pose_file(tmp_path / "missing.json")

    bad = tmp_path / "bad.json"
    bad.write_text("not json", encoding="utf-8")
    with pytest.raises(PoseFormatError):
        read_pose_file(bad)

    binary = tmp_path / "binary.json"
    binary.write_bytes(b"\xff\xfe\x00")
    with pytest.raises(PoseFormatError):
        read_pose_file(binary)
