# stickpose/viewer/evaluator.py
from __future__ import annotations

import math
from typing import List, Optional

from .skeleton import Skeleton
from .types import Euler, Mat4, Quat, Vec3, WorldPose


# ---------------------------
# Matrix / quaternion helpers (row-major)
# ---------------------------

def mat4_identity() -> Mat4:
    return [
        [1.0, 0.0, 0.0, 0.0],
        [0.0, 1.0, 0.0, 0.0],
        [0.0, 0.0, 1.0, 0.0],
        [0.0, 0.0, 0.0, 1.0],
    ]


def mat4_translate(x: float, y: float, z: float) -> Mat4:
    return [
        [1.0, 0.0, 0.0, float(x)],
        [0.0, 1.0, 0.0, float(y)],
        [0.0, 0.0, 1.0, float(z)],
        [0.0, 0.0, 0.0, 1.0],
    ]


def mat4_mul(A: Mat4, B: Mat4) -> Mat4:
    # row-major multiply: C = A * B
    C = [[0.0] * 4 for _ in range(4)]
    for r in range(4):
        ar0, ar1, ar2, ar3 = A[r]
        for c in range(4):
            C[r][c] = ar0 * B[0][c] + ar1 * B[1][c] + ar2 * B[2][c] + ar3 * B[3][c]
    return C


def euler_to_mat4(euler: Euler) -> Mat4:
    """
    XYZ order: R = Rx * Ry * Rz, column-vector convention.
    """
    x, y, z = euler
    a, b = math.cos(x), math.sin(x)
    c, d = math.cos(y), math.sin(y)
    e, f = math.cos(z), math.sin(z)

    ae, af, be, bf = a * e, a * f, b * e, b * f

    return [
        [c * e,           -c * f,          d,      0.0],
        [af + be * d,     ae - bf * d,     -b * c, 0.0],
        [bf - ae * d,     be + af * d,     a * c,  0.0],
        [0.0,             0.0,             0.0,    1.0],
    ]


def quat_normalize(q: Quat) -> Quat:
    x, y, z, w = q
    n = math.sqrt(x*x + y*y + z*z + w*w)
    if n <= 1e-12:
        return (0.0, 0.0, 0.0, 1.0)
    inv = 1.0 / n
    return (x * inv, y * inv, z * inv, w * inv)


def mat4_to_quat(M: Mat4) -> Quat:
    # rotation part only; assumes no scale
    m00, m01, m02 = M[0][0], M[0][1], M[0][2]
    m10, m11, m12 = M[1][0], M[1][1], M[1][2]
    m20, m21, m22 = M[2][0], M[2][1], M[2][2]
    trace = m00 + m11 + m22

    if trace > 0.0:
        s = 0.5 / math.sqrt(trace + 1.0)
        q = ((m21 - m12) * s, (m02 - m20) * s, (m10 - m01) * s, 0.25 / s)
    elif m00 > m11 and m00 > m22:
        s = 2.0 * math.sqrt(1.0 + m00 - m11 - m22)
        q = (0.25 * s, (m01 + m10) / s, (m02 + m20) / s, (m21 - m12) / s)
    elif m11 > m22:
        s = 2.0 * math.sqrt(1.0 + m11 - m00 - m22)
        q = ((m01 + m10) / s, 0.25 * s, (m12 + m21) / s, (m02 - m20) / s)
    else:
        s = 2.0 * math.sqrt(1.0 + m22 - m00 - m11)
        q = ((m02 + m20) / s, (m12 + m21) / s, 0.25 * s, (m10 - m01) / s)
    return quat_normalize(q)


def transform_point(M: Mat4, v: Vec3) -> Vec3:
    # assumes v as (x,y,z,1) column vector; with row-major M
    x, y, z = v
    tx = M[0][0] * x + M[0][1] * y + M[0][2] * z + M[0][3]
    ty = M[1][0] * x + M[1][1] * y + M[1][2] * z + M[1][3]
    tz = M[2][0] * x + M[2][1] * y + M[2][2] * z + M[2][3]
    return (tx, ty, tz)


# ---------------------------
# Forward kinematics
# ---------------------------

def local_mat(offset: Vec3, rotation: Euler) -> Mat4:
    """Local = T(offset) * R(rotation)"""
    ox, oy, oz = offset
    return mat4_mul(mat4_translate(ox, oy, oz), euler_to_mat4(rotation))


def evaluate_pose(skeleton: Skeleton) -> WorldPose:
    """
    World = ParentWorld * T(offset) * R(rotation), root to leaf.
    Every call recomputes all joints from the current rotations.
    """
    n = len(skeleton)
    world_mats: List[Optional[Mat4]] = [None] * n

    # arena order guarantees parents come first
    for j in skeleton.joints:
        rx, ry, rz = j.rotation
        local = local_mat(j.offset, (rx, ry, rz))
        if j.parent is None:
            world_mats[j.index] = local
        else:
            parent_world = world_mats[j.parent]
            assert parent_world is not None
            world_mats[j.index] = mat4_mul(parent_world, local)

    mats: List[Mat4] = [m if m is not None else mat4_identity() for m in world_mats]
    world_pos = [transform_point(m, (0.0, 0.0, 0.0)) for m in mats]
    return WorldPose(world_mats=mats, world_pos=world_pos)


def world_orientation(pose: WorldPose, index: int) -> Quat:
    return mat4_to_quat(pose.world_mats[index])
