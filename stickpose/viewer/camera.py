# stickpose/viewer/camera.py
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .types import Vec3

QuatW = Tuple[float, float, float, float]  # (w,x,y,z), camera-side convention

# Reference view: eye (0, 1.5, 3) looking at (0, 1, 0)
DEFAULT_CENTER: Vec3 = (0.0, 1.0, 0.0)
DEFAULT_DIST = math.sqrt(0.5 * 0.5 + 3.0 * 3.0)
DEFAULT_PITCH_DEG = -math.degrees(math.atan2(0.5, 3.0))
MIN_DIST = 0.5


# -------- math helpers --------
def clamp(v: float, lo: float, hi: float) -> float:
    return lo if v < lo else hi if v > hi else v


def normalize(v: Vec3) -> Vec3:
    x, y, z = v
    n = math.sqrt(x * x + y * y + z * z) or 1.0
    return (x / n, y / n, z / n)


def cross(a: Vec3, b: Vec3) -> Vec3:
    ax, ay, az = a
    bx, by, bz = b
    return (ay * bz - az * by, az * bx - ax * bz, ax * by - ay * bx)


def dot(a: Vec3, b: Vec3) -> float:
    return a[0] * b[0] + a[1] * b[1] + a[2] * b[2]


# -------- quaternion helpers (w,x,y,z) --------
def quat_mul(q1: QuatW, q2: QuatW) -> QuatW:
    w1, x1, y1, z1 = q1
    w2, x2, y2, z2 = q2
    return (
        w1 * w2 - x1 * x2 - y1 * y2 - z1 * z2,
        w1 * x2 + x1 * w2 + y1 * z2 - z1 * y2,
        w1 * y2 - x1 * z2 + y1 * w2 + z1 * x2,
        w1 * z2 + x1 * y2 - y1 * x2 + z1 * w2,
    )


def quat_norm(q: QuatW) -> QuatW:
    w, x, y, z = q
    n = math.sqrt(w * w + x * x + y * y + z * z) or 1.0
    return (w / n, x / n, y / n, z / n)


def quat_from_axis_angle(axis: Vec3, angle_rad: float) -> QuatW:
    ax, ay, az = normalize(axis)
    s = math.sin(angle_rad * 0.5)
    return (math.cos(angle_rad * 0.5), ax * s, ay * s, az * s)


def quat_wxyz_to_axis_angle(q: QuatW) -> Tuple[Vec3, float]:
    # Returns (axis, angle_deg) for glRotatef
    w, x, y, z = quat_norm(q)
    w = clamp(w, -1.0, 1.0)
    angle = 2.0 * math.acos(w)
    s = math.sqrt(max(0.0, 1.0 - w * w))
    if s < 1e-8:
        return ((0.0, 1.0, 0.0), 0.0)
    return ((x / s, y / s, z / s), math.degrees(angle))


def quat_rotate_vec(q: QuatW, v: Vec3) -> Vec3:
    # v' = q * (0,v) * q_conj
    w, x, y, z = quat_norm(q)
    vx, vy, vz = v

    # t = 2 * cross(q_vec, v)
    tx = 2.0 * (y * vz - z * vy)
    ty = 2.0 * (z * vx - x * vz)
    tz = 2.0 * (x * vy - y * vx)

    # v' = v + w*t + cross(q_vec, t)
    return (
        vx + w * tx + (y * tz - z * ty),
        vy + w * ty + (z * tx - x * tz),
        vz + w * tz + (x * ty - y * tx),
    )


# -------- arcball mapping --------
def arcball_point(x: int, y: int, w: int, h: int) -> Vec3:
    # Map x,y in window -> point on virtual unit sphere / hyperbolic sheet
    if w <= 1 or h <= 1:
        return (0.0, 0.0, 1.0)

    nx = (2.0 * x - w) / float(w)
    ny = (h - 2.0 * y) / float(h)  # y up
    r2 = nx * nx + ny * ny
    if r2 <= 1.0:
        return (nx, ny, math.sqrt(1.0 - r2))

    inv_len = 1.0 / math.sqrt(r2)
    return (nx * inv_len, ny * inv_len, 0.0)


@dataclass
class OrbitCamera:
    """
    Orbit camera around `center`. The view transform is
        T(0,0,-dist) * R(conj(rot_q)) * T(-center)
    which is exactly what the GL widget loads before drawing, so picking rays and
    rendering always agree.
    """

    center: Vec3 = DEFAULT_CENTER
    rot_q: QuatW = field(default_factory=lambda: quat_from_axis_angle((1.0, 0.0, 0.0), math.radians(DEFAULT_PITCH_DEG)))
    dist: float = DEFAULT_DIST
    fov_deg: float = 75.0
    z_near: float = 0.1
    z_far: float = 1000.0

    # -------- state --------
    def get_state(self) -> Dict[str, Any]:
        cx, cy, cz = self.center
        qw, qx, qy, qz = quat_norm(self.rot_q)
        return {
            "center": [float(cx), float(cy), float(cz)],
            "dist": float(self.dist),
            "rot_q": [float(qw), float(qx), float(qy), float(qz)],
        }

    def set_state(self, state: Dict[str, Any]) -> None:
        c = state.get("center")
        if isinstance(c, (list, tuple)) and len(c) >= 3:
            self.center = (float(c[0]), float(c[1]), float(c[2]))

        d = state.get("dist")
        if isinstance(d, (int, float)) and not isinstance(d, bool):
            self.dist = max(MIN_DIST, float(d))

        q = state.get("rot_q")
        if isinstance(q, (list, tuple)) and len(q) >= 4:
            self.rot_q = quat_norm((float(q[0]), float(q[1]), float(q[2]), float(q[3])))

    def reset(self) -> None:
        self.center = DEFAULT_CENTER
        self.rot_q = quat_from_axis_angle((1.0, 0.0, 0.0), math.radians(DEFAULT_PITCH_DEG))
        self.dist = DEFAULT_DIST

    # -------- geometry --------
    def eye(self) -> Vec3:
        ox, oy, oz = quat_rotate_vec(self.rot_q, (0.0, 0.0, self.dist))
        cx, cy, cz = self.center
        return (cx + ox, cy + oy, cz + oz)

    def frustum(self, width: int, height: int) -> Tuple[float, float, float, float, float, float]:
        aspect = float(width) / float(max(height, 1))
        top = math.tan(math.radians(self.fov_deg * 0.5)) * self.z_near
        right = top * aspect
        return (-right, right, -top, top, self.z_near, self.z_far)

    def ray_from_viewport(self, x: float, y: float, width: int, height: int) -> Tuple[Vec3, Vec3]:
        """Pixel (x down-right origin) -> (origin, unit direction) in world space."""
        w = max(int(width), 1)
        h = max(int(height), 1)
        nx = (2.0 * float(x)) / w - 1.0
        ny = 1.0 - (2.0 * float(y)) / h

        t = math.tan(math.radians(self.fov_deg * 0.5))
        aspect = float(w) / float(h)
        d_cam = (nx * t * aspect, ny * t, -1.0)

        direction = normalize(quat_rotate_vec(self.rot_q, d_cam))
        return (self.eye(), direction)

    # -------- input --------
    def orbit(self, p0: Vec3, p1: Vec3) -> bool:
        axis = cross(p0, p1)
        axis_len = math.sqrt(dot(axis, axis))
        if axis_len <= 1e-8:
            return False
        angle = -math.acos(clamp(dot(p0, p1), -1.0, 1.0))
        dq = quat_from_axis_angle(axis, angle)
        self.rot_q = quat_norm(quat_mul(self.rot_q, dq))
        return True

    def pan(self, dx: float, dy: float, height: Optional[int] = None) -> None:
        # world units per pixel at the orbit center
        if height:
            pan_scale = 2.0 * float(self.dist) * math.tan(math.radians(self.fov_deg * 0.5)) / float(height)
        else:
            pan_scale = float(self.dist) * 0.0025
        right = quat_rotate_vec(self.rot_q, (1.0, 0.0, 0.0))
        up = quat_rotate_vec(self.rot_q, (0.0, 1.0, 0.0))

        cx, cy, cz = self.center
        cx += (-right[0] * dx + up[0] * dy) * pan_scale
        cy += (-right[1] * dx + up[1] * dy) * pan_scale
        cz += (-right[2] * dx + up[2] * dy) * pan_scale
        self.center = (cx, cy, cz)

    def dolly(self, delta: float, step: float = 0.10) -> None:
        if delta > 0:
            self.dist *= (1.0 - step)
        elif delta < 0:
            self.dist *= (1.0 + step)
        self.dist = max(MIN_DIST, float(self.dist))
