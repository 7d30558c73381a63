from __future__ import annotations

import logging
import time
import tkinter as tk
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

from PIL import Image

from .camera import OrbitCamera, arcball_point, quat_wxyz_to_axis_angle
from .figure import Figure
from .picking import DRAG_SENSITIVITY, DragController, Ray
from .segments import quat_xyzw_to_axis_angle
from .skeleton import HEAD
from .types import PoseData

logger = logging.getLogger(__name__)


# Embed OpenGL in Tk via pyopengltk (Windows-friendly)
try:
    from pyopengltk import OpenGLFrame
except Exception as e:  # pragma: no cover
    OpenGLFrame = None  # type: ignore[assignment]
    _OPENGLFRAME_IMPORT_ERR = e
else:
    _OPENGLFRAME_IMPORT_ERR = None

try:
    from OpenGL.GL import (
        GL_AMBIENT,
        GL_AMBIENT_AND_DIFFUSE,
        GL_BACK,
        GL_COLOR_BUFFER_BIT,
        GL_COLOR_MATERIAL,
        GL_COMPILE,
        GL_DEPTH_BUFFER_BIT,
        GL_DEPTH_TEST,
        GL_DIFFUSE,
        GL_FRONT_AND_BACK,
        GL_LIGHT0,
        GL_LIGHTING,
        GL_LINES,
        GL_LINE_SMOOTH,
        GL_LINE_SMOOTH_HINT,
        GL_MODELVIEW,
        GL_NICEST,
        GL_NORMALIZE,
        GL_PACK_ALIGNMENT,
        GL_POSITION,
        GL_PROJECTION,
        GL_RGBA,
        GL_UNSIGNED_BYTE,
        glBegin,
        glCallList,
        glClear,
        glClearColor,
        glColor3f,
        glColorMaterial,
        glDeleteLists,
        glDisable,
        glEnable,
        glEnd,
        glEndList,
        glFlush,
        glFrustum,
        glGenLists,
        glHint,
        glLightfv,
        glLineWidth,
        glLoadIdentity,
        glMatrixMode,
        glNewList,
        glPixelStorei,
        glPopMatrix,
        glPushMatrix,
        glReadBuffer,
        glReadPixels,
        glRotatef,
        glScalef,
        glTranslatef,
        glVertex3f,
        glViewport,
    )
    from OpenGL.GLU import (
        GLU_SMOOTH,
        gluCylinder,
        gluDeleteQuadric,
        gluNewQuadric,
        gluQuadricNormals,
        gluSphere,
    )
    from OpenGL.error import GLError
except Exception as e:  # pragma: no cover
    _PYOPENGL_IMPORT_ERR = e
else:
    _PYOPENGL_IMPORT_ERR = None


LIMB_RADIUS = 0.025
FRAME_MS = 16  # render tick; pyopengltk reschedules _display after this many ms

BG_RGB = (0.067, 0.094, 0.153)
JOINT_RGB = (0.0, 0.667, 1.0)
HEAD_RGB = (1.0, 0.667, 1.0)
SELECTED_RGB = (1.0, 0.85, 0.2)
LIMB_RGB = (0.95, 0.95, 0.95)
GRID_RGB = (0.35, 0.35, 0.40)


class GLResources:
    """
    GPU-side handles owned by one GL context: a GLU quadric and display lists for
    the unit sphere, the unit limb cylinder and the ground grid.

    acquire() is all-or-nothing; release() is idempotent and needs the context current.
    """

    def __init__(self) -> None:
        self.quadric = None
        self.sphere_list: Optional[int] = None
        self.cylinder_list: Optional[int] = None
        self.grid_list: Optional[int] = None

    @property
    def ready(self) -> bool:
        return self.sphere_list is not None and self.cylinder_list is not None

    def acquire(self) -> None:
        try:
            self.quadric = gluNewQuadric()
            gluQuadricNormals(self.quadric, GLU_SMOOTH)
            self.sphere_list = self._compile(lambda: gluSphere(self.quadric, 1.0, 16, 16))
            self.cylinder_list = self._compile(self._unit_cylinder)
            self.grid_list = self._compile(self._grid)
        except Exception:
            logger.exception("GL resource acquisition failed; releasing partial state")
            self.release()
            raise
        logger.info("GL resources acquired (lists: %s, %s, %s)", self.sphere_list, self.cylinder_list, self.grid_list)

    def release(self) -> None:
        for attr in ("sphere_list", "cylinder_list", "grid_list"):
            lst = getattr(self, attr)
            if lst is not None:
                glDeleteLists(lst, 1)
                setattr(self, attr, None)
        if self.quadric is not None:
            gluDeleteQuadric(self.quadric)
            self.quadric = None
        logger.info("GL resources released")

    @staticmethod
    def _compile(draw: Callable[[], None]) -> int:
        lst = glGenLists(1)
        if not lst:
            raise RuntimeError("glGenLists returned 0")
        glNewList(lst, GL_COMPILE)
        try:
            draw()
        except Exception:
            glEndList()
            glDeleteLists(lst, 1)
            raise
        glEndList()
        return lst

    def _unit_cylinder(self) -> None:
        # radius 1, height 1, along +Y, centered at the origin
        glPushMatrix()
        glRotatef(-90.0, 1.0, 0.0, 0.0)
        glTranslatef(0.0, 0.0, -0.5)
        gluCylinder(self.quadric, 1.0, 1.0, 1.0, 12, 1)
        glPopMatrix()

    @staticmethod
    def _grid(size: float = 10.0, divisions: int = 10) -> None:
        half = size * 0.5
        step = size / divisions
        glLineWidth(1.0)
        glColor3f(*GRID_RGB)
        glBegin(GL_LINES)
        for i in range(divisions + 1):
            k = -half + i * step
            glVertex3f(k, 0.0, -half)
            glVertex3f(k, 0.0, half)
            glVertex3f(-half, 0.0, k)
            glVertex3f(half, 0.0, k)
        glEnd()


def _unbind_funcid(widget: tk.Misc, sequence: str, funcid: str) -> None:
    """
    Remove one handler that was bound with add="+" and keep the rest of the sequence.
    Misc.unbind(sequence, funcid) clears every handler on the sequence before Python 3.13.
    """
    path = str(widget)
    script = str(widget.tk.call("bind", path, sequence))
    prefix = f'if {{"[{funcid} '
    kept = "\n".join(line for line in script.split("\n") if line.strip() and not line.startswith(prefix))
    widget.tk.call("bind", path, sequence, kept)
    widget.deletecommand(funcid)


class GLViewerFrame(tk.Frame):
    """
    Wrapper frame that either hosts the real OpenGL widget (OpenGLFrame),
    or shows a helpful error message if deps are missing.

    Input:
      - LMB on a joint: drag-rotate that joint (camera locked until release)
      - LMB on empty space: orbit (arcball)
      - RMB drag: pan center
      - Wheel: dolly
      - Ctrl+R: reset camera
    """

    def __init__(
        self,
        master: tk.Misc,
        *,
        figure: Figure,
        on_pose_changed: Optional[Callable[[PoseData], None]] = None,
        sensitivity: float = DRAG_SENSITIVITY,
        fov_deg: float = 75.0,
        show_grid: bool = True,
        **kwargs,
    ) -> None:
        super().__init__(master, **kwargs)

        self._torn_down = False
        self._bindings: List[Tuple[tk.Misc, str, str]] = []
        self._on_pose_changed = on_pose_changed
        self._sensitivity = float(sensitivity)
        self.controller: Optional[DragController] = None

        if _PYOPENGL_IMPORT_ERR is not None or OpenGLFrame is None:
            msg = "OpenGL viewer unavailable.\n\n"
            if _PYOPENGL_IMPORT_ERR is not None:
                msg += f"PyOpenGL import error: {_PYOPENGL_IMPORT_ERR!r}\n\n"
            if OpenGLFrame is None:
                msg += f"pyopengltk import error: {_OPENGLFRAME_IMPORT_ERR!r}\n\n"
            msg += "Install:\n  pip install PyOpenGL PyOpenGL_accelerate pyopengltk\n"
            tk.Label(self, text=msg, justify="left").pack(fill="both", expand=True, padx=10, pady=10)
            self._impl = None
            return

        class _Impl(OpenGLFrame):
            _camera: OrbitCamera
            _figure: Optional[Figure]
            _controller: Optional[DragController]
            _res: GLResources

            # drag bookkeeping
            _drag_mode: str  # "orbit" | "pan" | "joint" | ""
            _drag_last_xy: Tuple[int, int]
            _arcball_last: Tuple[float, float, float]
            _orbit_enabled: bool

            def __init__(self_inner, *args, **kwargs) -> None:
                super().__init__(*args, **kwargs)

                self_inner._camera = OrbitCamera(fov_deg=float(fov_deg))
                self_inner._cam_default: Dict[str, Any] = {}
                self_inner._figure = None
                self_inner._controller = None
                self_inner._res = GLResources()
                self_inner._show_grid = bool(show_grid)
                self_inner._alive = True

                self_inner._drag_mode = ""
                self_inner._drag_last_xy = (0, 0)
                self_inner._arcball_last = (0.0, 0.0, 1.0)
                self_inner._orbit_enabled = True

                self_inner._dbg_last_print = 0.0
                self_inner._dbg_every_s = 1.0

            def _dbg(self_inner, msg: str) -> None:
                now = time.monotonic()
                if now - self_inner._dbg_last_print < self_inner._dbg_every_s:
                    return
                self_inner._dbg_last_print = now
                logger.debug(msg)

            def initgl(self_inner) -> None:
                glClearColor(BG_RGB[0], BG_RGB[1], BG_RGB[2], 1.0)
                glEnable(GL_LINE_SMOOTH)
                glHint(GL_LINE_SMOOTH_HINT, GL_NICEST)
                glEnable(GL_DEPTH_TEST)
                glEnable(GL_NORMALIZE)

                glEnable(GL_LIGHT0)
                glLightfv(GL_LIGHT0, GL_AMBIENT, (0.45, 0.45, 0.45, 1.0))
                glLightfv(GL_LIGHT0, GL_DIFFUSE, (0.9, 0.9, 0.9, 1.0))
                glColorMaterial(GL_FRONT_AND_BACK, GL_AMBIENT_AND_DIFFUSE)
                glEnable(GL_COLOR_MATERIAL)

                # pyopengltk may call initgl again on re-map; never leak the old lists
                if self_inner._res.ready:
                    self_inner._res.release()
                self_inner._res.acquire()

            def request_redraw(self_inner) -> None:
                # the animate loop already redraws every tick
                if self_inner.animate or not self_inner._alive:
                    return
                if hasattr(self_inner, "_display"):
                    self_inner.after_idle(self_inner._display)  # type: ignore[attr-defined]
                else:
                    self_inner.after_idle(self_inner.redraw)

            # -------- camera lock --------
            def set_orbit_enabled(self_inner, enabled: bool) -> None:
                self_inner._orbit_enabled = bool(enabled)
                if not enabled and self_inner._drag_mode in ("orbit", "pan"):
                    self_inner._drag_mode = ""

            # -------- camera API --------
            def get_camera_state(self_inner) -> Dict[str, Any]:
                return self_inner._camera.get_state()

            def set_camera_state(self_inner, state: Dict[str, Any]) -> None:
                self_inner._camera.set_state(state)

            def snapshot_default_camera(self_inner) -> None:
                if not self_inner._cam_default:
                    self_inner._cam_default = self_inner._camera.get_state()

            def reset_camera(self_inner) -> None:
                if self_inner._cam_default:
                    self_inner._camera.set_state(dict(self_inner._cam_default))
                else:
                    self_inner._camera.reset()
                self_inner.request_redraw()

            # -------- input handling --------
            def _viewport(self_inner) -> Tuple[int, int]:
                return max(1, int(self_inner.winfo_width())), max(1, int(self_inner.winfo_height()))

            def _on_left_press(self_inner, e: tk.Event) -> None:
                x, y = int(e.x), int(e.y)
                self_inner._drag_last_xy = (x, y)
                # keyboard focus for Ctrl+R
                self_inner.focus_set()

                ctrl = self_inner._controller
                fig = self_inner._figure
                if ctrl is not None and fig is not None:
                    w, h = self_inner._viewport()
                    origin, direction = self_inner._camera.ray_from_viewport(x, y, w, h)
                    if ctrl.pointer_down(Ray(origin, direction), fig.recompute()):
                        self_inner._drag_mode = "joint"
                        return

                if not self_inner._orbit_enabled:
                    return
                self_inner._drag_mode = "orbit"
                w, h = self_inner._viewport()
                self_inner._arcball_last = arcball_point(x, y, w, h)

            def _on_left_release(self_inner, _e: tk.Event) -> None:
                if self_inner._controller is not None:
                    self_inner._controller.pointer_up()
                if self_inner._drag_mode in ("joint", "orbit"):
                    self_inner._drag_mode = ""
                self_inner.request_redraw()

            def _begin_pan(self_inner, e: tk.Event) -> None:
                if not self_inner._orbit_enabled:
                    return
                self_inner._drag_mode = "pan"
                self_inner._drag_last_xy = (int(e.x), int(e.y))

            def _end_pan(self_inner, _e: tk.Event) -> None:
                if self_inner._drag_mode == "pan":
                    self_inner._drag_mode = ""

            def _on_drag(self_inner, e: tk.Event) -> None:
                mode = self_inner._drag_mode
                if not mode:
                    return
                x, y = int(e.x), int(e.y)
                lx, ly = self_inner._drag_last_xy
                dx = x - lx
                dy = y - ly
                self_inner._drag_last_xy = (x, y)

                if mode == "joint":
                    if self_inner._controller is not None and (dx or dy):
                        self_inner._controller.pointer_move(dx, dy)
                        self_inner.request_redraw()
                    return

                if not self_inner._orbit_enabled:
                    return

                if mode == "orbit":
                    w, h = self_inner._viewport()
                    p0 = self_inner._arcball_last
                    p1 = arcball_point(x, y, w, h)
                    self_inner._arcball_last = p1
                    if self_inner._camera.orbit(p0, p1):
                        self_inner.request_redraw()
                    return

                if mode == "pan":
                    _w, h = self_inner._viewport()
                    self_inner._camera.pan(dx, dy, h)
                    self_inner.request_redraw()

            def _on_wheel(self_inner, e: Any) -> None:
                if not self_inner._orbit_enabled:
                    return
                self_inner._camera.dolly(getattr(e, "delta", 0) or 0)
                self_inner.request_redraw()

            def _on_reset_key(self_inner, _e: tk.Event) -> None:
                self_inner.reset_camera()

            # -------- drawing --------
            def _apply_camera(self_inner, w: int, h: int) -> None:
                cam = self_inner._camera
                glViewport(0, 0, w, h)

                glMatrixMode(GL_PROJECTION)
                glLoadIdentity()
                glFrustum(*cam.frustum(w, h))

                glMatrixMode(GL_MODELVIEW)
                glLoadIdentity()
                glTranslatef(0.0, 0.0, -float(cam.dist))
                axis, angle_deg = quat_wxyz_to_axis_angle(cam.rot_q)
                if angle_deg != 0.0:
                    glRotatef(-float(angle_deg), float(axis[0]), float(axis[1]), float(axis[2]))
                cx, cy, cz = cam.center
                glTranslatef(-float(cx), -float(cy), -float(cz))

            def _draw_figure(self_inner, fig: Figure) -> None:
                res = self_inner._res
                pose = fig.recompute()

                glEnable(GL_LIGHTING)
                glLightfv(GL_LIGHT0, GL_POSITION, (5.0, 10.0, 7.5, 0.0))

                glColor3f(*LIMB_RGB)
                for seg in fig.segments:
                    if seg.length <= 0.0:
                        continue
                    glPushMatrix()
                    glTranslatef(*seg.position)
                    axis, angle_deg = quat_xyzw_to_axis_angle(seg.rotation)
                    if angle_deg != 0.0:
                        glRotatef(angle_deg, axis[0], axis[1], axis[2])
                    glScalef(LIMB_RADIUS, seg.length, LIMB_RADIUS)
                    glCallList(res.cylinder_list)
                    glPopMatrix()

                selected = self_inner._controller.selected if self_inner._controller is not None else None
                for j in fig.skeleton.joints:
                    if j.radius <= 0.0:
                        continue
                    if selected is not None and j.index == selected.index:
                        glColor3f(*SELECTED_RGB)
                    elif j.name == HEAD:
                        glColor3f(*HEAD_RGB)
                    else:
                        glColor3f(*JOINT_RGB)
                    glPushMatrix()
                    glTranslatef(*pose.world_pos[j.index])
                    glScalef(j.radius, j.radius, j.radius)
                    glCallList(res.sphere_list)
                    glPopMatrix()

                glDisable(GL_LIGHTING)

            def redraw(self_inner) -> None:
                w = int(self_inner.winfo_width())
                h = int(self_inner.winfo_height())
                if w <= 1 or h <= 1:
                    return

                self_inner._apply_camera(w, h)
                glClear(GL_COLOR_BUFFER_BIT | GL_DEPTH_BUFFER_BIT)

                fig = self_inner._figure
                res = self_inner._res
                if fig is None or not res.ready:
                    glFlush()
                    return

                try:
                    if self_inner._show_grid and res.grid_list is not None:
                        glCallList(res.grid_list)
                    self_inner._draw_figure(fig)
                except GLError as ge:
                    self_inner._dbg(f"[viewer] GL ERROR during draw: {ge!r}")

                glFlush()

            def read_pixels(self_inner) -> Image.Image:
                w, h = self_inner._viewport()
                self_inner.tkMakeCurrent()
                self_inner.redraw()
                glReadBuffer(GL_BACK)
                glPixelStorei(GL_PACK_ALIGNMENT, 1)
                data = glReadPixels(0, 0, w, h, GL_RGBA, GL_UNSIGNED_BYTE)
                img = Image.frombytes("RGBA", (w, h), bytes(data))
                # GL rows start at the bottom
                return img.transpose(Image.Transpose.FLIP_TOP_BOTTOM)

        self._impl = _Impl(self, width=640, height=480)
        self._wire_impl(figure)

    def _wire_impl(self, figure: Figure) -> None:
        """Pack the GL frame, attach the figure and bind input; a failure part way tears it all down."""
        impl = self._impl
        try:
            impl.pack(fill="both", expand=True)

            # let pyopengltk drive redraws; the loop starts once the frame is mapped
            impl.animate = FRAME_MS

            self.set_figure(figure)

            # mouse bindings (joint drag / orbit / pan / zoom)
            self._bind(impl, "<ButtonPress-1>", impl._on_left_press)
            self._bind(impl, "<B1-Motion>", impl._on_drag)
            # release is toplevel-scoped so letting go anywhere ends the drag
            self._bind(self.winfo_toplevel(), "<ButtonRelease-1>", impl._on_left_release)

            self._bind(impl, "<ButtonPress-3>", impl._begin_pan)
            self._bind(impl, "<B3-Motion>", impl._on_drag)
            self._bind(impl, "<ButtonRelease-3>", impl._end_pan)

            # wheel
            self._bind(impl, "<MouseWheel>", impl._on_wheel)
            self._bind(impl, "<Button-4>", lambda _e: impl._on_wheel(type("E", (), {"delta": 120})()))
            self._bind(impl, "<Button-5>", lambda _e: impl._on_wheel(type("E", (), {"delta": -120})()))

            # reset
            self._bind(impl, "<Control-r>", impl._on_reset_key)
            self._bind(impl, "<Control-R>", impl._on_reset_key)

            self._bind(self, "<Destroy>", self._on_destroy)
        except Exception:
            logger.exception("GL viewer setup failed; tearing down")
            self.teardown()
            raise

    def _bind(self, widget: tk.Misc, sequence: str, func: Callable[[Any], Any]) -> None:
        funcid = widget.bind(sequence, func, add="+")
        self._bindings.append((widget, sequence, funcid))

    # ---- figure ----
    def set_figure(self, figure: Figure) -> None:
        """Replace the posed figure; any in-progress drag on the old one is released."""
        if self._impl is None:
            return
        if self.controller is not None:
            self.controller.pointer_up()
        self.controller = DragController(
            figure.skeleton,
            sensitivity=self._sensitivity,
            set_orbit_enabled=self._impl.set_orbit_enabled,
            on_pose_changed=self._on_pose_changed,
        )
        self._impl._figure = figure
        self._impl._controller = self.controller
        self._impl.request_redraw()

    def request_redraw(self) -> None:
        if self._impl is None:
            return
        self._impl.request_redraw()

    # ---- public camera helpers ----
    def get_camera_state(self) -> Optional[Dict[str, Any]]:
        if self._impl is None:
            return None
        return self._impl.get_camera_state()

    def set_camera_state(self, state: Dict[str, Any]) -> None:
        if self._impl is None:
            return
        self._impl.set_camera_state(state)
        self._impl.request_redraw()

    def reset_camera(self) -> None:
        if self._impl is None:
            return
        self._impl.reset_camera()

    def snapshot_default_camera(self) -> None:
        if self._impl is None:
            return
        self._impl.snapshot_default_camera()

    def set_show_grid(self, show: bool) -> None:
        if self._impl is None:
            return
        self._impl._show_grid = bool(show)
        self._impl.request_redraw()

    def save_snapshot(self, path: Path) -> Path:
        if self._impl is None:
            raise RuntimeError("OpenGL viewer unavailable")
        img = self._impl.read_pixels()
        img.convert("RGB").save(path)
        logger.info("saved snapshot %s (%dx%d)", path, img.width, img.height)
        return path

    # ---- teardown ----
    def _on_destroy(self, e: tk.Event) -> None:
        if e.widget is self:
            self.teardown()

    def teardown(self) -> None:
        """Stop the render loop, drop every binding, free GL resources. Safe to call twice."""
        if self._torn_down:
            return
        self._torn_down = True

        if self.controller is not None:
            self.controller.pointer_up()

        impl = self._impl
        if impl is not None:
            impl._alive = False
            impl.animate = 0
            cb = getattr(impl, "cb", None)
            if cb is not None:
                try:
                    impl.after_cancel(cb)
                except tk.TclError:
                    pass

        for widget, sequence, funcid in self._bindings:
            try:
                _unbind_funcid(widget, sequence, funcid)
            except tk.TclError:
                # widget already destroyed; its bindings went with it
                pass
        self._bindings = []

        if impl is not None:
            try:
                impl.tkMakeCurrent()
                impl._res.release()
            except Exception as e:
                logger.warning("GL context gone before release (%r); resources freed with it", e)
        logger.info("viewer torn down")
