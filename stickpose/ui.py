from __future__ import annotations

import logging
import tkinter as tk
from pathlib import Path
from tkinter import filedialog, messagebox, ttk
from typing import Any, Optional

from .config import AppConfig, load_config
from .viewer.figure import Figure
from .viewer.pose_codec import (
    INITIAL_POSE_DATA,
    PoseFormatError,
    dumps_pose,
    parse_pose_text,
    read_pose_file,
    write_pose_file,
)
from .viewer.tk_gl_widget import GLViewerFrame
from .viewer.types import PoseData
from .viewer.view_persistence import ViewerPersist


def _setup_logger(log_path: Path) -> logging.Logger:
    log_path.parent.mkdir(parents=True, exist_ok=True)
    logger = logging.getLogger("stickpose")
    logger.setLevel(logging.INFO)
    if not logger.handlers:
        fh = logging.FileHandler(log_path, encoding="utf-8")
        fh.setLevel(logging.INFO)
        fmt = logging.Formatter("%(asctime)s %(levelname)s %(message)s")
        fh.setFormatter(fmt)
        logger.addHandler(fh)
    return logger


JSON_FILETYPES = [("JSON files", "*.json"), ("All files", "*.*")]


class App(tk.Tk):
    BASE_GEOM = "1200x720"

    def __init__(self, cfg: AppConfig) -> None:
        super().__init__()
        self.title("3D Stick Figure Poser")
        self.geometry(self.BASE_GEOM)

        self.cfg = cfg
        self.logger = _setup_logger(self.cfg.log_path)

        self._persist = ViewerPersist.load(self.cfg.persistence_path)
        self.figure = Figure()
        self.figure.import_pose(INITIAL_POSE_DATA)
        self.gl: Optional[GLViewerFrame] = None

        self.show_grid_var = tk.BooleanVar(value=self._persist.get_flag("show_grid", self.cfg.show_grid))
        self.status_var = tk.StringVar(value="Drag joints to pose the model. Wheel zooms, right-drag pans.")

        try:
            self._build_menu()
            self._build_ui()
        except Exception:
            self.logger.exception("UI setup failed")
            if self.gl is not None:
                self.gl.teardown()
            raise

        self._restore_camera()
        self._sync_editor(self.figure.export_pose())

        self.protocol("WM_DELETE_WINDOW", self._on_close)

    # ---- layout ----
    def _build_menu(self) -> None:
        menubar = tk.Menu(self)
        self.config(menu=menubar)

        file_menu = tk.Menu(menubar, tearoff=0)
        file_menu.add_command(label="Upload JSON...", command=self._upload_json)
        file_menu.add_command(label="Download JSON...", command=self._download_json)
        file_menu.add_separator()
        file_menu.add_command(label="Save Snapshot PNG...", command=self._save_snapshot)
        file_menu.add_separator()
        file_menu.add_command(label="Quit", command=self._on_close)
        menubar.add_cascade(label="File", menu=file_menu)

        pose_menu = tk.Menu(menubar, tearoff=0)
        pose_menu.add_command(label="Apply Editor Text", command=self._apply_editor)
        pose_menu.add_command(label="Reset Pose", command=self._reset_pose)
        menubar.add_cascade(label="Pose", menu=pose_menu)

        view_menu = tk.Menu(menubar, tearoff=0)
        view_menu.add_command(label="Reset Camera", command=self._reset_camera, accelerator="Ctrl+R")
        view_menu.add_checkbutton(
            label="Show Grid",
            variable=self.show_grid_var,
            onvalue=True,
            offvalue=False,
            command=self._on_toggle_grid,
        )
        menubar.add_cascade(label="View", menu=view_menu)

    def _build_ui(self) -> None:
        body = ttk.Panedwindow(self, orient="horizontal")
        body.pack(fill="both", expand=True, padx=8, pady=(8, 0))

        self.gl = GLViewerFrame(
            body,
            figure=self.figure,
            on_pose_changed=self._on_pose_changed,
            sensitivity=self.cfg.drag_sensitivity,
            fov_deg=self.cfg.fov_deg,
            show_grid=bool(self.show_grid_var.get()),
        )
        body.add(self.gl, weight=2)

        side = ttk.Frame(body)
        body.add(side, weight=1)

        ttk.Label(side, text="Pose Data (degrees)").pack(anchor="w", padx=8, pady=(0, 4))

        editor_frame = ttk.Frame(side)
        editor_frame.pack(fill="both", expand=True, padx=8)

        self.editor = tk.Text(editor_frame, wrap="none", width=36, font=("TkFixedFont", 10), undo=True)
        scroll = ttk.Scrollbar(editor_frame, orient="vertical", command=self.editor.yview)
        self.editor.configure(yscrollcommand=scroll.set)
        self.editor.pack(side="left", fill="both", expand=True)
        scroll.pack(side="right", fill="y")

        btns = ttk.Frame(side)
        btns.pack(fill="x", padx=8, pady=8)
        ttk.Button(btns, text="Apply", command=self._apply_editor).pack(side="left")
        ttk.Button(btns, text="Reset Pose", command=self._reset_pose).pack(side="left", padx=(6, 0))

        io_btns = ttk.Frame(side)
        io_btns.pack(fill="x", padx=8, pady=(0, 8))
        ttk.Button(io_btns, text="Download JSON", command=self._download_json).pack(side="left", fill="x", expand=True)
        ttk.Button(io_btns, text="Upload JSON", command=self._upload_json).pack(side="left", fill="x", expand=True, padx=(6, 0))

        ttk.Label(self, textvariable=self.status_var, anchor="w").pack(fill="x", padx=10, pady=(4, 6))

    # ---- pose flow ----
    def _set_status(self, s: str) -> None:
        self.status_var.set(s)

    def _sync_editor(self, pose: PoseData) -> None:
        self.editor.delete("1.0", "end")
        self.editor.insert("1.0", dumps_pose(pose))

    def _on_pose_changed(self, pose: PoseData) -> None:
        # drag step: show it right away
        self._sync_editor(pose)

    def _import(self, data: Any, source: str) -> None:
        n = self.figure.import_pose(data)
        self._sync_editor(self.figure.export_pose())
        if self.gl is not None:
            self.gl.request_redraw()
        self._set_status(f"Applied pose from {source} ({n} joint(s) updated).")

    def _reject(self, title: str, err: Exception) -> None:
        self.logger.warning("%s: %s", title, err)
        messagebox.showerror(title, str(err), parent=self)
        self._set_status(f"{title}; pose unchanged.")

    def _apply_editor(self) -> None:
        text = self.editor.get("1.0", "end")
        try:
            data = parse_pose_text(text)
        except PoseFormatError as e:
            self._reject("Invalid pose JSON", e)
            return
        self._import(data, "editor")

    def _reset_pose(self) -> None:
        self._import(INITIAL_POSE_DATA, "reset")

    def _upload_json(self) -> None:
        path = filedialog.askopenfilename(parent=self, title="Upload pose JSON", filetypes=JSON_FILETYPES)
        if not path:
            return
        try:
            data = read_pose_file(Path(path))
        except PoseFormatError as e:
            self._reject("Could not load pose file", e)
            return
        self._import(data, Path(path).name)

    def _download_json(self) -> None:
        path = filedialog.asksaveasfilename(
            parent=self,
            title="Download pose JSON",
            initialfile=self.cfg.export_filename,
            defaultextension=".json",
            filetypes=JSON_FILETYPES,
        )
        if not path:
            return
        try:
            out = write_pose_file(Path(path), self.figure.export_pose())
        except OSError as e:
            self.logger.exception("Pose export failed")
            messagebox.showerror("Could not save pose", str(e), parent=self)
            return
        self._set_status(f"Saved {out.name}.")

    def _save_snapshot(self) -> None:
        if self.gl is None:
            return
        path = filedialog.asksaveasfilename(
            parent=self,
            title="Save snapshot",
            initialfile="stick-figure.png",
            defaultextension=".png",
            filetypes=[("PNG images", "*.png")],
        )
        if not path:
            return
        try:
            out = self.gl.save_snapshot(Path(path))
        except (OSError, RuntimeError) as e:
            self.logger.exception("Snapshot failed")
            messagebox.showerror("Could not save snapshot", str(e), parent=self)
            return
        self._set_status(f"Saved {out.name}.")

    # ---- view ----
    def _restore_camera(self) -> None:
        if self.gl is None:
            return
        restored = self._persist.get_camera()
        # default camera first so Ctrl+R returns to the reference view
        self.gl.snapshot_default_camera()
        if restored:
            self.gl.set_camera_state(restored)

    def _reset_camera(self) -> None:
        if self.gl is not None:
            self.gl.reset_camera()

    def _on_toggle_grid(self) -> None:
        if self.gl is not None:
            self.gl.set_show_grid(bool(self.show_grid_var.get()))

    def _on_close(self) -> None:
        try:
            cam = self.gl.get_camera_state() if self.gl is not None else None
            if cam:
                self._persist.set_camera(cam)
            self._persist.set_flag("show_grid", bool(self.show_grid_var.get()))
            self._persist.save()
        except OSError:
            self.logger.exception("Saving viewer persistence failed")
        finally:
            if self.gl is not None:
                self.gl.teardown()
            self.destroy()


def run_app(config_path: Optional[Path] = None) -> None:
    if config_path is None:
        here = Path(__file__).resolve().parent.parent
        config_path = here / "config.json"

    app = App(cfg=load_config(config_path))
    app.mainloop()
