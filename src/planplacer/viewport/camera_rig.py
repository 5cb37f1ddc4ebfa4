"""
Camera Rig
==========
Zoom level + pan target of the orthographic plan camera.

The rig never touches a render window. The camera is re-derived from
(pan target, zoom, viewport size) by `camera_view()` and written onto the
plotter camera by `apply_camera()` on every sync, so there is no hidden
camera state that could drift from the rig.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Optional, Sequence

from PySide6.QtCore import QObject, Signal

from planplacer.config import CAMERA_DISTANCE, CAMERA_FAR, CAMERA_NEAR, ViewerSettings
from planplacer.model.state import Machine
from planplacer.viewport.coordinate_mapper import OrthographicView

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CameraState:
    pan_x: float = 0.0
    pan_y: float = 0.0
    zoom: float = 50.0  # screen pixels per world unit


def camera_view(state: CameraState, viewport_size: tuple[int, int]) -> OrthographicView:
    """
    Orthographic view for a camera state on a viewport of the given pixel size.

    The visible world rectangle is viewport_size / zoom, centred on the pan target.
    """
    w_px, h_px = viewport_size
    w_px, h_px = max(1, int(w_px)), max(1, int(h_px))
    return OrthographicView(
        position=(state.pan_x, state.pan_y, CAMERA_DISTANCE),
        direction=(0.0, 0.0, -1.0),
        up=(0.0, 1.0, 0.0),
        half_width=w_px / (2.0 * state.zoom),
        half_height=h_px / (2.0 * state.zoom),
        near=CAMERA_NEAR,
        far=CAMERA_FAR,
    )


def apply_camera(view: OrthographicView, camera) -> None:
    """Write an OrthographicView onto a pyvista Camera."""
    px, py, pz = view.position
    dx, dy, dz = view.direction
    camera.enable_parallel_projection()
    camera.position = (px, py, pz)
    camera.focal_point = (px + dx * CAMERA_DISTANCE, py + dy * CAMERA_DISTANCE, pz + dz * CAMERA_DISTANCE)
    camera.up = view.up
    # parallel_scale is half the vertical size of the viewport in world units
    camera.parallel_scale = view.half_height
    camera.clipping_range = (view.near, view.far)


class CameraRig(QObject):
    """Holds the camera state and emits `changed` whenever it moves."""
    changed = Signal(object)  # CameraState

    def __init__(self, settings: Optional[ViewerSettings] = None, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self.settings = settings or ViewerSettings()
        self._state = CameraState(zoom=self.settings.default_zoom)

    @property
    def state(self) -> CameraState:
        return self._state

    @property
    def zoom(self) -> float:
        return self._state.zoom

    @property
    def pan_target(self) -> tuple[float, float]:
        return self._state.pan_x, self._state.pan_y

    # --- Zoom ---

    def zoom_in(self) -> None:
        self.set_zoom(self._state.zoom * self.settings.zoom_step)

    def zoom_out(self) -> None:
        self.set_zoom(self._state.zoom / self.settings.zoom_step)

    def set_zoom(self, zoom: float) -> None:
        clamped = min(max(float(zoom), self.settings.zoom_min), self.settings.zoom_max)
        if clamped != zoom:
            logger.debug(f"Zoom {zoom:g} clamped to {clamped:g}")
        self._set_state(replace(self._state, zoom=clamped))

    # --- Pan ---

    def set_pan_target(self, x: float, y: float) -> None:
        self._set_state(replace(self._state, pan_x=float(x), pan_y=float(y)))

    def pan_by(self, dx: float, dy: float) -> None:
        self.set_pan_target(self._state.pan_x + dx, self._state.pan_y + dy)

    def recenter(self, machines: Sequence[Machine], index: Optional[int]) -> bool:
        """
        Point the camera at machines[index].

        An absent or out-of-range index leaves the pan target where it is.
        Returns True if the index was valid.
        """
        if index is None or not 0 <= index < len(machines):
            return False
        machine = machines[index]
        self.set_pan_target(machine.x, machine.y)
        return True

    def _set_state(self, state: CameraState) -> None:
        if state == self._state:
            return
        self._state = state
        self.changed.emit(state)
