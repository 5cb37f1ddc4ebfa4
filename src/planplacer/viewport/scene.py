"""
Scene Composer
==============
Assembles the plan backdrop, the machine markers, the camera rig and the
pan control into one scene, and routes viewport pointer events to them.

Why is this file needed?
------------------------
1. Lazy construction: nothing is built (no plotter, no texture load) until a
   plan exists. Without a plan the viewer only shows its placeholder.
2. Event routing: pointer-down goes to the top-most marker under the pointer
   first; only if no marker takes it does the pan control see it. Move and
   release go through the PointerBus to whoever holds a subscription.
3. Camera sync: the plotter camera is re-derived from the rig state every
   time the rig changes or the viewport is resized.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional, Sequence

from PySide6.QtCore import QObject, Signal

from planplacer.config import ViewerSettings
from planplacer.model.state import Machine, PlanResource
from planplacer.viewport.backdrop import BackdropStatus, PlanBackdrop
from planplacer.viewport.camera_rig import CameraRig, CameraState, apply_camera, camera_view
from planplacer.viewport.coordinate_mapper import CoordinateMapper, OrthographicView
from planplacer.viewport.marker import ClickCallback, MarkerEntity, PositionCallback
from planplacer.viewport.pointer import (
    PointerBus,
    PointerButton,
    PointerEvent,
    PointerKind,
    PointerSubscription,
)

logger = logging.getLogger(__name__)


class SceneStatus(str, Enum):
    NO_PLAN = "no_plan"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


_STATUS_BY_BACKDROP = {
    BackdropStatus.UNLOADED: SceneStatus.LOADING,
    BackdropStatus.LOADING: SceneStatus.LOADING,
    BackdropStatus.DISPLAYED: SceneStatus.READY,
    BackdropStatus.FAILED: SceneStatus.FAILED,
}


def resolve_selection(index: Optional[int], count: int) -> Optional[int]:
    """A selection outside the roster is treated as no selection."""
    if index is None or not 0 <= index < count:
        return None
    return index


class PanControl:
    """
    Drag-to-pan on empty plan area. A drag only moves the pan target, so the
    camera always looks straight down at the plan.
    """
    enable_pan: bool = True

    def __init__(self, rig: CameraRig, bus: PointerBus) -> None:
        self.rig = rig
        self._bus = bus
        self._last: Optional[tuple[float, float]] = None
        self._subscriptions: list[PointerSubscription] = []

    @property
    def is_panning(self) -> bool:
        return self._last is not None

    def pointer_down(self, event: PointerEvent) -> bool:
        if not self.enable_pan:
            return False
        self.end()
        self._last = (event.client_x, event.client_y)
        self._subscriptions = [
            self._bus.subscribe(PointerKind.MOVE, self._on_pointer_move),
            self._bus.subscribe(PointerKind.UP, self._on_pointer_up),
        ]
        return True

    def end(self) -> None:
        for sub in self._subscriptions:
            sub.close()
        self._subscriptions = []
        self._last = None

    def _on_pointer_move(self, event: PointerEvent) -> None:
        if self._last is None:
            return
        last_x, last_y = self._last
        self._last = (event.client_x, event.client_y)

        # Content follows the pointer; screen y grows downward
        zoom = self.rig.zoom
        self.rig.pan_by(-(event.client_x - last_x) / zoom, (event.client_y - last_y) / zoom)

    def _on_pointer_up(self, event: PointerEvent) -> None:
        self.end()


class SceneComposer(QObject):
    """
    Renders (plan, machines, selection) into a plotter created on demand.

    Args:
        plotter_factory: Returns the pyvista plotter to draw into. Called only
            once a plan is present.
        viewport_size: Returns the current viewport size in pixels, in the same
            units as the pointer events.
        on_position_changed: Called with (index, x, y) on every drag move.
        on_marker_clicked: Called with the index of a marker that was pressed
            and released without moving.
        loader: Optional plan loader for the backdrop (see PlanBackdrop).
    """
    status_changed = Signal(object)  # SceneStatus

    def __init__(
        self,
        plotter_factory: Callable[[], object],
        viewport_size: Callable[[], tuple[int, int]],
        on_position_changed: PositionCallback,
        *,
        on_marker_clicked: Optional[ClickCallback] = None,
        rig: Optional[CameraRig] = None,
        settings: Optional[ViewerSettings] = None,
        loader=None,
        parent: QObject | None = None
    ) -> None:
        super().__init__(parent)
        self._plotter_factory = plotter_factory
        self._viewport_size = viewport_size
        self._on_position_changed = on_position_changed
        self._on_marker_clicked = on_marker_clicked
        self._loader = loader

        self.rig = rig or CameraRig(settings, parent=self)
        self.rig.changed.connect(self._on_rig_changed)

        self.bus = PointerBus()
        self.mapper = CoordinateMapper()

        self.plotter = None
        self.backdrop: Optional[PlanBackdrop] = None
        self.pan: Optional[PanControl] = None
        self.markers: list[MarkerEntity] = []

        self._plan: Optional[PlanResource] = None
        self._selected: Optional[int] = None
        self._status = SceneStatus.NO_PLAN

    # ------------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------------

    @property
    def status(self) -> SceneStatus:
        return self._status

    @property
    def is_built(self) -> bool:
        return self.plotter is not None

    @property
    def selected_index(self) -> Optional[int]:
        return self._selected

    def update(
        self,
        plan: Optional[PlanResource],
        machines: Sequence[Machine],
        selected_index: Optional[int]
    ) -> None:
        """Bring the scene in line with the given plan, roster and selection."""
        if plan is None:
            if self.is_built:
                self.teardown()
            return

        self._ensure_scene()

        if plan != self._plan:
            self._plan = plan
            self.backdrop.set_resource(plan)

        selected = resolve_selection(selected_index, len(machines))
        self._sync_markers(machines, selected)

        if selected != self._selected:
            self._selected = selected
            # Emits rig.changed -> camera sync when the target moves
            self.rig.recenter(machines, selected)

        self.render()

    def teardown(self) -> None:
        """Deregister every listener and release markers and texture, synchronously."""
        if self.pan is not None:
            self.pan.end()
        self.bus.close_all()

        for marker in self.markers:
            marker.dispose()
        self.markers.clear()

        if self.backdrop is not None:
            self.backdrop.status_changed.disconnect(self._on_backdrop_status)
            self.backdrop.dispose()
            self.backdrop.deleteLater()
            self.backdrop = None

        self.pan = None
        self.plotter = None
        self._plan = None
        self._selected = None
        self._set_status(SceneStatus.NO_PLAN)
        logger.info("Scene torn down.")

    def current_view(self) -> tuple[tuple[int, int], OrthographicView]:
        size = self._viewport_size()
        return size, camera_view(self.rig.state, size)

    def sync_camera(self) -> None:
        """Re-derive the plotter camera from the rig state and viewport size."""
        if self.plotter is None:
            return
        _, view = self.current_view()
        apply_camera(view, self.plotter.camera)
        self.render()

    def render(self) -> None:
        if self.plotter is not None:
            self.plotter.render()

    def zoom_in(self) -> None:
        self.rig.zoom_in()

    def zoom_out(self) -> None:
        self.rig.zoom_out()

    # ------------------------------------------------------------------------------
    # Pointer routing
    # ------------------------------------------------------------------------------

    def pointer_down(self, event: PointerEvent) -> bool:
        """Returns True if a marker or the pan control took the event."""
        if not self.is_built:
            return False

        size, view = self.current_view()
        point = self.mapper.pointer_to_world(event.client_x, event.client_y, size, view)
        if point is not None and event.button == PointerButton.LEFT:
            # Later markers are drawn on top
            for marker in reversed(self.markers):
                if marker.contains(*point) and marker.pointer_down(event):
                    return True

        if self.pan is not None:
            return self.pan.pointer_down(event)
        return False

    def pointer_move(self, event: PointerEvent) -> None:
        self.bus.dispatch(PointerKind.MOVE, event)

    def pointer_up(self, event: PointerEvent) -> None:
        self.bus.dispatch(PointerKind.UP, event)

    def wheel(self, steps: int) -> None:
        """Positive steps zoom in, negative zoom out."""
        if not self.is_built:
            return
        for _ in range(abs(steps)):
            if steps > 0:
                self.rig.zoom_in()
            else:
                self.rig.zoom_out()

    # ------------------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------------------

    def _ensure_scene(self) -> None:
        if self.plotter is not None:
            return

        self.plotter = self._plotter_factory()
        self.backdrop = PlanBackdrop(self.plotter, loader=self._loader, parent=self)
        self.backdrop.status_changed.connect(self._on_backdrop_status)
        self.pan = PanControl(self.rig, self.bus)
        self._set_status(_STATUS_BY_BACKDROP[self.backdrop.status])
        self.sync_camera()
        logger.info("Scene built.")

    def _sync_markers(self, machines: Sequence[Machine], selected: Optional[int]) -> None:
        if len(machines) != len(self.markers):
            # Indices shift on add/remove; a drag in progress would follow the wrong entry
            for marker in self.markers:
                marker.end_drag()

        while len(self.markers) > len(machines):
            self.markers.pop().dispose()

        for index, machine in enumerate(machines):
            is_selected = index == selected
            if index < len(self.markers):
                self.markers[index].sync(index, machine, is_selected)
                continue

            marker = MarkerEntity(
                index,
                machine,
                bus=self.bus,
                mapper=self.mapper,
                view_provider=self.current_view,
                on_position_changed=self._on_position_changed,
                on_clicked=self._on_marker_clicked,
                selected=is_selected,
            )
            marker.attach(self.plotter)
            self.markers.append(marker)

    def _on_rig_changed(self, state: CameraState) -> None:
        logger.debug(f"Camera: pan=({state.pan_x:.3f}, {state.pan_y:.3f}) zoom={state.zoom:.3f}")
        self.sync_camera()

    def _on_backdrop_status(self, status: BackdropStatus) -> None:
        self._set_status(_STATUS_BY_BACKDROP[status])
        self.render()

    def _set_status(self, status: SceneStatus) -> None:
        if status == self._status:
            return
        self._status = status
        self.status_changed.emit(status)
