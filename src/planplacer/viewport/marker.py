"""
Marker Entity
Draggable, labelled rectangle representing one machine on the plan.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

import pyvista as pv
from vtkmodules.vtkRenderingCore import vtkBillboardTextActor3D

from planplacer.config import HIGHLIGHT_COLOR, LABEL_Z, MARKER_HEIGHT, MARKER_WIDTH
from planplacer.model.state import Machine
from planplacer.viewport.coordinate_mapper import CoordinateMapper, OrthographicView
from planplacer.viewport.pointer import PointerBus, PointerEvent, PointerKind, PointerSubscription

logger = logging.getLogger(__name__)

# () -> (viewport size in px, camera view active right now)
ViewProvider = Callable[[], tuple[tuple[int, int], OrthographicView]]
PositionCallback = Callable[[int, float, float], None]
ClickCallback = Callable[[int], None]


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


class MarkerEntity:
    """
    One marker: a coloured plane at (x, y, 0) plus a billboard label.

    The entity renders from the Machine it was last synced with and reports
    drags through `on_position_changed`; it never edits the Machine itself.
    """
    def __init__(
        self,
        index: int,
        machine: Machine,
        *,
        bus: PointerBus,
        mapper: CoordinateMapper,
        view_provider: ViewProvider,
        on_position_changed: PositionCallback,
        on_clicked: Optional[ClickCallback] = None,
        selected: bool = False
    ) -> None:
        self.index = index
        self.machine = machine
        self.selected = selected

        self._bus = bus
        self._mapper = mapper
        self._view_provider = view_provider
        self._on_position_changed = on_position_changed
        self._on_clicked = on_clicked

        self._state = DragState.IDLE
        self._moved = False
        self._subscriptions: list[PointerSubscription] = []

        # Visual position; follows the pointer immediately while dragging
        self._x: float = machine.x
        self._y: float = machine.y

        self.plotter = None
        self._actor: Optional[pv.Actor] = None
        self._label: Optional[vtkBillboardTextActor3D] = None

    # ------------------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------------------

    @property
    def state(self) -> DragState:
        return self._state

    @property
    def is_dragging(self) -> bool:
        return self._state is DragState.DRAGGING

    @property
    def position(self) -> tuple[float, float]:
        return self._x, self._y

    @property
    def fill_color(self) -> str:
        return HIGHLIGHT_COLOR if self.selected else self.machine.color

    def contains(self, x: float, y: float) -> bool:
        """Hit-test a world point against the marker rectangle."""
        return abs(x - self._x) <= MARKER_WIDTH / 2 and abs(y - self._y) <= MARKER_HEIGHT / 2

    def sync(self, index: int, machine: Machine, selected: bool) -> None:
        """Re-render from the authoritative roster entry."""
        self.index = index
        name_changed = machine.name != self.machine.name
        self.machine = machine
        self.selected = selected
        self._set_visual_position(machine.x, machine.y)
        self._apply_style(update_label=name_changed)

    # ------------------------------------------------------------------------------
    # Drag
    # ------------------------------------------------------------------------------

    def pointer_down(self, event: PointerEvent) -> bool:
        """
        Start dragging. Returns True: the event is consumed and must not reach
        the pan control.
        """
        if self._state is DragState.DRAGGING:
            return True

        self._state = DragState.DRAGGING
        self._moved = False
        self._subscriptions = [
            self._bus.subscribe(PointerKind.MOVE, self._on_pointer_move),
            self._bus.subscribe(PointerKind.UP, self._on_pointer_up),
        ]
        logger.debug(f"Drag start: '{self.machine.name}' (index {self.index})")
        return True

    def end_drag(self) -> None:
        for sub in self._subscriptions:
            sub.close()
        self._subscriptions = []
        if self._state is DragState.DRAGGING:
            logger.debug(f"Drag end: '{self.machine.name}' at ({self._x:.3f}, {self._y:.3f})")
        self._state = DragState.IDLE

    def _on_pointer_move(self, event: PointerEvent) -> None:
        if self._state is not DragState.DRAGGING:
            return

        viewport_size, view = self._view_provider()
        point = self._mapper.pointer_to_world(event.client_x, event.client_y, viewport_size, view)
        if point is None:
            return

        x, y = point
        self._moved = True
        self._set_visual_position(x, y)
        self._on_position_changed(self.index, x, y)

    def _on_pointer_up(self, event: PointerEvent) -> None:
        clicked = not self._moved
        self.end_drag()
        # Press + release without movement selects the marker
        if clicked and self._on_clicked is not None:
            self._on_clicked(self.index)

    # ------------------------------------------------------------------------------
    # Scene objects
    # ------------------------------------------------------------------------------

    def attach(self, plotter) -> None:
        """Create the marker actors in `plotter`."""
        if self.plotter is not None:
            return
        self.plotter = plotter

        mesh = pv.Plane(
            center=(0.0, 0.0, 0.0),
            direction=(0.0, 0.0, 1.0),
            i_size=MARKER_WIDTH,
            j_size=MARKER_HEIGHT,
            i_resolution=1,
            j_resolution=1,
        )
        self._actor = plotter.add_mesh(
            mesh,
            color=self.fill_color,
            lighting=False,
            pickable=False,
            show_scalar_bar=False,
            reset_camera=False,
        )

        label = vtkBillboardTextActor3D()
        tp = label.GetTextProperty()
        tp.SetFontSize(12)
        tp.SetColor(0, 0, 0)
        tp.SetBackgroundColor(1.0, 1.0, 1.0)
        tp.SetBackgroundOpacity(0.8)
        tp.SetJustificationToCentered()
        tp.BoldOff()
        tp.ShadowOff()
        label.SetInput(self.machine.name)
        plotter.renderer.AddActor(label)
        self._label = label

        self._set_visual_position(self._x, self._y)

    def dispose(self) -> None:
        """Drop listeners and remove actors."""
        self.end_drag()
        if self.plotter is None:
            return
        if self._actor is not None:
            self.plotter.remove_actor(self._actor, reset_camera=False, render=False)
            self._actor = None
        if self._label is not None:
            self.plotter.renderer.RemoveActor(self._label)
            self._label = None
        self.plotter = None

    def _set_visual_position(self, x: float, y: float) -> None:
        self._x, self._y = float(x), float(y)
        if self._actor is not None:
            self._actor.position = (self._x, self._y, 0.0)
        if self._label is not None:
            self._label.SetPosition(self._x, self._y, LABEL_Z)

    def _apply_style(self, update_label: bool = False) -> None:
        if self._actor is not None:
            self._actor.prop.color = self.fill_color
        if update_label and self._label is not None:
            self._label.SetInput(self.machine.name)
