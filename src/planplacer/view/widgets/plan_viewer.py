"""
Plan Viewer Widget (PyVista Wrapper)
"""
from __future__ import annotations

import logging
from typing import Optional, Sequence

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QCloseEvent, QResizeEvent
from PySide6.QtWidgets import (
    QFrame, QHBoxLayout, QLabel, QPushButton, QStackedWidget, QVBoxLayout, QWidget
)
from pyvistaqt import QtInteractor
from vtkmodules.vtkInteractionStyle import vtkInteractorStyleUser

from planplacer.config import BACKGROUND_COLOR, ViewerSettings
from planplacer.model.state import Machine, PlanResource
from planplacer.viewport.pointer import PointerButton, PointerEvent
from planplacer.viewport.scene import SceneComposer, SceneStatus

logger = logging.getLogger(__name__)

_PAGE_PLACEHOLDER = 0
_PAGE_PLOTTER = 1


class PlanViewer(QWidget):
    """
    Shows a placeholder until a plan exists, then the interactive plan scene.

    Signals:
        position_changed(index, x, y): a marker was dragged to (x, y).
        marker_clicked(index): a marker was clicked without dragging.
    """
    position_changed = Signal(int, float, float)
    marker_clicked = Signal(int)

    def __init__(
        self,
        settings: Optional[ViewerSettings] = None,
        parent: Optional[QWidget] = None
    ) -> None:
        super().__init__(parent)

        self._plan: Optional[PlanResource] = None
        self._machines: tuple[Machine, ...] = ()
        self._selected_index: Optional[int] = None

        self.plotter: Optional[QtInteractor] = None

        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self.stack = QStackedWidget()
        layout.addWidget(self.stack)

        self.placeholder = QLabel("No plan uploaded")
        self.placeholder.setAlignment(Qt.AlignCenter)
        self.placeholder.setWordWrap(True)
        self.placeholder.setStyleSheet("QLabel { color: #666; font-size: 14px; }")
        self.stack.addWidget(self.placeholder)

        # The interactor is created lazily; this page only hosts it
        self.plotter_host = QWidget()
        self._plotter_layout = QVBoxLayout(self.plotter_host)
        self._plotter_layout.setContentsMargins(0, 0, 0, 0)
        self.stack.addWidget(self.plotter_host)

        self.composer = SceneComposer(
            self._get_or_create_plotter,
            self._viewport_size,
            self._on_marker_moved,
            on_marker_clicked=self.marker_clicked.emit,
            settings=settings or ViewerSettings.load(),
            parent=self,
        )
        self.composer.status_changed.connect(self._on_scene_status)

        self._setup_overlay_controls()
        self._on_scene_status(self.composer.status)

    # ------------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------------

    def set_plan(self, plan: Optional[PlanResource]) -> None:
        self._plan = plan
        self._refresh()

    def set_machines(self, machines: Sequence[Machine]) -> None:
        self._machines = tuple(machines)
        self._refresh()

    def set_selected_index(self, index: Optional[int]) -> None:
        self._selected_index = index
        self._refresh()

    def set_roster(self, machines: Sequence[Machine], selected_index: Optional[int]) -> None:
        """Replace roster and selection with a single scene update."""
        self._machines = tuple(machines)
        self._selected_index = selected_index
        self._refresh()

    def zoom_in(self) -> None:
        self.composer.zoom_in()

    def zoom_out(self) -> None:
        self.composer.zoom_out()

    # ------------------------------------------------------------------------------
    # Internal: Scene
    # ------------------------------------------------------------------------------

    def _refresh(self) -> None:
        self.composer.update(self._plan, self._machines, self._selected_index)

    def _on_marker_moved(self, index: int, x: float, y: float) -> None:
        self.position_changed.emit(index, x, y)

    def _on_scene_status(self, status: SceneStatus) -> None:
        if status is SceneStatus.READY:
            self.stack.setCurrentIndex(_PAGE_PLOTTER)
        else:
            if status is SceneStatus.LOADING:
                self.placeholder.setText("Loading plan…")
            elif status is SceneStatus.FAILED:
                backdrop = self.composer.backdrop
                reason = backdrop.error if backdrop is not None and backdrop.error else "unknown error"
                self.placeholder.setText(f"Plan failed to load: {reason}")
            else:
                self.placeholder.setText("No plan uploaded")
            self.stack.setCurrentIndex(_PAGE_PLACEHOLDER)

        self.overlay_widget.setVisible(status is SceneStatus.READY)
        self.overlay_widget.raise_()

    def _viewport_size(self) -> tuple[int, int]:
        """Render window size in device pixels, same units as VTK event positions."""
        if self.plotter is None:
            return 1, 1
        width, height = self.plotter.render_window.GetSize()
        return max(1, width), max(1, height)

    # ------------------------------------------------------------------------------
    # Internal: Setup & Observers
    # ------------------------------------------------------------------------------

    def _get_or_create_plotter(self) -> QtInteractor:
        if self.plotter is not None:
            return self.plotter

        self.plotter = QtInteractor(self.plotter_host)
        self._plotter_layout.addWidget(self.plotter)
        self._init_plotter()
        self._attach_observers()
        logger.debug("Plot interactor created.")
        return self.plotter

    def _init_plotter(self) -> None:
        self.plotter.set_background(BACKGROUND_COLOR)
        # Camera and pointer handling belong to the scene composer;
        # the user style only forwards events to our observers
        self.plotter.iren.interactor.SetInteractorStyle(vtkInteractorStyleUser())

    def _attach_observers(self) -> None:
        iren = self.plotter.iren
        iren.add_observer("LeftButtonPressEvent", lambda *_: self._on_press(PointerButton.LEFT))
        iren.add_observer("MiddleButtonPressEvent", lambda *_: self._on_press(PointerButton.MIDDLE))
        iren.add_observer("RightButtonPressEvent", lambda *_: self._on_press(PointerButton.RIGHT))
        iren.add_observer("LeftButtonReleaseEvent", lambda *_: self._on_release(PointerButton.LEFT))
        iren.add_observer("MiddleButtonReleaseEvent", lambda *_: self._on_release(PointerButton.MIDDLE))
        iren.add_observer("RightButtonReleaseEvent", lambda *_: self._on_release(PointerButton.RIGHT))
        iren.add_observer("MouseMoveEvent", lambda *_: self.composer.pointer_move(self._event()))
        iren.add_observer("MouseWheelForwardEvent", lambda *_: self.composer.wheel(1))
        iren.add_observer("MouseWheelBackwardEvent", lambda *_: self.composer.wheel(-1))
        iren.add_observer("ConfigureEvent", lambda *_: self.composer.sync_camera())

    def _event(self, button: PointerButton = PointerButton.LEFT) -> PointerEvent:
        x, y = self.plotter.iren.get_event_position()
        _, height = self._viewport_size()
        # VTK display coordinates grow upward
        return PointerEvent(client_x=float(x), client_y=float(height - 1 - y), button=button)

    def _on_press(self, button: PointerButton) -> None:
        self.composer.pointer_down(self._event(button))

    def _on_release(self, button: PointerButton) -> None:
        self.composer.pointer_up(self._event(button))

    def _setup_overlay_controls(self) -> None:
        """Floating zoom buttons."""
        self.overlay_widget = QFrame(self)
        self.overlay_widget.setStyleSheet("""
            QFrame { background-color: rgba(255, 255, 255, 200); border-radius: 6px; border: 1px solid #ccc; }
            QPushButton { background-color: transparent; border: none; padding: 4px; font-size: 16px; font-weight: bold; }
            QPushButton:hover { background-color: rgba(0, 0, 0, 10); }
        """)

        layout = QHBoxLayout(self.overlay_widget)
        layout.setContentsMargins(4, 4, 4, 4)

        def make_btn(text, slot, tooltip):
            btn = QPushButton(text)
            btn.setFixedSize(28, 28)
            btn.setToolTip(tooltip)
            btn.clicked.connect(slot)
            layout.addWidget(btn)
            return btn

        self.btn_zoom_in = make_btn("+", self.zoom_in, "Zoom in")
        self.btn_zoom_out = make_btn("−", self.zoom_out, "Zoom out")

        self.overlay_widget.adjustSize()

    def resizeEvent(self, event: QResizeEvent) -> None:
        super().resizeEvent(event)
        margin = 10
        self.overlay_widget.move(self.width() - self.overlay_widget.width() - margin, margin)
        self.overlay_widget.raise_()

    def closeEvent(self, event: QCloseEvent) -> None:
        self.composer.teardown()
        if self.plotter is not None:
            self.plotter.close()
            self.plotter = None
        event.accept()
