"""
Plan Backdrop
=============
Shows the uploaded plan as a textured rectangle just behind the marker plane.

Lifecycle:
    UNLOADED --set_resource--> LOADING --decoded--> DISPLAYED
                                       --failed---> FAILED
A new resource in any state disposes the current texture first and starts a
new generation; results of older generations are dropped on arrival.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Optional

import pyvista as pv
from PySide6.QtCore import QObject, Signal

from planplacer.config import BACKDROP_Z
from planplacer.controller.workers import DecodedPlan, PlanLoader, PlanLoadError
from planplacer.model.state import PlanResource

logger = logging.getLogger(__name__)

__all__ = ["BackdropStatus", "PlanBackdrop", "PlanLoadError"]


class BackdropStatus(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    DISPLAYED = "displayed"
    FAILED = "failed"


class PlanBackdrop(QObject):
    """
    Owns at most one plan texture and its actor at any time.

    `loader` must provide `load(resource, generation)` and the Qt signals
    `loaded(int, object)` / `failed(int, str)`; by default a threaded
    PlanLoader is used.
    """
    status_changed = Signal(object)  # BackdropStatus

    def __init__(self, plotter, loader=None, parent: QObject | None = None) -> None:
        super().__init__(parent)
        self.plotter = plotter
        self._owns_loader = loader is None
        self._loader = loader if loader is not None else PlanLoader(self)
        self._loader.loaded.connect(self._on_loaded)
        self._loader.failed.connect(self._on_failed)

        self._status = BackdropStatus.UNLOADED
        self._generation: int = 0
        self._resource: Optional[PlanResource] = None

        self._texture: Optional[pv.Texture] = None
        self._actor: Optional[pv.Actor] = None
        self.aspect: Optional[float] = None
        self.error: Optional[str] = None

    # ------------------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------------------

    @property
    def status(self) -> BackdropStatus:
        return self._status

    @property
    def resource(self) -> Optional[PlanResource]:
        return self._resource

    @property
    def texture(self) -> Optional[pv.Texture]:
        return self._texture

    @property
    def actor(self) -> Optional[pv.Actor]:
        return self._actor

    def set_resource(self, resource: Optional[PlanResource]) -> None:
        """Start loading `resource`, dropping whatever is displayed or in flight."""
        if resource is None:
            self.clear()
            return

        self._release()
        self._generation += 1
        self._resource = resource
        self.error = None
        self._set_status(BackdropStatus.LOADING)
        self._loader.load(resource, self._generation)

    def clear(self) -> None:
        """Release the texture and forget the resource; pending loads are ignored."""
        self._release()
        self._generation += 1
        self._resource = None
        self.error = None
        self._set_status(BackdropStatus.UNLOADED)

    def dispose(self) -> None:
        """Clear and stop listening to the loader. The backdrop is unusable afterwards."""
        self.clear()
        self._loader.loaded.disconnect(self._on_loaded)
        self._loader.failed.disconnect(self._on_failed)
        if self._owns_loader:
            self._loader.shutdown()

    # ------------------------------------------------------------------------------
    # Internal: loader callbacks
    # ------------------------------------------------------------------------------

    def _on_loaded(self, generation: int, plan: DecodedPlan) -> None:
        if generation != self._generation:
            logger.debug(f"Discarding stale plan load (generation {generation}).")
            return

        try:
            self._install(plan)
        except Exception as e:
            self._release()
            self._fail(f"Cannot display plan: {e}")
            logger.exception(f"Failed to build plan backdrop: {e}")

    def _on_failed(self, generation: int, message: str) -> None:
        if generation != self._generation:
            return
        self._fail(message)

    # ------------------------------------------------------------------------------
    # Internal: scene objects
    # ------------------------------------------------------------------------------

    def _install(self, plan: DecodedPlan) -> None:
        # Exactly one texture: anything still held is disposed before the new one goes in
        self._release()

        texture = pv.Texture(plan.pixels)
        mesh = pv.Plane(
            center=(0.0, 0.0, BACKDROP_Z),
            direction=(0.0, 0.0, 1.0),
            i_size=plan.aspect,
            j_size=1.0,
            i_resolution=1,
            j_resolution=1,
        )
        actor = self.plotter.add_mesh(
            mesh,
            texture=texture,
            lighting=False,
            pickable=False,
            show_scalar_bar=False,
            reset_camera=False,
        )

        self._texture = texture
        self._actor = actor
        self.aspect = plan.aspect
        name = self._resource.name if self._resource else "plan"
        logger.info(f"Plan '{name}' displayed ({plan.width}x{plan.height}, aspect {plan.aspect:.3f}).")
        self._set_status(BackdropStatus.DISPLAYED)

    def _release(self) -> None:
        if self._actor is not None:
            self.plotter.remove_actor(self._actor, reset_camera=False, render=False)
            self._actor = None
        if self._texture is not None:
            window = getattr(self.plotter, "render_window", None)
            if window is not None:
                self._texture.ReleaseGraphicsResources(window)
            self._texture = None
        self.aspect = None

    def _fail(self, message: str) -> None:
        self.error = message
        logger.warning(f"Plan backdrop failed: {message}")
        self._set_status(BackdropStatus.FAILED)

    def _set_status(self, status: BackdropStatus) -> None:
        if status == self._status:
            return
        self._status = status
        self.status_changed.emit(status)
