"""
Shared fixtures: a Qt core application, a recording stand-in for the pyvista
plotter and a synchronous plan loader.
"""
from __future__ import annotations

from types import SimpleNamespace

import numpy as np
import pytest
from PySide6.QtCore import QCoreApplication, QObject, Signal

from planplacer.controller.workers import DecodedPlan


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


class StubActor:
    def __init__(self, mesh, kwargs) -> None:
        self.mesh = mesh
        self.kwargs = kwargs
        self.position = (0.0, 0.0, 0.0)
        self.prop = SimpleNamespace(color=kwargs.get("color"))


class StubCamera:
    def __init__(self) -> None:
        self.parallel_projection = False
        self.position = None
        self.focal_point = None
        self.up = None
        self.parallel_scale = None
        self.clipping_range = None

    def enable_parallel_projection(self) -> None:
        self.parallel_projection = True


class StubRenderer:
    def __init__(self) -> None:
        self.actors: list = []

    def AddActor(self, actor) -> None:
        self.actors.append(actor)

    def RemoveActor(self, actor) -> None:
        self.actors.remove(actor)


class StubPlotter:
    """Records what the scene adds to / removes from the plotter."""
    render_window = None

    def __init__(self) -> None:
        self.camera = StubCamera()
        self.renderer = StubRenderer()
        self.actors: list[StubActor] = []
        self.removed: list[StubActor] = []
        self.render_count = 0
        self.fail_add_mesh = False

    def add_mesh(self, mesh, **kwargs) -> StubActor:
        if self.fail_add_mesh:
            raise RuntimeError("add_mesh failed")
        actor = StubActor(mesh, kwargs)
        self.actors.append(actor)
        return actor

    def remove_actor(self, actor, reset_camera=False, render=True) -> bool:
        self.actors.remove(actor)
        self.removed.append(actor)
        return True

    def render(self) -> None:
        self.render_count += 1

    @property
    def textured_actors(self) -> list[StubActor]:
        return [a for a in self.actors if a.kwargs.get("texture") is not None]


class SyncLoader(QObject):
    """Loader that only records requests; tests decide when they complete."""
    loaded = Signal(int, object)
    failed = Signal(int, str)

    def __init__(self) -> None:
        super().__init__()
        self.requests: list[tuple[object, int]] = []

    @property
    def last_generation(self) -> int:
        return self.requests[-1][1]

    def load(self, resource, generation: int) -> None:
        self.requests.append((resource, generation))

    def finish(self, generation: int, plan: DecodedPlan) -> None:
        self.loaded.emit(generation, plan)

    def fail(self, generation: int, message: str) -> None:
        self.failed.emit(generation, message)


def make_plan(width: int = 4, height: int = 2) -> DecodedPlan:
    pixels = np.full((height, width, 4), 200, dtype=np.uint8)
    return DecodedPlan(pixels=pixels, width=width, height=height)


@pytest.fixture
def plotter() -> StubPlotter:
    return StubPlotter()


@pytest.fixture
def loader() -> SyncLoader:
    return SyncLoader()
