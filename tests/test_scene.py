import pytest

from conftest import StubPlotter, make_plan
from planplacer.config import HIGHLIGHT_COLOR
from planplacer.model.state import MachineStore, PlanResource
from planplacer.viewport.pointer import PointerButton, PointerEvent
from planplacer.viewport.scene import SceneComposer, SceneStatus, resolve_selection

SIZE = (800, 800)
CENTER = (400, 400)
PLAN = PlanResource(source=b"png", name="floor.png")


class Viewer:
    """Scene composer wired to a store the way the plan viewer widget does it."""
    def __init__(self, loader) -> None:
        self.store = MachineStore()
        self.loader = loader
        self.plotters: list[StubPlotter] = []
        self.composer = SceneComposer(
            self._make_plotter,
            lambda: SIZE,
            self.store.update_position,
            on_marker_clicked=self.store.select,
            loader=loader,
        )
        self.store.plan_changed.connect(self.refresh)
        self.store.machines_changed.connect(self.refresh)
        self.store.selection_changed.connect(self.refresh)

    def _make_plotter(self) -> StubPlotter:
        plotter = StubPlotter()
        self.plotters.append(plotter)
        return plotter

    @property
    def plotter(self) -> StubPlotter:
        return self.plotters[-1]

    def refresh(self, *_) -> None:
        self.composer.update(self.store.plan, self.store.machines, self.store.selected_index)

    def upload(self) -> None:
        self.store.set_plan(PLAN)
        self.loader.finish(self.loader.last_generation, make_plan())

    def press(self, x: float, y: float, button: PointerButton = PointerButton.LEFT) -> bool:
        return self.composer.pointer_down(PointerEvent(x, y, button))

    def move(self, x: float, y: float) -> None:
        self.composer.pointer_move(PointerEvent(x, y))

    def release(self, x: float, y: float) -> None:
        self.composer.pointer_up(PointerEvent(x, y))


@pytest.fixture
def viewer(loader) -> Viewer:
    return Viewer(loader)


def test_no_plan_builds_nothing(viewer, loader):
    viewer.store.add_machine("A")
    viewer.store.select(0)

    assert viewer.plotters == []
    assert loader.requests == []
    assert viewer.composer.status is SceneStatus.NO_PLAN
    assert not viewer.composer.is_built


def test_plan_builds_scene_once(viewer):
    viewer.store.set_plan(PLAN)
    assert viewer.composer.status is SceneStatus.LOADING

    viewer.loader.finish(1, make_plan())
    viewer.store.add_machine("A")

    assert len(viewer.plotters) == 1
    assert viewer.composer.status is SceneStatus.READY
    assert viewer.plotter.camera.parallel_projection


def test_failed_plan_reports_failure(viewer):
    viewer.store.set_plan(PLAN)
    viewer.loader.fail(1, "broken")
    assert viewer.composer.status is SceneStatus.FAILED
    assert viewer.composer.backdrop.error == "broken"


def test_drag_selected_marker_moves_only_that_machine(viewer):
    viewer.upload()
    viewer.store.add_machine("A")
    viewer.store.add_machine("B")
    viewer.store.select(1)

    assert viewer.press(*CENTER)
    xs = []
    for dx in range(0, 51, 5):
        viewer.move(CENTER[0] + dx, CENTER[1])
        xs.append(viewer.store.machines[1].x)
    viewer.release(CENTER[0] + 50, CENTER[1])

    assert all(b > a for a, b in zip(xs, xs[1:]))
    assert viewer.store.machines[0].x == 0.0
    assert viewer.store.machines[0].y == 0.0


def test_drag_to_point_writes_exact_position(viewer):
    viewer.upload()
    viewer.store.add_machine("A")

    viewer.press(*CENTER)
    viewer.move(575, 500)
    viewer.release(575, 500)

    machine = viewer.store.machines[0]
    assert (machine.x, machine.y) == (3.5, -2.0)


def test_marker_press_does_not_pan(viewer):
    viewer.upload()
    viewer.store.add_machine("A")
    pan_before = viewer.composer.rig.pan_target

    viewer.press(*CENTER)
    viewer.move(600, 300)
    viewer.release(600, 300)

    assert viewer.composer.rig.pan_target == pan_before
    assert not viewer.composer.pan.is_panning


def test_empty_area_press_pans(viewer):
    viewer.upload()
    viewer.store.add_machine("A")

    assert viewer.press(100, 100)
    viewer.move(110, 90)
    viewer.release(110, 90)

    # Content follows the pointer: 10 px right / up at 50 px per unit
    assert viewer.composer.rig.pan_target == pytest.approx((-0.2, -0.2))
    assert viewer.store.machines[0].x == 0.0


def test_pan_keeps_camera_looking_straight_down(viewer):
    viewer.upload()

    viewer.press(100, 100, button=PointerButton.RIGHT)
    viewer.move(180, 20)
    viewer.move(60, 150)
    viewer.release(60, 150)

    camera = viewer.plotter.camera
    px, py, _ = camera.position
    fx, fy, _ = camera.focal_point
    assert (px, py) == pytest.approx(viewer.composer.rig.pan_target)
    assert (fx, fy) == pytest.approx((px, py))
    assert camera.up == (0.0, 1.0, 0.0)


def test_disabled_pan_leaves_press_unhandled(viewer):
    viewer.upload()
    viewer.composer.pan.enable_pan = False

    assert not viewer.press(100, 100)
    viewer.move(150, 150)

    assert viewer.composer.rig.pan_target == (0.0, 0.0)


def test_right_button_on_marker_pans(viewer):
    viewer.upload()
    viewer.store.add_machine("A")

    viewer.press(*CENTER, button=PointerButton.RIGHT)
    viewer.move(CENTER[0] + 50, CENTER[1])
    viewer.release(CENTER[0] + 50, CENTER[1])

    assert viewer.store.machines[0].x == 0.0
    assert viewer.composer.rig.pan_target == pytest.approx((-1.0, 0.0))


def test_top_most_marker_takes_the_press(viewer):
    viewer.upload()
    viewer.store.add_machine("A")
    viewer.store.add_machine("B")

    viewer.press(*CENTER)
    viewer.move(500, 400)
    viewer.release(500, 400)

    assert viewer.store.machines[0].x == 0.0
    assert viewer.store.machines[1].x == pytest.approx(2.0)


def test_click_selects_marker(viewer):
    viewer.upload()
    viewer.store.add_machine("A")

    viewer.press(*CENTER)
    viewer.release(*CENTER)

    assert viewer.store.selected_index == 0
    assert viewer.composer.markers[0].fill_color == HIGHLIGHT_COLOR


def test_selection_recenters_camera(viewer):
    viewer.upload()
    viewer.store.add_machine("A")
    viewer.store.add_machine("B")
    viewer.store.update_position(1, 4.0, -1.5)

    viewer.store.select(1)

    assert viewer.composer.rig.pan_target == (4.0, -1.5)
    assert viewer.plotter.camera.position == (4.0, -1.5, 5.0)


def test_dragging_selected_marker_does_not_recenter(viewer):
    viewer.upload()
    viewer.store.add_machine("A")
    viewer.store.select(0)

    viewer.press(*CENTER)
    viewer.move(575, 500)
    viewer.release(575, 500)

    assert viewer.composer.rig.pan_target == (0.0, 0.0)


def test_out_of_range_selection_is_ignored(viewer):
    viewer.upload()
    viewer.store.add_machine("A")
    viewer.store.update_position(0, 2.0, 2.0)
    viewer.composer.rig.set_pan_target(1.0, 1.0)

    viewer.composer.update(viewer.store.plan, viewer.store.machines, 5)

    assert viewer.composer.selected_index is None
    assert viewer.composer.rig.pan_target == (1.0, 1.0)
    assert all(m.fill_color == m.machine.color for m in viewer.composer.markers)


def test_removing_machine_mid_drag_ends_drag(viewer):
    viewer.upload()
    viewer.store.add_machine("A")
    viewer.store.add_machine("B")

    viewer.press(*CENTER)
    viewer.store.remove_machine(0)

    assert viewer.composer.bus.listener_count() == 0
    viewer.move(500, 400)
    assert viewer.store.machines[0].x == 0.0


def test_removing_earlier_machine_keeps_highlight_on_every_frame(viewer):
    viewer.upload()
    for name in ("A", "B", "C"):
        viewer.store.add_machine(name)
    viewer.store.update_position(1, 3.0, 1.0)
    viewer.store.update_position(2, -2.0, 2.0)
    viewer.store.select(1)

    frames = []
    render = viewer.plotter.render

    def record_frame() -> None:
        highlighted = [m.machine.name for m in viewer.composer.markers if m.fill_color == HIGHLIGHT_COLOR]
        frames.append((highlighted, viewer.composer.rig.pan_target))
        render()

    viewer.plotter.render = record_frame
    viewer.store.remove_machine(0)

    assert frames
    assert all(frame == (["B"], (3.0, 1.0)) for frame in frames)


def test_removing_selected_machine_never_highlights_its_successor(viewer):
    viewer.upload()
    for name in ("A", "B", "C"):
        viewer.store.add_machine(name)
    viewer.store.select(1)

    frames = []
    render = viewer.plotter.render

    def record_frame() -> None:
        frames.append([m.machine.name for m in viewer.composer.markers if m.fill_color == HIGHLIGHT_COLOR])
        render()

    viewer.plotter.render = record_frame
    viewer.store.remove_machine(1)

    assert frames
    assert all(frame == [] for frame in frames)


def test_markers_follow_roster(viewer):
    viewer.upload()
    for name in ("A", "B", "C"):
        viewer.store.add_machine(name)
    assert len(viewer.composer.markers) == 3

    viewer.store.remove_machine(1)
    assert [m.machine.name for m in viewer.composer.markers] == ["A", "C"]
    assert [m.index for m in viewer.composer.markers] == [0, 1]

    viewer.store.remove_all()
    assert viewer.composer.markers == []
    assert viewer.plotter.textured_actors == viewer.plotter.actors


def test_wheel_zooms(viewer):
    viewer.upload()
    before = viewer.composer.rig.zoom

    viewer.composer.wheel(2)
    assert viewer.composer.rig.zoom == pytest.approx(before * 1.44)
    viewer.composer.wheel(-2)
    assert viewer.composer.rig.zoom == pytest.approx(before)


def test_teardown_releases_everything(viewer):
    viewer.upload()
    viewer.store.add_machine("A")
    viewer.press(*CENTER)
    plotter = viewer.plotter

    viewer.store.set_plan(None)

    assert viewer.composer.bus.listener_count() == 0
    assert viewer.composer.markers == []
    assert plotter.actors == []
    assert plotter.renderer.actors == []
    assert viewer.composer.status is SceneStatus.NO_PLAN
    assert not viewer.composer.is_built


def test_new_plan_after_teardown_rebuilds(viewer):
    viewer.upload()
    viewer.store.add_machine("A")
    viewer.store.set_plan(None)

    viewer.upload()

    assert len(viewer.plotters) == 2
    assert len(viewer.composer.markers) == 1
    assert viewer.composer.status is SceneStatus.READY


@pytest.mark.parametrize("index, count, expected", [
    (None, 3, None),
    (0, 3, 0),
    (2, 3, 2),
    (3, 3, None),
    (-1, 3, None),
    (0, 0, None),
])
def test_resolve_selection(index, count, expected):
    assert resolve_selection(index, count) == expected
