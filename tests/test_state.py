import random
import re

import pytest

from planplacer.model.state import Machine, MachineStore, PlanResource, random_color


@pytest.fixture
def store() -> MachineStore:
    store = MachineStore(rng=random.Random(0))
    for name in ("A", "B", "C", "D"):
        store.add_machine(name)
    return store


def test_add_machine_defaults():
    store = MachineStore(rng=random.Random(1))
    machine = store.add_machine("  Lathe  ")

    assert machine.name == "Lathe"
    assert (machine.x, machine.y) == (0.0, 0.0)
    assert re.fullmatch(r"#[0-9a-f]{6}", machine.color)
    assert store.machines == (machine,)


def test_blank_name_is_ignored():
    store = MachineStore()
    seen = []
    store.machines_changed.connect(seen.append)

    assert store.add_machine("   ") is None
    assert store.machines == ()
    assert seen == []


def test_random_color_is_zero_padded():
    class LowRandom:
        def randrange(self, start, stop):
            return 0x00ab

    assert random_color(LowRandom()) == "#0000ab"


def test_remove_selected_clears_selection(store):
    store.select(2)
    store.remove_machine(2)
    assert store.selected_index is None


def test_remove_before_selected_shifts_selection(store):
    store.select(2)
    selected_name = store.machines[2].name

    store.remove_machine(0)

    assert store.selected_index == 1
    assert store.machines[store.selected_index].name == selected_name


def test_remove_publishes_roster_with_shifted_selection(store):
    store.select(2)
    events = []
    store.machines_changed.connect(
        lambda machines: events.append(("machines", len(machines), store.selected_index))
    )
    store.selection_changed.connect(lambda index: events.append(("selection", index)))

    store.remove_machine(0)

    assert events == [("machines", 3, 1), ("selection", 1)]


def test_remove_selected_publishes_cleared_selection(store):
    store.select(1)
    seen = []
    store.machines_changed.connect(lambda machines: seen.append(store.selected_index))

    store.remove_machine(1)

    assert seen == [None]


def test_remove_after_selected_keeps_selection(store):
    store.select(1)
    store.remove_machine(3)
    assert store.selected_index == 1


def test_remove_returns_machine_and_keeps_order(store):
    removed = store.remove_machine(1)
    assert removed.name == "B"
    assert [m.name for m in store.machines] == ["A", "C", "D"]


def test_remove_all(store):
    store.select(0)
    store.remove_all()
    assert store.machines == ()
    assert store.selected_index is None


def test_update_position_replaces_entry(store):
    before = store.machines
    store.update_position(1, 3.5, -2.0)

    assert store.machines[1] == Machine("B", before[1].color, 3.5, -2.0)
    # Previous tuple is untouched
    assert before[1].x == 0.0


def test_rename(store):
    store.rename_machine(0, " Press ")
    assert store.machines[0].name == "Press"
    with pytest.raises(ValueError):
        store.rename_machine(0, "  ")


@pytest.mark.parametrize("call", [
    lambda s: s.remove_machine(4),
    lambda s: s.update_position(-1, 0.0, 0.0),
    lambda s: s.select(10),
])
def test_bad_index_raises(store, call):
    with pytest.raises(IndexError):
        call(store)


def test_selection_signal_only_on_change(store):
    seen = []
    store.selection_changed.connect(seen.append)
    store.select(1)
    store.select(1)
    store.select(None)
    assert seen == [1, None]


def test_set_plan_emits(store):
    seen = []
    store.plan_changed.connect(seen.append)
    plan = PlanResource.from_file("/tmp/plans/floor.png")

    store.set_plan(plan)

    assert seen == [plan]
    assert store.plan.name == "floor.png"
