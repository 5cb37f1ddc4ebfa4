"""
Project State (Data Model)
==========================
This module defines the data the viewport renders and the store that owns it.

Why is this file needed?
------------------------
1. State Management: It holds the current plan, the machine roster and the
   selection in one place.
2. Ownership: The viewport never keeps its own copy of the roster. It reads
   from this store and writes back through `update_position`.
3. Decoupling: Views listen to the Qt signals; they never poke the tuples.

Classes:
    Machine: One marker record (name, colour, position).
    PlanResource: Reference to the uploaded plan image.
    MachineStore: The roster + selection + plan container.
"""
from __future__ import annotations

import logging
import os
import random
from dataclasses import dataclass, field, replace
from typing import Optional, Union

from PySide6.QtCore import QObject, Signal

logger = logging.getLogger(__name__)


def random_color(rng: Optional[random.Random] = None) -> str:
    """Random '#rrggbb' colour for a new machine."""
    value = (rng or random).randrange(0, 0x1000000)
    return f"#{value:06x}"


@dataclass(frozen=True)
class Machine:
    """A machine placed on the plan. Position is in plan world units."""
    name: str
    color: str
    x: float = 0.0
    y: float = 0.0

    def moved_to(self, x: float, y: float) -> Machine:
        return replace(self, x=float(x), y=float(y))


@dataclass(frozen=True)
class PlanResource:
    """
    Opaque reference to a plan image.

    `source` is a filesystem path, a 'data:' URL, or the encoded image bytes.
    """
    source: Union[str, bytes] = field(repr=False)
    name: str = "plan"

    @classmethod
    def from_file(cls, path: str) -> PlanResource:
        return cls(source=path, name=os.path.basename(path))


class MachineStore(QObject):
    """
    Central state store with signals for panel/viewer sync.

    Indices are dense (0..n-1). Every mutation replaces the roster tuple,
    so a reader holding the previous tuple never sees it change.
    """
    plan_changed = Signal(object)        # Optional[PlanResource]
    machines_changed = Signal(object)    # tuple[Machine, ...]
    selection_changed = Signal(object)   # Optional[int]

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        super().__init__()
        self._rng = rng
        self._plan: Optional[PlanResource] = None
        self._machines: tuple[Machine, ...] = ()
        self._selected_index: Optional[int] = None

    # --- PROPERTIES ---

    @property
    def plan(self) -> Optional[PlanResource]:
        return self._plan

    @property
    def machines(self) -> tuple[Machine, ...]:
        return self._machines

    @property
    def selected_index(self) -> Optional[int]:
        return self._selected_index

    # --- PLAN ---

    def set_plan(self, plan: Optional[PlanResource]) -> None:
        self._plan = plan
        logger.info(f"Plan set to: {plan.name if plan else None}")
        self.plan_changed.emit(plan)

    # --- ROSTER ---

    def add_machine(self, name: str) -> Optional[Machine]:
        """Append a machine at the origin. Blank names are ignored."""
        name = name.strip()
        if not name:
            return None

        machine = Machine(name=name, color=random_color(self._rng))
        self._set_machines(self._machines + (machine,))
        logger.info(f"Machine added: '{machine.name}' ({machine.color})")
        return machine

    def remove_machine(self, index: int) -> Machine:
        """
        Remove the machine at `index`.

        Selection rule: removing the selected entry clears the selection;
        removing an entry before it shifts the selection down by one, so it
        keeps pointing at the same machine.
        """
        self._check_index(index)
        removed = self._machines[index]

        selected = self._selected_index
        if selected == index:
            selected = None
        elif selected is not None and index < selected:
            selected -= 1

        self._commit(self._machines[:index] + self._machines[index + 1:], selected)

        logger.info(f"Machine removed: '{removed.name}' (index {index})")
        return removed

    def remove_all(self) -> None:
        self._commit((), None)
        logger.info("All machines removed.")

    def rename_machine(self, index: int, name: str) -> None:
        self._check_index(index)
        name = name.strip()
        if not name:
            raise ValueError("Machine name must not be empty.")
        self._replace_at(index, replace(self._machines[index], name=name))

    def update_position(self, index: int, x: float, y: float) -> None:
        """Write back a position reported by the viewport."""
        self._check_index(index)
        self._replace_at(index, self._machines[index].moved_to(x, y))

    # --- SELECTION ---

    def select(self, index: Optional[int]) -> None:
        if index is not None:
            self._check_index(index)
        self._set_selection(index)

    # --- internals ---

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self._machines):
            raise IndexError(f"Machine index {index} out of range (0..{len(self._machines) - 1}).")

    def _replace_at(self, index: int, machine: Machine) -> None:
        machines = list(self._machines)
        machines[index] = machine
        self._set_machines(tuple(machines))

    def _set_machines(self, machines: tuple[Machine, ...]) -> None:
        self._machines = machines
        self.machines_changed.emit(machines)

    def _commit(self, machines: tuple[Machine, ...], selected: Optional[int]) -> None:
        """
        Replace roster and selection together, then notify.

        Listeners of either signal always read a selection that is valid for
        the roster they see.
        """
        selection_changed = selected != self._selected_index
        self._machines = machines
        self._selected_index = selected
        self.machines_changed.emit(machines)
        if selection_changed:
            self.selection_changed.emit(selected)

    def _set_selection(self, index: Optional[int]) -> None:
        if index == self._selected_index:
            return
        self._selected_index = index
        self.selection_changed.emit(index)
