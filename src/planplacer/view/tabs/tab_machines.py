"""
Machines Control Panel
"""
from __future__ import annotations

import logging
from typing import Optional

from PySide6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QLabel, QListWidget,
    QListWidgetItem, QGroupBox, QLineEdit
)

from planplacer.model.state import Machine, MachineStore

logger = logging.getLogger(__name__)


class MachineRow(QWidget):
    """List row: colour swatch, name and a remove button."""
    def __init__(self, machine: Machine, on_remove, parent: Optional[QWidget] = None) -> None:
        super().__init__(parent)
        layout = QHBoxLayout(self)
        layout.setContentsMargins(4, 2, 4, 2)

        swatch = QLabel()
        swatch.setFixedSize(16, 16)
        swatch.setStyleSheet(f"background-color: {machine.color}; border: 1px solid #333;")
        layout.addWidget(swatch)

        self.lbl_name = QLabel(machine.name)
        layout.addWidget(self.lbl_name, 1)

        self.btn_remove = QPushButton("✕")
        self.btn_remove.setFixedSize(22, 22)
        self.btn_remove.setToolTip("Remove machine")
        self.btn_remove.clicked.connect(on_remove)
        layout.addWidget(self.btn_remove)


class MachinesControlPanel(QWidget):
    def __init__(self, store: MachineStore, parent_window=None) -> None:
        super().__init__()
        self.store = store
        self.parent_window = parent_window

        # Rows are rebuilt only when names/colours change, not on every drag move
        self._row_signature: tuple[tuple[str, str], ...] = ()

        layout = QVBoxLayout(self)

        # 1. Add Section
        add_group = QGroupBox("Machines")
        add_layout = QVBoxLayout(add_group)

        add_layout.addWidget(QLabel("Machine name:"))
        self.name_edit = QLineEdit()
        self.name_edit.setPlaceholderText("e.g. Lathe 1")
        self.name_edit.returnPressed.connect(self.on_add_clicked)
        add_layout.addWidget(self.name_edit)

        btn_row = QHBoxLayout()
        self.btn_add = QPushButton("Add Machine")
        self.btn_add.clicked.connect(self.on_add_clicked)
        btn_row.addWidget(self.btn_add)

        self.btn_remove_all = QPushButton("Remove All")
        self.btn_remove_all.clicked.connect(self.on_remove_all_clicked)
        btn_row.addWidget(self.btn_remove_all)
        add_layout.addLayout(btn_row)

        layout.addWidget(add_group)

        # 2. Roster Section
        list_group = QGroupBox("Placed Machines")
        list_layout = QVBoxLayout(list_group)

        self.machine_list = QListWidget()
        self.machine_list.setSelectionMode(QListWidget.SingleSelection)
        self.machine_list.currentRowChanged.connect(self.on_row_selected)
        list_layout.addWidget(self.machine_list)

        self.lbl_hint = QLabel("Drag markers on the plan to place them.")
        self.lbl_hint.setWordWrap(True)
        list_layout.addWidget(self.lbl_hint)

        layout.addWidget(list_group)
        layout.addStretch()

        # --- STORE SIGNALS ---
        self.store.machines_changed.connect(self.refresh_list)
        self.store.selection_changed.connect(self.sync_selection)

        # Initial Load
        self.refresh_list(self.store.machines)

    def on_add_clicked(self) -> None:
        machine = self.store.add_machine(self.name_edit.text())
        if machine is not None:
            self.name_edit.clear()

    def on_remove_all_clicked(self) -> None:
        self.store.remove_all()

    def on_row_selected(self, row: int) -> None:
        if row < 0:
            self.store.select(None)
        elif row < len(self.store.machines):
            self.store.select(row)

    def refresh_list(self, machines: tuple[Machine, ...]) -> None:
        """Rebuilds the rows if the roster names or colours changed."""
        signature = tuple((m.name, m.color) for m in machines)
        if signature == self._row_signature:
            return
        self._row_signature = signature

        # Block signals to prevent selection writes during reload
        self.machine_list.blockSignals(True)
        self.machine_list.clear()
        for index, machine in enumerate(machines):
            item = QListWidgetItem()
            row = MachineRow(machine, lambda _=False, i=index: self.store.remove_machine(i))
            item.setSizeHint(row.sizeHint())
            self.machine_list.addItem(item)
            self.machine_list.setItemWidget(item, row)
        self.machine_list.blockSignals(False)

        self.sync_selection(self.store.selected_index)

    def sync_selection(self, index: Optional[int]) -> None:
        self.machine_list.blockSignals(True)
        if index is None or not 0 <= index < self.machine_list.count():
            self.machine_list.clearSelection()
            self.machine_list.setCurrentRow(-1)
        else:
            self.machine_list.setCurrentRow(index)
        self.machine_list.blockSignals(False)
