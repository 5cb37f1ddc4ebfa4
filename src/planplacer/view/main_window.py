"""
Main Application Window
=======================
The primary GUI container that holds the Menu Bar, the control panel and the
plan viewer.

Why is this file needed?
------------------------
1. Layout: It organizes the high-level visual structure of the application.
2. Routing: It connects the store signals to the viewer and the viewer's
   drag/click signals back to the store.
"""
import logging
import os
from typing import Optional

from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QSplitter, QGroupBox, QPushButton,
    QLabel, QFileDialog
)
from PySide6.QtCore import Qt
from PySide6.QtGui import QAction

from planplacer.application import VISIBLE_APP_NAME
from planplacer.config import PLAN_FILE_SUFFIXES, ViewerSettings
from planplacer.model.state import MachineStore, PlanResource
from planplacer.view.tabs.tab_machines import MachinesControlPanel
from planplacer.view.widgets.plan_viewer import PlanViewer

logger = logging.getLogger(__name__)

PLAN_FILE_FILTER = "Plan images ({})".format(" ".join(f"*{s}" for s in PLAN_FILE_SUFFIXES))


class MainWindow(QMainWindow):
    def __init__(self, store: MachineStore, settings: Optional[ViewerSettings] = None) -> None:
        super().__init__()
        self.store: MachineStore = store

        self.update_window_title()
        self.resize(1400, 900)

        # --- SPLITTER (CONTENT AREA) ---
        splitter = QSplitter(Qt.Horizontal)
        self.setCentralWidget(splitter)

        # --- LEFT SIDE: Upload + Machines ---
        left = QWidget()
        left_layout = QVBoxLayout(left)
        left_layout.setContentsMargins(0, 0, 0, 0)

        upload_group = QGroupBox("Upload Plan")
        upload_layout = QVBoxLayout(upload_group)

        self.btn_choose = QPushButton("Choose File")
        self.btn_choose.setFixedHeight(40)
        self.btn_choose.clicked.connect(self.on_file_open)
        upload_layout.addWidget(self.btn_choose)

        self.lbl_plan = QLabel("No plan selected.")
        self.lbl_plan.setWordWrap(True)
        upload_layout.addWidget(self.lbl_plan)

        left_layout.addWidget(upload_group)

        self.machines_panel = MachinesControlPanel(self.store, self)
        left_layout.addWidget(self.machines_panel, 1)

        splitter.addWidget(left)

        # --- RIGHT SIDE: Plan Viewer ---
        self.viewer = PlanViewer(settings)
        splitter.addWidget(self.viewer)

        # Set initial proportions (1 part sidebar : 4 parts viewer)
        splitter.setSizes([350, 1050])

        # --- SIGNAL CONNECTIONS ---
        # 1. Store -> Viewer
        self.store.plan_changed.connect(self.on_plan_changed)
        # Roster and selection are pushed as one pair so the viewer never
        # pairs a new roster with a stale selection
        self.store.machines_changed.connect(self.on_roster_changed)
        self.store.selection_changed.connect(self.on_roster_changed)

        # 2. Viewer -> Store
        self.viewer.position_changed.connect(self.store.update_position)
        self.viewer.marker_clicked.connect(self.store.select)

        # --- ACTIONS & MENUS ---
        self._create_actions()
        self._create_menus()

        # Initial sync
        self.on_roster_changed()
        self.on_plan_changed(self.store.plan)

    def _create_actions(self) -> None:
        self.act_open = QAction("Open Plan...", self)
        self.act_open.setShortcut("Ctrl+O")
        self.act_open.triggered.connect(self.on_file_open)

        self.act_exit = QAction("Exit", self)
        self.act_exit.triggered.connect(self.close)

    def _create_menus(self) -> None:
        menu_bar = self.menuBar()

        file_menu = menu_bar.addMenu("&File")
        file_menu.addAction(self.act_open)
        file_menu.addSeparator()
        file_menu.addAction(self.act_exit)

    # --- HELPER METHODS ---
    def update_window_title(self) -> None:
        plan = self.store.plan
        name = plan.name if plan is not None else "No plan"
        self.setWindowTitle(f"{VISIBLE_APP_NAME} - [{name}]")

    # --- SLOTS ---
    def on_file_open(self) -> None:
        path, _ = QFileDialog.getOpenFileName(self, "Choose Plan", "", PLAN_FILE_FILTER)
        if not path:
            return
        logger.info(f"Plan file chosen: {path}")
        self.store.set_plan(PlanResource.from_file(path))

    def on_roster_changed(self, *_) -> None:
        self.viewer.set_roster(self.store.machines, self.store.selected_index)

    def on_plan_changed(self, plan: Optional[PlanResource]) -> None:
        self.lbl_plan.setText(os.path.basename(plan.name) if plan is not None else "No plan selected.")
        self.update_window_title()
        self.viewer.set_plan(plan)

    def closeEvent(self, event) -> None:
        self.viewer.close()
        super().closeEvent(event)
