"""
Application Initialization
==========================
This module constructs the MVC (Model-View-Controller) architecture and starts
the Qt Event Loop.

Why is this file needed?
------------------------
It acts as the "Dependency Injection" root. It:
1. Instantiates the Global Data Model (MachineStore).
2. Instantiates the Main Window (View).
3. Passes the Model into the View so they can communicate.
4. Prevents circular import errors by being the orchestrator.
"""
import sys

from planplacer.application import create_app
from planplacer.config import ViewerSettings
from planplacer.logging_config import level_from_env, setup_logging
from planplacer.model.state import MachineStore
from planplacer.view.main_window import MainWindow


def main() -> None:
    # 1. Setup Logging (PLANPLACER_DEBUG=1 or PLANPLACER_LOG_LEVEL=DEBUG for everything)
    setup_logging(level=level_from_env())

    # 2. Create the Qt Application (also fixes the QSettings location)
    app = create_app()

    # 3. Initialize the Data Model
    store = MachineStore()

    # 4. Initialize the Main Window, passing the model
    window = MainWindow(store, ViewerSettings.load())
    window.show()

    # 5. Start Event Loop
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
