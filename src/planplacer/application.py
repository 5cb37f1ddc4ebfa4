"""
QApplication factory.

The organisation/application ids decide where QSettings keeps the
'viewer/*' overrides read by ViewerSettings.load().
"""
from __future__ import annotations

import logging
import os
import sys
from typing import Optional, Sequence

from PySide6.QtWidgets import QApplication
from PySide6.QtCore import QCoreApplication, QSettings

from planplacer import __version__

logger = logging.getLogger(__name__)

ORG_ID = "planplacer"
APP_ID = "plan-placer"
ORG_DOMAIN = "planplacer.local"

VISIBLE_APP_NAME = "Plan and Machine Placement"


def create_app(argv: Optional[Sequence[str]] = None) -> QApplication:
    """Create and configure the QApplication instance."""
    os.environ.setdefault("QT_ENABLE_HIGHDPI_SCALING", "1")
    os.environ.setdefault("QT_AUTO_SCREEN_SCALE_FACTOR", "1")

    # Must be set before the first QSettings() is constructed
    QCoreApplication.setOrganizationName(ORG_ID)
    QCoreApplication.setOrganizationDomain(ORG_DOMAIN)
    QCoreApplication.setApplicationName(APP_ID)
    QCoreApplication.setApplicationVersion(__version__)
    QSettings.setDefaultFormat(QSettings.Format.IniFormat)

    app = QApplication(list(argv) if argv is not None else sys.argv)
    app.setApplicationDisplayName(QCoreApplication.translate("App", VISIBLE_APP_NAME))

    logger.info(f"{VISIBLE_APP_NAME} {__version__}; settings in {QSettings().fileName()}")
    return app
