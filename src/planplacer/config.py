"""
Configuration & Constants
=========================
This module serves as the central registry for viewport constants and the
user-adjustable viewer settings.

Why is this file needed?
------------------------
1. Abstraction: The camera, marker and backdrop geometry share a handful of
   numbers (zoom step, z offsets, marker size). Keeping them here prevents
   magic numbers scattered throughout the viewport code.
2. Overrides: Zoom policy can be tuned per installation through QSettings
   without touching code.

Exports:
    ViewerSettings: Zoom policy, optionally overridden via QSettings.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


# --- Camera ---
DEFAULT_ZOOM: float = 50.0        # screen pixels per world unit
ZOOM_STEP: float = 1.2
ZOOM_MIN: float = 1.0
ZOOM_MAX: float = 5000.0
CAMERA_DISTANCE: float = 5.0      # camera sits at z = CAMERA_DISTANCE
CAMERA_NEAR: float = 0.1
CAMERA_FAR: float = 2000.0

# --- Scene layout (world units) ---
BACKDROP_Z: float = -0.1
MARKER_WIDTH: float = 0.2
MARKER_HEIGHT: float = 0.1
LABEL_Z: float = 0.1
HIGHLIGHT_COLOR: str = "yellow"
BACKGROUND_COLOR: str = "white"

# --- Upload ---
PLAN_FILE_SUFFIXES: tuple[str, ...] = (".png", ".jpg", ".jpeg", ".svg", ".bmp")


@dataclass
class ViewerSettings:
    """Zoom policy of the plan viewer."""
    default_zoom: float = DEFAULT_ZOOM
    zoom_step: float = ZOOM_STEP
    zoom_min: float = ZOOM_MIN
    zoom_max: float = ZOOM_MAX

    def __post_init__(self) -> None:
        if self.zoom_step <= 1.0:
            raise ValueError(f"zoom_step must be greater than 1, got {self.zoom_step}.")
        if not 0.0 < self.zoom_min <= self.zoom_max:
            raise ValueError(f"Invalid zoom bounds [{self.zoom_min}, {self.zoom_max}].")
        self.default_zoom = min(max(self.default_zoom, self.zoom_min), self.zoom_max)

    @classmethod
    def load(cls) -> "ViewerSettings":
        """Read overrides from the application QSettings ('viewer/*' keys)."""
        from PySide6.QtCore import QSettings

        settings = QSettings()
        defaults = cls()
        try:
            return cls(
                default_zoom=float(settings.value("viewer/default_zoom", defaults.default_zoom)),
                zoom_step=float(settings.value("viewer/zoom_step", defaults.zoom_step)),
                zoom_min=float(settings.value("viewer/zoom_min", defaults.zoom_min)),
                zoom_max=float(settings.value("viewer/zoom_max", defaults.zoom_max)),
            )
        except (TypeError, ValueError) as e:
            logger.warning(f"Ignoring invalid viewer settings: {e}")
            return defaults
