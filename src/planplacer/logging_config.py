"""
Logging Configuration
Sets up the 'planplacer' logger shared by the viewport, workers and UI.
"""
import logging
import os
import sys
from typing import Mapping, Optional

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def level_from_env(environ: Optional[Mapping[str, str]] = None) -> int:
    """
    Pick the log level from the environment.

    PLANPLACER_LOG_LEVEL accepts a level name ("DEBUG", "warning", ...);
    otherwise PLANPLACER_DEBUG switches to DEBUG. Defaults to INFO.
    """
    env = os.environ if environ is None else environ

    name = env.get("PLANPLACER_LOG_LEVEL", "").strip().upper()
    if name:
        level = logging.getLevelName(name)
        if isinstance(level, int):
            return level

    if env.get("PLANPLACER_DEBUG"):
        return logging.DEBUG
    return logging.INFO


def setup_logging(level: int = logging.INFO, log_file: Optional[str] = None) -> None:
    """
    Configures the logger of the 'planplacer' namespace.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path to save logs to a file.
    """
    logger = logging.getLogger("planplacer")
    logger.setLevel(level)

    # The main window can be rebuilt in one process (tests, restarts)
    if logger.hasHandlers():
        logger.handlers.clear()

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info(f"Logging initialized at {logging.getLevelName(level)}.")
