"""Plan and machine placement viewer."""
__version__ = "0.1.0"
