"""Flow Engine: executes visually designed API workflows."""

__version__ = "1.0.0"
