"""nginx-switch: lifecycle control for a containerized nginx server."""

__version__ = "0.1.0"
