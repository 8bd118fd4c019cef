"""External collaborators and per-stage services."""
