"""Terminal presentation surfaces."""

from .status_screen import StatusScreen

__all__ = ["StatusScreen"]
