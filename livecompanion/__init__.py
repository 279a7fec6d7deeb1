"""Live companion session: audio reactivity, conversation and health for the study companion."""

__version__ = "0.1.0"
