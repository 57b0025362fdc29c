"""Decido — decision resolution and staged consent workflow engine."""

__version__ = "0.1.0"

from decido.consent.scheduler import compute_schedule, current_stage, stage_windows
from decido.resolution.resolver import resolve

__all__ = ["compute_schedule", "current_stage", "resolve", "stage_windows"]
