"""Logging setup and the structured generation event log."""

from .events import GenerationEvent, JsonlEventLog, utc_timestamp
from .setup import configure_logging

__all__ = ["GenerationEvent", "JsonlEventLog", "configure_logging", "utc_timestamp"]
