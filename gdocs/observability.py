"""
Observability sink for document resolution.

Locators and the batch sequencer report diagnostics as structured events
instead of calling the logger directly, so they stay pure functions of
(tree, query) and can be tested without capturing log output.
"""
import logging
from typing import Any, Dict, List, Optional, Tuple

logger = logging.getLogger(__name__)


class EventSink:
    """Base sink. Discards every event."""

    def emit(self, event: str, level: int = logging.DEBUG, **fields: Any) -> None:
        pass


class LoggingEventSink(EventSink):
    """Forwards events to the standard logging module."""

    def __init__(self, target: Optional[logging.Logger] = None):
        self.target = target or logger

    def emit(self, event: str, level: int = logging.DEBUG, **fields: Any) -> None:
        if not self.target.isEnabledFor(level):
            return
        details = ", ".join(f"{key}={value!r}" for key, value in fields.items())
        self.target.log(level, f"[{event}] {details}" if details else f"[{event}]")


class RecordingEventSink(EventSink):
    """Keeps every event in memory for inspection in tests."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def emit(self, event: str, level: int = logging.DEBUG, **fields: Any) -> None:
        self.events.append((event, fields))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def find(self, event: str) -> List[Dict[str, Any]]:
        return [fields for name, fields in self.events if name == event]


NULL_SINK = EventSink()


def default_sink() -> EventSink:
    return LoggingEventSink()
