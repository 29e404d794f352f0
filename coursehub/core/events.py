"""
Structured event sink injected into every service.

Services emit named events with keyword fields instead of formatting log
lines themselves; the default sink forwards them to ``logging``.
"""

import json
import logging
import time
from contextlib import contextmanager
from typing import Any, Dict, Optional


class EventSink:
    """Forwards structured events to a stdlib logger"""

    def __init__(self, logger: Optional[logging.Logger] = None, service: Optional[str] = None):
        self.logger = logger or logging.getLogger("coursehub.events")
        self.service = service

    def child(self, service: str) -> "EventSink":
        """Same destination, tagged with a service name"""
        return self.__class__(self.logger, service)

    def emit(self, event: str, level: int = logging.INFO, **fields: Any) -> None:
        payload: Dict[str, Any] = {"event": event}
        if self.service:
            payload["service"] = self.service
        payload.update(fields)
        self.logger.log(level, json.dumps(payload, default=str))

    def debug(self, event: str, **fields: Any) -> None:
        self.emit(event, logging.DEBUG, **fields)

    def warning(self, event: str, **fields: Any) -> None:
        self.emit(event, logging.WARNING, **fields)

    def error(self, event: str, **fields: Any) -> None:
        self.emit(event, logging.ERROR, **fields)

    @contextmanager
    def timed(self, operation: str, **fields: Any):
        """Emit a ``performance`` event with ``duration_ms`` once the block exits"""
        start = time.perf_counter()
        outcome = "ok"
        try:
            yield
        except Exception:
            outcome = "error"
            raise
        finally:
            duration_ms = round((time.perf_counter() - start) * 1000, 2)
            self.debug("performance", operation=operation, duration_ms=duration_ms, outcome=outcome, **fields)


default_sink = EventSink()
