from __future__ import annotations

import logging

from ..models.run_report import TraceEvent

"""Structured diagnostic trace for one import run.

Disabled by default. When enabled the events end up on RunReport.trace;
every event is also sent to the module logger at DEBUG level.
"""

logger = logging.getLogger(__name__)


class Tracer:

    def __init__(self, enabled: bool = False) -> None:
        self.enabled = enabled
        self._events: list[TraceEvent] = []

    def add(self, stage: str, detail: str) -> None:
        logger.debug("trace stage=%s %s", stage, detail)
        if self.enabled:
            self._events.append(TraceEvent(stage=stage, detail=detail))

    @property
    def events(self) -> list[TraceEvent]:
        return list(self._events)
