"""
PurchaseLogger - the analytics sink PurchaseManager reports to.

Applications inject their own implementation (analytics SDK, crash reporter).
StructlogPurchaseLogger is the default and writes everything to structlog.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol

from purchasing.models.events import LogType, ParamValue, PurchaseLogEvent
from purchasing.observability.logging import get_logger

_LOG_LEVELS: dict[LogType, int] = {
    LogType.INFO: logging.INFO,
    LogType.ANALYTIC: logging.INFO,
    LogType.WARNING: logging.WARNING,
    LogType.SEVERE: logging.ERROR,
}


class PurchaseLogger(Protocol):
    """Receives purchase events and user properties."""

    def track_event(self, event: PurchaseLogEvent) -> None:
        """Record a single event."""
        ...

    def add_user_properties(
        self, properties: Mapping[str, ParamValue], is_high_priority: bool
    ) -> None:
        """Merge properties into the current user's profile."""
        ...


class StructlogPurchaseLogger:
    """PurchaseLogger that writes events as structured log entries."""

    def __init__(self, name: str = "purchasing.events") -> None:
        self._logger = get_logger(name)

    def track_event(self, event: PurchaseLogEvent) -> None:
        self._logger.log(
            _LOG_LEVELS[event.type],
            event.event_name,
            log_type=event.type.label,
            **(event.parameters or {}),
        )

    def add_user_properties(
        self, properties: Mapping[str, ParamValue], is_high_priority: bool
    ) -> None:
        self._logger.debug(
            "user_properties_added",
            is_high_priority=is_high_priority,
            **properties,
        )


@dataclass
class RecordingPurchaseLogger:
    """
    PurchaseLogger that keeps everything in memory.

    Used by tests and previews to assert on emitted analytics.
    """

    events: list[PurchaseLogEvent] = field(default_factory=list)
    user_properties: dict[str, ParamValue] = field(default_factory=dict)
    high_priority_keys: set[str] = field(default_factory=set)

    def track_event(self, event: PurchaseLogEvent) -> None:
        self.events.append(event)

    def add_user_properties(
        self, properties: Mapping[str, ParamValue], is_high_priority: bool
    ) -> None:
        self.user_properties.update(properties)
        if is_high_priority:
            self.high_priority_keys.update(properties)

    @property
    def event_names(self) -> list[str]:
        return [event.event_name for event in self.events]
