"""
Log event models - what PurchaseManager hands to its PurchaseLogger.

Analytics parameters are flat string-keyed maps whose values are limited to
str, int, float and bool. Keys with no value are omitted, never sent as null.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from enum import Enum, IntEnum

ParamValue = str | int | float | bool
EventParameters = dict[str, ParamValue]


class LogType(IntEnum):
    """Event severity, ordered from least to most severe."""

    INFO = 0
    ANALYTIC = 1
    WARNING = 2
    SEVERE = 3

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class PurchaseLogEvent:
    """A single named event with optional analytics parameters."""

    event_name: str
    parameters: EventParameters | None = None
    type: LogType = LogType.INFO

    def __post_init__(self) -> None:
        """Validate event fields."""
        if not self.event_name:
            raise ValueError("event_name cannot be empty")


def compact_parameters(values: Mapping[str, object | None]) -> EventParameters:
    """
    Build an EventParameters map, dropping None values.

    Datetimes become ISO-8601 strings and enums their value; anything else
    that is not already a ParamValue is rendered with str().
    """
    params: EventParameters = {}
    for key, value in values.items():
        if value is None:
            continue
        if isinstance(value, datetime):
            params[key] = value.isoformat()
        elif isinstance(value, Enum):
            params[key] = value.value
        elif isinstance(value, (str, int, float, bool)):
            params[key] = value
        else:
            params[key] = str(value)
    return params


def error_event_parameters(error: BaseException) -> EventParameters:
    """Parameters attached to every *_fail event."""
    return {"error_description": str(error) or type(error).__name__}
