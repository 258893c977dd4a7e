from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import ConfigurationError

FREQUENCIES = ("manual", "interval", "daily", "weekly")


def _parse_time(value: str) -> Tuple[int, int]:
    try:
        hours_raw, minutes_raw = value.split(":", 1)
        hours, minutes = int(hours_raw), int(minutes_raw)
    except (AttributeError, ValueError) as e:
        raise ConfigurationError(f"schedule time must be HH:MM, got {value!r}") from e
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ConfigurationError(f"schedule time out of range: {value!r}")
    return hours, minutes


@dataclass(frozen=True, slots=True)
class BatchSchedule:
    """When batch processing should run.

    day uses 0=Sunday .. 6=Saturday.
    """

    enabled: bool = False
    frequency: str = "daily"
    time: str = "11:00"
    interval: int = 24
    day: int = 1

    def __post_init__(self) -> None:
        if self.frequency not in FREQUENCIES:
            raise ConfigurationError(
                f"unknown frequency {self.frequency!r}, expected one of {', '.join(FREQUENCIES)}"
            )
        _parse_time(self.time)
        if self.interval < 1:
            raise ConfigurationError("interval must be at least 1 hour")
        if not 0 <= self.day <= 6:
            raise ConfigurationError("day must be between 0 (Sunday) and 6 (Saturday)")

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "BatchSchedule":
        if not data:
            return cls()
        try:
            return cls(
                enabled=bool(data.get("enabled", False)),
                frequency=str(data.get("frequency", "daily")),
                time=str(data.get("time", "11:00")),
                interval=int(data.get("interval", 24)),
                day=int(data.get("day", 1)),
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"invalid batch schedule: {e}") from e

    def to_mapping(self) -> Dict[str, Any]:
        return asdict(self)

    def next_run(self, now: datetime) -> Optional[datetime]:
        """Next scheduled run after now, or None when nothing is scheduled."""

        if not self.enabled or self.frequency == "manual":
            return None
        if self.frequency == "interval":
            return now + timedelta(hours=self.interval)

        hours, minutes = _parse_time(self.time)
        at = now.replace(hour=hours, minute=minutes, second=0, microsecond=0)
        if self.frequency == "daily":
            return at if at > now else at + timedelta(days=1)

        # weekly: the next matching weekday strictly after today.
        today = (now.weekday() + 1) % 7
        days_ahead = (self.day + 7 - today) % 7 or 7
        return at + timedelta(days=days_ahead)
