# salon_agenda/services/slots.py
"""
Slot generation.

Turns a business's agenda configuration into the grid of bookable
time-of-day values for a date. Pure functions, no I/O.
"""
from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any, Iterable, List, Optional

from pydantic import BaseModel, Field, field_validator

from salon_agenda.core.config import settings

ALLOWED_GRANULARITIES = (10, 15, 20, 25, 30, 45, 60, 90)
FALLBACK_GRANULARITY = 30
ALL_DAYS = frozenset(range(7))  # 0=Sun .. 6=Sat


def parse_slot(value: Any) -> time:
    """Accept a time, "HH:MM" or "HH:MM:SS"; seconds are dropped."""
    if isinstance(value, datetime):
        value = value.time()
    if isinstance(value, time):
        return value.replace(second=0, microsecond=0, tzinfo=None)
    if isinstance(value, str):
        parts = value.strip().split(":")
        if len(parts) in (2, 3) and all(p.isdigit() for p in parts):
            hour, minute = int(parts[0]), int(parts[1])
            if 0 <= hour <= 23 and 0 <= minute <= 59:
                return time(hour, minute)
    raise ValueError(f"invalid time of day: {value!r} (expected HH:MM)")


def format_slot(value: time) -> str:
    return value.strftime("%H:%M")


def clamp_granularity(minutes: Optional[int]) -> int:
    """Snap to the nearest supported grid value (ties go to the smaller one)."""
    if not minutes or minutes <= 0:
        return FALLBACK_GRANULARITY
    return min(ALLOWED_GRANULARITIES, key=lambda g: (abs(g - minutes), g))


def weekday_number(day: date) -> int:
    """0=Sunday .. 6=Saturday, the numbering stored in agenda settings."""
    return (day.weekday() + 1) % 7


class AgendaConfig(BaseModel):
    start_hour: time = Field(default_factory=lambda: parse_slot(settings.DEFAULT_START_HOUR))
    end_hour: time = Field(default_factory=lambda: parse_slot(settings.DEFAULT_END_HOUR))
    service_duration: int = Field(default_factory=lambda: settings.DEFAULT_SLOT_MINUTES)
    working_days: frozenset[int] = ALL_DAYS

    @field_validator("start_hour", "end_hour", mode="before")
    @classmethod
    def _parse_hour(cls, v: Any) -> time:
        return parse_slot(v)

    @field_validator("service_duration", mode="before")
    @classmethod
    def _default_duration(cls, v: Any) -> int:
        return settings.DEFAULT_SLOT_MINUTES if v is None else v

    @field_validator("working_days", mode="before")
    @classmethod
    def _check_days(cls, v: Optional[Iterable[int]]) -> frozenset[int]:
        if v is None:
            return ALL_DAYS
        days = frozenset(int(d) for d in v)
        if any(d < 0 or d > 6 for d in days):
            raise ValueError("working_days must be integers between 0 and 6")
        return days

    @property
    def granularity(self) -> int:
        return clamp_granularity(self.service_duration)

    @classmethod
    def defaults(cls) -> "AgendaConfig":
        return cls()

    @classmethod
    def from_row(cls, row: Any) -> "AgendaConfig":
        """Build from an AgendaSettings row or the persisted dict shape; None gives defaults."""
        if row is None:
            return cls.defaults()
        if isinstance(row, dict):
            data = {k: v for k, v in row.items() if v is not None}
        else:
            data = {
                k: getattr(row, k) for k in ("start_hour", "end_hour", "service_duration", "working_days")
                if getattr(row, k, None) is not None
            }
        return cls(**data)

    def to_persisted(self) -> dict:
        return {
            "start_hour": format_slot(self.start_hour),
            "end_hour": format_slot(self.end_hour),
            "service_duration": self.service_duration,
            "working_days": sorted(self.working_days),
        }


def generate_slots(config: AgendaConfig) -> List[str]:
    """
    Candidate start times from start_hour up to and including end_hour,
    one every `granularity` minutes. Never emits a slot past end_hour;
    start_hour >= end_hour gives an empty grid.
    """
    if config.start_hour >= config.end_hour:
        return []

    step = timedelta(minutes=config.granularity)
    anchor = date(2000, 1, 1)
    current = datetime.combine(anchor, config.start_hour)
    end = datetime.combine(anchor, config.end_hour)

    slots: List[str] = []
    while current <= end and current.date() == anchor:
        slots.append(format_slot(current.time()))
        current += step
    return slots


def is_working_day(config: AgendaConfig, day: date) -> bool:
    return weekday_number(day) in config.working_days


def slots_for_date(config: AgendaConfig, day: date) -> List[str]:
    """The grid for a specific date; empty when the business is closed that day."""
    if not is_working_day(config, day):
        return []
    return generate_slots(config)
