# salon_agenda/schemas/agenda.py
from datetime import time
from typing import List, Optional
from pydantic import BaseModel, field_validator, model_validator

from salon_agenda.services.slots import ALLOWED_GRANULARITIES, format_slot, parse_slot

class AgendaSettingsOut(BaseModel):
    """Persisted configuration shape: HH:MM strings, slot minutes, 0=Sun..6=Sat."""
    start_hour: str
    end_hour: str
    service_duration: int
    working_days: List[int]

    @field_validator("start_hour", "end_hour", mode="before")
    @classmethod
    def _fmt(cls, v) -> str:
        return format_slot(parse_slot(v))

    @field_validator("working_days", mode="before")
    @classmethod
    def _sorted(cls, v) -> List[int]:
        return sorted(set(v or []))

class AgendaSettingsUpdate(BaseModel):
    start_hour: Optional[time] = None
    end_hour: Optional[time] = None
    service_duration: Optional[int] = None
    working_days: Optional[List[int]] = None

    @field_validator("start_hour", "end_hour", mode="before")
    @classmethod
    def _parse(cls, v):
        return None if v is None else parse_slot(v)

    @field_validator("service_duration")
    @classmethod
    def _check_duration(cls, v: Optional[int]) -> Optional[int]:
        if v is not None and v not in ALLOWED_GRANULARITIES:
            raise ValueError(f"service_duration must be one of {list(ALLOWED_GRANULARITIES)}")
        return v

    @field_validator("working_days")
    @classmethod
    def _check_days(cls, v: Optional[List[int]]) -> Optional[List[int]]:
        if v is None:
            return v
        for day in v:
            if not (0 <= day <= 6):
                raise ValueError("working_days must be integers between 0 and 6")
        if len(v) != len(set(v)):
            raise ValueError("working_days cannot contain duplicates")
        return sorted(v)

    @model_validator(mode="after")
    def _check_range(self):
        if self.start_hour is not None and self.end_hour is not None and self.start_hour >= self.end_hour:
            raise ValueError("start_hour must be before end_hour")
        return self
