# salon_agenda/services/availability.py
"""
Availability checking on the slot grid.

Every appointment occupies a contiguous run of grid slots:
[start_index, start_index + ceil(duration / granularity)). A candidate is
bookable when its run fits entirely inside the grid and does not intersect
the run of any non-cancelled appointment of the same stylist on the same
date.
"""
from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Iterable, List, Optional, Sequence

from salon_agenda.db.models.appointment import AppointmentStatus
from salon_agenda.services.slots import format_slot, parse_slot


@dataclass(frozen=True)
class BookedInterval:
    """What the checker needs to know about an existing appointment."""
    appointment_id: Optional[uuid.UUID]
    stylist_id: Optional[uuid.UUID]
    start: str  # "HH:MM"
    duration_min: int
    status: AppointmentStatus = AppointmentStatus.SCHEDULED

    @classmethod
    def from_appointment(cls, appt) -> "BookedInterval":
        return cls(
            appointment_id=appt.id,
            stylist_id=appt.stylist_id,
            start=format_slot(parse_slot(appt.appointment_time)),
            duration_min=appt.duration_min,
            status=AppointmentStatus(appt.status),
        )

    def to_dict(self) -> dict:
        return {
            "appointment_id": str(self.appointment_id) if self.appointment_id else None,
            "stylist_id": str(self.stylist_id) if self.stylist_id else None,
            "start": self.start,
            "duration_min": self.duration_min,
            "status": self.status.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BookedInterval":
        return cls(
            appointment_id=uuid.UUID(data["appointment_id"]) if data.get("appointment_id") else None,
            stylist_id=uuid.UUID(data["stylist_id"]) if data.get("stylist_id") else None,
            start=data["start"],
            duration_min=int(data["duration_min"]),
            status=AppointmentStatus(data["status"]),
        )


def blocks_time(status: AppointmentStatus) -> bool:
    match status:
        case AppointmentStatus.SCHEDULED | AppointmentStatus.COMPLETED:
            return True
        case AppointmentStatus.CANCELLED:
            return False
        case _:
            raise ValueError(f"unknown appointment status: {status!r}")


def slots_needed(duration_min: int, granularity: int) -> int:
    return math.ceil(duration_min / granularity)


def _minutes(slot: str) -> int:
    t = parse_slot(slot)
    return t.hour * 60 + t.minute


def _booked_range(time_slots: Sequence[str], start: str, duration_min: int,
                  granularity: int) -> Optional[range]:
    """
    Grid indices an existing appointment touches. The start snaps down to the
    slot containing it and the end rounds up from the real end time, so a
    booking made on an older grid blocks every slot it runs into.
    """
    offset = _minutes(start) - _minutes(time_slots[0])
    end = offset + duration_min
    if end <= 0:
        return None
    return range(max(0, offset // granularity), math.ceil(end / granularity))


def occupied_range(time_slots: Sequence[str], start: str, duration_min: int,
                   granularity: int) -> Optional[range]:
    """Slot indices a booking starting at `start` would consume; None when `start` is not on the grid."""
    if start not in time_slots:
        return None
    idx = time_slots.index(start)
    return range(idx, idx + slots_needed(duration_min, granularity))


def is_available(
    candidate: Optional[str],
    service_duration: Optional[int],
    granularity: int,
    existing: Iterable[BookedInterval],
    *,
    time_slots: Sequence[str],
    stylist_id: Optional[uuid.UUID],
    exclude_appointment_id: Optional[uuid.UUID] = None,
) -> bool:
    """
    True when a `service_duration`-minute booking for `stylist_id` can start at
    `candidate`. Missing inputs (no service, no stylist, empty grid) mean
    "not bookable yet" and return False instead of raising.
    """
    if not candidate or not service_duration or stylist_id is None or not time_slots:
        return False

    try:
        candidate = format_slot(parse_slot(candidate))
    except ValueError:
        return False

    wanted = occupied_range(time_slots, candidate, service_duration, granularity)
    if wanted is None:
        return False
    # The whole service must fit inside configured hours
    if wanted.stop > len(time_slots):
        return False

    for booked in existing:
        if booked.stylist_id is None or booked.stylist_id != stylist_id:
            continue
        if exclude_appointment_id is not None and booked.appointment_id == exclude_appointment_id:
            continue
        if not blocks_time(booked.status):
            continue

        taken = _booked_range(time_slots, booked.start, booked.duration_min, granularity)
        if taken is None:
            continue  # over before opening
        if wanted.start < taken.stop and taken.start < wanted.stop:
            return False

    return True


def available_slots(
    time_slots: Sequence[str],
    service_duration: Optional[int],
    granularity: int,
    existing: Iterable[BookedInterval],
    *,
    stylist_id: Optional[uuid.UUID],
    exclude_appointment_id: Optional[uuid.UUID] = None,
    day: Optional[date] = None,
    now: Optional[datetime] = None,
) -> List[str]:
    """Grid slots that are bookable; on `now`'s date, slots already in the past are dropped."""
    existing = list(existing)
    result = []
    for slot in time_slots:
        if day is not None and now is not None:
            if day < now.date():
                return []
            if day == now.date() and parse_slot(slot) <= now.time():
                continue
        if is_available(
            slot, service_duration, granularity, existing,
            time_slots=time_slots, stylist_id=stylist_id,
            exclude_appointment_id=exclude_appointment_id,
        ):
            result.append(slot)
    return result
