# salon_agenda/crud/appointment.py

from __future__ import annotations
import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import List, Optional

import sqlalchemy as sa
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload

from salon_agenda.core.errors import MalformedRecord, SlotUnavailable
from salon_agenda.db.models.appointment import EXCLUSION_CONSTRAINT, Appointment, AppointmentStatus
from salon_agenda.schemas.appointment import AppointmentDetail, AppointmentUpdate
from salon_agenda.services.appointment_cache import appointment_cache
from salon_agenda.services.availability import BookedInterval
from salon_agenda.services.slots import parse_slot


def is_slot_conflict(exc: IntegrityError) -> bool:
    """True when the storage-level interval exclusion rejected the write."""
    return EXCLUSION_CONSTRAINT in str(exc.orig)


async def _write(db: AsyncSession, business_id: uuid.UUID, obj: Optional[Appointment], commit: bool) -> None:
    try:
        if commit:
            await db.commit()
            await appointment_cache.invalidate(business_id)
            if obj is not None:
                await db.refresh(obj)
        else:
            await db.flush()
    except IntegrityError as e:
        await db.rollback()
        if is_slot_conflict(e):
            raise SlotUnavailable("This time slot was just booked by someone else") from e
        raise


async def create_appointment(
    db: AsyncSession,
    *,
    business_id: uuid.UUID,
    customer_id: uuid.UUID,
    service_id: uuid.UUID,
    stylist_id: Optional[uuid.UUID],
    appointment_date: date,
    appointment_time: time,
    duration_min: int,
    price: Optional[Decimal] = None,
    notes: Optional[str] = None,
    status: AppointmentStatus = AppointmentStatus.SCHEDULED,
    commit: bool = True,
) -> Appointment:
    appt = Appointment(
        business_id=business_id,
        customer_id=customer_id,
        service_id=service_id,
        stylist_id=stylist_id,
        appointment_date=appointment_date,
        appointment_time=parse_slot(appointment_time),
        duration_min=duration_min,
        status=status,
        price=price,
        notes=notes,
        created_at=datetime.now(timezone.utc),
    )
    db.add(appt)
    await _write(db, business_id, appt, commit)
    return appt


async def get_appointment(
    db: AsyncSession, business_id: uuid.UUID, appointment_id: uuid.UUID
) -> Optional[Appointment]:
    stmt = sa.select(Appointment).where(
        Appointment.id == appointment_id,
        Appointment.business_id == business_id,
    )
    res = await db.execute(stmt)
    return res.scalar_one_or_none()


def _detail_query():
    return sa.select(Appointment).options(
        selectinload(Appointment.service),
        selectinload(Appointment.customer),
        selectinload(Appointment.stylist),
    )


def _to_detail(appt: Appointment) -> AppointmentDetail:
    try:
        return AppointmentDetail.model_validate(appt)
    except ValidationError as e:
        raise MalformedRecord(details=f"appointment {appt.id}: {e.error_count()} invalid field(s)") from e


async def get_appointment_detail(
    db: AsyncSession, business_id: uuid.UUID, appointment_id: uuid.UUID
) -> Optional[AppointmentDetail]:
    stmt = _detail_query().where(
        Appointment.id == appointment_id,
        Appointment.business_id == business_id,
    )
    res = await db.execute(stmt)
    appt = res.scalar_one_or_none()
    return _to_detail(appt) if appt else None


async def update_appointment(
    db: AsyncSession,
    business_id: uuid.UUID,
    appointment_id: uuid.UUID,
    data: AppointmentUpdate,
    *,
    commit: bool = True,
) -> Optional[Appointment]:
    obj = await get_appointment(db, business_id, appointment_id)
    if not obj:
        return None

    changes = data.model_dump(exclude_unset=True)
    if changes.get("appointment_time") is not None:
        changes["appointment_time"] = parse_slot(changes["appointment_time"])
    for k, v in changes.items():
        setattr(obj, k, v)
    obj.updated_at = datetime.now(timezone.utc)

    await _write(db, business_id, obj, commit)
    return obj


async def delete_appointment(db: AsyncSession, business_id: uuid.UUID, appointment_id: uuid.UUID) -> bool:
    obj = await get_appointment(db, business_id, appointment_id)
    if not obj:
        return False
    await db.delete(obj)
    await _write(db, business_id, None, commit=True)
    return True


async def commit_appointment_changes(db: AsyncSession, business_id: uuid.UUID) -> None:
    """Commit writes made with commit=False and drop the business's cached listings."""
    await _write(db, business_id, None, commit=True)


async def list_appointments_by_date_range(
    db: AsyncSession,
    business_id: uuid.UUID,
    start: date,
    end: date,
    *,
    stylist_id: Optional[uuid.UUID] = None,
    include_cancelled: bool = True,
    limit: int = 500,
) -> List[AppointmentDetail]:
    """Appointments with start <= date <= end, expanded, ordered by date and time."""
    q = _detail_query().where(
        Appointment.business_id == business_id,
        Appointment.appointment_date >= start,
        Appointment.appointment_date <= end,
    )
    if stylist_id is not None:
        q = q.where(Appointment.stylist_id == stylist_id)
    if not include_cancelled:
        q = q.where(Appointment.status != AppointmentStatus.CANCELLED)
    q = q.order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc()).limit(limit)
    res = await db.execute(q)
    return [_to_detail(a) for a in res.scalars().all()]


async def list_appointments_by_date(
    db: AsyncSession,
    business_id: uuid.UUID,
    stylist_id: Optional[uuid.UUID],
    day: date,
    *,
    fresh: bool = False,
) -> List[BookedInterval]:
    """
    Booked intervals of one business on one date, narrowed to a stylist when
    given. Served from the listing cache unless `fresh` is set.
    """
    intervals = None if fresh else await appointment_cache.get(business_id, day)
    if intervals is None:
        # Taken before the query: an invalidation racing it makes the entry unreachable
        version = await appointment_cache.current_version(business_id)
        stmt = (
            sa.select(Appointment)
            .where(Appointment.business_id == business_id, Appointment.appointment_date == day)
            .order_by(Appointment.appointment_time.asc())
        )
        res = await db.execute(stmt)
        intervals = [BookedInterval.from_appointment(a) for a in res.scalars().all()]
        if version is not None:
            await appointment_cache.set(business_id, day, intervals, version=version)

    if stylist_id is None:
        return intervals
    return [i for i in intervals if i.stylist_id == stylist_id]
