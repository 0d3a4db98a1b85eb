# salon_agenda/crud/catalog.py
import uuid
from typing import Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from salon_agenda.db.models.appointment import Appointment
from salon_agenda.db.models.catalog import Service, Stylist
from salon_agenda.schemas.catalog import ServiceCreate, ServiceUpdate, StylistCreate, StylistUpdate
from salon_agenda.services.appointment_cache import appointment_cache


async def create_service(db: AsyncSession, business_id: uuid.UUID, data: ServiceCreate) -> Service:
    obj = Service(business_id=business_id, **data.model_dump())
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    return obj


async def list_services(db: AsyncSession, business_id: uuid.UUID) -> Sequence[Service]:
    stmt = (
        sa.select(Service)
        .where(Service.business_id == business_id)
        .order_by(Service.name.asc())
    )
    res = await db.execute(stmt)
    return res.scalars().all()


async def get_service(db: AsyncSession, business_id: uuid.UUID, service_id: uuid.UUID) -> Optional[Service]:
    # Scoped by business: another tenant's id behaves as missing
    stmt = sa.select(Service).where(Service.id == service_id, Service.business_id == business_id)
    res = await db.execute(stmt)
    return res.scalar_one_or_none()


async def update_service(
    db: AsyncSession, business_id: uuid.UUID, service_id: uuid.UUID, data: ServiceUpdate
) -> Optional[Service]:
    obj = await get_service(db, business_id, service_id)
    if not obj:
        return None
    for k, v in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(obj, k, v)
    await db.commit()
    await db.refresh(obj)
    return obj


async def delete_service(db: AsyncSession, business_id: uuid.UUID, service_id: uuid.UUID) -> bool:
    """Delete a service together with its appointments, as the foreign key cascades."""
    obj = await get_service(db, business_id, service_id)
    if not obj:
        return False
    await db.execute(
        sa.delete(Appointment).where(
            Appointment.business_id == business_id, Appointment.service_id == service_id
        )
    )
    await db.delete(obj)
    await db.commit()
    await appointment_cache.invalidate(business_id)
    return True


async def create_stylist(db: AsyncSession, business_id: uuid.UUID, data: StylistCreate) -> Stylist:
    obj = Stylist(business_id=business_id, **data.model_dump())
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    return obj


async def list_stylists(
    db: AsyncSession, business_id: uuid.UUID, *, public_only: bool = False
) -> Sequence[Stylist]:
    stmt = sa.select(Stylist).where(Stylist.business_id == business_id)
    if public_only:
        stmt = stmt.where(Stylist.is_public.is_(True))
    stmt = stmt.order_by(Stylist.name.asc())
    res = await db.execute(stmt)
    return res.scalars().all()


async def get_stylist(db: AsyncSession, business_id: uuid.UUID, stylist_id: uuid.UUID) -> Optional[Stylist]:
    stmt = sa.select(Stylist).where(Stylist.id == stylist_id, Stylist.business_id == business_id)
    res = await db.execute(stmt)
    return res.scalar_one_or_none()


async def update_stylist(
    db: AsyncSession, business_id: uuid.UUID, stylist_id: uuid.UUID, data: StylistUpdate
) -> Optional[Stylist]:
    obj = await get_stylist(db, business_id, stylist_id)
    if not obj:
        return None
    for k, v in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(obj, k, v)
    await db.commit()
    await db.refresh(obj)
    return obj


async def delete_stylist(db: AsyncSession, business_id: uuid.UUID, stylist_id: uuid.UUID) -> bool:
    """
    Delete a stylist. Their appointments are kept but become unassigned
    (stylist set to NULL), so they stop blocking anyone's agenda.
    """
    obj = await get_stylist(db, business_id, stylist_id)
    if not obj:
        return False
    await db.execute(
        sa.update(Appointment)
        .where(Appointment.business_id == business_id, Appointment.stylist_id == stylist_id)
        .values(stylist_id=None)
    )
    await db.delete(obj)
    await db.commit()
    await appointment_cache.invalidate(business_id)
    return True
