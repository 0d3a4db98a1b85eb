# salon_agenda/crud/agenda_settings.py
import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from salon_agenda.db.models.agenda_settings import AgendaSettings
from salon_agenda.schemas.agenda import AgendaSettingsUpdate
from salon_agenda.services.slots import AgendaConfig


async def get_agenda_settings(db: AsyncSession, business_id: uuid.UUID) -> AgendaSettings | None:
    stmt = sa.select(AgendaSettings).where(AgendaSettings.business_id == business_id)
    res = await db.execute(stmt)
    return res.scalar_one_or_none()


async def get_or_create_agenda_settings(db: AsyncSession, business_id: uuid.UUID) -> AgendaSettings:
    """Settings row for a business, created with defaults on first access."""
    obj = await get_agenda_settings(db, business_id)
    if obj:
        return obj

    defaults = AgendaConfig.defaults()
    obj = AgendaSettings(
        business_id=business_id,
        start_hour=defaults.start_hour,
        end_hour=defaults.end_hour,
        service_duration=defaults.service_duration,
        working_days=sorted(defaults.working_days),
    )
    db.add(obj)
    try:
        await db.commit()
        await db.refresh(obj)
        return obj
    except IntegrityError:
        # Another request created it first
        await db.rollback()
        existing = await get_agenda_settings(db, business_id)
        if existing:
            return existing
        raise


async def update_agenda_settings(
    db: AsyncSession, business_id: uuid.UUID, data: AgendaSettingsUpdate
) -> AgendaSettings:
    obj = await get_or_create_agenda_settings(db, business_id)

    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    start = changes.get("start_hour", obj.start_hour)
    end = changes.get("end_hour", obj.end_hour)
    if start >= end:
        raise ValueError("start_hour must be before end_hour")

    for k, v in changes.items():
        setattr(obj, k, v)
    obj.updated_at = datetime.now(timezone.utc)

    await db.commit()
    await db.refresh(obj)
    return obj
