# salon_agenda/crud/customer.py
import uuid
from datetime import datetime, timezone
from typing import Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from salon_agenda.db.models.appointment import Appointment
from salon_agenda.db.models.customer import Customer
from salon_agenda.schemas.appointment import CustomerUpdate
from salon_agenda.services.appointment_cache import appointment_cache


async def get_customer_by_email(db: AsyncSession, business_id: uuid.UUID, email: str) -> Optional[Customer]:
    stmt = (
        sa.select(Customer)
        .where(Customer.business_id == business_id, sa.func.lower(Customer.email) == email.lower())
        .order_by(Customer.created_at.asc())
        .limit(1)
    )
    res = await db.execute(stmt)
    return res.scalar_one_or_none()


async def get_customer_by_name(db: AsyncSession, business_id: uuid.UUID, name: str) -> Optional[Customer]:
    stmt = (
        sa.select(Customer)
        .where(Customer.business_id == business_id, Customer.name == name)
        .order_by(Customer.created_at.asc())
        .limit(1)
    )
    res = await db.execute(stmt)
    return res.scalar_one_or_none()


async def upsert_customer_by_email(
    db: AsyncSession,
    business_id: uuid.UUID,
    *,
    name: str,
    email: str,
    phone: Optional[str] = None,
    commit: bool = True,
) -> Customer:
    """
    Match by (business, email). A match gets its name and phone refreshed;
    otherwise a new customer is inserted. With commit=False the row is only
    flushed so it can share a transaction with the appointment insert.
    """
    obj = await get_customer_by_email(db, business_id, email)
    if obj:
        obj.name = name
        if phone:
            obj.phone = phone
        obj.updated_at = datetime.now(timezone.utc)
    else:
        obj = Customer(business_id=business_id, name=name, email=email, phone=phone)
        db.add(obj)

    if commit:
        await db.commit()
        await db.refresh(obj)
    else:
        await db.flush()
    return obj


async def get_or_create_customer_by_name(
    db: AsyncSession,
    business_id: uuid.UUID,
    *,
    name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    commit: bool = True,
) -> Customer:
    obj = await get_customer_by_name(db, business_id, name)
    if obj is None:
        obj = Customer(business_id=business_id, name=name, email=email, phone=phone)
        db.add(obj)
        if commit:
            await db.commit()
            await db.refresh(obj)
        else:
            await db.flush()
    return obj


async def get_customer(db: AsyncSession, business_id: uuid.UUID, customer_id: uuid.UUID) -> Optional[Customer]:
    stmt = sa.select(Customer).where(Customer.id == customer_id, Customer.business_id == business_id)
    res = await db.execute(stmt)
    return res.scalar_one_or_none()


async def list_customers(
    db: AsyncSession, business_id: uuid.UUID, *, search: Optional[str] = None, limit: int = 500
) -> Sequence[Customer]:
    """Customers of a business ordered by name, optionally filtered on name, email or phone."""
    stmt = sa.select(Customer).where(Customer.business_id == business_id)
    if search:
        pattern = f"%{search.strip().lower()}%"
        stmt = stmt.where(sa.or_(
            sa.func.lower(Customer.name).like(pattern),
            sa.func.lower(Customer.email).like(pattern),
            Customer.phone.like(pattern),
        ))
    stmt = stmt.order_by(Customer.name.asc()).limit(limit)
    res = await db.execute(stmt)
    return res.scalars().all()


async def update_customer(
    db: AsyncSession, business_id: uuid.UUID, customer_id: uuid.UUID, data: CustomerUpdate
) -> Optional[Customer]:
    obj = await get_customer(db, business_id, customer_id)
    if not obj:
        return None
    # exclude_none is not used: an explicit null clears email/phone/notes
    for k, v in data.model_dump(exclude_unset=True).items():
        setattr(obj, k, v)
    obj.updated_at = datetime.now(timezone.utc)
    await db.commit()
    await db.refresh(obj)
    return obj


async def delete_customer(db: AsyncSession, business_id: uuid.UUID, customer_id: uuid.UUID) -> bool:
    """Delete a customer and their appointment history, as the foreign key cascades."""
    obj = await get_customer(db, business_id, customer_id)
    if not obj:
        return False
    await db.execute(
        sa.delete(Appointment).where(
            Appointment.business_id == business_id, Appointment.customer_id == customer_id
        )
    )
    await db.delete(obj)
    await db.commit()
    await appointment_cache.invalidate(business_id)
    return True
