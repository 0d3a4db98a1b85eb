# salon_agenda/crud/business.py
import re
import secrets
import uuid
from typing import Optional

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from salon_agenda.db.models.business import Business
from salon_agenda.schemas.business import BusinessCreate

_NON_SLUG = re.compile(r"[^a-z0-9]+")


def slugify(name: str) -> str:
    slug = _NON_SLUG.sub("-", name.lower()).strip("-")
    return slug[:56] or "salon"


async def get_business(db: AsyncSession, business_id: uuid.UUID) -> Optional[Business]:
    return await db.get(Business, business_id)


async def get_business_by_booking_link(db: AsyncSession, booking_link: str) -> Optional[Business]:
    stmt = sa.select(Business).where(Business.booking_link == booking_link.strip().lower())
    res = await db.execute(stmt)
    return res.scalar_one_or_none()


async def _link_taken(db: AsyncSession, booking_link: str) -> bool:
    res = await db.execute(sa.select(Business.id).where(Business.booking_link == booking_link))
    return res.first() is not None


async def create_business(db: AsyncSession, data: BusinessCreate) -> Business:
    """
    Insert a business. An explicit booking link must be free; a generated one
    gets a short random suffix until it is.
    """
    explicit = data.booking_link is not None
    base = data.booking_link or slugify(data.full_name)
    link = base

    for _ in range(5):
        if await _link_taken(db, link):
            if explicit:
                raise ValueError(f"booking link '{link}' is already in use")
            link = f"{base}-{secrets.token_hex(3)}"
            continue

        obj = Business(
            full_name=data.full_name,
            booking_link=link,
            brand_color=data.brand_color,
            email=data.email,
        )
        db.add(obj)
        try:
            await db.commit()
            await db.refresh(obj)
            return obj
        except IntegrityError:
            # Lost a race for the same link
            await db.rollback()
            if explicit:
                raise ValueError(f"booking link '{link}' is already in use")
            link = f"{base}-{secrets.token_hex(3)}"

    raise ValueError("could not allocate a unique booking link")
