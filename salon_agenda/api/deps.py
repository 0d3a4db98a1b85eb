# salon_agenda/api/deps.py
import uuid

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from salon_agenda.core.errors import BusinessNotFound
from salon_agenda.crud.business import get_business
from salon_agenda.db.models.business import Business
from salon_agenda.db.session import get_session


async def business_or_404(business_id: uuid.UUID, db: AsyncSession = Depends(get_session)) -> Business:
    """Resolve the tenant from the path; every owner route is scoped by it."""
    obj = await get_business(db, business_id)
    if not obj:
        raise BusinessNotFound()
    return obj
