# salon_agenda/api/routes/public.py
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from salon_agenda.core.errors import BusinessNotFound
from salon_agenda.crud.business import get_business_by_booking_link
from salon_agenda.crud.catalog import list_services, list_stylists
from salon_agenda.db.session import get_session
from salon_agenda.schemas.booking import EmailTheme, PublicBookingPage, PublicBookingRequest, SlotsResponse
from salon_agenda.schemas.business import BusinessOut
from salon_agenda.schemas.catalog import PublicStylistOut, ServiceOut
from salon_agenda.services.booking import BookingFlow, BookingResult, load_agenda_config, list_available_slots

router = APIRouter(prefix="/book", tags=["public"])


@router.get("/{booking_link}", response_model=PublicBookingPage)
async def booking_page_ep(
    booking_link: str,
    theme: EmailTheme = EmailTheme.DEFAULT,
    accent: Optional[str] = Query(None, max_length=16),
    db: AsyncSession = Depends(get_session),
):
    business = await get_business_by_booking_link(db, booking_link)
    if not business:
        raise BusinessNotFound()
    config = await load_agenda_config(db, business.id)
    return PublicBookingPage(
        business=BusinessOut.model_validate(business),
        services=[ServiceOut.model_validate(s) for s in await list_services(db, business.id)],
        stylists=[PublicStylistOut.model_validate(s) for s in await list_stylists(db, business.id, public_only=True)],
        working_days=sorted(config.working_days),
        theme=theme,
        accent=accent,
    )


@router.get("/{booking_link}/slots", response_model=SlotsResponse)
async def booking_slots_ep(
    booking_link: str,
    service_id: uuid.UUID,
    stylist_id: uuid.UUID,
    day: date = Query(..., alias="date"),
    db: AsyncSession = Depends(get_session),
):
    business = await get_business_by_booking_link(db, booking_link)
    if not business:
        raise BusinessNotFound()
    return await list_available_slots(db, business.id, service_id, stylist_id, day, public_only=True)


@router.post("/{booking_link}/appointments", response_model=BookingResult,
             status_code=status.HTTP_201_CREATED)
async def create_booking_ep(booking_link: str, payload: PublicBookingRequest,
                            db: AsyncSession = Depends(get_session)):
    """Walk the booking flow in one request: service, date, slot, details, submit."""
    flow = await BookingFlow.for_link(db, booking_link, theme=payload.theme, accent=payload.accent)
    await flow.select_service(payload.service_id, payload.stylist_id)
    flow.select_date(payload.appointment_date)
    await flow.select_slot(payload.appointment_time)
    result = await flow.submit(payload)
    if not result.created:
        raise flow.last_error
    return result
