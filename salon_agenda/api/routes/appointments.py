# salon_agenda/api/routes/appointments.py
import uuid
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from salon_agenda.api.deps import business_or_404
from salon_agenda.core.errors import AppointmentNotFound, ValidationFailed
from salon_agenda.crud.appointment import get_appointment_detail, list_appointments_by_date_range
from salon_agenda.db.models.business import Business
from salon_agenda.db.session import get_session
from salon_agenda.schemas.appointment import AppointmentDetail, QuickBookingCreate, RescheduleRequest, StatusUpdate
from salon_agenda.schemas.booking import SlotsResponse
from salon_agenda.services import booking

router = APIRouter(prefix="/businesses/{business_id}/appointments", tags=["appointments"])

@router.get("", response_model=list[AppointmentDetail])
async def list_appointments_ep(
    start: date,
    end: date,
    stylist_id: Optional[uuid.UUID] = None,
    include_cancelled: bool = True,
    limit: int = Query(500, ge=1, le=2000),
    business: Business = Depends(business_or_404),
    db: AsyncSession = Depends(get_session),
):
    if start > end:
        raise ValidationFailed("start must not be after end")
    return await list_appointments_by_date_range(
        db, business.id, start, end,
        stylist_id=stylist_id, include_cancelled=include_cancelled, limit=limit,
    )

# Static route above the {appointment_id} routes
@router.get("/slots", response_model=SlotsResponse)
async def agenda_slots_ep(
    service_id: uuid.UUID,
    stylist_id: uuid.UUID,
    day: date = Query(..., alias="date"),
    exclude_appointment_id: Optional[uuid.UUID] = None,
    business: Business = Depends(business_or_404),
    db: AsyncSession = Depends(get_session),
):
    return await booking.list_available_slots(
        db, business.id, service_id, stylist_id, day, exclude_appointment_id=exclude_appointment_id
    )

@router.post("", response_model=AppointmentDetail, status_code=status.HTTP_201_CREATED)
async def quick_book_ep(payload: QuickBookingCreate, business: Business = Depends(business_or_404),
                        db: AsyncSession = Depends(get_session)):
    return await booking.quick_book(db, business.id, payload)

@router.get("/{appointment_id}", response_model=AppointmentDetail)
async def get_appointment_ep(appointment_id: uuid.UUID, business: Business = Depends(business_or_404),
                             db: AsyncSession = Depends(get_session)):
    obj = await get_appointment_detail(db, business.id, appointment_id)
    if not obj:
        raise AppointmentNotFound()
    return obj

@router.patch("/{appointment_id}/reschedule", response_model=booking.BookingResult)
async def reschedule_ep(appointment_id: uuid.UUID, payload: RescheduleRequest,
                        business: Business = Depends(business_or_404),
                        db: AsyncSession = Depends(get_session)):
    flow = await booking.RescheduleFlow.load(db, business.id, appointment_id)
    flow.start()
    await flow.pick(payload.appointment_date, payload.appointment_time,
                    stylist_id=payload.stylist_id, service_id=payload.service_id)
    result = await flow.confirm()
    if not result.created:
        raise flow.last_error
    return result

@router.patch("/{appointment_id}/status", response_model=AppointmentDetail)
async def change_status_ep(appointment_id: uuid.UUID, payload: StatusUpdate,
                           business: Business = Depends(business_or_404),
                           db: AsyncSession = Depends(get_session)):
    return await booking.change_status(db, business.id, appointment_id, payload.status)

@router.post("/{appointment_id}/cancel", response_model=AppointmentDetail)
async def cancel_appointment_ep(appointment_id: uuid.UUID, confirm: bool = False,
                                business: Business = Depends(business_or_404),
                                db: AsyncSession = Depends(get_session)):
    return await booking.cancel_appointment(db, business.id, appointment_id, confirm=confirm)

@router.delete("/{appointment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_appointment_ep(appointment_id: uuid.UUID, confirm: bool = False,
                                business: Business = Depends(business_or_404),
                                db: AsyncSession = Depends(get_session)):
    await booking.delete_appointment(db, business.id, appointment_id, confirm=confirm)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
