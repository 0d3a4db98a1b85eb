# salon_agenda/services/booking.py
from __future__ import annotations

import asyncio
import uuid
import weakref
from contextlib import asynccontextmanager
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from salon_agenda.core.errors import (
    AppointmentNotFound,
    BookingError,
    BusinessNotFound,
    ConfirmationRequired,
    InvalidTransition,
    PersistenceFailure,
    ServiceNotFound,
    SlotUnavailable,
    StylistNotFound,
    ValidationFailed,
    log_error,
)
from salon_agenda.core.logging import get_logger
from salon_agenda.crud import appointment as appointment_crud
from salon_agenda.crud.agenda_settings import get_or_create_agenda_settings
from salon_agenda.crud.business import get_business_by_booking_link
from salon_agenda.crud.catalog import get_service, get_stylist
from salon_agenda.crud.customer import get_or_create_customer_by_name, upsert_customer_by_email
from salon_agenda.db.models.appointment import AppointmentStatus
from salon_agenda.db.models.business import Business
from salon_agenda.schemas.appointment import AppointmentDetail, AppointmentUpdate, QuickBookingCreate
from salon_agenda.schemas.booking import BookingDetails, EmailTheme, SlotsResponse
from salon_agenda.schemas.business import BusinessOut
from salon_agenda.schemas.catalog import PublicStylistOut, ServiceOut
from salon_agenda.services.availability import (
    BookedInterval,
    available_slots,
    is_available,
    occupied_range,
)
from salon_agenda.services.notifications import (
    BookingConfirmation,
    dispatch_confirmation,
    format_long_date,
)
from salon_agenda.services.slots import AgendaConfig, format_slot, parse_slot, slots_for_date

logger = get_logger(__name__)

Clock = Callable[[], datetime]


# ---------- Public contract returned to the route ----------

class BookingStep(str, Enum):
    SELECTING_SERVICE = "selecting_service"
    SELECTING_SLOT = "selecting_slot"
    COLLECTING_DETAILS = "collecting_details"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    ABANDONED = "abandoned"


class RescheduleStep(str, Enum):
    VIEWING_APPOINTMENT = "viewing_appointment"
    PICKING_NEW_SLOT = "picking_new_slot"
    CONFIRMING = "confirming"
    UPDATED = "updated"
    FAILED = "failed"


class BookingResult(BaseModel):
    created: bool = Field(..., description="Whether the appointment was written")
    step: str = Field(..., description="State the flow is in after this call")
    message: str = Field(..., description="Plain sentence to show the customer")
    appointment_id: Optional[uuid.UUID] = None
    booking_reference: Optional[str] = None
    error: Optional[Dict[str, Any]] = None


# ---------- Internal helpers ----------

# One lock per (business, stylist, date) so the re-check and the insert for
# the same stylist-day never interleave inside this process.
_slot_locks: "weakref.WeakValueDictionary[tuple, asyncio.Lock]" = weakref.WeakValueDictionary()


def _slot_lock(business_id: uuid.UUID, stylist_id: Optional[uuid.UUID], day: date) -> asyncio.Lock:
    key = (business_id, stylist_id, day)
    lock = _slot_locks.get(key)
    if lock is None:
        lock = asyncio.Lock()
        _slot_locks[key] = lock
    return lock


_FAILURE_CODES = {
    "booking.submit": "APPOINTMENT_CREATE_ERROR",
    "appointment.quick_book": "APPOINTMENT_CREATE_ERROR",
    "appointment.reschedule": "APPOINTMENT_UPDATE_ERROR",
    "appointment.status": "APPOINTMENT_UPDATE_ERROR",
    "appointment.delete": "APPOINTMENT_DELETE_ERROR",
}


@asynccontextmanager
async def _persistence_guard(db: AsyncSession, business_id: uuid.UUID, action: str):
    """Roll back on any failure; storage errors become a retryable PersistenceFailure."""
    try:
        yield
    except BookingError:
        await db.rollback()
        raise
    except (SQLAlchemyError, OSError) as e:
        await db.rollback()
        log_error(e, {"business_id": str(business_id), "endpoint": action})
        raise PersistenceFailure(code=_FAILURE_CODES.get(action), details=type(e).__name__) from e


async def load_agenda_config(db: AsyncSession, business_id: uuid.UUID) -> AgendaConfig:
    row = await get_or_create_agenda_settings(db, business_id)
    return AgendaConfig.from_row(row)


def _parse_candidate(value: str) -> str:
    try:
        return format_slot(parse_slot(value))
    except ValueError as e:
        raise ValidationFailed(str(e)) from e


def _slot_fits(
    candidate: str,
    duration_min: int,
    config: AgendaConfig,
    time_slots: List[str],
    existing: List[BookedInterval],
    stylist_id: Optional[uuid.UUID],
    exclude_appointment_id: Optional[uuid.UUID] = None,
) -> bool:
    """Availability for a stylist; without one, only the fit inside working hours is checked."""
    if stylist_id is None:
        wanted = occupied_range(time_slots, candidate, duration_min, config.granularity)
        return wanted is not None and wanted.stop <= len(time_slots)
    return is_available(
        candidate, duration_min, config.granularity, existing,
        time_slots=time_slots, stylist_id=stylist_id,
        exclude_appointment_id=exclude_appointment_id,
    )


def _is_past(day: date, candidate: str, now: datetime) -> bool:
    return day < now.date() or (day == now.date() and parse_slot(candidate) <= now.time())


def _confirmation(
    business,
    service,
    stylist,
    *,
    email: str,
    name: str,
    phone: Optional[str],
    day: date,
    slot: str,
    notes: Optional[str],
    appointment_id: uuid.UUID,
    theme: EmailTheme = EmailTheme.DEFAULT,
    accent: Optional[str] = None,
) -> BookingConfirmation:
    return BookingConfirmation(
        customer_email=email,
        customer_name=name,
        customer_phone=phone,
        business_name=business.full_name,
        service_name=service.name,
        appointment_date=format_long_date(day),
        appointment_time=slot,
        price=service.price,
        notes=notes,
        booking_id=str(appointment_id)[:8],
        stylist_name=stylist.name if stylist else None,
        stylist_title=stylist.title if stylist else None,
        stylist_avatar=stylist.avatar_url if stylist else None,
        theme=theme,
        accent_color=accent or business.brand_color,
    )


# ---------- Public booking flow ----------

class BookingFlow:
    """
    One customer's booking attempt on a business's public page:

        SelectingService -> SelectingSlot -> CollectingDetails -> Submitting -> Confirmed | Failed

    Nothing is written before submit(). A slot taken between selection and
    submit sends the flow back to SelectingSlot; storage failures end in
    Failed, from which submit() may be retried.
    """

    def __init__(
        self,
        db: AsyncSession,
        business: Business,
        *,
        theme: EmailTheme = EmailTheme.DEFAULT,
        accent: Optional[str] = None,
        clock: Clock = datetime.now,
    ):
        self.db = db
        # Plain snapshots: ORM rows expire on rollback and cannot lazy-load here
        self.business = BusinessOut.model_validate(business)
        self.theme = theme
        self.accent = accent
        self.clock = clock

        self.step = BookingStep.SELECTING_SERVICE
        self.service: Optional[ServiceOut] = None
        self.stylist: Optional[PublicStylistOut] = None
        self.day: Optional[date] = None
        self.slot: Optional[str] = None
        self.details: Optional[BookingDetails] = None
        self.last_error: Optional[BookingError] = None
        self._config: Optional[AgendaConfig] = None

    @classmethod
    async def for_link(cls, db: AsyncSession, booking_link: str, **kwargs) -> "BookingFlow":
        business = await get_business_by_booking_link(db, booking_link)
        if not business:
            raise BusinessNotFound()
        return cls(db, business, **kwargs)

    def _require(self, action: str, *steps: BookingStep) -> None:
        if self.step not in steps:
            raise InvalidTransition(f"Cannot {action} while {self.step.value}")

    async def _config_for_business(self) -> AgendaConfig:
        if self._config is None:
            self._config = await load_agenda_config(self.db, self.business.id)
        return self._config

    async def select_service(self, service_id: uuid.UUID, stylist_id: Optional[uuid.UUID] = None) -> None:
        self._require("select a service", BookingStep.SELECTING_SERVICE, BookingStep.SELECTING_SLOT)
        service = await get_service(self.db, self.business.id, service_id)
        if not service:
            raise ServiceNotFound()
        self.service = ServiceOut.model_validate(service)
        if stylist_id is not None:
            await self.select_stylist(stylist_id)
        self.slot = None
        self.step = BookingStep.SELECTING_SLOT

    async def select_stylist(self, stylist_id: uuid.UUID) -> None:
        self._require("select a stylist", BookingStep.SELECTING_SERVICE, BookingStep.SELECTING_SLOT)
        stylist = await get_stylist(self.db, self.business.id, stylist_id)
        # Hidden stylists cannot be booked from the public page
        if not stylist or not stylist.is_public:
            raise StylistNotFound()
        self.stylist = PublicStylistOut.model_validate(stylist)
        self.slot = None

    def select_date(self, day: date) -> None:
        self._require("pick a date", BookingStep.SELECTING_SLOT)
        self.day = day
        self.slot = None

    async def _grid(self) -> tuple[AgendaConfig, List[str]]:
        config = await self._config_for_business()
        return config, slots_for_date(config, self.day)

    async def available_times(self) -> List[str]:
        """Bookable start times for the current service, stylist and date; [] until all are chosen."""
        if self.service is None or self.stylist is None or self.day is None:
            return []
        config, time_slots = await self._grid()
        existing = await appointment_crud.list_appointments_by_date(
            self.db, self.business.id, self.stylist.id, self.day
        )
        return available_slots(
            time_slots, self.service.duration, config.granularity, existing,
            stylist_id=self.stylist.id, day=self.day, now=self.clock(),
        )

    async def select_slot(self, value: str) -> None:
        self._require("pick a time", BookingStep.SELECTING_SLOT)
        if self.service is None:
            raise ValidationFailed("Please choose a service first", code="INCOMPLETE_BOOKING")
        if self.stylist is None:
            raise ValidationFailed("Please choose a stylist first", code="INCOMPLETE_BOOKING")
        if self.day is None:
            raise ValidationFailed("Please choose a date first", code="INCOMPLETE_BOOKING")

        candidate = _parse_candidate(value)
        if candidate not in await self.available_times():
            raise SlotUnavailable("This time is not available, please pick another one")
        self.slot = candidate
        self.step = BookingStep.COLLECTING_DETAILS

    def collect_details(self, details: Union[BookingDetails, Dict[str, Any]]) -> BookingDetails:
        self._require("enter details", BookingStep.COLLECTING_DETAILS, BookingStep.FAILED)
        if not isinstance(details, BookingDetails):
            try:
                details = BookingDetails.model_validate(details)
            except ValidationError as e:
                fields = ", ".join(str(err["loc"][-1]) for err in e.errors() if err["loc"])
                raise ValidationFailed("Please check your details", details=fields or None) from e
        self.details = details
        return details

    def back(self) -> None:
        match self.step:
            case BookingStep.SELECTING_SLOT:
                self.service = None
                self.step = BookingStep.SELECTING_SERVICE
            case BookingStep.COLLECTING_DETAILS | BookingStep.FAILED:
                self.slot = None
                self.step = BookingStep.SELECTING_SLOT
            case _:
                raise InvalidTransition(f"Cannot go back while {self.step.value}")

    def abandon(self) -> None:
        """Drop the attempt. Nothing has been written before submit, so there is nothing to undo."""
        if self.step in (BookingStep.SUBMITTING, BookingStep.CONFIRMED):
            raise InvalidTransition(f"Cannot abandon while {self.step.value}")
        self.step = BookingStep.ABANDONED

    def _failed(self, error: BookingError, step: BookingStep) -> BookingResult:
        self.last_error = error
        self.step = step
        return BookingResult(created=False, step=step.value, message=error.message, error=error.to_dict())

    async def submit(self, details: Union[BookingDetails, Dict[str, Any], None] = None) -> BookingResult:
        """
        Re-check the slot against fresh data, then write customer and
        appointment in one transaction and fire the confirmation email.
        """
        self._require("submit", BookingStep.COLLECTING_DETAILS, BookingStep.FAILED)
        if details is not None:
            try:
                self.collect_details(details)
            except ValidationFailed as e:
                return self._failed(e, self.step)
        if self.details is None:
            return self._failed(ValidationFailed("Please enter your name and email", code="INCOMPLETE_BOOKING"), self.step)

        business_id = self.business.id
        service, stylist, day, slot, info = self.service, self.stylist, self.day, self.slot, self.details
        self.step = BookingStep.SUBMITTING

        try:
            async with _slot_lock(business_id, stylist.id, day):
                async with _persistence_guard(self.db, business_id, "booking.submit"):
                    config, time_slots = await self._grid()
                    existing = await appointment_crud.list_appointments_by_date(
                        self.db, business_id, stylist.id, day, fresh=True
                    )
                    if _is_past(day, slot, self.clock()) or not _slot_fits(
                        slot, service.duration, config, time_slots, existing, stylist.id
                    ):
                        raise SlotUnavailable("Sorry, this time slot was just booked. Please pick another one")

                    customer = await upsert_customer_by_email(
                        self.db, business_id,
                        name=info.customer_name, email=str(info.customer_email),
                        phone=info.customer_phone, commit=False,
                    )
                    appt = await appointment_crud.create_appointment(
                        self.db,
                        business_id=business_id,
                        customer_id=customer.id,
                        service_id=service.id,
                        stylist_id=stylist.id,
                        appointment_date=day,
                        appointment_time=parse_slot(slot),
                        duration_min=service.duration,
                        price=service.price,
                        notes=info.notes,
                        commit=False,
                    )
                    appointment_id = appt.id
                    await appointment_crud.commit_appointment_changes(self.db, business_id)
        except SlotUnavailable as e:
            logger.info("slot_taken_at_submit", business_id=str(business_id),
                        stylist_id=str(stylist.id), date=day.isoformat(), time=slot)
            self.slot = None
            return self._failed(e, BookingStep.SELECTING_SLOT)
        except PersistenceFailure as e:
            return self._failed(e, BookingStep.FAILED)

        self.step = BookingStep.CONFIRMED
        self.last_error = None
        dispatch_confirmation(_confirmation(
            self.business, service, stylist,
            email=str(info.customer_email), name=info.customer_name, phone=info.customer_phone,
            day=day, slot=slot, notes=info.notes, appointment_id=appointment_id,
            theme=self.theme, accent=self.accent,
        ))
        logger.info("booking_confirmed", business_id=str(business_id),
                    appointment_id=str(appointment_id), date=day.isoformat(), time=slot)

        return BookingResult(
            created=True,
            step=self.step.value,
            message=f"Your appointment is booked for {format_long_date(day)} at {slot}.",
            appointment_id=appointment_id,
            booking_reference=str(appointment_id)[:8],
        )


# ---------- Reschedule flow ----------

class RescheduleFlow:
    """
    Moving an existing appointment:

        ViewingAppointment -> PickingNewSlot -> Confirming -> Updated | Failed

    The moved appointment never conflicts with itself.
    """

    def __init__(self, db: AsyncSession, business_id: uuid.UUID, appointment: AppointmentDetail,
                 *, clock: Clock = datetime.now):
        self.db = db
        self.business_id = business_id
        self.appointment = appointment
        self.clock = clock
        self.step = RescheduleStep.VIEWING_APPOINTMENT

        self.service_id = appointment.service_id
        self.duration_min = appointment.duration_min
        self.price = appointment.price
        self.stylist_id = appointment.stylist_id
        self.day: Optional[date] = None
        self.slot: Optional[str] = None
        self.last_error: Optional[BookingError] = None

    @classmethod
    async def load(cls, db: AsyncSession, business_id: uuid.UUID, appointment_id: uuid.UUID,
                   **kwargs) -> "RescheduleFlow":
        detail = await appointment_crud.get_appointment_detail(db, business_id, appointment_id)
        if not detail:
            raise AppointmentNotFound()
        return cls(db, business_id, detail, **kwargs)

    def _require(self, action: str, *steps: RescheduleStep) -> None:
        if self.step not in steps:
            raise InvalidTransition(f"Cannot {action} while {self.step.value}")

    def start(self) -> None:
        self._require("reschedule", RescheduleStep.VIEWING_APPOINTMENT)
        if self.appointment.status != AppointmentStatus.SCHEDULED:
            raise InvalidTransition(f"A {self.appointment.status.value} appointment cannot be rescheduled")
        self.step = RescheduleStep.PICKING_NEW_SLOT

    async def _target(self, stylist_id: Optional[uuid.UUID], service_id: Optional[uuid.UUID]) -> Dict[str, Any]:
        """Service and stylist a pick would move to; the flow itself is not touched."""
        target = {
            "service_id": self.service_id,
            "duration_min": self.duration_min,
            "price": self.price,
            "stylist_id": self.stylist_id,
        }
        if service_id is not None and service_id != self.service_id:
            service = await get_service(self.db, self.business_id, service_id)
            if not service:
                raise ServiceNotFound()
            target.update(service_id=service.id, duration_min=service.duration, price=service.price)
        if stylist_id is not None and stylist_id != self.stylist_id:
            if not await get_stylist(self.db, self.business_id, stylist_id):
                raise StylistNotFound()
            target["stylist_id"] = stylist_id
        return target

    async def _check(self, day: date, slot: str, stylist_id: Optional[uuid.UUID], duration_min: int,
                     *, fresh: bool) -> bool:
        config = await load_agenda_config(self.db, self.business_id)
        time_slots = slots_for_date(config, day)
        existing = await appointment_crud.list_appointments_by_date(
            self.db, self.business_id, stylist_id, day, fresh=fresh
        )
        return _slot_fits(slot, duration_min, config, time_slots, existing,
                          stylist_id, exclude_appointment_id=self.appointment.id)

    async def pick(self, day: date, value: str, *, stylist_id: Optional[uuid.UUID] = None,
                   service_id: Optional[uuid.UUID] = None) -> None:
        self._require("pick a new time", RescheduleStep.PICKING_NEW_SLOT, RescheduleStep.FAILED)
        target = await self._target(stylist_id, service_id)
        candidate = _parse_candidate(value)
        self.step = RescheduleStep.PICKING_NEW_SLOT
        if not await self._check(day, candidate, target["stylist_id"], target["duration_min"], fresh=False):
            raise SlotUnavailable("This time is not available, please pick another one")
        # Only an accepted pick changes what the flow will save
        self.service_id = target["service_id"]
        self.duration_min = target["duration_min"]
        self.price = target["price"]
        self.stylist_id = target["stylist_id"]
        self.day = day
        self.slot = candidate
        self.step = RescheduleStep.CONFIRMING

    def _failed(self, error: BookingError, step: RescheduleStep) -> BookingResult:
        self.last_error = error
        self.step = step
        return BookingResult(created=False, step=step.value, message=error.message,
                             appointment_id=self.appointment.id, error=error.to_dict())

    async def confirm(self) -> BookingResult:
        self._require("confirm", RescheduleStep.CONFIRMING)
        day, slot = self.day, self.slot
        try:
            async with _slot_lock(self.business_id, self.stylist_id, day):
                async with _persistence_guard(self.db, self.business_id, "appointment.reschedule"):
                    if not await self._check(day, slot, self.stylist_id, self.duration_min, fresh=True):
                        raise SlotUnavailable("Sorry, this time slot was just booked. Please pick another one")
                    update = AppointmentUpdate(
                        appointment_date=day,
                        appointment_time=slot,
                        stylist_id=self.stylist_id,
                        service_id=self.service_id,
                        duration_min=self.duration_min,
                        price=self.price,
                    )
                    updated = await appointment_crud.update_appointment(
                        self.db, self.business_id, self.appointment.id, update
                    )
                    if updated is None:
                        raise AppointmentNotFound()
        except SlotUnavailable as e:
            self.slot = None
            return self._failed(e, RescheduleStep.PICKING_NEW_SLOT)
        except (PersistenceFailure, AppointmentNotFound) as e:
            return self._failed(e, RescheduleStep.FAILED)

        self.step = RescheduleStep.UPDATED
        logger.info("appointment_rescheduled", business_id=str(self.business_id),
                    appointment_id=str(self.appointment.id), date=day.isoformat(), time=slot)
        return BookingResult(
            created=True,
            step=self.step.value,
            message=f"Appointment moved to {format_long_date(day)} at {slot}.",
            appointment_id=self.appointment.id,
            booking_reference=str(self.appointment.id)[:8],
        )


# ---------- Internal agenda operations ----------

async def list_available_slots(
    db: AsyncSession,
    business_id: uuid.UUID,
    service_id: uuid.UUID,
    stylist_id: uuid.UUID,
    day: date,
    *,
    public_only: bool = False,
    exclude_appointment_id: Optional[uuid.UUID] = None,
    clock: Clock = datetime.now,
) -> SlotsResponse:
    service = await get_service(db, business_id, service_id)
    if not service:
        raise ServiceNotFound()
    stylist = await get_stylist(db, business_id, stylist_id)
    if not stylist or (public_only and not stylist.is_public):
        raise StylistNotFound()

    config = await load_agenda_config(db, business_id)
    time_slots = slots_for_date(config, day)
    existing = await appointment_crud.list_appointments_by_date(db, business_id, stylist_id, day)
    starts = available_slots(
        time_slots, service.duration, config.granularity, existing,
        stylist_id=stylist_id, exclude_appointment_id=exclude_appointment_id,
        day=day, now=clock(),
    )
    return SlotsResponse(
        date=day,
        service_id=service_id,
        stylist_id=stylist_id,
        granularity=config.granularity,
        available_starts=starts,
    )


async def quick_book(db: AsyncSession, business_id: uuid.UUID, data: QuickBookingCreate) -> AppointmentDetail:
    """
    Owner-side booking from the agenda. The customer is found or created by
    name and the stylist is optional; an unassigned appointment only has to
    fit inside working hours.
    """
    service = await get_service(db, business_id, data.service_id)
    if not service:
        raise ServiceNotFound()
    stylist = None
    if data.stylist_id is not None:
        stylist = await get_stylist(db, business_id, data.stylist_id)
        if not stylist:
            raise StylistNotFound()

    candidate = _parse_candidate(data.appointment_time)
    config = await load_agenda_config(db, business_id)
    time_slots = slots_for_date(config, data.appointment_date)
    stylist_id = stylist.id if stylist else None

    async with _slot_lock(business_id, stylist_id, data.appointment_date):
        async with _persistence_guard(db, business_id, "appointment.quick_book"):
            existing = await appointment_crud.list_appointments_by_date(
                db, business_id, stylist_id, data.appointment_date, fresh=True
            )
            if not _slot_fits(candidate, service.duration, config, time_slots, existing, stylist_id):
                raise SlotUnavailable()

            customer = await get_or_create_customer_by_name(
                db, business_id,
                name=data.customer_name,
                email=str(data.customer_email) if data.customer_email else None,
                phone=data.customer_phone,
                commit=False,
            )
            appt = await appointment_crud.create_appointment(
                db,
                business_id=business_id,
                customer_id=customer.id,
                service_id=service.id,
                stylist_id=stylist_id,
                appointment_date=data.appointment_date,
                appointment_time=parse_slot(candidate),
                duration_min=service.duration,
                price=service.price,
                notes=data.notes,
                commit=False,
            )
            appointment_id = appt.id
            customer_email = customer.email
            await appointment_crud.commit_appointment_changes(db, business_id)

    detail = await appointment_crud.get_appointment_detail(db, business_id, appointment_id)
    if customer_email:
        business = await db.get(Business, business_id)
        dispatch_confirmation(_confirmation(
            business, service, stylist,
            email=customer_email, name=detail.customer.name, phone=detail.customer.phone,
            day=data.appointment_date, slot=candidate, notes=data.notes,
            appointment_id=appointment_id,
        ))
    logger.info("appointment_quick_booked", business_id=str(business_id),
                appointment_id=str(appointment_id))
    return detail


def resolve_transition(current: AppointmentStatus, requested: AppointmentStatus) -> bool:
    """
    True when `requested` is a real change. Scheduled appointments may be
    completed or cancelled; finished ones only accept the same status again.
    """
    match current:
        case AppointmentStatus.SCHEDULED:
            return requested != AppointmentStatus.SCHEDULED
        case AppointmentStatus.COMPLETED | AppointmentStatus.CANCELLED:
            if requested == current:
                return False
            raise InvalidTransition(f"A {current.value} appointment cannot become {requested.value}")
        case _:
            raise InvalidTransition(f"Unknown appointment status: {current!r}")


async def change_status(
    db: AsyncSession,
    business_id: uuid.UUID,
    appointment_id: uuid.UUID,
    status: AppointmentStatus,
) -> AppointmentDetail:
    appt = await appointment_crud.get_appointment(db, business_id, appointment_id)
    if not appt:
        raise AppointmentNotFound()

    if resolve_transition(AppointmentStatus(appt.status), status):
        async with _persistence_guard(db, business_id, "appointment.status"):
            await appointment_crud.update_appointment(
                db, business_id, appointment_id, AppointmentUpdate(status=status)
            )
        logger.info("appointment_status_changed", business_id=str(business_id),
                    appointment_id=str(appointment_id), status=status.value)

    return await appointment_crud.get_appointment_detail(db, business_id, appointment_id)


async def cancel_appointment(
    db: AsyncSession, business_id: uuid.UUID, appointment_id: uuid.UUID, *, confirm: bool = False
) -> AppointmentDetail:
    """Soft cancel: the row stays with status cancelled and stops blocking its slot."""
    if not confirm:
        raise ConfirmationRequired()
    return await change_status(db, business_id, appointment_id, AppointmentStatus.CANCELLED)


async def delete_appointment(
    db: AsyncSession, business_id: uuid.UUID, appointment_id: uuid.UUID, *, confirm: bool = False
) -> None:
    """Physically remove an appointment. Prefer cancel_appointment, which keeps history."""
    if not confirm:
        raise ConfirmationRequired()
    async with _persistence_guard(db, business_id, "appointment.delete"):
        deleted = await appointment_crud.delete_appointment(db, business_id, appointment_id)
    if not deleted:
        raise AppointmentNotFound()
    logger.info("appointment_deleted", business_id=str(business_id), appointment_id=str(appointment_id))
