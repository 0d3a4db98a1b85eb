#!/usr/bin/env python3
"""
Tests for owner-side agenda operations: quick booking, slot listing,
status changes, cancel and delete.
"""

import uuid
from datetime import date
from unittest.mock import patch

import pytest

from salon_agenda.core.errors import (
    AppointmentNotFound,
    ConfirmationRequired,
    InvalidTransition,
    ServiceNotFound,
    SlotUnavailable,
    StylistNotFound,
)
from salon_agenda.crud import appointment as appointment_crud
from salon_agenda.crud.business import create_business
from salon_agenda.db.models.appointment import AppointmentStatus
from salon_agenda.schemas.appointment import QuickBookingCreate
from salon_agenda.schemas.business import BusinessCreate
from salon_agenda.services.booking import (
    cancel_appointment,
    change_status,
    delete_appointment,
    list_available_slots,
    quick_book,
    resolve_transition,
)

from conftest import BOOK_DAY, fixed_clock

pytestmark = pytest.mark.integration


def _quick(salon, when="10:00", **overrides):
    data = {
        "customer_name": "Giorgos",
        "service_id": salon.haircut.id,
        "stylist_id": salon.anna.id,
        "appointment_date": BOOK_DAY,
        "appointment_time": when,
    }
    data.update(overrides)
    return QuickBookingCreate(**data)


class TestQuickBook:

    @pytest.mark.asyncio
    async def test_books_with_stylist(self, db, salon):
        with patch("salon_agenda.services.booking.dispatch_confirmation") as dispatch:
            detail = await quick_book(db, salon.business.id, _quick(salon))
        assert detail.appointment_time == "10:00"
        assert detail.stylist.name == "Anna"
        assert detail.customer.name == "Giorgos"
        dispatch.assert_not_called()

    @pytest.mark.asyncio
    async def test_email_sends_confirmation(self, db, salon):
        with patch("salon_agenda.services.booking.dispatch_confirmation") as dispatch:
            await quick_book(db, salon.business.id, _quick(salon, customer_email="giorgos@example.com"))
        payload = dispatch.call_args.args[0]
        assert payload.customer_email == "giorgos@example.com"
        assert payload.business_name == "Two Gents Barbershop"

    @pytest.mark.asyncio
    async def test_customer_reused_by_name(self, db, salon):
        first = await quick_book(db, salon.business.id, _quick(salon, "10:00"))
        second = await quick_book(db, salon.business.id, _quick(salon, "11:00", customer_name=" Giorgos "))
        assert first.customer_id == second.customer_id

    @pytest.mark.asyncio
    async def test_conflict_for_same_stylist(self, db, salon):
        await quick_book(db, salon.business.id, _quick(salon, "10:00", service_id=salon.coloring.id))
        with pytest.raises(SlotUnavailable):
            await quick_book(db, salon.business.id, _quick(salon, "11:00"))
        # Another stylist is free at the same time
        await quick_book(db, salon.business.id, _quick(salon, "11:00", stylist_id=salon.nikos.id))

    @pytest.mark.asyncio
    async def test_unassigned_bookings_only_need_working_hours(self, db, salon):
        a = await quick_book(db, salon.business.id, _quick(salon, "10:00", stylist_id=None))
        b = await quick_book(db, salon.business.id, _quick(salon, "10:00", stylist_id=None))
        assert a.stylist is None and b.stylist is None
        with pytest.raises(SlotUnavailable):
            await quick_book(db, salon.business.id, _quick(salon, "19:00", stylist_id=None))

    @pytest.mark.asyncio
    async def test_hidden_stylist_bookable_by_owner(self, db, salon):
        detail = await quick_book(db, salon.business.id, _quick(salon, stylist_id=salon.hidden.id))
        assert detail.stylist_id == salon.hidden.id

    @pytest.mark.asyncio
    async def test_unknown_references(self, db, salon):
        with pytest.raises(ServiceNotFound):
            await quick_book(db, salon.business.id, _quick(salon, service_id=uuid.uuid4()))
        with pytest.raises(StylistNotFound):
            await quick_book(db, salon.business.id, _quick(salon, stylist_id=uuid.uuid4()))


class TestListAvailableSlots:

    @pytest.mark.asyncio
    async def test_excludes_booked_and_past(self, db, salon):
        await quick_book(db, salon.business.id, _quick(salon, "10:00"))
        slots = await list_available_slots(
            db, salon.business.id, salon.haircut.id, salon.anna.id, BOOK_DAY, clock=fixed_clock
        )
        assert slots.granularity == 30
        assert "10:00" not in slots.available_starts
        assert "09:30" in slots.available_starts

        past = await list_available_slots(
            db, salon.business.id, salon.haircut.id, salon.anna.id, date(2031, 2, 27), clock=fixed_clock
        )
        assert past.available_starts == []

    @pytest.mark.asyncio
    async def test_exclusion_frees_own_slot(self, db, salon):
        own = await quick_book(db, salon.business.id, _quick(salon, "10:00"))
        slots = await list_available_slots(
            db, salon.business.id, salon.haircut.id, salon.anna.id, BOOK_DAY,
            exclude_appointment_id=own.id, clock=fixed_clock,
        )
        assert "10:00" in slots.available_starts

    @pytest.mark.asyncio
    async def test_public_listing_hides_private_stylists(self, db, salon):
        with pytest.raises(StylistNotFound):
            await list_available_slots(
                db, salon.business.id, salon.haircut.id, salon.hidden.id, BOOK_DAY,
                public_only=True, clock=fixed_clock,
            )


class TestStatus:

    @pytest.mark.parametrize("current,requested,changes", [
        (AppointmentStatus.SCHEDULED, AppointmentStatus.COMPLETED, True),
        (AppointmentStatus.SCHEDULED, AppointmentStatus.CANCELLED, True),
        (AppointmentStatus.SCHEDULED, AppointmentStatus.SCHEDULED, False),
        (AppointmentStatus.COMPLETED, AppointmentStatus.COMPLETED, False),
        (AppointmentStatus.CANCELLED, AppointmentStatus.CANCELLED, False),
    ])
    def test_allowed_transitions(self, current, requested, changes):
        assert resolve_transition(current, requested) is changes

    @pytest.mark.parametrize("current,requested", [
        (AppointmentStatus.COMPLETED, AppointmentStatus.SCHEDULED),
        (AppointmentStatus.CANCELLED, AppointmentStatus.SCHEDULED),
        (AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED),
    ])
    def test_finished_appointments_are_final(self, current, requested):
        with pytest.raises(InvalidTransition):
            resolve_transition(current, requested)

    @pytest.mark.asyncio
    async def test_complete(self, db, salon):
        appt = await quick_book(db, salon.business.id, _quick(salon))
        detail = await change_status(db, salon.business.id, appt.id, AppointmentStatus.COMPLETED)
        assert detail.status == AppointmentStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_cancel_requires_confirmation(self, db, salon):
        appt = await quick_book(db, salon.business.id, _quick(salon))
        with pytest.raises(ConfirmationRequired):
            await cancel_appointment(db, salon.business.id, appt.id)

        detail = await cancel_appointment(db, salon.business.id, appt.id, confirm=True)
        assert detail.status == AppointmentStatus.CANCELLED
        # Row is kept for history
        rows = await appointment_crud.list_appointments_by_date_range(db, salon.business.id, BOOK_DAY, BOOK_DAY)
        assert [r.id for r in rows] == [appt.id]

    @pytest.mark.asyncio
    async def test_cancelled_slot_is_free_again(self, db, salon):
        appt = await quick_book(db, salon.business.id, _quick(salon, "10:00"))
        await cancel_appointment(db, salon.business.id, appt.id, confirm=True)
        await quick_book(db, salon.business.id, _quick(salon, "10:00"))

    @pytest.mark.asyncio
    async def test_missing_appointment(self, db, salon):
        with pytest.raises(AppointmentNotFound):
            await change_status(db, salon.business.id, uuid.uuid4(), AppointmentStatus.COMPLETED)


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_requires_confirmation(self, db, salon):
        appt = await quick_book(db, salon.business.id, _quick(salon))
        with pytest.raises(ConfirmationRequired):
            await delete_appointment(db, salon.business.id, appt.id)
        await delete_appointment(db, salon.business.id, appt.id, confirm=True)
        assert await appointment_crud.get_appointment_detail(db, salon.business.id, appt.id) is None

    @pytest.mark.asyncio
    async def test_delete_missing(self, db, salon):
        with pytest.raises(AppointmentNotFound):
            await delete_appointment(db, salon.business.id, uuid.uuid4(), confirm=True)

    @pytest.mark.asyncio
    async def test_delete_is_tenant_scoped(self, db, salon):
        appt = await quick_book(db, salon.business.id, _quick(salon))
        other = await create_business(db, BusinessCreate(full_name="Elsewhere"))
        with pytest.raises(AppointmentNotFound):
            await delete_appointment(db, other.id, appt.id, confirm=True)
