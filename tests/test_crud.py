#!/usr/bin/env python3
"""
Tests for the store layer against a real (SQLite) database.
"""

import uuid
from datetime import time, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from salon_agenda.core.errors import MalformedRecord
from salon_agenda.crud import appointment as appointment_crud
from salon_agenda.crud.agenda_settings import get_or_create_agenda_settings, update_agenda_settings
from salon_agenda.crud.business import create_business, get_business_by_booking_link, slugify
from salon_agenda.crud.catalog import (
    delete_service,
    delete_stylist,
    get_service,
    get_stylist,
    list_services,
    list_stylists,
    update_service,
    update_stylist,
)
from salon_agenda.crud.customer import (
    delete_customer,
    get_customer,
    get_customer_by_email,
    get_or_create_customer_by_name,
    list_customers,
    update_customer,
    upsert_customer_by_email,
)
from salon_agenda.db.models.appointment import AppointmentStatus
from salon_agenda.db.models.catalog import StylistStatus
from salon_agenda.schemas.agenda import AgendaSettingsUpdate
from salon_agenda.schemas.appointment import AppointmentUpdate, CustomerUpdate
from salon_agenda.schemas.business import BusinessCreate
from salon_agenda.schemas.catalog import ServiceUpdate, StylistUpdate
from salon_agenda.services.appointment_cache import appointment_cache

from conftest import BOOK_DAY

pytestmark = pytest.mark.integration


async def _book(db, salon, start, *, stylist=None, service=None, customer=None, commit=True):
    service = service or salon.haircut
    stylist = stylist if stylist is not None else salon.anna
    if customer is None:
        customer = await get_or_create_customer_by_name(db, salon.business.id, name="Walk In")
    return await appointment_crud.create_appointment(
        db,
        business_id=salon.business.id,
        customer_id=customer.id,
        service_id=service.id,
        stylist_id=stylist.id if stylist else None,
        appointment_date=BOOK_DAY,
        appointment_time=start,
        duration_min=service.duration,
        price=service.price,
        commit=commit,
    )


class TestBusinessStore:

    @pytest.mark.asyncio
    async def test_booking_link_generated_from_name(self, db):
        business = await create_business(db, BusinessCreate(full_name="Salon Élite & Co"))
        assert business.booking_link == "salon-lite-co"
        assert (await get_business_by_booking_link(db, "SALON-LITE-CO")).id == business.id

    @pytest.mark.asyncio
    async def test_generated_link_gets_suffix_on_collision(self, db):
        first = await create_business(db, BusinessCreate(full_name="Hair Studio"))
        second = await create_business(db, BusinessCreate(full_name="Hair  Studio"))
        assert first.booking_link == "hair-studio"
        assert second.booking_link.startswith("hair-studio-")
        assert second.booking_link != first.booking_link

    @pytest.mark.asyncio
    async def test_explicit_link_must_be_free(self, db):
        await create_business(db, BusinessCreate(full_name="A", booking_link="studio"))
        with pytest.raises(ValueError):
            await create_business(db, BusinessCreate(full_name="B", booking_link="studio"))

    def test_slugify_fallback(self):
        assert slugify("!!!") == "salon"

    @pytest.mark.asyncio
    async def test_unknown_link(self, db):
        assert await get_business_by_booking_link(db, "nobody") is None


class TestCatalogStore:

    @pytest.mark.asyncio
    async def test_public_stylists_only(self, db, salon):
        everyone = await list_stylists(db, salon.business.id)
        public = await list_stylists(db, salon.business.id, public_only=True)
        assert {s.name for s in everyone} == {"Anna", "Nikos", "Back Office"}
        assert {s.name for s in public} == {"Anna", "Nikos"}

    @pytest.mark.asyncio
    async def test_lookups_are_tenant_scoped(self, db, salon):
        other = await create_business(db, BusinessCreate(full_name="Elsewhere"))
        assert await get_service(db, other.id, salon.haircut.id) is None
        assert await get_stylist(db, other.id, salon.anna.id) is None
        assert await list_services(db, other.id) == []
        assert (await get_service(db, salon.business.id, salon.haircut.id)).duration == 30

    @pytest.mark.asyncio
    async def test_update_service_leaves_booked_snapshot(self, db, salon):
        appt = await _book(db, salon, time(10, 0))
        updated = await update_service(db, salon.business.id, salon.haircut.id,
                                       ServiceUpdate(duration=45, price=Decimal("25.00")))
        assert updated.duration == 45
        assert updated.name == "Haircut"
        detail = await appointment_crud.get_appointment_detail(db, salon.business.id, appt.id)
        assert detail.duration_min == 30
        assert detail.price == Decimal("20.00")

    @pytest.mark.asyncio
    async def test_delete_service_removes_its_appointments(self, db, salon):
        await _book(db, salon, time(10, 0))
        kept = await _book(db, salon, time(11, 0), service=salon.coloring)
        await appointment_crud.list_appointments_by_date(db, salon.business.id, None, BOOK_DAY)

        assert await delete_service(db, salon.business.id, salon.haircut.id) is True
        assert await get_service(db, salon.business.id, salon.haircut.id) is None
        listed = await appointment_crud.list_appointments_by_date(db, salon.business.id, None, BOOK_DAY)
        assert [i.appointment_id for i in listed] == [kept.id]

    @pytest.mark.asyncio
    async def test_update_stylist_status_and_visibility(self, db, salon):
        updated = await update_stylist(db, salon.business.id, salon.anna.id,
                                       StylistUpdate(status=StylistStatus.OFF, is_public=False))
        assert updated.status == StylistStatus.OFF
        assert updated.title == "Senior Stylist"
        public = await list_stylists(db, salon.business.id, public_only=True)
        assert [s.name for s in public] == ["Nikos"]

    @pytest.mark.asyncio
    async def test_delete_stylist_unassigns_appointments(self, db, salon):
        appt = await _book(db, salon, time(10, 0))
        assert await delete_stylist(db, salon.business.id, salon.anna.id) is True
        assert await get_stylist(db, salon.business.id, salon.anna.id) is None

        detail = await appointment_crud.get_appointment_detail(db, salon.business.id, appt.id)
        assert detail.stylist is None
        listed = await appointment_crud.list_appointments_by_date(db, salon.business.id, None, BOOK_DAY)
        assert listed[0].stylist_id is None

    @pytest.mark.asyncio
    async def test_edits_are_tenant_scoped(self, db, salon):
        other = await create_business(db, BusinessCreate(full_name="Elsewhere"))
        assert await update_service(db, other.id, salon.haircut.id, ServiceUpdate(name="Stolen")) is None
        assert await delete_service(db, other.id, salon.haircut.id) is False
        assert await update_stylist(db, other.id, salon.anna.id, StylistUpdate(name="Stolen")) is None
        assert await delete_stylist(db, other.id, salon.anna.id) is False
        assert (await get_service(db, salon.business.id, salon.haircut.id)).name == "Haircut"


class TestCustomerStore:

    @pytest.mark.asyncio
    async def test_upsert_updates_existing_by_email(self, db, salon):
        first = await upsert_customer_by_email(db, salon.business.id, name="Maria", email="maria@example.com")
        again = await upsert_customer_by_email(db, salon.business.id, name="Maria P.",
                                               email="MARIA@example.com", phone="+306912345678")
        assert again.id == first.id
        assert again.name == "Maria P."
        assert again.phone == "+306912345678"

    @pytest.mark.asyncio
    async def test_same_email_in_other_business_is_another_customer(self, db, salon):
        other = await create_business(db, BusinessCreate(full_name="Elsewhere"))
        a = await upsert_customer_by_email(db, salon.business.id, name="Maria", email="maria@example.com")
        b = await upsert_customer_by_email(db, other.id, name="Maria", email="maria@example.com")
        assert a.id != b.id
        assert (await get_customer_by_email(db, other.id, "maria@example.com")).id == b.id

    @pytest.mark.asyncio
    async def test_quick_booking_customer_reused_by_name(self, db, salon):
        a = await get_or_create_customer_by_name(db, salon.business.id, name="Giorgos")
        b = await get_or_create_customer_by_name(db, salon.business.id, name="Giorgos")
        assert a.id == b.id

    @pytest.mark.asyncio
    async def test_list_and_search(self, db, salon):
        await upsert_customer_by_email(db, salon.business.id, name="Maria", email="maria@example.com")
        await get_or_create_customer_by_name(db, salon.business.id, name="Giorgos", phone="+306912345678")
        other = await create_business(db, BusinessCreate(full_name="Elsewhere"))
        await get_or_create_customer_by_name(db, other.id, name="Anonymous")

        everyone = await list_customers(db, salon.business.id)
        assert [c.name for c in everyone] == ["Giorgos", "Maria"]
        assert [c.name for c in await list_customers(db, salon.business.id, search="MARIA@")] == ["Maria"]
        assert [c.name for c in await list_customers(db, salon.business.id, search="691234")] == ["Giorgos"]

    @pytest.mark.asyncio
    async def test_update_clears_blank_contact_fields(self, db, salon):
        customer = await upsert_customer_by_email(db, salon.business.id, name="Maria",
                                                  email="maria@example.com", phone="+306912345678")
        updated = await update_customer(db, salon.business.id, customer.id,
                                        CustomerUpdate(name="  Maria   P. ", email="", phone=None))
        assert updated.name == "Maria P."
        assert updated.email is None
        assert updated.phone is None
        assert updated.updated_at is not None

    @pytest.mark.asyncio
    async def test_update_leaves_unset_fields(self, db, salon):
        customer = await upsert_customer_by_email(db, salon.business.id, name="Maria", email="maria@example.com")
        updated = await update_customer(db, salon.business.id, customer.id, CustomerUpdate(notes="Prefers mornings"))
        assert updated.email == "maria@example.com"
        assert updated.notes == "Prefers mornings"

    def test_update_rejects_empty_name(self):
        with pytest.raises(ValidationError):
            CustomerUpdate(name="   ")
        with pytest.raises(ValidationError):
            CustomerUpdate(name=None)

    @pytest.mark.asyncio
    async def test_delete_removes_appointment_history(self, db, salon):
        customer = await get_or_create_customer_by_name(db, salon.business.id, name="Eleni")
        appt = await _book(db, salon, time(10, 0), customer=customer)
        walk_in = await _book(db, salon, time(11, 0))

        assert await delete_customer(db, salon.business.id, customer.id) is True
        assert await get_customer(db, salon.business.id, customer.id) is None
        assert await appointment_crud.get_appointment(db, salon.business.id, appt.id) is None
        listed = await appointment_crud.list_appointments_by_date(db, salon.business.id, None, BOOK_DAY)
        assert [i.appointment_id for i in listed] == [walk_in.id]
        assert await delete_customer(db, salon.business.id, customer.id) is False


class TestAgendaSettingsStore:

    @pytest.mark.asyncio
    async def test_created_lazily_with_defaults(self, db, salon):
        row = await get_or_create_agenda_settings(db, salon.business.id)
        assert row.start_hour == time(8, 0)
        assert row.end_hour == time(18, 0)
        assert row.service_duration == 30
        assert row.working_days == [0, 1, 2, 3, 4, 5, 6]
        assert (await get_or_create_agenda_settings(db, salon.business.id)).id == row.id

    @pytest.mark.asyncio
    async def test_partial_update(self, db, salon):
        row = await update_agenda_settings(db, salon.business.id, AgendaSettingsUpdate(
            end_hour="20:00", service_duration=15, working_days=[5, 1, 2],
        ))
        assert row.start_hour == time(8, 0)
        assert row.end_hour == time(20, 0)
        assert row.service_duration == 15
        assert row.working_days == [1, 2, 5]

    @pytest.mark.asyncio
    async def test_update_checked_against_stored_hours(self, db, salon):
        with pytest.raises(ValueError):
            await update_agenda_settings(db, salon.business.id, AgendaSettingsUpdate(start_hour="19:00"))

    @pytest.mark.parametrize("payload", [
        {"service_duration": 35},
        {"working_days": [1, 1]},
        {"working_days": [7]},
        {"start_hour": "12:00", "end_hour": "09:00"},
    ])
    def test_invalid_updates_rejected(self, payload):
        with pytest.raises(ValueError):
            AgendaSettingsUpdate(**payload)


class TestAppointmentStore:

    @pytest.mark.asyncio
    async def test_create_and_expand(self, db, salon):
        appt = await _book(db, salon, time(10, 0))
        detail = await appointment_crud.get_appointment_detail(db, salon.business.id, appt.id)
        assert detail.appointment_time == "10:00"
        assert detail.status == AppointmentStatus.SCHEDULED
        assert detail.service.name == "Haircut"
        assert detail.stylist.name == "Anna"
        assert detail.customer.name == "Walk In"
        assert detail.duration_min == 30
        assert detail.booking_reference == str(appt.id)[:8]

    @pytest.mark.asyncio
    async def test_detail_is_tenant_scoped(self, db, salon):
        appt = await _book(db, salon, time(10, 0))
        other = await create_business(db, BusinessCreate(full_name="Elsewhere"))
        assert await appointment_crud.get_appointment_detail(db, other.id, appt.id) is None

    @pytest.mark.asyncio
    async def test_list_by_date_filters_stylist(self, db, salon):
        await _book(db, salon, time(10, 0))
        await _book(db, salon, time(10, 0), stylist=salon.nikos)
        anna_day = await appointment_crud.list_appointments_by_date(db, salon.business.id, salon.anna.id, BOOK_DAY)
        whole_day = await appointment_crud.list_appointments_by_date(db, salon.business.id, None, BOOK_DAY)
        assert [i.stylist_id for i in anna_day] == [salon.anna.id]
        assert len(whole_day) == 2

    @pytest.mark.asyncio
    async def test_list_by_range_ordered_and_filtered(self, db, salon):
        late = await _book(db, salon, time(15, 0))
        early = await _book(db, salon, time(9, 0))
        await appointment_crud.update_appointment(
            db, salon.business.id, late.id, AppointmentUpdate(status=AppointmentStatus.CANCELLED)
        )
        rows = await appointment_crud.list_appointments_by_date_range(
            db, salon.business.id, BOOK_DAY, BOOK_DAY + timedelta(days=6)
        )
        assert [r.id for r in rows] == [early.id, late.id]
        live = await appointment_crud.list_appointments_by_date_range(
            db, salon.business.id, BOOK_DAY, BOOK_DAY, include_cancelled=False
        )
        assert [r.id for r in live] == [early.id]
        assert await appointment_crud.list_appointments_by_date_range(
            db, salon.business.id, BOOK_DAY + timedelta(days=1), BOOK_DAY + timedelta(days=2)
        ) == []

    @pytest.mark.asyncio
    async def test_writes_invalidate_cached_listing(self, db, salon):
        assert await appointment_crud.list_appointments_by_date(db, salon.business.id, None, BOOK_DAY) == []
        assert await appointment_cache.get(salon.business.id, BOOK_DAY) == []

        appt = await _book(db, salon, time(11, 0))
        assert await appointment_cache.get(salon.business.id, BOOK_DAY) is None
        listed = await appointment_crud.list_appointments_by_date(db, salon.business.id, None, BOOK_DAY)
        assert [i.appointment_id for i in listed] == [appt.id]

        await appointment_crud.update_appointment(
            db, salon.business.id, appt.id, AppointmentUpdate(appointment_time="12:30")
        )
        listed = await appointment_crud.list_appointments_by_date(db, salon.business.id, None, BOOK_DAY)
        assert listed[0].start == "12:30"

        assert await appointment_crud.delete_appointment(db, salon.business.id, appt.id) is True
        assert await appointment_crud.list_appointments_by_date(db, salon.business.id, None, BOOK_DAY) == []

    @pytest.mark.asyncio
    async def test_uncommitted_writes_need_explicit_commit(self, db, salon, session_factory):
        customer = await get_or_create_customer_by_name(db, salon.business.id, name="Eleni", commit=False)
        await _book(db, salon, time(9, 30), customer=customer, commit=False)
        async with session_factory() as other:
            assert await appointment_crud.list_appointments_by_date(
                other, salon.business.id, None, BOOK_DAY, fresh=True
            ) == []
        await appointment_crud.commit_appointment_changes(db, salon.business.id)
        async with session_factory() as other:
            rows = await appointment_crud.list_appointments_by_date(
                other, salon.business.id, None, BOOK_DAY, fresh=True
            )
            assert len(rows) == 1

    @pytest.mark.asyncio
    async def test_delete_missing(self, db, salon):
        assert await appointment_crud.delete_appointment(db, salon.business.id, uuid.uuid4()) is False

    def test_malformed_row_fails_fast(self):
        row = SimpleNamespace(id="not-a-uuid", appointment_time="10:00")
        with pytest.raises(MalformedRecord):
            appointment_crud._to_detail(row)

    @pytest.mark.asyncio
    async def test_write_during_listing_query_is_not_cached(self, db, salon, session_factory, monkeypatch):
        booked = []
        real_execute = db.execute

        async def execute_then_book(*args, **kwargs):
            result = await real_execute(*args, **kwargs)
            monkeypatch.setattr(db, "execute", real_execute)
            async with session_factory() as other:
                booked.append(await _book(other, salon, time(9, 0)))
            return result

        monkeypatch.setattr(db, "execute", execute_then_book)
        assert await appointment_crud.list_appointments_by_date(db, salon.business.id, None, BOOK_DAY) == []

        listed = await appointment_crud.list_appointments_by_date(db, salon.business.id, None, BOOK_DAY)
        assert [i.appointment_id for i in listed] == [booked[0].id]
