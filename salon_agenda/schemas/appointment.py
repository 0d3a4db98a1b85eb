# salon_agenda/schemas/appointment.py

import uuid
from datetime import date
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from salon_agenda.db.models.appointment import AppointmentStatus
from salon_agenda.schemas.booking import CustomerDetails, clean_name, normalize_phone
from salon_agenda.schemas.catalog import ServiceOut, PublicStylistOut
from salon_agenda.services.slots import format_slot, parse_slot


class CustomerOut(BaseModel):
    id: uuid.UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    notes: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class CustomerUpdate(BaseModel):
    """Owner edit of a customer; blank email or phone clears the stored value."""
    name: Optional[str] = Field(None, max_length=120)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("name")
    @classmethod
    def _name(cls, v: Optional[str]) -> str:
        if v is None:
            raise ValueError("name is required")
        return clean_name(v)

    @field_validator("email", "phone", mode="before")
    @classmethod
    def _blank(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator("phone")
    @classmethod
    def _phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v) if v else None


class AppointmentOut(BaseModel):
    id: uuid.UUID
    business_id: uuid.UUID
    customer_id: uuid.UUID
    service_id: uuid.UUID
    stylist_id: Optional[uuid.UUID] = None
    appointment_date: date
    appointment_time: str
    duration_min: int = Field(..., gt=0)
    status: AppointmentStatus
    price: Optional[Decimal] = None
    notes: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)

    @field_validator("appointment_time", mode="before")
    @classmethod
    def _fmt_time(cls, v) -> str:
        return format_slot(parse_slot(v))

    @property
    def booking_reference(self) -> str:
        return str(self.id)[:8]


class AppointmentDetail(AppointmentOut):
    """Appointment with its service, customer and stylist expanded."""
    service: ServiceOut
    customer: CustomerOut
    stylist: Optional[PublicStylistOut] = None


class QuickBookingCreate(CustomerDetails):
    service_id: uuid.UUID
    stylist_id: Optional[uuid.UUID] = None
    appointment_date: date
    appointment_time: str = Field(..., examples=["14:00"])


class RescheduleRequest(BaseModel):
    appointment_date: date
    appointment_time: str = Field(..., examples=["15:30"])
    stylist_id: Optional[uuid.UUID] = None
    service_id: Optional[uuid.UUID] = None


class StatusUpdate(BaseModel):
    status: AppointmentStatus


class AppointmentUpdate(BaseModel):
    """Fields the store accepts on update (reschedule or status change)."""
    appointment_date: Optional[date] = None
    appointment_time: Optional[str] = None
    stylist_id: Optional[uuid.UUID] = None
    service_id: Optional[uuid.UUID] = None
    duration_min: Optional[int] = Field(None, gt=0)
    price: Optional[Decimal] = None
    status: Optional[AppointmentStatus] = None
    notes: Optional[str] = None

