# salon_agenda/schemas/booking.py
from __future__ import annotations

import uuid
from datetime import date
from enum import Enum
from typing import List, Optional

import phonenumbers
from phonenumbers import PhoneNumberFormat
from pydantic import BaseModel, EmailStr, Field, field_validator

from salon_agenda.core.config import settings
from salon_agenda.schemas.business import BusinessOut
from salon_agenda.schemas.catalog import PublicStylistOut, ServiceOut


def normalize_phone(value: str, region: Optional[str] = None) -> str:
    """E.164 for anything phonenumbers accepts as valid or possible."""
    try:
        parsed = phonenumbers.parse(value, region or settings.DEFAULT_PHONE_REGION)
    except phonenumbers.phonenumberutil.NumberParseException:
        raise ValueError("phone number could not be parsed")
    if not (phonenumbers.is_valid_number(parsed) or phonenumbers.is_possible_number(parsed)):
        raise ValueError("phone number is not valid")
    return phonenumbers.format_number(parsed, PhoneNumberFormat.E164)


def clean_name(v: str) -> str:
    # trim + collapse internal extra spaces
    v = " ".join(v.strip().split())
    if not v:
        raise ValueError("name is required")
    return v


class EmailTheme(str, Enum):
    DEFAULT = "default"
    MINIMAL = "minimal"
    FESTIVE = "festive"


class CustomerDetails(BaseModel):
    """Contact fields collected by the owner's quick booking; email optional."""
    customer_name: str = Field(..., max_length=120)
    customer_email: Optional[EmailStr] = None
    customer_phone: Optional[str] = None
    notes: Optional[str] = Field(None, max_length=2000)

    @field_validator("customer_name")
    @classmethod
    def _name(cls, v: str) -> str:
        return clean_name(v)

    @field_validator("customer_email", mode="before")
    @classmethod
    def _blank_email(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v.strip() if isinstance(v, str) else v

    @field_validator("customer_phone")
    @classmethod
    def _phone(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return normalize_phone(v)

    @field_validator("notes")
    @classmethod
    def _notes(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return v.strip() or None


class BookingDetails(CustomerDetails):
    """Public booking form: email is mandatory and must be RFC-shaped."""
    customer_email: EmailStr


class PublicBookingRequest(BookingDetails):
    service_id: uuid.UUID
    stylist_id: uuid.UUID
    appointment_date: date
    appointment_time: str = Field(..., examples=["10:30"])
    theme: EmailTheme = EmailTheme.DEFAULT
    accent: Optional[str] = Field(None, max_length=16)


class SlotsResponse(BaseModel):
    date: date
    service_id: uuid.UUID
    stylist_id: uuid.UUID
    granularity: int
    available_starts: List[str]


class PublicBookingPage(BaseModel):
    """Everything the public /book/{booking_link} page needs to render."""
    business: BusinessOut
    services: List[ServiceOut]
    stylists: List[PublicStylistOut]
    working_days: List[int]
    theme: EmailTheme = EmailTheme.DEFAULT
    accent: Optional[str] = None
