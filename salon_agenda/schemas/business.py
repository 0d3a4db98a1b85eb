# salon_agenda/schemas/business.py
import re
import uuid
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

SLUG_RE = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

class BusinessCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=120, examples=["Two Gents Barbershop"])
    booking_link: Optional[str] = Field(None, max_length=64, description="Public slug; generated from the name when omitted")
    brand_color: Optional[str] = Field(None, examples=["#e0c4a8"])
    email: Optional[str] = None

    @field_validator("full_name")
    @classmethod
    def _clean_name(cls, v: str) -> str:
        v = " ".join(v.strip().split())
        if not v:
            raise ValueError("full_name cannot be empty")
        return v

    @field_validator("booking_link")
    @classmethod
    def _check_slug(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().lower()
        if not SLUG_RE.match(v):
            raise ValueError("booking_link may only contain lowercase letters, digits and dashes")
        return v

class BusinessOut(BaseModel):
    id: uuid.UUID
    full_name: str
    booking_link: str
    brand_color: Optional[str] = None
    created_at: datetime
    model_config = ConfigDict(from_attributes=True)
