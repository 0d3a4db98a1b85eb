# salon_agenda/schemas/catalog.py
import uuid
from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from salon_agenda.db.models.catalog import StylistStatus

class ServiceCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    duration: int = Field(30, gt=0, description="Minutes")
    price: Optional[Decimal] = Field(None, ge=0)
    color: Optional[str] = None
    text_color: Optional[str] = None
    border_color: Optional[str] = None

class ServiceUpdate(BaseModel):
    # Existing appointments keep their duration and price snapshot
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    duration: Optional[int] = Field(None, gt=0)
    price: Optional[Decimal] = Field(None, ge=0)
    color: Optional[str] = None
    text_color: Optional[str] = None
    border_color: Optional[str] = None

class ServiceOut(BaseModel):
    id: uuid.UUID
    name: str
    duration: int = Field(..., gt=0)
    price: Optional[Decimal] = Field(None, ge=0)
    color: Optional[str] = None
    text_color: Optional[str] = None
    border_color: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)

class StylistCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=120)
    title: Optional[str] = None
    avatar_url: Optional[str] = None
    is_public: bool = True
    status: StylistStatus = StylistStatus.AVAILABLE

class StylistUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    title: Optional[str] = None
    avatar_url: Optional[str] = None
    is_public: Optional[bool] = None
    status: Optional[StylistStatus] = None

class StylistOut(BaseModel):
    id: uuid.UUID
    name: str
    title: Optional[str] = None
    avatar_url: Optional[str] = None
    is_public: bool
    status: StylistStatus
    model_config = ConfigDict(from_attributes=True)

class PublicStylistOut(BaseModel):
    id: uuid.UUID
    name: str
    title: Optional[str] = None
    avatar_url: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)
