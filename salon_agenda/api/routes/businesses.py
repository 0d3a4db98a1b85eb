# salon_agenda/api/routes/businesses.py
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from salon_agenda.api.deps import business_or_404
from salon_agenda.core.errors import ConfirmationRequired, CustomerNotFound, ServiceNotFound, StylistNotFound
from salon_agenda.crud.agenda_settings import get_or_create_agenda_settings, update_agenda_settings
from salon_agenda.crud.business import create_business
from salon_agenda.crud.catalog import (
    create_service,
    create_stylist,
    delete_service,
    delete_stylist,
    list_services,
    list_stylists,
    update_service,
    update_stylist,
)
from salon_agenda.crud.customer import delete_customer, get_customer, list_customers, update_customer
from salon_agenda.db.models.business import Business
from salon_agenda.db.session import get_session
from salon_agenda.schemas.agenda import AgendaSettingsOut, AgendaSettingsUpdate
from salon_agenda.schemas.appointment import CustomerOut, CustomerUpdate
from salon_agenda.schemas.business import BusinessCreate, BusinessOut
from salon_agenda.schemas.catalog import (
    ServiceCreate,
    ServiceOut,
    ServiceUpdate,
    StylistCreate,
    StylistOut,
    StylistUpdate,
)

router = APIRouter(prefix="/businesses", tags=["businesses"])

@router.post("", response_model=BusinessOut, status_code=status.HTTP_201_CREATED)
async def create_business_ep(payload: BusinessCreate, db: AsyncSession = Depends(get_session)):
    try:
        return await create_business(db, payload)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

@router.get("/{business_id}", response_model=BusinessOut)
async def get_business_ep(business: Business = Depends(business_or_404)):
    return business

# -------- Services --------
@router.post("/{business_id}/services", response_model=ServiceOut, status_code=status.HTTP_201_CREATED)
async def create_service_ep(payload: ServiceCreate, business: Business = Depends(business_or_404),
                            db: AsyncSession = Depends(get_session)):
    return await create_service(db, business.id, payload)

@router.get("/{business_id}/services", response_model=list[ServiceOut])
async def list_services_ep(business: Business = Depends(business_or_404),
                           db: AsyncSession = Depends(get_session)):
    return await list_services(db, business.id)

@router.patch("/{business_id}/services/{service_id}", response_model=ServiceOut)
async def update_service_ep(service_id: uuid.UUID, payload: ServiceUpdate,
                            business: Business = Depends(business_or_404),
                            db: AsyncSession = Depends(get_session)):
    obj = await update_service(db, business.id, service_id, payload)
    if not obj:
        raise ServiceNotFound()
    return obj

@router.delete("/{business_id}/services/{service_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service_ep(service_id: uuid.UUID, confirm: bool = False,
                            business: Business = Depends(business_or_404),
                            db: AsyncSession = Depends(get_session)):
    # Cascades to the service's appointments
    if not confirm:
        raise ConfirmationRequired()
    if not await delete_service(db, business.id, service_id):
        raise ServiceNotFound()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# -------- Stylists --------
@router.post("/{business_id}/stylists", response_model=StylistOut, status_code=status.HTTP_201_CREATED)
async def create_stylist_ep(payload: StylistCreate, business: Business = Depends(business_or_404),
                            db: AsyncSession = Depends(get_session)):
    return await create_stylist(db, business.id, payload)

@router.get("/{business_id}/stylists", response_model=list[StylistOut])
async def list_stylists_ep(public_only: bool = False, business: Business = Depends(business_or_404),
                           db: AsyncSession = Depends(get_session)):
    return await list_stylists(db, business.id, public_only=public_only)

@router.patch("/{business_id}/stylists/{stylist_id}", response_model=StylistOut)
async def update_stylist_ep(stylist_id: uuid.UUID, payload: StylistUpdate,
                            business: Business = Depends(business_or_404),
                            db: AsyncSession = Depends(get_session)):
    obj = await update_stylist(db, business.id, stylist_id, payload)
    if not obj:
        raise StylistNotFound()
    return obj

@router.delete("/{business_id}/stylists/{stylist_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_stylist_ep(stylist_id: uuid.UUID, confirm: bool = False,
                            business: Business = Depends(business_or_404),
                            db: AsyncSession = Depends(get_session)):
    if not confirm:
        raise ConfirmationRequired()
    if not await delete_stylist(db, business.id, stylist_id):
        raise StylistNotFound()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# -------- Customers --------
@router.get("/{business_id}/customers", response_model=list[CustomerOut])
async def list_customers_ep(search: Optional[str] = None, limit: int = Query(500, ge=1, le=2000),
                            business: Business = Depends(business_or_404),
                            db: AsyncSession = Depends(get_session)):
    return await list_customers(db, business.id, search=search, limit=limit)

@router.get("/{business_id}/customers/{customer_id}", response_model=CustomerOut)
async def get_customer_ep(customer_id: uuid.UUID, business: Business = Depends(business_or_404),
                          db: AsyncSession = Depends(get_session)):
    obj = await get_customer(db, business.id, customer_id)
    if not obj:
        raise CustomerNotFound()
    return obj

@router.patch("/{business_id}/customers/{customer_id}", response_model=CustomerOut)
async def update_customer_ep(customer_id: uuid.UUID, payload: CustomerUpdate,
                             business: Business = Depends(business_or_404),
                             db: AsyncSession = Depends(get_session)):
    obj = await update_customer(db, business.id, customer_id, payload)
    if not obj:
        raise CustomerNotFound()
    return obj

@router.delete("/{business_id}/customers/{customer_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_customer_ep(customer_id: uuid.UUID, confirm: bool = False,
                             business: Business = Depends(business_or_404),
                             db: AsyncSession = Depends(get_session)):
    # Removes the customer's appointment history too
    if not confirm:
        raise ConfirmationRequired()
    if not await delete_customer(db, business.id, customer_id):
        raise CustomerNotFound()
    return Response(status_code=status.HTTP_204_NO_CONTENT)

# -------- Agenda settings --------
@router.get("/{business_id}/agenda-settings", response_model=AgendaSettingsOut)
async def get_agenda_settings_ep(business: Business = Depends(business_or_404),
                                 db: AsyncSession = Depends(get_session)):
    return await get_or_create_agenda_settings(db, business.id)

@router.put("/{business_id}/agenda-settings", response_model=AgendaSettingsOut)
async def update_agenda_settings_ep(payload: AgendaSettingsUpdate, business: Business = Depends(business_or_404),
                                    db: AsyncSession = Depends(get_session)):
    try:
        return await update_agenda_settings(db, business.id, payload)
    except ValueError as e:
        # start/end checked against the stored values when only one side changes
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
