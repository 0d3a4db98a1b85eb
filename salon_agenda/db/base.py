# salon_agenda/db/base.py

"""
Imports all the ORM models so Alembic and create_all can discover them.
Whenever you add a new model, import it here.
"""
from salon_agenda.db.models.business import Business
from salon_agenda.db.models.catalog import Service, Stylist
from salon_agenda.db.models.customer import Customer
from salon_agenda.db.models.appointment import Appointment
from salon_agenda.db.models.agenda_settings import AgendaSettings
from salon_agenda.db.session import engine, Base

__all__ = [
    "Base",
    "Business",
    "Service",
    "Stylist",
    "Customer",
    "Appointment",
    "AgendaSettings",
]

async def init_db(bind=None):
    """Create all tables (development / tests; production uses Alembic)."""
    async with (bind or engine).begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
