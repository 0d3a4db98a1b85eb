# salon_agenda/db/models/appointment.py

from __future__ import annotations
import enum
import uuid
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Optional
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from salon_agenda.db.session import Base
from salon_agenda.db.models.catalog import Service, Stylist
from salon_agenda.db.models.customer import Customer


class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


EXCLUSION_CONSTRAINT = "ex_appointments_stylist_interval"


class Appointment(Base):
    __tablename__ = "appointments"
    __table_args__ = (
        sa.Index("ix_appointments_business_id_date", "business_id", "appointment_date"),
        sa.Index("ix_appointments_stylist_id_date", "stylist_id", "appointment_date"),
        sa.CheckConstraint("duration_min > 0", name="ck_appointments_duration_positive"),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False
    )
    customer_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("customers.id", ondelete="CASCADE"), nullable=False
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("services.id", ondelete="CASCADE"), nullable=False
    )
    stylist_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid, sa.ForeignKey("stylists.id", ondelete="SET NULL")
    )

    appointment_date: Mapped[date] = mapped_column(sa.Date, nullable=False)
    appointment_time: Mapped[time] = mapped_column(sa.Time, nullable=False)
    # Service duration at booking time; the occupied interval never changes
    # when the service is edited later.
    duration_min: Mapped[int] = mapped_column(sa.Integer, nullable=False)
    status: Mapped[AppointmentStatus] = mapped_column(
        sa.Enum(AppointmentStatus, native_enum=False, length=16,
                values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=AppointmentStatus.SCHEDULED,
    )
    price: Mapped[Decimal | None] = mapped_column(sa.Numeric(10, 2))  # snapshot
    notes: Mapped[str | None] = mapped_column(sa.Text)

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True))

    # Relations (load explicitly with selectinload in async code)
    service: Mapped[Service] = relationship(lazy="raise")
    customer: Mapped[Customer] = relationship(lazy="raise")
    stylist: Mapped[Optional[Stylist]] = relationship(lazy="raise")


# Authoritative double-booking guard. PostgreSQL only; SQLite relies on the
# application-level re-check.
sa.event.listen(
    Appointment.__table__,
    "before_create",
    sa.DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
sa.event.listen(
    Appointment.__table__,
    "after_create",
    sa.DDL(
        f"ALTER TABLE appointments ADD CONSTRAINT {EXCLUSION_CONSTRAINT} "
        "EXCLUDE USING gist ("
        "business_id WITH =, "
        "stylist_id WITH =, "
        "tsrange(appointment_date + appointment_time, "
        "appointment_date + appointment_time + duration_min * interval '1 minute') WITH &&"
        ") WHERE (status <> 'cancelled' AND stylist_id IS NOT NULL)"
    ).execute_if(dialect="postgresql"),
)
