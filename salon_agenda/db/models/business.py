# salon_agenda/db/models/business.py

from __future__ import annotations
import uuid
from datetime import datetime, timezone
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from salon_agenda.db.session import Base

class Business(Base):
    """A tenant: one salon/barbershop owner and its public booking page."""
    __tablename__ = "businesses"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    full_name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    # Public slug used in /book/{booking_link}
    booking_link: Mapped[str] = mapped_column(sa.String(64), nullable=False, unique=True, index=True)
    brand_color: Mapped[str | None] = mapped_column(sa.String(16))
    email: Mapped[str | None] = mapped_column(sa.String(255))

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
