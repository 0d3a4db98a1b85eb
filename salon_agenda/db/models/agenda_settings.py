# salon_agenda/db/models/agenda_settings.py

from __future__ import annotations
import uuid
from datetime import datetime, time, timezone
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from salon_agenda.db.session import Base

ALL_DAYS = [0, 1, 2, 3, 4, 5, 6]  # 0=Sun .. 6=Sat

class AgendaSettings(Base):
    __tablename__ = "agenda_settings"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, unique=True
    )
    start_hour: Mapped[time] = mapped_column(sa.Time, nullable=False, default=time(8, 0))
    end_hour: Mapped[time] = mapped_column(sa.Time, nullable=False, default=time(18, 0))
    service_duration: Mapped[int] = mapped_column(sa.Integer, nullable=False, default=30)  # slot minutes
    working_days: Mapped[list[int]] = mapped_column(sa.JSON, nullable=False, default=lambda: list(ALL_DAYS))

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
    updated_at: Mapped[datetime | None] = mapped_column(sa.DateTime(timezone=True))
