# salon_agenda/db/models/catalog.py

from __future__ import annotations
import enum
import uuid
from datetime import datetime, timezone
from decimal import Decimal
import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from salon_agenda.db.session import Base


class StylistStatus(str, enum.Enum):
    AVAILABLE = "available"
    BOOKED = "booked"
    OFF = "off"


class Service(Base):
    __tablename__ = "services"
    __table_args__ = (
        sa.CheckConstraint("duration > 0", name="ck_services_duration_positive"),
        sa.CheckConstraint("price IS NULL OR price >= 0", name="ck_services_price_non_negative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    duration: Mapped[int] = mapped_column(sa.Integer, nullable=False, server_default="30")  # minutes
    price: Mapped[Decimal | None] = mapped_column(sa.Numeric(10, 2))

    # Display attributes for agenda cards
    color: Mapped[str | None] = mapped_column(sa.String(32))
    text_color: Mapped[str | None] = mapped_column(sa.String(32))
    border_color: Mapped[str | None] = mapped_column(sa.String(32))

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )


class Stylist(Base):
    __tablename__ = "stylists"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    title: Mapped[str | None] = mapped_column(sa.String(120))
    avatar_url: Mapped[str | None] = mapped_column(sa.Text)
    is_public: Mapped[bool] = mapped_column(sa.Boolean, nullable=False, default=True)
    status: Mapped[StylistStatus] = mapped_column(
        sa.Enum(StylistStatus, native_enum=False, length=16,
                values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=StylistStatus.AVAILABLE,
    )

    created_at: Mapped[datetime] = mapped_column(
        sa.DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc)
    )
