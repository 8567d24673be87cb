"""SQLAlchemy models for the reservation booking engine tables."""

import datetime as dt
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import String, Integer, Date, Text, JSON, Index, UniqueConstraint, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin
from domain.enums import ReservationStatus


# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class AvailabilityConfigRow(Base, TimestampMixin):
    """Availability rules, one row per business."""

    __tablename__ = "availability_configs"

    business_id: Mapped[str] = mapped_column(
        String(128),
        primary_key=True,
    )

    # AvailabilityConfig.model_dump(mode="json")
    config_json: Mapped[dict] = mapped_column(
        JSONType,
        nullable=False,
        default=dict,
    )

    def __repr__(self) -> str:
        """String representation of AvailabilityConfigRow."""
        return f"<AvailabilityConfigRow(business_id='{self.business_id}')>"


class Reservation(Base, TimestampMixin):
    """Reservation table model."""

    __tablename__ = "reservations"

    id: Mapped[UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid4,
        nullable=False,
    )

    business_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        index=True,
    )

    business_name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
        default="",
    )

    user_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
        index=True,
    )

    user_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        default="",
    )

    contact_info: Mapped[Optional[dict]] = mapped_column(
        JSONType,
        nullable=True,
    )

    date: Mapped[dt.date] = mapped_column(
        Date,
        nullable=False,
        index=True,
    )

    time: Mapped[str] = mapped_column(
        String(5),
        nullable=False,
    )

    party_size: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ReservationStatus.PENDING.value,
        index=True,
    )

    __table_args__ = (
        Index("ix_reservations_slot", "business_id", "date", "time", "status"),
        Index("ix_reservations_user_date", "user_id", "date"),
    )

    def __repr__(self) -> str:
        """String representation of Reservation."""
        return (
            f"<Reservation(id={self.id}, business='{self.business_id}', "
            f"date={self.date}, time='{self.time}', party_size={self.party_size}, "
            f"status='{self.status}')>"
        )


class SlotCounter(Base):
    """Active reservation count per (business, date, time)."""

    __tablename__ = "slot_counters"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    business_id: Mapped[str] = mapped_column(
        String(128),
        nullable=False,
    )

    date: Mapped[dt.date] = mapped_column(
        Date,
        nullable=False,
    )

    time: Mapped[str] = mapped_column(
        String(5),
        nullable=False,
    )

    active_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
    )

    __table_args__ = (
        UniqueConstraint("business_id", "date", "time", name="uq_slot_counters_slot"),
    )

    def __repr__(self) -> str:
        """String representation of SlotCounter."""
        return (
            f"<SlotCounter(business='{self.business_id}', date={self.date}, "
            f"time='{self.time}', active_count={self.active_count})>"
        )
