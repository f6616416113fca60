"""SQLAlchemy models for the reservation engine database tables."""

from datetime import datetime
from typing import Optional

from sqlalchemy import ForeignKey, Index, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin, UTCDateTime
from domain.enums import ReservationStatus


class RestaurantModel(Base):
    """Restaurant table model; the engine only reads its hours."""

    __tablename__ = "restaurants"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    name: Mapped[str] = mapped_column(
        String(200),
        nullable=False,
    )

    # "HH:MM"; NULL means the configured default applies
    work_starts: Mapped[Optional[str]] = mapped_column(
        String(5),
        nullable=True,
    )

    work_ends: Mapped[Optional[str]] = mapped_column(
        String(5),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<Restaurant(id={self.id}, name='{self.name}', "
            f"hours={self.work_starts}-{self.work_ends})>"
        )


class ReservationModel(Base, TimestampMixin):
    """Reservation table model."""

    __tablename__ = "reservations"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    restaurant_id: Mapped[int] = mapped_column(
        ForeignKey("restaurants.id"),
        nullable=False,
    )

    table_id: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    table_label: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )

    guest_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )

    # Digits only
    guest_phone: Mapped[Optional[str]] = mapped_column(
        String(40),
        nullable=True,
    )

    guest_email: Mapped[Optional[str]] = mapped_column(
        String(254),
        nullable=True,
        index=True,
    )

    guest_count: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
    )

    date_time: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=ReservationStatus.PENDING.value,
        index=True,
    )

    decline_reason: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_reservations_table_slot", "restaurant_id", "table_id", "status", "date_time"),
        Index("ix_reservations_phone_status", "restaurant_id", "guest_phone", "status"),
        Index("ix_reservations_status_created", "status", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<Reservation(id={self.id}, restaurant={self.restaurant_id}, "
            f"table='{self.table_id}', date_time={self.date_time}, "
            f"status='{self.status}')>"
        )


class ReservationEventModel(Base):
    """Lifecycle events, written in the same transaction as the change."""

    __tablename__ = "reservation_events"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )

    reservation_id: Mapped[int] = mapped_column(
        ForeignKey("reservations.id"),
        nullable=False,
        index=True,
    )

    kind: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        index=True,
    )

    previous_status: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
    )

    snapshot: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )

    occurred_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return (
            f"<ReservationEvent(id={self.id}, reservation={self.reservation_id}, "
            f"kind='{self.kind}')>"
        )
