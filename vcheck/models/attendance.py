from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, DateTime, Float, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin
from .enums import Facet, FacetStatus


class Attendance(Base, TimestampMixin):
    __tablename__ = "attendance"

    id: Mapped[int] = mapped_column(primary_key=True, index=True)

    user_id: Mapped[int] = mapped_column(
        ForeignKey("users.id"), nullable=False, index=True
    )
    office_id: Mapped[int] = mapped_column(
        ForeignKey("offices.id"), nullable=False, index=True
    )

    # Snapshots taken at check-in; later renames do not rewrite history.
    officer_name: Mapped[str] = mapped_column(String(100), nullable=False)
    office_name: Mapped[str] = mapped_column(String(120), nullable=False)

    # Local calendar day of the check-in (stored separately for the unique index)
    checkin_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)

    # --- Check-in facet ---
    checkin_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    checkin_lat: Mapped[float] = mapped_column(Float, nullable=False)
    checkin_lng: Mapped[float] = mapped_column(Float, nullable=False)
    distance: Mapped[float] = mapped_column(Float, nullable=False)
    # Valid / Invalid, frozen forever
    status: Mapped[str] = mapped_column(String(10), nullable=False, index=True)
    checkin_status: Mapped[str] = mapped_column(
        String(10), nullable=False, default=FacetStatus.PENDING.value, index=True
    )
    checkin_approved_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
    checkin_approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    checkin_rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    checkin_photo: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    checkin_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    checkin_reason_photo: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # --- Check-out facet (absent until checkout) ---
    checkout_time: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    checkout_lat: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    checkout_lng: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    checkout_distance: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    checkout_status: Mapped[Optional[str]] = mapped_column(
        String(10), nullable=True, index=True
    )
    checkout_approved_by: Mapped[Optional[int]] = mapped_column(
        ForeignKey("users.id"), nullable=True
    )
    checkout_approved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    checkout_rejection_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    checkout_photo: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    checkout_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    checkout_reason_photo: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    total_hours: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # one check-in per user per local day.
    __table_args__ = (
        UniqueConstraint("user_id", "checkin_date", name="uq_user_attendance_daily"),
    )

    def facet_status(self, facet: Facet) -> Optional[str]:
        return getattr(self, f"{facet.value}_status")

    def __repr__(self):
        return (
            f"<Attendance(id={self.id}, user_id={self.user_id}, "
            f"date='{self.checkin_date}', status='{self.status}')>"
        )
