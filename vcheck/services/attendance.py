import datetime
import math
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vcheck.config import settings
from vcheck.exceptions import (
    AccountInactive,
    AlreadyCheckedInToday,
    AlreadyCheckedOut,
    Forbidden,
    NoCheckinFound,
    NoOfficeAssigned,
    NotAMember,
    NotFound,
)
from vcheck.models.attendance import Attendance
from vcheck.models.enums import Facet, FacetStatus, UserRole, Validity
from vcheck.realtime import ConnectionManager
from vcheck.redis_config import CACHE_ERRORS, CacheClient
from vcheck.schemas.common import Coordinate
from vcheck.services.office import OfficeDirectory
from vcheck.utils.clock import hours_between, local_day, utcnow
from vcheck.utils.geo import distance_meters, within_radius
from vcheck.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class GeofenceResult:
    record: Attendance
    distance: float
    max_distance: float
    needs_reason: bool
    message: str


class AttendanceLedger:
    """
    Check-in / check-out state machine.

    Each record starts with a pending check-in facet; checkout adds a second
    pending facet to the same row. Both facets are later resolved by
    ``ApprovalGateway``.
    """

    def __init__(
        self,
        db: AsyncSession,
        cache: CacheClient,
        events: Optional[ConnectionManager] = None,
    ):
        self.db = db
        self.cache = cache
        self.events = events
        self.directory = OfficeDirectory(db)

    @staticmethod
    def _daily_key(user_id: int, day: datetime.date) -> str:
        return f"attendance:{user_id}:{day.isoformat()}"

    async def _seen_checkin(self, key: str) -> bool:
        try:
            return bool(await self.cache.get(key))
        except CACHE_ERRORS as error:
            logger.warning("Cache lookup failed for %s, falling back to database: %s", key, error)
            return False

    async def _remember_checkin(self, key: str) -> None:
        try:
            await self.cache.setex(key, settings.CHECKIN_CACHE_TTL_SECONDS, "checked_in")
        except CACHE_ERRORS as error:
            logger.warning("Cache write failed for %s: %s", key, error)

    async def _publish(self, office_id: int, event: str, record: Attendance) -> None:
        if self.events is None:
            return
        await self.events.publish(
            office_id,
            event,
            {
                "attendance_id": record.id,
                "user_id": record.user_id,
                "officer_name": record.officer_name,
                "status": record.status,
                "checkin_status": record.checkin_status,
                "checkout_status": record.checkout_status,
            },
        )

    async def check_in(
        self,
        user_id: int,
        office_id: int,
        coordinate: Coordinate,
        photo: Optional[str] = None,
        now: Optional[datetime.datetime] = None,
    ) -> GeofenceResult:
        now = now or utcnow()

        user = await self.directory.get_user(user_id)
        if not user.is_active:
            raise AccountInactive()
        if user.office_id is None:
            raise NoOfficeAssigned()

        office = await self.directory.get_active_office(office_id)
        if not await self.directory.is_member(office.id, user.id):
            raise NotAMember(
                "You are not authorized to check in at this office. "
                "Please contact your supervisor to be added as a member."
            )

        today = local_day(now)
        cache_key = self._daily_key(user_id, today)

        # Quick check in the cache (the fast path)
        if await self._seen_checkin(cache_key):
            logger.warning("Duplicate check-in rejected (cache): user=%s day=%s", user_id, today)
            raise AlreadyCheckedInToday()

        distance = distance_meters(coordinate.lat, coordinate.lng, office.lat, office.lng)
        is_valid = within_radius(distance, office.radius)
        office_name, radius = office.name, office.radius

        # Out-of-range check-ins are stored too, so they stay auditable.
        record = Attendance(
            user_id=user.id,
            office_id=office.id,
            officer_name=user.full_name,
            office_name=office_name,
            checkin_date=today,
            checkin_time=now,
            checkin_lat=coordinate.lat,
            checkin_lng=coordinate.lng,
            distance=distance,
            status=(Validity.VALID if is_valid else Validity.INVALID).value,
            checkin_status=FacetStatus.PENDING.value,
            checkin_photo=photo,
        )
        self.db.add(record)
        try:
            await self.db.commit()
        except IntegrityError:
            # uq_user_attendance_daily: another request won the race
            await self.db.rollback()
            await self._remember_checkin(cache_key)
            logger.warning("Duplicate check-in rejected (constraint): user=%s day=%s", user_id, today)
            raise AlreadyCheckedInToday()

        await self.db.refresh(record)
        await self._remember_checkin(cache_key)

        logger.info(
            "Check-in %s: user=%s office=%s distance=%sm status=%s",
            record.id, user_id, office_id, distance, record.status,
        )
        await self._publish(office_id, "attendance.checked_in", record)

        if is_valid:
            message = (
                f"Check-in recorded at {office_name}. You are {distance}m away; "
                "awaiting supervisor approval."
            )
        else:
            message = (
                f"You are {distance}m from {office_name} (allowed {radius}m). "
                "Please submit a reason for this check-in."
            )
        return GeofenceResult(record, distance, radius, not is_valid, message)

    async def check_out(
        self,
        user_id: int,
        office_id: int,
        coordinate: Coordinate,
        photo: Optional[str] = None,
        now: Optional[datetime.datetime] = None,
    ) -> GeofenceResult:
        now = now or utcnow()

        user = await self.directory.get_user(user_id)
        if not user.is_active:
            raise AccountInactive()
        office = await self.directory.get_active_office(office_id)

        query = (
            select(Attendance)
            .where(
                Attendance.user_id == user_id,
                Attendance.office_id == office_id,
                Attendance.checkin_date == local_day(now),
            )
            .order_by(Attendance.checkin_time.desc(), Attendance.id.desc())
            .limit(1)
        )
        record = await self.db.scalar(query)
        if record is None:
            raise NoCheckinFound()
        if record.checkout_time is not None:
            raise AlreadyCheckedOut()

        distance = distance_meters(coordinate.lat, coordinate.lng, office.lat, office.lng)
        is_valid = within_radius(distance, office.radius)
        total_hours = max(hours_between(record.checkin_time, now), 0.0)
        office_name, radius = office.name, office.radius

        # Conditional update: only the first checkout may fill the facet.
        result = await self.db.execute(
            update(Attendance)
            .where(Attendance.id == record.id, Attendance.checkout_time.is_(None))
            .values(
                checkout_time=now,
                checkout_lat=coordinate.lat,
                checkout_lng=coordinate.lng,
                checkout_distance=distance,
                checkout_status=FacetStatus.PENDING.value,
                checkout_photo=photo,
                total_hours=total_hours,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            raise AlreadyCheckedOut()
        await self.db.commit()
        await self.db.refresh(record)

        logger.info(
            "Check-out %s: user=%s distance=%sm total_hours=%s",
            record.id, user_id, distance, total_hours,
        )
        await self._publish(office_id, "attendance.checked_out", record)

        if is_valid:
            message = f"Checkout recorded at {office_name} after {total_hours}h."
        else:
            message = (
                f"You are {distance}m from {office_name} (allowed {radius}m). "
                "Please submit a reason for this check-out."
            )
        return GeofenceResult(record, distance, radius, not is_valid, message)

    async def attach_reason(
        self,
        attendance_id: int,
        user_id: int,
        facet: Facet,
        reason: str,
        reason_photo: Optional[str] = None,
    ) -> Attendance:
        """Informational only: never changes the facet's workflow status."""
        record = await self.db.get(Attendance, attendance_id)
        if record is None:
            raise NotFound("Attendance record not found")
        if record.user_id != user_id:
            raise Forbidden("You can only add reason to your own attendance")

        setattr(record, f"{facet.value}_reason", reason)
        if reason_photo:
            setattr(record, f"{facet.value}_reason_photo", reason_photo)
        await self.db.commit()
        await self.db.refresh(record)

        logger.info("Reason attached to %s %s by user %s", facet.value, attendance_id, user_id)
        await self._publish(record.office_id, "attendance.reason_attached", record)
        return record

    # --- History ---
    async def list_mine(self, user_id: int, limit: int = 50) -> Sequence[Attendance]:
        query = (
            select(Attendance)
            .where(Attendance.user_id == user_id)
            .order_by(Attendance.checkin_time.desc())
            .limit(limit)
        )
        result = await self.db.execute(query)
        return result.scalars().all()

    async def list_records(
        self,
        actor_id: int,
        start_date: Optional[datetime.date] = None,
        end_date: Optional[datetime.date] = None,
        validity: Optional[Validity] = None,
        user_id: Optional[int] = None,
        office_id: Optional[int] = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[Sequence[Attendance], int]:
        actor = await self.directory.get_user(actor_id)
        if actor.role not in (UserRole.SUPERVISOR.value, UserRole.ADMIN.value):
            raise Forbidden("Only supervisors and admins can browse attendance")

        query = select(Attendance)
        if actor.role == UserRole.SUPERVISOR.value:
            if actor.office_id is None:
                return [], 0
            office_id = actor.office_id
        if office_id is not None:
            query = query.where(Attendance.office_id == office_id)
        if start_date is not None:
            query = query.where(Attendance.checkin_date >= start_date)
        if end_date is not None:
            query = query.where(Attendance.checkin_date <= end_date)
        if validity is not None:
            query = query.where(Attendance.status == validity.value)
        if user_id is not None:
            query = query.where(Attendance.user_id == user_id)

        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))
        page_query = (
            query.order_by(Attendance.checkin_time.desc(), Attendance.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(page_query)
        return result.scalars().all(), int(total or 0)


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit) if limit else 0

