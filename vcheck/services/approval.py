import datetime
from dataclasses import dataclass
from typing import Optional, Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vcheck.config import settings
from vcheck.exceptions import (
    AccountInactive,
    AlreadyResolved,
    CheckoutNotSubmitted,
    Forbidden,
    MissingReason,
    NotFound,
    WrongJurisdiction,
)
from vcheck.models.attendance import Attendance
from vcheck.models.enums import Decision, Facet, FacetStatus, UserRole
from vcheck.models.user import User
from vcheck.realtime import ConnectionManager
from vcheck.services.office import OfficeDirectory
from vcheck.utils.clock import utcnow
from vcheck.utils.logging import get_logger

logger = get_logger(__name__)

FACET_LABELS = {Facet.CHECKIN: "Check-in", Facet.CHECKOUT: "Check-out"}
REVIEWER_ROLES = (UserRole.SUPERVISOR.value, UserRole.ADMIN.value)


@dataclass
class Resolution:
    record: Attendance
    facet: Facet
    status: FacetStatus
    approver_id: int
    approver_name: str
    resolved_at: datetime.datetime
    rejection_reason: Optional[str] = None


class ApprovalGateway:
    def __init__(self, db: AsyncSession, events: Optional[ConnectionManager] = None):
        self.db = db
        self.events = events
        self.directory = OfficeDirectory(db)

    async def _reviewer(self, actor_id: int, action: str) -> User:
        actor = await self.directory.get_user(actor_id)
        if not actor.is_active:
            raise AccountInactive()
        if actor.role not in REVIEWER_ROLES:
            raise Forbidden(f"Only supervisors can {action} attendance")
        return actor

    async def resolve(
        self,
        actor_id: int,
        attendance_id: int,
        facet: Facet,
        decision: Decision,
        rejection_reason: Optional[str] = None,
        now: Optional[datetime.datetime] = None,
    ) -> Resolution:
        """
        Move one facet from ``pending`` to ``approved`` / ``rejected``.

        Supervisors are limited to records of their assigned office; admins
        may resolve anything. A resolved facet is terminal.
        """
        now = now or utcnow()
        actor = await self._reviewer(actor_id, "approve")
        approver_id, approver_name = actor.id, actor.full_name

        record = await self.db.get(Attendance, attendance_id)
        if record is None:
            raise NotFound("Attendance record not found")

        if actor.role == UserRole.SUPERVISOR.value and actor.office_id != record.office_id:
            raise WrongJurisdiction("You can only approve attendance for your office")

        label = FACET_LABELS[facet]
        current = record.facet_status(facet)
        if current is None:
            raise CheckoutNotSubmitted()
        if current != FacetStatus.PENDING.value:
            raise AlreadyResolved(f"{label} already {current}")

        reason = (rejection_reason or "").strip() or None
        if decision is Decision.REJECT and reason is None:
            raise MissingReason()

        outcome = decision.outcome
        values = {
            f"{facet.value}_status": outcome.value,
            f"{facet.value}_approved_by": approver_id,
            f"{facet.value}_approved_at": now,
        }
        if decision is Decision.REJECT:
            values[f"{facet.value}_rejection_reason"] = reason

        # Compare-and-swap on the facet status guards concurrent reviewers.
        status_column = getattr(Attendance, f"{facet.value}_status")
        result = await self.db.execute(
            update(Attendance)
            .where(
                Attendance.id == attendance_id,
                status_column == FacetStatus.PENDING.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self.db.rollback()
            await self.db.refresh(record)
            raise AlreadyResolved(f"{label} already {record.facet_status(facet)}")
        await self.db.commit()
        await self.db.refresh(record)

        logger.info(
            "%s %s %s by user %s", label, attendance_id, outcome.value, approver_id
        )
        if self.events is not None:
            await self.events.publish(
                record.office_id,
                "attendance.resolved",
                {
                    "attendance_id": record.id,
                    "user_id": record.user_id,
                    "type": facet.value,
                    "status": outcome.value,
                    "approved_by": approver_name,
                },
            )

        return Resolution(
            record=record,
            facet=facet,
            status=outcome,
            approver_id=approver_id,
            approver_name=approver_name,
            resolved_at=now,
            rejection_reason=reason if decision is Decision.REJECT else None,
        )

    async def list_pending(self, actor_id: int) -> Sequence[Attendance]:
        """Records with either facet pending, newest check-in first."""
        actor = await self._reviewer(actor_id, "view pending")

        query = select(Attendance).where(
            or_(
                Attendance.checkin_status == FacetStatus.PENDING.value,
                Attendance.checkout_status == FacetStatus.PENDING.value,
            )
        )
        if actor.role == UserRole.SUPERVISOR.value:
            if actor.office_id is None:
                return []
            query = query.where(Attendance.office_id == actor.office_id)

        query = query.order_by(Attendance.checkin_time.desc(), Attendance.id.desc()).limit(
            settings.PENDING_LIST_LIMIT
        )
        result = await self.db.execute(query)
        return result.scalars().all()
