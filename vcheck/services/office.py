from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vcheck.exceptions import (
    AlreadyExists,
    AlreadyMember,
    Forbidden,
    NotAMember,
    NotFound,
    OfficeInactive,
    OfficeNotFound,
    UserNotFound,
    WrongJurisdiction,
)
from vcheck.models.enums import UserRole
from vcheck.models.office import Office, OfficeMember
from vcheck.models.user import User
from vcheck.schemas.office import OfficeCreate, OfficeUpdate
from vcheck.utils.logging import get_logger

logger = get_logger(__name__)


class OfficeDirectory:
    """Office geofences, membership and the supervisor-office binding."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # --- Lookups ---
    async def get_user(self, user_id: int) -> User:
        user = await self.db.get(User, user_id)
        if user is None:
            raise UserNotFound()
        return user

    async def get_office(self, office_id: int) -> Office:
        office = await self.db.get(Office, office_id)
        if office is None:
            raise OfficeNotFound()
        return office

    async def get_active_office(self, office_id: int) -> Office:
        office = await self.get_office(office_id)
        if not office.is_active:
            raise OfficeInactive()
        return office

    async def is_member(self, office_id: int, user_id: int) -> bool:
        member = await self.db.get(OfficeMember, (office_id, user_id))
        return member is not None

    async def supervisor_for(self, office_id: int) -> User:
        # Lowest id wins if an office ever ends up with several supervisors.
        query = (
            select(User)
            .where(
                User.office_id == office_id,
                User.role == UserRole.SUPERVISOR.value,
                User.is_active.is_(True),
            )
            .order_by(User.id)
            .limit(1)
        )
        supervisor = await self.db.scalar(query)
        if supervisor is None:
            raise NotFound("No supervisor is assigned to this office")
        return supervisor

    async def list_offices(self, is_active: Optional[bool] = None) -> Sequence[Office]:
        query = select(Office).order_by(Office.name)
        if is_active is not None:
            query = query.where(Office.is_active.is_(is_active))
        result = await self.db.execute(query)
        return result.scalars().all()

    async def list_members(self, office_id: int) -> Sequence[User]:
        await self.get_office(office_id)
        query = (
            select(OfficeMember)
            .options(selectinload(OfficeMember.user))
            .where(OfficeMember.office_id == office_id)
            .order_by(OfficeMember.added_at, OfficeMember.user_id)
        )
        result = await self.db.execute(query)
        return [member.user for member in result.scalars().all()]

    # --- Administration (admin only) ---
    @staticmethod
    def _require_admin(actor: User) -> None:
        if actor.role != UserRole.ADMIN.value:
            raise Forbidden("Access denied. Admin privileges required.")

    async def create_office(self, actor: User, office_in: OfficeCreate) -> Office:
        self._require_admin(actor)
        office = Office(
            name=office_in.name,
            address=office_in.address,
            description=office_in.description,
            lat=office_in.location.lat,
            lng=office_in.location.lng,
            radius=office_in.radius,
            is_active=office_in.is_active,
        )
        self.db.add(office)
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise AlreadyExists("Office name already exists")
        await self.db.refresh(office)
        logger.info("Office %s created: %s (radius=%sm)", office.id, office.name, office.radius)
        return office

    async def update_office(
        self, actor: User, office_id: int, office_in: OfficeUpdate
    ) -> Office:
        self._require_admin(actor)
        office = await self.get_office(office_id)

        changes = office_in.model_dump(exclude_unset=True, exclude={"location"})
        if office_in.location is not None:
            changes["lat"] = office_in.location.lat
            changes["lng"] = office_in.location.lng
        for field, value in changes.items():
            setattr(office, field, value)

        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise AlreadyExists("Office name already exists")
        await self.db.refresh(office)
        logger.info("Office %s updated: %s", office_id, sorted(changes))
        return office

    async def deactivate_office(self, actor: User, office_id: int) -> Office:
        """Soft delete: attendance keeps pointing at the office row."""
        self._require_admin(actor)
        office = await self.get_office(office_id)
        office.is_active = False
        await self.db.commit()
        await self.db.refresh(office)
        logger.info("Office %s deactivated", office_id)
        return office

    # --- Membership (supervisor of the office, or admin) ---
    @staticmethod
    def _require_office_manager(actor: User, office_id: int) -> None:
        if actor.role not in (UserRole.SUPERVISOR.value, UserRole.ADMIN.value):
            raise Forbidden("Only supervisors and admins can manage office members")
        if actor.role == UserRole.SUPERVISOR.value and actor.office_id != office_id:
            raise WrongJurisdiction("You can only manage members of your own office")

    async def add_member(self, actor: User, office_id: int, user_id: int) -> User:
        """
        Add ``user_id`` to the office and point the user's assignment at it.

        A user is a member of exactly one office: joining a new office drops
        the previous membership so the member set and ``users.office_id``
        never disagree.
        """
        self._require_office_manager(actor, office_id)
        office = await self.get_office(office_id)
        user = await self.get_user(user_id)

        current = await self.db.scalar(
            select(OfficeMember).where(OfficeMember.user_id == user_id)
        )
        if current is not None:
            if current.office_id == office_id:
                raise AlreadyMember()
            await self.db.delete(current)
            await self.db.flush()

        self.db.add(OfficeMember(office_id=office.id, user_id=user.id))
        user.office_id = office.id
        try:
            await self.db.commit()
        except IntegrityError:
            await self.db.rollback()
            raise AlreadyMember()
        await self.db.refresh(user)
        logger.info("User %s added to office %s", user_id, office_id)
        return user

    async def remove_member(self, actor: User, office_id: int, user_id: int) -> User:
        self._require_office_manager(actor, office_id)
        await self.get_office(office_id)
        user = await self.get_user(user_id)

        member = await self.db.get(OfficeMember, (office_id, user_id))
        if member is None:
            raise NotAMember()

        await self.db.delete(member)
        if user.office_id == office_id:
            user.office_id = None
        await self.db.commit()
        await self.db.refresh(user)
        logger.info("User %s removed from office %s", user_id, office_id)
        return user
