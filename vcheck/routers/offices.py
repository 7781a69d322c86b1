from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vcheck.database import get_db
from vcheck.models.user import User
from vcheck.schemas.common import ApiResponse
from vcheck.schemas.office import (
    MemberAdd,
    OfficeCreate,
    OfficeMembers,
    OfficeRead,
    OfficeUpdate,
    UserRead,
)
from vcheck.security import get_current_user
from vcheck.services.office import OfficeDirectory

router = APIRouter(prefix="/offices", tags=["offices"])


@router.get("", response_model=ApiResponse[List[OfficeRead]])
async def list_offices(
    is_active: Optional[bool] = None,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """All offices, so officers can see where they may check in."""
    offices = await OfficeDirectory(db).list_offices(is_active=is_active)
    return ApiResponse[List[OfficeRead]](
        data=[OfficeRead.model_validate(o) for o in offices]
    )


@router.post(
    "", status_code=status.HTTP_201_CREATED, response_model=ApiResponse[OfficeRead]
)
async def create_office(
    office_in: OfficeCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    office = await OfficeDirectory(db).create_office(user, office_in)
    return ApiResponse[OfficeRead](
        message="Office created successfully", data=OfficeRead.model_validate(office)
    )


@router.get("/{office_id}", response_model=ApiResponse[OfficeRead])
async def get_office(
    office_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    office = await OfficeDirectory(db).get_office(office_id)
    return ApiResponse[OfficeRead](data=OfficeRead.model_validate(office))


@router.patch("/{office_id}", response_model=ApiResponse[OfficeRead])
async def update_office(
    office_id: int,
    office_in: OfficeUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    office = await OfficeDirectory(db).update_office(user, office_id, office_in)
    return ApiResponse[OfficeRead](
        message="Office updated successfully", data=OfficeRead.model_validate(office)
    )


@router.delete("/{office_id}", response_model=ApiResponse[OfficeRead])
async def deactivate_office(
    office_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Soft delete: the office is deactivated, its attendance history stays."""
    office = await OfficeDirectory(db).deactivate_office(user, office_id)
    return ApiResponse[OfficeRead](
        message="Office deactivated", data=OfficeRead.model_validate(office)
    )


@router.get("/{office_id}/members", response_model=ApiResponse[OfficeMembers])
async def list_members(
    office_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    directory = OfficeDirectory(db)
    office = await directory.get_office(office_id)
    members = await directory.list_members(office_id)
    return ApiResponse[OfficeMembers](
        data=OfficeMembers(
            office_id=office.id,
            office_name=office.name,
            members=[UserRead.model_validate(m) for m in members],
        )
    )


@router.post("/{office_id}/members", response_model=ApiResponse[UserRead])
async def add_member(
    office_id: int,
    member: MemberAdd,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    added = await OfficeDirectory(db).add_member(user, office_id, member.user_id)
    return ApiResponse[UserRead](
        message="Member added successfully", data=UserRead.model_validate(added)
    )


@router.delete("/{office_id}/members/{user_id}", response_model=ApiResponse[UserRead])
async def remove_member(
    office_id: int,
    user_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    removed = await OfficeDirectory(db).remove_member(user, office_id, user_id)
    return ApiResponse[UserRead](
        message="Member removed successfully", data=UserRead.model_validate(removed)
    )
