from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vcheck.database import get_db
from vcheck.exceptions import NoOfficeAssigned
from vcheck.models.user import User
from vcheck.schemas.common import ApiResponse
from vcheck.schemas.office import UserRead
from vcheck.security import get_current_user
from vcheck.services.office import OfficeDirectory

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me", response_model=ApiResponse[UserRead])
async def who_am_i(user: User = Depends(get_current_user)):
    return ApiResponse[UserRead](data=UserRead.model_validate(user))


@router.get("/supervisor", response_model=ApiResponse[UserRead])
async def my_supervisor(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Supervisor responsible for the caller's assigned office."""
    if user.office_id is None:
        raise NoOfficeAssigned()
    supervisor = await OfficeDirectory(db).supervisor_for(user.office_id)
    return ApiResponse[UserRead](data=UserRead.model_validate(supervisor))
