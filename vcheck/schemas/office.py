from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from vcheck.config import settings

from .common import Coordinate


class OfficeBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=120, examples=["District 1 Station"])
    address: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


# --- Create Schema (Input) ---
class OfficeCreate(OfficeBase):
    location: Coordinate
    radius: float = Field(settings.DEFAULT_OFFICE_RADIUS_M, ge=1, description="Meters")
    is_active: bool = True


# --- Update Schema (Input, partial) ---
class OfficeUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=120)
    address: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    location: Optional[Coordinate] = None
    radius: Optional[float] = Field(None, ge=1)
    is_active: Optional[bool] = None


# --- Read Schema (Output) ---
class OfficeRead(OfficeBase):
    id: int
    lat: float
    lng: float
    radius: float
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class MemberAdd(BaseModel):
    user_id: int


class UserRead(BaseModel):
    id: int
    username: str
    email: str
    full_name: str
    role: str
    badge_number: Optional[str] = None
    department: Optional[str] = None
    office_id: Optional[int] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class OfficeMembers(BaseModel):
    office_id: int
    office_name: str
    members: List[UserRead]
