from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

DataT = TypeVar("DataT")


# --- Response envelope ---
class ApiResponse(BaseModel, Generic[DataT]):
    success: bool = True
    message: Optional[str] = None
    data: DataT


class ErrorResponse(BaseModel):
    success: bool = False
    error: str = Field(..., examples=["AlreadyCheckedInToday"])
    message: str
    details: Optional[list] = None


# --- Shared value objects ---
class Coordinate(BaseModel):
    lat: float = Field(..., ge=-90, le=90, examples=[10.7769])
    lng: float = Field(..., ge=-180, le=180, examples=[106.7009])
