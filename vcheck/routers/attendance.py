import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from vcheck.database import get_db
from vcheck.models.enums import Validity
from vcheck.models.user import User
from vcheck.realtime import ConnectionManager, get_event_hub
from vcheck.redis_config import CacheClient, get_cache
from vcheck.schemas.attendance import (
    ApprovalRequest,
    AttendanceOutcome,
    AttendancePage,
    AttendanceRead,
    CheckInRequest,
    CheckOutRequest,
    ReasonAck,
    ReasonRequest,
    ResolutionRead,
)
from vcheck.schemas.common import ApiResponse
from vcheck.security import get_current_user
from vcheck.services.approval import ApprovalGateway
from vcheck.services.attendance import AttendanceLedger, GeofenceResult, total_pages

router = APIRouter(tags=["attendance"])


def _outcome(result: GeofenceResult) -> AttendanceOutcome:
    return AttendanceOutcome(
        attendance=AttendanceRead.model_validate(result.record),
        distance=result.distance,
        max_distance=result.max_distance,
        needs_reason=result.needs_reason,
    )


@router.post(
    "/checkin",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[AttendanceOutcome],
)
async def check_in(
    request: CheckInRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CacheClient = Depends(get_cache),
    events: ConnectionManager = Depends(get_event_hub),
):
    """Record today's check-in. Out-of-range check-ins are kept as Invalid and need a reason."""
    ledger = AttendanceLedger(db, cache, events)
    result = await ledger.check_in(user.id, request.office_id, request, photo=request.photo)
    return ApiResponse[AttendanceOutcome](message=result.message, data=_outcome(result))


@router.post("/checkout", response_model=ApiResponse[AttendanceOutcome])
async def check_out(
    request: CheckOutRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CacheClient = Depends(get_cache),
    events: ConnectionManager = Depends(get_event_hub),
):
    ledger = AttendanceLedger(db, cache, events)
    result = await ledger.check_out(user.id, request.office_id, request, photo=request.photo)
    return ApiResponse[AttendanceOutcome](message=result.message, data=_outcome(result))


@router.post("/attendance/reason", response_model=ApiResponse[ReasonAck])
async def attach_reason(
    request: ReasonRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CacheClient = Depends(get_cache),
    events: ConnectionManager = Depends(get_event_hub),
):
    """Officer explains an out-of-range check-in or check-out."""
    ledger = AttendanceLedger(db, cache, events)
    record = await ledger.attach_reason(
        request.attendance_id, user.id, request.type, request.reason, request.reason_photo
    )
    return ApiResponse[ReasonAck](
        message=f"Reason added successfully for {request.type.value}",
        data=ReasonAck(
            attendance_id=record.id,
            type=request.type,
            reason=request.reason,
            has_reason_photo=bool(request.reason_photo),
        ),
    )


@router.post("/attendance/approve", response_model=ApiResponse[ResolutionRead])
async def resolve_attendance(
    request: ApprovalRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    events: ConnectionManager = Depends(get_event_hub),
):
    gateway = ApprovalGateway(db, events)
    resolution = await gateway.resolve(
        user.id,
        request.attendance_id,
        request.type,
        request.action,
        request.rejection_reason,
    )
    label = "Check-in" if request.type.value == "checkin" else "Check-out"
    return ApiResponse[ResolutionRead](
        message=f"{label} {resolution.status.value} successfully",
        data=ResolutionRead(
            attendance_id=resolution.record.id,
            type=resolution.facet,
            status=resolution.status.value,
            approved_by=resolution.approver_name,
            approved_by_id=resolution.approver_id,
            approved_at=resolution.resolved_at,
            rejection_reason=resolution.rejection_reason,
        ),
    )


@router.get("/attendance/approve", response_model=ApiResponse[List[AttendanceRead]])
async def list_pending(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Pending check-ins/check-outs for the caller's office (all offices for admins)."""
    gateway = ApprovalGateway(db)
    records = await gateway.list_pending(user.id)
    return ApiResponse[List[AttendanceRead]](
        message=f"{len(records)} pending record(s)",
        data=[AttendanceRead.model_validate(r) for r in records],
    )


@router.get("/attendance/me", response_model=ApiResponse[List[AttendanceRead]])
async def my_attendance(
    limit: int = Query(50, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CacheClient = Depends(get_cache),
):
    ledger = AttendanceLedger(db, cache)
    records = await ledger.list_mine(user.id, limit=limit)
    return ApiResponse[List[AttendanceRead]](
        data=[AttendanceRead.model_validate(r) for r in records]
    )


@router.get("/attendance", response_model=ApiResponse[AttendancePage])
async def attendance_history(
    start_date: Optional[datetime.date] = Query(None, description="YYYY-MM-DD"),
    end_date: Optional[datetime.date] = Query(None, description="YYYY-MM-DD"),
    validity: Optional[Validity] = Query(None, alias="status", description="Valid or Invalid"),
    user_id: Optional[int] = None,
    office_id: Optional[int] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    cache: CacheClient = Depends(get_cache),
):
    """
    Fetch attendance history with optional filtering (supervisors and admins).
    """
    ledger = AttendanceLedger(db, cache)
    records, total = await ledger.list_records(
        user.id,
        start_date=start_date,
        end_date=end_date,
        validity=validity,
        user_id=user_id,
        office_id=office_id,
        page=page,
        limit=limit,
    )
    return ApiResponse[AttendancePage](
        data=AttendancePage(
            items=[AttendanceRead.model_validate(r) for r in records],
            total=total,
            page=page,
            limit=limit,
            total_pages=total_pages(total, limit),
        )
    )
