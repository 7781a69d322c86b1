from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from vcheck.database import get_db
from vcheck.models.enums import UserRole
from vcheck.realtime import ALL_OFFICES
from vcheck.security import resolve_user
from vcheck.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/ws", tags=["streaming"])


@router.websocket("/attendance")
async def attendance_events(
    websocket: WebSocket,
    token: str = Query(...),
    db: AsyncSession = Depends(get_db),
):
    """
    Live feed of check-ins, check-outs, reasons and resolutions.

    Supervisors receive events for their own office, admins for every office.
    """
    try:
        user = await resolve_user(token, db)
    except HTTPException:
        await websocket.close(code=1008)
        return

    if not user.is_active or user.role not in (
        UserRole.SUPERVISOR.value,
        UserRole.ADMIN.value,
    ):
        await websocket.close(code=1008)
        return
    if user.role == UserRole.SUPERVISOR.value and user.office_id is None:
        await websocket.close(code=1008)
        return

    office_id = ALL_OFFICES if user.role == UserRole.ADMIN.value else user.office_id
    # Release the pooled connection; the socket may stay open for hours.
    await db.close()

    manager = websocket.app.state.events
    await manager.connect(websocket, office_id)
    logger.info("Subscriber %s connected (office=%s)", user.id, office_id)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        manager.disconnect(websocket, office_id)
        logger.info("Subscriber %s disconnected", user.id)
