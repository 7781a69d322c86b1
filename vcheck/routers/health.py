from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vcheck.database import get_db

router = APIRouter(prefix="/health", tags=["Health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check(request: Request):
    """
    Simple probe to verify the API server is up.
    """
    events = getattr(request.app.state, "events", None)
    return {
        "status": "ok",
        "service": "VCheck Attendance API",
        "subscribers": events.connection_count if events else 0,
    }


@router.get("/db", status_code=status.HTTP_200_OK)
async def db_health_check(db: AsyncSession = Depends(get_db)):
    """
    Deep probe to verify the Database connection is active.
    """
    try:
        result = await db.execute(text("SELECT 1"))
        if result.scalar_one() == 1:
            return {"status": "up", "database": "connected"}
    except SQLAlchemyError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Database connection failed: {str(e)}",
        )
    raise HTTPException(
        status_code=500, detail="Database returned unexpected result"
    )
