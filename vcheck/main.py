import asyncio
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from alembic import command  # type: ignore
from alembic.config import Config
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from vcheck.config import settings
from vcheck.database import engine
from vcheck.exceptions import VCheckError
from vcheck.realtime import ConnectionManager
from vcheck.redis_config import build_cache_client
from vcheck.routers import (
    attendance_router,
    events_router,
    health_router,
    offices_router,
    users_router,
)
from vcheck.schemas.common import ErrorResponse
from vcheck.utils.logging import get_logger

logger = get_logger(__name__)

ROOT_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def run_migrations() -> None:
    alembic_cfg = Config(os.path.join(ROOT_DIR, "alembic.ini"))
    alembic_cfg.set_main_option("script_location", os.path.join(ROOT_DIR, "alembic"))
    command.upgrade(alembic_cfg, "head")


# Lifecycle Manager
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Server starting up... DB URL: %s", settings.DATABASE_URL.split("@")[-1])
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            # env.py drives its own event loop, so keep it off ours.
            await asyncio.to_thread(run_migrations)
            logger.info("Database is up to date.")
        except Exception:
            logger.exception("Migration failed")
    try:
        async with engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
        logger.info("Database connection established.")
    except SQLAlchemyError:
        logger.exception("CRITICAL: Database connection failed!")

    # Process-wide handles, created once and injected through app.state.
    app.state.cache = await build_cache_client(settings)
    app.state.events = ConnectionManager()

    yield

    logger.info("Server shutting down...")
    await app.state.cache.close()
    await engine.dispose()


ERROR_RESPONSES = {
    code: {"model": ErrorResponse} for code in (400, 401, 403, 404, 409, 500)
}

app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    lifespan=lifespan,
    responses=ERROR_RESPONSES,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error envelope: {"success": false, "error": <kind>, "message": ...} ---
@app.exception_handler(VCheckError)
async def handle_domain_error(request: Request, exc: VCheckError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.kind, "message": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={
            "success": False,
            "error": "ValidationError",
            "message": "Invalid request",
            "details": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(StarletteHTTPException)
async def handle_http_error(request: Request, exc: StarletteHTTPException):
    kind = "Unauthorized" if exc.status_code == 401 else "HTTPError"
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": kind, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(SQLAlchemyError)
async def handle_database_error(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "InternalError",
            "message": "Database unavailable, please retry later",
        },
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "InternalError",
            "message": "Internal server error, please retry later",
        },
    )


# --- Register Routers ---
app.include_router(attendance_router)
app.include_router(offices_router)
app.include_router(users_router)
app.include_router(events_router)
app.include_router(health_router)


def start():
    import uvicorn

    uvicorn.run(
        "vcheck.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
    )


@app.get("/")
async def root():
    return {
        "message": f"Welcome to {settings.PROJECT_NAME}",
        "docs": "/docs",
        "version": settings.VERSION,
    }
