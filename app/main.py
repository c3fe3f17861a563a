from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request, status

from fastapi.middleware.cors import CORSMiddleware
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.config import settings, setup_logging
from app.database import close_db, init_db
from app.dependencies import build_services, reset_service_locator
from app.routers import debug_router, main_router, schedules_router
from app.schemas import ErrorResponse
from app.services.scheduler_service import PlaybackScheduler
from app.services.schedule_service import ScheduleNotFoundError


setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown events"""
    logger.info("Starting Playback Scheduler...")

    scheduler: PlaybackScheduler | None = None
    try:
        logger.info("Initializing database...")
        session_factory = await init_db()

        locator = build_services(session_factory, settings)

        logger.info("Starting scan scheduler...")
        scheduler = locator.get(PlaybackScheduler)
        scheduler.start()

        logger.info("Playback Scheduler started successfully")
    except Exception as e:
        logger.error(f"Failed to start Playback Scheduler: {e}", exc_info=True)
        raise

    yield

    logger.info("Shutting down Playback Scheduler...")

    try:
        scheduler.shutdown()
    except Exception as e:
        logger.error(f"Error during scheduler shutdown: {e}", exc_info=True)

    await close_db()
    reset_service_locator()
    logger.info("Playback Scheduler stopped")


app = FastAPI(
    title="Playback Scheduler",
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(main_router)
app.include_router(schedules_router)
app.include_router(debug_router)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Log validation errors with details"""
    logger.warning(f"Validation error for {request.method} {request.url.path}")
    logger.warning(f"Validation details: {exc.errors()}")

    try:
        body = await request.body()
        logger.warning(f"Request body: {body.decode('utf-8')}")
    except (ValueError, UnicodeDecodeError, RuntimeError):
        logger.warning("Could not read request body")

    # Create a properly serializable error response
    errors = []
    for error in exc.errors():
        error_dict = {
            "type": error.get("type"),
            "loc": error.get("loc"),
            "msg": error.get("msg"),
            "input": str(error.get("input", ""))[:100]
        }
        errors.append(error_dict)

    return JSONResponse(
        status_code=422,
        content={
            "detail": errors
        }
    )


@app.exception_handler(ScheduleNotFoundError)
async def not_found_handler(request: Request, exc: ScheduleNotFoundError):
    logger.info("Schedule not found: %s", exc.schedule_id)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=ErrorResponse(error=str(exc)).model_dump(exclude_none=True),
    )


@app.exception_handler(ValueError)
async def bad_request_handler(request: Request, exc: ValueError):
    logger.warning("Bad request: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=ErrorResponse(error=str(exc)).model_dump(exclude_none=True),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=ErrorResponse(
            error="Internal server error",
            message=str(exc) or "unknown",
        ).model_dump(),
    )
