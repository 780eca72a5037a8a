# taskboard/main.py
"""FastAPI application for the taskboard backend."""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from taskboard.config import get_settings
from taskboard.database import create_db_and_tables, engine
from taskboard.errors import PersistenceFailure, TaskboardError
from taskboard.mailer import EmailReminderDelivery, SmtpTransport
from taskboard.reminders import ReminderScheduler
from taskboard.routes.tasks import router as tasks_router
from taskboard.routes.users import router as users_router

logger = logging.getLogger(__name__)

settings = get_settings()
logging.getLogger("taskboard").setLevel(settings.log_level)


async def _start_scheduler() -> ReminderScheduler | None:
    if not settings.reminders_enabled:
        logger.info("Reminder scheduler disabled")
        return None
    if not settings.smtp_configured:
        logger.warning("SMTP_HOST not set; reminder emails will not be sent")
        return None

    transport = SmtpTransport.from_settings(settings)
    await asyncio.to_thread(transport.verify)

    scheduler = ReminderScheduler(
        lambda: Session(engine),
        EmailReminderDelivery(transport),
        poll_interval=settings.poll_interval,
        max_attempts=settings.max_attempts,
    )
    scheduler.start()
    return scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create tables, then run the reminder scheduler for the app's lifetime."""
    create_db_and_tables()
    app.state.scheduler = await _start_scheduler()
    try:
        yield
    finally:
        if app.state.scheduler is not None:
            await app.state.scheduler.stop()


app = FastAPI(title="Taskboard", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization", "X-User-Id"],
)

app.include_router(tasks_router)
app.include_router(users_router)


@app.exception_handler(TaskboardError)
async def taskboard_error_handler(request: Request, exc: TaskboardError):
    if isinstance(exc, PersistenceFailure):
        logger.error("Persistence failure on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Database error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Database error"})


@app.get("/api/health")
def health_check():
    """Health check endpoint."""
    scheduler = getattr(app.state, "scheduler", None)
    return {
        "status": "healthy",
        "service": "taskboard-api",
        "reminders": bool(scheduler and scheduler.running),
    }
