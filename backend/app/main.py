"""
FastAPI app entrypoint.

Project 3776 backend: profiles, study records, assignments, push token registration,
and the scheduled assignment reminders.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from apscheduler.schedulers.background import BackgroundScheduler
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

# Load .env from backend/ before any app code
load_dotenv(Path(__file__).resolve().parent.parent / ".env")

from app.api.routes import assignments, push, study_records, users
from app.config import settings
from app.scheduler.assignment_reminder_job import register_reminder_jobs

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    scheduler = None
    if settings.scheduler_enabled:
        scheduler = BackgroundScheduler(timezone=settings.notify_timezone)
        register_reminder_jobs(scheduler, settings)
        scheduler.start()
        logger.info(
            "Reminder jobs scheduled: weekdays %02d:00, weekends %02d:00 (%s)",
            settings.weekday_reminder_hour,
            settings.weekend_reminder_hour,
            settings.notify_timezone,
        )
    else:
        logger.info("Scheduler disabled (SCHEDULER_ENABLED=false); reminders will not run")
    app.state.scheduler = scheduler
    yield
    if scheduler is not None:
        scheduler.shutdown(wait=False)


app = FastAPI(title="Project 3776", version="0.1.0", lifespan=lifespan)

# CORS: dev origins + optional CORS_ORIGINS (comma-separated) for the hosted frontend
_cors_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
if settings.cors_origins:
    _cors_origins.extend(o.strip() for o in settings.cors_origins.split(",") if o.strip())
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(assignments.router, tags=["assignments"])
app.include_router(push.router, tags=["push"])
app.include_router(users.router, tags=["users"])
app.include_router(study_records.router, tags=["study-records"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
