"""
# `app/main.py` - Application entry point

## App
- `FastAPI` instance with CORS from `settings.allowed_origins` (comma separated, or `*`).
- Domain errors (`HorizonError`) are rendered by `register_exception_handlers`.

## Routers
**Public / member:** `/auth`, `/dashboard`, `/tips`
**Admin:** `/admin` (members, contributions, stats), `/admin/messages`

## Startup
1. `bootstrap_admin` makes sure the admin principal and its role row exist
   (skipped with a warning when `ADMIN_EMAIL` / `ADMIN_PASSWORD` are missing,
   never blocks startup).
2. When `REMINDERS_ENABLED=true`, an `AsyncIOScheduler` job sends missed-day SMS
   reminders every day at `REMINDER_HOUR`.
"""
import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from horizon.app.config import settings
from horizon.app.core.errors import register_exception_handlers
from horizon.app.core.session import bootstrap_admin
from horizon.app.integrations.firebase_remote import FirebaseDataService
from horizon.app.routers import admin, auth, dashboard, messages, tips
from horizon.app.services.reminders import JOB_ID, send_missed_day_reminders_once

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger("horizon")

scheduler = AsyncIOScheduler()

app = FastAPI(
    title=f"{settings.project_name} API",
    description="Backend API for a group savings scheme: members, daily contributions, balances and messages.",
    version="1.0.0",
    redirect_slashes=False,
)

allow_origins = [origin.strip() for origin in settings.allowed_origins.split(",")] if settings.allowed_origins else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(auth.router)
app.include_router(dashboard.router)
app.include_router(tips.router)
app.include_router(admin.router)
app.include_router(messages.router)


async def run_reminders() -> None:
    await send_missed_day_reminders_once(FirebaseDataService())


@app.on_event("startup")
async def _bootstrap_admin():
    await bootstrap_admin(FirebaseDataService(), settings.admin_email, settings.admin_password)


@app.on_event("startup")
async def _startup_scheduler():
    if not settings.reminders_enabled:
        return
    scheduler.add_job(
        run_reminders,
        "cron",
        hour=settings.reminder_hour,
        id=JOB_ID,
        replace_existing=True,
    )
    if not scheduler.running:
        scheduler.start()
    logger.info("Missed-day reminders scheduled daily at %02d:00", settings.reminder_hour)


@app.on_event("shutdown")
async def _shutdown_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("horizon.app.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
