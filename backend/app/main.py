"""
Gallery Booking API - application entry point.

One process serves the Mini App's HTTP API and, depending on settings, also
hosts the background pieces that need the bot:

- NotificationDispatcher  confirmation messages after a booking commits
- ReminderScheduler       daily next-day reminder sweep (REMINDER_ENABLED)
- BotPoller               /start and /mybookings via long polling (BOT_POLLING)

Run with: uvicorn app.main:app
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import get_settings
from app.core.logging import setup_logging, get_logger
from app.core.metrics import metrics_endpoint
from app.api.errors import register_exception_handlers
from app.api.router import api_router
from app.api.middleware import RequestLoggingMiddleware
from app.bot.polling import BotPoller, create_dispatcher
from app.db.session import AsyncSessionLocal, engine
from app.infrastructure.telegram import build_notifier
from app.services.cache_service import get_redis, close_redis, get_cache_stats
from app.services.notification_service import NotificationDispatcher
from app.tasks.reminders import ReminderScheduler

settings = get_settings()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings)
    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )

    if await get_redis() is None:
        logger.warning("catalog_cache_disabled")

    notifier, bot = build_notifier(settings)
    dispatcher = NotificationDispatcher(notifier, drain_timeout=settings.NOTIFICATION_DRAIN_TIMEOUT)
    app.state.dispatcher = dispatcher

    scheduler = None
    if settings.REMINDER_ENABLED:
        scheduler = ReminderScheduler(AsyncSessionLocal, notifier, settings.REMINDER_HOUR)
        scheduler.start()

    poller = None
    if bot is not None and settings.BOT_POLLING:
        poller = BotPoller(bot, create_dispatcher(settings, AsyncSessionLocal))
        poller.start()

    try:
        yield
    finally:
        # Stop producers first, then flush what they queued
        if poller is not None:
            await poller.stop()
        if scheduler is not None:
            await scheduler.stop()
        await dispatcher.drain()
        if bot is not None:
            await bot.session.close()
        await close_redis()
        await engine.dispose()
        logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Exhibition slot booking API for the gallery's Telegram Mini App",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)
register_exception_handlers(app)
app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "cache": await get_cache_stats(),
    }


@app.get("/metrics", include_in_schema=False)
async def metrics():
    return metrics_endpoint()


@app.get("/", include_in_schema=False)
async def root():
    return {"service": settings.APP_NAME, "version": settings.APP_VERSION, "docs": "/docs"}
