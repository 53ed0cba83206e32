"""FastAPI application: main entry point."""

import structlog
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from escalafin.config import get_settings
from escalafin.infrastructure.database import engine, Base, SessionLocal
from escalafin.core.logging import configure_logging
from escalafin.core.middleware import setup_middleware
from escalafin.core.exceptions import AppError, global_exception_handler

# Import all models so SQLAlchemy knows about them
from escalafin.domain.models import registry  # noqa: F401

from escalafin.interfaces.api.auth import router as auth_router
from escalafin.interfaces.api.conversations import router as conversations_router
from escalafin.interfaces.api.chatbot_rules import router as chatbot_rules_router
from escalafin.interfaces.api.whatsapp import router as whatsapp_router
from escalafin.interfaces.api.cron import router as cron_router
from escalafin.interfaces.webhooks.waha import router as waha_router

settings = get_settings()

configure_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown events."""
    logger.info("Starting EscalaFin messaging service...", env=settings.ENVIRONMENT)

    # Create DB tables (dev only: use migrations in production)
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")

    from escalafin.application.services.auth_service import ensure_default_admin
    db = SessionLocal()
    try:
        ensure_default_admin(db, settings.DEFAULT_ADMIN_EMAIL, settings.DEFAULT_ADMIN_PASSWORD)
    finally:
        db.close()

    if settings.SCHEDULER_ENABLED:
        from escalafin.scheduler.jobs import start_scheduler
        start_scheduler()

    yield

    from escalafin.scheduler.jobs import stop_scheduler
    stop_scheduler()
    logger.info("EscalaFin messaging service stopped")


app = FastAPI(
    title="EscalaFin: Mensajería WhatsApp",
    description="API Backend: conversaciones, chatbot y notificaciones de préstamos por WhatsApp",
    version="1.0.0",
    lifespan=lifespan,
)

setup_middleware(app)

# AppError is handled inside the app; anything else reaches the 500 handler
app.add_exception_handler(AppError, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(conversations_router)
app.include_router(chatbot_rules_router)
app.include_router(whatsapp_router)
app.include_router(cron_router)
app.include_router(waha_router)


@app.get("/")
def root():
    return {
        "name": "EscalaFin Messaging",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
def health():
    return {"status": "healthy"}
