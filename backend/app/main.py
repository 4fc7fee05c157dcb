from __future__ import annotations
import uuid
from contextlib import asynccontextmanager
import httpx
from fastapi import FastAPI, Request, Response
from app.config import settings
from app.logging_setup import configure_logging
from app.routes.system import router as system_router
from app.routes.telegram import router as telegram_router
from app.services.telegram import TelegramError, get_transport, close_transport
import structlog

configure_logging()
log = structlog.get_logger()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    log.info("startup", env=settings.environment, version=settings.app_version, git_sha=settings.git_sha)
    if settings.telegram_webhook_url and settings.telegram_bot_token:
        try:
            await get_transport().set_webhook(
                settings.telegram_webhook_url,
                secret_token=settings.telegram_webhook_secret or None,
            )
            log.info("webhook_registered", url=settings.telegram_webhook_url)
        except (TelegramError, httpx.HTTPError) as e:
            log.error("webhook_registration_failed", error=str(e))
    yield
    # Shutdown
    await close_transport()
    log.info("shutdown")

app = FastAPI(
    title=f"{settings.app_name} API",
    version=settings.app_version,
    lifespan=lifespan,
    description="Telegram webhook for the gingerbread submission bot",
)

app.include_router(system_router)
app.include_router(telegram_router)

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    structlog.contextvars.bind_contextvars(request_id=rid)
    response: Response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    structlog.contextvars.clear_contextvars()
    return response
