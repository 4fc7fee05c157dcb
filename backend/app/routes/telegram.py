from __future__ import annotations
import httpx
import structlog
from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from app.bot.dispatcher import process_message
from app.config import settings
from app.db import get_session
from app.schemas.telegram import Update
from app.services.telegram import TelegramClient, TelegramError, get_transport

router = APIRouter(prefix="/telegram", tags=["telegram"])
log = structlog.get_logger()

@router.post("/webhook")
async def telegram_webhook(
    update: Update,
    secret_token: str | None = Header(None, alias="X-Telegram-Bot-Api-Secret-Token"),
    session: AsyncSession = Depends(get_session),
    transport: TelegramClient = Depends(get_transport),
):
    if settings.telegram_webhook_secret and secret_token != settings.telegram_webhook_secret:
        raise HTTPException(status_code=401, detail="Invalid secret token")

    if update.message is None:
        return {"ignored": update.update_id}

    structlog.contextvars.bind_contextvars(update_id=update.update_id)
    try:
        await process_message(session, transport, update.message)
    except (TelegramError, httpx.HTTPError) as e:
        # Answer 200 anyway, otherwise Telegram keeps redelivering the update
        log.warning("reply_failed", error=str(e))
    return {"ok": True}
