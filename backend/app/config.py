from __future__ import annotations
import os
from pydantic import BaseModel


def _csv(value: str) -> list[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


class Settings(BaseModel):
    environment: str = os.getenv("ENVIRONMENT", "dev")
    app_name: str = os.getenv("APP_NAME", "gingerbread-bot")
    app_version: str = os.getenv("APP_VERSION", "0.1.0")
    git_sha: str = os.getenv("GIT_SHA", "dev")
    database_url: str = os.getenv("DATABASE_URL", "postgresql+asyncpg://postgres:postgres@db:5432/gingerbread_dev")

    # Telegram
    telegram_bot_token: str = os.getenv("BOT_API_TOKEN", "")
    telegram_api_base: str = os.getenv("TELEGRAM_API_BASE", "https://api.telegram.org")
    telegram_webhook_url: str = os.getenv("TELEGRAM_WEBHOOK_URL", "")
    telegram_webhook_secret: str = os.getenv("TELEGRAM_WEBHOOK_SECRET", "")
    broadcast_chat_ids: list[str] = _csv(os.getenv("BROADCAST_CHAT_IDS", ""))  # e.g. @grandma_chat,-100123

    # Competition counter
    competition_slug: str = os.getenv("COMPETITION_SLUG", "gingerbread")
    competition_title: str = os.getenv("COMPETITION_TITLE", "Gingerbread Competition")

settings = Settings()
