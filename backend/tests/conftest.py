from __future__ import annotations
import itertools
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from app.db import Base
import app.models.user  # register tables
import app.models.competition
import app.models.submission
from app.config import settings
from app.schemas.telegram import Message
from app.services.telegram import TelegramError
from app.services.formatter import MEDIA_CAPTION_LIMIT


class FakeTransport:
    """Records outbound calls instead of talking to Telegram."""

    def __init__(self, failing_chats: set | None = None):
        self.messages: list[dict] = []
        self.media_groups: list[dict] = []
        self.failing_chats = failing_chats or set()

    async def send_message(self, chat_id, text, *, reply_markup=None, parse_mode="HTML"):
        if chat_id in self.failing_chats:
            raise TelegramError("sendMessage", "Bad Request: chat not found", 400)
        self.messages.append({"chat_id": chat_id, "text": text, "reply_markup": reply_markup})

    async def send_media_group(self, chat_id, media, *, disable_notification=True):
        if chat_id in self.failing_chats:
            raise TelegramError("sendMediaGroup", "Bad Request: chat not found", 400)
        if any(len(m.get("caption") or "") > MEDIA_CAPTION_LIMIT for m in media):
            raise TelegramError("sendMediaGroup", "Bad Request: message caption is too long", 400)
        self.media_groups.append({"chat_id": chat_id, "media": media})

    def texts_to(self, chat_id) -> list[str]:
        return [m["text"] for m in self.messages if m["chat_id"] == chat_id]


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(engine, expire_on_commit=False)
    await engine.dispose()


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def broadcast_chats(monkeypatch):
    chats = ["@grandma_chat", "@bakery_channel"]
    monkeypatch.setattr(settings, "broadcast_chat_ids", chats)
    return chats


@pytest.fixture
def make_message():
    """Factory for inbound Telegram messages from one user."""
    ids = itertools.count(1)

    def _make(
        *,
        user_id: int = 1001,
        username: str | None = "ginger_baker",
        first_name: str | None = "Gretel",
        text: str | None = None,
        photo: str | None = None,
        video: str | None = None,
        date: int = 1_700_000_000,
        media_group_id: str | None = None,
        **extra,
    ) -> Message:
        payload = {
            "message_id": next(ids),
            "date": date,
            "chat": {"id": user_id, "type": "private"},
            "from": {"id": user_id, "is_bot": False, "username": username, "first_name": first_name},
            **extra,
        }
        if text is not None:
            payload["text"] = text
        if photo is not None:
            payload["photo"] = [
                {"file_id": f"{photo}-small", "width": 90, "height": 90},
                {"file_id": photo, "width": 1280, "height": 1280},
            ]
        if video is not None:
            payload["video"] = {"file_id": video, "duration": 3}
        if media_group_id is not None:
            payload["media_group_id"] = media_group_id
        return Message.model_validate(payload)

    return _make


@pytest.fixture
def transport_factory():
    return FakeTransport
