from __future__ import annotations
import httpx
import pytest
import pytest_asyncio
from httpx import AsyncClient
from app.main import app
from app.db import get_session
from app.config import settings
from app.bot.commands import LABELS, CommandId
from app.services import submissions as gateway
from app.services.telegram import get_transport


def _update(update_id: int, text: str | None = None, user_id: int = 555, **extra) -> dict:
    message = {
        "message_id": update_id,
        "date": 1_700_000_000,
        "chat": {"id": user_id, "type": "private"},
        "from": {"id": user_id, "is_bot": False, "first_name": "Hansel"},
        **extra,
    }
    if text is not None:
        message["text"] = text
    return {"update_id": update_id, "message": message}


@pytest_asyncio.fixture
async def client(session_factory, transport):
    async def _session():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_transport] = lambda: transport
    async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_webhook_runs_dispatcher(client, transport, session_factory):
    r = await client.post("/telegram/webhook", json=_update(1, LABELS[CommandId.edit_name]))
    assert r.status_code == 200 and r.json() == {"ok": True}
    r = await client.post("/telegram/webhook", json=_update(2, "Ginger Fortress"))
    assert r.status_code == 200

    assert [m["text"] for m in transport.messages] == [
        "OK. Send me the new name for your creation 🙌",
        "👌 The name is now updated!",
    ]
    async with session_factory() as s:
        assert (await gateway.read_draft(s, 555)).name == "Ginger Fortress"
        assert (await gateway.find_user(s, 555)).first_name == "Hansel"


@pytest.mark.asyncio
async def test_webhook_ignores_updates_without_message(client, transport):
    r = await client.post("/telegram/webhook", json={"update_id": 9, "edited_message": {"message_id": 1}})
    assert r.status_code == 200
    assert r.json() == {"ignored": 9}
    assert transport.messages == []


@pytest.mark.asyncio
async def test_webhook_rejects_malformed_update(client):
    r = await client.post("/telegram/webhook", json={"message": {"text": "hi"}})
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_webhook_checks_secret_token(client, transport, monkeypatch):
    monkeypatch.setattr(settings, "telegram_webhook_secret", "s3cret")
    r = await client.post("/telegram/webhook", json=_update(1, "hello"))
    assert r.status_code == 401
    r = await client.post(
        "/telegram/webhook",
        json=_update(2, "hello"),
        headers={"X-Telegram-Bot-Api-Secret-Token": "s3cret"},
    )
    assert r.status_code == 200
    assert len(transport.messages) == 1


@pytest.mark.asyncio
async def test_webhook_swallows_reply_failures(session_factory, transport_factory):
    failing = transport_factory(failing_chats={555})

    async def _session():
        async with session_factory() as s:
            yield s

    app.dependency_overrides[get_session] = _session
    app.dependency_overrides[get_transport] = lambda: failing
    try:
        async with AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as ac:
            r = await ac.post("/telegram/webhook", json=_update(1, "hello"))
        assert r.status_code == 200
    finally:
        app.dependency_overrides.clear()
