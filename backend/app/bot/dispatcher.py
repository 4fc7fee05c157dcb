from __future__ import annotations
from typing import Any
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.bot.commands import (
    COMMANDS,
    EDIT_KEYBOARD,
    START_KEYBOARD,
    CommandContext,
    Reply,
    match_command,
    pending_continuation,
)
from app.schemas.telegram import Message
from app.schemas.submission import MediaItemView
from app.services import submissions as gateway

log = structlog.get_logger()

MEDIA_TYPES = ("photo", "video")

GREETING_NO_DRAFT = "Hi, cookie! 👋 Press the button below to start a new submission for the Grandma Club! 🤶🎅🍪"
GREETING_DRAFT = (
    "Hi, cookie! 👋 Give your creation a name, tell us a bit more about it, "
    "add pictures and share it with the Grandma Club! 🤶🎅🍪"
)
# Draft already has pictures in its current batch
GREETING_CONTINUE = (
    "Welcome back, cookie! 👋 Your creation is waiting for you. "
    "Keep editing it, or review and submit it to the Grandma Club! 🤶🎅🍪"
)


def media_item_from_message(message: Message, content_type: str) -> MediaItemView | None:
    if content_type == "photo" and message.photo:
        # Telegram lists sizes ascending; keep the largest
        return MediaItemView(
            file_id=message.photo[-1].file_id,
            media_group_id=message.media_group_id,
            media_type="photo",
            message_date=message.date,
        )
    if content_type == "video" and message.video:
        return MediaItemView(
            file_id=message.video.file_id,
            media_group_id=message.media_group_id,
            media_type="video",
            message_date=message.date,
        )
    return None


async def _default_keyboard(session: AsyncSession, telegram_id: int) -> dict:
    return EDIT_KEYBOARD if await gateway.has_draft(session, telegram_id) else START_KEYBOARD


async def _send_reply(session: AsyncSession, transport: Any, chat_id: int, telegram_id: int, reply: Reply) -> None:
    if reply.media:
        await transport.send_media_group(chat_id, reply.media, disable_notification=True)
    if reply.text:
        markup = reply.keyboard or await _default_keyboard(session, telegram_id)
        await transport.send_message(chat_id, reply.text, reply_markup=markup)


async def process_message(
    session: AsyncSession,
    transport: Any,
    message: Message,
    content_type: str | None = None,
) -> None:
    """
    Handle one inbound message end to end: a recognised command first, then a
    pending continuation, then the default greeting for plain text.
    """
    content_type = content_type or message.content_type
    sender = message.from_user
    if sender is None or sender.is_bot:
        return

    user = await gateway.find_or_create_user(
        session,
        sender.id,
        username=sender.username,
        first_name=sender.first_name,
        last_name=sender.last_name,
        chat_id=message.chat.id,
    )
    if user is None:
        return
    telegram_id = user.telegram_id
    chat_id = message.chat.id
    previous_command = user.previous_command
    structlog.contextvars.bind_contextvars(telegram_id=telegram_id)

    ctx = CommandContext(session=session, transport=transport, user=user, message=message, content_type=content_type)

    command_id = match_command(message.text if content_type == "text" else None, previous_command)
    if command_id is not None:
        reply = await COMMANDS[command_id].execute(ctx)
        await _send_reply(session, transport, chat_id, telegram_id, reply)
        await gateway.set_previous_command(session, telegram_id, command_id.value)
        log.info("command_executed", command=command_id.value)
        return

    # Anything that is not a command breaks the chain
    if previous_command is not None:
        await gateway.set_previous_command(session, telegram_id, None)

    # Pictures sent out of band still land on the draft
    item = media_item_from_message(message, content_type) if content_type in MEDIA_TYPES else None
    if item is not None and await gateway.append_draft_media(session, telegram_id, item):
        log.info("media_appended", media_type=item.media_type, media_group_id=item.media_group_id)

    command = pending_continuation(previous_command)
    if (
        command is not None
        and content_type in command.continuation_types
        and await gateway.has_draft(session, telegram_id)
    ):
        reply = await command.continue_(ctx)
        if reply is not None:
            await _send_reply(session, transport, chat_id, telegram_id, reply)
        log.info("continuation_executed", command=previous_command)
        return

    if content_type == "text":
        await _greet(session, transport, chat_id, telegram_id)


async def _greet(session: AsyncSession, transport: Any, chat_id: int, telegram_id: int) -> None:
    draft = await gateway.read_draft(session, telegram_id)
    if draft is None:
        await transport.send_message(chat_id, GREETING_NO_DRAFT, reply_markup=START_KEYBOARD)
    elif draft.media:
        await transport.send_message(chat_id, GREETING_CONTINUE, reply_markup=EDIT_KEYBOARD)
    else:
        await transport.send_message(chat_id, GREETING_DRAFT, reply_markup=EDIT_KEYBOARD)
