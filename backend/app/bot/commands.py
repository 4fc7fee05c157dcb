from __future__ import annotations
import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable
import httpx
import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.user import User
from app.schemas.telegram import Message
from app.schemas.submission import DraftView, SubmissionView
from app.services import submissions as gateway
from app.services.formatter import (
    format_caption,
    format_media_list,
    format_error_message,
    format_broadcast_caption,
    format_submission_list,
    MEDIA_CAPTION_LIMIT,
)
from app.services.telegram import TelegramError

log = structlog.get_logger()


class CommandId(str, Enum):
    start = "start"
    edit_name = "editName"
    edit_description = "editDescription"
    upload_pictures = "uploadPictures"
    review_and_submit = "reviewAndSubmit"
    submit = "submit"
    back = "back"
    list_submissions = "listSubmissions"


LABELS: dict[CommandId, str] = {
    CommandId.start: "Start a new submission 🍪",
    CommandId.edit_name: "Edit name 🖋️",
    CommandId.edit_description: "Edit description 🖋️",
    CommandId.upload_pictures: "Edit pictures 🖼️",
    CommandId.review_and_submit: "Review and submit ✅",
    CommandId.submit: "Submit ✅",
    CommandId.back: "Back 🔙",
    CommandId.list_submissions: "See my other submissions 📜",
}


def keyboard(rows: list[list[CommandId]]) -> dict:
    return {
        "keyboard": [[{"text": LABELS[c]} for c in row] for row in rows],
        "resize_keyboard": True,
    }

START_KEYBOARD = keyboard([
    [CommandId.start],
    [CommandId.list_submissions],
])
EDIT_KEYBOARD = keyboard([
    [CommandId.edit_name, CommandId.edit_description],
    [CommandId.upload_pictures],
    [CommandId.review_and_submit],
    [CommandId.list_submissions],
])
REVIEW_KEYBOARD = keyboard([[CommandId.back, CommandId.submit]])


@dataclass
class CommandContext:
    session: AsyncSession
    transport: Any  # TelegramClient or anything with the same send_* methods
    user: User
    message: Message
    content_type: str

    @property
    def telegram_id(self) -> int:
        return self.user.telegram_id


@dataclass
class Reply:
    text: str | None = None
    media: list[dict] | None = None
    keyboard: dict | None = None  # None -> default layout for the user's draft state


Handler = Callable[[CommandContext], Awaitable[Reply]]
ContinuationHandler = Callable[[CommandContext], Awaitable["Reply | None"]]


@dataclass(frozen=True)
class Command:
    label: str
    execute: Handler
    after: CommandId | None = None  # must be the user's previous command
    continuation_types: frozenset[str] = field(default_factory=frozenset)
    continue_: ContinuationHandler | None = None

    @property
    def has_continuation(self) -> bool:
        return self.continue_ is not None

# ---------- handlers ----------

async def _start(ctx: CommandContext) -> Reply:
    await gateway.create_draft(ctx.session, ctx.telegram_id, reset=True)
    return Reply(
        text="Let's bake! 🎉 Give your creation a name, tell us a bit more about it and add some pictures 🙌",
        keyboard=EDIT_KEYBOARD,
    )


async def _edit_name(ctx: CommandContext) -> Reply:
    await gateway.create_draft(ctx.session, ctx.telegram_id, reset=False)
    return Reply(text="OK. Send me the new name for your creation 🙌")


async def _edit_name_continue(ctx: CommandContext) -> Reply:
    await gateway.update_draft_name(ctx.session, ctx.telegram_id, ctx.message.text)
    return Reply(text="👌 The name is now updated!")


async def _edit_description(ctx: CommandContext) -> Reply:
    await gateway.create_draft(ctx.session, ctx.telegram_id, reset=False)
    return Reply(text="OK. Send me the new description. Keep it short 🙌")


async def _edit_description_continue(ctx: CommandContext) -> Reply:
    await gateway.update_draft_description(ctx.session, ctx.telegram_id, ctx.message.text)
    return Reply(text="👌 The description is now updated!")


async def _upload_pictures(ctx: CommandContext) -> Reply:
    await gateway.create_draft(ctx.session, ctx.telegram_id, reset=False)
    return Reply(text=(
        "OK. Send me the new pictures. If you want to add more than one picture, "
        "send them all at once in a single message. Videos are also fine 🎬"
    ))


async def _upload_pictures_continue(ctx: CommandContext) -> Reply:
    # Items of one album share the message date, so stamping it selects the batch
    await gateway.update_draft_media_date(ctx.session, ctx.telegram_id, ctx.message.date)
    return Reply(text="👌 Looking good! The pictures are now updated.")


async def _review_and_submit(ctx: CommandContext) -> Reply:
    draft = await gateway.read_draft(ctx.session, ctx.telegram_id) or DraftView()
    caption = format_caption(draft)
    media = format_media_list(draft)
    error = format_error_message(draft)
    if error:
        return Reply(text=f"{caption}\n{error}", media=media)
    return Reply(
        text=(
            f"{caption}\nIf you like how it looks, go on and press {LABELS[CommandId.submit]} "
            f"We will also repost this to the Grandma Chat 🤶🎅🍪"
        ),
        media=media,
        keyboard=REVIEW_KEYBOARD,
    )


async def _broadcast_one(transport: Any, chat_id: str, media: list[dict], caption: str | None) -> bool:
    try:
        await transport.send_media_group(chat_id, media, disable_notification=True)
        if caption:
            await transport.send_message(chat_id, caption)
    except (TelegramError, httpx.HTTPError) as e:
        log.warning("broadcast_failed", chat_id=chat_id, error=str(e))
        return False
    return True


async def broadcast_submission(transport: Any, submission: SubmissionView, user: User) -> int:
    """Send the submission to every broadcast chat; returns how many succeeded."""
    if not submission.media or not settings.broadcast_chat_ids:
        return 0
    caption = format_broadcast_caption(submission, submission.seq, settings.competition_title, user)
    if len(caption) <= MEDIA_CAPTION_LIMIT:
        media, separate = format_media_list(submission, caption), None
    else:
        # Too long for a media caption: post it as its own message after the pictures
        media, separate = format_media_list(submission), caption
    results = await asyncio.gather(*(
        _broadcast_one(transport, chat_id, media, separate) for chat_id in settings.broadcast_chat_ids
    ))
    return sum(results)


async def _submit(ctx: CommandContext) -> Reply:
    draft = await gateway.read_draft(ctx.session, ctx.telegram_id) or DraftView()
    error = format_error_message(draft)
    if error:
        return Reply(text=error)

    finalized = await gateway.finalize_submission(ctx.session, ctx.telegram_id, draft)
    if finalized is None:
        return Reply()
    user, submission = finalized
    log.info("submission_finalized", seq=submission.seq, media=len(submission.media))

    await broadcast_submission(ctx.transport, submission, user)
    return Reply(text=f"Got it! 🎉 Your entry is #{submission.seq}. Feel free to add another submission 🙌")


async def _back(ctx: CommandContext) -> Reply:
    return Reply(text="Anything you didn't like? You can still make the changes!")


async def _list_submissions(ctx: CommandContext) -> Reply:
    subs = await gateway.list_submissions(ctx.session, ctx.telegram_id)
    if not subs:
        return Reply(text="You didn't send anything yet 🥺")
    return Reply(text=format_submission_list(subs))


COMMANDS: dict[CommandId, Command] = {
    CommandId.start: Command(label=LABELS[CommandId.start], execute=_start),
    CommandId.edit_name: Command(
        label=LABELS[CommandId.edit_name],
        execute=_edit_name,
        continuation_types=frozenset({"text"}),
        continue_=_edit_name_continue,
    ),
    CommandId.edit_description: Command(
        label=LABELS[CommandId.edit_description],
        execute=_edit_description,
        continuation_types=frozenset({"text"}),
        continue_=_edit_description_continue,
    ),
    CommandId.upload_pictures: Command(
        label=LABELS[CommandId.upload_pictures],
        execute=_upload_pictures,
        continuation_types=frozenset({"photo", "video"}),
        continue_=_upload_pictures_continue,
    ),
    CommandId.review_and_submit: Command(label=LABELS[CommandId.review_and_submit], execute=_review_and_submit),
    CommandId.submit: Command(label=LABELS[CommandId.submit], execute=_submit, after=CommandId.review_and_submit),
    CommandId.back: Command(label=LABELS[CommandId.back], execute=_back, after=CommandId.review_and_submit),
    CommandId.list_submissions: Command(label=LABELS[CommandId.list_submissions], execute=_list_submissions),
}


def match_command(text: str | None, previous_command: str | None) -> CommandId | None:
    """Command whose label is exactly `text` and whose precondition holds."""
    if text is None:
        return None
    for command_id, command in COMMANDS.items():
        if command.label != text:
            continue
        if command.after is not None and command.after.value != previous_command:
            continue
        return command_id
    return None


def pending_continuation(previous_command: str | None) -> Command | None:
    if not previous_command:
        return None
    try:
        command = COMMANDS[CommandId(previous_command)]
    except ValueError:
        return None
    return command if command.has_continuation else None
