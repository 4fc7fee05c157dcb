from __future__ import annotations
import html
from typing import Any, Protocol, Sequence
from app.schemas.submission import MediaItemView

# Telegram caps media captions at 1024 characters; messages allow 4096
MEDIA_CAPTION_LIMIT = 1024
PARSE_MODE = "HTML"


class Captioned(Protocol):
    name: str | None
    description: str | None
    media: Sequence[MediaItemView]


def escape_html(text: str) -> str:
    return html.escape(text, quote=False)


def _caption_line(text: str | None, tag: str, attribution: str) -> str:
    if not text:
        return ""
    return f"<{tag}>{escape_html(text)}</{tag}>{attribution}\n"


def attribution_for(user: Any | None) -> str:
    """' by @handle', ' by FirstName' or '' when the user has neither."""
    username = getattr(user, "username", None)
    first_name = getattr(user, "first_name", None)
    author = f"@{username}" if username else (first_name or "")
    return f" by {escape_html(author)}" if author else ""


def format_caption(record: Captioned, user: Any | None = None) -> str:
    name = _caption_line(record.name, "b", attribution_for(user))
    description = _caption_line(record.description, "i", "")
    return f"{name}{description}"


def format_media_list(record: Captioned, caption: str | None = None) -> list[dict[str, Any]] | None:
    """
    InputMedia payloads for sendMediaGroup, caption on the first item only.
    None (not []) when there is nothing to send.
    """
    if not record.media:
        return None
    out: list[dict[str, Any]] = []
    for i, m in enumerate(record.media):
        ref: dict[str, Any] = {"type": m.media_type, "media": m.file_id}
        if i == 0 and caption:
            ref["caption"] = caption
            ref["parse_mode"] = PARSE_MODE
        out.append(ref)
    return out


def format_error_message(record: Captioned) -> str | None:
    errors = [
        e for e in (
            not record.name and "give your creation a name 🍪",
            not record.media and "add some pictures 🖼️",
        ) if e
    ]
    return f"Please, {' and '.join(errors)}" if errors else None


def format_broadcast_caption(record: Captioned, seq: int, title: str, user: Any | None = None) -> str:
    return f"New {escape_html(title)} submission #{seq} 🎊\n\n{format_caption(record, user)}"


def format_submission_list(records: Sequence[Any]) -> str:
    """One quoted block per submission, every caption line prefixed."""
    blocks = []
    for r in records:
        lines = format_caption(r).rstrip("\n").split("\n")
        lines[0] = f"#{r.seq} {lines[0]}"
        blocks.append("\n".join(f"&gt; {line}" for line in lines))
    return "\n".join(blocks)
