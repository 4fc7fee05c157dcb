from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field

# Order matters: animations also carry a document
CONTENT_TYPES = (
    "text", "animation", "audio", "document", "photo", "sticker",
    "video", "video_note", "voice", "contact", "location",
)


class TelegramUser(BaseModel):
    id: int
    is_bot: bool = False
    first_name: str | None = None
    last_name: str | None = None
    username: str | None = None


class Chat(BaseModel):
    id: int
    type: str = "private"
    title: str | None = None
    username: str | None = None


class PhotoSize(BaseModel):
    file_id: str
    file_unique_id: str | None = None
    width: int | None = None
    height: int | None = None
    file_size: int | None = None


class Video(BaseModel):
    file_id: str
    file_unique_id: str | None = None
    width: int | None = None
    height: int | None = None
    duration: int | None = None
    mime_type: str | None = None


class Message(BaseModel):
    # Unknown fields (stickers, polls, ...) are kept so content_type can see them
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    message_id: int
    date: int  # epoch seconds
    chat: Chat
    from_user: TelegramUser | None = Field(default=None, alias="from")
    text: str | None = None
    caption: str | None = None
    media_group_id: str | None = None
    photo: list[PhotoSize] | None = None
    video: Video | None = None

    @property
    def content_type(self) -> str:
        for kind in CONTENT_TYPES:
            if getattr(self, kind, None):
                return kind
        return "unknown"


class Update(BaseModel):
    model_config = ConfigDict(extra="allow")

    update_id: int
    message: Message | None = None
