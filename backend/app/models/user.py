from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, BigInteger, DateTime, ForeignKey, Uuid, func
from app.db import Base

class User(Base):
    __tablename__ = "users"
    # Telegram user id, stable across chats
    telegram_id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    username: Mapped[str | None] = mapped_column(String(64))
    first_name: Mapped[str | None] = mapped_column(String(128))
    last_name: Mapped[str | None] = mapped_column(String(128))
    chat_id: Mapped[int | None] = mapped_column(BigInteger)
    previous_command: Mapped[str | None] = mapped_column(String(32))  # conversational cursor
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

class Draft(Base):
    """
    In-progress submission, at most one per user.
    Media items are append-only; only those whose message_date equals
    media_date form the current batch.
    """
    __tablename__ = "drafts"
    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.telegram_id", ondelete="CASCADE"), unique=True, index=True, nullable=False
    )
    name: Mapped[str | None] = mapped_column(Text())
    description: Mapped[str | None] = mapped_column(Text())
    media_date: Mapped[int | None] = mapped_column(BigInteger)  # epoch seconds of the latest upload batch
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
