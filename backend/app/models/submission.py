from __future__ import annotations
import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Text, Integer, BigInteger, DateTime, ForeignKey, UniqueConstraint, CheckConstraint, Uuid, func
from app.db import Base


class Submission(Base):
    __tablename__ = "submissions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    user_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.telegram_id", ondelete="CASCADE"), index=True, nullable=False
    )
    competition_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("competitions.id", ondelete="CASCADE"), index=True, nullable=False
    )
    seq: Mapped[int] = mapped_column(Integer, nullable=False)

    name: Mapped[str] = mapped_column(Text(), nullable=False)
    description: Mapped[str | None] = mapped_column(Text(), nullable=True)

    submitted_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("competition_id", "seq", name="uq_submission_competition_seq"),
    )


class MediaItem(Base):
    """
    One photo or video. Owned by either a draft or a submission, never both;
    submissions get their own copies at finalization time.
    """
    __tablename__ = "media_items"

    # Integer id keeps insertion order
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    draft_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("drafts.id", ondelete="CASCADE"), index=True, nullable=True
    )
    submission_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("submissions.id", ondelete="CASCADE"), index=True, nullable=True
    )

    file_id: Mapped[str] = mapped_column(String(256), nullable=False)
    media_group_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    media_type: Mapped[str] = mapped_column(String(8), nullable=False)  # photo | video
    message_date: Mapped[int] = mapped_column(BigInteger, nullable=False)  # epoch seconds

    __table_args__ = (
        CheckConstraint("(draft_id IS NULL) <> (submission_id IS NULL)", name="ck_media_single_owner"),
    )
