from __future__ import annotations
from datetime import datetime, timezone as dt_tz
from sqlalchemy import select, update, delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.models.user import User, Draft
from app.models.submission import Submission, MediaItem
from app.models.competition import Competition
from app.schemas.submission import DraftView, MediaItemView, SubmissionView

# Every function below is keyed by the Telegram user id and commits its own
# statement(s). Updates against a missing user or draft are no-ops.

# ---------- users ----------

async def find_user(session: AsyncSession, telegram_id: int) -> User | None:
    return await session.get(User, telegram_id, populate_existing=True)


async def find_or_create_user(
    session: AsyncSession,
    telegram_id: int,
    *,
    username: str | None = None,
    first_name: str | None = None,
    last_name: str | None = None,
    chat_id: int | None = None,
) -> User:
    user = await find_user(session, telegram_id)
    if user is None:
        user = User(
            telegram_id=telegram_id,
            username=username,
            first_name=first_name,
            last_name=last_name,
            chat_id=chat_id,
        )
        session.add(user)
        try:
            await session.commit()
        except IntegrityError:
            # Lost the race against a concurrent first message
            await session.rollback()
            user = await find_user(session, telegram_id)
        return user

    changed = False
    for field, value in (("username", username), ("first_name", first_name), ("last_name", last_name), ("chat_id", chat_id)):
        if value is not None and getattr(user, field) != value:
            setattr(user, field, value)
            changed = True
    if changed:
        await session.commit()
    return user


async def set_previous_command(session: AsyncSession, telegram_id: int, command: str | None) -> None:
    await session.execute(
        update(User).where(User.telegram_id == telegram_id).values(previous_command=command)
    )
    await session.commit()

# ---------- drafts ----------

async def _draft(session: AsyncSession, telegram_id: int) -> Draft | None:
    return await session.scalar(
        select(Draft).where(Draft.user_id == telegram_id).execution_options(populate_existing=True)
    )


async def _delete_draft(session: AsyncSession, draft_id) -> None:
    await session.execute(delete(MediaItem).where(MediaItem.draft_id == draft_id))
    await session.execute(delete(Draft).where(Draft.id == draft_id))


async def has_draft(session: AsyncSession, telegram_id: int) -> bool:
    draft_id = await session.scalar(select(Draft.id).where(Draft.user_id == telegram_id))
    return draft_id is not None


async def create_draft(session: AsyncSession, telegram_id: int, *, reset: bool = True) -> Draft | None:
    """
    reset=True replaces any existing draft (and its media) with an empty one;
    reset=False returns the existing draft, creating one only if missing.
    Returns None when the user does not exist.
    """
    if await find_user(session, telegram_id) is None:
        return None
    existing = await _draft(session, telegram_id)
    if existing is not None:
        if not reset:
            return existing
        await _delete_draft(session, existing.id)
    draft = Draft(user_id=telegram_id)
    session.add(draft)
    try:
        await session.commit()
    except IntegrityError:
        # Concurrent creation; keep whichever draft won
        await session.rollback()
        return await _draft(session, telegram_id)
    return draft


async def _update_draft(session: AsyncSession, telegram_id: int, **values) -> None:
    await session.execute(update(Draft).where(Draft.user_id == telegram_id).values(**values))
    await session.commit()


async def update_draft_name(session: AsyncSession, telegram_id: int, name: str | None) -> None:
    await _update_draft(session, telegram_id, name=name)


async def update_draft_description(session: AsyncSession, telegram_id: int, description: str | None) -> None:
    await _update_draft(session, telegram_id, description=description)


async def update_draft_media_date(session: AsyncSession, telegram_id: int, media_date: int) -> None:
    await _update_draft(session, telegram_id, media_date=media_date)


async def append_draft_media(session: AsyncSession, telegram_id: int, item: MediaItemView) -> bool:
    """Push one media item onto the user's draft. False when there is no draft."""
    draft_id = await session.scalar(select(Draft.id).where(Draft.user_id == telegram_id))
    if draft_id is None:
        return False
    session.add(MediaItem(
        draft_id=draft_id,
        file_id=item.file_id,
        media_group_id=item.media_group_id,
        media_type=item.media_type,
        message_date=item.message_date,
    ))
    await session.commit()
    return True


async def read_draft(session: AsyncSession, telegram_id: int) -> DraftView | None:
    """Current view of the draft; media is limited to the latest upload batch."""
    draft = await _draft(session, telegram_id)
    if draft is None:
        return None
    media: list[MediaItem] = []
    if draft.media_date is not None:
        media = (await session.execute(
            select(MediaItem)
            .where(MediaItem.draft_id == draft.id, MediaItem.message_date == draft.media_date)
            .order_by(MediaItem.id.asc())
        )).scalars().all()
    return DraftView(
        name=draft.name,
        description=draft.description,
        media_date=draft.media_date,
        media=[MediaItemView.model_validate(m) for m in media],
    )

# ---------- competition sequence ----------

async def _bump_sequence(session: AsyncSession, slug: str) -> tuple[int, int] | None:
    row = (await session.execute(
        update(Competition)
        .where(Competition.slug == slug)
        .values(last_seq=Competition.last_seq + 1)
        .returning(Competition.id, Competition.last_seq)
        .execution_options(synchronize_session=False)
    )).first()
    return (row[0], row[1]) if row else None


async def next_sequence_number(session: AsyncSession, slug: str | None = None) -> tuple[int, int]:
    """
    Fetch-and-increment the competition counter in one statement.
    Returns (competition_id, seq). The caller owns the transaction.
    """
    slug = slug or settings.competition_slug
    bumped = await _bump_sequence(session, slug)
    if bumped is not None:
        return bumped
    # First submission ever for this competition: the counter row starts at 1.
    # A concurrent insert surfaces as IntegrityError on the unique slug.
    comp = Competition(slug=slug, title=settings.competition_title, last_seq=1)
    session.add(comp)
    await session.flush()
    return comp.id, 1

# ---------- submissions ----------

async def finalize_submission(
    session: AsyncSession,
    telegram_id: int,
    draft: DraftView,
) -> tuple[User, SubmissionView] | None:
    """
    Turn the draft snapshot into an immutable submission: claim (delete) the
    draft, bump the counter, copy the current-batch media. One transaction.
    Returns None when the user or the draft is gone, so a repeated submit of
    the same snapshot never produces a second entry.
    """
    for attempt in range(2):
        user = await find_user(session, telegram_id)
        if user is None:
            await session.rollback()
            return None
        try:
            draft_id = await session.scalar(
                delete(Draft)
                .where(Draft.user_id == telegram_id)
                .returning(Draft.id)
                .execution_options(synchronize_session=False)
            )
            if draft_id is None:
                # Already finalized by an earlier submit
                await session.rollback()
                return None
            await session.execute(delete(MediaItem).where(MediaItem.draft_id == draft_id))

            competition_id, seq = await next_sequence_number(session)
            now = datetime.now(dt_tz.utc)
            sub = Submission(
                user_id=telegram_id,
                competition_id=competition_id,
                seq=seq,
                name=draft.name or "",
                description=draft.description,
                submitted_at=now,
            )
            session.add(sub)
            await session.flush()  # get sub.id
            for m in draft.media:
                session.add(MediaItem(
                    submission_id=sub.id,
                    file_id=m.file_id,
                    media_group_id=m.media_group_id,
                    media_type=m.media_type,
                    message_date=m.message_date,
                ))
            await session.commit()
        except IntegrityError:
            await session.rollback()
            if attempt == 1:
                raise
            continue
        view = SubmissionView(
            seq=seq,
            name=sub.name,
            description=sub.description,
            submitted_at=now,
            media=[m.model_copy() for m in draft.media],
        )
        return user, view
    return None


async def list_submissions(session: AsyncSession, telegram_id: int) -> list[SubmissionView]:
    subs = (await session.execute(
        select(Submission)
        .where(Submission.user_id == telegram_id)
        .order_by(Submission.submitted_at.asc(), Submission.seq.asc())
    )).scalars().all()
    if not subs:
        return []

    media = (await session.execute(
        select(MediaItem)
        .where(MediaItem.submission_id.in_([s.id for s in subs]))
        .order_by(MediaItem.id.asc())
    )).scalars().all()
    by_sub: dict = {}
    for m in media:
        by_sub.setdefault(m.submission_id, []).append(MediaItemView.model_validate(m))

    return [
        SubmissionView(
            seq=s.seq,
            name=s.name,
            description=s.description,
            submitted_at=s.submitted_at,
            media=by_sub.get(s.id, []),
        ) for s in subs
    ]
