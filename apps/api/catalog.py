# apps/api/catalog.py
from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy import case, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from errors import NotFoundError, StoreQueryError, ValidationError
from models import DISLIKE, LIKE, Video, VideoReaction, VideoTag

log = logging.getLogger("catalog")

ReactionCounts = Tuple[int, int]


@contextmanager
def store_read(operation: str) -> Iterator[None]:
    """Turn driver/ORM failures (timeouts included) into StoreQueryError."""
    try:
        yield
    except SQLAlchemyError as exc:
        log.warning("store_read_failed op=%s", operation, exc_info=exc)
        raise StoreQueryError(operation) from exc


def as_utc(ts: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back naive datetimes; stored values are UTC
    if ts is None:
        return None
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def parse_id(value, what: str = "video_id") -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except (TypeError, ValueError, AttributeError):
        raise ValidationError(f"Invalid {what}")


def likes_count_expr():
    return (
        select(func.count())
        .where(VideoReaction.video_id == Video.id, VideoReaction.value == LIKE)
        .correlate(Video)
        .scalar_subquery()
    )


def published_videos(db: Session) -> Query:
    return db.query(Video).filter(Video.is_published.is_(True))


def excluding(q: Query, video_ids: Iterable[UUID]) -> Query:
    ids = list(video_ids)
    if not ids:
        return q
    return q.filter(Video.id.not_in(ids))


def with_any_tag(q: Query, tags: Sequence[str]) -> Query:
    if not tags:
        return q
    return q.filter(Video.tags.any(VideoTag.tag.in_(list(tags))))


def get_video(db: Session, video_id) -> Video:
    vid = parse_id(video_id)
    with store_read("get_video"):
        v: Optional[Video] = db.get(Video, vid)
    if not v:
        raise NotFoundError("Video not found")
    return v


def reaction_counts(db: Session, video_ids: Sequence[UUID]) -> Dict[UUID, ReactionCounts]:
    """(likes, dislikes) per video id; videos without reactions are absent."""
    if not video_ids:
        return {}
    likes = func.sum(case((VideoReaction.value == LIKE, 1), else_=0))
    dislikes = func.sum(case((VideoReaction.value == DISLIKE, 1), else_=0))
    with store_read("reaction_counts"):
        rows = (
            db.query(VideoReaction.video_id, likes, dislikes)
            .filter(VideoReaction.video_id.in_(list(video_ids)))
            .group_by(VideoReaction.video_id)
            .all()
        )
    return {vid: (int(l or 0), int(d or 0)) for vid, l, d in rows}


def videos_by_uploader(db: Session, user_id) -> List[Video]:
    uid = parse_id(user_id, what="user_id")
    with store_read("videos_by_uploader"):
        return (
            published_videos(db)
            .filter(Video.user_id == uid)
            .order_by(Video.created_at.desc(), Video.id)
            .all()
        )
