# apps/api/interactions.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from catalog import reaction_counts, store_read
from errors import ValidationError
from models import LIKE, Subscription, User, Video, VideoReaction, WatchHistory

log = logging.getLogger("interactions")


def resolve_user(db: Session, user_id: UUID) -> Optional[User]:
    with store_read("resolve_user"):
        return db.get(User, user_id)


def recent_history(db: Session, user_id: UUID, limit: int) -> List[Tuple[WatchHistory, Video]]:
    with store_read("recent_history"):
        return (
            db.query(WatchHistory, Video)
            .join(Video, WatchHistory.video_id == Video.id)
            .filter(WatchHistory.user_id == user_id)
            .order_by(WatchHistory.last_watched_at.desc())
            .limit(limit)
            .all()
        )


def liked_videos(db: Session, user_id: UUID, limit: int) -> List[Video]:
    with store_read("liked_videos"):
        return (
            db.query(Video)
            .join(VideoReaction, VideoReaction.video_id == Video.id)
            .filter(VideoReaction.user_id == user_id, VideoReaction.value == LIKE)
            .order_by(VideoReaction.created_at.desc())
            .limit(limit)
            .all()
        )


def subscribed_channel_ids(db: Session, user_id: UUID) -> List[UUID]:
    with store_read("subscribed_channel_ids"):
        rows = (
            db.query(Subscription.channel_id)
            .filter(Subscription.subscriber_id == user_id)
            .all()
        )
    return [r[0] for r in rows]


def subscriber_ids(db: Session, channel_id: UUID) -> List[UUID]:
    with store_read("subscriber_ids"):
        rows = (
            db.query(Subscription.subscriber_id)
            .filter(Subscription.channel_id == channel_id)
            .all()
        )
    return [r[0] for r in rows]


def subscriber_count(db: Session, channel_id: UUID) -> int:
    with store_read("subscriber_count"):
        return (
            db.query(func.count(Subscription.subscriber_id))
            .filter(Subscription.channel_id == channel_id)
            .scalar()
            or 0
        )


def is_subscribed(db: Session, user_id: UUID, channel_id: UUID) -> bool:
    with store_read("is_subscribed"):
        return db.get(Subscription, (user_id, channel_id)) is not None


# Writes below belong to the CRUD surfaces that feed the ranking reads.


def toggle_reaction(db: Session, user: User, video: Video, value: int) -> Tuple[bool, int, int]:
    """Toggle a like (1) or dislike (-1). Returns (active, likes, dislikes)."""
    row: Optional[VideoReaction] = db.get(VideoReaction, (user.id, video.id))
    if row is not None and row.value == value:
        db.delete(row)
        active = False
    elif row is not None:
        # Switching sides replaces the row, never adds a second one
        row.value = value
        row.created_at = datetime.now(timezone.utc)
        active = True
    else:
        db.add(VideoReaction(user_id=user.id, video_id=video.id, value=value))
        active = True
    db.commit()
    likes, dislikes = reaction_counts(db, [video.id]).get(video.id, (0, 0))
    return active, likes, dislikes


def toggle_subscription(db: Session, user: User, channel: User) -> Tuple[bool, int]:
    """Returns (subscribed, channel subscriber count)."""
    if user.id == channel.id:
        raise ValidationError("Cannot subscribe to your own channel")
    row = db.get(Subscription, (user.id, channel.id))
    if row is not None:
        db.delete(row)
        subscribed = False
    else:
        db.add(Subscription(subscriber_id=user.id, channel_id=channel.id))
        subscribed = True
    db.commit()
    return subscribed, subscriber_count(db, channel.id)


def record_watch(
    db: Session,
    user: User,
    video: Video,
    position_seconds: float,
    watched_seconds: float,
) -> WatchHistory:
    wh: Optional[WatchHistory] = db.get(WatchHistory, (user.id, video.id))
    now = datetime.now(timezone.utc)
    if wh is None:
        wh = WatchHistory(
            user_id=user.id,
            video_id=video.id,
            last_position_seconds=position_seconds,
            watched_seconds=watched_seconds,
            last_watched_at=now,
        )
        db.add(wh)
    else:
        wh.last_position_seconds = position_seconds
        wh.watched_seconds = float(wh.watched_seconds or 0.0) + watched_seconds
        wh.last_watched_at = now
    db.commit()
    db.refresh(wh)
    return wh
