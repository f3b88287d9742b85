# apps/api/recommendations.py
from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence, Set
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Query, Session

from catalog import excluding, likes_count_expr, published_videos, store_read
from config import settings
from errors import ValidationError
from interactions import liked_videos, recent_history, resolve_user, subscribed_channel_ids
from listing import clamp_limit, parse_category
from models import Subscription, User, Video

# Recommendation configuration
HISTORY_DEPTH = settings.history_depth
LIKED_DEPTH = settings.liked_depth
TRENDING_WINDOW_DAYS = settings.trending_window_days

STAGE_SUBSCRIPTIONS = "subscriptions"
STAGE_CATEGORY = "category"
STAGE_TRENDING = "trending"
STAGE_POPULAR = "popular"
STAGES = (STAGE_SUBSCRIPTIONS, STAGE_CATEGORY, STAGE_TRENDING, STAGE_POPULAR)

# Stage D has no share: it fills whatever the other stages left open
STAGE_SHARES = {
    STAGE_SUBSCRIPTIONS: settings.subscription_share,
    STAGE_CATEGORY: settings.category_share,
    STAGE_TRENDING: settings.trending_share,
}


log = logging.getLogger("recommendations")

FinalOrdering = Callable[[List[Video]], List[Video]]


@dataclass
class UserSignals:
    watched_categories: Set[str] = field(default_factory=set)
    watched_video_ids: Set[UUID] = field(default_factory=set)
    watched_channels: Set[UUID] = field(default_factory=set)
    subscribed_channels: List[UUID] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.watched_video_ids or self.subscribed_channels)


@dataclass
class RecommendationResult:
    videos: List[Video]
    sources: Dict[str, str]
    stage_counts: Dict[str, int]


@dataclass
class ChannelSuggestion:
    channel: User
    subscriber_count: int


class IdentityOrdering:
    """Pure-ranked output: keep the stage order as assembled."""

    name = "identity"

    def __call__(self, videos: List[Video]) -> List[Video]:
        return list(videos)


class ShuffleOrdering:
    """Ranked-then-shuffled output so the feed is not visibly bucketed by stage."""

    name = "shuffle"

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self.rng = rng or random.Random()

    def __call__(self, videos: List[Video]) -> List[Video]:
        shuffled = list(videos)
        self.rng.shuffle(shuffled)
        return shuffled


def default_ordering() -> FinalOrdering:
    return ShuffleOrdering() if settings.feed_shuffle else IdentityOrdering()


def stage_quotas(limit: int) -> Dict[str, int]:
    return {stage: int(math.floor(share * limit)) for stage, share in STAGE_SHARES.items()}


def extract_signals(
    history_videos: Sequence[Video],
    liked: Sequence[Video],
    subscriptions: Sequence[UUID],
) -> UserSignals:
    signals = UserSignals(subscribed_channels=list(dict.fromkeys(subscriptions)))
    for video in list(history_videos) + list(liked):
        if video is None:
            continue
        if video.category:
            signals.watched_categories.add(video.category)
        signals.watched_video_ids.add(video.id)
        if video.user_id is not None:
            signals.watched_channels.add(video.user_id)
    return signals


def build_user_signals(db: Session, user_id: UUID) -> UserSignals:
    """Recompute affinity signals from the user's recent interaction window.

    Unknown users get empty signals instead of an error.
    """
    if resolve_user(db, user_id) is None:
        log.info("recommendations_unknown_user user_id=%s", user_id)
        return UserSignals()

    history_rows = recent_history(db, user_id, HISTORY_DEPTH)
    liked = liked_videos(db, user_id, LIKED_DEPTH)
    subscriptions = subscribed_channel_ids(db, user_id)

    return extract_signals([video for _wh, video in history_rows], liked, subscriptions)


def _take(stage: str, q: Query, excluded: Set[UUID], quota: int) -> List[Video]:
    if quota <= 0:
        return []
    with store_read(f"recommendations_{stage}"):
        return excluding(q, excluded).limit(quota).all()


def get_recommendations(
    db: Session,
    user_id: UUID,
    limit: int = settings.default_feed_limit,
    exclude: Optional[UUID] = None,
    ordering: Optional[FinalOrdering] = None,
    now: Optional[datetime] = None,
) -> RecommendationResult:
    """
    Quota waterfall over four sources, each excluding everything picked before it:
    - subscriptions (40%), newest first
    - watched/liked categories (30%), most viewed first
    - trending in the last week (20%), most viewed then most liked
    - popular fallback filling the remaining slots
    Unfilled quotas do not roll over. The final ordering strategy decides
    presentation order; stage order only decides which videos make the pool.
    """
    if limit is None or int(limit) < 1:
        raise ValidationError("limit must be a positive integer")
    limit = int(limit)
    now = now or datetime.now(timezone.utc)
    ordering = ordering or default_ordering()

    signals = build_user_signals(db, user_id)

    excluded: Set[UUID] = set(signals.watched_video_ids)
    if exclude is not None:
        excluded.add(exclude)

    quotas = stage_quotas(limit)
    pool: List[Video] = []
    sources: Dict[str, str] = {}
    stage_counts: Dict[str, int] = {stage: 0 for stage in STAGES}

    def admit(stage: str, videos: Sequence[Video]) -> None:
        for v in videos:
            if v.id in excluded:
                continue
            excluded.add(v.id)
            pool.append(v)
            sources[str(v.id)] = stage
            stage_counts[stage] += 1

    if signals.subscribed_channels:
        q = (
            published_videos(db)
            .filter(Video.user_id.in_(signals.subscribed_channels))
            .order_by(Video.created_at.desc(), Video.id)
        )
        admit(STAGE_SUBSCRIPTIONS, _take(STAGE_SUBSCRIPTIONS, q, excluded, quotas[STAGE_SUBSCRIPTIONS]))

    if signals.watched_categories:
        q = (
            published_videos(db)
            .filter(Video.category.in_(sorted(signals.watched_categories)))
            .order_by(Video.views.desc(), Video.created_at.desc(), Video.id)
        )
        admit(STAGE_CATEGORY, _take(STAGE_CATEGORY, q, excluded, quotas[STAGE_CATEGORY]))

    trending_since = now - timedelta(days=TRENDING_WINDOW_DAYS)
    q = (
        published_videos(db)
        .filter(Video.created_at >= trending_since)
        .order_by(Video.views.desc(), likes_count_expr().desc(), Video.id)
    )
    admit(STAGE_TRENDING, _take(STAGE_TRENDING, q, excluded, quotas[STAGE_TRENDING]))

    remaining = limit - len(pool)
    q = published_videos(db).order_by(Video.views.desc(), Video.created_at.desc(), Video.id)
    admit(STAGE_POPULAR, _take(STAGE_POPULAR, q, excluded, remaining))

    ordered = ordering(pool)[:limit]

    log.info(
        "recommendations_pool user_id=%s limit=%d subscriptions=%d category=%d trending=%d popular=%d ordering=%s",
        user_id,
        limit,
        stage_counts[STAGE_SUBSCRIPTIONS],
        stage_counts[STAGE_CATEGORY],
        stage_counts[STAGE_TRENDING],
        stage_counts[STAGE_POPULAR],
        getattr(ordering, "name", "custom"),
    )

    return RecommendationResult(
        videos=ordered,
        sources={str(v.id): sources[str(v.id)] for v in ordered},
        stage_counts=stage_counts,
    )


def get_public_recommendations(
    db: Session,
    limit: int = settings.default_feed_limit,
    category: Optional[str] = None,
) -> List[Video]:
    """Anonymous feed: most viewed published videos, optionally in one category."""
    limit = clamp_limit(limit)
    q = published_videos(db)
    label = parse_category(category)
    if label:
        q = q.filter(Video.category == label)
    with store_read("public_recommendations"):
        return (
            q.order_by(Video.views.desc(), Video.created_at.desc(), Video.id)
            .limit(limit)
            .all()
        )


def get_channel_recommendations(
    db: Session,
    user_id: UUID,
    limit: int = 10,
) -> List[ChannelSuggestion]:
    """Channels the user does not follow yet, largest audience first."""
    limit = clamp_limit(limit)
    skip = set(subscribed_channel_ids(db, user_id))
    skip.add(user_id)

    sub_count = (
        select(func.count(Subscription.subscriber_id))
        .where(Subscription.channel_id == User.id)
        .correlate(User)
        .scalar_subquery()
    )
    with store_read("channel_recommendations"):
        rows = (
            db.query(User, sub_count.label("subscriber_count"))
            .filter(User.id.not_in(list(skip)))
            .order_by(sub_count.desc(), User.created_at, User.id)
            .limit(limit)
            .all()
        )
    return [ChannelSuggestion(channel=u, subscriber_count=int(n or 0)) for u, n in rows]
