# apps/api/similarity.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from catalog import as_utc, get_video, published_videos, store_read
from config import settings
from errors import NotFoundError, ValidationError
from models import Video, VideoTag

CATEGORY_WEIGHT = settings.similar_category_weight
UPLOADER_WEIGHT = settings.similar_uploader_weight
TAG_WEIGHT = settings.similar_tag_weight
RECENCY_WEIGHT = settings.similar_recency_weight
RECENCY_DAYS = settings.similar_recency_days
# No ceiling: a very popular candidate can outrank a closer match
VIEWS_PER_POINT = settings.similar_views_per_point
POOL_FACTOR = settings.similar_pool_factor

log = logging.getLogger("similarity")


@dataclass
class ScoredVideo:
    video: Video
    score: int


def score_similarity(seed: Video, candidate: Video, now: datetime) -> int:
    score = 0
    if candidate.category == seed.category:
        score += CATEGORY_WEIGHT
    if candidate.user_id == seed.user_id:
        score += UPLOADER_WEIGHT

    seed_tags = set(seed.tag_names)
    if seed_tags:
        score += TAG_WEIGHT * sum(1 for tag in candidate.tag_names if tag in seed_tags)

    created = as_utc(candidate.created_at)
    if created is not None and now - created <= timedelta(days=RECENCY_DAYS):
        score += RECENCY_WEIGHT

    score += int(candidate.views or 0) // VIEWS_PER_POINT
    return score


def candidate_pool(db: Session, seed: Video, size: int) -> List[Video]:
    """Published videos sharing a category, an uploader or a tag with the seed."""
    related = [Video.category == seed.category, Video.user_id == seed.user_id]
    seed_tags = seed.tag_names
    if seed_tags:
        related.append(Video.tags.any(VideoTag.tag.in_(seed_tags)))

    with store_read("similar_candidate_pool"):
        return (
            published_videos(db)
            .filter(Video.id != seed.id, or_(*related))
            .order_by(Video.views.desc(), Video.created_at.desc(), Video.id)
            .limit(size)
            .all()
        )


def get_similar_videos(
    db: Session,
    video_id,
    limit: int = settings.default_similar_limit,
    now: Optional[datetime] = None,
) -> List[ScoredVideo]:
    if limit is None or int(limit) < 1:
        raise ValidationError("limit must be a positive integer")
    limit = int(limit)
    now = now or datetime.now(timezone.utc)

    seed = get_video(db, video_id)
    # Unpublished seeds are hidden the same way GET /videos/{id} hides them
    if not seed.is_published:
        raise NotFoundError("Video not found")
    pool = candidate_pool(db, seed, limit * POOL_FACTOR)

    scored = [ScoredVideo(video=v, score=score_similarity(seed, v, now)) for v in pool]
    # sorted() is stable, so equal scores keep the pool's fetch order
    ranked = sorted(scored, key=lambda item: item.score, reverse=True)[:limit]

    log.debug(
        "similar_ranked seed=%s pool=%d returned=%d top_score=%s",
        seed.id, len(pool), len(ranked), ranked[0].score if ranked else None,
    )
    return ranked
