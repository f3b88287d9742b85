# apps/api/listing.py
from __future__ import annotations

import dataclasses
import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Query, Session

from catalog import likes_count_expr, published_videos, store_read, with_any_tag
from config import settings
from errors import ValidationError
from models import CATEGORIES, User, Video, VideoTag

log = logging.getLogger("listing")

UPLOAD_DATE_WINDOW_DAYS = {
    "today": 1,
    "week": 7,
    "month": 30,
    "year": 365,
}

# short < 240s <= medium <= 1200s < long
SHORT_MAX_SECONDS = 240
LONG_MIN_SECONDS = 1200
# Each predicate accepts a plain number or a column expression
DURATION_BUCKETS = {
    "short": lambda d: d < SHORT_MAX_SECONDS,
    "medium": lambda d: (d >= SHORT_MAX_SECONDS) & (d <= LONG_MIN_SECONDS),
    "long": lambda d: d > LONG_MIN_SECONDS,
}

SORT_RECENT = "recent"
SORT_POPULAR = "popular"
SORT_RATING = "rating"
SORT_OLDEST = "oldest"
SORT_OPTIONS = (SORT_RECENT, SORT_POPULAR, SORT_RATING, SORT_OLDEST)
# No text-relevance score is computed; "relevance" orders like "recent".
SORT_ALIASES = {"relevance": SORT_RECENT}

_UNSET = ("", "all")


@dataclass(frozen=True)
class VideoFilters:
    text: Optional[str] = None
    match_channel: bool = False
    category: Optional[str] = None
    tags: Tuple[str, ...] = ()
    created_after: Optional[datetime] = None
    duration_bucket: Optional[str] = None
    min_duration: Optional[float] = None
    max_duration: Optional[float] = None
    sort: str = SORT_RECENT


@dataclass
class VideoPage:
    videos: List[Video]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.total else 0


def classify_duration(seconds: float) -> str:
    return next(name for name, matches in DURATION_BUCKETS.items() if matches(seconds))


def clamp_limit(limit: Optional[int], default: Optional[int] = None) -> int:
    if limit is None:
        limit = default or settings.default_page_size
    return max(1, min(settings.max_page_size, int(limit)))


def parse_category(value: Optional[str]) -> Optional[str]:
    label = (value or "").strip()
    if label.lower() in _UNSET:
        return None
    if label not in CATEGORIES:
        raise ValidationError(f"Unknown category '{label}'")
    return label


def parse_tags(value: Optional[str]) -> Tuple[str, ...]:
    if not value:
        return ()
    tags = [t.strip() for t in value.split(",")]
    return tuple(dict.fromkeys(t for t in tags if t))


def parse_upload_date(value: Optional[str], now: Optional[datetime] = None) -> Optional[datetime]:
    key = (value or "").strip().lower()
    if key in _UNSET:
        return None
    days = UPLOAD_DATE_WINDOW_DAYS.get(key)
    if days is None:
        raise ValidationError(f"Unknown uploadDate '{value}'")
    now = now or datetime.now(timezone.utc)
    return now - timedelta(days=days)


def parse_duration(value: Optional[str]) -> Optional[str]:
    key = (value or "").strip().lower()
    if key in _UNSET or key == "any":
        return None
    if key not in DURATION_BUCKETS:
        raise ValidationError(f"Unknown duration '{value}'")
    return key


def parse_sort(value: Optional[str]) -> str:
    key = (value or "").strip().lower()
    if not key:
        return SORT_RECENT
    key = SORT_ALIASES.get(key, key)
    if key not in SORT_OPTIONS:
        raise ValidationError(f"Unknown sortBy '{value}'")
    return key


def parse_filters(
    *,
    search: Optional[str] = None,
    category: Optional[str] = None,
    tags: Optional[str] = None,
    upload_date: Optional[str] = None,
    duration: Optional[str] = None,
    min_duration: Optional[float] = None,
    max_duration: Optional[float] = None,
    sort_by: Optional[str] = None,
    match_channel: bool = False,
    now: Optional[datetime] = None,
) -> VideoFilters:
    """Translate raw request parameters into a VideoFilters value.

    Absent parameters impose no constraint; an absent search means no text
    filter. Unknown enumerated values raise ValidationError.
    """
    for bound in (min_duration, max_duration):
        if bound is not None and bound < 0:
            raise ValidationError("Duration bounds must be non-negative")
    if min_duration is not None and max_duration is not None and min_duration > max_duration:
        raise ValidationError("minDuration must not exceed maxDuration")

    text = (search or "").strip() or None
    return VideoFilters(
        text=text,
        match_channel=match_channel,
        category=parse_category(category),
        tags=parse_tags(tags),
        created_after=parse_upload_date(upload_date, now),
        duration_bucket=parse_duration(duration),
        min_duration=min_duration,
        max_duration=max_duration,
        sort=parse_sort(sort_by),
    )


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def apply_filters(q: Query, filters: VideoFilters) -> Query:
    if filters.text:
        pattern = _like_pattern(filters.text)
        clauses = [
            Video.title.ilike(pattern, escape="\\"),
            Video.description.ilike(pattern, escape="\\"),
            Video.tags.any(VideoTag.tag.ilike(pattern, escape="\\")),
        ]
        if filters.match_channel:
            clauses.append(Video.uploader.has(User.channel_name.ilike(pattern, escape="\\")))
        q = q.filter(or_(*clauses))

    if filters.category:
        q = q.filter(Video.category == filters.category)

    q = with_any_tag(q, filters.tags)

    if filters.created_after is not None:
        q = q.filter(Video.created_at >= filters.created_after)

    if filters.duration_bucket:
        q = q.filter(DURATION_BUCKETS[filters.duration_bucket](Video.duration_seconds))

    if filters.min_duration is not None:
        q = q.filter(Video.duration_seconds >= filters.min_duration)
    if filters.max_duration is not None:
        q = q.filter(Video.duration_seconds <= filters.max_duration)
    return q


def order_by_for(sort: str) -> Sequence:
    # id closes every ordering so ties come back in the same order each call
    if sort == SORT_POPULAR:
        return (Video.views.desc(), Video.created_at.desc(), Video.id)
    if sort == SORT_RATING:
        return (likes_count_expr().desc(), Video.created_at.desc(), Video.id)
    if sort == SORT_OLDEST:
        return (Video.created_at.asc(), Video.id)
    return (Video.created_at.desc(), Video.id)


def list_videos(
    db: Session,
    filters: VideoFilters,
    page: int = 1,
    limit: Optional[int] = None,
) -> VideoPage:
    page = max(1, int(page or 1))
    limit = clamp_limit(limit)

    q = apply_filters(published_videos(db), filters)
    with store_read("list_videos"):
        total = q.count()
        items = (
            q.order_by(*order_by_for(filters.sort))
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )

    log.debug(
        "listing_page sort=%s page=%d limit=%d total=%d returned=%d",
        filters.sort, page, limit, total, len(items),
    )
    return VideoPage(videos=items, total=total, page=page, limit=limit)


def search_videos(
    db: Session,
    query: Optional[str],
    filters: Optional[VideoFilters] = None,
    page: int = 1,
    limit: Optional[int] = None,
) -> VideoPage:
    """Dedicated search: the query is mandatory and also matches channel names."""
    text = (query or "").strip()
    if not text:
        raise ValidationError("Search query is required")
    filters = dataclasses.replace(filters or VideoFilters(), text=text, match_channel=True)
    return list_videos(db, filters, page=page, limit=limit)


def trending_videos(
    db: Session,
    time_range: Optional[str] = "week",
    limit: Optional[int] = None,
    now: Optional[datetime] = None,
) -> List[Video]:
    created_after = parse_upload_date(time_range, now)
    limit = clamp_limit(limit)

    q = published_videos(db)
    if created_after is not None:
        q = q.filter(Video.created_at >= created_after)
    with store_read("trending_videos"):
        return (
            q.order_by(
                Video.views.desc(),
                likes_count_expr().desc(),
                Video.created_at.desc(),
                Video.id,
            )
            .limit(limit)
            .all()
        )
