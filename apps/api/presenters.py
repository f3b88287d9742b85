# apps/api/presenters.py
from typing import Dict, List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from catalog import as_utc, reaction_counts
from models import User, Video
from schemas import ChannelOut, UploaderOut, VideoCard, VideoDetail
from storage import asset_url


def uploader_summary(u: Optional[User]) -> Optional[UploaderOut]:
    if u is None:
        return None
    return UploaderOut(
        id=str(u.id),
        username=u.username,
        channel_name=u.channel_name,
        avatar_url=asset_url(u.avatar_ref),
    )


def channel_out(u: User, subscriber_count: int) -> ChannelOut:
    return ChannelOut(
        id=str(u.id),
        username=u.username,
        channel_name=u.channel_name,
        channel_description=u.channel_description or "",
        avatar_url=asset_url(u.avatar_ref),
        subscriber_count=subscriber_count,
    )


def _card_fields(v: Video, counts: Tuple[int, int]) -> dict:
    likes, dislikes = counts
    return dict(
        id=str(v.id),
        title=v.title or "",
        description=v.description or "",
        thumbnail_url=asset_url(v.thumbnail_ref),
        duration_seconds=float(v.duration_seconds or 0.0),
        views=int(v.views or 0),
        likes=likes,
        dislikes=dislikes,
        category=v.category,
        tags=v.tag_names,
        uploader=uploader_summary(v.uploader),
        created_at=as_utc(v.created_at),
        is_published=bool(v.is_published),
    )


def video_cards(db: Session, videos: Sequence[Video]) -> List[VideoCard]:
    """Serialize videos in order, attaching like/dislike counts in one query."""
    counts: Dict[UUID, Tuple[int, int]] = reaction_counts(db, [v.id for v in videos])
    return [VideoCard(**_card_fields(v, counts.get(v.id, (0, 0)))) for v in videos]


def video_detail(db: Session, v: Video, uploader_subscribers: int) -> VideoDetail:
    counts = reaction_counts(db, [v.id]).get(v.id, (0, 0))
    return VideoDetail(
        **_card_fields(v, counts),
        video_url=asset_url(v.video_ref),
        uploader_subscribers=uploader_subscribers,
    )
