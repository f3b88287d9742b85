# apps/api/routes_videos.py
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from catalog import get_video, parse_id, store_read, videos_by_uploader
from config import settings
from csrf import csrf_protect
from db import get_db
from errors import NotFoundError
from interactions import subscriber_count, toggle_reaction
from listing import list_videos, parse_filters, search_videos, trending_videos
from models import DISLIKE, LIKE, User, Video
from presenters import video_cards, video_detail
from schemas import (
    ReactionOut,
    SearchResponse,
    VideoCollection,
    VideoDetailResponse,
    VideoListResponse,
    ViewsOut,
)
from session import get_current_user

router = APIRouter(prefix="/videos", tags=["videos"])


@router.get("", response_model=VideoListResponse)
def list_all_videos(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    search: Optional[str] = None,
    category: Optional[str] = None,
    tags: Optional[str] = None,
    upload_date: Optional[str] = Query(None, alias="uploadDate"),
    duration: Optional[str] = None,
    min_duration: Optional[float] = Query(None, alias="minDuration"),
    max_duration: Optional[float] = Query(None, alias="maxDuration"),
    sort_by: Optional[str] = Query(None, alias="sortBy"),
    db: Session = Depends(get_db),
):
    # No search term means no text filter here, unlike /videos/search
    filters = parse_filters(
        search=search,
        category=category,
        tags=tags,
        upload_date=upload_date,
        duration=duration,
        min_duration=min_duration,
        max_duration=max_duration,
        sort_by=sort_by,
    )
    result = list_videos(db, filters, page=page, limit=limit)
    return VideoListResponse(
        videos=video_cards(db, result.videos),
        totalPages=result.total_pages,
        currentPage=result.page,
        totalVideos=result.total,
    )


@router.get("/search", response_model=SearchResponse)
def search(
    q: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    category: Optional[str] = None,
    tags: Optional[str] = None,
    upload_date: Optional[str] = Query(None, alias="uploadDate"),
    duration: Optional[str] = None,
    sort_by: Optional[str] = Query("relevance", alias="sortBy"),
    db: Session = Depends(get_db),
):
    filters = parse_filters(
        category=category,
        tags=tags,
        upload_date=upload_date,
        duration=duration,
        sort_by=sort_by,
    )
    result = search_videos(db, q, filters, page=page, limit=limit)
    return SearchResponse(
        query=(q or "").strip(),
        videos=video_cards(db, result.videos),
        totalPages=result.total_pages,
        currentPage=result.page,
        totalVideos=result.total,
    )


@router.get("/trending", response_model=VideoCollection)
def trending(
    time_range: Optional[str] = Query("week", alias="timeRange"),
    limit: int = Query(settings.default_page_size, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
):
    cards = video_cards(db, trending_videos(db, time_range=time_range, limit=limit))
    return VideoCollection(videos=cards, count=len(cards))


@router.get("/user/{user_id}", response_model=VideoCollection)
def list_channel_videos(
    user_id: str,
    db: Session = Depends(get_db),
):
    cards = video_cards(db, videos_by_uploader(db, user_id))
    return VideoCollection(videos=cards, count=len(cards))


@router.get("/{video_id}", response_model=VideoDetailResponse)
def get_video_by_id(
    video_id: str,
    db: Session = Depends(get_db),
):
    v = get_video(db, video_id)
    if not v.is_published:
        raise NotFoundError("Video not found")
    return VideoDetailResponse(video=video_detail(db, v, subscriber_count(db, v.user_id)))


@router.put("/{video_id}/view", response_model=ViewsOut)
def increment_views(
    video_id: str,
    db: Session = Depends(get_db),
):
    vid = parse_id(video_id)
    updated = (
        db.query(Video)
        .filter(Video.id == vid)
        .update({Video.views: Video.views + 1}, synchronize_session=False)
    )
    db.commit()
    if not updated:
        raise NotFoundError("Video not found")
    with store_read("increment_views"):
        views = db.query(Video.views).filter(Video.id == vid).scalar()
    return ViewsOut(views=int(views or 0))


def _react(db: Session, user: User, video_id: str, value: int) -> ReactionOut:
    v = get_video(db, video_id)
    active, likes, dislikes = toggle_reaction(db, user, v, value)
    return ReactionOut(active=active, likes=likes, dislikes=dislikes)


@router.put("/{video_id}/like", response_model=ReactionOut, dependencies=[Depends(csrf_protect)])
def like_video(
    video_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _react(db, user, video_id, LIKE)


@router.put("/{video_id}/dislike", response_model=ReactionOut, dependencies=[Depends(csrf_protect)])
def dislike_video(
    video_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return _react(db, user, video_id, DISLIKE)
