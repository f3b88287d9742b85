# apps/api/routes_recommendations.py
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from catalog import parse_id
from config import settings
from db import get_db
from listing import parse_category
from models import User
from presenters import channel_out, video_cards
from recommendations import (
    get_channel_recommendations,
    get_public_recommendations,
    get_recommendations,
)
from schemas import (
    ChannelRecommendationsResponse,
    RecommendationsResponse,
    SimilarVideosResponse,
)
from session import get_current_user, get_optional_user
from similarity import get_similar_videos

router = APIRouter(prefix="/recommendations", tags=["recommendations"])

log = logging.getLogger("routes_recommendations")


@router.get("", response_model=RecommendationsResponse)
def recommendations(
    limit: int = Query(settings.default_feed_limit, ge=1, le=settings.max_page_size),
    exclude: Optional[str] = None,
    category: Optional[str] = None,
    user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db),
):
    # Anonymous callers get the public popularity listing instead of an error
    if user is None:
        log.debug("recommendations_public_fallback limit=%d category=%s", limit, category)
        videos = get_public_recommendations(db, limit=limit, category=category)
    else:
        # category only narrows the anonymous feed; it is still validated here
        parse_category(category)
        exclude_id = parse_id(exclude, what="exclude") if exclude else None
        result = get_recommendations(db, user.id, limit=limit, exclude=exclude_id)
        videos = result.videos

    cards = video_cards(db, videos)
    return RecommendationsResponse(recommendations=cards, count=len(cards))


@router.get("/public", response_model=RecommendationsResponse)
def public_recommendations(
    limit: int = Query(settings.default_feed_limit, ge=1, le=settings.max_page_size),
    category: Optional[str] = None,
    db: Session = Depends(get_db),
):
    cards = video_cards(db, get_public_recommendations(db, limit=limit, category=category))
    return RecommendationsResponse(recommendations=cards, count=len(cards))


@router.get("/similar/{video_id}", response_model=SimilarVideosResponse)
def similar_videos(
    video_id: str,
    limit: int = Query(settings.default_similar_limit, ge=1, le=settings.max_page_size),
    db: Session = Depends(get_db),
):
    ranked = get_similar_videos(db, video_id, limit=limit)
    cards = video_cards(db, [item.video for item in ranked])
    return SimilarVideosResponse(similar=cards, count=len(cards))


@router.get("/channels", response_model=ChannelRecommendationsResponse)
def channel_recommendations(
    limit: int = Query(10, ge=1, le=settings.max_page_size),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    suggestions = get_channel_recommendations(db, user.id, limit=limit)
    channels = [channel_out(s.channel, s.subscriber_count) for s in suggestions]
    return ChannelRecommendationsResponse(channels=channels, count=len(channels))
