# apps/api/routes_history.py
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from catalog import as_utc, get_video, parse_id, store_read
from csrf import csrf_protect
from config import settings
from db import get_db
from interactions import record_watch
from models import User, Video, WatchHistory
from presenters import video_cards
from schemas import Ok, HeartbeatRequest, PaginatedHistory, HistoryItem
from session import get_current_user

router = APIRouter(prefix="/history", tags=["history"], dependencies=[Depends(csrf_protect)])

log = logging.getLogger("routes_history")


@router.post("/heartbeat", response_model=Ok, status_code=status.HTTP_200_OK)
def heartbeat(
    body: HeartbeatRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    v = get_video(db, body.video_id)

    # Clamp to non-negative float seconds
    pos = max(0.0, float(body.position_seconds or 0.0))
    watched = max(0.0, float(body.watched_seconds or 0.0))

    wh = record_watch(db, user, v, pos, watched)
    log.debug(
        "history_heartbeat user_id=%s video_id=%s position=%.1f watched_total=%.1f",
        user.id, v.id, pos, wh.watched_seconds,
    )
    return Ok(ok=True)


@router.get("", response_model=PaginatedHistory)
def list_history(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    limit: int = Query(50, ge=1, le=settings.max_page_size),
    offset: int = Query(0, ge=0),
):
    with store_read("list_history"):
        rows = (
            db.query(WatchHistory, Video)
            .join(Video, WatchHistory.video_id == Video.id)
            .filter(WatchHistory.user_id == user.id)
            .order_by(WatchHistory.last_watched_at.desc())
            .offset(offset)
            .limit(limit + 1)
            .all()
        )
    has_more = len(rows) > limit
    rows = rows[:limit]

    cards = video_cards(db, [v for _wh, v in rows])
    items: List[HistoryItem] = []
    for (wh, v), card in zip(rows, cards):
        dur: Optional[float] = float(v.duration_seconds) if v.duration_seconds else None
        progress = None
        if dur and dur > 0:
            progress = max(
                0.0, min(100.0, (float(wh.last_position_seconds or 0) / dur) * 100.0)
            )
        items.append(
            HistoryItem(
                video=card,
                last_position_seconds=float(wh.last_position_seconds or 0),
                watched_seconds=float(wh.watched_seconds or 0),
                progress_percent=progress,
                last_watched_at=as_utc(wh.last_watched_at),
            )
        )

    next_offset = offset + len(items) if has_more else None
    return PaginatedHistory(items=items, next_offset=next_offset)


@router.delete("", response_model=Ok)
def clear_history(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    db.query(WatchHistory).filter(WatchHistory.user_id == user.id).delete(
        synchronize_session=False
    )
    db.commit()
    return Ok(ok=True)


@router.delete("/{video_id}", response_model=Ok)
def delete_history_entry(
    video_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    vid = parse_id(video_id)
    db.query(WatchHistory).filter(
        WatchHistory.user_id == user.id, WatchHistory.video_id == vid
    ).delete(synchronize_session=False)
    db.commit()
    return Ok(ok=True)
