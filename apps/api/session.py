# apps/api/session.py
import json
import secrets
import uuid
from datetime import datetime, timezone
from typing import Optional, Dict
from fastapi import Depends, HTTPException, Request
from fastapi.responses import Response
from sqlalchemy.orm import Session

from config import settings
from cache import cache_key, redis_client
from db import get_db
from models import User

TTL = settings.session_ttl_seconds

def _key(sid: str) -> str:
    return cache_key("sess", sid)

def create_session(user_id: str) -> str:
    sid = secrets.token_urlsafe(32)
    payload = {
        "user_id": user_id,
        "issued_at": datetime.now(timezone.utc).isoformat(),
    }
    redis_client.set(_key(sid), json.dumps(payload), ex=TTL)
    return sid

def get_session(sid: str) -> Optional[Dict]:
    raw = redis_client.get(_key(sid))
    if not raw:
        return None
    # Rolling TTL: extend on each access
    redis_client.expire(_key(sid), TTL)
    return json.loads(raw)

def delete_session(sid: str) -> None:
    redis_client.delete(_key(sid))

def set_session_cookie(response: Response, sid: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=sid,
        httponly=True,
        samesite="lax",
        secure=(settings.env.lower() == "production"),
        path="/",
        max_age=TTL,
    )

def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        path="/",
        samesite="lax",
    )

def _resolve(request: Request, response: Response, db: Session) -> tuple:
    """Returns (user, reason); reason explains a missing user."""
    sid = request.cookies.get(settings.session_cookie_name)
    if not sid:
        return None, "Not authenticated"
    sess = get_session(sid)  # already refreshes Redis TTL
    if not sess:
        return None, "Session expired"
    try:
        user_id = uuid.UUID(str(sess.get("user_id")))
    except ValueError:
        delete_session(sid)
        return None, "Session invalid"
    user = db.get(User, user_id)
    if not user:
        delete_session(sid)
        return None, "User not found"
    # Refresh browser cookie TTL as well (rolling cookie expiry)
    set_session_cookie(response, sid)
    return user, None

def get_current_user(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> User:
    user, reason = _resolve(request, response, db)
    if user is None:
        raise HTTPException(status_code=401, detail=reason)
    return user

def get_optional_user(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> Optional[User]:
    """Anonymous callers get None; routes fall back to public behaviour."""
    user, _reason = _resolve(request, response, db)
    return user
