# apps/api/csrf.py
import hashlib
import secrets
from typing import Optional

from itsdangerous import URLSafeTimedSerializer, BadSignature, SignatureExpired
from fastapi import HTTPException, Request
from fastapi.responses import Response

from config import settings

COOKIE_NAME = "csrf"
HEADER_NAME = "x-csrf-token"
TTL_SECONDS = 86400  # 24h
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

_serializer = URLSafeTimedSerializer(settings.session_secret, salt="csrf")


def _session_tag(sid: Optional[str]) -> str:
    # Anonymous tokens carry an empty tag; a login rotates the token
    if not sid:
        return ""
    return hashlib.sha256(sid.encode("utf-8")).hexdigest()[:16]


def issue_csrf(response: Response, sid: Optional[str] = None) -> str:
    """Set a double-submit token bound to the given session id (if any)."""
    token = _serializer.dumps({"n": secrets.token_urlsafe(16), "s": _session_tag(sid)})
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        httponly=False,  # must be readable by JS for double-submit
        samesite="lax",
        secure=(settings.env.lower() == "production"),
        path="/",
        max_age=TTL_SECONDS,
    )
    return token


def csrf_protect(request: Request) -> None:
    """Router dependency: double-submit check on state-changing methods only."""
    if request.method in SAFE_METHODS:
        return
    cookie = request.cookies.get(COOKIE_NAME)
    header = request.headers.get(HEADER_NAME)
    if not cookie or not header:
        raise HTTPException(status_code=403, detail="CSRF token missing")
    if not secrets.compare_digest(cookie, header):
        raise HTTPException(status_code=403, detail="CSRF token mismatch")
    try:
        payload = _serializer.loads(header, max_age=TTL_SECONDS)
    except SignatureExpired:
        raise HTTPException(status_code=403, detail="CSRF token expired")
    except BadSignature:
        raise HTTPException(status_code=403, detail="Invalid CSRF token")

    sid = request.cookies.get(settings.session_cookie_name)
    if not isinstance(payload, dict) or payload.get("s") != _session_tag(sid):
        raise HTTPException(status_code=403, detail="CSRF token does not match session")
