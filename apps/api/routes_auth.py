# apps/api/routes_auth.py
from fastapi import APIRouter, Depends, HTTPException, Response, Request, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from db import get_db
from models import User
from auth import hash_password, verify_password, normalize_email, validate_registration
from cache import hit_rate_limit
from config import settings
from session import (
    create_session,
    set_session_cookie,
    clear_session_cookie,
    delete_session,
)
from schemas import RegisterRequest, LoginRequest, UserOut, Ok
from csrf import issue_csrf, csrf_protect, HEADER_NAME
from storage import asset_url

router = APIRouter(prefix="/auth", tags=["auth"], dependencies=[Depends(csrf_protect)])

# dev rate limit: 20/min per (ip,email)
LOGIN_LIMIT = 20
LOGIN_WINDOW_SEC = 60


def _user_out(user: User) -> UserOut:
    return UserOut(
        id=str(user.id),
        username=user.username,
        email=user.email,
        channel_name=user.channel_name,
        avatar_url=asset_url(user.avatar_ref),
    )


@router.get("/csrf")
def get_csrf(request: Request, response: Response):
    token = issue_csrf(response, request.cookies.get(settings.session_cookie_name))
    return {"csrf": token, "header": HEADER_NAME}


@router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    response: Response,
    db: Session = Depends(get_db),
):
    username, email, channel_name = validate_registration(
        body.username, body.email, body.password, body.channel_name
    )

    existing = (
        db.query(User)
        .filter(or_(User.email == email, User.username == username))
        .first()
    )
    if existing:
        raise HTTPException(
            status_code=409, detail="User with this email or username already exists"
        )

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(body.password),
        channel_name=channel_name,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    sid = create_session(str(user.id))
    set_session_cookie(response, sid)
    issue_csrf(response, sid)
    return _user_out(user)


@router.post("/login", response_model=UserOut)
def login(
    request: Request,
    body: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
):
    email = normalize_email(body.email or "")
    if not email or not body.password:
        raise HTTPException(status_code=400, detail="Invalid credentials")

    ip = request.client.host if request.client else "unknown"
    if hit_rate_limit("login", f"{ip}:{email}", LOGIN_LIMIT, LOGIN_WINDOW_SEC):
        raise HTTPException(
            status_code=429, detail="Too many login attempts, try again soon."
        )

    user = db.query(User).filter(User.email == email).first()
    if not user or not verify_password(user.password_hash, body.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")

    sid = create_session(str(user.id))
    set_session_cookie(response, sid)
    issue_csrf(response, sid)
    return _user_out(user)


@router.post("/logout", response_model=Ok, status_code=status.HTTP_200_OK)
def logout(request: Request, response: Response):
    sid = request.cookies.get(settings.session_cookie_name)
    if sid:
        delete_session(sid)  # server-side revoke
    clear_session_cookie(response)  # client-side remove
    issue_csrf(response)
    return Ok(ok=True)
