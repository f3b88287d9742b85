# apps/api/routes_channels.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from catalog import parse_id
from csrf import csrf_protect
from db import get_db
from errors import NotFoundError
from interactions import resolve_user, subscriber_count, toggle_subscription
from models import User
from presenters import channel_out
from schemas import ChannelOut, SubscriptionOut
from session import get_current_user

router = APIRouter(prefix="/users", tags=["channels"])


def _load_channel(db: Session, user_id: str) -> User:
    channel = resolve_user(db, parse_id(user_id, what="user_id"))
    if channel is None:
        raise NotFoundError("Channel not found")
    return channel


@router.get("/{user_id}", response_model=ChannelOut)
def get_channel(
    user_id: str,
    db: Session = Depends(get_db),
):
    channel = _load_channel(db, user_id)
    return channel_out(channel, subscriber_count(db, channel.id))


@router.post("/{user_id}/subscribe", response_model=SubscriptionOut, dependencies=[Depends(csrf_protect)])
def subscribe(
    user_id: str,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    channel = _load_channel(db, user_id)
    subscribed, count = toggle_subscription(db, user, channel)
    return SubscriptionOut(subscribed=subscribed, subscriber_count=count)
